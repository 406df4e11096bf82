import sys

from supplier_pricing.cli import main

sys.exit(main())
