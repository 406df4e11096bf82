"""
Command-line entry point.

Examples:
  supplier-pricing lista_moura_2024.xlsx
  supplier-pricing lista.xlsx --vendor "LIQUI MOLY" --output catalogo.json
  supplier-pricing lista.csv --config configuracion.json --no-llm
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from supplier_pricing.config.settings import get_settings
from supplier_pricing.schemas.pricing import PricingRunResult
from supplier_pricing.services.pipeline import PricingPipeline
from supplier_pricing.utils.errors import ConfigurationError, PricingPipelineError
from supplier_pricing.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="supplier-pricing",
        description="Price a supplier spreadsheet for the retail and wholesale channels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("file", help="Workbook to process (.xlsx, .xlsm or .csv)")
    parser.add_argument("--vendor", help="Forced vendor/brand name")
    parser.add_argument(
        "--config",
        type=Path,
        help="Pricing configuration JSON used when the configuration service is down",
    )
    parser.add_argument("--output", type=Path, help="Write the JSON result here")
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Skip the assistant and map columns with heuristics only",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


async def run(args: argparse.Namespace) -> PricingRunResult:
    settings = get_settings()
    if args.no_llm:
        settings = settings.model_copy(update={"llm_enabled": False})

    config_blob = None
    if args.config:
        try:
            config_blob = json.loads(args.config.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file: {e}", details={"path": str(args.config)}
            ) from e

    pipeline = PricingPipeline.from_settings(settings)
    try:
        return await pipeline.process_file(
            args.file, vendor=args.vendor, config_blob=config_blob
        )
    finally:
        await pipeline.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        result = asyncio.run(run(args))
    except PricingPipelineError as e:
        logger.error("cli.failed", error_type=type(e).__name__, message=e.message)
        print(
            json.dumps(
                {"error": type(e).__name__, "message": e.message, "details": e.details},
                ensure_ascii=False,
                indent=2,
                default=str,
            ),
            file=sys.stderr,
        )
        return 1

    payload = result.model_dump_json(indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logger.info("cli.written", path=str(args.output), products=len(result.products))
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
