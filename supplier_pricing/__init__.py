"""
Supplier Pricing Pipeline
=========================

Turns supplier spreadsheets into a normalized, priced product catalog
for the retail and wholesale channels.
"""

__version__ = "1.0.0"
