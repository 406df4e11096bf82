"""Configuration module."""

from supplier_pricing.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
