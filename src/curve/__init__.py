"""Curve — constant-product котировки bonding curve (read-only путь)."""

from .quote_engine import Quote, minimum_received, quote, quote_buy, quote_sell

__all__ = [
    "Quote",
    "minimum_received",
    "quote",
    "quote_buy",
    "quote_sell",
]
