"""DebitFlow - debit sheet extraction and reconciliation service."""

__version__ = "0.1.0"
