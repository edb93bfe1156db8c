"""Payment allocation and credit ledger engine for HOA dues and water billing."""

__version__ = "0.1.0"
