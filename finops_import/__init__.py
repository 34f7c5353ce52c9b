"""finops-import: spreadsheet imports for a small-business finance ledger."""

__version__ = "0.1.0"
