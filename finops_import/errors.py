from __future__ import annotations

"""Exception hierarchy shared by the import pipeline.

Two tiers of failure exist:

- batch-level failures abort a whole operation (empty sheet, payroll already
  generated for a month, no active team members) and derive from
  ``ImportBatchError``;
- row-level problems are never raised, they are collected into ``RowError``
  entries by the parsers.

``InvalidEnumValue`` is raised by the ``parse`` helpers of the closed
enumerations and caught by the row validators.
"""

__all__ = [
    "ImportBatchError",
    "EmptySheetError",
    "PayrollGenerationError",
    "InvalidEnumValue",
]


class ImportBatchError(Exception):
    """Base exception for failures that abort a whole batch."""
    pass


class EmptySheetError(ImportBatchError):
    """Raised when the cell matrix has no rows or only blank data rows."""
    pass


class PayrollGenerationError(ImportBatchError):
    """Raised when payroll for a month must not be generated."""
    pass


class InvalidEnumValue(ValueError):
    """Raised when a text value is not a member of a closed enumeration."""

    def __init__(self, enum_name: str, value: object, allowed: list[str]):
        self.enum_name = enum_name
        self.value = value
        self.allowed = allowed
        super().__init__(f"invalid {enum_name}: {value!r} (allowed: {', '.join(allowed)})")
