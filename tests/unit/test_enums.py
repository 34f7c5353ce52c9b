from __future__ import annotations

import pytest

from finops_import.errors import InvalidEnumValue
from finops_import.models import BillingCycle, Currency, ImportType, TimesheetStatus


def test_parse_trims_and_folds_case():
    assert TimesheetStatus.parse("  Submitted ") is TimesheetStatus.SUBMITTED
    assert Currency.parse(" gbp") is Currency.GBP
    assert ImportType.parse(ImportType.PARTNERS) is ImportType.PARTNERS


def test_parse_rejects_unknown_values():
    with pytest.raises(InvalidEnumValue) as exc:
        BillingCycle.parse("weekly")
    assert exc.value.enum_name == "BillingCycle"
    assert exc.value.value == "weekly"
    assert exc.value.allowed == ["monthly", "annual"]
    assert isinstance(exc.value, ValueError)


def test_parse_rejects_blank():
    with pytest.raises(InvalidEnumValue):
        Currency.parse(None)
