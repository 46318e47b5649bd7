import pytest

from services.production_form import (
    EntryValidationError,
    ProductionEntry,
    adjust_quantity,
    quick_quantities,
    validate_entry,
)


def test_valid_entry_is_normalised():
    entry = validate_entry("P1", "12", None, "  ", "  Ana ")
    assert entry == ProductionEntry("P1", 12, 0, "", "Ana")


def test_rework_only_entry_needs_reason():
    with pytest.raises(EntryValidationError) as excinfo:
        validate_entry("P1", 0, 3, "", "Ana")
    assert excinfo.value.field == "reason_text"

    entry = validate_entry("P1", 0, 3, "Rebarba", "Ana")
    assert (entry.produced_qty, entry.rework_qty, entry.reason_text) == (0, 3, "Rebarba")


@pytest.mark.parametrize(
    "args, field",
    [
        (("", 1, 0, "", "Ana"), "piece_id"),
        (("P1", 0, 0, "", "Ana"), "produced_qty"),
        (("P1", -1, 0, "", "Ana"), "produced_qty"),
        (("P1", "dez", 0, "", "Ana"), "produced_qty"),
        (("P1", 1, -2, "x", "Ana"), "rework_qty"),
        (("P1", 1, 0, "", "   "), "operator_name"),
    ],
)
def test_invalid_entries_point_at_the_field(args, field):
    with pytest.raises(EntryValidationError) as excinfo:
        validate_entry(*args)
    assert excinfo.value.field == field
    assert str(excinfo.value)


def test_steppers_never_go_below_zero():
    assert adjust_quantity(0, -1) == 0
    assert adjust_quantity(4, 1) == 5
    assert adjust_quantity(None, 10) == 10


def test_quick_quantities():
    assert quick_quantities() == (5, 10, 20, 50)
