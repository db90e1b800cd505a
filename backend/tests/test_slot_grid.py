import pytest

from app.schemas.schedule import SlotCell
from app.services.slot_grid import (
    DAY_NAMES,
    SlotCoordinate,
    as_coordinates,
    period_label,
    stored_day_to_ui,
    ui_day_to_stored,
)


def test_ui_day_mapping_is_a_bijection():
    stored = [ui_day_to_stored(ui_day) for ui_day in range(7)]
    assert stored == [1, 2, 3, 4, 5, 6, 0]
    assert sorted(stored) == list(range(7))
    for ui_day in range(7):
        assert stored_day_to_ui(ui_day_to_stored(ui_day)) == ui_day


def test_monday_first_ui_lands_on_named_days():
    assert DAY_NAMES[ui_day_to_stored(0)] == "Monday"
    assert DAY_NAMES[ui_day_to_stored(6)] == "Sunday"


@pytest.mark.parametrize("value", [-1, 7])
def test_day_mapping_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        ui_day_to_stored(value)
    with pytest.raises(ValueError):
        stored_day_to_ui(value)


def test_period_labels():
    assert period_label(0) == "Morning"
    assert period_label(3) == "Period 3"
    assert period_label(7) == "Night"


def test_coordinate_validates_range():
    assert SlotCoordinate(0, 7).key == "0-7"
    with pytest.raises(ValueError):
        SlotCoordinate(7, 0)
    with pytest.raises(ValueError):
        SlotCoordinate(1, 8)


def test_as_coordinates_accepts_pairs_and_mappings():
    coordinates = as_coordinates([(1, 2), {"day": 3, "period": 0}, SlotCoordinate(6, 7)])
    assert [coordinate.key for coordinate in coordinates] == ["1-2", "3-0", "6-7"]


def test_slot_cell_resolves_ui_day():
    assert SlotCell(ui_day=6, period=1).day_of_week == 0
    assert SlotCell(day_of_week=2, period=1).day_of_week == 2
    assert SlotCell(day_of_week=1, ui_day=0, period=1).day_of_week == 1


def test_slot_cell_rejects_mismatched_or_missing_day():
    with pytest.raises(ValueError):
        SlotCell(period=1)
    with pytest.raises(ValueError):
        SlotCell(day_of_week=3, ui_day=0, period=1)
