from types import SimpleNamespace

import pytest

from confidence_pool.errors import (
    DependentNotFound,
    DuplicateConfidenceValue,
    InvalidPickData,
)
from confidence_pool.utils.pick_validation import (
    check_required_fields,
    check_unique_confidence,
    normalize_pick,
    resolve_picker,
    validate_pick_batch,
)
from confidence_pool.utils.picker import Picker
from tests.conftest import pick


def participant_with(*dependent_ids):
    dependents = {d: SimpleNamespace(id=d) for d in dependent_ids}
    return SimpleNamespace(id=7, get_dependent=dependents.get)


def test_normalize_pick_accepts_camel_case():
    raw = {
        "gameId": 3,
        "selectedTeam": "Buffalo Bills",
        "confidencePoints": 5,
        "poolId": 1,
        "round": "Wild Card",
    }
    assert normalize_pick(raw) == pick(3, "Buffalo Bills", 5, 1)


def test_picks_must_be_a_list():
    with pytest.raises(InvalidPickData) as exc:
        check_required_fields({"game_id": 1})
    assert exc.value.message == "Invalid request format"


def test_missing_field_reports_which_one():
    picks = [pick(1, "Buffalo Bills", 2, 1), {"game_id": 2, "pool_id": 1}]

    with pytest.raises(InvalidPickData) as exc:
        check_required_fields(picks)

    details = exc.value.details
    assert details["index"] == 1
    assert details["missing"] == {
        "game_id": False,
        "selected_team": True,
        "confidence_points": True,
        "pool_id": False,
        "round": True,
    }


def test_zero_points_is_invalid_not_missing():
    with pytest.raises(InvalidPickData) as exc:
        check_required_fields([pick(1, "Buffalo Bills", 0, 1)])
    assert "confidence_points" in exc.value.details["invalid"]


def test_unknown_round_is_invalid():
    with pytest.raises(InvalidPickData) as exc:
        check_required_fields([pick(1, "Buffalo Bills", 1, 1, round="Preseason")])
    assert "round" in exc.value.details["invalid"]


def test_numeric_strings_are_coerced():
    [normalized] = check_required_fields(
        [pick("4", " Buffalo Bills ", "9", "2")]
    )
    assert normalized == pick(4, "Buffalo Bills", 9, 2)


def test_fractional_points_are_invalid():
    with pytest.raises(InvalidPickData) as exc:
        check_required_fields([pick(1, "Buffalo Bills", 2.9, 1)])
    assert "confidence_points" in exc.value.details["invalid"]


def test_fractional_points_are_not_reported_as_duplicates():
    picks = [
        pick(1, "Buffalo Bills", 2.1, 1),
        pick(2, "Baltimore Ravens", 2.9, 1),
    ]
    with pytest.raises(InvalidPickData):
        validate_pick_batch(picks, participant_with())


def test_whole_number_floats_are_coerced():
    [normalized] = check_required_fields([pick(1, "Buffalo Bills", 4.0, 1)])
    assert normalized["confidence_points"] == 4


def test_duplicate_points_in_one_round_rejected():
    picks = [
        pick(1, "A", 5, 1),
        pick(2, "B", 3, 1),
        pick(3, "C", 5, 1),
    ]
    with pytest.raises(DuplicateConfidenceValue) as exc:
        check_unique_confidence(picks)

    assert exc.value.value == 5
    assert exc.value.round == "Wild Card"
    assert exc.value.message == "Duplicate points value 5 found in Wild Card round"


def test_same_points_allowed_across_rounds():
    check_unique_confidence(
        [pick(1, "A", 5, 1), pick(2, "B", 5, 1, round="Divisional")]
    )


def test_resolve_picker_for_self_and_dependent():
    participant = participant_with(11)

    assert resolve_picker(participant) == Picker.for_self(7)
    assert resolve_picker(participant, "11") == Picker.for_dependent(7, 11)


def test_resolve_picker_rejects_someone_elses_dependent():
    with pytest.raises(DependentNotFound):
        resolve_picker(participant_with(11), 12)


def test_missing_fields_reported_before_dependent_lookup():
    with pytest.raises(InvalidPickData):
        validate_pick_batch([{"game_id": 1}], participant_with(), dependent_id=99)


def test_dependent_checked_before_duplicate_points():
    picks = [pick(1, "A", 5, 1), pick(2, "B", 5, 1)]
    with pytest.raises(DependentNotFound):
        validate_pick_batch(picks, participant_with(), dependent_id=99)


def test_valid_batch_returns_picker_and_picks():
    picks = [pick(1, "A", 5, 1), pick(2, "B", 4, 1)]

    picker, normalized = validate_pick_batch(picks, participant_with(11), 11)

    assert picker.is_dependent
    assert [p["game_id"] for p in normalized] == [1, 2]
