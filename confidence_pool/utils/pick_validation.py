"""
Pick batch validation.

Runs before anything is written: structural checks on every pick, then the
dependent lookup, then per-round confidence uniqueness. The first failure
raises and nothing in the batch is stored.
"""

import logging

from confidence_pool.errors import (
    DependentNotFound,
    DuplicateConfidenceValue,
    InvalidPickData,
)
from confidence_pool.models.game import ROUNDS
from confidence_pool.utils.picker import Picker

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("game_id", "selected_team", "confidence_points", "pool_id", "round")

# Clients written against the old API send camelCase keys
FIELD_ALIASES = {
    "gameId": "game_id",
    "selectedTeam": "selected_team",
    "confidencePoints": "confidence_points",
    "poolId": "pool_id",
}


def normalize_pick(raw):
    """Return a dict of the five pick fields, accepting camelCase aliases"""
    if not isinstance(raw, dict):
        return {field: None for field in REQUIRED_FIELDS}

    pick = {}
    for key, value in raw.items():
        pick[FIELD_ALIASES.get(key, key)] = value
    return {field: pick.get(field) for field in REQUIRED_FIELDS}


def find_missing_fields(pick):
    """Map each required field to whether it is missing from the pick"""
    return {
        "game_id": not pick["game_id"],
        "selected_team": not pick["selected_team"],
        "confidence_points": pick["confidence_points"] is None,
        "pool_id": not pick["pool_id"],
        "round": not pick["round"],
    }


def _as_int(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_pick(index, pick):
    """Convert id and points fields to ints, rejecting values that are not"""
    invalid = {}

    game_id = _as_int(pick["game_id"])
    if game_id is None:
        invalid["game_id"] = "must be an integer"

    pool_id = _as_int(pick["pool_id"])
    if pool_id is None:
        invalid["pool_id"] = "must be an integer"

    points = _as_int(pick["confidence_points"])
    if points is None or points < 1:
        invalid["confidence_points"] = "must be a positive integer"

    if pick["round"] not in ROUNDS:
        invalid["round"] = f"must be one of: {', '.join(ROUNDS)}"

    if not isinstance(pick["selected_team"], str):
        invalid["selected_team"] = "must be a team name"

    if invalid:
        raise InvalidPickData(
            "Invalid pick data",
            details={"index": index, "pick": pick, "invalid": invalid},
        )

    return {
        "game_id": game_id,
        "pool_id": pool_id,
        "confidence_points": points,
        "round": pick["round"],
        "selected_team": pick["selected_team"].strip(),
    }


def check_required_fields(picks):
    """
    Normalise every pick and make sure none is missing a required field.

    Returns the normalised picks in submission order.
    """
    if not isinstance(picks, list):
        raise InvalidPickData(
            "Invalid request format", details={"picks": "must be a list"}
        )

    normalized = []
    for index, raw in enumerate(picks):
        pick = normalize_pick(raw)
        missing = find_missing_fields(pick)
        if any(missing.values()):
            logger.warning(f"Invalid pick data at index {index}: {raw}")
            raise InvalidPickData(
                "Invalid pick data",
                details={"index": index, "pick": raw, "missing": missing},
            )
        normalized.append(_coerce_pick(index, pick))

    return normalized


def resolve_picker(participant, dependent_id=None):
    """The picker for a submission; the dependent must belong to the participant"""
    if dependent_id is None or dependent_id == "":
        return Picker.for_self(participant.id)

    dependent = participant.get_dependent(_as_int(dependent_id))
    if dependent is None:
        raise DependentNotFound(details={"dependent_id": dependent_id})
    return Picker.for_dependent(participant.id, dependent.id)


def check_unique_confidence(picks):
    """Confidence points may repeat across rounds but not within one"""
    points_by_round = {}
    for pick in picks:
        seen = points_by_round.setdefault(pick["round"], set())
        if pick["confidence_points"] in seen:
            raise DuplicateConfidenceValue(pick["confidence_points"], pick["round"])
        seen.add(pick["confidence_points"])


def validate_pick_batch(picks, participant, dependent_id=None):
    """
    Validate a submitted batch of picks for a participant or one of their dependents.

    Args:
        picks: list of pick dicts with game_id, selected_team, confidence_points,
            pool_id and round
        participant: the authenticated Participant
        dependent_id: optional id of a dependent of that participant

    Returns:
        (Picker, list of normalised pick dicts)

    Raises:
        InvalidPickData, DependentNotFound, DuplicateConfidenceValue
    """
    normalized = check_required_fields(picks)
    picker = resolve_picker(participant, dependent_id)
    check_unique_confidence(normalized)
    return picker, normalized
