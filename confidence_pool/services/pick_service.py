"""
Pick storage for the confidence pool.

Takes batches that already passed validation, checks them against the games
they reference and writes them in one transaction. Upserts are a single
conditional insert keyed on the pick uniqueness indexes, so two concurrent
submissions for the same picker and game cannot both insert.
"""

import logging

from sqlalchemy import insert as sql_insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from confidence_pool import db
from confidence_pool.errors import (
    DuplicatePick,
    Forbidden,
    InvalidPickData,
    NotFound,
    StorageFailure,
)
from confidence_pool.models import AdminAction, Game, Pick, Pool
from confidence_pool.models.pick import DEPENDENT_PICK_WHERE, SELF_PICK_WHERE
from confidence_pool.socketio_handlers import broadcast_standings_update
from confidence_pool.utils.cache_utils import invalidate_standings
from confidence_pool.utils.logging_config import ContextualLogger
from confidence_pool.utils.performance import PerformanceMonitor
from confidence_pool.utils.pick_validation import validate_pick_batch
from confidence_pool.utils.timezone_utils import utc_now_naive

logger = logging.getLogger(__name__)

DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def load_games_for_batch(picks, participant):
    """
    Check a normalised batch against stored games and pools.

    Every game must exist and belong to the pick's pool, the round must match
    the game's round and the selected team must be one of the two teams
    playing. The participant must be a member of every pool in the batch.

    Returns:
        {game_id: Game}
    """
    game_ids = [pick["game_id"] for pick in picks]
    games = {}
    if game_ids:
        games = {g.id: g for g in Game.query.filter(Game.id.in_(game_ids)).all()}

    for pool_id in {pick["pool_id"] for pick in picks}:
        pool = db.session.get(Pool, pool_id)
        if pool is None:
            raise NotFound(f"Pool {pool_id} not found")
        if not pool.is_member(participant.id):
            raise Forbidden(f"Not a member of pool {pool.name}")

    seen = set()
    for index, pick in enumerate(picks):
        game = games.get(pick["game_id"])
        if game is None:
            raise NotFound(f"Game {pick['game_id']} not found")

        problems = {}
        if pick["game_id"] in seen:
            problems["game_id"] = "game picked more than once in this batch"
        if game.pool_id != pick["pool_id"]:
            problems["pool_id"] = "game does not belong to this pool"
        if game.round != pick["round"]:
            problems["round"] = f"game is in the {game.round} round"
        if not game.has_team(pick["selected_team"]):
            problems["selected_team"] = (
                f"must be {game.home_team} or {game.away_team}"
            )
        if problems:
            raise InvalidPickData(
                "Invalid pick data",
                details={"index": index, "pick": pick, "invalid": problems},
            )
        seen.add(pick["game_id"])

    return games


def _pick_values(picker, pick, game):
    now = utc_now_naive()
    return {
        "participant_id": picker.participant_id,
        "dependent_id": picker.dependent_id,
        "game_id": pick["game_id"],
        "pool_id": pick["pool_id"],
        "round": pick["round"],
        "selected_team": pick["selected_team"],
        "confidence_points": pick["confidence_points"],
        "is_correct": game.is_pick_correct(pick["selected_team"]),
        "created_at": now,
        "updated_at": now,
    }


def _upsert_statement(insert, values, picker):
    """INSERT ... ON CONFLICT DO UPDATE against the matching partial index"""
    if picker.is_dependent:
        index_elements = ["participant_id", "dependent_id", "game_id", "pool_id"]
        index_where = DEPENDENT_PICK_WHERE
    else:
        index_elements = ["participant_id", "game_id", "pool_id"]
        index_where = SELF_PICK_WHERE

    stmt = insert(Pick.__table__).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=index_elements,
        index_where=index_where,
        set_={
            "selected_team": stmt.excluded.selected_team,
            "confidence_points": stmt.excluded.confidence_points,
            "round": stmt.excluded.round,
            "is_correct": stmt.excluded.is_correct,
            "updated_at": stmt.excluded.updated_at,
        },
    )


def _upsert_pick(picker, values):
    insert = DIALECT_INSERTS.get(db.engine.dialect.name)
    if insert is not None:
        db.session.execute(_upsert_statement(insert, values, picker))
        return

    # No native upsert on this backend: read then write inside the batch transaction
    existing = (
        Pick.query_for_picker(picker, values["pool_id"])
        .filter(Pick.game_id == values["game_id"])
        .first()
    )
    if existing is None:
        db.session.add(Pick(**values))
    else:
        existing.selected_team = values["selected_team"]
        existing.confidence_points = values["confidence_points"]
        existing.round = values["round"]
        existing.is_correct = values["is_correct"]
    db.session.flush()


def _insert_pick(values):
    try:
        db.session.execute(sql_insert(Pick.__table__).values(**values))
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(
            f"Duplicate pick for participant {values['participant_id']} "
            f"dependent {values['dependent_id']} game {values['game_id']}: {e.orig}"
        )
        raise DuplicatePick(
            details={"game_id": values["game_id"], "pool_id": values["pool_id"]}
        )


def write_picks(picker, picks, games, upsert):
    """
    Write normalised picks for one picker. Caller commits.

    Returns:
        number of picks written
    """
    with PerformanceMonitor(f"write {len(picks)} picks"):
        for pick in picks:
            values = _pick_values(picker, pick, games[pick["game_id"]])
            if upsert:
                _upsert_pick(picker, values)
            else:
                _insert_pick(values)
    return len(picks)


def _commit_batch(pool_ids):
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(f"Pick batch rejected by a uniqueness constraint: {e.orig}")
        raise DuplicatePick()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Storage failure while saving picks")
        raise StorageFailure("Error saving picks")

    for pool_id in pool_ids:
        invalidate_standings(pool_id)
        broadcast_standings_update(pool_id, "picks_saved")


def check_games_open(picks, games):
    """Picks lock once a game kicks off or is decided"""
    for index, pick in enumerate(picks):
        game = games[pick["game_id"]]
        if game.is_complete:
            reason = "Game is already complete"
        elif game.has_started():
            reason = "Game has already started"
        else:
            continue
        raise InvalidPickData(
            "Invalid pick data",
            details={"index": index, "pick": pick, "invalid": {"game_id": reason}},
        )


def fetch_batch_picks(picker, picks):
    """The stored picks matching a batch's (game, pool) keys"""
    keys = {(pick["game_id"], pick["pool_id"]) for pick in picks}
    if not keys:
        return []
    stored = (
        Pick.query_for_picker(picker)
        .filter(Pick.game_id.in_([game_id for game_id, _ in keys]))
        .all()
    )
    return [p for p in stored if (p.game_id, p.pool_id) in keys]


def save_picks(participant, picks, dependent_id=None, upsert=False):
    """
    Validate and store a pick batch submitted by a participant.

    Nothing is written unless the whole batch validates and every game is
    still open. The batch is committed as one transaction.

    Returns:
        (written_count, stored picks)
    """
    picker, normalized = validate_pick_batch(picks, participant, dependent_id)
    games = load_games_for_batch(normalized, participant)
    check_games_open(normalized, games)

    try:
        written = write_picks(picker, normalized, games, upsert)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Storage failure while saving picks")
        raise StorageFailure("Error saving picks")

    _commit_batch({pick["pool_id"] for pick in normalized})

    logger.info(
        f"Saved {written} picks for participant {picker.participant_id}"
        + (f" (dependent {picker.dependent_id})" if picker.is_dependent else "")
        + (" [upsert]" if upsert else "")
    )
    return written, fetch_batch_picks(picker, normalized)


def save_picks_for_participant(admin, target, pool, picks, dependent_id=None):
    """
    Pool admin pathway: store picks on behalf of a participant or their dependent.

    Picks for games that are already complete are dropped without error.
    Everything else is upserted.

    Returns:
        (written_count, stored picks, skipped game ids)
    """
    if not pool.is_admin(admin.id):
        raise Forbidden("Only the pool admin can save picks for other participants")

    picker, normalized = validate_pick_batch(picks, target, dependent_id)

    for index, pick in enumerate(normalized):
        if pick["pool_id"] != pool.id:
            raise InvalidPickData(
                "Invalid pick data",
                details={
                    "index": index,
                    "pick": pick,
                    "invalid": {"pool_id": f"must be {pool.id}"},
                },
            )

    games = load_games_for_batch(normalized, target)
    admin_log = ContextualLogger(
        __name__,
        {
            "admin": admin.id,
            "participant": target.id,
            "dependent": picker.dependent_id,
            "pool": pool.id,
        },
    )

    open_picks = [p for p in normalized if not games[p["game_id"]].is_complete]
    skipped = {p["game_id"] for p in normalized if games[p["game_id"]].is_complete}
    if skipped:
        admin_log.info(f"Skipping completed games {sorted(skipped)}")

    try:
        written = write_picks(picker, open_picks, games, upsert=True)
        AdminAction.log_picks_saved(admin, target, pool, picker, written, skipped)
    except SQLAlchemyError:
        db.session.rollback()
        admin_log.exception("Storage failure while saving picks for participant")
        raise StorageFailure("Error saving picks")

    _commit_batch({pool.id})

    admin_log.info(f"Admin saved {written} picks")
    return written, fetch_batch_picks(picker, open_picks), skipped


def picks_status(picker, pool):
    """How many of the pool's games the picker has picked"""
    games_count = pool.games.count()
    made = Pick.query_for_picker(picker, pool.id).count()
    return {
        "pool_id": pool.id,
        "picks_made": made,
        "total_games": games_count,
        "picks_remaining": max(games_count - made, 0),
        "is_complete": games_count > 0 and made >= games_count,
    }
