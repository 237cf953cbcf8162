"""
Game result events.

Recording or reopening a game result publishes a GameResultRecorded event in
two phases. Handlers subscribed for the transaction run before the commit and
keep pick correctness in step with the result. Handlers subscribed with
after_commit=True run once the result is committed and refresh the standings
cache and live standings listeners.
"""

import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from confidence_pool import db
from confidence_pool.errors import FormValidationError, StorageFailure
from confidence_pool.models import AdminAction, Game, Pick
from confidence_pool.socketio_handlers import broadcast_standings_update
from confidence_pool.utils.cache_utils import invalidate_standings
from confidence_pool.utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)

GameResultRecorded = namedtuple(
    "GameResultRecorded", ["game_id", "pool_id", "winner", "is_complete"]
)

_handlers = []
_committed_handlers = []


def subscribe(handler, after_commit=False):
    """Register a handler for GameResultRecorded; registering twice is a no-op"""
    handlers = _committed_handlers if after_commit else _handlers
    if handler not in handlers:
        handlers.append(handler)
    return handler


def unsubscribe(handler):
    for handlers in (_handlers, _committed_handlers):
        if handler in handlers:
            handlers.remove(handler)


def publish(event):
    """Run the in-transaction handlers; an exception aborts the result"""
    for handler in list(_handlers):
        handler(event)


def publish_committed(event):
    for handler in list(_committed_handlers):
        handler(event)


def recompute_pick_correctness(event):
    """
    Bring is_correct on every pick for the game in line with its result.

    Complete games mark picks of the winner correct and all others incorrect.
    Reopened games reset every pick to unknown.
    """
    picks = Pick.query.filter(Pick.game_id == event.game_id)

    if event.is_complete and event.winner:
        correct = picks.filter(Pick.selected_team == event.winner).update(
            {Pick.is_correct: True}, synchronize_session="fetch"
        )
        incorrect = picks.filter(Pick.selected_team != event.winner).update(
            {Pick.is_correct: False}, synchronize_session="fetch"
        )
        logger.info(
            f"Game {event.game_id} won by {event.winner}: "
            f"{correct} correct picks, {incorrect} incorrect"
        )
    else:
        reset = picks.update({Pick.is_correct: None}, synchronize_session="fetch")
        logger.info(f"Game {event.game_id} reopened: reset {reset} picks")


def invalidate_pool_standings(event):
    invalidate_standings(event.pool_id)


def notify_standings_listeners(event):
    broadcast_standings_update(
        event.pool_id,
        "game_result",
        game_id=event.game_id,
        winner=event.winner,
        is_complete=event.is_complete,
    )


def register_default_handlers():
    subscribe(recompute_pick_correctness)
    subscribe(invalidate_pool_standings, after_commit=True)
    subscribe(notify_standings_listeners, after_commit=True)


def record_game_result(game, winner, is_complete, admin=None):
    """
    Record (or clear) a game's result and publish it.

    Args:
        game: the Game being updated
        winner: winning team name; must be one of the game's teams when
            is_complete is true, ignored otherwise
        is_complete: False reopens the game and clears the winner
        admin: participant recording the result, for the audit log

    Returns:
        the published GameResultRecorded event
    """
    if is_complete:
        if not winner or not game.has_team(winner):
            raise FormValidationError(
                {"winner": [f"Winner must be {game.home_team} or {game.away_team}"]}
            )
        game.winner = winner
        game.is_complete = True
    else:
        game.winner = None
        game.is_complete = False

    event = GameResultRecorded(game.id, game.pool_id, game.winner, game.is_complete)

    try:
        db.session.flush()
        # Picks are recomputed inside the result transaction
        publish(event)
        if admin is not None:
            AdminAction.log_game_result(admin, game)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Storage failure recording result for game {game.id}")
        raise StorageFailure("Error recording game result")

    logger.info(
        f"Game {game.id} result recorded: winner={game.winner} complete={game.is_complete}"
    )
    publish_committed(event)
    return event


def rescore_pool(pool_id=None):
    """Publish a result event for every complete game, optionally for one pool"""
    query = Game.query.filter(Game.is_complete.is_(True))
    if pool_id is not None:
        query = query.filter(Game.pool_id == pool_id)

    events = []
    with PerformanceMonitor("rescore completed games"):
        try:
            for game in query.all():
                event = GameResultRecorded(game.id, game.pool_id, game.winner, True)
                publish(event)
                events.append(event)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Storage failure rescoring completed games")
            raise StorageFailure("Error rescoring picks")

    logger.info(f"Rescored {len(events)} completed games")
    for event in events:
        publish_committed(event)
    return len(events)
