from datetime import datetime, timezone

from confidence_pool import db
from confidence_pool.utils.picker import Picker

from .game import ROUND_TYPE

SELF_PICK_WHERE = db.text("dependent_id IS NULL")
DEPENDENT_PICK_WHERE = db.text("dependent_id IS NOT NULL")


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id"), nullable=False
    )
    dependent_id = db.Column(
        db.Integer, db.ForeignKey("dependents.id"), nullable=True
    )  # Null when the participant picks for themself
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)
    pool_id = db.Column(db.Integer, db.ForeignKey("pools.id"), nullable=False)
    round = db.Column(ROUND_TYPE, nullable=False)

    # Pick details
    selected_team = db.Column(db.String(100), nullable=False)
    confidence_points = db.Column(db.Integer, nullable=False)

    # Result (set when the game completes, cleared if it is reopened)
    is_correct = db.Column(db.Boolean, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    pool = db.relationship("Pool", foreign_keys=[pool_id])

    # One pick per picker per game per pool. Split in two partial indexes
    # because NULL dependent ids never collide in a plain unique index.
    __table_args__ = (
        db.Index(
            "uq_pick_self_game_pool",
            "participant_id",
            "game_id",
            "pool_id",
            unique=True,
            sqlite_where=SELF_PICK_WHERE,
            postgresql_where=SELF_PICK_WHERE,
        ),
        db.Index(
            "uq_pick_dependent_game_pool",
            "participant_id",
            "dependent_id",
            "game_id",
            "pool_id",
            unique=True,
            sqlite_where=DEPENDENT_PICK_WHERE,
            postgresql_where=DEPENDENT_PICK_WHERE,
        ),
        db.CheckConstraint("confidence_points >= 1", name="positive_confidence"),
        db.Index("idx_pick_pool", "pool_id"),
        db.Index("idx_pick_game", "game_id"),
    )

    def __repr__(self):
        return (
            f"<Pick participant_id={self.participant_id} dependent_id={self.dependent_id} "
            f"game_id={self.game_id} team={self.selected_team} points={self.confidence_points}>"
        )

    @property
    def picker(self):
        return Picker.of(self.participant_id, self.dependent_id)

    @staticmethod
    def query_for_picker(picker, pool_id=None):
        """Picks belonging to exactly this picker (self picks exclude dependents)"""
        query = Pick.query.filter(Pick.participant_id == picker.participant_id)
        if picker.is_dependent:
            query = query.filter(Pick.dependent_id == picker.dependent_id)
        else:
            query = query.filter(Pick.dependent_id.is_(None))
        if pool_id is not None:
            query = query.filter(Pick.pool_id == pool_id)
        return query

    def to_dict(self, include_game=False):
        """Convert pick to dictionary for API responses"""
        data = {
            "id": self.id,
            "participant_id": self.participant_id,
            "dependent_id": self.dependent_id,
            "game_id": self.game_id,
            "pool_id": self.pool_id,
            "round": self.round,
            "selected_team": self.selected_team,
            "confidence_points": self.confidence_points,
            "is_correct": self.is_correct,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if include_game and self.game:
            data.update(
                {
                    "game_title": self.game.game_title,
                    "home_team": self.game.home_team,
                    "away_team": self.game.away_team,
                    "game_time": (
                        self.game.game_time.isoformat() if self.game.game_time else None
                    ),
                    "is_complete": self.game.is_complete,
                    "winner": self.game.winner,
                }
            )

        return data
