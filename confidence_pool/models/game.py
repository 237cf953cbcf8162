from datetime import datetime, timezone

from confidence_pool import db
from confidence_pool.utils.timezone_utils import format_game_time, utc_now_naive

ROUNDS = ("Wild Card", "Divisional", "Conference", "Super Bowl")
ROUND_TYPE = db.Enum(*ROUNDS, name="playoff_round")


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)

    # Game identification
    pool_id = db.Column(db.Integer, db.ForeignKey("pools.id"), nullable=False)
    round = db.Column(ROUND_TYPE, nullable=False)
    game_title = db.Column(db.String(150))

    # Teams
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)

    # Game timing
    game_time = db.Column(db.DateTime, nullable=False)
    tv_network = db.Column(db.String(50))

    # Game status
    is_complete = db.Column(db.Boolean, default=False, nullable=False)
    winner = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="game", lazy="dynamic", cascade="all"
    )

    __table_args__ = (
        db.Index("idx_game_pool_round", "pool_id", "round"),
        db.Index("idx_game_time", "game_time"),
        db.Index("idx_game_pool_complete", "pool_id", "is_complete"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
    )

    def __repr__(self):
        return f"<Game {self.away_team} @ {self.home_team} ({self.round})>"

    @property
    def status(self):
        return "Final" if self.is_complete else "Scheduled"

    @property
    def teams(self):
        return (self.home_team, self.away_team)

    def has_team(self, team_name):
        return team_name in self.teams

    def has_started(self):
        """Check if game has started"""
        if not self.game_time:
            return False
        now_utc = datetime.now(timezone.utc)
        game_time = self.game_time

        # If game_time is timezone-naive, assume it's in UTC
        if game_time.tzinfo is None:
            game_time = game_time.replace(tzinfo=timezone.utc)

        return now_utc >= game_time

    def is_pick_correct(self, selected_team):
        """Tri-state correctness: None until the game is complete"""
        if not self.is_complete or not self.winner:
            return None
        return selected_team == self.winner

    @staticmethod
    def get_games_for_pool(pool_id):
        return Game.query.filter_by(pool_id=pool_id).order_by(Game.game_time).all()

    @staticmethod
    def get_upcoming_games(pool_id):
        """Games not yet decided or not yet kicked off, soonest first"""
        now_utc = utc_now_naive()
        return (
            Game.query.filter(
                Game.pool_id == pool_id,
                db.or_(Game.game_time > now_utc, Game.is_complete.is_(False)),
            )
            .order_by(Game.game_time)
            .all()
        )

    def to_dict(self):
        """Convert game to dictionary for API responses"""
        return {
            "id": self.id,
            "pool_id": self.pool_id,
            "round": self.round,
            "game_title": self.game_title,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "game_time": self.game_time.isoformat() if self.game_time else None,
            "game_time_display": format_game_time(self.game_time),
            "tv_network": self.tv_network,
            "is_complete": self.is_complete,
            "winner": self.winner,
            "status": self.status,
        }
