from datetime import datetime, timezone

from flask import current_app

from confidence_pool import db
from confidence_pool.errors import FormValidationError

from .game import ROUND_TYPE, ROUNDS


class Pool(db.Model):
    __tablename__ = "pools"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    admin_id = db.Column(db.Integer, db.ForeignKey("participants.id"), nullable=False)

    # Pool settings
    round = db.Column(ROUND_TYPE, default=ROUNDS[0])
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    total_games = db.Column(db.Integer, nullable=False, default=13)
    entry_fee = db.Column(db.Float)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    admin = db.relationship("Participant", foreign_keys=[admin_id])
    members = db.relationship(
        "PoolMember", backref="pool", lazy="dynamic", cascade="all"
    )
    games = db.relationship(
        "Game", backref="pool", lazy="dynamic", cascade="all"
    )

    __table_args__ = (
        db.CheckConstraint("end_date > start_date", name="pool_end_after_start"),
        db.CheckConstraint("total_games >= 1", name="pool_min_one_game"),
        db.Index("idx_pool_admin", "admin_id"),
    )

    def __repr__(self):
        return f"<Pool {self.name}>"

    @staticmethod
    def create_pool(name, admin, start_date, end_date, total_games=None, entry_fee=None):
        """Create a pool; the creator becomes admin, first member, and it goes active"""
        pool = Pool(
            name=name.strip(),
            admin_id=admin.id,
            start_date=start_date,
            end_date=end_date,
            total_games=total_games or current_app.config.get("DEFAULT_TOTAL_GAMES", 13),
            entry_fee=entry_fee,
        )
        pool.validate_settings()
        db.session.add(pool)
        db.session.flush()

        pool.add_member(admin)
        pool.activate()
        return pool

    @staticmethod
    def get_active():
        """Get the pool currently in play"""
        pool_id = ActivePool.current_pool_id()
        if pool_id is None:
            return None
        return db.session.get(Pool, pool_id)

    @property
    def is_active(self):
        return self.id is not None and ActivePool.current_pool_id() == self.id

    def activate(self):
        """Make this the pool in play (replaces any previously active pool)"""
        ActivePool.set_current(self.id)

    def deactivate(self):
        if self.is_active:
            ActivePool.set_current(None)

    def validate_settings(self):
        errors = {}
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            errors["end_date"] = ["End date must be after start date"]
        if self.total_games is not None and self.total_games < 1:
            errors["total_games"] = ["Pool must have at least 1 game"]
        if errors:
            raise FormValidationError(errors)

    @property
    def total_available_points(self):
        """Best possible score: every confidence value 1..total_games used and won"""
        total = self.total_games or 13
        return total * (total + 1) // 2

    def is_admin(self, participant_id):
        return participant_id is not None and self.admin_id == participant_id

    def is_member(self, participant_id):
        return self.members.filter_by(participant_id=participant_id).first() is not None

    def get_member_count(self):
        return self.members.count()

    def get_participants(self):
        """Get participants who joined this pool, in join order"""
        from .participant import Participant
        from .pool_member import PoolMember

        return (
            Participant.query.join(PoolMember)
            .filter(PoolMember.pool_id == self.id)
            .order_by(PoolMember.joined_at, PoolMember.id)
            .all()
        )

    def add_member(self, participant):
        """Add a participant to the pool"""
        from .pool_member import PoolMember

        if self.is_member(participant.id):
            return False, "Already joined this pool"

        membership = PoolMember(participant_id=participant.id, pool_id=self.id)
        db.session.add(membership)
        return True, "Successfully joined pool"

    def remove_member(self, participant_id):
        """Remove a participant from the pool"""
        member = self.members.filter_by(participant_id=participant_id).first()
        if member:
            db.session.delete(member)
            return True, "Successfully left pool"
        return False, "Not a member of this pool"

    def to_dict(self):
        """Convert pool to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "admin_id": self.admin_id,
            "admin": self.admin.full_name if self.admin else None,
            "is_active": self.is_active,
            "round": self.round,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "total_games": self.total_games,
            "total_available_points": self.total_available_points,
            "entry_fee": self.entry_fee,
            "participant_count": self.get_member_count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ActivePool(db.Model):
    """Single-row record naming the pool currently in play"""

    __tablename__ = "active_pool"

    id = db.Column(db.Integer, primary_key=True, default=1)
    pool_id = db.Column(db.Integer, db.ForeignKey("pools.id"), nullable=True)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (db.CheckConstraint("id = 1", name="single_active_pool_row"),)

    def __repr__(self):
        return f"<ActivePool pool_id={self.pool_id}>"

    @staticmethod
    def current_pool_id():
        record = db.session.get(ActivePool, 1)
        return record.pool_id if record else None

    @staticmethod
    def set_current(pool_id):
        record = db.session.get(ActivePool, 1)
        if record is None:
            record = ActivePool(id=1)
            db.session.add(record)
        record.pool_id = pool_id
        return record
