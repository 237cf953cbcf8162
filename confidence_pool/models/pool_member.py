from datetime import datetime, timezone

from confidence_pool import db


class PoolMember(db.Model):
    __tablename__ = "pool_members"

    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id"), nullable=False
    )
    pool_id = db.Column(db.Integer, db.ForeignKey("pools.id"), nullable=False)

    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("participant_id", "pool_id", name="unique_participant_pool"),
        db.Index("idx_pool_members_pool", "pool_id"),
    )

    def __repr__(self):
        return f"<PoolMember participant_id={self.participant_id} pool_id={self.pool_id}>"

    def to_dict(self):
        """Convert membership to dictionary for API responses"""
        return {
            "pool_id": self.pool_id,
            "name": self.pool.name if self.pool else None,
            "is_active": self.pool.is_active if self.pool else False,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
