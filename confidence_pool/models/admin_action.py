from datetime import datetime, timezone

from confidence_pool import db


class AdminAction(db.Model):
    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    # Action details
    admin_id = db.Column(db.Integer, db.ForeignKey("participants.id"), nullable=False)
    target_participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id"), nullable=True
    )  # Participant being acted upon
    pool_id = db.Column(db.Integer, db.ForeignKey("pools.id"), nullable=False)

    # 'save_picks', 'record_result', 'update_pool', 'create_participant', ...
    action_type = db.Column(db.String(50), nullable=False)
    action_description = db.Column(db.String(500), nullable=False)

    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=True)
    action_metadata = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    admin = db.relationship("Participant", foreign_keys=[admin_id])
    target_participant = db.relationship(
        "Participant", foreign_keys=[target_participant_id]
    )

    __table_args__ = (
        db.Index("idx_admin_action_pool", "pool_id"),
        db.Index("idx_admin_action_admin", "admin_id"),
        db.Index("idx_admin_action_type", "action_type"),
        db.Index("idx_admin_action_created", "created_at"),
    )

    def __repr__(self):
        return f"<AdminAction {self.action_type} by admin_id={self.admin_id} in pool {self.pool_id}>"

    @staticmethod
    def log_action(
        admin_id,
        pool_id,
        action_type,
        description,
        target_participant_id=None,
        game_id=None,
        action_metadata=None,
    ):
        """Log an admin action"""
        action = AdminAction(
            admin_id=admin_id,
            target_participant_id=target_participant_id,
            pool_id=pool_id,
            action_type=action_type,
            action_description=description,
            game_id=game_id,
            action_metadata=action_metadata or {},
        )

        db.session.add(action)
        return action

    @staticmethod
    def log_picks_saved(admin, target, pool, picker, written_count, skipped_game_ids):
        """Convenience method for logging picks saved on a participant's behalf"""
        on_behalf = target.full_name
        if picker.is_dependent:
            dependent = target.get_dependent(picker.dependent_id)
            if dependent:
                on_behalf = f"{dependent.display_name} ({target.full_name})"

        return AdminAction.log_action(
            admin_id=admin.id,
            pool_id=pool.id,
            action_type="save_picks",
            description=f"Saved {written_count} picks for {on_behalf}",
            target_participant_id=target.id,
            action_metadata={
                "dependent_id": picker.dependent_id,
                "written_count": written_count,
                "skipped_game_ids": sorted(skipped_game_ids),
            },
        )

    @staticmethod
    def log_game_result(admin, game):
        """Convenience method for logging a recorded or reopened game result"""
        if game.is_complete:
            description = f"Recorded {game.winner} as winner of {game.away_team} @ {game.home_team}"
        else:
            description = f"Reopened {game.away_team} @ {game.home_team}"

        return AdminAction.log_action(
            admin_id=admin.id,
            pool_id=game.pool_id,
            action_type="record_result",
            description=description,
            game_id=game.id,
            action_metadata={"winner": game.winner, "is_complete": game.is_complete},
        )

    @staticmethod
    def get_pool_actions(pool_id, limit=100):
        return (
            AdminAction.query.filter_by(pool_id=pool_id)
            .order_by(AdminAction.created_at.desc(), AdminAction.id.desc())
            .limit(limit)
            .all()
        )

    def to_dict(self):
        return {
            "id": self.id,
            "admin": self.admin.full_name if self.admin else None,
            "target_participant_id": self.target_participant_id,
            "pool_id": self.pool_id,
            "action_type": self.action_type,
            "description": self.action_description,
            "game_id": self.game_id,
            "metadata": self.action_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
