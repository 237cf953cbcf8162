import html
from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from confidence_pool import db


class Participant(UserMixin, db.Model):
    __tablename__ = "participants"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Profile information
    display_name = db.Column(db.String(100))
    location = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    dependents = db.relationship(
        "Dependent",
        backref="parent",
        lazy="select",
        order_by="Dependent.id",
        cascade="all, delete-orphan",
    )
    pool_memberships = db.relationship(
        "PoolMember", backref="participant", lazy="dynamic", cascade="all"
    )
    picks = db.relationship(
        "Pick", backref="participant", lazy="dynamic", cascade="all"
    )

    def __repr__(self):
        return f"<Participant {self.username}>"

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    def set_display_name(self, display_name):
        """Set display name with sanitization"""
        if display_name:
            self.display_name = html.escape(display_name.strip())
        else:
            self.display_name = display_name

    @property
    def full_name(self):
        """Return display name or username"""
        return self.display_name or self.username

    @staticmethod
    def username_from_email(email):
        """Derive a unique username from the local part of an email address"""
        import secrets

        local_part = email.split("@")[0]
        while True:
            username = f"{local_part}_{secrets.token_hex(2)}"
            if not Participant.query.filter_by(username=username).first():
                return username

    @staticmethod
    def find_by_login(identifier):
        """Look up a participant by email or username"""
        return Participant.query.filter(
            (Participant.email == identifier) | (Participant.username == identifier)
        ).first()

    def get_dependent(self, dependent_id):
        """Return this participant's dependent with the given id, or None"""
        if dependent_id is None:
            return None
        for dependent in self.dependents:
            if dependent.id == dependent_id:
                return dependent
        return None

    def has_dependent_named(self, display_name, exclude_id=None):
        """Case-insensitive check for an existing dependent name"""
        wanted = display_name.strip().lower()
        return any(
            d.display_name.lower() == wanted
            for d in self.dependents
            if d.id != exclude_id
        )

    def add_dependent(self, display_name):
        dependent = Dependent(display_name=display_name.strip())
        self.dependents.append(dependent)
        return dependent

    def get_membership(self, pool_id):
        return self.pool_memberships.filter_by(pool_id=pool_id).first()

    def to_dict(self, include_dependents=True):
        """Convert participant to dictionary for API responses"""
        data = {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "display_name": self.full_name,
            "location": self.location,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if include_dependents:
            data["dependents"] = [d.to_dict() for d in self.dependents]

        return data


class Dependent(db.Model):
    """A child or managed picker who acts under a participant's login"""

    __tablename__ = "dependents"

    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id"), nullable=False
    )
    display_name = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    picks = db.relationship(
        "Pick", backref="dependent", lazy="dynamic", cascade="all"
    )

    __table_args__ = (db.Index("idx_dependent_participant", "participant_id"),)

    def __repr__(self):
        return f"<Dependent {self.display_name} of participant_id={self.participant_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "participant_id": self.participant_id,
            "display_name": self.display_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
