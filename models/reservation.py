import uuid
from datetime import datetime
from models.db import db


def _new_id() -> str:
    return str(uuid.uuid4())


class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    # name + level is the whole identity (no accounts)
    created_by_name = db.Column(db.String(80), nullable=False)
    created_by_level = db.Column(db.String(10), nullable=False)

    date = db.Column(db.Date, nullable=False, index=True)
    start_hour = db.Column(db.Integer, nullable=False)   # 8..19, shown as "HH:00"
    duration = db.Column(db.Integer, nullable=False)     # hours: 1 or 2

    session_type = db.Column(db.String(10), nullable=False)  # open, closed
    max_players = db.Column(db.Integer, nullable=True)       # NULL for closed sessions

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    participants = db.relationship(
        "Participant",
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="Participant.joined_at",
        lazy="selectin",
    )

    __table_args__ = (
        db.CheckConstraint("duration IN (1, 2)", name="ck_reservation_duration"),
        db.CheckConstraint("session_type IN ('open', 'closed')", name="ck_reservation_session_type"),
        db.CheckConstraint(
            "(session_type = 'closed' AND max_players IS NULL) OR "
            "(session_type = 'open' AND max_players IS NOT NULL AND max_players >= 2)",
            name="ck_reservation_max_players",
        ),
        db.CheckConstraint(
            "start_hour >= 8 AND start_hour + duration <= 20",
            name="ck_reservation_operating_hours",
        ),
        db.Index("ix_reservations_date_start", "date", "start_hour"),
    )

    @property
    def start_time(self) -> str:
        return f"{self.start_hour:02d}:00"

    @property
    def end_hour(self) -> int:
        return self.start_hour + self.duration

    def __repr__(self) -> str:
        return f"<Reservation {self.date} {self.start_time} {self.session_type} by {self.created_by_name}>"
