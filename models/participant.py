from datetime import datetime
from models.db import db
from models.reservation import _new_id


class Participant(db.Model):
    __tablename__ = "reservation_participants"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    reservation_id = db.Column(
        db.String(36),
        db.ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    player_name = db.Column(db.String(80), nullable=False)
    player_level = db.Column(db.String(10), nullable=False)

    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    reservation = db.relationship("Reservation", back_populates="participants")

    __table_args__ = (
        # same (name, level) can only join a reservation once
        db.UniqueConstraint("reservation_id", "player_name", "player_level", name="uq_participant_once"),
    )
