from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    actor_name = db.Column(db.String(80), nullable=True)   # nullable for anonymous events
    actor_level = db.Column(db.String(10), nullable=True)
    action = db.Column(db.String(80), nullable=False)  # e.g. LOGIN, PARTICIPANT_JOIN
    entity = db.Column(db.String(80), nullable=True)   # e.g. reservation, participant
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
