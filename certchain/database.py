import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def uid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


# ---------------- ORACLE RECORDS ----------------
class Event(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False)
    organizer = db.Column(db.String(200), nullable=False)

    participants = db.relationship("Participant", backref="event", lazy=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "organizer": self.organizer}


class Participant(db.Model):
    __table_args__ = (db.UniqueConstraint("event_id", "name", name="uq_participant_event_name"),)

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("event.id"), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    rank = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {"eventId": self.event_id, "name": self.name, "rank": self.rank}


# ---------------- ISSUER ----------------
class Issuer(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    encrypted_name = db.Column(db.LargeBinary, nullable=False)
    address = db.Column(db.String(42), unique=True, nullable=False)


# ---------------- AUDIT ----------------
class AuditLog(db.Model):
    id = db.Column(db.String, primary_key=True, default=uid)
    action = db.Column(db.String(40), nullable=False)
    encrypted_event = db.Column(db.LargeBinary, nullable=False)
    timestamp = db.Column(db.DateTime, default=utcnow)
