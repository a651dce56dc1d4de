"""Encrypted audit trail of confirmed ledger mutations."""

import json

from .crypto_utils import decrypt, encrypt
from .database import AuditLog, db


def record_event(action: str, details: dict, cipher) -> AuditLog:
    entry = AuditLog(action=action, encrypted_event=encrypt(json.dumps(details), cipher))
    db.session.add(entry)
    db.session.commit()
    return entry


def read_events(cipher) -> list[dict]:
    events = []
    for entry in AuditLog.query.order_by(AuditLog.timestamp).all():
        events.append(
            {
                "action": entry.action,
                "timestamp": entry.timestamp.isoformat(),
                "details": json.loads(decrypt(entry.encrypted_event, cipher)),
            }
        )
    return events
