"""Eligibility oracle: read-only event and participant lookups.

The coordinator only sees ``EligibilityOracle``. ``DatabaseOracle`` answers
from the SQL tables, which are filled once from a static seed file.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

import structlog

from .database import Event, Participant, db
from .errors import SeedError

log = structlog.get_logger("certchain.oracle")

EVENT_NOT_FOUND = "Event not found"
PARTICIPANT_NOT_FOUND = "Participant not found in event records"


@dataclass(frozen=True)
class EligibilityResult:
    valid: bool
    reason: str | None = None
    event: dict | None = None
    participant: dict | None = None

    def to_dict(self) -> dict:
        payload = {"valid": self.valid}
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.event is not None:
            payload["event"] = self.event
        if self.participant is not None:
            payload["participant"] = self.participant
        return payload


class EligibilityOracle(ABC):
    """Interface for eligibility lookups. Implementations must not mutate."""

    @abstractmethod
    def find_event(self, event_name: str):
        raise NotImplementedError

    @abstractmethod
    def find_participant(self, event_id: int, participant_name: str):
        raise NotImplementedError

    @abstractmethod
    def list_events(self) -> list:
        raise NotImplementedError

    @abstractmethod
    def list_participants(self, event_id: int) -> list:
        raise NotImplementedError

    def validate_eligibility(self, event_name: str, participant_name: str) -> EligibilityResult:
        event = self.find_event(event_name)
        if event is None:
            return EligibilityResult(valid=False, reason=EVENT_NOT_FOUND)

        participant = self.find_participant(event.id, participant_name)
        if participant is None:
            return EligibilityResult(valid=False, reason=PARTICIPANT_NOT_FOUND)

        return EligibilityResult(
            valid=True,
            event=event.to_dict(),
            participant=participant.to_dict(),
        )


class DatabaseOracle(EligibilityOracle):
    def find_event(self, event_name):
        return Event.query.filter_by(name=event_name).one_or_none()

    def find_participant(self, event_id, participant_name):
        return Participant.query.filter_by(event_id=event_id, name=participant_name).one_or_none()

    def list_events(self):
        return Event.query.order_by(Event.id).all()

    def list_participants(self, event_id):
        return Participant.query.filter_by(event_id=event_id).order_by(Participant.rank).all()


# ---------------- SEED DATA ----------------
def load_seed(path=None) -> dict:
    """Read seed JSON from ``path``, or the packaged demo dataset."""
    if path:
        text = Path(path).read_text(encoding="utf-8")
    else:
        text = resources.files("certchain").joinpath("seed/events.json").read_text(encoding="utf-8")
    return validate_seed(json.loads(text))


def validate_seed(seed: dict) -> dict:
    events = seed.get("events")
    participants = seed.get("participants")
    if not isinstance(events, list) or not isinstance(participants, list):
        raise SeedError("Seed must contain 'events' and 'participants' lists")

    event_ids, event_names = set(), set()
    for event in events:
        try:
            event_id, name, _ = event["id"], event["name"], event["organizer"]
        except (KeyError, TypeError) as exc:
            raise SeedError(f"Malformed event record: {event!r}") from exc
        if not isinstance(event_id, int):
            raise SeedError(f"Event id must be an integer: {event_id!r}")
        if event_id in event_ids:
            raise SeedError(f"Duplicate event id {event_id}")
        if name in event_names:
            raise SeedError(f"Duplicate event name {name!r}")
        event_ids.add(event_id)
        event_names.add(name)

    seen = set()
    for participant in participants:
        try:
            key = (participant["eventId"], participant["name"])
            rank = participant["rank"]
        except (KeyError, TypeError) as exc:
            raise SeedError(f"Malformed participant record: {participant!r}") from exc
        if key[0] not in event_ids:
            raise SeedError(f"Participant {key[1]!r} references unknown event {key[0]}")
        if not isinstance(rank, int) or isinstance(rank, bool) or rank < 1:
            raise SeedError(f"Participant {key[1]!r} has invalid rank {rank!r}")
        if key in seen:
            raise SeedError(f"Ambiguous participant {key[1]!r} listed twice for event {key[0]}")
        seen.add(key)

    return seed


def seed_database(seed: dict, replace: bool = False):
    """Load validated seed data into the oracle tables."""
    validate_seed(seed)
    if replace:
        Participant.query.delete()
        Event.query.delete()

    for event in seed["events"]:
        db.session.add(Event(id=event["id"], name=event["name"], organizer=event["organizer"]))
    for participant in seed["participants"]:
        db.session.add(
            Participant(
                event_id=participant["eventId"],
                name=participant["name"],
                rank=participant["rank"],
            )
        )
    db.session.commit()
    log.info("oracle_seeded", events=len(seed["events"]), participants=len(seed["participants"]))
