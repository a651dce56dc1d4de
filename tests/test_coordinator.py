"""Tests for the issue/verify/revoke workflows."""

import pytest

from certchain.coordinator import CertificateCoordinator
from certchain.database import Participant, db
from certchain.errors import (
    EligibilityError,
    LedgerError,
    OracleError,
    ValidationError,
)


def test_issue_verify_revoke_scenario(coordinator):
    """John Doe's certificate is valid until revoked, then invalid for good."""
    issued = coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")

    verified = coordinator.verify(issued.identifier)
    assert verified.is_valid is True
    assert verified.recipient_name == "John Doe"
    assert verified.event_name == "Programming Contest 2024"
    assert verified.issue_date == "2024-06-01"
    assert verified.issuer.startswith("0x")

    coordinator.revoke(issued.identifier)

    after = coordinator.verify(issued.identifier)
    assert after.is_valid is False
    assert after.status == "revoked"


def test_issue_result_carries_receipt_and_validation(coordinator):
    issued = coordinator.issue("Jane Smith", "Programming Contest 2024", "2024-06-02")

    assert issued.identifier.startswith("0x")
    assert issued.transaction_ref.startswith("0x")
    assert issued.block_ref == 1
    assert issued.validation.valid is True
    assert issued.validation.participant["rank"] == 2


def test_ineligible_recipient_never_reaches_ledger(coordinator, services):
    height = services.ledger.block_number

    with pytest.raises(EligibilityError) as excinfo:
        coordinator.issue("Jane Roe", "Nonexistent Event", "2024-06-01")

    assert excinfo.value.reason == "Event not found"
    assert services.ledger.block_number == height


def test_participant_missing_from_event(coordinator, services):
    with pytest.raises(EligibilityError) as excinfo:
        coordinator.issue("Alice Brown", "Hackathon 2024", "2024-06-01")

    assert excinfo.value.reason == "Participant not found in event records"
    assert services.ledger.block_number == 0


@pytest.mark.parametrize(
    "fields",
    [
        (None, "Programming Contest 2024", "2024-06-01"),
        ("John Doe", "", "2024-06-01"),
        ("John Doe", "Programming Contest 2024", "   "),
        ("John Doe", "Programming Contest 2024", 20240601),
    ],
)
def test_missing_fields_are_rejected(coordinator, fields):
    with pytest.raises(ValidationError, match="Missing required fields"):
        coordinator.issue(*fields)


@pytest.mark.parametrize("issue_date", ["June 1st", "2024-13-01", "2024-02-30", "01/06/2024", "2024-6-1", "2024-06-1"])
def test_malformed_issue_date_is_rejected(coordinator, services, issue_date):
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        coordinator.issue("John Doe", "Programming Contest 2024", issue_date)

    assert services.ledger.block_number == 0


def test_surrounding_whitespace_is_trimmed(coordinator):
    issued = coordinator.issue("  John Doe ", "Programming Contest 2024", "2024-06-01 ")

    assert coordinator.verify(issued.identifier).recipient_name == "John Doe"


def test_verify_is_idempotent(coordinator):
    issued = coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")

    assert coordinator.verify(issued.identifier) == coordinator.verify(issued.identifier)


def test_revocation_is_monotonic(coordinator):
    issued = coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")

    first = coordinator.revoke(issued.identifier)
    second = coordinator.revoke(issued.identifier)

    assert first.already_revoked is False
    assert first.transaction_ref is not None
    assert second.already_revoked is True
    assert second.transaction_ref is None
    for _ in range(3):
        assert coordinator.verify(issued.identifier).is_valid is False


def test_unknown_identifier_is_a_negative_result(coordinator):
    result = coordinator.verify("0x" + "0" * 64)

    assert result.is_valid is False
    assert result.status == "not_found"
    assert result.recipient_name is None


def test_revoke_unknown_identifier_is_a_ledger_error(coordinator):
    with pytest.raises(LedgerError):
        coordinator.revoke("0x" + "0" * 64)


@pytest.mark.parametrize("identifier", ["", " "])
def test_blank_identifier_is_not_found(coordinator, identifier):
    result = coordinator.verify(identifier)

    assert result.is_valid is False
    assert result.status == "not_found"


def test_identifier_is_compared_verbatim(coordinator):
    issued = coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")

    result = coordinator.verify(f" {issued.identifier} ")

    assert result.is_valid is False
    assert result.status == "not_found"
    assert result.identifier == f" {issued.identifier} "
    assert coordinator.verify(issued.identifier).is_valid is True


def test_verify_enriches_with_current_rank(coordinator):
    issued = coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")

    result = coordinator.verify(issued.identifier)

    assert result.enrichment_available
    assert result.oracle_validation.valid is True
    assert result.oracle_validation.participant["rank"] == 1


def test_removed_offchain_record_does_not_override_ledger(coordinator):
    issued = coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")
    Participant.query.filter_by(event_id=1, name="John Doe").delete()
    db.session.commit()

    result = coordinator.verify(issued.identifier)

    assert result.is_valid is True
    assert result.oracle_validation.valid is False
    assert result.oracle_validation.reason == "Participant not found in event records"


class BrokenOracle:
    def validate_eligibility(self, event_name, participant_name):
        raise ConnectionError("oracle database offline")


def test_oracle_outage_leaves_verification_intact(coordinator, services):
    issued = coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")
    degraded = CertificateCoordinator(BrokenOracle(), services.ledger)

    result = degraded.verify(issued.identifier)

    assert result.is_valid is True
    assert result.recipient_name == "John Doe"
    assert result.oracle_validation is None
    assert result.enrichment_available is False
    assert result.to_dict()["oracleValidation"] is None


def test_oracle_outage_blocks_issuance(services):
    degraded = CertificateCoordinator(BrokenOracle(), services.ledger)

    with pytest.raises(OracleError):
        degraded.issue("John Doe", "Programming Contest 2024", "2024-06-01")

    assert services.ledger.block_number == 0


class FlakyLedger:
    def __init__(self):
        self.issue_calls = 0

    def issue(self, recipient_name, event_name, issue_date):
        self.issue_calls += 1
        raise LedgerError("Transaction reverted: out of gas")

    def verify(self, identifier):
        raise KeyError(identifier)


def test_ledger_failure_is_surfaced_once(services):
    ledger = FlakyLedger()
    coordinator = CertificateCoordinator(services.oracle, ledger)

    with pytest.raises(LedgerError, match="out of gas"):
        coordinator.issue("John Doe", "Programming Contest 2024", "2024-06-01")

    assert ledger.issue_calls == 1


def test_unexpected_ledger_fault_is_translated(services):
    coordinator = CertificateCoordinator(services.oracle, FlakyLedger())

    with pytest.raises(LedgerError):
        coordinator.verify("0x" + "0" * 64)
