"""Certificate issuance, verification and revocation.

The coordinator holds no certificate state. The ledger is authoritative for
whether a certificate exists and is valid; the oracle decides whether a
certificate may be issued and otherwise only adds context to a verification.

Issuance checks eligibility before any ledger write, so an ineligible
recipient never gets a certificate minted. Ledger failures are surfaced once
and never retried here.
"""

import re
from dataclasses import dataclass
from datetime import datetime

import structlog

from .errors import (
    CertificateServiceError,
    EligibilityError,
    LedgerError,
    OracleError,
    ValidationError,
)
from .oracle import EligibilityResult

log = structlog.get_logger("certchain.coordinator")

ISSUE_DATE_FORMAT = "%Y-%m-%d"
ISSUE_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class IssuanceResult:
    identifier: str
    transaction_ref: str
    block_ref: int
    validation: EligibilityResult

    def to_dict(self) -> dict:
        return {
            "certificateHash": self.identifier,
            "transactionHash": self.transaction_ref,
            "blockNumber": self.block_ref,
            "validation": self.validation.to_dict(),
        }


@dataclass(frozen=True)
class VerificationResult:
    identifier: str
    is_valid: bool
    status: str
    recipient_name: str | None = None
    event_name: str | None = None
    issue_date: str | None = None
    issuer: str | None = None
    oracle_validation: EligibilityResult | None = None

    @property
    def enrichment_available(self) -> bool:
        return self.oracle_validation is not None

    def to_dict(self) -> dict:
        return {
            "recipientName": self.recipient_name,
            "eventName": self.event_name,
            "issueDate": self.issue_date,
            "issuer": self.issuer,
            "isValid": self.is_valid,
            "oracleValidation": (
                self.oracle_validation.to_dict() if self.oracle_validation else None
            ),
        }


@dataclass(frozen=True)
class RevocationResult:
    identifier: str
    transaction_ref: str | None
    already_revoked: bool

    def to_dict(self) -> dict:
        return {
            "transactionHash": self.transaction_ref,
            "alreadyRevoked": self.already_revoked,
        }


def _require_text(fields: dict) -> dict:
    missing = [
        name for name, value in fields.items() if not isinstance(value, str) or not value.strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return {name: value.strip() for name, value in fields.items()}


def _is_iso_date(value: str) -> bool:
    if not ISSUE_DATE_PATTERN.fullmatch(value):
        return False
    try:
        datetime.strptime(value, ISSUE_DATE_FORMAT)
    except ValueError:
        return False
    return True


class CertificateCoordinator:
    def __init__(self, oracle, ledger):
        self.oracle = oracle
        self.ledger = ledger

    # ---------------- ISSUE ----------------
    def issue(self, recipient_name, event_name, issue_date) -> IssuanceResult:
        fields = _require_text(
            {"recipientName": recipient_name, "eventName": event_name, "issueDate": issue_date}
        )
        if not _is_iso_date(fields["issueDate"]):
            raise ValidationError("issueDate must be a date in YYYY-MM-DD format")

        try:
            validation = self.oracle.validate_eligibility(
                fields["eventName"], fields["recipientName"]
            )
        except Exception as exc:
            log.error("oracle_unavailable", event_name=fields["eventName"], error=str(exc))
            raise OracleError(f"Eligibility oracle unavailable: {exc}") from exc

        if not validation.valid:
            log.info(
                "issuance_rejected",
                recipient_name=fields["recipientName"],
                event_name=fields["eventName"],
                reason=validation.reason,
            )
            raise EligibilityError(validation.reason)

        receipt = self._call_ledger(
            self.ledger.issue,
            fields["recipientName"],
            fields["eventName"],
            fields["issueDate"],
        )
        log.info(
            "certificate_issued",
            identifier=receipt.identifier,
            tx_hash=receipt.transaction_ref,
            block_number=receipt.block_ref,
        )
        return IssuanceResult(
            identifier=receipt.identifier,
            transaction_ref=receipt.transaction_ref,
            block_ref=receipt.block_ref,
            validation=validation,
        )

    # ---------------- VERIFY ----------------
    def verify(self, identifier) -> VerificationResult:
        record = self._call_ledger(self.ledger.verify, identifier)

        if not record.is_valid:
            return VerificationResult(
                identifier=identifier,
                is_valid=False,
                status="revoked" if record.exists else "not_found",
            )

        try:
            enrichment = self.oracle.validate_eligibility(record.event_name, record.recipient_name)
        except Exception as exc:
            log.warning("oracle_enrichment_unavailable", identifier=identifier, error=str(exc))
            enrichment = None

        return VerificationResult(
            identifier=identifier,
            is_valid=True,
            status="issued",
            recipient_name=record.recipient_name,
            event_name=record.event_name,
            issue_date=record.issue_date,
            issuer=record.issuer,
            oracle_validation=enrichment,
        )

    # ---------------- REVOKE ----------------
    def revoke(self, identifier) -> RevocationResult:
        receipt = self._call_ledger(self.ledger.revoke, identifier)
        log.info(
            "certificate_revoked",
            identifier=identifier,
            tx_hash=receipt.transaction_ref,
            state_changed=receipt.state_changed,
        )
        return RevocationResult(
            identifier=identifier,
            transaction_ref=receipt.transaction_ref,
            already_revoked=not receipt.state_changed,
        )

    def _call_ledger(self, operation, *args):
        try:
            return operation(*args)
        except CertificateServiceError:
            raise
        except Exception as exc:
            raise LedgerError(str(exc)) from exc
