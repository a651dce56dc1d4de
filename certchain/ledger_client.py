"""Typed façade over the certificate registry.

Every mutating call is a single attempt: submit, then wait for confirmation
up to ``confirmation_timeout`` seconds. Nothing here retries. Retrying an
issuance without an idempotency key could mint the same certificate twice.
"""

from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass

import structlog

from .blockchain import ISSUE_METHOD, REVOKE_METHOD, PendingTransaction, Receipt
from .errors import LedgerError, LedgerTimeoutError

log = structlog.get_logger("certchain.ledger")


@dataclass(frozen=True)
class IssueReceipt:
    identifier: str
    issuer: str
    transaction_ref: str
    block_ref: int


@dataclass(frozen=True)
class LedgerCertificate:
    identifier: str
    recipient_name: str
    event_name: str
    issue_date: str
    issuer: str
    is_valid: bool
    exists: bool = True

    @classmethod
    def missing(cls, identifier: str) -> "LedgerCertificate":
        return cls(identifier, "", "", "", "", is_valid=False, exists=False)


@dataclass(frozen=True)
class RevokeReceipt:
    transaction_ref: str | None
    state_changed: bool


class LedgerClient:
    def __init__(self, registry, confirmation_timeout: float = 30.0):
        self.registry = registry
        self.confirmation_timeout = confirmation_timeout

    @property
    def address(self) -> str:
        return self.registry.address

    @property
    def block_number(self) -> int:
        return self.registry.block_number

    def issue(self, recipient_name: str, event_name: str, issue_date: str) -> IssueReceipt:
        receipt = self._transact(
            ISSUE_METHOD,
            {
                "recipientName": recipient_name,
                "eventName": event_name,
                "issueDate": issue_date,
            },
        )
        issued = receipt.find_log("CertificateIssued")
        if issued is None:
            raise LedgerError(
                f"Transaction {receipt.transaction_hash} confirmed without a CertificateIssued event"
            )
        return IssueReceipt(
            identifier=issued["certificateHash"],
            issuer=self.registry.signer,
            transaction_ref=receipt.transaction_hash,
            block_ref=receipt.block_number,
        )

    def verify(self, identifier: str) -> LedgerCertificate:
        try:
            record = self.registry.call_verify(identifier)
        except Exception as exc:
            raise LedgerError(f"Ledger read failed: {exc}") from exc

        if record is None:
            return LedgerCertificate.missing(identifier)
        return LedgerCertificate(
            identifier=identifier,
            recipient_name=record["recipientName"],
            event_name=record["eventName"],
            issue_date=record["issueDate"],
            issuer=record["issuer"],
            is_valid=record["isValid"],
        )

    def revoke(self, identifier: str) -> RevokeReceipt:
        current = self.verify(identifier)
        if current.exists and not current.is_valid:
            log.info("revoke_skipped", identifier=identifier, reason="already revoked")
            return RevokeReceipt(transaction_ref=None, state_changed=False)

        receipt = self._transact(REVOKE_METHOD, {"certificateHash": identifier})
        return RevokeReceipt(
            transaction_ref=receipt.transaction_hash,
            state_changed=receipt.find_log("CertificateRevoked") is not None,
        )

    def _transact(self, method: str, args: dict) -> Receipt:
        try:
            pending = self.registry.submit(method, args)
        except Exception as exc:
            raise LedgerError(f"Transaction submission failed: {exc}") from exc

        receipt = self._confirm(pending)
        if not receipt.status:
            raise LedgerError(f"Transaction reverted: {receipt.revert_reason}")
        return receipt

    def _confirm(self, pending: PendingTransaction) -> Receipt:
        try:
            return pending.wait(timeout=self.confirmation_timeout)
        except FutureTimeoutError as exc:
            log.warning(
                "confirmation_timeout",
                tx_hash=pending.transaction_hash,
                timeout=self.confirmation_timeout,
            )
            raise LedgerTimeoutError(
                f"Transaction {pending.transaction_hash} not confirmed within "
                f"{self.confirmation_timeout}s",
                transaction_ref=pending.transaction_hash,
            ) from exc
        except Exception as exc:
            raise LedgerError(f"Transaction confirmation failed: {exc}") from exc
