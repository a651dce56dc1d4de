"""Error taxonomy for certificate issuance, verification and revocation.

Every failure that leaves the coordinator is one of these. Each carries a
machine-readable ``kind`` and the HTTP status the API maps it to.
"""


class CertificateServiceError(Exception):
    """Base exception for coordinator failures."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "kind": self.kind}


class ValidationError(CertificateServiceError):
    """Raised when request fields are missing or malformed."""

    kind = "validation"
    status_code = 400


class EligibilityError(CertificateServiceError):
    """Raised when the oracle does not attest the recipient for the event."""

    kind = "eligibility"
    status_code = 400

    def __init__(self, reason: str):
        super().__init__(f"Validation failed: {reason}")
        self.reason = reason

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["reason"] = self.reason
        return payload


class OracleError(CertificateServiceError):
    """Raised when the eligibility oracle cannot answer at all."""

    kind = "oracle"
    status_code = 503


class LedgerError(CertificateServiceError):
    """Raised when a ledger submission, confirmation or read fails."""

    kind = "ledger"
    status_code = 500


class LedgerTimeoutError(LedgerError, TimeoutError):
    """Raised when a submitted transaction is not confirmed in time.

    The transaction is not cancelled and may still be confirmed later.
    """

    kind = "ledger_timeout"
    status_code = 504

    def __init__(self, message: str, transaction_ref: str | None = None):
        super().__init__(message)
        self.transaction_ref = transaction_ref

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["transactionHash"] = self.transaction_ref
        return payload


class LedgerIntegrityError(Exception):
    """Raised when a persisted chain fails hash-link or seal verification."""


class SeedError(Exception):
    """Raised when the oracle seed data is malformed or ambiguous."""
