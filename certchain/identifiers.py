"""Certificate identifier scheme.

An identifier is ``0x`` followed by the SHA-256 digest of the certificate's
immutable content plus the ledger's issuance nonce. The nonce makes two
issuances with identical content produce different identifiers.

Only the ledger derives identifiers. Everything above it treats them as
opaque strings and compares them for equality.
"""

from .crypto_utils import canonical_json, sha256_hash

IDENTIFIER_PREFIX = "0x"


def derive_certificate_id(
    recipient_name: str,
    event_name: str,
    issue_date: str,
    issuer: str,
    nonce: int,
) -> str:
    payload = canonical_json([recipient_name, event_name, issue_date, issuer, nonce])
    return IDENTIFIER_PREFIX + sha256_hash(payload)
