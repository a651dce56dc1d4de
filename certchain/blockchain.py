"""In-process certificate registry chain.

The registry is an append-only chain of sealed blocks. Each block carries one
transaction and its receipt, is hash-linked to its predecessor and sealed with
an HMAC under the signer secret. Certificate state is never stored on its own:
it is whatever replaying the chain's transactions produces.

Transactions go through two stages. ``submit`` accepts a transaction into the
pending queue and hands back a ``PendingTransaction``; a single block-producer
worker later seals it into a block, which is the confirmation point.
"""

import copy
import json
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path

import structlog

from .crypto_utils import (
    canonical_json,
    generate_hmac,
    sha256_hash,
    signer_address,
    verify_hmac,
)
from .errors import LedgerIntegrityError
from .identifiers import derive_certificate_id

log = structlog.get_logger("certchain.blockchain")

ISSUE_METHOD = "issueCertificate"
REVOKE_METHOD = "revokeCertificate"
GENESIS_PREV_HASH = "0" * 64


class TransactionReverted(Exception):
    """A transaction's preconditions failed; it is sealed with a failed status."""


@dataclass(frozen=True)
class Receipt:
    transaction_hash: str
    block_number: int
    status: bool
    logs: list = field(default_factory=list)
    revert_reason: str | None = None

    def find_log(self, event_name: str) -> dict | None:
        for entry in self.logs:
            if entry.get("event") == event_name:
                return entry
        return None


@dataclass
class Block:
    number: int
    timestamp: float
    prev_hash: str
    transactions: list = field(default_factory=list)
    receipts: list = field(default_factory=list)
    seal: str = ""

    def body(self) -> dict:
        return {
            "number": self.number,
            "timestamp": self.timestamp,
            "prev_hash": self.prev_hash,
            "transactions": self.transactions,
            "receipts": self.receipts,
        }

    def hash(self) -> str:
        return sha256_hash(canonical_json(self.body()))


class PendingTransaction:
    """A submitted transaction that may not be confirmed yet."""

    def __init__(self, transaction_hash: str, future):
        self.transaction_hash = transaction_hash
        self._future = future

    @property
    def confirmed(self) -> bool:
        return self._future.done()

    def wait(self, timeout: float | None = None) -> Receipt:
        """Block until the transaction is sealed.

        Raises ``concurrent.futures.TimeoutError`` if it is not sealed within
        ``timeout`` seconds. The transaction stays queued either way.
        """
        return self._future.result(timeout=timeout)


class RegistryState:
    """Certificate records derived from the chain's transactions."""

    def __init__(self):
        self.certificates: dict[str, dict] = {}
        self.issuance_nonce = 0

    def copy(self) -> "RegistryState":
        clone = RegistryState()
        clone.certificates = copy.deepcopy(self.certificates)
        clone.issuance_nonce = self.issuance_nonce
        return clone

    def apply(self, tx: dict, block_number: int) -> Receipt:
        try:
            logs = self._execute(tx)
        except TransactionReverted as exc:
            return Receipt(tx["hash"], block_number, False, [], str(exc))
        return Receipt(tx["hash"], block_number, True, logs)

    def _execute(self, tx: dict) -> list:
        args = tx["args"]

        if tx["method"] == ISSUE_METHOD:
            nonce = self.issuance_nonce + 1
            identifier = derive_certificate_id(
                args["recipientName"],
                args["eventName"],
                args["issueDate"],
                tx["sender"],
                nonce,
            )
            if identifier in self.certificates:
                raise TransactionReverted("Certificate already exists")
            self.issuance_nonce = nonce
            self.certificates[identifier] = {
                "recipientName": args["recipientName"],
                "eventName": args["eventName"],
                "issueDate": args["issueDate"],
                "issuer": tx["sender"],
                "isValid": True,
            }
            return [{"event": "CertificateIssued", "certificateHash": identifier}]

        if tx["method"] == REVOKE_METHOD:
            identifier = args["certificateHash"]
            certificate = self.certificates.get(identifier)
            if certificate is None:
                raise TransactionReverted("Certificate does not exist")
            # Revoked is terminal; a repeat revoke changes nothing and emits nothing.
            if not certificate["isValid"]:
                return []
            certificate["isValid"] = False
            return [{"event": "CertificateRevoked", "certificateHash": identifier}]

        raise TransactionReverted(f"Unknown method {tx['method']}")


class CertificateRegistry:
    """Append-only, tamper-evident keyed store of certificates."""

    def __init__(self, signer_secret: bytes, path=None, block_time: float = 0.0):
        self._secret = signer_secret
        self.signer = signer_address(signer_secret)
        self.path = Path(path) if path else None
        self.block_time = block_time

        self._lock = threading.RLock()
        self._chain: list[Block] = []
        self._state = RegistryState()
        self._tx_count = 0
        self._producer = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="block-producer"
        )

        if self.path is not None and self.path.exists():
            self._load()
        else:
            self._create_genesis()

    # ---------------- CHAIN INFO ----------------
    @property
    def address(self) -> str:
        return "0x" + self._chain[0].hash()[:40]

    @property
    def block_number(self) -> int:
        with self._lock:
            return len(self._chain) - 1

    def blocks(self) -> list[Block]:
        with self._lock:
            return list(self._chain)

    # ---------------- TRANSACTIONS ----------------
    def submit(self, method: str, args: dict) -> PendingTransaction:
        if method not in (ISSUE_METHOD, REVOKE_METHOD):
            raise ValueError(f"Unknown registry method: {method}")

        with self._lock:
            self._tx_count += 1
            tx = {
                "method": method,
                "args": dict(args),
                "sender": self.signer,
                "nonce": self._tx_count,
                "submittedAt": time.time(),
            }
            tx["hash"] = "0x" + sha256_hash(canonical_json(tx))

        future = self._producer.submit(self._produce_block, tx)
        log.debug("transaction_submitted", tx_hash=tx["hash"], method=method)
        return PendingTransaction(tx["hash"], future)

    def call_verify(self, identifier: str) -> dict | None:
        """Read-only lookup of a certificate record by identifier."""
        with self._lock:
            record = self._state.certificates.get(identifier)
            return dict(record) if record is not None else None

    def _produce_block(self, tx: dict) -> Receipt:
        if self.block_time:
            time.sleep(self.block_time)

        with self._lock:
            snapshot = self._state.copy()
            number = len(self._chain)
            receipt = self._state.apply(tx, number)

            block = Block(
                number=number,
                timestamp=time.time(),
                prev_hash=self._chain[-1].hash(),
                transactions=[tx],
                receipts=[asdict(receipt)],
            )
            block.seal = generate_hmac(block.hash(), self._secret)
            self._chain.append(block)

            try:
                self._save()
            except OSError:
                self._chain.pop()
                self._state = snapshot
                raise

        log.info(
            "block_sealed",
            block_number=number,
            tx_hash=tx["hash"],
            method=tx["method"],
            status=receipt.status,
            revert_reason=receipt.revert_reason,
        )
        return receipt

    # ---------------- INTEGRITY ----------------
    def verify_integrity(self) -> bool:
        """Check links and seals, then replay; raises LedgerIntegrityError."""
        with self._lock:
            replayed = self._replay(self._chain)
            if replayed.certificates != self._state.certificates:
                raise LedgerIntegrityError("Registry state diverges from chain replay")
        return True

    def _replay(self, chain: list[Block]) -> RegistryState:
        if not chain:
            raise LedgerIntegrityError("Chain has no genesis block")

        state = RegistryState()
        for index, block in enumerate(chain):
            if block.number != index:
                raise LedgerIntegrityError(f"Block {index} is out of order")
            expected_prev = GENESIS_PREV_HASH if index == 0 else chain[index - 1].hash()
            if block.prev_hash != expected_prev:
                raise LedgerIntegrityError(f"Block {index} is not linked to its parent")
            if not verify_hmac(block.hash(), block.seal, self._secret):
                raise LedgerIntegrityError(f"Block {index} has an invalid seal")

            for tx, stored in zip(block.transactions, block.receipts):
                if asdict(state.apply(tx, block.number)) != stored:
                    raise LedgerIntegrityError(
                        f"Block {index} receipt does not match replayed transaction"
                    )
        return state

    # ---------------- PERSISTENCE ----------------
    def _create_genesis(self):
        genesis = Block(number=0, timestamp=time.time(), prev_hash=GENESIS_PREV_HASH)
        genesis.seal = generate_hmac(genesis.hash(), self._secret)
        self._chain = [genesis]
        self._save()

    def _save(self):
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "signer": self.signer,
            "blocks": [asdict(block) for block in self._chain],
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2))
        os.replace(tmp_path, self.path)

    def _load(self):
        try:
            raw = json.loads(self.path.read_text())
            chain = [Block(**block) for block in raw["blocks"]]
        except (ValueError, KeyError, TypeError) as exc:
            raise LedgerIntegrityError(f"Unreadable chain file {self.path}: {exc}") from exc

        self._state = self._replay(chain)
        self._chain = chain
        self._tx_count = sum(len(block.transactions) for block in chain)
        log.info("chain_loaded", path=str(self.path), block_number=len(chain) - 1)

    def close(self):
        self._producer.shutdown(wait=True)
