"""Event certificate registry: oracle-gated issuance over an append-only ledger."""

__version__ = "0.1.0"
