"""Deduplication key generation.

A key is built from normalized, ``|``-delimited fields led by a type tag and
then digested by a pluggable strategy. The same builder must be used at write
time and at query time.
"""

import base64
import hashlib
import secrets
import string
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Sequence

from ledgerlink.domain.entities import ParsedTransaction, ParsedCreditCardTransaction

FIELD_SEPARATOR = "|"


class HashStrategy(ABC):
    """Turns an ordered tuple of key fields into a deduplication key."""

    @abstractmethod
    def digest(self, fields: Sequence[str]) -> str:
        """Return the key for the given fields."""
        pass

    @staticmethod
    def join(fields: Sequence[str]) -> str:
        return FIELD_SEPARATOR.join(fields)


class Base64TaggedHash(HashStrategy):
    """Base64 of the UTF-8 bytes of the joined fields.

    Reversible and not collision resistant in the cryptographic sense, but
    distinct field tuples always yield distinct keys unless a field itself
    contains the separator.
    """

    def digest(self, fields: Sequence[str]) -> str:
        raw = self.join(fields).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")


class Sha256TaggedHash(HashStrategy):
    """Fixed-width SHA-256 hex digest of the joined fields."""

    def digest(self, fields: Sequence[str]) -> str:
        return hashlib.sha256(self.join(fields).encode("utf-8")).hexdigest()


DEFAULT_HASH_STRATEGY: HashStrategy = Base64TaggedHash()


def _iso(value: Optional[date]) -> str:
    return value.isoformat() if value is not None else ""


def bank_transaction_key(tx: ParsedTransaction) -> list[str]:
    """Ordered key fields for a bank statement row."""
    return [
        "bank",
        _iso(tx.date),
        tx.description.strip(),
        str(int(tx.amount_agorot)),
        tx.reference or "",
    ]


def credit_card_transaction_key(tx: ParsedCreditCardTransaction) -> list[str]:
    """Ordered key fields for a credit card statement row."""
    return [
        "cctx",
        _iso(tx.date),
        tx.merchant_name.strip(),
        str(int(tx.amount_agorot)),
        tx.card_last_four.strip(),
        _iso(tx.billing_date),
    ]


def file_key(name: str, size_bytes: int) -> list[str]:
    """Ordered key fields for an uploaded file."""
    return ["file", name, str(int(size_bytes))]


def generate_transaction_hash(
    tx: ParsedTransaction | ParsedCreditCardTransaction,
    strategy: Optional[HashStrategy] = None,
) -> str:
    """Generate the deduplication hash for a parsed bank or card row."""
    strategy = strategy or DEFAULT_HASH_STRATEGY
    if isinstance(tx, ParsedCreditCardTransaction):
        return strategy.digest(credit_card_transaction_key(tx))
    return strategy.digest(bank_transaction_key(tx))


def generate_file_hash(name: str, size_bytes: int, strategy: Optional[HashStrategy] = None) -> str:
    """Generate the hash for a file from its name and size."""
    strategy = strategy or DEFAULT_HASH_STRATEGY
    return strategy.digest(file_key(name, size_bytes))


def generate_unique_hash(base_hash: str) -> str:
    """Derive a distinct hash for a row the user chose to keep despite a duplicate."""
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(8))
    return f"{base_hash}_dup_{suffix}"
