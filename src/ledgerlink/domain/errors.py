"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a blocked duplicate."""


def owner_not_found(owner: int | str) -> str:
    """Return message for missing owner."""
    return f"Owner {owner!r} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def invoice_not_found(invoice_id: int) -> str:
    """Return message for missing invoice."""
    return f"Invoice {invoice_id} not found"


def line_item_not_found(line_item_id: int) -> str:
    """Return message for missing line item."""
    return f"Line item {line_item_id} not found"


def match_result_not_found(match_id: int) -> str:
    """Return message for missing CC-bank match result."""
    return f"Match result {match_id} not found"


def cross_owner_link(kind: str, record_id: int, owner_id: int) -> str:
    """Return message when a link would cross owner scopes."""
    return f"{kind} {record_id} does not belong to owner {owner_id}"


def duplicate_file(name: str, existing_id: int) -> str:
    """Return message for a blocked duplicate file."""
    return f"File '{name}' duplicates existing file {existing_id}"


def duplicate_invoice(vendor: str, existing_file_id: int) -> str:
    """Return message for a blocked semantic invoice duplicate."""
    return f"Invoice from '{vendor}' duplicates the invoice of file {existing_file_id}"
