"""Batch Summary — human-readable summaries of batch creation and validation runs.

Invariants:
    - One token per input item, in input order
    - Failures render as readable placeholders, never as stack traces
"""

from user_directory.core.domain_types import AddressCheck

CONFLICT_REASON = "email or cpf already in use"


def created_token(name: str) -> str:
    return f"Created: {name}"


def failed_token(email: str, reason: str) -> str:
    return f"Failed: {email} ({reason})"


def format_creation_summary(tokens: list[str]) -> str:
    return f"Processed {len(tokens)} users: {', '.join(tokens)}"


def address_check_token(postal_code: str, found: bool) -> str:
    check = AddressCheck.VALID if found else AddressCheck.INVALID
    return f"{check.value}: {postal_code}"


def format_validation_summary(tokens: list[str]) -> str:
    return f"Address validation completed: {', '.join(tokens)}"
