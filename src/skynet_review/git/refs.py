"""Validation of user-supplied git references."""

from __future__ import annotations

import re

from skynet_review.errors import InvalidRef

_SAFE_REF = re.compile(r"[A-Za-z0-9_./@^~-]+")


def validate_ref(reference: str) -> None:
    """Raise :class:`InvalidRef` unless *reference* is safe to hand to git.

    A leading ``-`` would be parsed as an option, so it is rejected before
    the character check.
    """
    if reference.startswith("-"):
        raise InvalidRef("Invalid git reference: cannot start with '-'")
    if not _SAFE_REF.fullmatch(reference):
        raise InvalidRef("Invalid git reference: contains invalid characters")


def is_valid_ref(reference: str) -> bool:
    try:
        validate_ref(reference)
    except InvalidRef:
        return False
    return True
