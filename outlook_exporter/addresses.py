from __future__ import annotations

from typing import Optional


def normalize(address: Optional[str]) -> str:
    """Identity key for an email address.

    Ordinal case folding only: ``str.lower`` is locale independent, so the
    same two addresses merge the same way on every machine. Never raises;
    empty or missing input gives ``""`` which callers must not store.
    """
    if not address:
        return ""
    return address.strip().lower()


def is_internal_form(address: Optional[str]) -> bool:
    # Exchange X.500 / legacy DN, e.g. "/o=ExchangeLabs/ou=.../cn=Recipients/cn=..."
    return bool(address) and address.startswith("/")
