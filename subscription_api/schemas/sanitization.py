from __future__ import annotations


def normalize_email(value: str) -> str:
    # Trim and lower-case only; anything else is left for the address check.
    return value.strip().lower()
