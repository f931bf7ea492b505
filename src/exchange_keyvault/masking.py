"""Irreversible partial redaction of secrets for display."""

from __future__ import annotations

MASK_TOKEN = "•" * 4

_HEAD = 4
_TAIL = 4


def mask(secret: str) -> str:
    """Return *secret* with everything but a short head (and tail) hidden.

    Secrets longer than 8 characters keep their first and last four
    characters. Shorter ones keep at most the first four and no tail, so the
    head and tail windows never overlap.

    >>> mask("ABCDEFGHIJKLMNOP")
    'ABCD••••MNOP'
    >>> mask("AB")
    'AB••••'
    >>> mask("")
    '••••'
    """
    if len(secret) > _HEAD + _TAIL:
        return secret[:_HEAD] + MASK_TOKEN + secret[-_TAIL:]
    return secret[:_HEAD] + MASK_TOKEN
