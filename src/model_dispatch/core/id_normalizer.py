"""core.id_normalizer

Maps a use-case / route identifier to the canonical key under which per-use-case
inference parameter overrides are stored.

    "/chat/abcd1234"  ->  "/chat"

Rules are tried in order; the first matching rule wins and unmatched
identifiers pass through unchanged.
"""

from __future__ import annotations

import re
from typing import NamedTuple

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class IdTransformationRule(NamedTuple):
    pattern: re.Pattern[str]
    replacement: str


ID_TRANSFORMATION_RULES: tuple[IdTransformationRule, ...] = (
    # a single conversation -> the chat use case
    IdTransformationRule(re.compile(r'^/chat/.+'), '/chat'),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_id(raw_id: str, rules: tuple[IdTransformationRule, ...] = ID_TRANSFORMATION_RULES) -> str:
    """Return the canonical use-case id for raw_id.

    >>> normalize_id('/chat/abcd1234')
    '/chat'
    >>> normalize_id('/summarize')
    '/summarize'
    """
    if not raw_id:
        return raw_id
    for rule in rules:
        if rule.pattern.match(raw_id):
            return rule.replacement
    return raw_id
