"""Marker for writes the engine makes to investment records itself.

Each normalization write stamps ``__skipAggregates`` with a fresh token. An
event is self-caused when its ``after`` state carries a token different from
the one in ``before``; external edits leave any stored token as it was.
"""

from __future__ import annotations

import uuid
from typing import Any


GUARD_FIELD = "__skipAggregates"


def stamp(fields: dict[str, Any]) -> dict[str, Any]:
    return {**fields, GUARD_FIELD: uuid.uuid4().hex}


def is_self_caused(before: dict[str, Any] | None, after: dict[str, Any] | None) -> bool:
    if not after:
        return False
    token = after.get(GUARD_FIELD)
    if not token:
        return False
    previous = before.get(GUARD_FIELD) if before else None
    return token != previous
