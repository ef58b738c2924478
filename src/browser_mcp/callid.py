"""
Correlation tokens — session id embedded in call ids and request ids.

Format: ``{session_id}_{kind}_{counter}``. Session ids may themselves contain
``_``, so decoding always splits off the last two segments.
"""

from typing import Optional, Protocol

SEPARATOR = "_"

KIND_CALL = "call"
KIND_DISCOVER = "discover"
KIND_OPEN = "open"
KIND_FOCUS = "focus"


class _Counted(Protocol):
    id: str
    call_counter: int


def generate_call_id(session: _Counted, kind: str = KIND_CALL) -> str:
    """Next token for ``session``. Bumps the session's counter."""
    if SEPARATOR in kind:
        raise ValueError(f"token kind must not contain {SEPARATOR!r}: {kind!r}")
    session.call_counter += 1
    return f"{session.id}{SEPARATOR}{kind}{SEPARATOR}{session.call_counter}"


def extract_session_id(token: Optional[str]) -> Optional[str]:
    """Recover the owning session id, or None if ``token`` is not one of ours."""
    if not token:
        return None
    head, sep, counter = token.rpartition(SEPARATOR)
    if not sep or not counter.isdigit():
        return None
    session_id, sep, kind = head.rpartition(SEPARATOR)
    if not sep or not session_id or not kind:
        return None
    return session_id
