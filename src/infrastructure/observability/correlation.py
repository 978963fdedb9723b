"""Request correlation ids for log tracing.

Each HTTP request (or script run) gets one correlation id stored in a
ContextVar, so it follows the request across awaits without being passed
explicitly. The structlog processor below stamps it onto every log entry.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import uuid4

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid4())


def get_correlation_id() -> str:
    """Current correlation id, or an empty string outside a request."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> Token[str]:
    """Bind a correlation id to the current context.

    A missing or blank id is replaced with a generated one.

    Returns:
        Token for restoring the previous value with reset_correlation_id().
    """
    value = (correlation_id or "").strip() or generate_correlation_id()
    return _correlation_id.set(value)


def reset_correlation_id(token: Token[str]) -> None:
    _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding ``correlation_id`` when one is bound."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict
