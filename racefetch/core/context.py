"""Context variables used for log correlation.

request_id is set per HTTP request by the middleware; race_id is set per
race by the coordinator. Both are visible from every task spawned inside
that context.
"""

import contextvars
import uuid
from contextlib import contextmanager

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default=""
)
race_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "race_id", default=""
)


def get_request_id() -> str:
    """Current request ID (empty string outside a request)."""
    return request_id_var.get()


def get_race_id() -> str:
    """Current race ID (empty string outside a race)."""
    return race_id_var.get()


def new_race_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def bind_race_id(race_id: str):
    token = race_id_var.set(race_id)
    try:
        yield race_id
    finally:
        race_id_var.reset(token)
