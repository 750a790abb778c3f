"""FastAPI plumbing shared by every context's router."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidStateError, ObjectNotFoundError, ValidationError
from pydantic import BeforeValidator

from shared.clock import as_utc
from shared.config import get_settings as _configured_settings
from shared.errors import Conflict, InsufficientStock, InvalidTransition, NotFound, SchedulingRejected
from shared.money import round_money

# Most specific first; an exception takes the code of the first class in its MRO listed here
_STATUS_CODES = {
    SchedulingRejected: 422,
    InsufficientStock: 409,
    InvalidTransition: 409,
    Conflict: 409,
    NotFound: 404,
    ObjectNotFoundError: 404,
    ValidationError: 400,
    InvalidStateError: 409,
}

# Response field types for amounts and timestamps read back from the store
Money = Annotated[Decimal, BeforeValidator(round_money)]
UTCDateTime = Annotated[datetime, BeforeValidator(as_utc)]


def get_settings(request: Request):
    return getattr(request.app.state, "settings", None) or _configured_settings()


def current_user_id(x_user_id: int | None = Header(default=None)) -> int:
    """The trusted caller id set by the upstream authentication layer."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return x_user_id


def status_code_for(exc):
    for error_class in type(exc).__mro__:
        if error_class in _STATUS_CODES:
            return _STATUS_CODES[error_class]
    return 400


def error_kind(exc):
    if hasattr(exc, "kind"):
        return exc.kind
    if isinstance(exc, ObjectNotFoundError):
        return "NotFound"
    return type(exc).__name__


def error_messages(exc):
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        return messages
    return {"_entity": [str(messages or exc)]}


async def domain_error_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=status_code_for(exc),
        content={"error": error_kind(exc), "messages": error_messages(exc)},
    )


def register_error_handlers(app: FastAPI):
    for error_class in (ValidationError, ObjectNotFoundError, InvalidStateError):
        app.add_exception_handler(error_class, domain_error_handler)
