"""Error taxonomy shared by every bounded context.

Every error is a Protean exception carrying a ``messages`` dict that maps a
field (or a logical key such as ``"cart"``) to a list of reasons, so callers
render them uniformly regardless of where they were raised. Malformed input
is a plain ``protean.exceptions.ValidationError``.
"""

from protean.exceptions import InvalidStateError, ObjectNotFoundError, ValidationError


class _DomainError:
    kind = "Error"

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = {"_entity": [messages]}
        super().__init__(messages)
        self.messages = messages

    def __str__(self):
        return "; ".join(f"{key}: {', '.join(reasons)}" for key, reasons in self.messages.items())


class NotFound(_DomainError, ObjectNotFoundError):
    """Unknown product, order, cart item or scheduling rule."""

    kind = "NotFound"


class SchedulingRejected(_DomainError, ValidationError):
    """The scheduling rule evaluator refused the requested time."""

    kind = "SchedulingRejected"


class InsufficientStock(_DomainError, InvalidStateError):
    """Availability check or conditional stock decrement failed."""

    kind = "InsufficientStock"


class InvalidTransition(_DomainError, InvalidStateError):
    """Illegal order status change, or one lost to a concurrent change."""

    kind = "InvalidTransition"


class Conflict(_DomainError, InvalidStateError):
    """Uniqueness conflict."""

    kind = "Conflict"


__all__ = [
    "Conflict",
    "InsufficientStock",
    "InvalidTransition",
    "NotFound",
    "SchedulingRejected",
    "ValidationError",
]
