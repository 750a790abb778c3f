"""Scheduling Rule Evaluator: decides whether a future-dated order may be placed.

Everything in this module is pure: the rule, the cart contents, the total and
the current time are all passed in, so the same function answers both the
pre-checkout "can I schedule?" query and the authoritative checkout gate.

Evaluation order:
    1. day of week of the requested time (0=Sunday .. 6=Saturday)
    2. rule present and active
    3. requested HH:MM inside [start_time, end_time]
    4. spend / flagship-quantity thresholds, OR-combined
    5. requested time not in the past and within the booking horizon
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from scheduling.rule.rule import day_name
from shared.money import as_decimal

DEFAULT_MAX_DAYS_AHEAD = 30


@dataclass(frozen=True)
class ScheduledItem:
    """The slice of a cart line the evaluator needs."""

    product_id: str
    quantity: int
    name: str = ""
    price: Decimal = Decimal("0")
    is_flagship: bool = False


@dataclass(frozen=True)
class SchedulingDecision:
    allowed: bool
    reason: str | None = None
    rule: object | None = None


def to_local(moment, timezone):
    """Express ``moment`` in the business timezone; naive values are taken as already local."""
    tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def day_of_week(moment):
    """0=Sunday .. 6=Saturday, independent of locale."""
    return (moment.weekday() + 1) % 7


def is_flagship(item, flagship_token=None):
    if item.is_flagship:
        return True
    return bool(flagship_token) and flagship_token.lower() in (item.name or "").lower()


def count_flagship_items(items, flagship_token=None):
    return sum(item.quantity for item in items if is_flagship(item, flagship_token))


def items_total(items):
    return sum((as_decimal(item.price) * item.quantity for item in items), Decimal("0"))


def _threshold_reason(rule, day):
    min_amount = rule.min_amount
    min_count = rule.min_chicken_quantity
    if min_amount and min_count:
        return (
            f"Orders scheduled for {day} require a minimum of ${as_decimal(min_amount):.2f} "
            f"or at least {min_count} flagship items"
        )
    if min_amount:
        return f"Orders scheduled for {day} require a minimum of ${as_decimal(min_amount):.2f}"
    return f"Orders scheduled for {day} require at least {min_count} flagship items"


def meets_thresholds(rule, total, flagship_count):
    """OR semantics: any configured threshold that is met is enough.

    A threshold that is missing (or zero) imposes no restriction; a rule with
    no thresholds at all always passes.
    """
    checks = []
    if rule.min_amount:
        checks.append(as_decimal(total) >= as_decimal(rule.min_amount))
    if rule.min_chicken_quantity:
        checks.append(flagship_count >= rule.min_chicken_quantity)
    return not checks or any(checks)


def can_schedule(
    requested_at,
    items,
    total,
    rule,
    *,
    now,
    timezone="UTC",
    flagship_token=None,
    max_days_ahead=DEFAULT_MAX_DAYS_AHEAD,
):
    """Evaluate ``rule`` for an order requested at ``requested_at``.

    Args:
        requested_at: Proposed pickup/delivery time.
        items: Iterable of ScheduledItem.
        total: Cart amount compared against ``rule.min_amount``.
        rule: The SchedulingRule for the requested day, or None.
        now: Current time; injected to keep evaluation deterministic.
        timezone: Business timezone used for day-of-week and HH:MM.
        flagship_token: Case-insensitive product-name token counted as flagship
            in addition to products flagged ``is_flagship``.
        max_days_ahead: Booking horizon.

    Returns:
        SchedulingDecision with the matched rule attached whenever one exists.
    """
    local = to_local(requested_at, timezone)
    current = to_local(now, timezone)
    day = day_of_week(local)

    if rule is None or not rule.is_active:
        return SchedulingDecision(
            allowed=False,
            reason=f"Orders cannot be scheduled for {day_name(day)}",
        )

    if rule.start_time and rule.end_time:
        requested_time = local.strftime("%H:%M")
        if requested_time < rule.start_time or requested_time > rule.end_time:
            return SchedulingDecision(
                allowed=False,
                reason=f"Delivery time must be between {rule.start_time} and {rule.end_time}",
                rule=rule,
            )

    flagship_count = count_flagship_items(items, flagship_token)
    if not meets_thresholds(rule, total, flagship_count):
        return SchedulingDecision(allowed=False, reason=_threshold_reason(rule, day_name(day)), rule=rule)

    if local < current:
        return SchedulingDecision(
            allowed=False,
            reason="Orders cannot be scheduled in the past",
            rule=rule,
        )

    if local > current + timedelta(days=max_days_ahead):
        return SchedulingDecision(
            allowed=False,
            reason=f"Orders cannot be scheduled more than {max_days_ahead} days in advance",
            rule=rule,
        )

    return SchedulingDecision(allowed=True, rule=rule)


def available_time_slots(rule, slot_minutes=30):
    """HH:MM slots from ``start_time`` (inclusive) to ``end_time`` (exclusive)."""
    if rule is None or not rule.is_active or not rule.has_time_window:
        return []

    start = datetime.strptime(rule.start_time, "%H:%M")
    end = datetime.strptime(rule.end_time, "%H:%M")
    step = timedelta(minutes=slot_minutes)

    slots = []
    current = start
    while current < end:
        slots.append(current.strftime("%H:%M"))
        current += step
    return slots
