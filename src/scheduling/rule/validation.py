"""Read-only scheduling queries: "can I schedule?", day/weekly info and time slots."""

from protean.utils.globals import current_domain

from catalogue.product.product import Product
from scheduling.rule.evaluator import (
    ScheduledItem,
    available_time_slots,
    can_schedule,
    day_of_week,
    items_total,
    to_local,
)
from scheduling.rule.rule import SchedulingRule, day_name
from shared.clock import utcnow
from shared.config import get_settings


def scheduled_item(product, quantity):
    return ScheduledItem(
        product_id=str(product.id),
        quantity=quantity,
        name=product.name,
        price=product.unit_price,
        is_flagship=product.is_flagship,
    )


def scheduled_items(lines):
    """Resolve ``(product_id, quantity)`` pairs against the catalogue."""
    products = current_domain.repository_for(Product)
    return [scheduled_item(products.get_product(product_id), quantity) for product_id, quantity in lines]


def rule_for_day(day):
    return current_domain.repository_for(SchedulingRule).for_day(day)


def validate_scheduling(proposed_time, items, *, total=None, settings=None, now=None):
    """Evaluate the rule for ``proposed_time`` against the given cart lines.

    ``total`` defaults to the sum of ``price × quantity`` over ``items``.
    """
    settings = settings or get_settings()
    now = now or utcnow()
    local = to_local(proposed_time, settings.business_timezone)
    rule = rule_for_day(day_of_week(local))

    return can_schedule(
        proposed_time,
        items,
        items_total(items) if total is None else total,
        rule,
        now=now,
        timezone=settings.business_timezone,
        flagship_token=settings.flagship_token,
        max_days_ahead=settings.max_schedule_days,
    )


def day_info(day):
    rule = rule_for_day(day)
    if rule is None or not rule.is_active:
        return {
            "day_of_week": day,
            "day_name": day_name(day),
            "can_schedule": False,
            "reason": "Orders cannot be scheduled for this day",
        }
    return {
        "day_of_week": day,
        "day_name": day_name(day),
        "can_schedule": True,
        "min_amount": rule.min_amount,
        "min_chicken_quantity": rule.min_chicken_quantity,
        "start_time": rule.start_time,
        "end_time": rule.end_time,
        "description": rule.description,
    }


def weekly_info():
    return [day_info(day) for day in range(7)]


def time_slots(date, settings=None):
    """Bookable slots on ``date`` according to that weekday's rule."""
    settings = settings or get_settings()
    weekday = (date.weekday() + 1) % 7
    return available_time_slots(rule_for_day(weekday), settings.slot_minutes)
