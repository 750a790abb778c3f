"""Order read path: lookups, filtered listings and sales statistics.

Timestamps are stored in UTC; "today" and date filters are interpreted as
calendar days in the business timezone.
"""

import math
from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from protean.utils.globals import current_domain

from ordering.order.order import Order
from shared.clock import utcnow
from shared.money import round_money

DEFAULT_PAGE_SIZE = 10
DEFAULT_STATS_DAYS = 30


@dataclass
class OrderPage:
    orders: list
    page: int
    limit: int
    total: int

    @property
    def total_pages(self):
        return math.ceil(self.total / self.limit) if self.limit else 0


def day_bounds(day, timezone):
    """UTC ``[start, end)`` of ``day`` as a calendar day in ``timezone``."""
    tz = ZoneInfo(timezone)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(UTC), end.astimezone(UTC)


def _today(timezone, now=None):
    now = now or utcnow()
    return now.astimezone(ZoneInfo(timezone)).date()


def _orders():
    return current_domain.repository_for(Order)


def get_order(order_id):
    return _orders().get_order(order_id)


def list_orders(
    user_id=None,
    status=None,
    order_type=None,
    start=None,
    end=None,
    page=1,
    limit=DEFAULT_PAGE_SIZE,
):
    """Newest-first page of orders matching every given filter."""
    orders, total = _orders().page(
        (page - 1) * limit,
        limit,
        user_id=user_id,
        status=status,
        order_type=order_type,
        start=start,
        end=end,
    )
    return OrderPage(orders=orders, page=page, limit=limit, total=total)


def orders_for_user(user_id, **filters):
    return list_orders(user_id=user_id, **filters)


def todays_orders(timezone="UTC", now=None):
    """Orders created today or scheduled for today, soonest first."""
    start, end = day_bounds(_today(timezone, now), timezone)
    return _orders().created_or_scheduled_between(start, end)


def scheduled_orders(on=None, timezone="UTC", now=None):
    """Non-cancelled scheduled orders due on ``on`` (default today)."""
    on = on or _today(timezone, now)
    start, end = day_bounds(on, timezone)
    return _orders().scheduled_between(start, end)


def order_stats(start=None, end=None, timezone="UTC", now=None):
    """Order count, sales and breakdowns for orders created in ``[start, end]``.

    Defaults to the last 30 days. Sales exclude cancelled orders; the average
    is taken over every order in the range.
    """
    today = _today(timezone, now)
    if start is None:
        start, _ = day_bounds(today - timedelta(days=DEFAULT_STATS_DAYS), timezone)
    if end is None:
        _, end = day_bounds(today, timezone)

    total_orders, sales, by_status, by_type = _orders().stats_between(start, end)
    total_sales = round_money(sales if sales is not None else Decimal("0"))

    return {
        "total_orders": total_orders,
        "total_sales": total_sales,
        "average_order_value": round_money(total_sales / total_orders) if total_orders else Decimal("0.00"),
        "orders_by_status": by_status,
        "orders_by_type": by_type,
    }
