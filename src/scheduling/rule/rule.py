"""SchedulingRule: one per day of the week.

A rule gates whether future-dated orders may be placed on its day, inside
which delivery window, and above which spend or flagship-quantity threshold.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Integer, String
from sqlalchemy import select

from shared.db import dao_session, table_of
from shared.domain import orderflow
from shared.errors import NotFound

DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


def day_name(day_of_week):
    return DAY_NAMES[day_of_week]


@orderflow.aggregate
class SchedulingRule:
    day_of_week = Integer(required=True, min_value=0, max_value=6, unique=True)
    is_active = Boolean(default=True)
    min_amount = Float(min_value=0.0)
    min_chicken_quantity = Integer(min_value=0)
    start_time = String(max_length=5)  # HH:MM, zero-padded 24h
    end_time = String(max_length=5)
    description = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @property
    def day_name(self):
        return day_name(self.day_of_week)

    @property
    def has_time_window(self):
        return bool(self.start_time and self.end_time)


@orderflow.repository(part_of=SchedulingRule)
class SchedulingRuleRepository:
    def get_rule(self, rule_id):
        try:
            return self.get(rule_id)
        except ObjectNotFoundError:
            raise NotFound({"rule_id": [f"Scheduling rule {rule_id} not found"]}) from None

    def for_day(self, day_of_week):
        """The rule for ``day_of_week``, or None."""
        rules = self._dao.query.filter(day_of_week=day_of_week).all().items
        return rules[0] if rules else None

    def all_rules(self):
        table = table_of(self._dao)
        with dao_session(self._dao) as session:
            rule_ids = [row.id for row in session.execute(select(table.c.id).order_by(table.c.day_of_week))]
        return [self.get(rule_id) for rule_id in rule_ids]
