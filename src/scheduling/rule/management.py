"""Scheduling rule management — commands and handlers."""

import re

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from scheduling.rule.rule import SchedulingRule, day_name
from shared.clock import utcnow
from shared.domain import orderflow
from shared.errors import Conflict

logger = structlog.get_logger(__name__)

_TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def normalize_time(value, field="start_time"):
    """Validate HH:MM and zero-pad it so lexicographic comparison matches clock order."""
    if value is None:
        return None
    if not _TIME_PATTERN.match(value):
        raise ValidationError({field: ["must be in HH:MM format"]})
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


DEFAULT_RULES = [
    # Monday to Thursday: minimum spend or flagship quantity
    *[
        {
            "day_of_week": day,
            "is_active": True,
            "min_amount": 300.0,
            "min_chicken_quantity": 5,
            "start_time": "09:00",
            "end_time": "18:00",
            "description": f"{day_name(day)}: minimum $300 or 5 flagship items",
        }
        for day in (1, 2, 3, 4)
    ],
    # Friday and Saturday: no thresholds, longer window
    *[
        {
            "day_of_week": day,
            "is_active": True,
            "min_amount": None,
            "min_chicken_quantity": None,
            "start_time": "09:00",
            "end_time": "20:00",
            "description": f"{day_name(day)}: no restrictions",
        }
        for day in (5, 6)
    ],
    {
        "day_of_week": 0,
        "is_active": True,
        "min_amount": None,
        "min_chicken_quantity": None,
        "start_time": "10:00",
        "end_time": "18:00",
        "description": "Sunday: no restrictions",
    },
]


@orderflow.command(part_of="SchedulingRule")
class CreateSchedulingRule:
    day_of_week = Integer(required=True, min_value=0, max_value=6)
    is_active = Boolean(default=True)
    min_amount = Float(min_value=0.0)
    min_chicken_quantity = Integer(min_value=0)
    start_time = String(max_length=5)
    end_time = String(max_length=5)
    description = String(max_length=255)


@orderflow.command(part_of="SchedulingRule")
class UpdateSchedulingRule:
    """Partial update; fields left as ``None`` keep their current value."""

    rule_id = Identifier(required=True)
    day_of_week = Integer(min_value=0, max_value=6)
    is_active = Boolean()
    min_amount = Float(min_value=0.0)
    min_chicken_quantity = Integer(min_value=0)
    start_time = String(max_length=5)
    end_time = String(max_length=5)
    description = String(max_length=255)


@orderflow.command(part_of="SchedulingRule")
class ToggleSchedulingRule:
    rule_id = Identifier(required=True)


@orderflow.command(part_of="SchedulingRule")
class DeleteSchedulingRule:
    rule_id = Identifier(required=True)


@orderflow.command(part_of="SchedulingRule")
class SeedDefaultRules:
    """Insert the default weekly rules for days that have none."""


def _check_window(start_time, end_time):
    if start_time and end_time and start_time >= end_time:
        raise ValidationError({"start_time": ["Start time must be before end time"]})


def _ensure_day_free(day_of_week, exclude_id=None):
    existing = current_domain.repository_for(SchedulingRule).for_day(day_of_week)
    if existing is not None and str(existing.id) != str(exclude_id):
        raise Conflict({"day_of_week": [f"A rule already exists for {day_name(day_of_week)}"]})


@orderflow.command_handler(part_of=SchedulingRule)
class SchedulingRuleHandler:
    @handle(CreateSchedulingRule)
    def create_rule(self, command):
        start_time = normalize_time(command.start_time, "start_time")
        end_time = normalize_time(command.end_time, "end_time")
        _ensure_day_free(command.day_of_week)
        _check_window(start_time, end_time)

        now = utcnow()
        rule = SchedulingRule(
            day_of_week=command.day_of_week,
            is_active=command.is_active if command.is_active is not None else True,
            min_amount=command.min_amount,
            min_chicken_quantity=command.min_chicken_quantity,
            start_time=start_time,
            end_time=end_time,
            description=command.description,
            created_at=now,
            updated_at=now,
        )
        current_domain.repository_for(SchedulingRule).add(rule)

        logger.info("Scheduling rule created", rule_id=str(rule.id), day=rule.day_name)
        return str(rule.id)

    @handle(UpdateSchedulingRule)
    def update_rule(self, command):
        repo = current_domain.repository_for(SchedulingRule)
        rule = repo.get_rule(command.rule_id)

        changes = {
            "day_of_week": command.day_of_week,
            "is_active": command.is_active,
            "min_amount": command.min_amount,
            "min_chicken_quantity": command.min_chicken_quantity,
            "start_time": normalize_time(command.start_time, "start_time"),
            "end_time": normalize_time(command.end_time, "end_time"),
            "description": command.description,
        }
        changes = {field: value for field, value in changes.items() if value is not None}

        if "day_of_week" in changes:
            _ensure_day_free(changes["day_of_week"], exclude_id=rule.id)
        _check_window(
            changes.get("start_time", rule.start_time),
            changes.get("end_time", rule.end_time),
        )

        for field, value in changes.items():
            setattr(rule, field, value)
        rule.updated_at = utcnow()
        repo.add(rule)

        logger.info("Scheduling rule updated", rule_id=str(rule.id), fields=sorted(changes))
        return str(rule.id)

    @handle(ToggleSchedulingRule)
    def toggle_rule(self, command):
        repo = current_domain.repository_for(SchedulingRule)
        rule = repo.get_rule(command.rule_id)
        rule.is_active = not rule.is_active
        rule.updated_at = utcnow()
        repo.add(rule)
        return str(rule.id)

    @handle(DeleteSchedulingRule)
    def delete_rule(self, command):
        repo = current_domain.repository_for(SchedulingRule)
        rule = repo.get_rule(command.rule_id)
        repo._dao.delete(rule)
        logger.info("Scheduling rule deleted", rule_id=str(command.rule_id))

    @handle(SeedDefaultRules)
    def seed_default_rules(self, command):
        repo = current_domain.repository_for(SchedulingRule)
        created = []
        for data in DEFAULT_RULES:
            if repo.for_day(data["day_of_week"]) is not None:
                logger.info("Scheduling rule already exists", day=day_name(data["day_of_week"]))
                continue
            now = utcnow()
            rule = SchedulingRule(**data, created_at=now, updated_at=now)
            repo.add(rule)
            created.append(str(rule.id))
        logger.info("Default scheduling rules seeded", created_count=len(created))
        return created
