"""Pydantic request/response schemas for the Scheduling API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from shared.api import Money


# ---------------------------------------------------------------------------
# Rule Schemas
# ---------------------------------------------------------------------------
class CreateRuleRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "day_of_week": 1,
                    "is_active": True,
                    "min_amount": "300.00",
                    "min_chicken_quantity": 5,
                    "start_time": "09:00",
                    "end_time": "18:00",
                    "description": "Monday: minimum $300 or 5 flagship items",
                }
            ]
        }
    }

    day_of_week: int = Field(ge=0, le=6)
    is_active: bool = True
    min_amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    min_chicken_quantity: int | None = Field(default=None, ge=0)
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = Field(default=None, max_length=255)


class UpdateRuleRequest(BaseModel):
    """Fields left out keep their current value."""

    day_of_week: int | None = Field(default=None, ge=0, le=6)
    is_active: bool | None = None
    min_amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    min_chicken_quantity: int | None = Field(default=None, ge=0)
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = Field(default=None, max_length=255)


class RuleResponse(BaseModel):
    id: str
    day_of_week: int
    day_name: str
    is_active: bool
    min_amount: Money | None = None
    min_chicken_quantity: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = None

    @classmethod
    def of(cls, rule):
        return cls(
            id=str(rule.id),
            day_of_week=rule.day_of_week,
            day_name=rule.day_name,
            is_active=rule.is_active,
            min_amount=rule.min_amount,
            min_chicken_quantity=rule.min_chicken_quantity,
            start_time=rule.start_time,
            end_time=rule.end_time,
            description=rule.description,
        )


class DayInfoResponse(BaseModel):
    day_of_week: int
    day_name: str
    can_schedule: bool
    reason: str | None = None
    min_amount: Money | None = None
    min_chicken_quantity: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = None


class TimeSlotsResponse(BaseModel):
    date: str
    day_name: str
    slots: list[str]


# ---------------------------------------------------------------------------
# Validation Schemas
# ---------------------------------------------------------------------------
class ScheduleLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


class ValidateSchedulingRequest(BaseModel):
    """Omit ``items`` to validate the caller's current cart."""

    scheduled_for: datetime
    items: list[ScheduleLineSchema] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "scheduled_for": "2026-11-02T12:00:00-06:00",
                    "items": [{"product_id": "0b8e7c52-4f0e-4c4e-a3a4-2d7f1c9e5b10", "quantity": 6}],
                }
            ]
        }
    }


class SchedulingDecisionResponse(BaseModel):
    allowed: bool
    reason: str | None = None
    rule: RuleResponse | None = None
