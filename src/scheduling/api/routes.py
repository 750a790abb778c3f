"""FastAPI routes for the Scheduling domain: rules and pre-checkout validation."""

from datetime import date

from fastapi import APIRouter, Depends, Header, Query, Response
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.cart.items import load_cart, scheduled_items_for_cart
from scheduling.api.schemas import (
    CreateRuleRequest,
    DayInfoResponse,
    RuleResponse,
    SchedulingDecisionResponse,
    TimeSlotsResponse,
    UpdateRuleRequest,
    ValidateSchedulingRequest,
)
from scheduling.rule.management import (
    CreateSchedulingRule,
    DeleteSchedulingRule,
    SeedDefaultRules,
    ToggleSchedulingRule,
    UpdateSchedulingRule,
)
from scheduling.rule.rule import SchedulingRule, day_name
from scheduling.rule.validation import (
    day_info,
    scheduled_items,
    time_slots,
    validate_scheduling,
    weekly_info,
)
from shared.api import get_settings
from shared.config import Settings

router = APIRouter(prefix="/scheduling", tags=["scheduling"])


def _money(amount) -> float | None:
    return None if amount is None else float(amount)


def _rule(rule_id) -> RuleResponse:
    return RuleResponse.of(current_domain.repository_for(SchedulingRule).get_rule(rule_id))


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
@router.get("/rules", response_model=list[RuleResponse])
async def list_rules() -> list[RuleResponse]:
    return [RuleResponse.of(rule) for rule in current_domain.repository_for(SchedulingRule).all_rules()]


@router.post("/rules", status_code=201, response_model=RuleResponse)
async def create_rule(body: CreateRuleRequest) -> RuleResponse:
    command = CreateSchedulingRule(
        day_of_week=body.day_of_week,
        is_active=body.is_active,
        min_amount=_money(body.min_amount),
        min_chicken_quantity=body.min_chicken_quantity,
        start_time=body.start_time,
        end_time=body.end_time,
        description=body.description,
    )
    return _rule(current_domain.process(command, asynchronous=False))


@router.post("/rules/defaults", status_code=201, response_model=list[RuleResponse])
async def seed_default_rules() -> list[RuleResponse]:
    rule_ids = current_domain.process(SeedDefaultRules(), asynchronous=False)
    return [_rule(rule_id) for rule_id in rule_ids]


@router.get("/rules/{rule_id}", response_model=RuleResponse)
async def get_rule(rule_id: str) -> RuleResponse:
    return _rule(rule_id)


@router.patch("/rules/{rule_id}", response_model=RuleResponse)
async def update_rule(rule_id: str, body: UpdateRuleRequest) -> RuleResponse:
    command = UpdateSchedulingRule(
        rule_id=rule_id,
        day_of_week=body.day_of_week,
        is_active=body.is_active,
        min_amount=_money(body.min_amount),
        min_chicken_quantity=body.min_chicken_quantity,
        start_time=body.start_time,
        end_time=body.end_time,
        description=body.description,
    )
    current_domain.process(command, asynchronous=False)
    return _rule(rule_id)


@router.post("/rules/{rule_id}/toggle", response_model=RuleResponse)
async def toggle_rule(rule_id: str) -> RuleResponse:
    current_domain.process(ToggleSchedulingRule(rule_id=rule_id), asynchronous=False)
    return _rule(rule_id)


@router.delete("/rules/{rule_id}", status_code=204)
async def delete_rule(rule_id: str) -> Response:
    current_domain.process(DeleteSchedulingRule(rule_id=rule_id), asynchronous=False)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Day information
# ---------------------------------------------------------------------------
@router.get("/weekly", response_model=list[DayInfoResponse])
async def get_weekly_info() -> list[DayInfoResponse]:
    return [DayInfoResponse(**info) for info in weekly_info()]


@router.get("/days/{day}", response_model=DayInfoResponse)
async def get_day_info(day: int) -> DayInfoResponse:
    if not 0 <= day <= 6:
        raise ValidationError({"day": ["Day of week must be between 0 (Sunday) and 6 (Saturday)"]})
    return DayInfoResponse(**day_info(day))


@router.get("/time-slots", response_model=TimeSlotsResponse)
async def get_time_slots(
    on: date = Query(alias="date"),
    settings: Settings = Depends(get_settings),
) -> TimeSlotsResponse:
    return TimeSlotsResponse(
        date=on.isoformat(),
        day_name=day_name((on.weekday() + 1) % 7),
        slots=time_slots(on, settings),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
@router.post("/validate", response_model=SchedulingDecisionResponse)
async def validate(
    body: ValidateSchedulingRequest,
    x_user_id: int | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> SchedulingDecisionResponse:
    """Answer "may these items be scheduled at this time?" without placing an order."""
    if body.items is not None:
        items = scheduled_items([(line.product_id, line.quantity) for line in body.items])
    elif x_user_id is not None:
        items = scheduled_items_for_cart(load_cart(x_user_id))
    else:
        raise ValidationError({"items": ["Provide items or an X-User-Id header to validate the cart"]})

    decision = validate_scheduling(body.scheduled_for, items, settings=settings)
    return SchedulingDecisionResponse(
        allowed=decision.allowed,
        reason=decision.reason,
        rule=RuleResponse.of(decision.rule) if decision.rule is not None else None,
    )
