"""BDD tests for checkout."""

from datetime import datetime
from decimal import Decimal

from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import InvalidStateError, ValidationError
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

from inventory.stock import ledger
from inventory.stock.movement import MovementType
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order

scenarios("features/checkout.feature")


def _place(error, customer_id, now, **fields):
    try:
        order_id = current_domain.process(PlaceOrder(user_id=customer_id, placed_at=now, **fields), asynchronous=False)
    except (ValidationError, InvalidStateError) as exc:
        error["exc"] = exc
        return None
    return current_domain.repository_for(Order).get(order_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the stock of "{name}" is counted at {stock:d}'))
def physical_count(catalogue, name, stock):
    with UnitOfWork():
        ledger.adjust(catalogue[name], stock, MovementType.ADJUSTMENT, "Physical count")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse("the customer schedules the order for Monday {day} at {hour:d}:{minute:d}"),
    target_fixture="order",
)
def schedule_order(error, customer_id, now, day, hour, minute):
    scheduled_for = datetime.fromisoformat(day).replace(hour=hour, minute=minute)
    return _place(error, customer_id, now, order_type="SCHEDULED", delivery_type="DELIVERY", scheduled_for=scheduled_for)


@when("the customer checks out for immediate pickup", target_fixture="order")
def checkout_now(error, customer_id, now):
    return _place(error, customer_id, now, order_type="IMMEDIATE", delivery_type="PICKUP")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the rejection reads "{reason}"'))
def rejection_reads(error, reason):
    assert error["exc"].messages["scheduled_for"] == [reason]


@then(parsers.cfparse('the order is placed as "{order_type}"'))
def order_placed(error, order, order_type):
    assert error["exc"] is None
    assert order.order_type == order_type
    assert order.status == "PENDING"


@then(parsers.cfparse("the order total is {total}"))
def order_total(order, total):
    assert Decimal(str(order.total)) == Decimal(total)
