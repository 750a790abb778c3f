import pytest
from protean.core.unit_of_work import UnitOfWork
from protean.utils.globals import current_domain

from catalogue.product.product import Product
from inventory.stock import ledger
from ordering.cart.items import AddToCart
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order, OrderStatus
from ordering.order.status import UpdateOrderStatus, apply_transition
from shared.errors import InvalidTransition, NotFound

USER = 3
STAFF = 99


def _stock(product):
    return current_domain.repository_for(Product).get(product.id).stock_quantity


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _cancel(order_id, reason=None):
    current_domain.process(CancelOrder(order_id=str(order_id), cancelled_by=USER, reason=reason), asynchronous=False)
    return _order(order_id)


def _move(order_id, status):
    current_domain.process(
        UpdateOrderStatus(order_id=str(order_id), status=status.value, changed_by=STAFF), asynchronous=False
    )


def _restocks(product):
    return [m for m in ledger.movements_for(product.id) if m.movement_type == "IN"]


@pytest.fixture()
def products(product_factory):
    return (
        product_factory(name="Pollo asado", price=180.0, stock_quantity=10),
        product_factory(name="Papas", price=40.0, stock_quantity=8),
    )


@pytest.fixture()
def order(products):
    chicken, fries = products
    current_domain.process(AddToCart(user_id=USER, product_id=str(chicken.id), quantity=3), asynchronous=False)
    current_domain.process(AddToCart(user_id=USER, product_id=str(fries.id), quantity=2), asynchronous=False)
    order_id = current_domain.process(
        PlaceOrder(user_id=USER, order_type="IMMEDIATE", delivery_type="PICKUP"), asynchronous=False
    )
    return _order(order_id)


class TestCancelOrder:
    def test_restores_exact_quantities(self, products, order):
        chicken, fries = products
        assert (_stock(chicken), _stock(fries)) == (7, 6)

        _cancel(order.id)

        assert (_stock(chicken), _stock(fries)) == (10, 8)

    def test_records_in_movements(self, products, order):
        chicken, _ = products

        _cancel(order.id)

        latest = ledger.movements_for(chicken.id, limit=1)[0]
        assert latest.movement_type == "IN"
        assert latest.quantity == 3
        assert latest.stock_after == 10
        assert latest.reason == f"Cancellation of order #{order.id}"

    def test_history_uses_reason(self, order):
        order = _cancel(order.id, reason="Changed my mind")

        entry = order.timeline[-1]
        assert order.current_status == OrderStatus.CANCELLED
        assert entry.status == "CANCELLED"
        assert entry.notes == "Changed my mind"
        assert entry.changed_by == USER

    def test_default_note(self, order):
        assert _cancel(order.id).timeline[-1].notes == "Order cancelled"

    def test_in_preparation_can_be_cancelled(self, order):
        _move(order.id, OrderStatus.IN_PREPARATION)

        assert _cancel(order.id).current_status == OrderStatus.CANCELLED

    @pytest.mark.parametrize(
        "path",
        [
            [OrderStatus.IN_PREPARATION, OrderStatus.READY_FOR_PICKUP],
            [OrderStatus.IN_PREPARATION, OrderStatus.READY_FOR_DELIVERY, OrderStatus.DELIVERED],
        ],
    )
    def test_later_states_are_rejected(self, products, order, path):
        chicken, _ = products
        for status in path:
            _move(order.id, status)

        with pytest.raises(InvalidTransition):
            _cancel(order.id)

        assert _order(order.id).current_status == path[-1]
        assert _stock(chicken) == 7

    def test_cancelling_twice_restores_once(self, products, order):
        chicken, _ = products
        _cancel(order.id)

        with pytest.raises(InvalidTransition):
            _cancel(order.id)

        assert _stock(chicken) == 10
        assert len(_restocks(chicken)) == 1

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            _cancel("missing")


class TestConcurrentCancellation:
    """Two units of work that loaded the same PENDING order both try to cancel it."""

    def test_stale_copy_cannot_cancel_again(self, products, order):
        chicken, fries = products
        stale = _order(order.id)

        _cancel(order.id)

        with pytest.raises(InvalidTransition) as exc:
            with UnitOfWork():
                apply_transition(stale, OrderStatus.CANCELLED, STAFF, "Duplicate cancel")

        assert "changed concurrently" in exc.value.messages["status"][0]
        assert (_stock(chicken), _stock(fries)) == (10, 8)
        assert len(_restocks(chicken)) == 1
        assert len(_restocks(fries)) == 1
        assert [entry.status for entry in _order(order.id).timeline] == ["PENDING", "CANCELLED"]

    def test_stale_copy_cannot_advance_a_cancelled_order(self, products, order):
        chicken, _ = products
        stale = _order(order.id)

        _cancel(order.id)

        with pytest.raises(InvalidTransition):
            with UnitOfWork():
                apply_transition(stale, OrderStatus.IN_PREPARATION, STAFF)

        assert _order(order.id).current_status == OrderStatus.CANCELLED
        assert _stock(chicken) == 10
