"""Ordering load test scenarios.

Four stateful SequentialTaskSet journeys covering cart browsing, the
immediate checkout through delivery, scheduled checkout with a pre-flight
validation, and customer cancellation.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    cancellation_reason,
    cart_item_data,
    checkout_data,
    product_data,
    user_headers,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CartState, OrderState


class _ProductSetupMixin:
    """Creates the products a journey shops for."""

    def create_products(self, count=2, flagship=False):
        product_ids = []
        for _ in range(count):
            with self.client.post(
                "/products",
                json=product_data(flagship=flagship),
                catch_response=True,
                name="POST /products",
            ) as resp:
                if resp.status_code == 201:
                    product_ids.append(resp.json()["id"])
                else:
                    resp.failure(f"Create product failed: {resp.status_code} {extract_error_detail(resp)}")
        if not product_ids:
            self.interrupt()
        return product_ids

    def add_to_cart(self, headers, product_id, quantity=None):
        with self.client.post(
            "/cart/items",
            json=cart_item_data(product_id, quantity),
            headers=headers,
            catch_response=True,
            name="POST /cart/items",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Add cart item failed: {resp.status_code} {extract_error_detail(resp)}")
                return None
            return resp.json()["id"]


class CartBrowsingJourney(_ProductSetupMixin, SequentialTaskSet):
    """Add Items -> Update Quantity -> Remove Item -> Summary -> Clear.

    Models a browsing customer who changes their mind and never checks out.
    """

    def on_start(self):
        self.state = CartState(user_id=random.randint(1, 10_000_000))
        self.headers = user_headers(self.state.user_id)
        self.product_ids = self.create_products(3)

    @task
    def add_items(self):
        for product_id in self.product_ids:
            item_id = self.add_to_cart(self.headers, product_id)
            if item_id is not None:
                self.state.item_ids.append(item_id)
        if not self.state.item_ids:
            self.interrupt()

    @task
    def update_quantity(self):
        item_id = self.state.item_ids[0]
        with self.client.patch(
            f"/cart/items/{item_id}",
            json={"quantity": random.randint(2, 4)},
            headers=self.headers,
            catch_response=True,
            name="PATCH /cart/items/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Update cart item failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def remove_item(self):
        item_id = self.state.item_ids.pop()
        with self.client.delete(
            f"/cart/items/{item_id}",
            headers=self.headers,
            catch_response=True,
            name="DELETE /cart/items/{id}",
        ) as resp:
            if resp.status_code != 204:
                resp.failure(f"Remove cart item failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def view_summary(self):
        self.client.get("/cart/summary", headers=self.headers, name="GET /cart/summary")

    @task
    def clear_cart(self):
        with self.client.delete("/cart", headers=self.headers, catch_response=True, name="DELETE /cart") as resp:
            if resp.status_code != 204:
                resp.failure(f"Clear cart failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class ImmediateOrderJourney(_ProductSetupMixin, SequentialTaskSet):
    """Fill Cart -> Checkout -> In Preparation -> Ready -> Delivered.

    The happy path through the order status machine.
    """

    STAFF = user_headers(1)

    def on_start(self):
        self.state = OrderState(user_id=random.randint(1, 10_000_000))
        self.headers = user_headers(self.state.user_id)

    @task
    def fill_cart(self):
        for product_id in self.create_products(2):
            self.add_to_cart(self.headers, product_id)

    @task
    def checkout(self):
        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["id"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    def _advance(self, status):
        with self.client.patch(
            f"/orders/{self.state.order_id}/status",
            json={"status": status},
            headers=self.STAFF,
            catch_response=True,
            name="PATCH /orders/{id}/status",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = status
            else:
                resp.failure(f"Status {status} failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def prepare(self):
        self._advance("IN_PREPARATION")

    @task
    def ready(self):
        self._advance(random.choice(["READY_FOR_PICKUP", "READY_FOR_DELIVERY"]))

    @task
    def deliver(self):
        self._advance("DELIVERED")

    @task
    def done(self):
        self.interrupt()


class ScheduledOrderJourney(_ProductSetupMixin, SequentialTaskSet):
    """Fill Cart -> Validate Slot -> Scheduled Checkout."""

    def on_start(self):
        self.state = OrderState(user_id=random.randint(1, 10_000_000))
        self.headers = user_headers(self.state.user_id)
        self.payload = checkout_data(scheduled=True)

    @task
    def fill_cart(self):
        for product_id in self.create_products(2, flagship=True):
            self.add_to_cart(self.headers, product_id, quantity=3)

    @task
    def validate_slot(self):
        with self.client.post(
            "/scheduling/validate",
            json={"scheduled_for": self.payload["scheduled_for"]},
            headers=self.headers,
            catch_response=True,
            name="POST /scheduling/validate",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Validate failed: {resp.status_code} {extract_error_detail(resp)}")
            elif not resp.json()["allowed"]:
                resp.failure(f"Slot rejected: {resp.json()['reason']}")
                self.interrupt()

    @task
    def checkout(self):
        with self.client.post(
            "/orders",
            json=self.payload,
            headers=self.headers,
            catch_response=True,
            name="POST /orders [scheduled]",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["id"]
            else:
                resp.failure(f"Scheduled checkout failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class OrderCancellationJourney(_ProductSetupMixin, SequentialTaskSet):
    """Fill Cart -> Checkout -> Cancel -> Read Order."""

    def on_start(self):
        self.state = OrderState(user_id=random.randint(1, 10_000_000))
        self.headers = user_headers(self.state.user_id)

    @task
    def fill_cart(self):
        for product_id in self.create_products(1):
            self.add_to_cart(self.headers, product_id)

    @task
    def checkout(self):
        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["id"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def cancel(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json=cancellation_reason(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/cancel",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "CANCELLED"
            else:
                resp.failure(f"Cancel failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def read_order(self):
        self.client.get(f"/orders/{self.state.order_id}", name="GET /orders/{id}")

    @task
    def done(self):
        self.interrupt()


class OrderingUser(HttpUser):
    """Customer-side ordering traffic."""

    wait_time = between(1, 3)
    tasks = {
        CartBrowsingJourney: 4,
        ImmediateOrderJourney: 4,
        ScheduledOrderJourney: 2,
        OrderCancellationJourney: 2,
    }
