"""Stock contention scenario.

Every StockContentionUser races to buy the same scarce product. Once stock
runs out, checkouts must fail with 409; the final stock level must never
go negative.
"""

import threading

from locust import HttpUser, constant_pacing, task

from loadtests.data_generators import cart_item_data, checkout_data, product_data, user_headers
from loadtests.helpers.response import extract_error_detail

_lock = threading.Lock()


class StockContentionUser(HttpUser):
    wait_time = constant_pacing(0.2)

    scarce_product_id = None

    def on_start(self):
        with _lock:
            if StockContentionUser.scarce_product_id is None:
                resp = self.client.post("/products", json=product_data(stock=50), name="[CONTENTION] setup")
                StockContentionUser.scarce_product_id = resp.json()["id"]
        self.headers = user_headers()

    @task
    def buy_one(self):
        product_id = StockContentionUser.scarce_product_id
        added = self.client.post(
            "/cart/items",
            json=cart_item_data(product_id, quantity=1),
            headers=self.headers,
            name="[CONTENTION] POST /cart/items",
        )
        if added.status_code != 201:
            return

        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=self.headers,
            catch_response=True,
            name="[CONTENTION] POST /orders",
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected checkout result: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def check_stock(self):
        with self.client.get(
            f"/inventory/{StockContentionUser.scarce_product_id}",
            catch_response=True,
            name="[CONTENTION] GET /inventory/{id}",
        ) as resp:
            if resp.status_code == 200 and resp.json()["stock_quantity"] < 0:
                resp.failure("Stock went negative")
