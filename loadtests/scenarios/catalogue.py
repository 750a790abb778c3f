"""Catalogue and inventory load test scenarios.

Back-office traffic: building products with gift bundles, receiving stock
and reading stock levels and movement history.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import gift_allocation, product_data, stock_receipt
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CatalogueState


class BundleBuilderJourney(SequentialTaskSet):
    """Create Gift -> Create Bundle -> Receive Stock -> Read Movements."""

    def on_start(self):
        self.state = CatalogueState()

    @task
    def create_gift(self):
        with self.client.post("/products", json=product_data(), catch_response=True, name="POST /products") as resp:
            if resp.status_code == 201:
                self.state.gift_id = resp.json()["id"]
            else:
                resp.failure(f"Create gift failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_bundle(self):
        payload = product_data(flagship=True, gifts=[gift_allocation(self.state.gift_id)])
        with self.client.post("/products", json=payload, catch_response=True, name="POST /products [bundle]") as resp:
            if resp.status_code == 201:
                self.state.bundle_id = resp.json()["id"]
            else:
                resp.failure(f"Create bundle failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def receive_stock(self):
        with self.client.post(
            f"/inventory/{self.state.bundle_id}/adjust",
            json=stock_receipt(),
            catch_response=True,
            name="POST /inventory/{id}/adjust",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Receive stock failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def read_movements(self):
        self.client.get(f"/inventory/{self.state.bundle_id}/movements", name="GET /inventory/{id}/movements")

    @task
    def done(self):
        self.interrupt()


class BackOfficeUser(HttpUser):
    """Staff browsing the catalogue, stock and daily order views."""

    wait_time = between(2, 5)
    tasks = {BundleBuilderJourney: 3}

    @task(2)
    def low_stock(self):
        self.client.get("/inventory/low-stock", name="GET /inventory/low-stock")

    @task(2)
    def todays_orders(self):
        self.client.get("/orders/today", name="GET /orders/today")

    @task(1)
    def stats(self):
        self.client.get("/orders/stats", name="GET /orders/stats")

    @task(1)
    def weekly_rules(self):
        self.client.get("/scheduling/weekly", name="GET /scheduling/weekly")
