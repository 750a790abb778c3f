"""Orderflow Load Testing: Locust entry point.

Discovers all user classes from the scenarios package.
Run specific scenarios with Locust's class selection.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py --host http://localhost:8000

    # Mixed workload only:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Oversell check under contention:
    locust -f loadtests/locustfile.py StockContentionUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py MixedWorkloadUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.catalogue import BackOfficeUser  # noqa: F401
from loadtests.scenarios.mixed import MixedWorkloadUser  # noqa: F401
from loadtests.scenarios.ordering import OrderingUser  # noqa: F401
from loadtests.scenarios.stress import StockContentionUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request.

    Extracts the API error body so you see "SchedulingRejected: scheduled_for: ..."
    instead of just "422".
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    """Seed the default scheduling rules so scheduled checkouts have a rule to match."""
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    if environment.host:
        try:
            resp = requests.post(f"{environment.host}/scheduling/rules/defaults", timeout=5)
            print(f"[LOADTEST] Seeded {len(resp.json())} scheduling rule(s)")
        except requests.RequestException as e:
            print(f"[LOADTEST] Could not seed scheduling rules: {e}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print the day's order statistics when the test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    if not environment.host:
        return
    try:
        stats = requests.get(f"{environment.host}/orders/stats", timeout=5).json()
        print(f"[LOADTEST] Orders: {stats['total_orders']}  sales: {stats['total_sales']}")
        print(f"[LOADTEST] By status: {stats['orders_by_status']}")
    except requests.RequestException as e:
        print(f"[LOADTEST] Could not fetch order stats: {e}")
    print()
