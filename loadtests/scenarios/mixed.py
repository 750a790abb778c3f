"""Mixed workload scenario.

Combines customer and back-office journeys with weights that model a
restaurant's daily traffic. This is the recommended scenario for load
baseline testing.
"""

from locust import HttpUser, between

from loadtests.scenarios.catalogue import BundleBuilderJourney
from loadtests.scenarios.ordering import (
    CartBrowsingJourney,
    ImmediateOrderJourney,
    OrderCancellationJourney,
    ScheduledOrderJourney,
)


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload.

    Ordering (80%):
    - Cart browsing and abandonment: most common
    - Immediate checkout through delivery: the happy path
    - Scheduled checkout: Friday and Saturday slots
    - Cancellation: unhappy path, restores stock

    Back office (20%):
    - Bundle building and stock receipts
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        CartBrowsingJourney: 6,
        ImmediateOrderJourney: 5,
        ScheduledOrderJourney: 3,
        OrderCancellationJourney: 2,
        BundleBuilderJourney: 4,
    }
