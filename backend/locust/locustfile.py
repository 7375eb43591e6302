"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Fight over a 10-seat event
  locust -f locustfile.py --tags churn        # Register/cancel loop, exercises promotion
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

On test stop the contention event's summary is fetched and the run is
marked failed if more attendees hold a seat than the event has.
"""

import itertools
import random
from datetime import datetime, timezone, timedelta

import requests
from locust import HttpUser, task, between, tag, events

CONTENTION_CAPACITY = 10
CONTENTION_EVENT_ID = None

_attendee_ids = itertools.count(100_000)


def next_attendee_id() -> int:
    return next(_attendee_ids)


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: create the shared limited-capacity event."""
    global CONTENTION_EVENT_ID
    future = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
    resp = requests.post(
        f"{environment.host}/api/v1/events/",
        json={
            "title": "Contention Test Event",
            "description": f"{CONTENTION_CAPACITY} seats only",
            "date": future,
            "location": "Load Test Hall",
            "capacity": CONTENTION_CAPACITY,
        },
        timeout=10,
    )
    resp.raise_for_status()
    CONTENTION_EVENT_ID = resp.json()["id"]
    print(f"\nCreated event {CONTENTION_EVENT_ID} with {CONTENTION_CAPACITY} seats\n")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Verify: registered count never ends above capacity."""
    if not CONTENTION_EVENT_ID:
        return
    resp = requests.get(
        f"{environment.host}/api/v1/events/{CONTENTION_EVENT_ID}/summary",
        timeout=10,
    )
    summary = resp.json()
    print(f"\nFinal summary: {summary}\n")
    if summary["registered_count"] > CONTENTION_CAPACITY:
        print("OVERBOOKED: registered_count exceeds capacity")
        environment.process_exit_code = 1


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - many attendees, 10 seats

    Run: locust -f locustfile.py --tags contention -u 200 -r 50 --run-time 30s

    Every request must come back 200 (registered or waitlisted) or 400
    (already active). Anything else is a failure.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.attendee_id = next_attendee_id()

    @tag("contention")
    @task
    def register_for_limited_event(self):
        if not CONTENTION_EVENT_ID:
            return

        with self.client.post(
            "/api/v1/register-event",
            json={"attendeeId": self.attendee_id, "eventId": CONTENTION_EVENT_ID},
            name="/api/v1/register-event [contention]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 400):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ChurnUser(HttpUser):
    """
    TEST 2: Churn - register then cancel in a loop

    Run: locust -f locustfile.py --tags churn -u 50 -r 10 --run-time 60s

    Every cancellation of a confirmed seat promotes the head of the
    waitlist, so this drives the promotion path under concurrency.
    """
    wait_time = between(0.05, 0.3)

    def on_start(self):
        self.attendee_id = next_attendee_id()
        self.registered = False

    @tag("churn")
    @task
    def toggle_registration(self):
        if not CONTENTION_EVENT_ID:
            return

        if not self.registered:
            with self.client.post(
                "/api/v1/register-event",
                json={"attendeeId": self.attendee_id, "eventId": CONTENTION_EVENT_ID},
                name="/api/v1/register-event [churn]",
                catch_response=True,
            ) as resp:
                if resp.status_code in (200, 400):
                    self.registered = True
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")
        else:
            with self.client.delete(
                f"/api/v1/unregister-event/{self.attendee_id}/{CONTENTION_EVENT_ID}",
                name="/api/v1/unregister-event/{attendee}/{event}",
                catch_response=True,
            ) as resp:
                if resp.status_code in (200, 404):
                    self.registered = False
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")

    @tag("churn", "read")
    @task(2)
    def read_summary(self):
        if CONTENTION_EVENT_ID:
            self.client.get(
                f"/api/v1/events/{CONTENTION_EVENT_ID}/summary",
                name="/api/v1/events/{id}/summary",
            )


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post(
            "/api/v1/register-event",
            json={"attendeeId": next_attendee_id(), "eventId": 999999},
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_ids(self):
        with self.client.post(
            "/api/v1/register-event",
            json={"attendeeId": -5, "eventId": "abc"},
            catch_response=True,
        ) as resp:
            if resp.status_code == 422:
                resp.success()
            else:
                resp.failure(f"Expected 422, got {resp.status_code}")

    @tag("edge")
    @task
    def cancel_without_registration(self):
        with self.client.delete(
            f"/api/v1/unregister-event/{next_attendee_id()}/{random.randint(1, 1000)}",
            name="/api/v1/unregister-event/{attendee}/{event} [edge]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")
