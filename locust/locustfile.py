"""
Locust Load Test Suite

Targets a server running with PAYMENT_PROVIDER=mock so that payments can be
completed through the MockPay page. Seed an event first and pass its id:

  LOCUST_EVENT_ID=1 locust -f locustfile.py --tags concurrency  # Test overselling
  LOCUST_EVENT_ID=1 locust -f locustfile.py --tags throughput   # Status polling
  LOCUST_EVENT_ID=1 locust -f locustfile.py --tags edge         # Test bad input
  LOCUST_EVENT_ID=1 locust -f locustfile.py                     # All tests

Rate gates are per client IP, so raise CHECKOUT_RATE_LIMIT_MAX and
STATUS_RATE_LIMIT_MAX on the server or each user gets its own
X-Forwarded-For address (the default here).
"""

import os
import random
from locust import HttpUser, task, between, tag, events

EVENT_ID = int(os.environ.get("LOCUST_EVENT_ID", "1"))


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_client_ip():
    return f"198.51.{random.randint(0, 255)}.{random.randint(1, 254)}"


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Load testing event {EVENT_ID}")
    print("=" * 60)


class TicketUser(HttpUser):
    abstract = True

    def on_start(self):
        self.headers = {"X-Forwarded-For": random_client_ip()}


class ConcurrencyUser(TicketUser):
    """
    TEST 1: Concurrency - many buyers complete payment for a small event

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT tickets_sold, ticket_limit FROM events WHERE id = X;
      SELECT COUNT(*) FROM tickets WHERE event_id = X;
    Both counts must match and never exceed ticket_limit.
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def buy_and_pay(self):
        with self.client.post(
            "/checkout",
            json={"event_id": EVENT_ID, "quantity": random.randint(1, 3), "purchaser_email": random_email()},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code in (400, 429):
                resp.success()  # Expected: sold out or limited
                return
            else:
                resp.failure(f"Unexpected: {resp.status_code}")
                return

        session_path = "/mockpay/" + resp.json()["url"].rsplit("/", 1)[-1]
        with self.client.post(
            f"{session_path}/complete",
            name="/mockpay/{id}/complete",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200 and resp.json().get("outcome") in ("issued", "sold_out"):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task
    def redeliver(self):
        """Complete the same session several times; only one batch may be issued."""
        resp = self.client.post(
            "/checkout",
            json={"event_id": EVENT_ID, "quantity": 1},
            headers=self.headers,
        )
        if resp.status_code != 200:
            return
        session_path = "/mockpay/" + resp.json()["url"].rsplit("/", 1)[-1]
        outcomes = []
        for _ in range(3):
            done = self.client.post(f"{session_path}/complete", name="/mockpay/{id}/complete [redelivery]")
            if done.status_code == 200:
                outcomes.append(done.json().get("outcome"))
        if outcomes.count("issued") > 1:
            events.request.fire(
                request_type="CHECK",
                name="single issue per session",
                response_time=0,
                response_length=0,
                exception=Exception(f"issued {outcomes.count('issued')} times"),
            )


class ThroughputUser(TicketUser):
    """
    TEST 2: Throughput - status polling from event pages

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def poll_status(self):
        with self.client.get(
            f"/status?event_id={EVENT_ID}",
            name="/status",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 429):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(TicketUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        with self.client.post("/checkout",
            json={"event_id": 999999, "quantity": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (404, 429))

    @tag("edge")
    @task
    def bad_quantities(self):
        quantity = random.choice([0, -5, 11, 999999, 2.5, "abc", True])
        with self.client.post("/checkout",
            json={"event_id": EVENT_ID, "quantity": quantity},
            headers=self.headers,
            name="/checkout [bad quantity]",
            catch_response=True
        ) as resp:
            self._expect(resp, (400, 429))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/checkout",
            data="not json at all",
            headers={**self.headers, "Content-Type": "application/json"},
            catch_response=True
        ) as resp:
            self._expect(resp, (400, 429))

    @tag("edge")
    @task
    def unknown_status(self):
        """Unknown events fail closed with 200."""
        with self.client.get("/status?event_id=nope",
            name="/status [unknown]",
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 200 and resp.json() == {"soldOut": True, "lowStock": False}:
                resp.success()
            elif resp.status_code == 429:
                resp.success()
            else:
                resp.failure(f"Expected fail-closed 200, got {resp.status_code}")

    @tag("edge")
    @task
    def forged_webhook(self):
        with self.client.post("/payment-webhook",
            data=b'{"type": "checkout.session.completed"}',
            headers={"x-mockpay-signature": "forged"},
            catch_response=True
        ) as resp:
            self._expect(resp, (400,))
