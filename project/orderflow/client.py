# orderflow/client.py

"""
Client-side view of the order board.

OrderStore keeps the last snapshot it read from the API. The snapshot is
replaced as a whole on every refresh() and is never patched locally, so what
a dashboard shows is always something the server returned. Writes go through
the API and raise on failure; call refresh() afterwards to see their effect.
"""

import asyncio
from typing import Dict, List, Optional

import httpx

# board columns, in workflow order
STATUSES = ("pending_wallet", "pending_logistics", "pending", "delivered")


class OrderStoreError(Exception):
    """The API answered with success=false or a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class OrderStore:
    def __init__(self, http: httpx.Client, token: Optional[str] = None, page_size: int = 500):
        self.http = http
        self.token = token
        self.page_size = page_size
        self.orders: List[dict] = []
        self.refreshed = 0

    @classmethod
    def login(cls, http: httpx.Client, username: str, password: str, **kwargs) -> "OrderStore":
        store = cls(http, **kwargs)
        data = store._call("POST", "/auth/login", json={"username": username, "password": password})
        store.token = data["token"]
        return store

    def _call(self, method: str, url: str, **kwargs):
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self.http.request(method, url, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error or not body.get("success", False):
            raise OrderStoreError(response.status_code, body.get("message") or response.reason_phrase)
        return body.get("data")

    # ────────────── Reading ──────────────
    def refresh(self) -> List[dict]:
        """Re-reads every order and replaces the snapshot."""
        orders = []
        skip = 0
        while True:
            page = self._call("GET", "/orders/", params={"skip": skip, "limit": self.page_size})
            orders.extend(page)
            if len(page) < self.page_size:
                break
            skip += self.page_size
        self.orders = orders
        self.refreshed += 1
        return self.orders

    def get(self, invoice_code: str) -> Optional[dict]:
        for order in self.orders:
            if order["invoice_code"] == invoice_code:
                return order
        return None

    def by_status(self, status: str) -> List[dict]:
        return [o for o in self.orders if o["status"] == status]

    def count_by_status(self) -> Dict[str, int]:
        counts = {s: 0 for s in STATUSES}
        for order in self.orders:
            counts[order["status"]] = counts.get(order["status"], 0) + 1
        return counts

    async def poll(self, interval: float = 30, rounds: Optional[int] = None) -> None:
        """
        Refreshes every `interval` seconds until cancelled, or `rounds` times.
        A failed refresh keeps the previous snapshot and is raised.
        """
        done = 0
        while rounds is None or done < rounds:
            await asyncio.to_thread(self.refresh)
            done += 1
            if rounds is None or done < rounds:
                await asyncio.sleep(interval)

    # ────────────── Writing ──────────────
    def create(self, **order) -> dict:
        return self._call("POST", "/orders/", json=order)

    def verify_payment(self, order_id: int, **body) -> dict:
        return self._call("POST", f"/orders/{order_id}/verify-payment", json=body)

    def process(self, order_id: int, **body) -> dict:
        return self._call("POST", f"/orders/{order_id}/process", json=body)

    def deliver(self, order_id: int, **body) -> dict:
        return self._call("POST", f"/orders/{order_id}/deliver", json=body)
