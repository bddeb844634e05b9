"""Supabase (PostgREST) client for the shared task and activity tables."""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from .feed import PollingFeed, diff_latest_activity, diff_snapshots
from .models import Activity, Task
from .remote import ActivityInserted, TaskChange

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
ACTIVITIES_TABLE = "activities"


class SupabaseClient:
    """Thin REST client for a Supabase project's PostgREST endpoint."""

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = (url or "").rstrip("/")
        self.key = key or ""
        self._client = httpx.Client(
            base_url=f"{self.url}/rest/v1" if self.url else "http://unconfigured.invalid",
            headers={
                "apikey": self.key,
                "Authorization": f"Bearer {self.key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def is_configured(self) -> bool:
        return bool(self.url and self.key)

    def request(
        self,
        method: str,
        table: str,
        params: dict | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Execute a request against a table and return the decoded body."""
        headers = {"Prefer": prefer} if prefer else None
        resp = self._client.request(
            method, f"/{table}", params=params, json=json, headers=headers
        )
        if resp.is_error:
            logger.debug("%s /%s failed: %s", method, table, resp.text)
        resp.raise_for_status()
        if not resp.content:
            return None
        return resp.json()

    # ------------------------------------------------------------------
    # Row operations
    # ------------------------------------------------------------------

    def select(self, table: str, order: str | None = None, limit: int | None = None) -> list[dict]:
        params: dict = {"select": "*"}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        return self.request("GET", table, params=params) or []

    def insert(self, table: str, rows: dict | list[dict]) -> None:
        self.request("POST", table, json=rows, prefer="return=minimal")

    def update(self, table: str, row_id: str, fields: dict) -> None:
        self.request(
            "PATCH", table, params={"id": f"eq.{row_id}"}, json=fields, prefer="return=minimal"
        )

    def delete(self, table: str, row_id: str) -> None:
        self.request("DELETE", table, params={"id": f"eq.{row_id}"})

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()


class SupabaseTaskSource:
    """The shared ``tasks`` table, with a polling change feed."""

    def __init__(self, client: SupabaseClient, poll_interval: float = 5.0) -> None:
        self.client = client
        self.poll_interval = poll_interval

    def is_configured(self) -> bool:
        return self.client.is_configured()

    def list(self) -> list[Task]:
        """All tasks, newest first."""
        rows = self.client.select(TASKS_TABLE, order="created_at.desc")
        return [Task.from_row(r) for r in rows]

    def insert(self, tasks: Task | list[Task]) -> None:
        if isinstance(tasks, Task):
            self.client.insert(TASKS_TABLE, tasks.to_row())
        elif tasks:
            self.client.insert(TASKS_TABLE, [t.to_row() for t in tasks])

    def update(self, task_id: str, fields: dict) -> None:
        self.client.update(TASKS_TABLE, task_id, fields)

    def delete(self, task_id: str) -> None:
        self.client.delete(TASKS_TABLE, task_id)

    def subscribe(
        self,
        on_change: Callable[[TaskChange], None],
        baseline: list[Task] | None = None,
    ) -> PollingFeed:
        kwargs = {} if baseline is None else {"baseline": baseline}
        feed = PollingFeed(
            self.list,
            diff_snapshots,
            on_change,
            interval=self.poll_interval,
            name="tasks",
            **kwargs,
        )
        return feed.start()


class SupabaseActivitySource:
    """The shared ``activities`` table; only the newest row is read."""

    def __init__(self, client: SupabaseClient, poll_interval: float = 5.0) -> None:
        self.client = client
        self.poll_interval = poll_interval

    def is_configured(self) -> bool:
        return self.client.is_configured()

    def latest(self) -> Activity | None:
        rows = self.client.select(ACTIVITIES_TABLE, order="created_at.desc", limit=1)
        if not rows:
            return None
        return Activity.from_row(rows[0])

    def insert(self, activity: Activity) -> None:
        self.client.insert(ACTIVITIES_TABLE, activity.to_row())

    def subscribe(
        self,
        on_change: Callable[[ActivityInserted], None],
        baseline: Activity | None = None,
    ) -> PollingFeed:
        feed = PollingFeed(
            self.latest,
            diff_latest_activity,
            on_change,
            interval=self.poll_interval,
            name="activities",
            baseline=baseline,
        )
        return feed.start()
