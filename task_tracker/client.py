import os
from collections import Counter
from typing import Any, Iterable, Optional

import requests

from .config import DEFAULT_API_URL
from .models import TaskStatus


class TaskApiError(Exception):
    def __init__(self, action: str, status_code: int) -> None:
        super().__init__(f"{action} failed: {status_code}")
        self.action = action
        self.status_code = status_code


class TaskClient:
    """Request wrapper used by the presentation layer.

    ``session`` may be any object exposing ``request(method, url, params=, json=, timeout=)``;
    a ``requests.Session`` is created when none is given.
    """

    def __init__(self, base_url: Optional[str] = None, session: Any = None, timeout: float = 10.0) -> None:
        base_url = base_url or os.getenv("TASKS_API_URL", DEFAULT_API_URL)
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, action: str, method: str, path: str, **kwargs: Any) -> Any:
        response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        if not 200 <= response.status_code < 300:
            raise TaskApiError(action, response.status_code)
        return response.json()

    def fetch_tasks(self, **filters: Optional[str]) -> list[dict]:
        params = {key: value for key, value in filters.items() if value}
        return self._request("Fetch tasks", "GET", "/tasks", params=params)

    def create_task(self, title: str, description: Optional[str] = None) -> dict:
        return self._request(
            "Create task", "POST", "/tasks", json={"title": title, "description": description}
        )

    def update_task(self, task_id: int, patch: dict) -> dict:
        return self._request("Update task", "PATCH", f"/tasks/{task_id}", json=patch)

    def complete_task(self, task_id: int) -> dict:
        return self.update_task(task_id, {"status": TaskStatus.COMPLETED.value})

    def health(self) -> dict:
        return self._request("Health check", "GET", "/_health")


def count_by_status(tasks: Iterable[dict]) -> dict[str, int]:
    counts = Counter(task.get("status") for task in tasks)
    return {status.value: counts[status.value] for status in TaskStatus}
