from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from mcp_server_coralogix.mcp_tools_coralogix.services.background import (
    CANCEL_PATH,
    DATA_PATH,
    STATUS_PATH,
    SUBMIT_PATH,
)


class ScriptedClient:
    """Stand-in for CoralogixClient that replays canned bodies (or raises)."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Tuple[str, str, Optional[Any]]] = []

    def request(self, method: str, path: str, body: Optional[Any] = None) -> str:
        self.calls.append((method, path, body))
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {path}")
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        if isinstance(resp, str):
            return resp
        return json.dumps(resp)


class FakeBackgroundService:
    """In-memory remote side of the background query API.

    Tests move jobs between lifecycle states with ``set_state``; the client
    talks to it through ``request`` like to the real service.
    """

    def __init__(self) -> None:
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.results: Dict[str, List[Dict[str, Any]]] = {}
        self.cancel_requests: List[str] = []
        self.calls: List[Tuple[str, str, Optional[Any]]] = []
        self._next = 1

    def set_state(self, job_id: str, **state: Any) -> None:
        job = self.jobs[job_id]
        for key in ("waitingForExecution", "running", "terminated"):
            job.pop(key, None)
        job.update(state)

    def request(self, method: str, path: str, body: Optional[Any] = None) -> str:
        self.calls.append((method, path, body))
        if path == SUBMIT_PATH:
            job_id = f"job-{self._next}"
            self._next += 1
            self.jobs[job_id] = {"submittedAt": "2025-06-19T21:00:00Z", "waitingForExecution": {}}
            return json.dumps({"queryId": job_id, "warnings": []})

        job_id = body["queryId"]
        if path == STATUS_PATH:
            return json.dumps(dict(self.jobs[job_id], metadata=[], warnings=[]))
        if path == DATA_PATH:
            job = self.jobs[job_id]
            if "success" not in job.get("terminated", {}):
                return ""
            return json.dumps({"response": {"results": {"results": self.results.get(job_id, [])}}})
        if path == CANCEL_PATH:
            self.cancel_requests.append(job_id)
            return "{}"
        raise AssertionError(f"unexpected path {path}")


@pytest.fixture
def service() -> FakeBackgroundService:
    return FakeBackgroundService()


@pytest.fixture
def scripted():
    return ScriptedClient
