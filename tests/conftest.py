from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pytest
import requests
from requests.structures import CaseInsensitiveDict

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stereotype.client import StereotypeClient  # noqa: E402
from stereotype.config import ClientConfig  # noqa: E402

BASE = "https://svc.example"


def make_response(
    status: int = 200,
    *,
    body: str | bytes = b"",
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    url: str = "",
    reason: str = "",
) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r.reason = reason
    r.url = url
    r.encoding = "utf-8"
    hdrs = dict(headers or {})
    if json_body is not None:
        body = json.dumps(json_body)
        hdrs.setdefault("Content-Type", "application/json")
    r._content = body.encode("utf-8") if isinstance(body, str) else body
    r.headers = CaseInsensitiveDict(hdrs)
    return r


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    params: dict[str, str] | None
    json: Any
    data: bytes | None
    timeout: float | None


Handler = Callable[[RecordedCall], requests.Response]


class FakeSession:
    """Stands in for `requests.Session`: records every call and replays queued responses."""

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self.closed = False
        self._routes: dict[tuple[str, str], list[requests.Response | Exception | Handler]] = {}

    def add(self, method: str, url: str, *replies: requests.Response | Exception | Handler) -> None:
        self._routes.setdefault((method, url), []).extend(replies)

    def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        json: Any = None,
        data: bytes | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        call = RecordedCall(method, url, dict(headers or {}), params, json, data, timeout)
        self.calls.append(call)
        queue = self._routes.get((method, url))
        if not queue:
            raise AssertionError(f"unexpected request: {method} {url}")
        # the last reply sticks so repeated calls keep getting it
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(call)
        return reply

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> StereotypeClient:
    return StereotypeClient("Bearer secret-token", ClientConfig(base_url=BASE + "/"), session=session)
