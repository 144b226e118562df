"""
Fixtures for backend client tests: an httpx.MockTransport that records requests.
"""

from typing import Callable, List, Optional

import httpx
import pytest


class Recorder:
    """Captures requests and answers with a scripted handler."""

    def __init__(self, handler: Optional[Callable[[httpx.Request], httpx.Response]] = None):
        self.requests: List[httpx.Request] = []
        self._handler = handler or self._ok

    @staticmethod
    def _ok(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(200)
        return httpx.Response(200, json={"took": 1, "errors": False, "items": []})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_recorder():
    return Recorder
