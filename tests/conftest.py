"""
Pytest configuration and fixtures
"""

import gzip
import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from core.config import ImportConfig

ARCHIVE_BASE_URL = "http://archive.test"


def make_archive(records: List[Any], trailing: str = "\n") -> bytes:
    """Gzip records as newline-delimited JSON, the way the archive serves them"""
    lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
    return gzip.compress(("\n".join(lines) + trailing).encode("utf-8"))


async def chunked(data: bytes, size: int = 7):
    """Yield data in small pieces to exercise record boundaries across chunks"""
    for i in range(0, len(data), size):
        yield data[i:i + size]


def archive_response(data: bytes) -> httpx.Response:
    """Serve a body as a stream so it can be read with aiter_raw"""
    return httpx.Response(200, stream=httpx.ByteStream(data))


class FakeSkyServer:
    """
    In-memory stand-in for the Sky REST API, served via httpx.MockTransport.

    Records every request so tests can assert on provisioning order and
    streamed events.
    """

    def __init__(self, tables: List[str] = None, running: bool = True):
        self.running = running
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in (tables or [])}
        self.events: Dict[str, List[Dict[str, Any]]] = {}
        self.requests: List[str] = []
        self.fail_stream = False

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(f"{request.method} {path}")

        if not self.running:
            raise httpx.ConnectError("Connection refused", request=request)

        if request.method == "GET" and path == "/ping":
            return httpx.Response(200, json={"message": "ok"})

        if request.method == "POST" and path == "/tables":
            name = json.loads(request.content)["name"]
            self.tables[name] = []
            return httpx.Response(200, json={"name": name})

        parts = path.strip("/").split("/")
        name = parts[1] if len(parts) > 1 else None

        if request.method == "GET" and len(parts) == 2:
            if name in self.tables:
                return httpx.Response(200, json={"name": name})
            return httpx.Response(404, json={"message": "Table does not exist"})

        if request.method == "DELETE" and len(parts) == 2:
            self.tables.pop(name, None)
            self.events.pop(name, None)
            return httpx.Response(200)

        if request.method == "POST" and parts[2:] == ["properties"]:
            self.tables[name].append(json.loads(request.content))
            return httpx.Response(200, json={})

        if request.method == "PATCH" and parts[2:] == ["events"]:
            if self.fail_stream:
                return httpx.Response(500, text="stream failed")
            lines = request.content.decode("utf-8").splitlines()
            self.events.setdefault(name, []).extend(json.loads(line) for line in lines)
            return httpx.Response(200)

        if request.method == "PATCH" and parts[2] == "objects":
            body = json.loads(request.content)
            self.events.setdefault(name, []).append(
                {"id": parts[3], "timestamp": parts[5], "data": body["data"]}
            )
            return httpx.Response(200)

        return httpx.Response(404)


def archive_handler(archives: Dict[str, bytes]) -> Callable[[httpx.Request], httpx.Response]:
    """Serve archives keyed by file name; anything else is a 404"""

    def handle(request: httpx.Request) -> httpx.Response:
        name = request.url.path.lstrip("/")
        if name not in archives:
            return httpx.Response(404, text="Not Found")
        return archive_response(archives[name])

    return handle


@pytest.fixture
def import_config():
    """Config pointing at the fake archive host"""
    return ImportConfig(archive_url=ARCHIVE_BASE_URL, table="gharchive", port=8585)


@pytest.fixture
def sample_records():
    """Archive records as found in a 2013 hourly file"""
    return [
        {
            "created_at": "2013-01-01T00:00:05Z",
            "actor": "bob",
            "type": "WatchEvent",
            "repository": {"language": "Ruby", "forks": 1, "watchers": 10, "stargazers": 10, "size": 120}
        },
        {
            "created_at": "2013-01-01T00:00:00Z",
            "actor": "alice",
            "type": "PushEvent",
            "repository": {"language": "Go", "forks": 3}
        },
        {
            "created_at": "2013-01-01T00:00:05Z",
            "actor": "carol",
            "type": "ForkEvent"
        },
        {
            "created_at": "2013-01-01T00:00:02Z",
            "type": "PushEvent"
        },
    ]
