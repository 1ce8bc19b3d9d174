"""
Thin async client for the Sky event database REST API
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import quote
import json
import logging

import httpx

from core.config import DEFAULT_SKY_HOST, DEFAULT_SKY_PORT, PropertySpec
from core.exceptions import SkyError

logger = logging.getLogger(__name__)


def format_timestamp(timestamp: datetime) -> str:
    """Render a timestamp the way Sky expects it (RFC 3339)"""
    value = timestamp.isoformat()
    if value.endswith("+00:00"):
        value = value[:-6] + "Z"
    return value


class SkyClient:
    """
    Connection to a Sky server.

    The client owns its httpx.AsyncClient unless one is passed in, in
    which case the caller is responsible for closing it.
    """

    def __init__(
        self,
        host: str = DEFAULT_SKY_HOST,
        port: int = DEFAULT_SKY_PORT,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(base_url=self.base_url)

    async def __aenter__(self) -> "SkyClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._owns_client:
            await self.http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        json_body: Optional[Any] = None,
        content: Optional[bytes] = None,
        allow_not_found: bool = False
    ) -> Optional[httpx.Response]:
        """
        Send a request to the server.

        Returns None for a 404 when allow_not_found is set.

        Raises:
            SkyError: On transport failure or a non-success status
        """
        url = self.base_url + path
        try:
            response = await self.http.request(method, url, json=json_body, content=content)
        except httpx.HTTPError as e:
            raise SkyError(
                f"Request to Sky failed: {method} {path}",
                context={"method": method, "path": path},
                original_exception=e
            )

        if allow_not_found and response.status_code == 404:
            return None

        if not response.is_success:
            raise SkyError(
                f"Sky returned {response.status_code} for {method} {path}",
                context={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                }
            )
        return response

    async def ping(self) -> bool:
        """Check if the server is running"""
        try:
            await self.request("GET", "/ping")
        except SkyError as e:
            logger.debug(f"Ping failed: {e}")
            return False
        return True

    async def get_table(self, name: str) -> Optional["SkyTable"]:
        response = await self.request("GET", f"/tables/{quote(name, safe='')}", allow_not_found=True)
        if response is None:
            return None
        return SkyTable(name, self)

    async def create_table(self, name: str) -> "SkyTable":
        await self.request("POST", "/tables", json_body={"name": name})
        logger.info(f"Created table {name}")
        return SkyTable(name, self)

    async def delete_table(self, table: "SkyTable"):
        await self.request("DELETE", table.path)
        logger.info(f"Deleted table {table.name}")


class SkyTable:
    """Handle on a single Sky table"""

    def __init__(self, name: str, client: SkyClient):
        self.name = name
        self.client = client

    @property
    def path(self) -> str:
        return f"/tables/{quote(self.name, safe='')}"

    async def create_property(self, spec: PropertySpec):
        # Sky calls non-dimension properties permanent and dimensions transient
        body = {
            "name": spec.name,
            "transient": spec.dimension,
            "dataType": spec.data_type,
        }
        await self.client.request("POST", f"{self.path}/properties", json_body=body)
        logger.debug(f"Created property {spec.name} on {self.name}")

    async def add_event(self, object_id: str, timestamp: datetime, data: Dict[str, Any]):
        """Insert a single event, merging into any event at the same timestamp"""
        path = (
            f"{self.path}/objects/{quote(object_id, safe='')}"
            f"/events/{quote(format_timestamp(timestamp), safe='')}"
        )
        await self.client.request("PATCH", path, json_body={"data": data})

    @asynccontextmanager
    async def stream(self) -> AsyncIterator["EventStream"]:
        """
        Open a stream session.

        Events added inside the block are sent in one request when the
        block exits normally. Nothing is sent if the block raises.
        """
        stream = EventStream(self)
        yield stream
        await stream.flush()


class EventStream:
    """Buffer of newline-delimited events sent to a table in one request"""

    def __init__(self, table: SkyTable):
        self.table = table
        self._lines: List[bytes] = []

    def __len__(self) -> int:
        return len(self._lines)

    def add_event(self, object_id: str, timestamp: datetime, data: Dict[str, Any]):
        """
        Queue one event on the stream.

        Raises:
            SkyError: If the event cannot be serialized
        """
        try:
            line = json.dumps({
                "id": object_id,
                "timestamp": format_timestamp(timestamp),
                "data": data,
            })
        except (TypeError, ValueError) as e:
            raise SkyError(
                "Event could not be serialized",
                context={"object_id": object_id},
                original_exception=e
            )
        self._lines.append(line.encode("utf-8") + b"\n")

    async def flush(self) -> int:
        """Send buffered events and return how many were sent"""
        if not self._lines:
            return 0
        count = len(self._lines)
        await self.table.client.request(
            "PATCH",
            f"{self.table.path}/events",
            content=b"".join(self._lines)
        )
        self._lines = []
        return count
