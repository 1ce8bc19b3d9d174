"""
Hourly GitHub Archive extractor.

Retrieves one gzip-compressed archive per hour over plain HTTP. There is
no authentication, no retry and no timeout override: a failed hour is
reported once and the caller moves on to the next one.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator
import logging

import httpx

from core.config import DEFAULT_ARCHIVE_URL
from core.exceptions import FetchError
from ingestion.extractors.decoders import inflate

logger = logging.getLogger(__name__)


def archive_url(base_url: str, hour: datetime) -> str:
    """
    Build the archive URL for an hour.

    Month and day are zero padded, the hour is not:
    http://data.githubarchive.org/2013-01-01-5.json.gz
    """
    return f"{base_url.rstrip('/')}/{hour.year}-{hour.month:02d}-{hour.day:02d}-{hour.hour}.json.gz"


class ArchiveExtractor:
    """
    Open hourly archives as streams of decompressed bytes.

    Attributes:
        client: Shared HTTP client used for every hour
        base_url: Archive host, without trailing slash
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_ARCHIVE_URL):
        self.client = client
        self.base_url = base_url.rstrip("/")

    def url_for(self, hour: datetime) -> str:
        return archive_url(self.base_url, hour)

    @asynccontextmanager
    async def open(self, hour: datetime) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Stream the decompressed archive for an hour.

        The response is released when the block exits, whether it
        completes, raises or stops reading early.

        Raises:
            FetchError: On network failure, a non-success status or an
                unreadable response stream
            DecompressionError: While reading, if the body is not gzip
        """
        url = self.url_for(hour)
        logger.info(url)

        try:
            async with self.client.stream("GET", url) as response:
                if not response.is_success:
                    raise FetchError(
                        f"Archive request returned {response.status_code}",
                        context={"url": url, "status_code": response.status_code}
                    )
                yield inflate(response.aiter_raw(), url)
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise FetchError(
                f"Archive request failed: {type(e).__name__}",
                context={"url": url},
                original_exception=e
            )
