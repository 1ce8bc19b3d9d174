"""
Gzip inflation and JSON record decoding for hourly archives.

Archives are newline-delimited JSON compressed with gzip. Decoding is
lazy and tolerant: a malformed record is logged as a DecodeError and
skipped, it never aborts the rest of the hour.
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
import codecs
import json
import logging
import re
import zlib

from core.exceptions import DecodeError, DecompressionError

logger = logging.getLogger(__name__)

GZIP_WBITS = zlib.MAX_WBITS | 16

# Closing brace followed by an opening one, e.g. the "}{" between records
_OBJECT_BOUNDARY = re.compile(r"\}\s*(?=\{)")


async def inflate(chunks: AsyncIterator[bytes], url: Optional[str] = None) -> AsyncIterator[bytes]:
    """
    Incrementally decompress a gzip body.

    Concatenated gzip members are decoded back to back.

    Raises:
        DecompressionError: If the body is empty, truncated or not gzip
    """
    decompressor = zlib.decompressobj(GZIP_WBITS)
    received = False
    in_member = False

    async for chunk in chunks:
        while chunk:
            received = True
            in_member = True
            try:
                block = decompressor.decompress(chunk)
            except zlib.error as e:
                raise DecompressionError(
                    "Invalid gzip data",
                    context={"url": url},
                    original_exception=e
                )
            if block:
                yield block

            if decompressor.eof:
                chunk = decompressor.unused_data
                decompressor = zlib.decompressobj(GZIP_WBITS)
                in_member = False
            else:
                chunk = b""

    if not received:
        raise DecompressionError("Empty archive body", context={"url": url})
    if in_member:
        raise DecompressionError("Truncated gzip data", context={"url": url})


async def iter_lines(blocks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Split a byte stream into lines without their terminators"""
    pending = b""
    async for block in blocks:
        pending += block
        *lines, pending = pending.split(b"\n")
        for line in lines:
            yield line
    if pending:
        yield pending


class RecordDecoder:
    """
    Decode archive records from decompressed blocks.

    Modes:
        lines: one JSON value per line (blank lines are ignored)
        stream: back-to-back JSON values; after a malformed value the
            decoder resynchronises at the next line or the next object
            that directly follows a closing brace

    Attributes:
        records_read: Number of records decoded successfully
        errors: DecodeErrors raised for malformed records
    """

    def __init__(self, mode: str = "lines", url: Optional[str] = None):
        if mode not in ("lines", "stream"):
            raise ValueError(f"Unknown decode mode: {mode}")
        self.mode = mode
        self.url = url
        self.records_read = 0
        self.errors: List[DecodeError] = []
        self._json = json.JSONDecoder()

    def decode(self, blocks: AsyncIterator[bytes]) -> AsyncIterator[Tuple[int, Dict[str, Any]]]:
        """Yield (record number, record) pairs from decompressed blocks"""
        if self.mode == "stream":
            return self._decode_stream(blocks)
        return self._decode_lines(blocks)

    def _error(self, message: str, line_number: int, original_exception: Optional[Exception] = None):
        error = DecodeError(
            message,
            line_number=line_number,
            context={"url": self.url},
            original_exception=original_exception
        )
        self.errors.append(error)
        logger.warning(
            f"[L{line_number}] {message}",
            extra={"error_context": error.to_dict()}
        )

    def _accept(self, value: Any, line_number: int) -> bool:
        if not isinstance(value, dict):
            self._error(f"Expected a JSON object, got {type(value).__name__}", line_number)
            return False
        self.records_read += 1
        return True

    async def _decode_lines(self, blocks: AsyncIterator[bytes]) -> AsyncIterator[Tuple[int, Dict[str, Any]]]:
        line_number = 0
        async for line in iter_lines(blocks):
            line_number += 1
            if not line.strip():
                continue
            try:
                value = json.loads(line)
            except (ValueError, RecursionError) as e:
                # UnicodeDecodeError is a ValueError, deep nesting a RecursionError
                self._error(f"Malformed record: {e}", line_number, e)
                continue
            if self._accept(value, line_number):
                yield line_number, value

    async def _decode_stream(self, blocks: AsyncIterator[bytes]) -> AsyncIterator[Tuple[int, Dict[str, Any]]]:
        text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        record_number = 0

        async for block in blocks:
            buffer += text_decoder.decode(block)
            # Only hand complete lines to the parser until the stream ends
            cut = buffer.rfind("\n") + 1
            if not cut:
                continue
            ready, buffer = buffer[:cut], buffer[cut:]
            values, leftover, record_number = self._parse_values(ready, record_number, final=False)
            buffer = leftover + buffer
            for number, value in values:
                yield number, value

        buffer += text_decoder.decode(b"", final=True)
        values, _, record_number = self._parse_values(buffer, record_number, final=True)
        for number, value in values:
            yield number, value

    def _parse_values(self, text: str, record_number: int, final: bool):
        """
        Parse consecutive JSON values out of text.

        Returns the decoded values, the unconsumed tail (a value that may
        continue on a later line) and the updated record count.
        """
        values = []
        idx = 0
        end = len(text)

        while True:
            while idx < end and text[idx].isspace():
                idx += 1
            if idx >= end:
                return values, "", record_number

            try:
                value, next_idx = self._json.raw_decode(text, idx)
            except json.JSONDecodeError as e:
                if not final and e.pos >= end:
                    # Value runs past the available lines
                    return values, text[idx:], record_number
                record_number += 1
                self._error(f"Malformed record: {e.msg}", record_number, e)
            except RecursionError as e:
                record_number += 1
                self._error("Malformed record: nesting too deep", record_number, e)
            else:
                record_number += 1
                if self._accept(value, record_number):
                    values.append((record_number, value))
                idx = next_idx
                continue

            idx = _resync(text, idx)
            if idx is None:
                return values, "", record_number


def _resync(text: str, idx: int) -> Optional[int]:
    """
    Find where the next record may start after a malformed value at idx.

    That is the earlier of the next line and the next object that directly
    follows a closing brace, or None if neither exists.
    """
    candidates = []
    newline = text.find("\n", idx)
    if newline >= 0:
        candidates.append(newline + 1)
    boundary = _OBJECT_BOUNDARY.search(text, idx + 1)
    if boundary:
        candidates.append(boundary.end())
    return min(candidates) if candidates else None
