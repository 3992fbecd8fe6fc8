"""
Progress Stream - Newline-delimited JSON encoding of scan progress

Producer side turns ProgressEvents into one JSON object per line. Consumer
side reassembles lines from arbitrarily split chunks and hands back the
final event.
"""

from __future__ import annotations

import codecs
import json
from typing import AsyncIterable, AsyncIterator, Optional

import aiohttp
from pydantic import ValidationError

from models.scan import ProgressEvent

from .errors import ParseFailure

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def encode_event(event: ProgressEvent) -> str:
    """One event as a single JSON line, camelCase keys, unset fields omitted"""
    return event.model_dump_json(by_alias=True, exclude_none=True) + "\n"


def decode_line(line: str) -> ProgressEvent:
    """Parse one stream line; raises ParseFailure on malformed input"""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ParseFailure(line, str(e)) from e
    if not isinstance(data, dict):
        raise ParseFailure(line, "not a JSON object")
    try:
        return ProgressEvent.model_validate(data)
    except ValidationError as e:
        raise ParseFailure(line, str(e)) from e


async def ndjson_lines(events: AsyncIterable[ProgressEvent]) -> AsyncIterator[str]:
    """Encode an event sequence for a streaming HTTP body"""
    async for event in events:
        yield encode_event(event)


async def sse_messages(events: AsyncIterable[ProgressEvent]) -> AsyncIterator[dict]:
    """Same events framed for an EventSource consumer"""
    async for event in events:
        yield {"event": "progress", "data": event.model_dump_json(by_alias=True, exclude_none=True)}


class ProgressStreamDecoder:
    """Incremental NDJSON decoder tolerant of chunk boundaries"""

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""

    def _parse(self, line: str) -> Optional[ProgressEvent]:
        if not line.strip():
            return None
        try:
            return decode_line(line)
        except ParseFailure as e:
            if self.strict:
                raise
            print(f"[ProgressStream] Skipping malformed progress update: {e}")
            return None

    def feed(self, chunk: bytes | str) -> list[ProgressEvent]:
        """Add a chunk and return the events completed by it"""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        events = []
        for line in lines:
            event = self._parse(line)
            if event is not None:
                events.append(event)
        return events

    def finish(self) -> list[ProgressEvent]:
        """Flush whatever is left once the transport closes"""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        event = self._parse(tail)
        return [event] if event is not None else []


async def read_progress_stream(
    chunks: AsyncIterable[bytes | str],
    on_progress=None,
    strict: bool = False,
) -> ProgressEvent:
    """Consume a progress stream until it closes and return the final event.

    on_progress is called with every non-final event. Raises ParseFailure
    if the stream ends without a final event.
    """
    decoder = ProgressStreamDecoder(strict=strict)
    final_event = None

    def _handle(events: list[ProgressEvent]):
        nonlocal final_event
        for event in events:
            if event.is_final:
                final_event = event
            elif on_progress is not None:
                on_progress(event)

    async for chunk in chunks:
        _handle(decoder.feed(chunk))
    _handle(decoder.finish())

    if final_event is None:
        raise ParseFailure("", "No final data received from server")
    return final_event


async def fetch_scan_stream(
    base_url: str,
    source_theme: str,
    target_theme: str,
    on_progress=None,
    timeout_seconds: int = 3600,
) -> ProgressEvent:
    """Run a scan against a remote backend and return its final event"""
    url = f"{base_url.rstrip('/')}/api/scan"
    timeout = aiohttp.ClientTimeout(total=timeout_seconds)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.get(url, params={"source": source_theme, "target": target_theme}) as response:
            if response.status != 200:
                error_text = await response.text()
                raise RuntimeError(f"Scan request failed (HTTP {response.status}): {error_text}")
            return await read_progress_stream(response.content.iter_any(), on_progress)
