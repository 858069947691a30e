from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Iterator

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def sse_event(payload: Dict[str, Any]) -> bytes:
    """
    Encode one server-sent event: `data: <json>\\n\\n`.
    Keys with a None value are dropped.
    """
    body = {k: v for k, v in payload.items() if v is not None}
    return f"data: {json.dumps(body, separators=(',', ':'))}\n\n".encode("utf-8")


def sse_stream(events: Iterable[Dict[str, Any]]) -> Iterator[bytes]:
    """
    Stream events as they are produced; nothing is buffered.
    """
    for ev in events:
        yield sse_event(ev)


def iter_sse_data(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """
    Inverse of sse_event for a line iterator (e.g. httpx Response.iter_lines()).
    Non-data lines are skipped; unparseable data lines are skipped too.
    """
    for line in lines:
        if not line or not line.startswith("data:"):
            continue
        raw = line[len("data:"):].strip()
        try:
            data = json.loads(raw)
        except ValueError:
            continue
        if isinstance(data, dict):
            yield data
