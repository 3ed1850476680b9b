from __future__ import annotations

import asyncio
from typing import Any


class StateHub:
    """
    In-memory pubsub for broadcast state snapshots.

    - Each subscriber gets an asyncio.Queue(maxsize=1) (latest-wins): a slow
      renderer only ever sees the newest state.
    - Late subscribers immediately receive the last published snapshot.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._subscribers: set[asyncio.Queue[dict[str, Any]]] = set()
        self._latest: dict[str, Any] | None = None

    @property
    def latest(self) -> dict[str, Any] | None:
        return self._latest

    async def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        q: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=1)
        async with self._lock:
            self._subscribers.add(q)
            if self._latest is not None:
                q.put_nowait(self._latest)
        return q

    async def unsubscribe(self, q: asyncio.Queue[dict[str, Any]]) -> None:
        async with self._lock:
            self._subscribers.discard(q)

    async def publish(self, payload: dict[str, Any]) -> None:
        async with self._lock:
            self._latest = payload
            subs = list(self._subscribers)
        for q in subs:
            # latest-wins: if queue is full, drop the old snapshot
            if q.full():
                try:
                    _ = q.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                pass
