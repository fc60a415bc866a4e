"""In-process post-commit hooks for side effects that must not block or roll back a write."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Set

from opentelemetry import trace

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MEMBER_ADDED = "membership.added"
MEMBER_REMOVED = "membership.removed"
PROFILE_UPDATED = "identity.profile_updated"

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


class PostCommitHooks:
    """Dispatch committed-write notifications to handlers as detached tasks.

    ``publish`` returns as soon as the handlers are scheduled. A failing handler is
    logged and never reaches the publisher, so the write that triggered it stands.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, topic: str, handler: Handler) -> None:
        self._handlers[topic].append(handler)

    def has_subscribers(self, topic: str) -> bool:
        return bool(self._handlers.get(topic))

    def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """Schedule every handler for ``topic``; returns the number scheduled."""

        handlers = list(self._handlers.get(topic, ()))
        for handler in handlers:
            task = asyncio.create_task(self._run(topic, handler, dict(payload)))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return len(handlers)

    async def drain(self) -> None:
        """Wait for every scheduled handler to finish (shutdown and tests)."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def _run(self, topic: str, handler: Handler, payload: Dict[str, Any]) -> None:
        with tracer.start_as_current_span("hooks.dispatch") as span:
            span.set_attribute("hook.topic", topic)
            span.set_attribute("hook.handler", getattr(handler, "__qualname__", repr(handler)))
            try:
                await handler(payload)
            except Exception as exc:
                span.record_exception(exc)
                logger.exception("Post-commit hook failed for %s: %s", topic, exc)


post_commit_hooks = PostCommitHooks()
