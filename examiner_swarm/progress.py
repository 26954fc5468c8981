"""
Progress broadcasting for grading requests.

Events are advisory. A sink that fails must never affect grading, so the
orchestrator only ever talks to sinks through SafeBroadcaster.
"""

import inspect
from typing import Any, Protocol, runtime_checkable

from examiner_swarm.logging import get_logger
from examiner_swarm.models import ProgressEvent

logger = get_logger(__name__)


@runtime_checkable
class ProgressBroadcaster(Protocol):
    """Anything with a `publish(event)` method; sync or async."""

    def publish(self, event: ProgressEvent) -> Any: ...


class NullBroadcaster:
    """Discards every event."""

    def publish(self, event: ProgressEvent) -> None:
        return None


class RecordingBroadcaster:
    """Keeps every event in memory, in publish order."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def publish(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]

    def clear(self) -> None:
        self.events.clear()


class SafeBroadcaster:
    """
    Wraps a sink so that publishing never raises.

    The sink's `publish` may be a plain method or a coroutine function;
    either way its exceptions are logged and dropped.
    """

    def __init__(self, sink: ProgressBroadcaster | None = None):
        self._sink = sink or NullBroadcaster()

    @property
    def sink(self) -> ProgressBroadcaster:
        return self._sink

    async def publish(self, event: ProgressEvent) -> None:
        try:
            outcome = self._sink.publish(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(
                "progress_publish_failed",
                kind=event.kind,
                request_id=event.request_id,
                error=repr(e),
            )
