"""Scripts-folder pipeline.

Loads the metadata graph, then streams objects from a producer thread
through a bounded queue into the filter, render and emit stages running on
the caller's thread. Objects are rendered and emitted in enumeration order.
"""

import logging
import queue
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from dbmill.config import DEFAULT_QUEUE_SIZE
from dbmill.exceptions import RenderError
from dbmill.schema.catalog import load_metadata_graph
from dbmill.schema.enumerator import ObjectEnumerator
from dbmill.schema.models import DatabaseObject
from dbmill.schema.renderers import DefinitionRenderer, Renderer, RenderOptions
from dbmill.scripting.filter import ObjectFilter
from dbmill.types import ObjectKind

logger = logging.getLogger(__name__)

# (catalog, schema, name, kind, definition)
EmitCallback = Callable[[str, str | None, str, ObjectKind, bytes], None]

_END = object()
_POLL_SECONDS = 0.1


class PipelineClient(Protocol):
    """Client able to run catalog queries and stream the object list."""

    def fetchall(self, sql: str) -> list: ...

    def iterate(self, sql: str) -> Iterator[Any]: ...


@dataclass
class RunSummary:
    """Counts of what happened to each enumerated object."""

    emitted: int = 0
    filtered: int = 0
    failed: int = 0
    emit_failed: int = 0
    cancelled: bool = False


class ScriptsFolder:
    """Script every object that passes the filter through ``callback``.

    The query timeout is owned by the client; a timed-out metadata query
    aborts the run, a timed-out enumeration query ends it with an
    EnumerationError.
    """

    def __init__(
        self,
        client: PipelineClient,
        callback: EmitCallback,
        *,
        object_filter: ObjectFilter | None = None,
        skip_permissions: bool = False,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        renderers: Mapping[ObjectKind, Renderer] | None = None,
    ) -> None:
        self._client = client
        self._callback = callback
        self._filter = object_filter or ObjectFilter()
        self._options = RenderOptions(skip_permissions=skip_permissions)
        self._queue_size = queue_size
        self._renderers = renderers
        self._stop = threading.Event()
        self._cancel_requested = False
        self._producer_error: BaseException | None = None

    def cancel(self) -> None:
        """Stop the producer; objects already queued are still processed."""
        self._cancel_requested = True
        self._stop.set()

    def run(self) -> RunSummary:
        graph = load_metadata_graph(
            self._client, skip_permissions=self._options.skip_permissions
        )
        renderer = DefinitionRenderer(
            graph, options=self._options, renderers=self._renderers
        )

        summary = RunSummary()
        channel: queue.Queue = queue.Queue(maxsize=self._queue_size)
        producer = threading.Thread(
            target=self._produce, args=(channel,), name="dbmill-enumerator", daemon=True
        )
        producer.start()

        try:
            stream = self._drain(channel, producer)
            stream = self._kind_stage(stream, summary)
            stream = self._include_stage(stream, summary)
            stream = self._exclude_stage(stream, summary)
            for obj, definition in self._render_stage(stream, renderer, summary):
                self._emit(obj, definition, summary)
        finally:
            self._stop.set()
            producer.join()

        if self._producer_error is not None:
            raise self._producer_error

        summary.cancelled = self._cancel_requested
        logger.info(
            f"Scripted {summary.emitted} objects "
            f"({summary.filtered} filtered, {summary.failed} failed to render, "
            f"{summary.emit_failed} failed to save)"
        )
        return summary

    def _put(self, channel: queue.Queue, item: Any) -> bool:
        while True:
            try:
                channel.put(item, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                if self._stop.is_set():
                    return False

    def _produce(self, channel: queue.Queue) -> None:
        try:
            for obj in ObjectEnumerator(self._client):
                if self._stop.is_set() or not self._put(channel, obj):
                    break
        except Exception as e:
            self._producer_error = e
        finally:
            self._put(channel, _END)

    def _drain(
        self, channel: queue.Queue, producer: threading.Thread
    ) -> Iterator[DatabaseObject]:
        while True:
            try:
                item = channel.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if not producer.is_alive() and channel.empty():
                    return
                continue
            if item is _END:
                return
            yield item

    def _kind_stage(
        self, stream: Iterator[DatabaseObject], summary: RunSummary
    ) -> Iterator[DatabaseObject]:
        for obj in stream:
            if self._filter.kind_included(obj.kind):
                yield obj
            else:
                summary.filtered += 1
                logger.debug(f"Skipping {obj.qualified_name}: kind not selected")

    def _include_stage(
        self, stream: Iterator[DatabaseObject], summary: RunSummary
    ) -> Iterator[DatabaseObject]:
        for obj in stream:
            if self._filter.included(obj.qualified_name):
                yield obj
            else:
                summary.filtered += 1
                logger.debug(f"Skipping {obj.qualified_name}: not included")

    def _exclude_stage(
        self, stream: Iterator[DatabaseObject], summary: RunSummary
    ) -> Iterator[DatabaseObject]:
        for obj in stream:
            if self._filter.excluded(obj.qualified_name):
                summary.filtered += 1
                logger.debug(f"Skipping {obj.qualified_name}: excluded")
            else:
                yield obj

    def _render_stage(
        self,
        stream: Iterator[DatabaseObject],
        renderer: DefinitionRenderer,
        summary: RunSummary,
    ) -> Iterator[tuple[DatabaseObject, str]]:
        for obj in stream:
            try:
                definition = renderer.render(obj)
            except RenderError as e:
                summary.failed += 1
                logger.error(f"Failed to script {obj.qualified_name}: {e}")
                continue
            yield obj, definition

    def _emit(self, obj: DatabaseObject, definition: str, summary: RunSummary) -> None:
        try:
            self._callback(
                obj.catalog, obj.schema, obj.name, obj.kind, definition.encode("utf-8")
            )
        except Exception as e:
            summary.emit_failed += 1
            logger.error(f"Failed to save {obj.qualified_name}: {e}")
            return
        summary.emitted += 1
        logger.debug(f"Scripted {obj.kind.value} {obj.qualified_name}")
