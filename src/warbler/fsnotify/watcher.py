"""Polling watcher over a ``FileSystem``.

Every ``check_interval`` seconds the watcher walks its registered roots,
compares modification times with the last snapshot and emits::

    CREATE  file not seen before
    WRITE   modification time changed
    REMOVE  file not seen during this pass

Events and walk errors travel over zero-buffer anyio memory streams, so
each ``send`` waits for the consumer. Closing either receive stream ends
the watcher.
"""

import logging
from dataclasses import dataclass

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from warbler.fs import FileSystem, clean
from warbler.fsnotify.event import Event, Op

logger = logging.getLogger("warbler.watcher")

CHECK_INTERVAL = 3.0


@dataclass(slots=True)
class WatchedFile:
    mod_time: float
    generation: int


class Watcher:
    """Detects file changes by periodic scanning.

    ``check_interval`` is read on every tick and may be changed while the
    watcher runs.

    Usage::

        watcher = Watcher(fsys)
        watcher.add(".")
        async with anyio.create_task_group() as tg:
            tg.start_soon(watcher.run)
            async for event in watcher.events:
                ...
    """

    def __init__(self, fsys: FileSystem, *, check_interval: float = CHECK_INTERVAL) -> None:
        self.fsys = fsys
        self.check_interval = check_interval
        self._files: dict[str, WatchedFile] = {}
        self._roots: list[str] = []
        self._generation = 0
        self._scope: anyio.CancelScope | None = None
        self._stopped = False

        self._event_tx: MemoryObjectSendStream[Event]
        self.events: MemoryObjectReceiveStream[Event]
        self._event_tx, self.events = anyio.create_memory_object_stream[Event](0)

        self._error_tx: MemoryObjectSendStream[OSError]
        self.errors: MemoryObjectReceiveStream[OSError]
        self._error_tx, self.errors = anyio.create_memory_object_stream[OSError](0)

    @property
    def generation(self) -> int:
        """Number of completed or in-progress checks."""
        return self._generation

    def add(self, root: str) -> None:
        """Watch every file under *root*; existing files are snapshotted without events."""
        root = clean(root)
        if root not in self._roots:
            self._roots.append(root)
        for info in self.fsys.walk(root):
            self._files[info.name] = WatchedFile(mod_time=info.mod_time, generation=self._generation)

    async def run(self) -> None:
        """Scan until ``stop()`` is called or a consumer closes its stream."""
        self._scope = anyio.CancelScope()
        try:
            with self._scope:
                while not self._stopped:
                    await anyio.sleep(self.check_interval)
                    await self.check()
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.debug("Watcher stream closed by consumer, stopping")
        finally:
            self._event_tx.close()
            self._error_tx.close()

    def stop(self) -> None:
        """Stop scanning; the event and error streams then end."""
        self._stopped = True
        if self._scope is not None:
            self._scope.cancel()

    async def check(self) -> None:
        """Run one scan pass, emitting events for every difference found."""
        self._generation += 1
        generation = self._generation

        for root in list(self._roots):
            errors: list[OSError] = []
            for info in self.fsys.walk(root, on_error=errors.append):
                watched = self._files.get(info.name)
                if watched is None:
                    self._files[info.name] = WatchedFile(mod_time=info.mod_time, generation=generation)
                    await self._event_tx.send(Event(info.name, Op.CREATE))
                    continue

                watched.generation = generation
                if watched.mod_time != info.mod_time:
                    watched.mod_time = info.mod_time
                    await self._event_tx.send(Event(info.name, Op.WRITE))

            for exc in errors:
                await self._error_tx.send(exc)

        for name, watched in list(self._files.items()):
            if watched.generation < generation:
                del self._files[name]
                await self._event_tx.send(Event(name, Op.REMOVE))
