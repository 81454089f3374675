"""View engine protocol.

A view engine turns one area of the filesystem into viewers and routes,
once at startup (``load``) and incrementally on change (``file_changed``).
Both are called with the app's write lock held, so an engine may call the
app's registration methods freely but must not block on I/O beyond the
filesystem it is given.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from warbler.app import App
    from warbler.fs import FileSystem
    from warbler.fsnotify import Event


class ViewEngine(Protocol):
    def load(self, fsys: FileSystem, app: App) -> None: ...

    def file_changed(self, fsys: FileSystem, app: App, event: Event) -> None: ...
