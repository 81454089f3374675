"""Filesystem change events."""

from dataclasses import dataclass
from enum import IntFlag


class Op(IntFlag):
    """The kind of change a watcher observed."""

    CREATE = 1
    WRITE = 2
    REMOVE = 4


@dataclass(frozen=True, slots=True)
class Event:
    """A change to the file at ``name`` (slash path relative to the filesystem root)."""

    name: str
    op: Op

    def has(self, op: Op) -> bool:
        return bool(self.op & op)

    def __str__(self) -> str:
        return f"{self.op.name} {self.name!r}"
