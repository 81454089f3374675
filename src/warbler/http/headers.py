"""Case-insensitive HTTP headers.

``Headers`` indexes the raw byte pairs of an ASGI scope once, by
lowercased name. ``MutableHeaders`` is what response writers and viewers
fill in before the response start message is sent.
"""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only request headers.

    Lookup is case-insensitive and yields the first value sent under a
    name; ``get_list`` yields all of them in arrival order.
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        self._raw = raw
        self._index: dict[str, list[str]] = {}
        for name, value in raw:
            self._index.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))

    def __getitem__(self, key: str) -> str:
        return self._index[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._index.get(key.lower(), ()))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        return self._raw


class MutableHeaders:
    """Ordered, case-insensitive response headers.

    ``set`` replaces every value of a name, ``add`` appends another one.
    Names keep the casing of their first ``set``/``add``.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[tuple[str, str]] = []

    def get(self, name: str, default: str | None = None) -> str | None:
        lower = name.lower()
        for key, value in self._items:
            if key.lower() == lower:
                return value
        return default

    def get_list(self, name: str) -> list[str]:
        lower = name.lower()
        return [value for key, value in self._items if key.lower() == lower]

    def set(self, name: str, value: str) -> None:
        lower = name.lower()
        for i, (key, _) in enumerate(self._items):
            if key.lower() == lower:
                self._items[i] = (key, value)
                self._items[i + 1 :] = [item for item in self._items[i + 1 :] if item[0].lower() != lower]
                return
        self._items.append((name, value))

    def add(self, name: str, value: str) -> None:
        self._items.append((name, value))

    def delete(self, name: str) -> None:
        lower = name.lower()
        self._items = [item for item in self._items if item[0].lower() != lower]

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MutableHeaders({self._items!r})"

    def raw(self) -> list[tuple[bytes, bytes]]:
        """Encode for the ASGI ``http.response.start`` message."""
        return [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in self._items]
