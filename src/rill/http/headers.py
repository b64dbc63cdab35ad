"""Case-insensitive HTTP headers.

``Headers`` is the immutable request-side view over raw ASGI byte pairs.
``MutableHeaders`` is the response-side carrier handed to page handlers
so they can append headers (``Cache-Control``, ``Content-Type``, ...)
before the body starts streaming.
"""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header (e.g. multiple ``Accept``).
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower().encode("latin-1")
        for name, value in self._raw:
            if name.lower() == key_lower:
                return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower().encode("latin-1")
        return any(name.lower() == key_lower for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            key = name.decode("latin-1").lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        key_lower = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == key_lower]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Access raw header byte pairs for ASGI compatibility."""
        return self._raw


class MutableHeaders:
    """Ordered, case-insensitive, multi-value header list.

    Names keep the casing they were added with; lookups ignore case.

    Usage::

        headers = MutableHeaders()
        headers.append("Cache-Control", "no-store")
        headers.set("Content-Type", "application/json")
        assert headers.get("content-type") == "application/json"
    """

    __slots__ = ("_items",)

    def __init__(self, items: tuple[tuple[str, str], ...] = ()) -> None:
        self._items: list[tuple[str, str]] = list(items)

    def append(self, name: str, value: str) -> None:
        """Add a header, keeping any existing values for *name*."""
        self._items.append((name, value))

    def set(self, name: str, value: str) -> None:
        """Replace every value for *name* with a single *value*."""
        self.delete(name)
        self._items.append((name, value))

    def delete(self, name: str) -> None:
        """Remove every value for *name* (no error if absent)."""
        lower = name.lower()
        self._items = [(n, v) for n, v in self._items if n.lower() != lower]

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the first value for *name*, or *default* if missing."""
        lower = name.lower()
        for n, v in self._items:
            if n.lower() == lower:
                return v
        return default

    def get_list(self, name: str) -> list[str]:
        """Return all values for *name* in insertion order."""
        lower = name.lower()
        return [v for n, v in self._items if n.lower() == lower]

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get(name) is not None

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MutableHeaders({self._items!r})"

    def items(self) -> tuple[tuple[str, str], ...]:
        """Snapshot of the current header pairs."""
        return tuple(self._items)
