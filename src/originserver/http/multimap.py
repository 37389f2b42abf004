"""
=============================================================================
MULTI-VALUED MAP
=============================================================================

A dictionary where each key holds one value (a scalar) or an ordered,
non-empty sequence of values (a vector).

=============================================================================
WHY NOT A PLAIN DICT?
=============================================================================

HTTP allows a header to appear more than once, and allows one line to
carry several comma-separated values:

    Accept-Encoding: gzip, deflate        ← one line, two values
    Set-Cookie: foo                       ← two lines, two values
    Set-Cookie: bar

A plain Dict[str, str] forces a choice between overwriting ("bar" wins)
and string-joining ("foo, bar"), and both lose information. MultiMap keeps
every value in arrival order.

=============================================================================
INSERTION SEMANTICS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   existing        inserted         result                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │   (none)          "a"              "a"              (scalar)        │
    │   (none)          ["a", "b"]       ["a", "b"]       (vector)        │
    │   "a"             "b"              ["a", "b"]       (promoted)      │
    │   "a"             ["b", "c"]       ["a", "b", "c"]  (promoted)      │
    │   ["a", "b"]      "c"              ["a", "b", "c"]  (appended)      │
    │   ["a", "b"]      ["c", "d"]       ["a", "b", "c", "d"]             │
    └─────────────────────────────────────────────────────────────────────┘

Internally every entry is a list. A scalar is simply a list of length one,
so "promotion" is nothing more than list.extend().

=============================================================================
"""

from typing import Dict, Generic, Hashable, Iterator, List, Optional, Tuple, TypeVar, Union

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class NotScalarError(ValueError):
    """Raised when a scalar lookup hits a key that holds several values."""

    def __init__(self, key):
        super().__init__(f"not scalar: {key!r} holds multiple values")
        self.key = key


class MultiMap(Generic[K, V]):
    """
    Keyed container where each key maps to one or more values.

    Invariant: every stored value list has length >= 1.

    Example:
        mm = MultiMap()
        mm.insert("set-cookie", "foo")
        mm.insert("set-cookie", "bar")
        mm.get("set-cookie")          # ["foo", "bar"]
        mm.get_scalar("set-cookie")   # raises NotScalarError
    """

    def __init__(self, items: Optional[List[Tuple[K, Union[V, List[V]]]]] = None):
        self._data: Dict[K, List[V]] = {}
        for key, value in items or ():
            self.insert(key, value)

    # =========================================================================
    # INSERTION
    # =========================================================================

    def insert(self, key: K, value: Union[V, List[V]]) -> None:
        """
        Insert a scalar or a vector under ``key``.

        Lists are treated as vectors, anything else as a scalar.
        """
        if isinstance(value, list):
            self.insert_vector(key, value)
        else:
            self.insert_scalar(key, value)

    def insert_scalar(self, key: K, value: V) -> None:
        """Append a single value, promoting an existing scalar to a vector."""
        self._data.setdefault(key, []).append(value)

    def insert_vector(self, key: K, values: List[V]) -> None:
        """Append several values at once, preserving their order."""
        if not values:
            raise ValueError(f"cannot insert an empty vector under {key!r}")
        self._data.setdefault(key, []).extend(values)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, key: K) -> Optional[List[V]]:
        """All values for ``key`` in insertion order, or None if absent."""
        values = self._data.get(key)
        return list(values) if values is not None else None

    def get_scalar(self, key: K) -> Optional[V]:
        """
        The single value for ``key``, or None if absent.

        Raises:
            NotScalarError: ``key`` holds more than one value.
        """
        values = self._data.get(key)
        if values is None:
            return None
        if len(values) > 1:
            raise NotScalarError(key)
        return values[0]

    def get_iter(self, key: K) -> Optional[Iterator[V]]:
        """Iterator over the values for ``key``, or None if absent."""
        values = self._data.get(key)
        return iter(values) if values is not None else None

    def is_scalar(self, key: K) -> bool:
        return len(self._data.get(key, ())) == 1

    # =========================================================================
    # CONTAINER PROTOCOL
    # =========================================================================

    def items(self) -> Iterator[Tuple[K, List[V]]]:
        for key, values in self._data.items():
            yield key, list(values)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def __len__(self) -> int:
        """Number of distinct keys (not the number of values)."""
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiMap):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._data!r})"
