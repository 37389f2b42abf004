"""
=============================================================================
REQUEST HEADER MAP
=============================================================================

Case-insensitive, multi-valued view of a request's header block.

    Accept-Encoding: gzip, deflate\r\n
    Set-Cookie: foo\r\n
    Set-Cookie: bar\r\n
    \r\n

parses into:

    {
        "accept-encoding": ["gzip", "deflate"],
        "set-cookie":      ["foo", "bar"],
    }

Names are lowercased at parse time (RFC 9110 field names are
case-insensitive). Values are split at commas and each piece is trimmed.
A line carrying a single value stores a scalar; repeated lines and
comma lists store a vector.

=============================================================================
"""

from typing import Iterator, List, Optional, Tuple

from .multimap import MultiMap


class Headers:
    """
    Header map keyed by lowercased field name.

    All lookups lowercase the requested name, so ``get_iter("Set-Cookie")``
    and ``get_iter("set-cookie")`` are the same call.
    """

    def __init__(self, multimap: Optional[MultiMap[str, str]] = None):
        self._map: MultiMap[str, str] = multimap if multimap is not None else MultiMap()

    # =========================================================================
    # PARSING
    # =========================================================================

    @staticmethod
    def split_line(line: str) -> Tuple[str, List[str]]:
        """
        Split one ``name: v1, v2`` line into its lowercased name and values.

        Raises:
            ValueError: the line has no colon, or the name is empty.
        """
        name, sep, values_line = line.partition(":")
        if not sep:
            raise ValueError(f"missing colon delimiter: {line!r}")
        name = name.strip().lower()
        if not name:
            raise ValueError(f"empty header name: {line!r}")
        values = [value.strip() for value in values_line.split(",")]
        return name, values

    def add_line(self, line: str) -> None:
        """Parse one header line and merge it into the map."""
        name, values = self.split_line(line)
        if len(values) == 1:
            self._map.insert_scalar(name, values[0])
        else:
            self._map.insert_vector(name, values)

    @classmethod
    def parse(cls, raw: str) -> "Headers":
        """
        Parse a block of CRLF-separated header lines.

        Parsing stops at the first empty line, as on the wire.
        """
        headers = cls()
        for line in raw.splitlines():
            if not line:
                break
            headers.add_line(line)
        return headers

    # =========================================================================
    # GENERIC LOOKUPS
    # =========================================================================

    def add(self, name: str, value: str) -> None:
        self._map.insert_scalar(name.lower(), value)

    def get_scalar(self, name: str) -> Optional[str]:
        """
        Single value for ``name``.

        Raises:
            NotScalarError: the header carried several values.
        """
        return self._map.get_scalar(name.lower())

    def get_iter(self, name: str) -> Optional[Iterator[str]]:
        """Iterator over every value for ``name``, None if absent."""
        return self._map.get_iter(name.lower())

    def get_list(self, name: str) -> List[str]:
        """Every value for ``name`` as a list (empty if absent)."""
        return self._map.get(name.lower()) or []

    # =========================================================================
    # TYPED ACCESSORS
    # =========================================================================

    @property
    def accept_encoding(self) -> Optional[Iterator[str]]:
        return self.get_iter("accept-encoding")

    @property
    def connection(self) -> Optional[Iterator[str]]:
        return self.get_iter("connection")

    @property
    def user_agent(self) -> Optional[str]:
        return self.get_scalar("user-agent")

    @property
    def content_length(self) -> Optional[int]:
        """
        Parsed Content-Length.

        Raises:
            NotScalarError: several Content-Length values were sent.
            ValueError: the value is not a non-negative decimal integer.
        """
        raw = self.get_scalar("content-length")
        if raw is None:
            return None
        if not (raw.isascii() and raw.isdigit()):
            raise ValueError(f"invalid Content-Length: {raw!r}")
        return int(raw)

    # =========================================================================
    # CONTAINER PROTOCOL
    # =========================================================================

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        return self._map.items()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __repr__(self) -> str:
        return f"Headers({dict(self._map.items())!r})"
