"""Binary-safe growable byte strings with explicit length and free-space accounting."""

from __future__ import annotations

from typing import Union

MAX_PREALLOC = 1024 * 1024
"""Above this size growth adds a fixed amount instead of doubling."""

HEADER_SIZE = 8
"""Size of the length/free header counted by :meth:`DynamicString.alloc_size`."""

LLSTR_SIZE = 21

_LLONG_MIN = -(1 << 63)
_LLONG_MAX = (1 << 63) - 1
_ULLONG_MAX = (1 << 64) - 1

BytesLike = Union[bytes, bytearray, memoryview, str, "DynamicString"]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, DynamicString):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class DynamicString:
    """A mutable byte string that tracks its length and spare capacity.

    The spare capacity (``avail``) grows the way a preallocating buffer does:
    doubling while small, then adding :data:`MAX_PREALLOC` bytes at a time.
    """

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, init: BytesLike | None = b"") -> None:
        data = b"" if init is None else _as_bytes(init)
        self._buf = bytearray(data)
        self._len = len(data)
        self._free = 0

    def __len__(self) -> int:
        return self._len

    def __bytes__(self) -> bytes:
        return bytes(self._buf[: self._len])

    def __repr__(self) -> str:
        return f"DynamicString({bytes(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (DynamicString, bytes, bytearray, memoryview)):
            return bytes(self) == bytes(other)
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, (DynamicString, bytes, bytearray, memoryview, str)):
            return compare(self, other) < 0
        return NotImplemented

    @property
    def _capacity(self) -> int:
        return self._len + self._free

    def avail(self) -> int:
        """Number of spare bytes available after the content."""
        return self._free

    def alloc_size(self) -> int:
        """Total allocation: header, content, spare space and terminator."""
        return HEADER_SIZE + self._len + self._free + 1

    def duplicate(self) -> DynamicString:
        """Return an independent copy with no spare space."""
        return DynamicString(bytes(self))

    def clear(self) -> DynamicString:
        """Make the string empty, keeping its storage as spare space."""
        self._free += self._len
        self._len = 0
        if self._buf:
            self._buf[0] = 0
        return self

    def update_len(self) -> DynamicString:
        """Cut the logical length at the first NUL byte in the content."""
        nul = self._buf.find(0, 0, self._len)
        reallen = self._len if nul < 0 else nul
        self._free += self._len - reallen
        self._len = reallen
        return self

    def make_room_for(self, addlen: int) -> DynamicString:
        """Ensure at least ``addlen`` spare bytes, without changing the length."""
        if addlen < 0:
            raise ValueError("addlen must not be negative")
        if self._free >= addlen:
            return self
        newlen = self._len + addlen
        if newlen < MAX_PREALLOC:
            newlen *= 2
        else:
            newlen += MAX_PREALLOC
        self._buf.extend(bytes(newlen - self._capacity))
        self._free = newlen - self._len
        return self

    def remove_free_space(self) -> DynamicString:
        """Drop all spare capacity."""
        del self._buf[self._len :]
        self._free = 0
        return self

    def incr_len(self, incr: int) -> DynamicString:
        """Move the end of the string by ``incr`` bytes into or out of spare space."""
        if incr >= 0:
            if self._free < incr:
                raise ValueError("not enough free space to grow by %d" % incr)
        elif self._len < -incr:
            raise ValueError("cannot shrink below zero length")
        self._len += incr
        self._free -= incr
        if self._len < len(self._buf):
            self._buf[self._len] = 0
        return self

    def set_byte(self, index: int, value: int) -> None:
        """Write one byte anywhere in the content or the spare space."""
        if not 0 <= index < self._capacity:
            raise IndexError("index out of allocated range")
        if not 0 <= value <= 255:
            raise ValueError("byte value must be in range 0..255")
        self._buf[index] = value

    def grow_zero(self, length: int) -> DynamicString:
        """Grow to ``length`` bytes, filling new bytes with zeros."""
        curlen = self._len
        if length <= curlen:
            return self
        self.make_room_for(length - curlen)
        total = self._capacity
        self._buf[curlen:length] = bytes(length - curlen)
        self._len = length
        self._free = total - length
        return self

    def append(self, data: BytesLike) -> DynamicString:
        """Append bytes to the end of the string."""
        chunk = _as_bytes(data)
        curlen = self._len
        self.make_room_for(len(chunk))
        self._buf[curlen : curlen + len(chunk)] = chunk
        self._len = curlen + len(chunk)
        self._free -= len(chunk)
        return self

    def copy_from(self, data: BytesLike) -> DynamicString:
        """Replace the content with ``data``, reusing storage when possible."""
        chunk = _as_bytes(data)
        n = len(chunk)
        if self._capacity < n:
            self.make_room_for(n - self._len)
        total = self._capacity
        self._buf[:n] = chunk
        self._len = n
        self._free = total - n
        return self

    def trim(self, cset: BytesLike) -> DynamicString:
        """Remove leading and trailing bytes found in ``cset`` (NUL always counts)."""
        chars = _as_bytes(cset) + b"\0"
        kept = bytes(self).strip(chars)
        newlen = len(kept)
        self._buf[:newlen] = kept
        self._free += self._len - newlen
        self._len = newlen
        return self

    def range(self, start: int, end: int) -> DynamicString:
        """Keep only the inclusive slice ``start..end``; negatives count from the end."""
        length = self._len
        if length == 0:
            return self
        if start < 0:
            start = max(length + start, 0)
        if end < 0:
            end = max(length + end, 0)
        newlen = 0 if start > end else end - start + 1
        if newlen:
            if start >= length:
                newlen = 0
            elif end >= length:
                end = length - 1
                newlen = 0 if start > end else end - start + 1
        else:
            start = 0
        if start and newlen:
            self._buf[:newlen] = self._buf[start : start + newlen]
        self._free += self._len - newlen
        self._len = newlen
        return self

    def to_lower(self) -> DynamicString:
        """Lower-case ASCII letters in place."""
        self._buf[: self._len] = self._buf[: self._len].lower()
        return self

    def to_upper(self) -> DynamicString:
        """Upper-case ASCII letters in place."""
        self._buf[: self._len] = self._buf[: self._len].upper()
        return self

    def map_chars(self, from_chars: BytesLike, to_chars: BytesLike) -> DynamicString:
        """Replace each byte found in ``from_chars`` with the byte at the same position in ``to_chars``."""
        src = _as_bytes(from_chars)
        dst = _as_bytes(to_chars)
        if len(src) != len(dst):
            raise ValueError("from_chars and to_chars must have the same length")
        mapping: dict[int, int] = {}
        for a, b in zip(src, dst):
            mapping.setdefault(a, b)
        self._buf[: self._len] = bytes(mapping.get(c, c) for c in self._buf[: self._len])
        return self


def compare(a: BytesLike, b: BytesLike) -> int:
    """Compare two byte strings.

    Returns ``1`` or ``-1`` at the first differing byte; if one is a prefix of
    the other, returns the difference of the lengths.
    """
    x, y = _as_bytes(a), _as_bytes(b)
    minlen = min(len(x), len(y))
    for cx, cy in zip(x[:minlen], y[:minlen]):
        if cx != cy:
            return 1 if cx > cy else -1
    return len(x) - len(y)


def ll2str(value: int) -> bytes:
    """Decimal representation of a signed 64-bit integer."""
    if not _LLONG_MIN <= value <= _LLONG_MAX:
        raise ValueError("value out of signed 64-bit range")
    return str(value).encode("ascii")


def ull2str(value: int) -> bytes:
    """Decimal representation of an unsigned 64-bit integer."""
    if not 0 <= value <= _ULLONG_MAX:
        raise ValueError("value out of unsigned 64-bit range")
    return str(value).encode("ascii")


def from_long_long(value: int) -> DynamicString:
    """Create a string holding the decimal form of a signed 64-bit integer."""
    return DynamicString(ll2str(value))