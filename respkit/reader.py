"""Incremental parser for the RESP wire protocol.

Bytes are fed in as they arrive with :meth:`Reader.feed`. Each call to
:meth:`Reader.get_reply` returns one complete reply, or ``None`` while the
reply is still incomplete. How replies are represented is up to a
:class:`ReplyFactory`.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, NoReturn, Optional, Union

READER_MAX_BUF = 1024 * 16
"""Default size above which an emptied input buffer is released."""

MAX_NESTING = 7
"""Deepest nesting of aggregate replies that is supported."""

_ERRSTR_MAX = 127
_COMPACT_THRESHOLD = 1024

LLONG_MIN = -(1 << 63)
LLONG_MAX = (1 << 63) - 1

_STRICT_INT = re.compile(rb"0|-?[1-9][0-9]*")


class ReplyType(enum.IntEnum):
    """Type of a reply, as announced by its leading type byte."""

    STRING = 1
    ARRAY = 2
    INTEGER = 3
    NIL = 4
    STATUS = 5
    ERROR = 6
    DOUBLE = 7
    BOOL = 8
    MAP = 9
    SET = 10
    ATTR = 11
    PUSH = 12
    BIGNUM = 13


class ReaderErrorKind(enum.IntEnum):
    """Category of a reader or connection failure."""

    IO = 1
    OTHER = 2
    EOF = 3
    PROTOCOL = 4
    OOM = 5
    TIMEOUT = 6


class ReaderError(Exception):
    """Base class for failures reported by :class:`Reader`."""

    kind: ReaderErrorKind = ReaderErrorKind.OTHER

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class ProtocolError(ReaderError):
    """The input does not follow the protocol."""

    kind = ReaderErrorKind.PROTOCOL


class OutOfMemoryError(ReaderError):
    """The reply factory could not create an object."""

    kind = ReaderErrorKind.OOM


_TYPE_BYTES = {
    ord("-"): ReplyType.ERROR,
    ord("+"): ReplyType.STATUS,
    ord(":"): ReplyType.INTEGER,
    ord(","): ReplyType.DOUBLE,
    ord("_"): ReplyType.NIL,
    ord("$"): ReplyType.STRING,
    ord("*"): ReplyType.ARRAY,
    ord("%"): ReplyType.MAP,
    ord("~"): ReplyType.SET,
    ord("#"): ReplyType.BOOL,
}

_LINE_TYPES = frozenset(
    {
        ReplyType.ERROR,
        ReplyType.STATUS,
        ReplyType.INTEGER,
        ReplyType.DOUBLE,
        ReplyType.NIL,
        ReplyType.BOOL,
    }
)

_BYTE_ESCAPES = {
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
    0x07: "\\a",
    0x08: "\\b",
}


def string_to_ll(data: Union[bytes, bytearray, memoryview, str]) -> int:
    """Parse a strictly formatted signed 64-bit decimal integer.

    No surrounding spaces, no ``+`` sign and no leading zeros are accepted,
    so the text can be recovered from the number unchanged. Raises
    :class:`ValueError` when the input does not qualify.
    """
    raw = data.encode("ascii", "replace") if isinstance(data, str) else bytes(data)
    if not _STRICT_INT.fullmatch(raw):
        raise ValueError(f"not a strict integer: {raw!r}")
    value = int(raw)
    if not LLONG_MIN <= value <= LLONG_MAX:
        raise ValueError(f"integer out of 64-bit range: {raw!r}")
    return value


def _parse_ll(data: bytes) -> Optional[int]:
    try:
        return string_to_ll(data)
    except ValueError:
        return None


def _describe_byte(byte: int) -> str:
    if byte in (ord("\\"), ord('"')):
        return f'"\\{chr(byte)}"'
    escaped = _BYTE_ESCAPES.get(byte)
    if escaped is not None:
        return f'"{escaped}"'
    if 0x20 <= byte <= 0x7E:
        return f'"{chr(byte)}"'
    return f'"\\x{byte:02x}"'


@dataclass(eq=False)
class ReadTask:
    """State of one reply being parsed, possibly nested in an aggregate."""

    type: Optional[ReplyType] = None
    elements: int = -1
    idx: int = -1
    obj: Any = None
    parent: Optional[ReadTask] = None
    privdata: Any = None


@dataclass
class Reply:
    """A parsed reply as built by the default :class:`ReplyFactory`."""

    type: ReplyType
    integer: int = 0
    data: Optional[bytes] = None
    items: list[Optional[Reply]] = field(default_factory=list)


class ReplyFactory:
    """Builds reply objects; nested replies are stored in their parent's items.

    Subclass it to build other representations. Returning ``None`` from a
    ``create_*`` method makes the reader fail with :class:`OutOfMemoryError`.
    """

    @staticmethod
    def _attach(task: ReadTask, reply: Reply) -> Reply:
        parent = task.parent
        if parent is not None and isinstance(parent.obj, Reply):
            parent.obj.items[task.idx] = reply
        return reply

    def create_string(self, task: ReadTask, data: bytes) -> Any:
        assert task.type is not None
        return self._attach(task, Reply(type=task.type, data=bytes(data)))

    def create_array(self, task: ReadTask, elements: int) -> Any:
        assert task.type is not None
        return self._attach(task, Reply(type=task.type, items=[None] * elements))

    def create_integer(self, task: ReadTask, value: int) -> Any:
        return self._attach(task, Reply(type=ReplyType.INTEGER, integer=value))

    def create_nil(self, task: ReadTask) -> Any:
        return self._attach(task, Reply(type=ReplyType.NIL))

    def free_object(self, obj: Any) -> None:
        """Release a reply and everything nested in it."""
        if isinstance(obj, Reply):
            for item in obj.items:
                if item is not None:
                    self.free_object(item)
            obj.items.clear()
            obj.data = None


_DEFAULT_FACTORY: Any = object()


class Reader:
    """Incremental protocol parser.

    With ``factory=None`` no objects are built; each reply is reported as
    the :class:`ReplyType` of its root.
    """

    def __init__(
        self,
        factory: Optional[ReplyFactory] = _DEFAULT_FACTORY,
        max_buffer: int = READER_MAX_BUF,
    ) -> None:
        self.factory: Optional[ReplyFactory] = (
            ReplyFactory() if factory is _DEFAULT_FACTORY else factory
        )
        self.max_buffer = max_buffer
        self.privdata: Any = None
        self._buf = bytearray()
        self._pos = 0
        self._stack: list[ReadTask] = []
        self._reply: Any = None
        self._error: Optional[ReaderError] = None

    def has_error(self) -> bool:
        """True once the reader has failed; it stays failed."""
        return self._error is not None

    def error_message(self) -> str:
        """Description of the failure, or an empty string."""
        return self._error.message if self._error is not None else ""

    def buffered(self) -> int:
        """Number of fed bytes not consumed yet."""
        return len(self._buf) - self._pos

    def feed(self, data: Union[bytes, bytearray, memoryview]) -> None:
        """Append received bytes to the input buffer."""
        self._raise_if_failed()
        chunk = bytes(data)
        if not chunk:
            return
        if (
            self._pos == len(self._buf)
            and self.max_buffer != 0
            and len(self._buf) > self.max_buffer
        ):
            self._buf = bytearray()
            self._pos = 0
        self._buf += chunk

    def get_reply(self) -> Any:
        """Return the next complete reply, or ``None`` if none is complete yet."""
        self._raise_if_failed()
        if not self._buf:
            return None

        if not self._stack:
            self._stack.append(ReadTask(privdata=self.privdata))

        while self._stack:
            if not self._process_item():
                break

        if self._pos >= _COMPACT_THRESHOLD:
            del self._buf[: self._pos]
            self._pos = 0

        if self._stack:
            return None
        reply, self._reply = self._reply, None
        return reply

    def _raise_if_failed(self) -> None:
        if self._error is not None:
            raise type(self._error)(self._error.message)

    def _fail(self, error_cls: type[ReaderError], message: str) -> NoReturn:
        if self._reply is not None and self.factory is not None:
            self.factory.free_object(self._reply)
        self._reply = None
        self._buf = bytearray()
        self._pos = 0
        self._stack.clear()
        self._error = error_cls(message[:_ERRSTR_MAX])
        raise error_cls(message[:_ERRSTR_MAX])

    def _read_line(self) -> Optional[bytes]:
        end = self._buf.find(b"\r\n", self._pos)
        if end < 0:
            return None
        line = bytes(self._buf[self._pos : end])
        self._pos = end + 2
        return line

    def _move_to_next_task(self) -> None:
        while self._stack:
            if len(self._stack) == 1:
                self._stack.pop()
                return
            cur, prv = self._stack[-1], self._stack[-2]
            if cur.idx == prv.elements - 1:
                self._stack.pop()
            else:
                cur.type = None
                cur.elements = -1
                cur.idx += 1
                return

    def _complete(self, obj: Any, new_pos: int) -> None:
        if obj is None:
            self._fail(OutOfMemoryError, "Out of memory")
        self._pos = new_pos
        if len(self._stack) == 1:
            self._reply = obj
        self._move_to_next_task()

    def _process_item(self) -> bool:
        cur = self._stack[-1]
        if cur.type is None:
            if self._pos >= len(self._buf):
                return False
            byte = self._buf[self._pos]
            self._pos += 1
            kind = _TYPE_BYTES.get(byte)
            if kind is None:
                self._fail(
                    ProtocolError,
                    f"Protocol error, got {_describe_byte(byte)} as reply type byte",
                )
            cur.type = kind

        if cur.type in _LINE_TYPES:
            return self._process_line_item(cur)
        if cur.type is ReplyType.STRING:
            return self._process_bulk_item(cur)
        return self._process_aggregate_item(cur)

    def _process_line_item(self, cur: ReadTask) -> bool:
        line = self._read_line()
        if line is None:
            return False
        factory = self.factory
        if cur.type is ReplyType.INTEGER:
            if factory is None:
                obj: Any = ReplyType.INTEGER
            else:
                value = _parse_ll(line)
                if value is None:
                    self._fail(ProtocolError, "Bad integer value")
                obj = factory.create_integer(cur, value)
        else:
            obj = cur.type if factory is None else factory.create_string(cur, line)
        self._complete(obj, self._pos)
        return True

    def _process_bulk_item(self, cur: ReadTask) -> bool:
        newline = self._buf.find(b"\r\n", self._pos)
        if newline < 0:
            return False
        length = _parse_ll(bytes(self._buf[self._pos : newline]))
        if length is None:
            self._fail(ProtocolError, "Bad bulk string length")
        if length < -1:
            self._fail(ProtocolError, "Bulk string length out of range")

        factory = self.factory
        if length == -1:
            obj: Any = ReplyType.NIL if factory is None else factory.create_nil(cur)
            new_pos = newline + 2
        else:
            start = newline + 2
            end = start + length
            if end + 2 > len(self._buf):
                return False
            if factory is None:
                obj = ReplyType.STRING
            else:
                obj = factory.create_string(cur, bytes(self._buf[start:end]))
            new_pos = end + 2
        self._complete(obj, new_pos)
        return True

    def _process_aggregate_item(self, cur: ReadTask) -> bool:
        if len(self._stack) - 1 == MAX_NESTING + 1:
            self._fail(
                ProtocolError,
                f"No support for nested multi bulk replies with depth > {MAX_NESTING}",
            )
        line = self._read_line()
        if line is None:
            return False
        elements = _parse_ll(line)
        if elements is None:
            self._fail(ProtocolError, "Bad multi-bulk length")
        root = len(self._stack) == 1
        if elements < -1:
            self._fail(ProtocolError, "Multi-bulk length out of range")

        factory = self.factory
        if elements == -1:
            obj: Any = ReplyType.NIL if factory is None else factory.create_nil(cur)
            if obj is None:
                self._fail(OutOfMemoryError, "Out of memory")
            self._move_to_next_task()
        else:
            if cur.type is ReplyType.MAP:
                elements *= 2
            obj = cur.type if factory is None else factory.create_array(cur, elements)
            if obj is None:
                self._fail(OutOfMemoryError, "Out of memory")
            if elements > 0:
                cur.elements = elements
                cur.obj = obj
                self._stack.append(
                    ReadTask(idx=0, parent=cur, privdata=self.privdata)
                )
            else:
                self._move_to_next_task()

        if root:
            self._reply = obj
        return True