# respkit

Small, dependency-free building blocks for working with the RESP wire
protocol:

- `respkit.dynstr`: `DynamicString`, a binary-safe, growable byte string
  that tracks its length and spare capacity. The module also has
  `compare`, `ll2str`, `ull2str` and `from_long_long`.
- `respkit.textutil`: helpers for formatting, quoting and splitting:
  `cat_fmt`, `cat_printf`, `cat_repr`, `split_len`, `split_args`, `join`,
  `is_hex_digit`, `hex_digit_to_int`.
- `respkit.reader`: `Reader`, an incremental parser that turns bytes
  received from a server into `Reply` objects.

## Installation

```
pip install respkit
```

## Parsing replies

Feed bytes to the reader as they arrive. `get_reply()` returns `None`
until a whole reply has been buffered.

```python
from respkit.reader import Reader, ProtocolError

reader = Reader()
reader.feed(b"*2\r\n$5\r\nhello\r\n")
assert reader.get_reply() is None  # still waiting for the second element

reader.feed(b":42\r\n")
reply = reader.get_reply()
print(reply.type, [item.data or item.integer for item in reply.items])

reader = Reader()
reader.feed(b"@oops\r\n")
try:
    reader.get_reply()
except ProtocolError as exc:
    print(exc)  # Protocol error, got "@" as reply type byte
```

The reader understands these type bytes: `+` status, `-` error,
`:` integer, `$` bulk string, `*` array, `%` map, `~` set, `,` double,
`#` bool and `_` nil. Integers and lengths must be strict 64-bit
decimals. Maps are read as flat arrays of key/value pairs. Double and
bool lines are kept as their raw text, the same way status lines are.

Failures are raised as `ProtocolError`, or as `OutOfMemoryError` when a
factory method returns `None`. Both derive from `ReaderError`, which has a
`kind` from `ReaderErrorKind`. After a failure the reader keeps its error
state. `has_error()` is true, `error_message()` gives the message, and
every later `feed()` or `get_reply()` raises the same error again.
Aggregates nested more than seven levels deep are rejected.

To build your own reply objects, subclass `ReplyFactory` and pass an
instance to `Reader(factory)`. `Reader(None)` builds no objects. It
returns the `ReplyType` of each complete root reply instead. `buffered()`
tells how many fed bytes are still unconsumed.

## Dynamic strings

```python
from respkit.dynstr import DynamicString

s = DynamicString(b"xxciaoyyy")
s.trim(b"xy")
assert bytes(s) == b"ciao"
s.range(1, -1)
assert bytes(s) == b"iao"
```

`make_room_for`, `avail`, `incr_len` and `set_byte` let you reserve
spare space, write into it and then extend the length.

## Formatting and splitting

```python
from respkit.dynstr import DynamicString
from respkit.textutil import split_args, cat_repr, cat_fmt

args = split_args('set key "hello\\nworld"')
assert args == [b"set", b"key", b"hello\nworld"]

quoted = cat_repr(DynamicString(b""), b"\a\n\x00foo\r")
assert bytes(quoted) == b'"\\a\\n\\x00foo\\r"'

out = cat_fmt(DynamicString(b"--"), "%u,%U--", 4294967295, 18446744073709551615)
assert bytes(out) == b"--4294967295,18446744073709551615--"
```

`split_args` raises `SplitArgsError` in two cases: the quotes are
unbalanced, or a closing quote is followed by something other than
whitespace.

## What is not included

This package only handles data. It has no connection or client. It does
not open sockets, send commands, use TLS or handle timeouts. It cannot
encode commands into the wire format either. Give the `Reader` bytes you
have received by some other means.

## Running the tests

```
pip install -e ".[test]"
pytest
```