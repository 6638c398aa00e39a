"""Formatting, quoting and splitting helpers that work on byte strings."""

from __future__ import annotations

import operator
import re
from collections.abc import Iterable
from typing import Union

from respkit.dynstr import DynamicString, ll2str, ull2str

BytesLike = Union[bytes, bytearray, memoryview, str, DynamicString]

_INT_MIN = -(1 << 31)
_INT_MAX = (1 << 31) - 1
_UINT_MAX = (1 << 32) - 1

# Whitespace as recognised by isspace() in the C locale.
_SPACE = frozenset(b" \t\n\v\f\r")
# Bytes that end an unquoted argument.
_ARG_END = frozenset(b" \n\r\t")

_HEX_DIGITS = b"0123456789abcdefABCDEF"

_PRINTF_SPEC = r"%(?P<flags>[-+ #0]*)(?P<width>\*|\d+)?(?:\.(?P<prec>\*|\d*))?(?P<len>hh|h|ll|l|L|q|j|z|t)?(?P<conv>.)"
_PRINTF_RE = re.compile(_PRINTF_SPEC, re.DOTALL)
_PRINTF_RE_BYTES = re.compile(_PRINTF_SPEC.encode("ascii"), re.DOTALL)


class SplitArgsError(ValueError):
    """Raised when a line has unbalanced quotes or a quote followed by text."""


def _to_bytes(data: BytesLike) -> bytes:
    if isinstance(data, DynamicString):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _c_string(data: BytesLike) -> bytes:
    """Bytes up to (not including) the first NUL, as a C string would be read."""
    raw = _to_bytes(data)
    nul = raw.find(0)
    return raw if nul < 0 else raw[:nul]


def _isprint(byte: int) -> bool:
    return 0x20 <= byte <= 0x7E


def cat_fmt(target: DynamicString, fmt: BytesLike, *args: object) -> DynamicString:
    """Append to ``target`` using a small format language.

    Supported directives: ``%s`` (string up to the first NUL), ``%S`` (whole
    byte string), ``%i`` (32-bit signed), ``%I`` (64-bit signed), ``%u``
    (32-bit unsigned), ``%U`` (64-bit unsigned). ``%`` followed by any other
    character emits that character, so ``%%`` yields ``%``.
    """
    spec = _c_string(fmt)
    values = iter(args)

    def next_arg() -> object:
        try:
            return next(values)
        except StopIteration:
            raise ValueError("not enough arguments for format") from None

    out = bytearray()
    pos = 0
    while pos < len(spec):
        ch = spec[pos]
        if ch != ord("%"):
            out.append(ch)
            pos += 1
            continue
        if pos + 1 >= len(spec):
            raise ValueError("format ends with a lone '%'")
        directive = chr(spec[pos + 1])
        pos += 2
        if directive == "s":
            out += _c_string(next_arg())  # type: ignore[arg-type]
        elif directive == "S":
            out += _to_bytes(next_arg())  # type: ignore[arg-type]
        elif directive == "i":
            num = operator.index(next_arg())  # type: ignore[arg-type]
            if not _INT_MIN <= num <= _INT_MAX:
                raise ValueError("%i argument out of 32-bit signed range")
            out += ll2str(num)
        elif directive == "I":
            out += ll2str(operator.index(next_arg()))  # type: ignore[arg-type]
        elif directive == "u":
            num = operator.index(next_arg())  # type: ignore[arg-type]
            if not 0 <= num <= _UINT_MAX:
                raise ValueError("%u argument out of 32-bit unsigned range")
            out += ull2str(num)
        elif directive == "U":
            out += ull2str(operator.index(next_arg()))  # type: ignore[arg-type]
        else:
            out.append(ord(directive))
    return target.append(bytes(out))


def _strip_length_modifiers(fmt: str | bytes) -> str | bytes:
    """Drop C length modifiers (``l``, ``ll``, ``h``...) that ``%`` formatting rejects."""
    empty = fmt[:0]

    def rebuild(match: re.Match) -> str | bytes:
        parts = [
            match.group(0)[:1],
            match.group("flags") or empty,
            match.group("width") or empty,
        ]
        if match.group("prec") is not None:
            parts.append(("." if isinstance(fmt, str) else b".") + match.group("prec"))
        parts.append(match.group("conv"))
        return empty.join(parts)

    pattern = _PRINTF_RE if isinstance(fmt, str) else _PRINTF_RE_BYTES
    return pattern.sub(rebuild, fmt)


def cat_printf(target: DynamicString, fmt: str | bytes, *args: object) -> DynamicString:
    """Append the printf-style formatting of ``args`` with ``fmt`` to ``target``."""
    if isinstance(fmt, (bytearray, memoryview)):
        fmt = bytes(fmt)
    cleaned = _strip_length_modifiers(fmt)
    result = cleaned % args
    if isinstance(result, str):
        result = result.encode("utf-8")
    return target.append(_c_string(result))


_REPR_ESCAPES = {
    ord("\\"): b"\\\\",
    ord('"'): b'\\"',
    ord("\n"): b"\\n",
    ord("\r"): b"\\r",
    ord("\t"): b"\\t",
    0x07: b"\\a",
    0x08: b"\\b",
}


def cat_repr(target: DynamicString, data: BytesLike) -> DynamicString:
    """Append a double-quoted, escaped representation of ``data`` to ``target``.

    The result can be parsed back by :func:`split_args`.
    """
    out = bytearray(b'"')
    for byte in _to_bytes(data):
        escaped = _REPR_ESCAPES.get(byte)
        if escaped is not None:
            out += escaped
        elif _isprint(byte):
            out.append(byte)
        else:
            out += b"\\x%02x" % byte
    out += b'"'
    return target.append(bytes(out))


def _byte_of(char: str | bytes | int) -> int:
    if isinstance(char, int):
        return char
    if len(char) != 1:
        raise ValueError("expected a single character")
    return ord(char)


def is_hex_digit(char: str | bytes | int) -> bool:
    """True when ``char`` is one of 0-9, a-f or A-F."""
    return _byte_of(char) in _HEX_DIGITS


def hex_digit_to_int(char: str | bytes | int) -> int:
    """Value 0-15 of a hex digit; any other character maps to 0."""
    byte = _byte_of(char)
    if byte not in _HEX_DIGITS:
        return 0
    return int(chr(byte), 16)


def split_len(data: BytesLike, sep: BytesLike) -> list[bytes]:
    """Split ``data`` on every occurrence of the (possibly multi-byte) separator.

    Empty input gives an empty list; an empty separator is an error.
    """
    raw = _to_bytes(data)
    separator = _to_bytes(sep)
    if not separator:
        raise ValueError("separator must not be empty")
    if not raw:
        return []
    return raw.split(separator)


def split_args(line: BytesLike) -> list[bytes]:
    """Split a line into arguments, honouring double and single quotes.

    Inside double quotes ``\\n``, ``\\r``, ``\\t``, ``\\b``, ``\\a`` and
    ``\\xHH`` escapes are decoded; inside single quotes only ``\\'`` is.
    A closing quote must be followed by whitespace or the end of the line.
    """
    text = _c_string(line)
    size = len(text)

    def at(index: int) -> int:
        return text[index] if index < size else 0

    escapes = {ord("n"): 0x0A, ord("r"): 0x0D, ord("t"): 0x09, ord("b"): 0x08, ord("a"): 0x07}
    args: list[bytes] = []
    p = 0
    while True:
        while p < size and text[p] in _SPACE:
            p += 1
        if p >= size:
            return args

        current = bytearray()
        in_double = in_single = done = False
        while not done:
            ch = at(p)
            if in_double:
                if ch == ord("\\") and at(p + 1) == ord("x") and at(p + 2) and at(p + 3) \
                        and is_hex_digit(at(p + 2)) and is_hex_digit(at(p + 3)):
                    current.append(hex_digit_to_int(at(p + 2)) * 16 + hex_digit_to_int(at(p + 3)))
                    p += 3
                elif ch == ord("\\") and at(p + 1):
                    p += 1
                    current.append(escapes.get(at(p), at(p)))
                elif ch == ord('"'):
                    if at(p + 1) and at(p + 1) not in _SPACE:
                        raise SplitArgsError("closing quote must be followed by a space")
                    done = True
                elif not ch:
                    raise SplitArgsError("unterminated double quotes")
                else:
                    current.append(ch)
            elif in_single:
                if ch == ord("\\") and at(p + 1) == ord("'"):
                    p += 1
                    current.append(ord("'"))
                elif ch == ord("'"):
                    if at(p + 1) and at(p + 1) not in _SPACE:
                        raise SplitArgsError("closing quote must be followed by a space")
                    done = True
                elif not ch:
                    raise SplitArgsError("unterminated single quotes")
                else:
                    current.append(ch)
            else:
                if not ch or ch in _ARG_END:
                    done = True
                elif ch == ord('"'):
                    in_double = True
                elif ch == ord("'"):
                    in_single = True
                else:
                    current.append(ch)
            if at(p):
                p += 1
        args.append(bytes(current))


def join(items: Iterable[BytesLike], sep: BytesLike) -> DynamicString:
    """Join ``items`` with ``sep`` between consecutive elements."""
    separator = _to_bytes(sep)
    return DynamicString(separator.join(_to_bytes(item) for item in items))