import pytest
from hypothesis import given
from hypothesis import strategies as st

from respkit.dynstr import DynamicString
from respkit.textutil import (
    SplitArgsError,
    cat_fmt,
    cat_printf,
    cat_repr,
    hex_digit_to_int,
    is_hex_digit,
    join,
    split_args,
    split_len,
)

LLONG_MIN = -(1 << 63)
LLONG_MAX = (1 << 63) - 1
UINT_MAX = (1 << 32) - 1
ULLONG_MAX = (1 << 64) - 1


def test_cat_printf_base_case():
    x = cat_printf(DynamicString(), "%d", 123)
    assert len(x) == 3
    assert bytes(x) == b"123"


def test_cat_printf_accepts_c_length_modifiers():
    x = cat_printf(DynamicString(), "key:%08lld str:%s", 123, "hello")
    assert bytes(x) == b"key:00000123 str:hello"


def test_cat_printf_float_format():
    x = cat_printf(DynamicString(), "key:%08.3f", 123.0)
    assert bytes(x) == b"key:0123.000"


def test_cat_printf_appends_to_existing():
    x = cat_printf(DynamicString(b"Sum is: "), "%d+%d = %d", 1, 2, 3)
    assert bytes(x).startswith(b"Sum is: ")
    assert bytes(x) == b"Sum is: " + b"1+2 = 3"


def test_cat_fmt_base_case():
    x = cat_fmt(DynamicString("--"), "Hello %s World %I,%I--", "Hi!", LLONG_MIN, LLONG_MAX)
    assert len(x) == 60
    assert bytes(x) == b"--Hello Hi! World -9223372036854775808,9223372036854775807--"


def test_cat_fmt_unsigned_numbers():
    x = cat_fmt(DynamicString("--"), "%u,%U--", UINT_MAX, ULLONG_MAX)
    assert len(x) == 35
    assert bytes(x) == b"--4294967295,18446744073709551615--"


def test_cat_fmt_percent_and_unknown_directive():
    x = cat_fmt(DynamicString(), "%z%%")
    assert bytes(x) == b"z%"


def test_cat_fmt_s_stops_at_nul_but_S_does_not():
    a = cat_fmt(DynamicString(), "%s", b"ab\0cd")
    b = cat_fmt(DynamicString(), "%S", b"ab\0cd")
    assert bytes(a) == b"ab"
    assert bytes(b) == b"ab\0cd"


@pytest.mark.parametrize(
    "fmt,value",
    [("%i", 1 << 31), ("%i", -(1 << 31) - 1), ("%u", -1), ("%u", 1 << 32), ("%I", 1 << 63), ("%U", -1)],
)
def test_cat_fmt_range_errors(fmt, value):
    with pytest.raises(ValueError):
        cat_fmt(DynamicString(), fmt, value)


def test_cat_fmt_missing_argument():
    with pytest.raises(ValueError):
        cat_fmt(DynamicString(), "%s %s", "only")


def test_cat_repr_data():
    y = cat_repr(DynamicString(), b"\a\n\0foo\r")
    assert bytes(y) == b'"\\a\\n\\x00foo\\r"'


@given(st.binary(max_size=64))
def test_cat_repr_round_trips_through_split_args(data):
    quoted = bytes(cat_repr(DynamicString(), data))
    assert split_args(quoted) == [data]


@pytest.mark.parametrize("char", list("0123456789abcdefABCDEF"))
def test_hex_digits_recognised(char):
    assert is_hex_digit(char)
    assert hex_digit_to_int(char) == int(char, 16)


@pytest.mark.parametrize("char", ["g", "G", "x", " ", "-"])
def test_non_hex_digits(char):
    assert not is_hex_digit(char)
    assert hex_digit_to_int(char) == 0


def test_split_len_multi_char_separator():
    assert split_len(b"foo_-_bar", b"_-_") == [b"foo", b"bar"]


def test_split_len_empty_input_and_empty_separator():
    assert split_len(b"", b",") == []
    with pytest.raises(ValueError):
        split_len(b"a,b", b"")


@given(st.binary(max_size=40), st.binary(min_size=1, max_size=3))
def test_split_then_join_round_trip(data, sep):
    assert bytes(join(split_len(data, sep), sep)) == data


@given(st.lists(st.binary(max_size=10).filter(lambda b: b"," not in b), min_size=2, max_size=6))
def test_join_then_split_round_trip(items):
    assert split_len(bytes(join(items, b",")), b",") == items


def test_split_args_example_line():
    line = b'foo bar "newline are supported\\n" and "\\xff\\x00otherstuff"'
    assert split_args(line) == [
        b"foo",
        b"bar",
        b"newline are supported\n",
        b"and",
        b"\xff\x00otherstuff",
    ]


def test_split_args_empty_input():
    assert split_args(b"") == []
    assert split_args(b"   \t\n") == []


def test_split_args_single_quotes():
    assert split_args(b"set 'it\\'s'") == [b"set", b"it's"]


@pytest.mark.parametrize("line", [b'"foo"bar', b'"foo', b"'foo", b"'foo'bar"])
def test_split_args_errors(line):
    with pytest.raises(SplitArgsError):
        split_args(line)


@given(st.lists(st.text(alphabet="abcxyz019", min_size=1, max_size=8), max_size=6))
def test_split_args_plain_words(words):
    line = " ".join(words)
    assert split_args(line) == [w.encode() for w in words]


def test_join_basic():
    assert join([b"a", b"b", b"c"], b"|") == b"a|b|c"
    assert join([], b"|") == b""
    assert join([b"solo"], b"|") == b"solo"