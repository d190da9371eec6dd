import io

import pytest

from xvtools.fmt import format, fprintf


@pytest.mark.parametrize("n", [0, 7, -1, -42, 2147483647, -2147483648, 10**6])
def test_decimal_round_trip(n):
    assert int(format("%d", n)) == n


def test_decimal_wraps_to_32_bits():
    assert int(format("%d", 2**31)) == -(2**31)


@pytest.mark.parametrize("n", [0, 1, 255, 0xABCDEF, 0x7FFFFFFF])
def test_hex_round_trip_uppercase(n):
    text = format("%x", n)
    assert int(text, 16) == n
    assert text == text.upper()


def test_hex_of_negative_is_unsigned():
    assert int(format("%x", -1), 16) == 0xFFFFFFFF


def test_unsigned_long_is_not_negative():
    assert int(format("%l", 12345)) == 12345
    assert int(format("%l", -1)) == 0xFFFFFFFF


@pytest.mark.parametrize("n", [0, 0x80000000, (1 << 64) - 1])
def test_pointer(n):
    text = format("%p", n)
    assert text.startswith("0x")
    assert len(text) == 18
    assert int(text, 16) == n


def test_strings_and_null():
    assert format("%s-%s", "ab", None) == "ab-(null)"


def test_char_from_int_and_str():
    assert format("%c%c", ord("h"), "i") == "hi"


def test_percent_and_unknown():
    assert format("100%%") == "100%"
    assert format("%q") == "%q"


def test_trailing_percent_is_dropped():
    assert format("abc%") == "abc"


def test_missing_argument():
    with pytest.raises(TypeError):
        format("%d %d", 1)


def test_fprintf_writes_to_stream():
    buf = io.StringIO()
    fprintf(buf, "cat: cannot open %s\n", "x")
    assert buf.getvalue() == "cat: cannot open x\n"