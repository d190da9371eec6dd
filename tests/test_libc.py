import io

import pytest

from xvtools.libc import atoi, gets, memcmp, strcmp


def test_atoi_leading_digits():
    assert atoi("123abc") == 123
    assert atoi(b"42") == 42


def test_atoi_no_sign_or_space():
    assert atoi("-5") == 0
    assert atoi(" 7") == 0
    assert atoi("") == 0


def test_strcmp_equal():
    assert strcmp("hello", "hello") == 0


def test_strcmp_order_and_difference():
    assert strcmp("a", "b") < 0
    assert strcmp("b", "a") > 0
    assert strcmp("abc", "ab") == ord("c")
    assert strcmp("ab", "abc") == -ord("c")


def test_strcmp_stops_at_nul():
    assert strcmp("ab\0x", "ab\0y") == 0


def test_strcmp_unsigned_bytes():
    assert strcmp(b"\xff", b"\x01") > 0


def test_memcmp():
    assert memcmp(b"abcd", b"abce", 3) == 0
    assert memcmp(b"abcd", b"abce", 4) == ord("d") - ord("e")


def test_memcmp_too_long():
    with pytest.raises(ValueError):
        memcmp(b"ab", b"abc", 3)


def test_gets_stops_at_newline():
    stream = io.StringIO("hello\nworld")
    assert gets(stream, 100) == "hello\n"
    assert gets(stream, 100) == "world"
    assert gets(stream, 100) == ""


def test_gets_respects_max():
    assert gets(io.StringIO("hello"), 3) == "he"


def test_gets_carriage_return_and_bytes():
    assert gets(io.BytesIO(b"ab\rcd"), 10) == b"ab\r"