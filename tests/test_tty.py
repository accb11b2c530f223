import os

import pytest

from castrec.tty import (
    Color,
    FixedSizeTty,
    NullTty,
    TtySize,
    parse_color,
    set_non_blocking,
)

EXPECTED = Color(0xAA, 0xBB, 0xCC)


@pytest.mark.parametrize(
    "text",
    [
        "aa11/bb22/cc33",
        "aa11/bb22/cc33\x07",
        "aa11/bb22/cc33\x1b\\",
        "aa11/bb22/cc33..",
        "aa1/bb2/cc3",
        "aa1/bb2/cc3\x07",
        "aa1/bb2/cc3\x1b\\",
        "aa1/bb2/cc3..",
        "aa/bb/cc",
        "aa/bb/cc\x07",
        "aa/bb/cc\x1b\\",
        "aa/bb/cc..",
    ],
)
def test_parse_color_valid(text):
    assert parse_color(text) == EXPECTED


@pytest.mark.parametrize(
    "text",
    ["aa11/bb22", "xxxx/yyyy/zzzz", "xxx/yyy/zzz", "xx/yy/zz", "foo", ""],
)
def test_parse_color_invalid(text):
    assert parse_color(text) is None


def test_fixed_size_tty():
    with FixedSizeTty(NullTty(), 100, 50) as tty:
        size = tty.get_size()
    assert size.cols == 100
    assert size.rows == 50


def test_fixed_size_tty_partial_override():
    with FixedSizeTty(NullTty(), cols=100) as tty:
        assert tty.get_size() == TtySize(100, 24)


def test_fixed_size_tty_delegates_theme_and_write():
    with FixedSizeTty(NullTty()) as tty:
        assert tty.get_theme() is None
        assert tty.write(b"hello") == 5


def test_null_tty_defaults():
    with NullTty() as tty:
        assert tty.get_size() == TtySize(80, 24)
        assert tty.get_theme() is None
        assert tty.write(b"abc") == 3


def test_null_tty_read_fails():
    with NullTty() as tty:
        with pytest.raises(RuntimeError):
            tty.read(10)


def test_set_non_blocking():
    rx, tx = os.pipe()
    try:
        set_non_blocking(rx)
        assert os.get_blocking(rx) is False
        with pytest.raises(BlockingIOError):
            os.read(rx, 1)
    finally:
        os.close(rx)
        os.close(tx)