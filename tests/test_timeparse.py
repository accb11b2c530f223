import pytest

from castrec.timeparse import parse_time


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.23, 1_230_000),
        (10.5, 10_500_000),
        (5.600001, 5_600_001),
        (0.000001, 1),
        (1, 1_000_000),
        (1.0, 1_000_000),
    ],
)
def test_parse_time_values(value, expected):
    assert parse_time(value) == expected


def test_parse_time_truncates_beyond_microseconds():
    assert parse_time(1.0000009) == parse_time(1.0)


def test_parse_time_is_monotonic():
    values = [0, 0.5, 1, 1.25, 2.000001, 100]
    results = [parse_time(v) for v in values]
    assert results == sorted(results)
    assert len(set(results)) == len(results)


@pytest.mark.parametrize("value", ["1.5", None, True, [1], -1, -0.5, float("nan"), float("inf")])
def test_parse_time_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_time(value)