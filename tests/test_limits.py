import pytest

from judge import config
from runner.limits import resolve_limits


def test_defaults_for_unspecified_limits():
    limits = resolve_limits(0, None)
    assert limits.time_limit == config.DEFAULT_TIME_LIMIT
    assert limits.memory_limit == config.DEFAULT_MEMORY_LIMIT


def test_limits_are_clamped():
    limits = resolve_limits(3600, 1 << 20)
    assert limits.time_limit == config.MAX_TIME_LIMIT
    assert limits.memory_limit == config.MAX_MEMORY_LIMIT


@pytest.mark.parametrize('time_limit, memory_limit', [(2, 64), (1, 256)])
def test_explicit_limits_are_kept(time_limit, memory_limit):
    limits = resolve_limits(time_limit, memory_limit)
    assert limits.time_limit == time_limit
    assert limits.memory_limit == memory_limit
    assert limits.memory_kb == memory_limit * 1024
    assert limits.memory_bytes == memory_limit * 1024 * 1024


def test_negative_limits_fall_back_to_defaults():
    limits = resolve_limits(-1, -5)
    assert limits.time_limit == config.DEFAULT_TIME_LIMIT
    assert limits.memory_limit == config.DEFAULT_MEMORY_LIMIT
