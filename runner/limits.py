from dataclasses import dataclass

from judge import config


@dataclass(frozen=True)
class ResourceLimits:
    time_limit: int  # sec.
    memory_limit: int  # MB

    @property
    def memory_kb(self) -> int:
        return self.memory_limit * 1024

    @property
    def memory_bytes(self) -> int:
        return self.memory_limit * 1024 * 1024


def _resolve(value, default, ceiling):
    if not value or value <= 0:
        value = default
    return min(int(value), ceiling)


def resolve_limits(time_limit=None, memory_limit=None) -> ResourceLimits:
    """Fill in defaults for unspecified limits and clamp both to the ceiling."""
    return ResourceLimits(
        time_limit=_resolve(time_limit, config.DEFAULT_TIME_LIMIT,
                            config.MAX_TIME_LIMIT),
        memory_limit=_resolve(memory_limit, config.DEFAULT_MEMORY_LIMIT,
                              config.MAX_MEMORY_LIMIT),
    )
