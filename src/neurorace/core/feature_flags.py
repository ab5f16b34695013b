"""Feature flags for bending the session flow without code changes.

Classroom and demo setups sometimes want a strict alternating turn order, so
a host can call out whose go it is, or want to drop the tutorial for players
who have seen it before.  Flags come from the ``NEURORACE_FEATURES``
environment variable (comma-separated, case-insensitive) and can be forced on
or off for a block of code with :func:`override`::

    from neurorace.core import feature_flags

    with feature_flags.override(enable={feature_flags.TUTORIAL_DISABLED}):
        machine.start_tutorial()
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Final

__all__ = [
    "FIXED_ALTERNATION",
    "TUTORIAL_DISABLED",
    "active_flags",
    "is_enabled",
    "override",
    "set_env_flags",
]

ENV_VAR: Final = "NEURORACE_FEATURES"

FIXED_ALTERNATION: Final = "schedule.fixed_alternation"
TUTORIAL_DISABLED: Final = "tutorial.disabled"


@dataclass(frozen=True)
class _Override:
    enable: frozenset[str]
    disable: frozenset[str]


# Innermost override last; a disable anywhere in the stack wins over an enable.
_overrides: list[_Override] = []


def _key(flag: str) -> str:
    return flag.strip().lower()


def _keys(flags: Iterable[str] | None) -> frozenset[str]:
    return frozenset(_key(flag) for flag in (flags or ()) if flag.strip())


def _env_flags() -> frozenset[str]:
    return _keys((os.getenv(ENV_VAR) or "").split(","))


def _forced() -> tuple[set[str], set[str]]:
    on: set[str] = set()
    off: set[str] = set()
    for item in _overrides:
        on |= item.enable
        off |= item.disable
    return on, off


def is_enabled(flag: str) -> bool:
    """True when ``flag`` is switched on by the environment or an override and not forced off."""

    key = _key(flag)
    on, off = _forced()
    if key in off:
        return False
    return key in on or key in _env_flags()


def active_flags() -> list[str]:
    """Sorted names of the flags currently in effect."""

    on, off = _forced()
    return sorted((_env_flags() | on) - off)


@contextmanager
def override(*, enable: Iterable[str] | None = None, disable: Iterable[str] | None = None) -> Iterator[None]:
    """Force flags on or off until the block exits; nested blocks stack."""

    _overrides.append(_Override(enable=_keys(enable), disable=_keys(disable)))
    try:
        yield
    finally:
        _overrides.pop()


def set_env_flags(flags: Iterable[str]) -> None:
    """Replace the environment flag list, normalised and sorted."""

    os.environ[ENV_VAR] = ",".join(sorted(_keys(flags)))
