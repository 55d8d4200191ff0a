"""Extra command-line flag types and parsing of flags from FLAG_ variables."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence

_log = logging.getLogger(__name__)

ENV_PREFIX = "FLAG_"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class StringMapValue(dict):
    """A map flag written as key1=value1,key2=value2."""

    def set(self, s: str) -> None:
        """Replace the contents with the pairs in ``s``; raise ValueError if malformed."""
        parsed: dict[str, str] = {}
        for pair in s.split(","):
            if not pair:
                continue
            parts = pair.split("=")
            if len(parts) != 2:
                raise ValueError(f"wrong format for key-value pair: {pair}")
            key, value = parts
            if not key:
                raise ValueError("key not provided")
            if key in parsed:
                raise ValueError(
                    f"key {key} already defined in list of key-value pairs {s}"
                )
            parsed[key] = value
        self.clear()
        self.update(parsed)

    @classmethod
    def from_string(cls, s: str) -> StringMapValue:
        """Build a value from a string; usable as an argparse ``type``."""
        value = cls()
        value.set(s)
        return value

    def __str__(self) -> str:
        return ",".join(f"{key}={self[key]}" for key in sorted(self))


class StringListValue(list):
    """A list flag written as comma-separated values; empty items are dropped."""

    def set(self, s: str) -> None:
        self[:] = [item for item in s.split(",") if item]

    @classmethod
    def from_string(cls, s: str) -> StringListValue:
        """Build a value from a string; usable as an argparse ``type``."""
        value = cls()
        value.set(s)
        return value

    def __str__(self) -> str:
        return ",".join(self)


def _parse_bool(s: str) -> bool:
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError(f"invalid boolean value {s!r}")


def parse_from_env(parser: argparse.ArgumentParser) -> None:
    """Set option defaults from FLAG_<dest> environment variables.

    Values given on the command line still take precedence.
    """
    for action in parser._actions:
        if not action.option_strings or action.default == argparse.SUPPRESS:
            continue
        raw = os.environ.get(ENV_PREFIX + action.dest)
        if raw is None:
            continue
        try:
            if action.nargs == 0:
                if not isinstance(action.const, bool):
                    continue
                value = _parse_bool(raw)
            elif callable(action.type):
                value = action.type(raw)
            else:
                value = raw
        except (ValueError, TypeError, argparse.ArgumentTypeError) as exc:
            _log.warning("ignoring %s%s=%r: %s", ENV_PREFIX, action.dest, raw, exc)
            continue
        parser.set_defaults(**{action.dest: value})


def parse(
    parser: argparse.ArgumentParser, argv: Sequence[str] | None = None
) -> argparse.Namespace:
    """Parse flags from the environment, then from ``argv`` (default: sys.argv[1:])."""
    parse_from_env(parser)
    return parser.parse_args(argv)