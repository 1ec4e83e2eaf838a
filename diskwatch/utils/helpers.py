"""
Helper utilities for diskwatch.

Common functions used across domains.
"""

from pathlib import Path
from typing import List, Tuple

STATS_SUFFIX = "stat"


class StatsParseError(ValueError):
    """Raised when a block device stats line cannot be interpreted."""


def stats_path_for(sys_path: str) -> Path:
    """Return the per-device I/O statistics file below ``sys_path``."""
    return Path(sys_path) / STATS_SUFFIX


def can_open(path: Path) -> bool:
    """Check that ``path`` exists and is readable right now."""
    try:
        with open(path, encoding="ascii"):
            return True
    except OSError:
        return False


def read_stats_line(path: Path) -> str:
    """Read the first line of a stats file.

    Undecodable bytes become U+FFFD so they surface as a non-numeric
    field in :func:`parse_stats_field` instead of a decode error.
    """
    with open(path, encoding="ascii", errors="replace") as f:
        return f.readline()


def split_stats_line(line: str, minimum: int) -> List[str]:
    """
    Split a stats line into whitespace separated tokens.

    Args:
        line: Raw line, e.g. " 0 0 0 0 0 0 0 3 0 0 0"
        minimum: Number of tokens the caller is going to index into

    Returns:
        List of tokens

    Raises:
        StatsParseError: If the line holds fewer than ``minimum`` tokens
    """
    tokens = line.split()
    if len(tokens) < minimum:
        raise StatsParseError(
            f"expected at least {minimum} fields, got {len(tokens)}: {line!r}"
        )
    return tokens


def parse_stats_field(line: str, position: int) -> int:
    """
    Extract an integer counter from a stats line.

    Args:
        line: Raw stats line
        position: 1-based field position

    Returns:
        The counter value

    Raises:
        StatsParseError: If the field is missing or not a number
    """
    if position < 1:
        raise ValueError("position is 1-based")

    token = split_stats_line(line, position)[position - 1]
    try:
        return int(token)
    except ValueError:
        raise StatsParseError(f"field {position} is not numeric: {token!r}") from None


def parse_slot_assignment(text: str) -> Tuple[str, int]:
    """
    Parse a ``DEVNODE=SLOT`` pair as given on the command line.

    Returns:
        Tuple of (device_node, slot)
    """
    node, sep, slot = text.partition('=')
    node = node.strip()
    if not sep or not node:
        raise ValueError(f"expected DEVNODE=SLOT, got {text!r}")
    try:
        return node, int(slot.strip())
    except ValueError:
        raise ValueError(f"slot must be an integer in {text!r}") from None
