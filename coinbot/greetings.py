"""Random greeting messages for named people."""

from __future__ import annotations

import random
import sys
from collections.abc import Iterable, Sequence

_FORMATS = (
    "Hi, {}. Welcome!",
    "Great to see you, {}",
    "Hail, {}! Well met!",
)

DEFAULT_NAMES = ("Glady", "Samantha", "Darrin")


def hello(name: str) -> str:
    """Greet ``name`` with a randomly chosen message."""
    if not name:
        raise ValueError("empty name")
    return random.choice(_FORMATS).format(name)


def hellos(names: Iterable[str]) -> dict[str, str]:
    """Map each name to a greeting; raises ValueError on an empty name."""
    return {name: hello(name) for name in names}


def main(argv: Sequence[str] | None = None) -> int:
    """Print greetings for the given names, or for a default list."""
    if argv is None:
        argv = sys.argv[1:]
    names = list(argv) or list(DEFAULT_NAMES)
    try:
        messages = hellos(names)
    except ValueError as exc:
        print(f"greetings:{exc}", file=sys.stderr)
        return 1
    print(messages)
    return 0


if __name__ == "__main__":
    sys.exit(main())