"""Helper script to run the default estimate audit."""
from __future__ import annotations

import argparse

from estaudit.cli import main


def _parse_args(argv: list[str] | None = None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(description="Run the estimate multiplier audit")
    parser.add_argument(
        "--sold-only",
        action="store_true",
        help="Audit only estimates whose status is sold (any casing).",
    )
    return parser.parse_known_args(argv)


if __name__ == "__main__":  # pragma: no cover
    args, remaining = _parse_args()
    forward_args: list[str] = list(remaining)
    if args.sold_only:
        forward_args.append("--sold-only")
    raise SystemExit(main(forward_args))
