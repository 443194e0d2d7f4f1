"""CLI entry point for jobstream."""

from __future__ import annotations

import sys

from jobstream.cli import build_parser, handle_init_group, handle_scrape, handle_show_config
from jobstream.errors import ActionableError

_HANDLERS = {
    "scrape": handle_scrape,
    "init-group": handle_init_group,
    "show-config": handle_show_config,
}


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    try:
        _HANDLERS[args.command](args)
    except ActionableError as exc:
        print(f"Error: {exc.error}", file=sys.stderr)
        if exc.suggestion:
            print(f"  Suggestion: {exc.suggestion}", file=sys.stderr)
        if exc.troubleshooting:
            for step in exc.troubleshooting.steps:
                print(f"  {step}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
