"""One-shot command line invocation: ``homefs <tool> '<json arguments>'``.

Prints the tool's result as JSON on stdout. Failures are printed as
``{"error": ..., "kind": ...}`` on stderr with exit status 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from .config import configure_logging, load_config
from .dispatcher import build_dispatcher
from .errors import FsToolError, InvalidArgument

logger = logging.getLogger(__name__)

DEFINITION_COMMAND = "get_tool_definition"
DEFINITION_COMMANDS = (DEFINITION_COMMAND, "getToolDefinition")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="homefs", description="Sandboxed filesystem tools")
    parser.add_argument("tool", help=f"Tool name, or {DEFINITION_COMMAND} to print the tool table.")
    parser.add_argument("arguments", nargs="?", default=None, help="JSON object with the tool arguments.")
    parser.add_argument("--root", help="Directory all paths are confined to (default: HOMEFS_ROOT or home).")
    parser.add_argument("--no-symlink-check", action="store_true", help="Skip the symlink-resolved check.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v (INFO), -vv (DEBUG)")
    return parser


def _parse_arguments(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidArgument(f"Arguments are not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise InvalidArgument("Arguments must be a JSON object.")
    return value


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(root=args.root, check_symlinks=False if args.no_symlink_check else None)

    configure_logging(args.verbose, config.log_level)

    dispatcher = build_dispatcher(config)
    try:
        if args.tool in DEFINITION_COMMANDS:
            result = dispatcher.describe()
        else:
            result = dispatcher.dispatch(args.tool, _parse_arguments(args.arguments))
    except FsToolError as exc:
        print(json.dumps({"error": exc.message, "kind": exc.kind}, ensure_ascii=False), file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
