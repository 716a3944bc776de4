"""Command-line entry point: evaluate one expression and print it as JSON.

Usage:
    python -m hcl_eval '"${var.region}-app"' --var region=eu-west-1
    python -m hcl_eval 'var.azs' --shape list-of-string --config .hcl-eval.yml

Exit status:
    0  value printed
    1  evaluation failed (error-level ClassifiedError, bad input or config)
    2  expression skipped (warning-level ClassifiedError)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .engine.binding import TargetShape
from .engine.config import ConfigLoader, parse_env_value
from .engine.exceptions import ClassifiedError, ConfigError, ExpressionSyntaxError
from .engine.runner import Runner
from .engine.syntax import parse_expression

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_SKIPPED = 2


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        prog="hcl-eval",
        description="Statically evaluate an HCL-style expression.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("expression", help="Expression source, e.g. '\"${var.name}\"'")
    parser.add_argument("-c", "--config", type=Path, default=None, help="Explicit config file")
    parser.add_argument(
        "-v",
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set an input variable (repeat for multiple; JSON lists/objects accepted)",
    )
    parser.add_argument(
        "-s",
        "--shape",
        choices=[shape.value for shape in TargetShape],
        default=TargetShape.STRING.value,
        help="Destination shape of the result (default: string)",
    )
    parser.add_argument(
        "--filename",
        default="<cli>",
        help="File name used in messages (default: <cli>)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: HCL_EVAL_LOG_LEVEL or WARNING)",
    )
    return parser


def parse_var_args(pairs: Sequence[str]) -> dict[str, object]:
    """
    Parse NAME=VALUE pairs.

    Raises:
        ConfigError: If a pair has no '=' or an empty name
    """
    variables: dict[str, object] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            raise ConfigError(f"Invalid --var {pair!r}: expected NAME=VALUE")
        variables[name] = parse_env_value(raw)
    return variables


def configure_logging(level_arg: str | None) -> None:
    """Configure root logging to stderr."""
    level_str = (level_arg or os.getenv("HCL_EVAL_LOG_LEVEL", "WARNING")).upper()
    if level_str not in VALID_LOG_LEVELS:
        print(
            f"Warning: Invalid log level '{level_str}'. "
            f"Valid levels: {', '.join(sorted(VALID_LOG_LEVELS))}. "
            "Using WARNING.",
            file=sys.stderr,
        )
        level_str = "WARNING"

    logging.basicConfig(
        level=getattr(logging, level_str),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        overrides = parse_var_args(args.var)
        ctx = ConfigLoader(args.config).build_context(overrides)
        expr = parse_expression(args.expression, filename=args.filename)
    except (ConfigError, ExpressionSyntaxError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        result = Runner(ctx).evaluate_expr(expr, TargetShape(args.shape))
    except ClassifiedError as e:
        print(f"{e.code.value}: {e}", file=sys.stderr)
        return EXIT_SKIPPED if e.is_warning else EXIT_ERROR

    print(json.dumps(result))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
