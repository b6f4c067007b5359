"""
Command line interface: ``x402-playground``.

    x402-playground simulate plan.json
    x402-playground execute plan.json
    x402-playground validate plan.json
    x402-playground serve --port 8000
"""
import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from .exceptions import PlanValidationError
from .models import ExecutionMode

GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"


def should_use_color() -> bool:
    """Color only on a TTY, and never when NO_COLOR is set."""
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def load_plan_file(path: str) -> Dict[str, Any]:
    """
    Read a plan (or plan graph) from a JSON file, ``-`` for stdin.

    Raises:
        PlanValidationError: If the file is not a JSON object
    """
    try:
        if path == "-":
            data = json.load(sys.stdin)
        else:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
    except json.JSONDecodeError as e:
        raise PlanValidationError(f"Invalid JSON in {path}: {e}")

    if not isinstance(data, dict):
        raise PlanValidationError(f"{path} must contain a JSON object")
    return data


def _status_line(label: str, ok: bool, color: bool) -> str:
    text = f"{label}: {'OK' if ok else 'FAILED'}"
    if not color:
        return text
    return f"{GREEN if ok else RED}{text}{RESET}"


def _dump(model: Any) -> str:
    return json.dumps(model.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2)


def _cmd_run(args: argparse.Namespace, mode: ExecutionMode) -> int:
    from .playground import Playground

    plan = load_plan_file(args.plan)
    result = Playground().run(plan, mode=mode, fail_fast=args.fail_fast)

    print(_dump(result))
    print(_status_line(f"{mode.value} {result.run_id}", result.success, not args.no_color and should_use_color()),
          file=sys.stderr)
    return 0 if result.success else 1


def _cmd_validate(args: argparse.Namespace) -> int:
    from .validation import validate_plan

    report = validate_plan(load_plan_file(args.plan))
    print(_dump(report))
    print(_status_line("validate", report.valid, not args.no_color and should_use_color()),
          file=sys.stderr)
    return 0 if report.valid else 1


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn
    from .server import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x402-playground",
        description="Simulate, execute and validate x402 execution plans.")
    parser.add_argument(
        "--no-color",
        help="Disable colored output",
        action="store_true"
    )
    parser.add_argument(
        "--debug",
        help="Enable debug output",
        action="store_true"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("simulate", "Run a plan against the virtual ledger"),
        ("execute", "Run a plan against the configured chain"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("plan", help="Plan JSON file ('-' for stdin)")
        policy = cmd.add_mutually_exclusive_group()
        policy.add_argument("--fail-fast", dest="fail_fast", action="store_const", const=True,
                            help="Stop at the first failing step")
        policy.add_argument("--continue-on-error", dest="fail_fast", action="store_const", const=False,
                            help="Run every step even after a failure")

    validate = sub.add_parser("validate", help="Check a plan without running it")
    validate.add_argument("plan", help="Plan JSON file ('-' for stdin)")

    serve = sub.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "simulate":
            return _cmd_run(args, ExecutionMode.SIMULATE)
        if args.command == "execute":
            return _cmd_run(args, ExecutionMode.EXECUTE)
        if args.command == "validate":
            return _cmd_validate(args)
        return _cmd_serve(args)
    except (PlanValidationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
