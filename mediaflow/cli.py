"""Headless entry point: run or validate a plan file from the terminal."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from schemas import Plan, StepConfig, StepOutput

from .config import LOG_FILE, Config


def _setup_logging() -> None:
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(LOG_FILE),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_json(path: str) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8-sig"))


def _load_plan(path: str) -> Plan:
    return Plan.model_validate(_read_json(path))


def cmd_validate(args: argparse.Namespace) -> int:
    from .validation import validate_plan

    try:
        plan = _load_plan(args.plan)
    except ValidationError as e:
        print(f"Invalid plan: {e}")
        return 1

    problems = validate_plan(plan)
    for step_id, errors in problems.items():
        for err in errors:
            print(f"{step_id}: {err}")
    if not problems:
        print(f"OK: {len(plan.steps)} steps")
    return 1 if problems else 0


def cmd_run(args: argparse.Namespace) -> int:
    from .adapters import build_registry
    from .executor import PlanExecutor

    try:
        plan = _load_plan(args.plan)
    except ValidationError as e:
        print(f"Invalid plan: {e}")
        return 1

    configs = {k: StepConfig.model_validate(v) for k, v in _read_json(args.configs).items()} if args.configs else {}
    previous = {k: StepOutput.model_validate(v) for k, v in _read_json(args.outputs).items()} if args.outputs else {}

    config = Config.load()
    use_placeholders = args.test
    if not use_placeholders and not any(
        (config.replicate_api_token, config.sieve_api_key, config.hf_token, config.gemini_api_key)
    ):
        print("⚠  No provider keys found, switching to placeholder mode.", file=sys.stderr)
        use_placeholders = True

    executor = PlanExecutor(build_registry(config, use_placeholders), config)
    try:
        events = executor.execute(plan, configs, previous, start_step_id=args.start)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    status = "error"
    try:
        for event in events:
            print(json.dumps(event.to_dict()), flush=True)
            if event.type == "done":
                status = event.status
    except KeyboardInterrupt:
        executor.cancel()
        print("Cancelled.", file=sys.stderr)
        return 1
    return 0 if status == "success" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mediaflow", description="Execute media generation plans")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Execute a plan, printing one JSON event per line")
    run.add_argument("plan", help="Path to plan JSON")
    run.add_argument("--configs", help="JSON map of step id -> {model, inputs} overrides")
    run.add_argument("--outputs", help="JSON map of step id -> {url, text} from an earlier run")
    run.add_argument("--from", dest="start", help="Resume at this step id")
    run.add_argument("--test", action="store_true", help="Placeholder outputs, no API calls")
    run.set_defaults(func=cmd_run)

    validate = sub.add_parser("validate", help="Check a plan without running it")
    validate.add_argument("plan", help="Path to plan JSON")
    validate.set_defaults(func=cmd_validate)
    return parser


def main(argv: list[str] | None = None) -> int:
    _setup_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)
