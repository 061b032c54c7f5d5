"""Entry point: python -m memguard <command>

- context <file> [--budget N]: print the memory bundle for a file
- validate <file>:             check a file against the project rules
- recall <query>:              search memories
- learn <dir>:                 learn recurring code patterns from a workspace
"""

from __future__ import annotations

import logging
import sys

from memguard.config import load_config

USAGE = """\
Usage: python -m memguard <command> [args]
  context <file> [--budget N]  Print the memory context for a file
  validate <file>              Validate a file (exit 1 on errors)
  recall <query>               Search memories
  learn <dir>                  Learn code patterns from a workspace"""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _build_guard():
    config = load_config()
    _setup_logging(config.log_level)

    from memguard.core import MemGuard

    return MemGuard(config)


def _run_context(args: list[str]) -> int:
    budget = None
    if "--budget" in args:
        i = args.index("--budget")
        if i + 1 >= len(args):
            print("--budget needs a value", file=sys.stderr)
            return 2
        budget = int(args[i + 1])
        args = args[:i] + args[i + 2 :]
    guard = _build_guard()
    bundle = guard.context_for(args[0] if args else None, budget)
    print(bundle or "(no relevant memories)")
    return 0


def _run_validate(args: list[str]) -> int:
    guard = _build_guard()
    result = guard.validate_file(args[0])
    for d in result.diagnostics:
        print(f"{args[0]}:{d}")
    print(result.summary)
    return 0 if result.passed else 1


def _run_recall(args: list[str]) -> int:
    from memguard.tools.memory_tools import get_memory_tools

    tools = get_memory_tools(_build_guard())
    print(tools["recall"](" ".join(args)))
    return 0


def _run_learn(args: list[str]) -> int:
    guard = _build_guard()
    records = guard.learn_patterns(args[0])
    print(f"Learned {len(records)} patterns")
    for record in records:
        print(f"- {record.excerpt(100)}")
    return 0


COMMANDS = {
    "context": (_run_context, 0),
    "validate": (_run_validate, 1),
    "recall": (_run_recall, 1),
    "learn": (_run_learn, 1),
}


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    cmd = argv[0] if argv else ""
    if cmd not in COMMANDS or len(argv) - 1 < COMMANDS[cmd][1]:
        print(USAGE)
        return 1
    handler, _ = COMMANDS[cmd]
    return handler(argv[1:])


if __name__ == "__main__":
    sys.exit(main())
