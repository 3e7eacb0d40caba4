"""Entry point: python -m mnemo <command> ...

- save "<content>":             Store a session memory
- search "<query>" [--limit N]: Ranked search over stored memories
- ask "<question>":             Answer from memories (model-synthesized when available)
- explore ["<query>"]:          Thematic clusters of all stored memories
"""

from __future__ import annotations

import asyncio
import logging
import sys

from mnemo.config import load_config

USAGE = """\
Usage: python -m mnemo [save|search|ask|explore] ...
  save "<content>"              Store a session memory
  search "<query>" [--limit N]  Search stored memories
  ask "<question>"              Answer a question from memories
  explore ["<query>"]           Group memories into themes"""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_limit(args: list[str], default: int = 5) -> tuple[list[str], int]:
    if "--limit" not in args:
        return args, default
    i = args.index("--limit")
    try:
        limit = int(args[i + 1])
    except (IndexError, ValueError):
        print("--limit needs an integer")
        sys.exit(1)
    return args[:i] + args[i + 2 :], limit


async def _run(cmd: str, args: list[str]) -> int:
    from mnemo.core import Mnemo, format_results
    from mnemo.errors import EmptyContentError

    config = load_config()
    async with Mnemo(config) as mnemo:
        if cmd == "save":
            try:
                memory = await mnemo.save_memory(" ".join(args))
            except EmptyContentError as e:
                print(e)
                return 1
            print(f"Saved memory {memory.id} (session {memory.session_id})")
            return 0

        if cmd == "search":
            args, limit = _parse_limit(args)
            results = await mnemo.search(" ".join(args), limit)
            print(format_results(results, mnemo.clock(), total=await mnemo.count()))
            return 0

        if cmd == "ask":
            answer = await mnemo.ask(" ".join(args))
            print(answer.text)
            return 0

        clusters = await mnemo.explore(" ".join(args))
        if not clusters:
            print(format_results([], mnemo.clock(), total=0))
        for cluster in clusters:
            print(f"== {cluster.theme} ({len(cluster.memories)} memories, relevance {cluster.relevance_score:.2f})")
            print(cluster.synthesized_content)
            print()
        return 0


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""

    if cmd not in ("save", "search", "ask", "explore"):
        print(USAGE)
        sys.exit(1)

    _setup_logging(load_config().log_level)
    try:
        code = asyncio.run(_run(cmd, sys.argv[2:]))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
