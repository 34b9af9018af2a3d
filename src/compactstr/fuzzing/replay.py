"""Replay saved fuzzer inputs to confirm reproducibility.

Reads one or more raw input buffers (a file, a directory of ``*.bin``
findings, or ``-`` for stdin), runs each once through check() without any
fuzzing engine, and prints the divergence report if one reproduces.

Usage:
    compactstr-replay .fuzz_atheris_corpus/compact_str/crash-1a2b3c
    compactstr-replay .hypothesis/compactstr-findings/   # replay all
    cat finding_0001.bin | compactstr-replay - --verbose

Exit codes:
    0 - No divergence reproduced (or no inputs found)
    1 - At least one divergence reproduced
    2 - An input could not be read
"""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from typing import TYPE_CHECKING

from compactstr.fuzzing.checker import DivergenceReport, run
from compactstr.fuzzing.config import HarnessConfig
from compactstr.fuzzing.decoder import decode

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["main", "replay_bytes"]

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_REPRODUCED = 1
EXIT_READ_ERROR = 2


def replay_bytes(
    data: bytes,
    label: str,
    config: HarnessConfig,
    *,
    verbose: bool = False,
    as_json: bool = False,
) -> bool:
    """Run one input; return True if a divergence reproduces."""
    sequence = decode(data, config)
    if verbose and not as_json:
        print(f"  [{label}] {len(sequence)} operation(s), truncated={sequence.truncated}")
        for index, operation in enumerate(sequence):
            print(f"    #{index:<3d} {operation!r}")

    outcome = run(sequence, config)
    reproduced = isinstance(outcome, DivergenceReport)
    if as_json:
        payload: dict[str, object] = {"input": label, "reproduced": reproduced}
        if isinstance(outcome, DivergenceReport):
            payload["report"] = outcome.to_dict()
        else:
            payload["operations"] = outcome.operations
            payload["rejections"] = outcome.rejections
        print(json.dumps(payload, sort_keys=True))
    elif isinstance(outcome, DivergenceReport):
        print(f"  [{label}] [CONFIRMED] {outcome.summary()}")
        for line in outcome.describe().splitlines():
            print(f"    {line}")
    else:
        print(
            f"  [{label}] Not reproduced "
            f"({outcome.operations} operations, {outcome.rejections} rejected)"
        )
    logger.info("Replayed %s: reproduced=%s", label, reproduced)
    return reproduced


def _collect(target: str) -> list[tuple[str, pathlib.Path | None]]:
    """Inputs named by ``target``; a None path means stdin."""
    if target == "-":
        return [("<stdin>", None)]
    path = pathlib.Path(target)
    if path.is_dir():
        return [(found.name, found) for found in sorted(path.glob("*.bin"))]
    return [(path.name, path)]


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="compactstr-replay",
        description="Replay saved fuzzer inputs through the CompactString differential harness",
    )
    parser.add_argument("inputs", nargs="+", help="input file, findings directory, or - for stdin")
    parser.add_argument("--verbose", "-v", action="store_true", help="print decoded operations")
    parser.add_argument("--json", action="store_true", help="one JSON object per input")
    parser.add_argument(
        "--max-operations",
        type=int,
        default=HarnessConfig().max_operations,
        help="decode at most this many operations per input",
    )
    parser.add_argument(
        "--inline-capacity",
        type=int,
        default=None,
        help="override the inline threshold queried from CompactString",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point."""
    args = _parse_args(argv)
    try:
        config = HarnessConfig(
            max_operations=args.max_operations, inline_capacity=args.inline_capacity
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_READ_ERROR

    inputs = [item for target in args.inputs for item in _collect(target)]
    if not inputs:
        print("No *.bin inputs found")
        return EXIT_CLEAN

    any_reproduced = False
    for label, path in inputs:
        try:
            data = sys.stdin.buffer.read() if path is None else path.read_bytes()
        except OSError as e:
            print(f"Cannot read {label}: {e}", file=sys.stderr)
            return EXIT_READ_ERROR
        if replay_bytes(data, label, config, verbose=args.verbose, as_json=args.json):
            any_reproduced = True

    if args.json:
        return EXIT_REPRODUCED if any_reproduced else EXIT_CLEAN
    print()
    if any_reproduced:
        print("[RESULT] At least one divergence REPRODUCED")
        return EXIT_REPRODUCED
    print("[RESULT] No divergence reproduced")
    return EXIT_CLEAN


if __name__ == "__main__":
    sys.exit(main())
