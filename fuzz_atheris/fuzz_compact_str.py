#!/usr/bin/env python3
"""CompactString Differential Fuzzer (Atheris).

Targets: compactstr.compact.CompactString (via compactstr.fuzzing.check)

Each libFuzzer input is decoded into an operation sequence that is replayed
on CompactString and on the OracleString reference model in lockstep. The
first divergence (crash, asymmetric rejection, content / result mismatch,
storage invariant violation) raises DivergenceError, which libFuzzer saves
as a crash artifact; the input is also written under
.fuzz_atheris_corpus/compact_str/findings/ for compactstr-replay.

Metrics are keyed by operation kind: how often each kind was replayed and
which kinds were implicated in a divergence.

Usage:
    python fuzz_atheris/fuzz_compact_str.py -max_total_time=600
    python fuzz_atheris/fuzz_compact_str.py --max-operations 64 corpus_dir/

Requires Python 3.13+ (uses PEP 695 type aliases).
"""

from __future__ import annotations

import argparse
import atexit
import gc
import logging
import pathlib
import sys
import time
from typing import Any

# --- Dependency Checks ---
_psutil_mod: Any = None
_atheris_mod: Any = None

try:  # noqa: SIM105 - need module ref for check_dependencies
    import psutil as _psutil_mod  # type: ignore[no-redef]
except ImportError:
    pass

try:  # noqa: SIM105 - need module ref for check_dependencies
    import atheris as _atheris_mod  # type: ignore[no-redef]
except ImportError:
    pass

from fuzz_common import (  # noqa: E402 - after dependency capture  # pylint: disable=C0413
    GC_INTERVAL,
    BaseFuzzerState,
    build_base_stats_dict,
    check_dependencies,
    count_event,
    count_operations,
    emit_final_report,
    get_process,
    record_iteration_metrics,
    record_memory,
    write_finding_artifact,
)

check_dependencies(["psutil", "atheris"], [_psutil_mod, _atheris_mod])

import atheris  # noqa: E402  # pylint: disable=C0412,C0413

# --- Global State ---

_state = BaseFuzzerState(seed_corpus_max_size=500)

# --- Reporting ---

_REPORT_DIR = pathlib.Path(".fuzz_atheris_corpus") / "compact_str"
_FINDING_DIR = _REPORT_DIR / "findings"


def _emit_report() -> None:
    """Emit comprehensive final report (crash-proof)."""
    stats = build_base_stats_dict(_state)
    emit_final_report(_state, stats, _REPORT_DIR, "fuzz_compact_str_report.json")


atexit.register(_emit_report)


# --- Suppress logging and instrument imports ---
logging.getLogger("compactstr").setLevel(logging.CRITICAL)

with atheris.instrument_imports(include=["compactstr"]):
    from compactstr.errors import DivergenceError
    from compactstr.fuzzing import HarnessConfig, LibFuzzerBackend, decode

_backend = LibFuzzerBackend()


def test_one_input(data: bytes) -> None:
    """Atheris entry point: replay one input on Target and Oracle."""
    if _state.iterations == 0:
        _state.initial_memory_mb = get_process().memory_info().rss / (1024 * 1024)

    _state.iterations += 1
    _state.status = "running"

    if _state.iterations % _state.checkpoint_interval == 0:
        _emit_report()

    start_time = time.perf_counter()
    sequence = decode(data, _backend.config)
    if sequence.truncated:
        _state.truncated_inputs += 1

    is_interesting = False
    try:
        outcome = _backend.replay(sequence)
        count_operations(_state, (type(op).__name__ for op in sequence))
        _state.rejections += outcome.rejections
        is_interesting = outcome.rejections > 0 or sequence.truncated

    except DivergenceError as e:
        report = e.report
        _state.findings += 1
        count_event(_state.divergence_counts, report.operation_label)
        count_operations(
            _state, (type(op).__name__ for op in sequence.operations[: report.index + 1])
        )
        write_finding_artifact(
            _state, _FINDING_DIR, report.reproducer, {"backend": _backend.name, **report.to_dict()}
        )
        raise

    except KeyboardInterrupt:
        _state.status = "stopped"
        raise

    finally:
        record_iteration_metrics(
            _state, len(sequence), start_time, data, is_interesting=is_interesting,
        )

        if _state.iterations % GC_INTERVAL == 0:
            gc.collect()

        if _state.iterations % 100 == 0:
            record_memory(_state)


def main() -> None:
    """Run the CompactString differential fuzzer with CLI support."""
    global _backend  # noqa: PLW0603  # pylint: disable=global-statement
    parser = argparse.ArgumentParser(
        description="CompactString differential fuzzer using Atheris/libFuzzer",
        epilog="All unrecognized arguments are passed to libFuzzer.",
    )
    parser.add_argument(
        "--checkpoint-interval", type=int, default=500,
        help="Emit report every N iterations (default: 500)",
    )
    parser.add_argument(
        "--seed-corpus-size", type=int, default=500,
        help="Maximum size of in-memory seed corpus (default: 500)",
    )
    parser.add_argument(
        "--max-operations", type=int, default=HarnessConfig().max_operations,
        help="Operations decoded per input (default: 256)",
    )

    args, remaining = parser.parse_known_args()
    _state.checkpoint_interval = args.checkpoint_interval
    _state.seed_corpus_max_size = args.seed_corpus_size
    _backend = LibFuzzerBackend(HarnessConfig(max_operations=args.max_operations))

    if not any(arg.startswith("-rss_limit_mb") for arg in remaining):
        remaining.append("-rss_limit_mb=4096")

    sys.argv = [sys.argv[0], *remaining]

    print()
    print("=" * 80)
    print("CompactString Differential Fuzzer (Atheris)")
    print("=" * 80)
    print("Target:     compactstr.compact.CompactString vs OracleString")
    print(f"Operations: Up to {_backend.config.max_operations} per input")
    print(f"Checkpoint: Every {_state.checkpoint_interval} iterations")
    print(f"Corpus Max: {_state.seed_corpus_max_size} entries")
    print(f"GC Cycle:   Every {GC_INTERVAL} iterations")
    print("Stopping:   Press Ctrl+C (findings auto-saved)")
    print("=" * 80)
    print()

    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
