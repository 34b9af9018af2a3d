"""Shared fuzzing infrastructure for the Atheris driver.

Provides observability, metrics, seed corpus tracking, finding artifacts and
JSON reporting for fuzz_compact_str.py. Metrics are keyed by operation kind
(the name of each decoded operation's class), so the final report shows how
often every kind was replayed and which kinds were implicated in a divergence.

Not a fuzz target itself.
"""

from __future__ import annotations

import hashlib
import heapq
import json
import os
import pathlib
import statistics
import sys
import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

try:
    import psutil
except ImportError:
    psutil = None  # type: ignore[assignment]


# --- PEP 695 Type Aliases ---

FuzzStats: TypeAlias = dict[str, int | str | float | list[Any]]
InterestingInput: TypeAlias = tuple[float, int, str]  # (neg_duration_ms, operations, input_hash)

# --- Constants ---

GC_INTERVAL = 256
"""Periodic gc.collect() interval to reclaim Atheris instrumentation cycles."""

SLOWEST_TRACKED = 10
"""Number of slowest inputs kept for the report."""

LEAK_WINDOW = 10
"""Minimum memory samples per quarter before growth is judged."""

LEAK_THRESHOLD_MB = 10.0
"""Growth between first and last quarter that flags a leak."""


# --- Process Handle (lazy singleton) ---

_process: psutil.Process | None = None


def get_process() -> psutil.Process:
    """Lazy-initialize psutil process handle."""
    global _process  # noqa: PLW0603  # pylint: disable=global-statement
    if _process is None:
        _process = psutil.Process(os.getpid())
    return _process


# --- Dependency Checks ---


def check_dependencies(dep_names: Sequence[str], dep_modules: Sequence[Any]) -> None:
    """Verify fuzzing dependencies are importable, exit with instructions if not.

    Args:
        dep_names: Human-readable names (e.g., ["psutil", "atheris"])
        dep_modules: Corresponding module objects (None if import failed)
    """
    missing = [name for name, mod in zip(dep_names, dep_modules, strict=True) if mod is None]
    if missing:
        print("-" * 80, file=sys.stderr)
        print("ERROR: Missing required dependencies for fuzzing:", file=sys.stderr)
        for dep in missing:
            print(f"  - {dep}", file=sys.stderr)
        print("", file=sys.stderr)
        print('Install with: pip install -e ".[fuzz]"', file=sys.stderr)
        print("-" * 80, file=sys.stderr)
        sys.exit(1)


# --- Base Fuzzer State ---


@dataclass
class BaseFuzzerState:
    """Observability state of one fuzzing session."""

    # Core stats
    iterations: int = 0
    findings: int = 0
    status: str = "incomplete"

    # Performance tracking (bounded deques)
    performance_history: deque[float] = field(
        default_factory=lambda: deque(maxlen=10000),
    )
    memory_history: deque[float] = field(
        default_factory=lambda: deque(maxlen=1000),
    )

    # Operation kind -> times replayed / implicated in a divergence
    operation_coverage: dict[str, int] = field(default_factory=dict)
    divergence_counts: dict[str, int] = field(default_factory=dict)

    # Decoding outcome
    operations_replayed: int = 0
    rejections: int = 0
    truncated_inputs: int = 0

    # Interesting inputs (max-heap for slowest, in-memory corpus)
    slowest_inputs: list[InterestingInput] = field(default_factory=list)
    seed_corpus: dict[str, bytes] = field(default_factory=dict)

    # Memory baseline
    initial_memory_mb: float = 0.0

    # Finding artifact counter
    finding_counter: int = 0

    # Configuration
    checkpoint_interval: int = 500
    seed_corpus_max_size: int = 500


# --- Counting ---


def count_operations(state: BaseFuzzerState, kinds: Iterable[str]) -> None:
    """Add one replay of each operation kind in ``kinds``."""
    for kind in kinds:
        state.operation_coverage[kind] = state.operation_coverage.get(kind, 0) + 1
        state.operations_replayed += 1


def count_event(counts: dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


# --- Input Hashing ---


def hash_input(data: bytes) -> str:
    """Compute truncated SHA-256 hex digest for corpus deduplication."""
    return hashlib.sha256(data).hexdigest()[:16]


# --- Performance / Memory Tracking ---


def record_memory(state: BaseFuzzerState) -> None:
    """Sample current RSS memory usage (call every ~100 iterations)."""
    current_mb = get_process().memory_info().rss / (1024 * 1024)
    state.memory_history.append(current_mb)


def record_iteration_metrics(
    state: BaseFuzzerState,
    operations: int,
    start_time: float,
    input_data: bytes,
    *,
    is_interesting: bool,
) -> None:
    """Record per-iteration latency, slowest inputs, and seed corpus.

    Call in the finally block of test_one_input.

    Args:
        state: Fuzzer state to update
        operations: Number of operations decoded from this input
        start_time: time.perf_counter() value from iteration start
        input_data: Raw input bytes for corpus and slowest tracking
        is_interesting: Whether input qualifies for seed corpus
    """
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    state.performance_history.append(elapsed_ms)

    input_hash = hash_input(input_data)
    entry: InterestingInput = (-elapsed_ms, operations, input_hash)
    if len(state.slowest_inputs) < SLOWEST_TRACKED:
        heapq.heappush(state.slowest_inputs, entry)
    elif -elapsed_ms < state.slowest_inputs[0][0]:
        heapq.heapreplace(state.slowest_inputs, entry)

    if is_interesting and input_hash not in state.seed_corpus:
        state.seed_corpus[input_hash] = input_data
        if len(state.seed_corpus) > state.seed_corpus_max_size:
            del state.seed_corpus[next(iter(state.seed_corpus))]


# --- Finding Artifacts ---


def write_finding_artifact(
    state: BaseFuzzerState,
    finding_dir: pathlib.Path,
    data: bytes,
    meta: dict[str, Any],
) -> pathlib.Path | None:
    """Save a diverging input and its metadata for compactstr-replay.

    Returns:
        Path of the saved input, or None if it could not be written
    """
    state.finding_counter += 1
    stem = f"finding_{state.finding_counter:04d}"
    try:
        finding_dir.mkdir(parents=True, exist_ok=True)
        path = finding_dir / f"{stem}.bin"
        path.write_bytes(data)
        (finding_dir / f"{stem}_meta.json").write_text(
            json.dumps(meta, indent=2, sort_keys=True), encoding="utf-8"
        )
    except OSError:
        return None
    return path


# --- Stats Building ---


def _add_performance_stats(state: BaseFuzzerState, stats: FuzzStats) -> None:
    """Latency percentiles per input and mean cost per replayed operation."""
    if not state.performance_history:
        return

    latencies = sorted(state.performance_history)
    stats["perf_mean_ms"] = round(statistics.fmean(latencies), 3)
    stats["perf_median_ms"] = round(statistics.median(latencies), 3)
    stats["perf_max_ms"] = round(latencies[-1], 3)
    for percentile in (95, 99):
        # Percentiles need enough samples to mean anything.
        if len(latencies) >= percentile:
            rank = min(len(latencies) - 1, len(latencies) * percentile // 100)
            stats[f"perf_p{percentile}_ms"] = round(latencies[rank], 3)
    if state.operations_replayed:
        total_ms = sum(state.performance_history)
        stats["perf_us_per_operation"] = round(total_ms * 1000 / state.operations_replayed, 2)


def _add_memory_stats(state: BaseFuzzerState, stats: FuzzStats) -> None:
    """RSS peak, delta from baseline, and growth between first and last quarter."""
    if not state.memory_history:
        return

    samples = list(state.memory_history)
    peak = max(samples)
    stats["memory_mean_mb"] = round(statistics.fmean(samples), 2)
    stats["memory_peak_mb"] = round(peak, 2)
    stats["memory_delta_mb"] = round(peak - state.initial_memory_mb, 2)

    growth_mb = 0.0
    quarter = len(samples) // 4
    if quarter >= LEAK_WINDOW:
        growth_mb = statistics.fmean(samples[-quarter:]) - statistics.fmean(samples[:quarter])
    stats["memory_growth_mb"] = round(growth_mb, 2)
    stats["memory_leak_detected"] = int(growth_mb > LEAK_THRESHOLD_MB)


def build_base_stats_dict(state: BaseFuzzerState) -> FuzzStats:
    """Build the stats dictionary for the JSON report.

    Returns:
        Stats dictionary suitable for JSON serialization
    """
    stats: FuzzStats = {
        "status": state.status,
        "iterations": state.iterations,
        "findings": state.findings,
        "operations_replayed": state.operations_replayed,
        "rejections": state.rejections,
        "truncated_inputs": state.truncated_inputs,
    }

    _add_performance_stats(state, stats)
    _add_memory_stats(state, stats)

    stats["operation_kinds_tested"] = len(state.operation_coverage)
    for kind, count in sorted(state.operation_coverage.items()):
        stats[f"op_{kind}"] = count
    for kind, count in sorted(state.divergence_counts.items()):
        stats[f"divergence_{kind}"] = count

    stats["seed_corpus_size"] = len(state.seed_corpus)
    stats["slowest_inputs"] = [
        {"ms": round(-neg_ms, 2), "operations": ops, "hash": digest}
        for neg_ms, ops, digest in sorted(state.slowest_inputs)
    ]
    return stats


# --- Reporting ---


def emit_final_report(
    state: BaseFuzzerState,
    stats: FuzzStats,
    report_dir: pathlib.Path,
    report_filename: str,
) -> None:
    """Emit crash-proof JSON report to stderr and file.

    Args:
        state: Fuzzer state (status set to "complete")
        stats: Pre-built stats dictionary
        report_dir: Directory for the JSON report file
        report_filename: Filename for the JSON report
    """
    state.status = "complete"
    report = json.dumps(stats, sort_keys=True)

    print(
        f"\n[SUMMARY-JSON-BEGIN]{report}[SUMMARY-JSON-END]",
        file=sys.stderr,
        flush=True,
    )

    try:
        report_dir.mkdir(parents=True, exist_ok=True)
        (report_dir / report_filename).write_text(report, encoding="utf-8")
    except OSError:
        pass
