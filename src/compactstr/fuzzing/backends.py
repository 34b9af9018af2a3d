"""Backend adapters: one capability, three engines.

Each adapter obtains a raw byte buffer from its coverage-guided engine,
passes it to check(), and translates a DivergenceReport into the engine's
native failure signal:

- LibFuzzerBackend (atheris): raise DivergenceError; atheris records the
  input as a crash artifact
- AflBackend (python-afl): emit one structured CRITICAL log line, then
  abort the process so afl-fuzz files the input under crashes/
- HypothesisBackend (Hypothesis / HypoFuzz): save the reproducer and its
  metadata into a findings directory and hand the report back to the test

The adapters are interchangeable; the core never depends on an engine.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from compactstr.errors import DivergenceError
from compactstr.fuzzing.checker import DivergenceReport, check, run
from compactstr.fuzzing.config import HarnessConfig
from compactstr.fuzzing.decoder import decode

if TYPE_CHECKING:
    from collections.abc import Callable

    from compactstr.fuzzing.checker import Outcome
    from compactstr.fuzzing.decoder import DecodedSequence

__all__ = ["AflBackend", "FuzzBackend", "HypothesisBackend", "LibFuzzerBackend"]

logger = logging.getLogger(__name__)


class FuzzBackend(Protocol):
    """Anything that can feed engine bytes through the harness."""

    name: str

    def supply(self, data: bytes) -> Outcome: ...


class LibFuzzerBackend:
    """Adapter for atheris / libFuzzer.

    Raises:
        DivergenceError: From supply() or replay() when the input diverges
    """

    name = "libfuzzer"

    def __init__(self, config: HarnessConfig | None = None) -> None:
        self.config = config or HarnessConfig()

    def supply(self, data: bytes) -> Outcome:
        return self.replay(decode(data, self.config))

    def replay(self, sequence: DecodedSequence) -> Outcome:
        """Run an already decoded input, for drivers that inspect it first."""
        outcome = run(sequence, self.config)
        if isinstance(outcome, DivergenceReport):
            raise DivergenceError(outcome)
        return outcome


class AflBackend:
    """Adapter for python-afl.

    A divergence is logged as ``divergence {json}`` at CRITICAL and then
    ``abort`` is called (os.abort by default, raising SIGABRT).
    """

    name = "afl"

    def __init__(
        self,
        config: HarnessConfig | None = None,
        abort: Callable[[], object] = os.abort,
    ) -> None:
        self.config = config or HarnessConfig()
        self._abort = abort

    def supply(self, data: bytes) -> Outcome:
        outcome = check(data, self.config)
        if isinstance(outcome, DivergenceReport):
            logger.critical("divergence %s", json.dumps(outcome.to_dict(), sort_keys=True))
            self._abort()
        return outcome


class HypothesisBackend:
    """Adapter for Hypothesis-driven fuzzing (``st.binary()`` / HypoFuzz).

    Each divergence is saved as ``finding_NNNN.bin`` plus
    ``finding_NNNN_meta.json`` under ``findings_dir``; the report is
    returned for the test to assert on.

    Attributes:
        findings_dir: Where reproducers are written (created on demand)
        findings: Paths of the reproducers written so far
    """

    name = "hypothesis"

    def __init__(
        self,
        findings_dir: str | os.PathLike[str] = ".hypothesis/compactstr-findings",
        config: HarnessConfig | None = None,
    ) -> None:
        self.findings_dir = Path(findings_dir)
        self.config = config or HarnessConfig()
        self.findings: list[Path] = []

    def supply(self, data: bytes) -> Outcome:
        outcome = check(data, self.config)
        if isinstance(outcome, DivergenceReport):
            self.findings.append(self._save(outcome))
        return outcome

    def _next_stem(self) -> str:
        number = len(self.findings) + 1
        while (self.findings_dir / f"finding_{number:04d}.bin").exists():
            number += 1
        return f"finding_{number:04d}"

    def _save(self, report: DivergenceReport) -> Path:
        self.findings_dir.mkdir(parents=True, exist_ok=True)
        stem = self._next_stem()
        path = self.findings_dir / f"{stem}.bin"
        path.write_bytes(report.reproducer)
        meta = {"backend": self.name, **report.to_dict()}
        (self.findings_dir / f"{stem}_meta.json").write_text(
            json.dumps(meta, indent=2, sort_keys=True), encoding="utf-8"
        )
        logger.info("Saved finding %s (%s)", path, report.kind)
        return path
