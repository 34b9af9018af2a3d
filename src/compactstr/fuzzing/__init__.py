"""Differential fuzz harness for CompactString.

Pipeline: engine bytes -> ByteCursor -> decode() -> DecodedSequence ->
run() (Target and Oracle in lockstep) -> Success | DivergenceReport.

Public API:
    check - Decode and replay one input (the entry point for backends)
    run - Replay an already decoded sequence
    decode - Turn bytes into a DecodedSequence
    HarnessConfig - Limits for one run
    OracleString - Reference model
    Success, DivergenceReport, DivergenceKind - Outcomes
    LibFuzzerBackend, AflBackend, HypothesisBackend - Engine adapters

Python 3.13+. Zero external dependencies.
"""

from .backends import AflBackend, FuzzBackend, HypothesisBackend, LibFuzzerBackend
from .checker import DivergenceKind, DivergenceReport, Outcome, StringState, Success, check, run
from .config import HarnessConfig
from .cursor import ByteCursor
from .decoder import DecodedSequence, decode
from .oracle import OracleString
from .perform import perform

__all__ = [
    "AflBackend",
    "ByteCursor",
    "DecodedSequence",
    "DivergenceKind",
    "DivergenceReport",
    "FuzzBackend",
    "HarnessConfig",
    "HypothesisBackend",
    "LibFuzzerBackend",
    "OracleString",
    "Outcome",
    "StringState",
    "Success",
    "check",
    "decode",
    "perform",
    "run",
]
