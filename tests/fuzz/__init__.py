"""Fuzz testing infrastructure for compactstr.

This package contains:
- test_compact_str_oracle: State machine fuzzer, CompactString vs OracleString
- test_compact_str_hypofuzz: Raw-bytes differential fuzzing through HypothesisBackend

Python 3.13+.
"""
