#!/usr/bin/env python3
"""CompactString Differential Fuzzer (python-afl, persistent mode).

Targets: compactstr.compact.CompactString (via compactstr.fuzzing.check)

Each AFL input is read from stdin, decoded into an operation sequence and
replayed on CompactString and OracleString in lockstep. On a divergence
AflBackend logs one ``divergence {json}`` line at CRITICAL on stderr and
aborts, so afl-fuzz files the input under crashes/. Replay it with
compactstr-replay.

Persistent mode handles up to 1000 inputs per process before afl-fuzz
restarts it.

Usage:
    py-afl-fuzz -i corpus -o findings -- python fuzz_afl/fuzz_compact_str.py

Requires Python 3.13+ and python-afl (pip install -e ".[fuzz]").
"""

from __future__ import annotations

import logging
import sys

import afl

from compactstr.fuzzing import AflBackend

PERSISTENT_ITERATIONS = 1000

logging.basicConfig(level=logging.CRITICAL, stream=sys.stderr, format="%(name)s: %(message)s")
logging.getLogger("compactstr").setLevel(logging.CRITICAL)

_backend = AflBackend()

while afl.loop(PERSISTENT_ITERATIONS):
    sys.stdin.seek(0)
    _backend.supply(sys.stdin.buffer.read())

sys.exit(0)
