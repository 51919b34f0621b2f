"""Pytest configuration shared across the test suite."""

from __future__ import annotations

import sys
from pathlib import Path

# Put the project root on sys.path so ``import ingest`` and ``import db.models``
# resolve without installing the package.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
