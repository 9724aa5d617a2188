"""Pytest configuration.

The repository uses a flat `src/` layout without an installed package. This conftest ensures tests
can import from the `src.*` namespace when running `pytest` locally, and provides the shared
registry fixture.
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure `import src...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from src.domains.registry import SchemaRegistry, default_registry  # noqa: E402

# Relative expressions ("השנה", month without a year) are resolved against this day in tests.
TODAY = date(2024, 6, 15)


@pytest.fixture()
def registry() -> SchemaRegistry:
    return default_registry()
