from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.engine_builder import EngineBuilder


@pytest.fixture
def engine_builder(tmp_path: Path) -> EngineBuilder:
    """Provide a throwaway engine tree rooted at the pytest tmp_path."""
    return EngineBuilder(tmp_path)
