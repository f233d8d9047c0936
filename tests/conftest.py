"""
Pytest configuration and fixtures for Rankcord tests.
"""

import random
import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from rankcord.leveling.progress_store import ProgressStore
from rankcord.leveling.xp_engine import LevelingEngine


@pytest.fixture()
def levels_path(tmp_path: Path) -> Path:
    return tmp_path / "levels.json"


@pytest.fixture()
def store(levels_path: Path) -> ProgressStore:
    return ProgressStore(levels_path)


@pytest.fixture()
def engine(store: ProgressStore) -> LevelingEngine:
    return LevelingEngine(store, rng=random.Random(1234))
