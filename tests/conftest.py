"""
Pytest configuration and fixtures for test isolation.
"""
import os
from pathlib import Path

import pytest

from batchrender.bindings import enumerate_bindings
from batchrender.config.environment import EnvironmentVariables
from batchrender.engines.stub import StubEngine, StubRule


@pytest.fixture(autouse=True)
def isolate_tests(tmp_path, monkeypatch):
    """
    Automatically isolate each test by:
    1. Running from a temporary working directory
    2. Clearing BATCH_RENDER_* variables that would override configuration
    """
    monkeypatch.chdir(tmp_path)
    for var in EnvironmentVariables.get_all_variables():
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True, scope="function")
def reset_environment():
    """Reset environment variables between tests."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def unit_period_dimensions():
    return {"unit": ["A", "B"], "period": ["2023", "2024"]}


@pytest.fixture
def unit_period_bindings(unit_period_dimensions):
    return enumerate_bindings(unit_period_dimensions)


@pytest.fixture
def stub_engine():
    return StubEngine()


@pytest.fixture
def failing_b_engine():
    """Stub engine that rejects every binding with unit=B."""
    return StubEngine(rules=[StubRule(match={"unit": "B"}, action="fail", message="no data for unit B")])


@pytest.fixture
def output_root(tmp_path) -> Path:
    return tmp_path / "reports"
