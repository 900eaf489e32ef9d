"""
Fixtures shared by CLI tests.
"""

import logging

import pytest
import yaml
from click.testing import CliRunner

from batchrender.utils.logging_config import logging_config


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def detach_cli_log_handlers():
    """Drop handlers `run` attaches to the runner's streams."""
    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for handler in (logging_config._console_handler, logging_config._log_file_handler):
        if handler is not None and handler not in before:
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def write_config(tmp_path):
    """Write a run configuration (stub engine by default) and return its path."""
    def _write(**fields):
        data = {
            "template": "report.qmd",
            "dimensions": {"unit": ["A", "B"], "period": ["2023", "2024"]},
            "formats": ["pdf"],
            "output_root": str(tmp_path / "reports"),
            "engine": "stub",
        }
        data.update(fields)
        path = tmp_path / "run.yaml"
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return str(path)
    return _write
