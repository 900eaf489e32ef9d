"""
Unit tests for RunConfigLoader: YAML parsing, environment substitution and
override precedence.
"""

import os
from unittest.mock import patch

import pytest

from batchrender.config.loader import EXAMPLE_CONFIG, RunConfigLoader, load_run_config
from batchrender.errors import ConfigurationError


BASIC_CONFIG = """\
template: report.qmd
dimensions:
  unit: [A, B]
  period: ["2023", "2024"]
formats: [pdf]
output_root: out
concurrency: 2
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "run.yaml"
    path.write_text(BASIC_CONFIG, encoding="utf-8")
    return path


class TestRunConfigLoader:
    """Test suite for RunConfigLoader.load."""

    def test_load_file(self, config_file):
        config = RunConfigLoader().load(str(config_file))

        assert config.template == "report.qmd"
        assert config.dimensions == {"unit": ["A", "B"], "period": ["2023", "2024"]}
        assert config.concurrency == 2
        assert config.output_root == "out"

    def test_cli_overrides_win(self, config_file):
        config = load_run_config(str(config_file), {"concurrency": 8, "output_root": None})

        assert config.concurrency == 8
        assert config.output_root == "out"

    @patch.dict(os.environ, {"BATCH_RENDER_CONCURRENCY": "5", "BATCH_RENDER_OUTPUT_ROOT": "env-out"})
    def test_environment_overrides_file(self, config_file):
        config = RunConfigLoader().load(str(config_file))

        assert config.concurrency == 5
        assert config.output_root == "env-out"

    @patch.dict(os.environ, {"BATCH_RENDER_CONCURRENCY": "5"})
    def test_cli_overrides_environment(self, config_file):
        config = RunConfigLoader().load(str(config_file), {"concurrency": 3})

        assert config.concurrency == 3

    @patch.dict(os.environ, {"REPORT_DIR": "/data/reports"})
    def test_variable_substitution(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text(
            "template: ${REPORT_DIR}/unit.qmd\n"
            "dimensions: {unit: [A]}\n"
            "output_root: ${OUT_DIR:-fallback}\n",
            encoding="utf-8",
        )

        config = RunConfigLoader().load(str(path))

        assert config.template == "/data/reports/unit.qmd"
        assert config.output_root == "fallback"

    def test_missing_required_variable(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("template: ${UNSET_TEMPLATE_VAR}\ndimensions: {unit: [A]}\n", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            RunConfigLoader().load(str(path))

        assert "UNSET_TEMPLATE_VAR" in str(exc_info.value)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            RunConfigLoader().load(str(tmp_path / "missing.yaml"))

        assert "not found" in str(exc_info.value)

    def test_yaml_error_has_location(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("template: report.qmd\ndimensions: [unit: A\n", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            RunConfigLoader().load(str(path))

        assert "line" in str(exc_info.value)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("- template\n- report.qmd\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            RunConfigLoader().load(str(path))

    def test_validation_error_names_field(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text(BASIC_CONFIG + "formats: [epub]\n", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            RunConfigLoader().load(str(path))

        assert "formats" in str(exc_info.value)
        assert "epub" in str(exc_info.value)

    def test_load_dict(self):
        config = RunConfigLoader().load_dict({"template": "t.qmd", "bindings": [{"unit": "A"}]})

        assert config.bindings == [{"unit": "A"}]

    def test_merge_nested_mappings(self):
        merged = RunConfigLoader()._merge_configs(
            {"engine_options": {"quarto_path": "q", "kill_grace": 5}},
            {"engine_options": {"kill_grace": 1}},
        )

        assert merged == {"engine_options": {"quarto_path": "q", "kill_grace": 1}}

    def test_example_config_is_valid(self, tmp_path):
        path = tmp_path / "example.yaml"
        path.write_text(EXAMPLE_CONFIG, encoding="utf-8")

        config = RunConfigLoader().load(str(path))

        assert config.output_root == "./reports"
        assert len(config.binding_set()) == 6
