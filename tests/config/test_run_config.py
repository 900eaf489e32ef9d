"""
Unit tests for the RunConfig schema.
"""

import pytest
from pydantic import ValidationError

from batchrender.config.schema import RunConfig
from batchrender.errors import ConfigurationError


class TestRunConfigValidation:
    """Test suite for structural validation."""

    def test_defaults(self):
        config = RunConfig(template="report.qmd", dimensions={"unit": ["A"]})

        assert config.formats == ["pdf"]
        assert config.output_root == "./reports"
        assert config.concurrency == 1
        assert config.timeout == 600.0
        assert config.engine == "quarto"
        assert config.log_level == "info"

    def test_formats_normalized(self):
        config = RunConfig(template="t.qmd", dimensions={"unit": ["A"]}, formats=["PDF", "Html"])

        assert config.formats == ["pdf", "html"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"formats": ["epub"]},
            {"formats": []},
            {"formats": ["pdf", "PDF"]},
            {"concurrency": 0},
            {"timeout": 0},
            {"engine": "pandoc"},
            {"log_level": "loud"},
            {"unknown_key": True},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            RunConfig(template="t.qmd", dimensions={"unit": ["A"]}, **overrides)

    def test_requires_exactly_one_binding_policy(self):
        with pytest.raises(ValidationError):
            RunConfig(template="t.qmd")
        with pytest.raises(ValidationError):
            RunConfig(template="t.qmd", dimensions={"unit": ["A"]}, bindings=[{"unit": "A"}])


class TestBindingSet:
    """Test suite for RunConfig.binding_set."""

    def test_product(self):
        config = RunConfig(
            template="t.qmd",
            dimensions={"unit": ["A", "B"], "period": [2023, 2024]},
            fixed_parameters={"currency": "EUR"},
        )

        binding_set = config.binding_set()

        assert len(binding_set) == 4
        first = next(iter(binding_set))
        assert first.as_dict() == {"unit": "A", "period": "2023"}
        assert first.parameters()["currency"] == "EUR"

    def test_explicit_mappings(self):
        config = RunConfig(
            template="t.qmd",
            bindings=[{"unit": "B", "period": "2024"}, {"unit": "A", "period": "2023"}],
        )

        binding_set = config.binding_set()

        assert binding_set.is_explicit
        assert binding_set.dimension_names == ["unit", "period"]
        assert [b.value_of("unit") for b in binding_set] == ["B", "A"]

    def test_explicit_pairs(self):
        config = RunConfig(template="t.qmd", bindings=[[["unit", "A"], ["period", "2023"]]])

        assert next(iter(config.binding_set())).as_dict() == {"unit": "A", "period": "2023"}

    def test_declared_dimension_names_catch_missing(self):
        config = RunConfig(
            template="t.qmd",
            dimension_names=["unit", "period"],
            bindings=[{"unit": "A"}],
        )

        with pytest.raises(ConfigurationError):
            config.binding_set()

    def test_malformed_entry(self):
        config = RunConfig(template="t.qmd", bindings=["unit=A"])

        with pytest.raises(ConfigurationError) as exc_info:
            config.binding_set()

        assert exc_info.value.field_name == "bindings"
