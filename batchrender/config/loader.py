"""
Run configuration loader.

Loads a YAML run configuration and merges overrides with precedence
(highest to lowest):

1. CLI arguments (overrides)
2. Environment variables (BATCH_RENDER_*)
3. Configuration file
4. Schema defaults

String values may reference environment variables with ``${VAR}`` or
``${VAR:-default}``. Every failure is reported as a ConfigurationError so
the CLI can tell "nothing ran" apart from failed renders.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from batchrender.config.environment import EnvironmentVariables
from batchrender.config.schema import RunConfig
from batchrender.errors import ConfigurationError


logger = logging.getLogger(__name__)

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class RunConfigLoader:
    """Loads and validates run configuration files.

    Example:
        >>> loader = RunConfigLoader()
        >>> config = loader.load("reports.yaml", overrides={"concurrency": 4})
    """

    def load(self, config_file: str, overrides: Optional[Dict[str, Any]] = None) -> RunConfig:
        """Load configuration from all sources with proper precedence.

        Args:
            config_file: Path to the YAML run configuration
            overrides: CLI overrides; None values are ignored

        Returns:
            Validated RunConfig

        Raises:
            ConfigurationError: If the file is unreadable, not valid YAML, or
                fails validation
        """
        config_dict = self.parse_file(Path(config_file))
        config_dict = self._merge_configs(config_dict, EnvironmentVariables.read_overrides())
        if overrides:
            config_dict = self._merge_configs(
                config_dict, {k: v for k, v in overrides.items() if v is not None}
            )
        config_dict = self.substitute_environment_variables(config_dict)
        return self.validate(config_dict, source=config_file)

    def load_dict(self, config_dict: Dict[str, Any]) -> RunConfig:
        """Validate an in-memory configuration (after variable substitution)."""
        return self.validate(self.substitute_environment_variables(config_dict))

    def validate(self, config_dict: Dict[str, Any], source: Optional[str] = None) -> RunConfig:
        try:
            config = RunConfig.model_validate(config_dict)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
            )
            where = f" in {source}" if source else ""
            raise ConfigurationError(f"Invalid run configuration{where}: {problems}") from e
        logger.debug(f"Loaded run configuration: template={config.template}, engine={config.engine}")
        return config

    def parse_file(self, file_path: Path) -> Dict[str, Any]:
        """Parse a YAML configuration file with line/column error reporting."""
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {file_path}") from None
        except PermissionError:
            raise ConfigurationError(f"Permission denied reading configuration file: {file_path}") from None
        except yaml.YAMLError as e:
            location = ""
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                location = f" (line {mark.line + 1}, column {mark.column + 1})"
            problem = getattr(e, "problem", None) or str(e)
            raise ConfigurationError(f"YAML parsing error in {file_path}{location}: {problem}") from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigurationError(f"Configuration file {file_path} must contain a mapping at the top level")
        return content

    def substitute_environment_variables(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Substitute ${VAR} and ${VAR:-default} in string values.

        Raises:
            ConfigurationError: If a required variable is not set
        """
        def replace_var(match):
            var_expr = match.group(1)
            if ":-" in var_expr:
                var_name, default_value = var_expr.split(":-", 1)
                return os.environ.get(var_name, default_value)
            if var_expr not in os.environ:
                raise ConfigurationError(f"Required environment variable '{var_expr}' is not set")
            return os.environ[var_expr]

        def substitute_recursive(obj):
            if isinstance(obj, dict):
                return {k: substitute_recursive(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [substitute_recursive(item) for item in obj]
            elif isinstance(obj, str):
                return _VAR_PATTERN.sub(replace_var, obj)
            return obj

        return substitute_recursive(config_dict)

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override into base; mappings merge, everything else replaces."""
        result = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result


def load_run_config(config_file: str, overrides: Optional[Dict[str, Any]] = None) -> RunConfig:
    """Convenience function to load a run configuration."""
    return RunConfigLoader().load(config_file, overrides)


EXAMPLE_CONFIG = """\
# batch-render run configuration
#
# One artifact is rendered per binding and per format:
#   <output_root>/<unit>/<period>/<unit>_<period>.<ext>

template: reports/unit_report.qmd

# Full Cartesian product, in declared order
dimensions:
  unit: ["North", "South", "East"]
  period: ["2023", "2024"]

# Or an explicit subset instead of the product:
# bindings:
#   - {unit: North, period: "2024"}
#   - {unit: East, period: "2023"}

fixed_parameters:
  currency: EUR

formats: [pdf, html]
output_root: ${BATCH_RENDER_OUTPUT_ROOT:-./reports}
concurrency: 2
timeout: 600          # seconds per job

engine: quarto        # quarto | stub
engine_options: {}
# filename_template: "{{ unit }}-report-{{ period }}"

log_level: info
# log_file: logs/batch-render.log
summary_path: reports/run-summary.json
"""
