"""
Environment variable integration for run configuration.

Centralizes the environment variable names the pipeline reads and their
documentation.
"""

import os
from typing import Any, Dict, List, Tuple


class EnvironmentVariables:
    """Centralized environment variable definitions and utilities."""

    OUTPUT_ROOT = "BATCH_RENDER_OUTPUT_ROOT"
    CONCURRENCY = "BATCH_RENDER_CONCURRENCY"
    TIMEOUT = "BATCH_RENDER_TIMEOUT"
    ENGINE = "BATCH_RENDER_ENGINE"
    LOG_LEVEL = "BATCH_RENDER_LOG_LEVEL"
    QUARTO_PATH = "QUARTO_PATH"

    # Variables that map directly onto RunConfig fields
    FIELD_MAP = {
        OUTPUT_ROOT: "output_root",
        CONCURRENCY: "concurrency",
        TIMEOUT: "timeout",
        ENGINE: "engine",
        LOG_LEVEL: "log_level",
    }

    @classmethod
    def get_all_variables(cls) -> List[str]:
        return [cls.OUTPUT_ROOT, cls.CONCURRENCY, cls.TIMEOUT, cls.ENGINE, cls.LOG_LEVEL, cls.QUARTO_PATH]

    @classmethod
    def get_variable_documentation(cls) -> Dict[str, str]:
        return {
            cls.OUTPUT_ROOT: "Root directory of the output hierarchy",
            cls.CONCURRENCY: "Maximum number of jobs rendering at once",
            cls.TIMEOUT: "Per-job timeout in seconds",
            cls.ENGINE: "Rendering engine (quarto, stub)",
            cls.LOG_LEVEL: "Logging level (debug, info, warning, error)",
            cls.QUARTO_PATH: "Path to the quarto executable",
        }

    @classmethod
    def read_overrides(cls) -> Dict[str, Any]:
        """Collect RunConfig overrides from the environment.

        Values are returned as strings; pydantic coerces them on validation.
        """
        overrides = {}
        for var, field_name in cls.FIELD_MAP.items():
            value = os.environ.get(var)
            if value:
                overrides[field_name] = value
        return overrides

    @classmethod
    def validate_environment_setup(cls) -> Tuple[List[str], List[str]]:
        """Validate current environment variable setup.

        Returns:
            Tuple of (warnings, errors)
        """
        warnings = []
        errors = []

        concurrency = os.environ.get(cls.CONCURRENCY)
        if concurrency and (not concurrency.isdigit() or int(concurrency) < 1):
            errors.append(f"Invalid {cls.CONCURRENCY}: '{concurrency}'. Must be an integer >= 1")

        log_level = os.environ.get(cls.LOG_LEVEL)
        if log_level and log_level.lower() not in ("debug", "info", "warning", "error"):
            errors.append(f"Invalid {cls.LOG_LEVEL}: '{log_level}'. Valid options: debug, info, warning, error")

        if os.environ.get(cls.ENGINE) == "stub":
            warnings.append(f"{cls.ENGINE}=stub: artifacts will be placeholder JSON, not rendered documents")

        return warnings, errors
