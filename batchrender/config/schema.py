"""
Run configuration schema.

Pydantic models for the YAML run configuration consumed by the Run
Coordinator. Structural validation (types, ranges, exactly one binding
policy) happens here; semantic validation of the parameter space (empty
dimensions, duplicate assignments) is left to the BindingSet Enumerator so
the same rules apply to programmatic callers.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from batchrender.bindings import BindingSet, enumerate_bindings, explicit_bindings
from batchrender.engines.factory import VALID_ENGINES
from batchrender.errors import ConfigurationError, UnsupportedFormatError
from batchrender.formats import resolve_format


VALID_LOG_LEVELS = ["debug", "info", "warning", "error"]


class RunConfig(BaseModel):
    """Configuration for one batch run.

    Attributes:
        template: Template reference passed to the engine
        dimensions: Ordered mapping of dimension name to ordered values
        dimension_names: Declared dimension order for explicit bindings
            (defaults to the key order of the first binding)
        bindings: Explicit binding list, used instead of the full product;
            each entry is a mapping or a list of [name, value] pairs
        fixed_parameters: Parameters shared by every binding
        formats: Requested output formats
        output_root: Root directory of the output hierarchy
        concurrency: Maximum number of jobs rendering at once
        timeout: Per-job timeout in seconds
        engine: Rendering engine name
        engine_options: Engine-specific options
        filename_template: Optional Jinja2 template for artifact file stems
        log_level: Logging level
        log_file: Optional log file path
        summary_path: Optional path for the JSON run summary
    """
    template: str = Field(..., min_length=1)
    dimensions: Optional[Dict[str, List[Any]]] = None
    dimension_names: Optional[List[str]] = None
    bindings: Optional[List[Any]] = None
    fixed_parameters: Dict[str, Any] = Field(default_factory=dict)
    formats: List[str] = Field(default_factory=lambda: ["pdf"], min_length=1)
    output_root: str = "./reports"
    concurrency: int = Field(default=1, ge=1)
    timeout: float = Field(default=600.0, gt=0)
    engine: str = "quarto"
    engine_options: Dict[str, Any] = Field(default_factory=dict)
    filename_template: Optional[str] = None
    log_level: str = "info"
    log_file: Optional[str] = None
    summary_path: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("formats")
    @classmethod
    def _check_formats(cls, value: List[str]) -> List[str]:
        try:
            normalized = [resolve_format(f).value for f in value]
        except UnsupportedFormatError as e:
            raise ValueError(str(e)) from e
        if len(set(normalized)) != len(normalized):
            raise ValueError(f"formats contains duplicates: {value}")
        return normalized

    @field_validator("engine")
    @classmethod
    def _check_engine(cls, value: str) -> str:
        if value not in VALID_ENGINES:
            raise ValueError(f"Invalid engine '{value}'. Valid options: {VALID_ENGINES}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        if value.lower() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log_level '{value}'. Valid options: {VALID_LOG_LEVELS}")
        return value.lower()

    @model_validator(mode="after")
    def _check_binding_policy(self) -> "RunConfig":
        if (self.dimensions is None) == (self.bindings is None):
            raise ValueError("Exactly one of 'dimensions' or 'bindings' must be given")
        return self

    def binding_set(self) -> BindingSet:
        """Enumerate the configured parameter space.

        Raises:
            ConfigurationError: On an empty dimension or a malformed binding
        """
        if self.dimensions is not None:
            return enumerate_bindings(self.dimensions, fixed=self.fixed_parameters)

        assignments = [_as_assignment(entry) for entry in self.bindings]
        names = self.dimension_names or _names_in_order(assignments)
        return explicit_bindings(names, assignments, fixed=self.fixed_parameters)


def _as_assignment(entry: Any):
    if isinstance(entry, dict):
        return entry
    # [[name, value], ...] keeps repeated dimensions visible to the enumerator
    if isinstance(entry, list) and all(isinstance(p, (list, tuple)) and len(p) == 2 for p in entry):
        return [tuple(pair) for pair in entry]
    raise ConfigurationError(
        f"Binding entry must be a mapping or a list of [name, value] pairs: {entry!r}",
        field_name="bindings",
    )


def _names_in_order(assignments) -> List[str]:
    if not assignments:
        return []
    first = assignments[0]
    pairs = first.items() if isinstance(first, dict) else first
    return list(dict.fromkeys(name for name, _ in pairs))
