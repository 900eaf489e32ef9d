"""
Rendering Engine Factory

Creates rendering engines by name from run configuration.
"""

from typing import Any, Mapping, Optional

from batchrender.engines.base import RenderEngine
from batchrender.engines.quarto import QuartoEngine
from batchrender.engines.stub import StubEngine
from batchrender.errors import ConfigurationError


VALID_ENGINES = ["quarto", "stub"]


def create_engine(name: str, options: Optional[Mapping[str, Any]] = None) -> RenderEngine:
    """Create a rendering engine.

    Args:
        name: Engine name (quarto, stub)
        options: Engine-specific options from ``engine_options``

    Returns:
        Instantiated engine

    Raises:
        ConfigurationError: If the engine is unknown or its options are invalid
    """
    options = dict(options or {})

    if name == "quarto":
        try:
            return QuartoEngine(
                quarto_path=options.get("quarto_path"),
                extra_args=options.get("extra_args"),
                kill_grace=float(options.get("kill_grace", 5.0)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid quarto engine options: {e}", field_name="engine_options") from e

    elif name == "stub":
        try:
            return StubEngine.from_options(options)
        except TypeError as e:
            raise ConfigurationError(f"Invalid stub engine options: {e}", field_name="engine_options") from e

    else:
        raise ConfigurationError(
            f"Unknown engine: {name}. Valid options: {', '.join(VALID_ENGINES)}",
            field_name="engine",
        )
