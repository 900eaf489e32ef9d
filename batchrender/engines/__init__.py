"""
Rendering engines.

The batch pipeline talks to exactly one capability: ``render``. QuartoEngine
is the production implementation; StubEngine is the deterministic engine
used by tests and rehearsal runs.
"""

from batchrender.engines.base import CancellationToken, RenderEngine, RenderResult
from batchrender.engines.factory import VALID_ENGINES, create_engine
from batchrender.engines.quarto import QuartoEngine
from batchrender.engines.stub import StubEngine, StubRule

__all__ = [
    "CancellationToken",
    "RenderEngine",
    "RenderResult",
    "QuartoEngine",
    "StubEngine",
    "StubRule",
    "VALID_ENGINES",
    "create_engine",
]
