"""
Deterministic stub rendering engine.

Used by tests and by ``batch-render run --engine stub`` for dry
rehearsals of a configuration. Behaviour per binding is controlled by
rules: the first rule whose ``match`` is a subset of the binding's
parameters decides whether the job succeeds, fails, or hangs until the
caller cancels it.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from batchrender.engines.base import CancellationToken, RenderResult
from batchrender.errors import ConfigurationError


logger = logging.getLogger(__name__)

VALID_ACTIONS = ("succeed", "fail", "hang")


@dataclass
class StubRule:
    """Behaviour rule for the stub engine.

    Attributes:
        match: Parameter values that must all be present in the binding
        action: One of succeed, fail, hang
        message: Error message reported for ``fail``
        delay: Seconds to wait before acting (cancellable)
    """
    match: Dict[str, str] = field(default_factory=dict)
    action: str = "succeed"
    message: str = "stub engine rejected binding"
    delay: float = 0.0

    def __post_init__(self):
        if self.action not in VALID_ACTIONS:
            raise ConfigurationError(
                f"Invalid stub action '{self.action}'. Valid options: {', '.join(VALID_ACTIONS)}",
                field_name="engine_options",
            )
        self.match = {str(k): str(v) for k, v in self.match.items()}

    def matches(self, parameters: Mapping[str, Any]) -> bool:
        return all(str(parameters.get(k)) == v for k, v in self.match.items())


class StubEngine:
    """Rendering engine that writes a small JSON artifact per job.

    Example:
        >>> engine = StubEngine(rules=[StubRule(match={"unit": "B"}, action="fail")])
    """

    def __init__(self, rules: Optional[List[StubRule]] = None, hang_limit: float = 300.0):
        """Initialize the stub engine.

        Args:
            rules: Ordered behaviour rules; unmatched bindings succeed
            hang_limit: Upper bound on a ``hang`` when nobody cancels it
        """
        self.rules = list(rules or [])
        self.hang_limit = hang_limit
        self.calls: List[Dict[str, Any]] = []

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "StubEngine":
        """Build a stub engine from configuration ``engine_options``."""
        rules = [StubRule(**rule) for rule in options.get("rules", [])]
        return cls(rules=rules, hang_limit=float(options.get("hang_limit", 300.0)))

    def render(
        self,
        template_ref: str,
        parameters: Mapping[str, Any],
        output_format: str,
        destination: Path,
        cancel_token: CancellationToken,
    ) -> RenderResult:
        self.calls.append({"template": template_ref, "parameters": dict(parameters), "format": output_format})
        rule = self._rule_for(parameters)

        if rule.delay and cancel_token.wait(rule.delay):
            return RenderResult(artifact_path=None, success=False, error="cancelled")

        if rule.action == "hang":
            logger.debug(f"Stub hanging for {dict(parameters)}")
            cancel_token.wait(self.hang_limit)
            return RenderResult(artifact_path=None, success=False, error="cancelled while hanging")

        if rule.action == "fail":
            return RenderResult(artifact_path=None, success=False, error=rule.message, exit_code=1)

        payload = {
            "template": template_ref,
            "format": output_format,
            "parameters": {k: v for k, v in parameters.items()},
            "rendered_at": time.time(),
        }
        destination.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        return RenderResult(artifact_path=destination, success=True)

    def _rule_for(self, parameters: Mapping[str, Any]) -> StubRule:
        for rule in self.rules:
            if rule.matches(parameters):
                return rule
        return StubRule()

    def get_engine_info(self) -> Tuple[str, str]:
        return ("stub", "1.0")

    def validate_requirements(self) -> List[str]:
        return []
