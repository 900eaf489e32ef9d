"""
Output Layout Manager

Owns the naming/directory convention for rendered artifacts:

    <output_root>/<slug(value_1)>/.../<slug(value_n)>/<slug(value_1)>_..._<slug(value_n)>.<ext>

An optional Jinja2 ``filename_template`` replaces the default file stem. The
manager also guarantees that no two jobs in a run target the same path; the
check runs over the whole job list before anything is rendered.
"""

import logging
import re
from collections import defaultdict
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from jinja2 import Environment, StrictUndefined, TemplateError, UndefinedError

from batchrender.bindings import Binding
from batchrender.errors import ConfigurationError, OutputCollisionError
from batchrender.formats import extension_for

if TYPE_CHECKING:
    from batchrender.jobs import RenderJob


logger = logging.getLogger(__name__)

SLUG_SEPARATOR = "-"
FILENAME_JOINER = "_"

# Anything outside [a-z0-9.] is replaced, so the filename joiner never
# appears inside a slug.
_DISALLOWED = re.compile(r"[^a-z0-9.]+")


def slugify(value: str) -> str:
    """Convert a dimension value into a filesystem-safe path token.

    Lower-cases the value and replaces every run of whitespace or
    disallowed characters with a single separator.

    Args:
        value: Raw dimension value

    Returns:
        Slug token (e.g., "North East" -> "north-east")

    Raises:
        ConfigurationError: If nothing usable remains (e.g., "???" or "..")
    """
    slug = _DISALLOWED.sub(SLUG_SEPARATOR, str(value).strip().lower())
    slug = slug.strip(SLUG_SEPARATOR + ".")
    if not slug:
        raise ConfigurationError(
            f"Value {value!r} does not produce a usable path token", field_name="dimensions"
        )
    return slug


class OutputLayout:
    """Deterministic mapping of (binding, format) to a relative output path.

    Example:
        >>> layout = OutputLayout()
        >>> layout.relative_path(binding, "pdf")
        PurePosixPath('a/2023/a_2023.pdf')
    """

    def __init__(self, filename_template: Optional[str] = None):
        """Initialize the layout.

        Args:
            filename_template: Optional Jinja2 template for the file stem,
                rendered with each dimension's slug as a variable

        Raises:
            ConfigurationError: If the template does not compile
        """
        self.filename_template = filename_template
        self._template = None
        if filename_template:
            env = Environment(undefined=StrictUndefined, autoescape=False)
            try:
                self._template = env.from_string(filename_template)
            except TemplateError as e:
                raise ConfigurationError(
                    f"Invalid filename_template: {e}", field_name="filename_template"
                ) from e

    def relative_path(self, binding: Binding, output_format: str) -> PurePosixPath:
        """Derive the artifact path for one binding and format.

        Args:
            binding: The binding being rendered
            output_format: Registered format name

        Returns:
            Path relative to the output root
        """
        slugs = [slugify(value) for value in binding.values]
        stem = self._stem(binding, slugs)
        return PurePosixPath(*slugs, f"{stem}.{extension_for(output_format)}")

    def _stem(self, binding: Binding, slugs: List[str]) -> str:
        if self._template is None:
            return FILENAME_JOINER.join(slugs)

        context = dict(zip(binding.dimension_names, slugs))
        try:
            rendered = self._template.render(context)
        except (UndefinedError, TemplateError) as e:
            raise ConfigurationError(
                f"filename_template failed for binding ({binding.describe()}): {e}",
                field_name="filename_template",
            ) from e
        # Slugify each joiner-separated part so the joiner survives
        parts = [slugify(part) for part in rendered.split(FILENAME_JOINER) if part.strip()]
        if not parts:
            raise ConfigurationError(
                f"filename_template rendered an empty name for ({binding.describe()})",
                field_name="filename_template",
            )
        return FILENAME_JOINER.join(parts)

    def check_collisions(self, jobs: Sequence["RenderJob"]) -> None:
        """Fail if two jobs resolve to the same output path.

        Paths are compared case-insensitively so the check also holds on
        case-insensitive filesystems.

        Args:
            jobs: Every job of the run, before any is dispatched

        Raises:
            OutputCollisionError: Naming the first contested path and all
                jobs that resolve to it
        """
        by_path: Dict[str, List["RenderJob"]] = defaultdict(list)
        for job in jobs:
            by_path[str(job.output_path).lower()].append(job)

        for path, claimants in by_path.items():
            if len(claimants) > 1:
                described = [f"({job.binding.describe()}) as {job.output_format}" for job in claimants]
                logger.error(f"Output collision at {path}: {described}")
                raise OutputCollisionError(str(claimants[0].output_path), described)

        logger.debug(f"Layout verified: {len(jobs)} distinct output paths")
