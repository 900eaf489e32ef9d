"""
Job Builder

Turns a template reference, one binding and one requested output format
into a fully specified RenderJob. Building is side-effect free: the output
path is derived but no directories are created here.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Sequence

from batchrender.bindings import Binding
from batchrender.formats import resolve_format
from batchrender.layout import OutputLayout


@dataclass(frozen=True)
class RenderJob:
    """One (template, binding, format) unit of work.

    Attributes:
        template_ref: Opaque template identifier resolved by the engine
        binding: The binding being rendered (never mutated)
        output_format: Registered format name
        output_path: Artifact path relative to the output root
        index: Position of the job in the run's deterministic order
    """
    template_ref: str
    binding: Binding
    output_format: str
    output_path: PurePosixPath
    index: int = 0

    def describe(self) -> str:
        return f"[{self.binding.describe()}] -> {self.output_format}"


class JobBuilder:
    """Builds render jobs using an OutputLayout for path derivation.

    Example:
        >>> builder = JobBuilder()
        >>> job = builder.build("report.qmd", binding, "pdf")
        >>> job.output_path
        PurePosixPath('a/2023/a_2023.pdf')
    """

    def __init__(self, layout: Optional[OutputLayout] = None):
        self.layout = layout or OutputLayout()

    def build(
        self,
        template_ref: str,
        binding: Binding,
        output_format: str,
        index: int = 0,
    ) -> RenderJob:
        """Build a single render job.

        Raises:
            UnsupportedFormatError: If the format is not registered
        """
        fmt = resolve_format(output_format).value
        return RenderJob(
            template_ref=template_ref,
            binding=binding,
            output_format=fmt,
            output_path=self.layout.relative_path(binding, fmt),
            index=index,
        )

    def build_all(
        self,
        template_ref: str,
        bindings: Iterable[Binding],
        formats: Sequence[str],
    ) -> List[RenderJob]:
        """Build every job of a run, binding-major, formats in declared order.

        All formats are validated before any job is built so a bad format
        fails the run regardless of binding count.
        """
        fmts = [resolve_format(f).value for f in formats]
        jobs: List[RenderJob] = []
        for binding in bindings:
            for fmt in fmts:
                jobs.append(self.build(template_ref, binding, fmt, index=len(jobs)))
        return jobs
