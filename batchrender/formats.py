"""
Output format registry.

The finite set of formats a render job may request, with each format's
canonical file extension.
"""

from enum import Enum
from typing import Dict

from batchrender.errors import UnsupportedFormatError


class OutputFormat(str, Enum):
    """Supported output formats."""

    PDF = "pdf"
    HTML = "html"
    DOCX = "docx"
    MD = "md"
    PPTX = "pptx"
    TYPST = "typst"
    REVEALJS = "revealjs"


CANONICAL_EXTENSIONS: Dict[OutputFormat, str] = {
    OutputFormat.PDF: "pdf",
    OutputFormat.HTML: "html",
    OutputFormat.DOCX: "docx",
    OutputFormat.MD: "md",
    OutputFormat.PPTX: "pptx",
    OutputFormat.TYPST: "pdf",
    OutputFormat.REVEALJS: "html",
}

VALID_FORMATS = [f.value for f in OutputFormat]


def resolve_format(name: str) -> OutputFormat:
    """Look up a registered format by name (case-insensitive).

    Raises:
        UnsupportedFormatError: If the name is not registered
    """
    try:
        return OutputFormat(str(name).strip().lower())
    except ValueError:
        raise UnsupportedFormatError(str(name), VALID_FORMATS) from None


def extension_for(name: str) -> str:
    return CANONICAL_EXTENSIONS[resolve_format(name)]
