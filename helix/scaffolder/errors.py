"""Error taxonomy for template resolution, rendering and materialization.

Every error carries the logical template path and, once the generator knows
it, the destination path, so a caller can report exactly which artifact
failed and clean up without re-deriving any context.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class ScaffoldError(Exception):
    """Base class for all generation failures.  None of them are retried."""

    code = "SCAFFOLD_ERROR"
    summary = "scaffolding failed"

    def __init__(
        self,
        template_path: str,
        dest_path: str | Path | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.template_path = template_path
        self.dest_path = Path(dest_path) if dest_path is not None else None
        self.cause = cause
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        message = f"[{self.code}] {self.summary} for template '{self.template_path}'"
        if self.dest_path is not None:
            message += f" -> '{self.dest_path}'"
        if self.cause is not None:
            message += f": {self.cause}"
        return message

    def with_destination(self, dest_path: str | Path) -> "ScaffoldError":
        """Return a copy of this error bound to *dest_path*."""
        return type(self)(self.template_path, dest_path, self.cause)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "template_path": self.template_path,
            "dest_path": str(self.dest_path) if self.dest_path is not None else None,
            "cause": str(self.cause) if self.cause is not None else None,
        }


class TemplateNotFoundError(ScaffoldError):
    """The logical path exists in neither the override nor the bundled root."""

    code = "TEMPLATE_NOT_FOUND"
    summary = "template not found"


class TemplateParseError(ScaffoldError):
    """The template body is not valid template syntax."""

    code = "TEMPLATE_PARSE_ERROR"
    summary = "could not parse template"


class TemplateExecutionError(ScaffoldError):
    """The template parsed but failed while substituting values."""

    code = "TEMPLATE_EXECUTION_ERROR"
    summary = "could not execute template"


class TemplateWriteError(ScaffoldError):
    """Creating the destination directory or writing the file failed."""

    code = "TEMPLATE_WRITE_ERROR"
    summary = "could not write rendered template"


class TemplateReadError(ScaffoldError):
    """The template exists but could not be read (permissions, I/O)."""

    code = "TEMPLATE_READ_ERROR"
    summary = "could not read template"
