"""Jinja2 template rendering for service scaffolding.

Provides the TemplateRenderer class which turns a raw template body plus a
parameter record into rendered bytes.  The renderer never touches the
filesystem: template bodies come from a ``TemplateSource`` and the generator
decides where the output goes.

Rendering is strict.  A body that does not parse raises
``TemplateParseError``; a body that references a name missing from the
parameter record, or fails for any other reason while rendering, raises
``TemplateExecutionError``.

The casing filters (``pascal_case``, ``camel_case``, ``snake_case``,
``upper_first``) are not used by the bundled templates, which receive every
name variant precomputed.  They are there for user override templates that
need a casing the parameter record does not carry, e.g.
``{{ project_name | pascal_case }}``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError
from pydantic import BaseModel

from .errors import TemplateExecutionError, TemplateParseError
from .naming import file_safe, kebab_to_camel, kebab_to_pascal, upper_char


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 template bodies against a parameter record.

    Parameter records are pydantic models (dumped to a plain mapping before
    rendering) or ready-made mappings.  Each field becomes a top-level name
    inside the template, e.g. ``{{ entity_name }}``.
    """

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Register custom filters
        self.env.filters["pascal_case"] = kebab_to_pascal
        self.env.filters["camel_case"] = kebab_to_camel
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["upper_first"] = _upper_first_filter

    def execute(
        self,
        body: bytes,
        params: BaseModel | Mapping[str, Any],
        template_path: str = "<string>",
    ) -> bytes:
        """Render *body* with *params* and return UTF-8 encoded output.

        Args:
            body: Raw template content as read from a template source.
            params: The parameter record exposed to the template.
            template_path: Logical path of the template, used in errors.

        Raises:
            TemplateParseError: *body* is not valid UTF-8 or not valid
                template syntax.
            TemplateExecutionError: Rendering failed, typically because the
                template references an unknown field.
        """
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TemplateParseError(template_path, cause=exc) from exc

        try:
            template = self.env.from_string(text)
        except TemplateSyntaxError as exc:
            raise TemplateParseError(template_path, cause=exc) from exc

        context = _as_context(params)
        try:
            rendered = template.render(**context)
        except Exception as exc:
            raise TemplateExecutionError(template_path, cause=exc) from exc
        return rendered.encode("utf-8")


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _snake_case_filter(value: str) -> str:
    """Convert ``order-item`` to ``order_item``, keeping case."""
    return file_safe(value)


def _upper_first_filter(value: str) -> str:
    return upper_char(value[0]) + value[1:] if value else ""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_context(params: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(params, BaseModel):
        return params.model_dump(mode="json")
    return dict(params)
