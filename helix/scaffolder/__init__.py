"""Helix scaffolder -- renders Go service skeletons from templates.

This module resolves templates from a user-local override directory or the
bundled defaults, renders them with Jinja2 against a frozen parameter record,
and writes the result for every entry of a ``GenerationPlan``.

Quick usage::

    from helix.config import HelixConfig
    from helix.scaffolder import Generator, TemplateData, default_source, service_plan

    params = TemplateData.for_entity("order-item", project_name="svc-order-item")
    generator = Generator(params, default_source(HelixConfig.from_env().override_dir))
    plan = service_plan("./svc-order-item", "order_item")
    written = await generator.generate(plan)
"""

from .errors import (
    ScaffoldError,
    TemplateExecutionError,
    TemplateNotFoundError,
    TemplateParseError,
    TemplateReadError,
    TemplateWriteError,
)
from .generator import (
    CacheData,
    ConsumerData,
    Driver,
    Generator,
    TemplateData,
    discard_tree,
    is_placeholder,
)
from .naming import NameVariants, derive, kebab_to_camel, kebab_to_pascal
from .plans import GenerationPlan, cache_plan, consumer_plan, entity_plan, service_plan
from .sources import (
    BundledTemplateSource,
    LayeredTemplateSource,
    TemplateSource,
    default_source,
)
from .templates import TemplateRenderer

__all__ = [
    # Naming
    "NameVariants",
    "derive",
    "kebab_to_camel",
    "kebab_to_pascal",
    # Template sources
    "TemplateSource",
    "BundledTemplateSource",
    "LayeredTemplateSource",
    "default_source",
    # Rendering
    "TemplateRenderer",
    # Generation
    "Generator",
    "GenerationPlan",
    "TemplateData",
    "ConsumerData",
    "CacheData",
    "Driver",
    "discard_tree",
    "is_placeholder",
    "service_plan",
    "entity_plan",
    "consumer_plan",
    "cache_plan",
    # Errors
    "ScaffoldError",
    "TemplateNotFoundError",
    "TemplateParseError",
    "TemplateExecutionError",
    "TemplateReadError",
    "TemplateWriteError",
]
