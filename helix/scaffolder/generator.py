"""Main scaffolding orchestrator.

Takes a parameter record, a template source and a ``GenerationPlan`` and
materializes every plan entry: read the template, render it, create the
destination's directories and write the file.

Entries are independent (distinct destinations, a frozen parameter record and
a read-only source), so :meth:`Generator.generate` runs them concurrently.
Generation is all-or-nothing from the caller's point of view: the first
failure is raised with its template and destination paths, and the caller is
expected to discard the destination root (see :func:`discard_tree`).
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Mapping
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from helix.config import PortConfig

from .errors import ScaffoldError, TemplateReadError, TemplateWriteError
from .naming import derive, kebab_to_pascal, lower
from .plans import GenerationPlan
from .sources import TemplateSource
from .templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Placeholder files
# ---------------------------------------------------------------------------

# Entries with this suffix become empty files so the directory exists in git.
PLACEHOLDER_SUFFIX = ".keep"


def is_placeholder(source_path: str, dest_path: str | Path) -> bool:
    """True if the entry only exists to keep an otherwise-empty directory."""
    return PurePosixPath(source_path).name.endswith(PLACEHOLDER_SUFFIX) or Path(
        dest_path
    ).name.endswith(PLACEHOLDER_SUFFIX)


# ---------------------------------------------------------------------------
# Parameter records
# ---------------------------------------------------------------------------


class Driver(str, Enum):
    """Persistence strategy of a generated service."""

    ENT = "ent"  # type-safe ORM
    PGX = "pgx"  # raw SQL


class TemplateData(BaseModel):
    """Values exposed to service and entity templates.

    Built once per command and never mutated, so every file of one
    generation pass sees the same snapshot.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = ""
    module_name: str = ""
    app_port: int = 0
    grpc_port: int = 0
    db_port: int = 0
    db_dev_port: int = 0
    entity_name: str = Field(default="", description="Pascal case, e.g. OrderItem")
    entity_name_camel: str = ""
    entity_name_lower: str = Field(default="", description="Hyphens removed, lower case")
    entity_plural_lower: str = ""
    driver: Driver = Driver.ENT

    @classmethod
    def for_entity(
        cls,
        raw_entity_name: str,
        *,
        project_name: str = "",
        module_name: str = "",
        ports: PortConfig | None = None,
        driver: Driver = Driver.ENT,
    ) -> "TemplateData":
        """Derive every entity naming variant from *raw_entity_name*.

        Ports default to zero, which is what ``new entity`` wants: entity
        templates never reference them.
        """
        names = derive(raw_entity_name)
        port_fields: dict[str, int] = {}
        if ports is not None:
            port_fields = {
                "app_port": ports.app,
                "grpc_port": ports.grpc,
                "db_port": ports.db,
                "db_dev_port": ports.db_dev,
            }
        return cls(
            project_name=project_name,
            module_name=module_name,
            entity_name=names.pascal,
            entity_name_camel=names.camel,
            entity_name_lower=names.flat_lower,
            entity_plural_lower=names.plural_lower,
            driver=driver,
            **port_fields,
        )


class ConsumerData(BaseModel):
    """Values exposed to the event consumer template."""

    model_config = ConfigDict(frozen=True)

    consumer_name: str
    event_name: str
    topic: str

    @classmethod
    def from_name(cls, raw_name: str, topic: str) -> "ConsumerData":
        name = kebab_to_pascal(raw_name)
        return cls(consumer_name=name, event_name=name, topic=topic)


class CacheData(BaseModel):
    """Values exposed to the Redis cache repository template."""

    model_config = ConfigDict(frozen=True)

    struct_name: str
    lower_struct_name: str

    @classmethod
    def from_name(cls, raw_name: str) -> "CacheData":
        name = kebab_to_pascal(raw_name)
        return cls(struct_name=name, lower_struct_name=lower(name))


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class Generator:
    """Renders plan entries from a template source to disk.

    Args:
        params: Parameter record shared by every entry.  Treated as read-only.
        source: Where template bodies come from.
        renderer: Template renderer; a fresh :class:`TemplateRenderer` by default.
        max_concurrency: Upper bound on entries processed at the same time.
    """

    def __init__(
        self,
        params: BaseModel | Mapping[str, Any],
        source: TemplateSource,
        renderer: TemplateRenderer | None = None,
        *,
        max_concurrency: int = 8,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.params = params
        self.source = source
        self.renderer = renderer or TemplateRenderer()
        self.max_concurrency = max_concurrency

    # -- Public API --------------------------------------------------------

    def render(self, source_path: str) -> bytes:
        """Resolve and render one template without writing anything."""
        try:
            body = self.source.read(source_path)
        except OSError as exc:
            raise TemplateReadError(source_path, cause=exc) from exc
        return self.renderer.execute(body, self.params, template_path=source_path)

    async def process_file(self, source_path: str, dest_path: str | Path) -> Path:
        """Render *source_path* and write it to *dest_path*, overwriting.

        Placeholder entries skip templating and produce an empty file.

        Raises:
            ScaffoldError: Any failure, bound to *dest_path*.  Nothing is
                written when reading or rendering fails.
        """
        dest = Path(dest_path)
        if is_placeholder(source_path, dest):
            await asyncio.to_thread(_write_file, source_path, dest, b"")
            return dest

        try:
            content = await asyncio.to_thread(self.render, source_path)
        except ScaffoldError as exc:
            raise exc.with_destination(dest) from exc.cause

        await asyncio.to_thread(_write_file, source_path, dest, content)
        return dest

    async def generate(
        self, plan: GenerationPlan, *, concurrent: bool = True
    ) -> list[Path]:
        """Materialize every entry of *plan*.

        With ``concurrent=True`` all entries run (bounded by
        ``max_concurrency``) and are allowed to settle before the first
        failure, in plan order, is raised.  With ``concurrent=False``
        entries run in plan order and the first failure stops the batch.

        Returns:
            Written destination paths, in plan order.
        """
        if not concurrent:
            return [await self.process_file(src, dest) for src, dest in plan.items()]

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(src: str, dest: Path) -> Path:
            async with semaphore:
                return await self.process_file(src, dest)

        results = await asyncio.gather(
            *(_bounded(src, dest) for src, dest in plan.items()),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def discard_tree(root: str | Path) -> bool:
    """Remove a partially generated destination root.

    Returns ``True`` if something was removed.
    """
    path = Path(root)
    if not path.exists():
        return False
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink()
    return True


def _write_file(source_path: str, dest: Path, content: bytes) -> None:
    """Synchronous helper: create parent dirs and write content."""
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(content)
    except OSError as exc:
        raise TemplateWriteError(source_path, dest, exc) from exc
