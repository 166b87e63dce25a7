"""Generation plans: which template goes where.

A ``GenerationPlan`` maps logical template paths to destination files.  The
builders below assemble the plans for each scaffold the CLI offers; the
generator itself never decides what a scaffold contains.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from .naming import file_safe, lower


class GenerationPlan:
    """Ordered mapping of logical template path -> destination path.

    Destinations must be pairwise distinct, since entries may be written
    concurrently.  :meth:`add` rejects a repeated destination.
    """

    def __init__(self, entries: dict[str, str | Path] | None = None) -> None:
        self._entries: dict[str, Path] = {}
        for template_path, dest_path in (entries or {}).items():
            self.add(template_path, dest_path)

    def add(self, template_path: str, dest_path: str | Path) -> "GenerationPlan":
        dest = Path(dest_path)
        if template_path in self._entries:
            raise ValueError(f"template '{template_path}' is already planned")
        if dest in self._entries.values():
            raise ValueError(f"destination '{dest}' is already planned")
        self._entries[template_path] = dest
        return self

    def items(self) -> Iterator[tuple[str, Path]]:
        return iter(list(self._entries.items()))

    def destinations(self) -> list[Path]:
        return list(self._entries.values())

    def __getitem__(self, template_path: str) -> Path:
        return self._entries[template_path]

    def __contains__(self, template_path: object) -> bool:
        return template_path in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"GenerationPlan({len(self)} entries)"


def snake_file_name(raw_name: str) -> str:
    """``UserCreated`` -> ``usercreated``, ``user-created`` -> ``user_created``."""
    return file_safe(lower(raw_name))


# ---------------------------------------------------------------------------
# Plan builders
# ---------------------------------------------------------------------------


def entity_plan(project_root: str | Path, entity_file: str) -> GenerationPlan:
    """Files for one domain entity inside an existing service.

    Args:
        project_root: Root of the service (where ``go.mod`` lives).
        entity_file: File-safe entity name, e.g. ``order_item``.
    """
    root = Path(project_root)
    return GenerationPlan({
        "templates/entity/entity.go.tmpl": root / "internal" / "core" / "entity" / f"{entity_file}.go",
        "templates/entity/dto.go.tmpl": root / "internal" / "core" / "dto" / "v1" / f"{entity_file}.go",
        "templates/entity/port_service.go.tmpl": root / "internal" / "core" / "port" / f"{entity_file}_service.go",
        "templates/entity/port_repository.go.tmpl": root / "internal" / "core" / "port" / f"{entity_file}_repository.go",
        "templates/entity/service_impl.go.tmpl": root / "internal" / "core" / "service" / f"{entity_file}_service.go",
        "templates/entity/repo_impl.go.tmpl": root / "internal" / "adapter" / "repository" / f"{entity_file}_repository.go",
        "templates/entity/handler_impl.go.tmpl": root / "internal" / "adapter" / "handler" / "v1" / f"{entity_file}_handler.go",
        "templates/entity/ent_schema.go.tmpl": root / "ent" / "schema" / f"{entity_file}.go",
    })


def service_plan(dest_root: str | Path, entity_file: str) -> GenerationPlan:
    """Every file of a freshly initialised service.

    Includes the :func:`entity_plan` files for the service's primary entity
    plus the gRPC handler and proto definition for it.
    """
    root = Path(dest_root)
    plan = GenerationPlan({
        # Tooling and infrastructure
        "templates/Makefile": root / "Makefile",
        "templates/Dockerfile.tmpl": root / "Dockerfile",
        "templates/.air.toml": root / ".air.toml",
        "templates/docker-compose.yml": root / "docker-compose.yml",
        "templates/docker-compose.infra.yml": root / "docker-compose.infra.yml",
        "templates/.env": root / ".env",
        "templates/.golangci.yml": root / ".golangci.yml",
        "templates/buf.gen.yaml": root / "buf.gen.yaml",
        "templates/.github/workflows/ci.yml": root / ".github" / "workflows" / "ci.yml",
        "templates/api/proto/v1/service.proto": root / "api" / "proto" / "v1" / f"{entity_file}.proto",
        # Application skeleton
        "templates/app/cmd/server/main.go.tmpl": root / "cmd" / "server" / "main.go",
        "templates/app/go.mod.tmpl": root / "go.mod",
        "templates/app/internal/pkg/config/config.go.tmpl": root / "internal" / "pkg" / "config" / "config.go",
        "templates/app/scripts/gen-certs.sh": root / "scripts" / "gen-certs.sh",
        "templates/app/ent/runtime.go.tmpl": root / "ent" / "runtime.go",
        "templates/app/ent/entc.go.tmpl": root / "ent" / "entc.go",
        "templates/app/ent/generate.go.tmpl": root / "ent" / "generate.go",
        "templates/app/ent/schema/outbox.go.tmpl": root / "ent" / "schema" / "outbox.go",
        "templates/app/internal/core/port/transaction.go.tmpl": root / "internal" / "core" / "port" / "transaction.go",
        "templates/app/internal/core/port/outbox_repository.go.tmpl": root / "internal" / "core" / "port" / "outbox_repository.go",
        "templates/app/internal/core/port/database.go.tmpl": root / "internal" / "core" / "port" / "database.go",
        "templates/app/internal/core/entity/errors.go.tmpl": root / "internal" / "core" / "entity" / "errors.go",
        "templates/app/internal/adapter/repository/transaction.go.tmpl": root / "internal" / "adapter" / "repository" / "transaction.go",
        "templates/app/internal/adapter/repository/outbox_repository.go.tmpl": root / "internal" / "adapter" / "repository" / "outbox_repository.go",
        "templates/app/internal/adapter/worker/outbox.go.tmpl": root / "internal" / "adapter" / "worker" / "outbox.go",
        "templates/app/internal/adapter/handler/validation.go.tmpl": root / "internal" / "adapter" / "handler" / "v1" / "validation.go",
        "templates/app/internal/pkg/middleware/deprecation.go.tmpl": root / "internal" / "pkg" / "middleware" / "deprecation.go",
        "templates/app/tests/integration/setup_test.go.tmpl": root / "tests" / "integration" / "setup_test.go",
        "templates/app/migrations/.keep": root / "migrations" / ".keep",
        # Primary entity
        "templates/entity/grpc_handler_impl.go.tmpl": root / "internal" / "adapter" / "handler" / "v1" / f"{entity_file}_grpc_handler.go",
    })
    for template_path, dest_path in entity_plan(root, entity_file).items():
        plan.add(template_path, dest_path)
    return plan


def consumer_plan(project_root: str | Path, raw_name: str) -> GenerationPlan:
    """Kafka consumer handler, e.g. ``internal/adapter/worker/consumer_user_created.go``."""
    target = Path(project_root) / "internal" / "adapter" / "worker" / f"consumer_{snake_file_name(raw_name)}.go"
    return GenerationPlan({"templates/consumer/consumer.go.tmpl": target})


def cache_plan(project_root: str | Path, raw_name: str) -> GenerationPlan:
    """Redis cache repository, e.g. ``internal/adapter/cache/session_cache.go``."""
    target = Path(project_root) / "internal" / "adapter" / "cache" / f"{snake_file_name(raw_name)}_cache.go"
    return GenerationPlan({"templates/cache/cache.go.tmpl": target})
