"""Helix command line interface.

Thin glue around the scaffolder: turns already-validated command line input
into a parameter record and a generation plan, runs the generator, and then
runs the go/git follow-up commands.

Usage::

    helix init svc-order --driver pgx
    helix new entity order-item
    helix new consumer user-created user.events.created
    helix new cache session
    helix templates --prefix templates/entity
"""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from pathlib import Path

from rich.markup import escape

from helix.config import HelixConfig, PortConfig
from helix.scaffolder import (
    CacheData,
    ConsumerData,
    Driver,
    GenerationPlan,
    Generator,
    ScaffoldError,
    TemplateData,
    TemplateWriteError,
    cache_plan,
    consumer_plan,
    default_source,
    derive,
    discard_tree,
    entity_plan,
    service_plan,
)
from helix.scaffolder.naming import NameVariants
from helix.utils import (
    CommandError,
    console,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    run_checked,
)

PROJECT_PREFIX = "svc-"

# Entity names that collide with generated packages or Go itself.
RESERVED_ENTITY_NAMES = frozenset({"ent", "entity", "internal", "pkg", "app", "go"})

GO_DEPENDENCIES = [
    "github.com/kelseyhightower/envconfig",
    "github.com/go-playground/validator/v10",
    "github.com/prometheus/client_golang/prometheus/promhttp",
    "github.com/redis/go-redis/v9",
    "go.opentelemetry.io/otel",
    "entgo.io/contrib/entoas",
    "github.com/ogen-go/ogen",
    "github.com/testcontainers/testcontainers-go",
    "github.com/testcontainers/testcontainers-go/modules/postgres",
    "google.golang.org/grpc",
    "github.com/swaggo/http-swagger",
]

POST_INIT_COMMANDS: list[list[str]] = [
    ["go", "mod", "download"],
    *(["go", "get", dep] for dep in GO_DEPENDENCIES),
    ["go", "generate", "./ent/..."],
    ["go", "mod", "tidy"],
    ["git", "init", "-b", "main"],
]

POST_ENTITY_COMMANDS: list[list[str]] = [
    ["go", "generate", "./ent/..."],
    ["go", "mod", "tidy"],
]

# Placeholder swag package; `swag init` replaces it.
DOCS_STUB = "docs/docs.go"


class CLIError(Exception):
    """Invalid command line input or a destination that cannot be used."""


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------


def normalize_project_name(name: str, *, keep_name: bool = False) -> str:
    """Add the ``svc-`` prefix unless the name has it or *keep_name* is set."""
    name = name.strip()
    if not name:
        raise CLIError("project name cannot be empty")
    if keep_name or name.startswith(PROJECT_PREFIX):
        return name
    return PROJECT_PREFIX + name


def entity_name_for(project_name: str) -> str:
    """``svc-order-item`` -> ``order-item``."""
    return project_name.removeprefix(PROJECT_PREFIX)


def validate_entity_name(raw_name: str) -> None:
    if not raw_name:
        raise CLIError("entity name cannot be empty")
    if raw_name in RESERVED_ENTITY_NAMES:
        raise CLIError(
            f"'{raw_name}' is a reserved keyword or framework name. Naming your "
            f"entity '{derive(raw_name).pascal}' will break code generation. "
            "Please use a real domain name (e.g. svc-user, svc-order)."
        )


def read_module_name(project_root: Path, fallback: str) -> str:
    """Module path declared in ``go.mod``, or *fallback*."""
    go_mod = project_root / "go.mod"
    if not go_mod.is_file():
        return fallback
    for line in go_mod.read_text(encoding="utf-8").splitlines():
        if line.startswith("module "):
            parts = line.split()
            if len(parts) >= 2:
                return parts[1]
    return fallback


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def print_plan(plan: GenerationPlan) -> None:
    print_summary_table(
        {template: str(dest) for template, dest in plan.items()},
        title=f"Generation plan ({len(plan)} files)",
    )


def wiring_instructions(names: NameVariants, driver: Driver) -> list[str]:
    """Lines to paste into ``cmd/server/main.go`` for a new entity."""
    name = names.pascal
    db_handle = "entClient" if driver is Driver.ENT else "stdMainDB"
    return [
        "// Imports",
        'import handlerV1 ".../internal/adapter/handler/v1"',
        "",
        f"// Repository ({driver.value.upper()})",
        f"repo{name} := repository.New{name}Repository({db_handle})",
        f"svc{name} := service.New{name}Service(repo{name}, outboxRepo, txManager)",
        "",
        "// Handler (V1)",
        f"h{name}V1 := handlerV1.New{name}Handler(svc{name})",
        "// Route (V1)",
        f'r.Route("/v1/{names.camel}s", func(r chi.Router) {{',
        f'\tr.Post("/", h{name}V1.Create)',
        f'\tr.Get("/{{id}}", h{name}V1.GetByID)',
        "})",
    ]


def print_wiring_instructions(names: NameVariants, driver: Driver) -> None:
    console.print()
    print_success("Entity generated successfully (Version: v1)!")
    console.print("[bold]ACTION REQUIRED:[/bold] Wire dependencies in 'cmd/server/main.go'")
    console.rule()
    for line in wiring_instructions(names, driver):
        console.print(escape(line), highlight=False)
    console.rule()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_post_steps(cwd: Path, commands: list[list[str]]) -> list[CommandError]:
    """Run follow-up commands in order; failures are reported, not raised."""
    failures: list[CommandError] = []
    for cmd in commands:
        console.print(f"  [dim]$ {escape(' '.join(cmd))}[/dim]")
        try:
            await run_checked(cmd, cwd=cwd)
        except CommandError as exc:
            print_warning(f"{exc}\n{exc.stderr}" if exc.stderr else str(exc))
            failures.append(exc)
    return failures


def _generator(params: TemplateData | ConsumerData | CacheData, config: HelixConfig) -> Generator:
    source = default_source(config.override_dir, verbose=config.verbose)
    return Generator(params, source, max_concurrency=config.max_workers)


def write_docs_stub(project_root: Path) -> Path:
    """Write the stub ``docs`` package for the swagger handler."""
    target = project_root / DOCS_STUB
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("package docs\n", encoding="utf-8")
    except OSError as exc:
        raise TemplateWriteError(DOCS_STUB, target, exc) from exc
    return target


async def cmd_init(args: argparse.Namespace, config: HelixConfig) -> None:
    project_name = normalize_project_name(args.name, keep_name=args.keep_name)
    raw_entity = entity_name_for(project_name)
    validate_entity_name(raw_entity)

    dest = Path(args.output) / project_name
    if dest.exists():
        raise CLIError(f"directory '{dest}' already exists")

    driver = Driver(args.driver)
    ports = PortConfig.allocate(random.Random(args.seed))
    names = derive(raw_entity)
    params = TemplateData.for_entity(
        raw_entity,
        project_name=project_name,
        module_name=config.module_name(project_name),
        ports=ports,
        driver=driver,
    )
    plan = service_plan(dest, names.file_safe)
    if args.dry_run:
        print_plan(plan)
        return

    console.print(f"  Scaffolding [bold]{escape(project_name)}[/bold] with the {driver.value} driver...")
    try:
        await _generator(params, config).generate(plan)
        write_docs_stub(dest)
    except ScaffoldError:
        discard_tree(dest)
        raise

    if not args.skip_post_steps:
        console.print("  Running go mod operations...")
        await run_post_steps(dest, POST_INIT_COMMANDS)

    print_summary_table(
        {
            "Project": project_name,
            "Module": params.module_name,
            "Entity": names.pascal,
            "Driver": driver.value,
            **{f"{service} port": str(port) for service, port in ports.as_dict().items()},
        },
        title="Service initialized",
    )
    print_success(
        f"Project {project_name} initialized successfully using {driver.value.upper()} driver!"
    )


async def cmd_new_entity(args: argparse.Namespace, config: HelixConfig) -> None:
    validate_entity_name(args.name)
    root = Path(args.project_dir)
    driver = Driver(args.driver)
    names = derive(args.name)
    params = TemplateData.for_entity(
        args.name,
        module_name=read_module_name(root, config.unknown_module_name),
        driver=driver,
    )
    plan = entity_plan(root, names.file_safe)
    if args.dry_run:
        print_plan(plan)
        return

    console.print(f"  Generating entity files for [bold]{names.pascal}[/bold] ({driver.value})...")
    await _generator(params, config).generate(plan)

    if not args.skip_post_steps:
        console.print("  Running go generate & tidy...")
        await run_post_steps(root, POST_ENTITY_COMMANDS)

    print_wiring_instructions(names, driver)


async def _generate_single(
    plan: GenerationPlan,
    params: ConsumerData | CacheData,
    config: HelixConfig,
    dry_run: bool,
) -> Path | None:
    """Generate a one-file plan, refusing to overwrite an existing file."""
    [target] = plan.destinations()
    if target.exists():
        raise CLIError(f"file '{target.name}' already exists")
    if dry_run:
        print_plan(plan)
        return None
    await _generator(params, config).generate(plan)
    return target


async def cmd_new_consumer(args: argparse.Namespace, config: HelixConfig) -> None:
    params = ConsumerData.from_name(args.name, args.topic)
    plan = consumer_plan(Path(args.project_dir), args.name)
    target = await _generate_single(plan, params, config, args.dry_run)
    if target is not None:
        print_success(f"Consumer '{params.consumer_name}' generated at {target}")
        console.print("Don't forget to register it in 'cmd/server/main.go'!")


async def cmd_new_cache(args: argparse.Namespace, config: HelixConfig) -> None:
    params = CacheData.from_name(args.name)
    plan = cache_plan(Path(args.project_dir), args.name)
    target = await _generate_single(plan, params, config, args.dry_run)
    if target is not None:
        print_success(f"Cache repository '{params.struct_name}' generated at {target}")


async def cmd_templates(args: argparse.Namespace, config: HelixConfig) -> None:
    """List bundled templates and flag the ones overridden locally."""
    source = default_source(config.override_dir)
    rows: dict[str, str] = {}
    for logical_path in source.walk(args.prefix):
        local = source.override_path(logical_path)
        rows[logical_path] = str(local) if local is not None and local.is_file() else "bundled"
    if not rows:
        print_warning(f"No templates under '{args.prefix}'")
        return
    print_summary_table(rows, title=f"Templates (overrides from {config.override_dir})")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helix",
        description="Helix microservice generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  helix init svc-order --driver pgx\n"
            "  helix new entity order-item\n"
            "  helix new consumer user-created user.events.created\n"
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show template override lookups")
    subparsers = parser.add_subparsers(dest="command")

    driver_choices = [d.value for d in Driver]

    init = subparsers.add_parser("init", help="Initialize a new Helix microservice project")
    init.add_argument("name", help="Project name (e.g. svc-order)")
    init.add_argument("--driver", choices=driver_choices, default=Driver.ENT.value,
                      help="ent: type-safe ORM, pgx: raw SQL (default: ent)")
    init.add_argument("--output", "-o", default=".", help="Parent directory (default: .)")
    init.add_argument("--keep-name", action="store_true",
                      help=f"Do not add the '{PROJECT_PREFIX}' prefix")
    init.add_argument("--seed", type=int, default=None, help="Seed for port allocation")
    init.add_argument("--skip-post-steps", action="store_true",
                      help="Do not run go mod / go generate / git init")
    init.add_argument("--dry-run", action="store_true", help="Show the plan without writing")
    init.set_defaults(handler=cmd_init)

    new = subparsers.add_parser("new", help="Generate new components in an existing project")
    new_sub = new.add_subparsers(dest="component")

    entity = new_sub.add_parser("entity", help="Generate a new domain entity")
    entity.add_argument("name", help="Entity name in kebab case (e.g. order-item)")
    entity.add_argument("--driver", choices=driver_choices, default=Driver.ENT.value)
    entity.add_argument("--skip-post-steps", action="store_true")
    entity.set_defaults(handler=cmd_new_entity)

    consumer = new_sub.add_parser("consumer", help="Generate a new Kafka consumer handler")
    consumer.add_argument("name", help="Consumer name (e.g. user-created)")
    consumer.add_argument("topic", help="Topic to consume (e.g. user.events.created)")
    consumer.set_defaults(handler=cmd_new_consumer)

    cache = new_sub.add_parser("cache", help="Generate a new Redis cache repository")
    cache.add_argument("name", help="Cache name (e.g. session)")
    cache.set_defaults(handler=cmd_new_cache)

    for sub in (entity, consumer, cache):
        sub.add_argument("--project-dir", default=".", help="Service root (default: .)")
        sub.add_argument("--dry-run", action="store_true", help="Show the plan without writing")

    templates = subparsers.add_parser("templates", help="List bundled templates and local overrides")
    templates.add_argument("--prefix", default="templates", help="Logical path prefix")
    templates.set_defaults(handler=cmd_templates)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``helix`` / ``python -m helix.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    config = HelixConfig.from_env()
    if args.verbose:
        config = config.model_copy(update={"verbose": True})

    try:
        asyncio.run(handler(args, config))
    except ScaffoldError as exc:
        print_error(f"TEMPLATE ERROR: {exc}")
        sys.exit(1)
    except (CLIError, CommandError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
