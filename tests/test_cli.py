"""Tests for the helix command line (helix.cli).

Covers:
- Input normalization and validation helpers
- go.mod module discovery
- Wiring instructions for new entities
- Post-generation command handling
- main() for init / new entity / new consumer / new cache / templates
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from helix.cli import (
    POST_ENTITY_COMMANDS,
    POST_INIT_COMMANDS,
    CLIError,
    build_parser,
    entity_name_for,
    main,
    normalize_project_name,
    read_module_name,
    run_post_steps,
    validate_entity_name,
    wiring_instructions,
    write_docs_stub,
)
from helix.scaffolder import Driver, TemplateWriteError, derive
from helix.utils import CommandError


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_env(monkeypatch, tmp_path: Path) -> Path:
    """Isolate main() from the user's environment; returns the override dir."""
    override = tmp_path / "overrides"
    monkeypatch.setenv("HELIX_TEMPLATES_DIR", str(override))
    monkeypatch.setenv("HELIX_MODULE_PREFIX", "github.com/acme")
    monkeypatch.delenv("HELIX_VERBOSE", raising=False)
    monkeypatch.delenv("HELIX_MAX_WORKERS", raising=False)
    return override


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def service_root(work_dir: Path) -> Path:
    """An existing service with a go.mod."""
    root = work_dir / "svc-order"
    root.mkdir()
    (root / "go.mod").write_text("module github.com/acme/svc-order\n\ngo 1.22\n")
    return root


def _files(root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestNormalizeProjectName:
    def test_adds_prefix(self):
        assert normalize_project_name("order") == "svc-order"

    def test_keeps_existing_prefix(self):
        assert normalize_project_name("svc-order") == "svc-order"

    def test_keep_name(self):
        assert normalize_project_name("order", keep_name=True) == "order"

    def test_strips_whitespace(self):
        assert normalize_project_name("  order-item ") == "svc-order-item"

    def test_empty_rejected(self):
        with pytest.raises(CLIError):
            normalize_project_name("   ")


class TestEntityName:
    def test_entity_name_for(self):
        assert entity_name_for("svc-order-item") == "order-item"
        assert entity_name_for("billing") == "billing"

    @pytest.mark.parametrize("reserved", ["ent", "entity", "internal", "pkg", "app", "go"])
    def test_reserved_rejected(self, reserved: str):
        with pytest.raises(CLIError, match="reserved"):
            validate_entity_name(reserved)

    def test_empty_rejected(self):
        with pytest.raises(CLIError):
            validate_entity_name("")

    def test_valid(self):
        validate_entity_name("order-item")


class TestReadModuleName:
    def test_reads_module_line(self, service_root: Path):
        assert read_module_name(service_root, "fallback") == "github.com/acme/svc-order"

    def test_missing_go_mod(self, tmp_path: Path):
        assert read_module_name(tmp_path, "github.com/godamri/unknown") == "github.com/godamri/unknown"

    def test_no_module_line(self, tmp_path: Path):
        (tmp_path / "go.mod").write_text("go 1.22\n")
        assert read_module_name(tmp_path, "fb") == "fb"


class TestWiringInstructions:
    def test_ent(self):
        lines = wiring_instructions(derive("order-item"), Driver.ENT)
        assert "repoOrderItem := repository.NewOrderItemRepository(entClient)" in lines
        assert "// Repository (ENT)" in lines
        assert 'r.Route("/v1/orderItems", func(r chi.Router) {' in lines

    def test_pgx(self):
        lines = wiring_instructions(derive("user"), Driver.PGX)
        assert "repoUser := repository.NewUserRepository(stdMainDB)" in lines
        assert "hUserV1 := handlerV1.NewUserHandler(svcUser)" in lines


class TestWriteDocsStub:
    def test_writes_package_clause(self, tmp_path: Path):
        target = write_docs_stub(tmp_path)
        assert target == tmp_path / "docs" / "docs.go"
        assert target.read_text() == "package docs\n"

    def test_os_error_is_write_error(self, tmp_path: Path):
        (tmp_path / "docs").write_text("a file where the directory should be")
        with pytest.raises(TemplateWriteError) as exc_info:
            write_docs_stub(tmp_path)
        assert exc_info.value.template_path == "docs/docs.go"
        assert exc_info.value.dest_path == tmp_path / "docs" / "docs.go"


class TestRunPostSteps:
    async def test_runs_every_command_and_collects_failures(self, tmp_path: Path):
        failure = CommandError(["go", "mod", "tidy"], 1, "boom")
        runner = AsyncMock(side_effect=[None, failure, None])
        commands = [["go", "mod", "download"], ["go", "mod", "tidy"], ["git", "init", "-b", "main"]]

        with patch("helix.cli.run_checked", runner), patch("helix.cli.print_warning") as warn:
            failures = await run_post_steps(tmp_path, commands)

        assert failures == [failure]
        assert runner.await_count == 3
        assert runner.await_args_list[2].args[0] == ["git", "init", "-b", "main"]
        assert runner.await_args_list[0].kwargs["cwd"] == tmp_path
        warn.assert_called_once()

    def test_init_commands_order(self):
        assert POST_INIT_COMMANDS[0] == ["go", "mod", "download"]
        assert POST_INIT_COMMANDS[-1] == ["git", "init", "-b", "main"]
        assert POST_INIT_COMMANDS[-2] == ["go", "mod", "tidy"]
        assert sum(1 for c in POST_INIT_COMMANDS if c[:2] == ["go", "get"]) == 11
        assert POST_ENTITY_COMMANDS == [["go", "generate", "./ent/..."], ["go", "mod", "tidy"]]


class TestParser:
    def test_init_defaults(self):
        args = build_parser().parse_args(["init", "order"])
        assert args.driver == "ent"
        assert args.output == "."
        assert args.keep_name is False

    def test_invalid_driver(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["init", "order", "--driver", "gorm"])

    def test_no_command_exits(self, cli_env):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1


# ---------------------------------------------------------------------------
# helix init
# ---------------------------------------------------------------------------


class TestInit:
    def test_generates_service(self, cli_env, work_dir: Path):
        main(["init", "order-item", "-o", str(work_dir), "--seed", "1", "--skip-post-steps"])

        root = work_dir / "svc-order-item"
        files = _files(root)
        assert len(files) == 39
        assert "docs/docs.go" in files
        assert "migrations/.keep" in files
        assert "internal/core/entity/order_item.go" in files
        assert (root / "go.mod").read_text().startswith("module github.com/acme/svc-order-item\n")
        assert (root / "docs" / "docs.go").read_text() == "package docs\n"
        assert (root / "migrations" / ".keep").read_bytes() == b""

    def test_seed_is_reproducible(self, cli_env, tmp_path: Path):
        for name in ("a", "b"):
            main(["init", "order", "-o", str(tmp_path / name), "--seed", "42", "--skip-post-steps"])
        env_a = (tmp_path / "a" / "svc-order" / ".env").read_text()
        env_b = (tmp_path / "b" / "svc-order" / ".env").read_text()
        assert env_a == env_b

    def test_runs_post_steps(self, cli_env, work_dir: Path):
        runner = AsyncMock(return_value=None)
        with patch("helix.cli.run_checked", runner):
            main(["init", "order", "-o", str(work_dir)])
        assert runner.await_count == len(POST_INIT_COMMANDS)
        assert runner.await_args_list[0].kwargs["cwd"] == work_dir / "svc-order"

    def test_keep_name(self, cli_env, work_dir: Path):
        main(["init", "billing", "-o", str(work_dir), "--keep-name", "--skip-post-steps"])
        assert (work_dir / "billing" / "internal" / "core" / "entity" / "billing.go").is_file()

    def test_existing_destination_refused(self, cli_env, work_dir: Path):
        existing = work_dir / "svc-order"
        existing.mkdir()
        (existing / "keep.txt").write_text("mine")

        with pytest.raises(SystemExit) as exc_info:
            main(["init", "order", "-o", str(work_dir), "--skip-post-steps"])
        assert exc_info.value.code == 1
        assert _files(existing) == ["keep.txt"]

    def test_reserved_entity_refused(self, cli_env, work_dir: Path):
        with pytest.raises(SystemExit):
            main(["init", "app", "-o", str(work_dir), "--skip-post-steps"])
        assert not (work_dir / "svc-app").exists()

    def test_template_failure_discards_tree(self, cli_env: Path, work_dir: Path):
        broken = cli_env / "templates" / "Makefile"
        broken.parent.mkdir(parents=True)
        broken.write_text("run:\n\t{{ not_a_field }}\n")

        with pytest.raises(SystemExit) as exc_info:
            main(["init", "order", "-o", str(work_dir), "--skip-post-steps"])
        assert exc_info.value.code == 1
        assert not (work_dir / "svc-order").exists()

    def test_docs_stub_failure_discards_tree(self, cli_env, work_dir: Path):
        with patch.object(Path, "write_text", side_effect=PermissionError("denied")):
            with pytest.raises(SystemExit) as exc_info:
                main(["init", "order", "-o", str(work_dir), "--skip-post-steps"])
        assert exc_info.value.code == 1
        assert not (work_dir / "svc-order").exists()

    def test_override_used(self, cli_env: Path, work_dir: Path):
        local = cli_env / "templates" / "Makefile"
        local.parent.mkdir(parents=True)
        local.write_text("# custom {{ project_name }}\n")

        main(["init", "order", "-o", str(work_dir), "--skip-post-steps"])
        assert (work_dir / "svc-order" / "Makefile").read_text() == "# custom svc-order\n"

    def test_dry_run_writes_nothing(self, cli_env, work_dir: Path):
        with patch("helix.cli.print_summary_table") as table:
            main(["init", "order", "-o", str(work_dir), "--dry-run"])
        assert not (work_dir / "svc-order").exists()
        rows = table.call_args.args[0]
        assert len(rows) == 38
        assert rows["templates/app/go.mod.tmpl"] == str(work_dir / "svc-order" / "go.mod")


# ---------------------------------------------------------------------------
# helix new ...
# ---------------------------------------------------------------------------


class TestNewEntity:
    def test_generates_entity_files(self, cli_env, service_root: Path):
        main(["new", "entity", "order-item", "--project-dir", str(service_root), "--skip-post-steps"])

        service = service_root / "internal" / "core" / "service" / "order_item_service.go"
        text = service.read_text()
        assert "github.com/acme/svc-order/internal/core/port" in text
        assert "NewOrderItemService" in text
        assert (service_root / "ent" / "schema" / "order_item.go").is_file()

    def test_unknown_module_fallback(self, cli_env, tmp_path: Path):
        main(["new", "entity", "invoice", "--project-dir", str(tmp_path), "--skip-post-steps"])
        text = (tmp_path / "internal" / "core" / "service" / "invoice_service.go").read_text()
        assert "github.com/acme/unknown/internal/core/port" in text

    def test_pgx_repository(self, cli_env, service_root: Path):
        main(["new", "entity", "invoice", "--driver", "pgx",
              "--project-dir", str(service_root), "--skip-post-steps"])
        repo = service_root / "internal" / "adapter" / "repository" / "invoice_repository.go"
        assert "ent." not in repo.read_text()

    def test_reserved_refused(self, cli_env, service_root: Path):
        with pytest.raises(SystemExit):
            main(["new", "entity", "pkg", "--project-dir", str(service_root), "--skip-post-steps"])
        assert not (service_root / "internal").exists()

    def test_runs_entity_post_steps(self, cli_env, service_root: Path):
        runner = AsyncMock(return_value=None)
        with patch("helix.cli.run_checked", runner):
            main(["new", "entity", "invoice", "--project-dir", str(service_root)])
        assert [c.args[0] for c in runner.await_args_list] == POST_ENTITY_COMMANDS


class TestNewConsumer:
    def test_generates_consumer(self, cli_env, service_root: Path):
        main(["new", "consumer", "user-created", "user.events.created", "--project-dir", str(service_root)])
        target = service_root / "internal" / "adapter" / "worker" / "consumer_user_created.go"
        text = target.read_text()
        assert "UserCreatedConsumer" in text
        assert '"user.events.created"' in text

    def test_refuses_existing_file(self, cli_env, service_root: Path):
        target = service_root / "internal" / "adapter" / "worker" / "consumer_user_created.go"
        target.parent.mkdir(parents=True)
        target.write_text("hand written")

        with pytest.raises(SystemExit) as exc_info:
            main(["new", "consumer", "user-created", "t", "--project-dir", str(service_root)])
        assert exc_info.value.code == 1
        assert target.read_text() == "hand written"


class TestNewCache:
    def test_generates_cache(self, cli_env, service_root: Path):
        main(["new", "cache", "session", "--project-dir", str(service_root)])
        target = service_root / "internal" / "adapter" / "cache" / "session_cache.go"
        assert "Session" in target.read_text()

    def test_refuses_existing_file(self, cli_env, service_root: Path):
        main(["new", "cache", "session", "--project-dir", str(service_root)])
        with pytest.raises(SystemExit):
            main(["new", "cache", "session", "--project-dir", str(service_root)])

    def test_dry_run(self, cli_env, service_root: Path):
        with patch("helix.cli.print_summary_table"):
            main(["new", "cache", "session", "--project-dir", str(service_root), "--dry-run"])
        assert not (service_root / "internal").exists()


# ---------------------------------------------------------------------------
# helix templates
# ---------------------------------------------------------------------------


class TestTemplatesCommand:
    def test_lists_bundled_and_overrides(self, cli_env: Path):
        local = cli_env / "templates" / "entity" / "dto.go.tmpl"
        local.parent.mkdir(parents=True)
        local.write_text("x")

        with patch("helix.cli.print_summary_table") as table:
            main(["templates", "--prefix", "templates/entity"])
        rows = table.call_args.args[0]
        assert rows["templates/entity/dto.go.tmpl"] == str(local)
        assert rows["templates/entity/entity.go.tmpl"] == "bundled"
        assert all(key.startswith("templates/entity/") for key in rows)

    def test_unknown_prefix_warns(self, cli_env):
        warn = MagicMock()
        with patch("helix.cli.print_warning", warn):
            main(["templates", "--prefix", "templates/nothing"])
        warn.assert_called_once()
