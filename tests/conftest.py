"""Shared pytest fixtures for the Helix scaffolder test suite.

Provides reusable fixtures for:
- Temporary bundled-template and override directories
- Layered template sources over those directories
- Frozen parameter records
- Mock subprocess helpers
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from helix.config import HelixConfig, PortConfig
from helix.scaffolder import (
    BundledTemplateSource,
    Driver,
    LayeredTemplateSource,
    TemplateData,
)


# ---------------------------------------------------------------------------
# Template roots
# ---------------------------------------------------------------------------

BUNDLED_FILES: dict[str, str] = {
    "templates/x.tmpl": "bundled x for {{ entity_name }}\n",
    "templates/y.tmpl": "bundled y {{ entity_plural_lower }}\n",
    "templates/app/go.mod.tmpl": "module {{ module_name }}\n\ngo 1.22\n",
    "templates/app/cmd/server/main.go.tmpl": (
        "package main\n\n// {{ project_name }} on :{{ app_port }}\n"
        "{% if driver == 'ent' %}\n// ent client\n{% else %}\n// pgx pool\n{% endif %}\n"
    ),
    "templates/broken/unknown_field.tmpl": "hello {{ no_such_field }}\n",
    "templates/broken/bad_syntax.tmpl": "hello {% if entity_name %}\n",
}


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write ``{logical_path: content}`` under *root* and return *root*."""
    for logical_path, content in files.items():
        target = root / logical_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def bundled_root(tmp_path: Path) -> Path:
    """A small bundled template set on disk."""
    return write_tree(tmp_path / "bundled", BUNDLED_FILES)


@pytest.fixture
def override_dir(tmp_path: Path) -> Path:
    """An empty user-local override directory."""
    path = tmp_path / "home" / ".helix" / "templates"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def bundled_source(bundled_root: Path) -> BundledTemplateSource:
    return BundledTemplateSource(bundled_root)


@pytest.fixture
def layered_source(bundled_source: BundledTemplateSource, override_dir: Path) -> LayeredTemplateSource:
    return LayeredTemplateSource(bundled_source, override_dir)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Temporary destination root for generated files (auto-cleanup)."""
    path = tmp_path / "out"
    path.mkdir()
    yield path


# ---------------------------------------------------------------------------
# Parameter records & config
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_ports() -> PortConfig:
    return PortConfig(app=31000, grpc=31001, db=41000, db_dev=51000)


@pytest.fixture
def sample_params(sample_ports: PortConfig) -> TemplateData:
    """Parameter record for ``svc-order-item`` using the ent driver."""
    return TemplateData.for_entity(
        "order-item",
        project_name="svc-order-item",
        module_name="github.com/acme/svc-order-item",
        ports=sample_ports,
        driver=Driver.ENT,
    )


@pytest.fixture
def helix_config(tmp_path: Path) -> HelixConfig:
    """Config pointing the override root at a temp dir that does not exist."""
    return HelixConfig(
        override_dir=tmp_path / "no-overrides",
        module_prefix="github.com/acme",
        max_workers=4,
    )


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
