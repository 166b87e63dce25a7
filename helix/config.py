"""Helix scaffolder configuration.

Centralised, typed configuration for the generator.  All settings use
Pydantic v2 models so they are validated at construction time and can be
built from environment variables without boiler-plate.

The template override directory is resolved exactly once, here, and then
passed explicitly into every template source.  Nothing else in the package
looks at the user's home directory.
"""

from __future__ import annotations

import os
import random
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MODULE_PREFIX = "github.com/godamri"


def default_override_dir() -> Path:
    """``~/.helix/templates``, the user-local template override root."""
    return Path.home() / ".helix" / "templates"


class PortConfig(BaseModel):
    """Ports baked into a generated service.

    Freshly scaffolded services get random ports so several of them can run
    side by side on one machine without clashing.
    """

    model_config = ConfigDict(frozen=True)

    app: int = Field(default=30080, ge=1024, le=65535)
    grpc: int = Field(default=30090, ge=1024, le=65535)
    db: int = Field(default=40432, ge=1024, le=65535)
    db_dev: int = Field(default=50432, ge=1024, le=65535)

    # Inclusive (low, high) bounds used by allocate().
    RANGES: ClassVar[dict[str, tuple[int, int]]] = {
        "app": (30000, 39999),
        "grpc": (30000, 39999),
        "db": (40000, 49999),
        "db_dev": (50000, 59999),
    }

    @classmethod
    def allocate(cls, rng: random.Random | None = None) -> "PortConfig":
        """Pick a random port for every service from its range."""
        rng = rng or random.Random()
        return cls(**{name: rng.randint(low, high) for name, (low, high) in cls.RANGES.items()})

    def as_dict(self) -> dict[str, int]:
        """Return a plain ``{service: port}`` mapping."""
        return {
            "app": self.app,
            "grpc": self.grpc,
            "db": self.db,
            "db_dev": self.db_dev,
        }


class HelixConfig(BaseModel):
    """Global scaffolder configuration.

    Created once per CLI invocation (usually via :meth:`from_env`) and then
    passed to whatever needs it.
    """

    override_dir: Path = Field(default_factory=default_override_dir)
    module_prefix: str = Field(default=DEFAULT_MODULE_PREFIX, min_length=1)
    max_workers: int = Field(
        default=8, ge=1, description="Maximum template files written concurrently"
    )
    verbose: bool = Field(default=False)

    def module_name(self, project_name: str) -> str:
        """Go module path for a new project, e.g. ``github.com/godamri/svc-order``."""
        return f"{self.module_prefix.rstrip('/')}/{project_name}"

    @property
    def unknown_module_name(self) -> str:
        """Fallback module path when a project has no readable ``go.mod``."""
        return self.module_name("unknown")

    @classmethod
    def from_env(cls) -> "HelixConfig":
        """Build a ``HelixConfig`` from environment variables.

        Recognised variables (all optional):
            HELIX_TEMPLATES_DIR, HELIX_MODULE_PREFIX, HELIX_MAX_WORKERS,
            HELIX_VERBOSE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("HELIX_TEMPLATES_DIR"):
            kwargs["override_dir"] = Path(os.environ["HELIX_TEMPLATES_DIR"]).expanduser()
        if os.environ.get("HELIX_MODULE_PREFIX"):
            kwargs["module_prefix"] = os.environ["HELIX_MODULE_PREFIX"]
        if os.environ.get("HELIX_MAX_WORKERS"):
            kwargs["max_workers"] = int(os.environ["HELIX_MAX_WORKERS"])
        if os.environ.get("HELIX_VERBOSE"):
            kwargs["verbose"] = os.environ["HELIX_VERBOSE"].lower() in ("1", "true", "yes")
        return cls(**kwargs)
