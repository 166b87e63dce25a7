"""Template sources: where template bodies come from.

Two implementations of the :class:`TemplateSource` protocol:

* :class:`BundledTemplateSource` reads the default templates shipped inside
  the package.
* :class:`LayeredTemplateSource` checks a user-local override directory for
  each individual file first and falls back to the bundled set.

Logical paths are slash-separated and relative, e.g.
``templates/app/cmd/server/main.go.tmpl``.  The same logical path is used
against both roots, so ``templates/Makefile`` is overridden by
``<override_dir>/templates/Makefile``.

Only single-file overrides are supported.  :meth:`LayeredTemplateSource.walk`
enumerates the bundled set alone; override directories are never merged into
enumeration.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from helix.utils import print_debug

from .errors import TemplateNotFoundError, TemplateReadError

_DEFAULT_BUNDLED_ROOT = Path(__file__).parent / "bundled"


@runtime_checkable
class TemplateSource(Protocol):
    """Capability to resolve template content by logical path."""

    def read(self, logical_path: str) -> bytes:
        """Return the raw template body.

        Raises:
            TemplateNotFoundError: No template at *logical_path*.
            TemplateReadError: The template exists but could not be read.
        """
        ...

    def walk(self, root_prefix: str) -> Iterator[str]:
        """Yield every logical file path under *root_prefix*."""
        ...


def _resolve_under(root: Path, logical_path: str) -> Path | None:
    """Map *logical_path* onto *root*; ``None`` if it would escape the root."""
    pure = PurePosixPath(logical_path)
    if pure.is_absolute() or ".." in pure.parts or not pure.parts:
        return None
    return root.joinpath(*pure.parts)


def _read(path: Path, logical_path: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise TemplateReadError(logical_path, cause=exc) from exc


class BundledTemplateSource:
    """Read-only access to the templates bundled with the package."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root is not None else _DEFAULT_BUNDLED_ROOT

    def read(self, logical_path: str) -> bytes:
        path = _resolve_under(self.root, logical_path)
        if path is None or not path.is_file():
            raise TemplateNotFoundError(logical_path)
        return _read(path, logical_path)

    def walk(self, root_prefix: str) -> Iterator[str]:
        """Yield logical paths of all files under *root_prefix*, sorted.

        A prefix that does not exist yields nothing.
        """
        base = _resolve_under(self.root, root_prefix.rstrip("/"))
        if base is None or not base.is_dir():
            return
        for path in sorted(p for p in base.rglob("*") if p.is_file()):
            yield path.relative_to(self.root).as_posix()

    def __repr__(self) -> str:
        return f"BundledTemplateSource(root={str(self.root)!r})"


class LayeredTemplateSource:
    """Local-override first, bundled default second.

    Args:
        bundled: The fallback source.
        override_dir: User-local directory mirroring the logical path
            structure.  It need not exist.
        verbose: Print a debug line whenever an override is used.
    """

    def __init__(
        self,
        bundled: TemplateSource,
        override_dir: str | Path,
        *,
        verbose: bool = False,
    ) -> None:
        self.bundled = bundled
        self.override_dir = Path(override_dir)
        self.verbose = verbose

    def override_path(self, logical_path: str) -> Path | None:
        """Filesystem path an override for *logical_path* would live at."""
        return _resolve_under(self.override_dir, logical_path)

    def read(self, logical_path: str) -> bytes:
        # Existence check only, the override root is never fetched or synced.
        local = self.override_path(logical_path)
        if local is not None and local.is_file():
            if self.verbose:
                print_debug(f"Using local template override: {local}")
            return _read(local, logical_path)
        return self.bundled.read(logical_path)

    def walk(self, root_prefix: str) -> Iterator[str]:
        return self.bundled.walk(root_prefix)

    def __repr__(self) -> str:
        return (
            f"LayeredTemplateSource(override_dir={str(self.override_dir)!r}, "
            f"bundled={self.bundled!r})"
        )


def default_source(override_dir: str | Path, *, verbose: bool = False) -> LayeredTemplateSource:
    """The source every CLI command uses: override dir over the bundled set."""
    return LayeredTemplateSource(
        BundledTemplateSource(), override_dir, verbose=verbose
    )
