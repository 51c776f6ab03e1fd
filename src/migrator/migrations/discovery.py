"""Migration discovery.

Turns the files in a migrations directory into ordered
``MigrationDefinition`` objects. File names follow
``<version>_<name>.<ext>``, e.g. ``1_init.sql`` or ``0042_add_email.sql``;
the version need not be zero-padded and ordering is always numeric.

Only files ending in ``.<ext>`` are considered. Among those, any name
that does not parse, a version of ``0``, or two files sharing a version
is a :class:`~migrator.core.errors.DiscoveryError`.
"""

from __future__ import annotations

import re
from pathlib import Path

from migrator.core.errors import DiscoveryError
from migrator.core.logging import get_logger
from migrator.core.protocols import ArtifactSource
from migrator.migrations.models import MigrationDefinition

logger = get_logger(__name__)


class DirectorySource:
    """Filesystem ``ArtifactSource`` rooted at one directory."""

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def ensure_exists(self) -> bool:
        if self._directory.is_dir():
            return False
        self._directory.mkdir(parents=True, exist_ok=True)
        return True

    def list_names(self) -> list[str]:
        return sorted(p.name for p in self._directory.iterdir() if p.is_file())

    def read_text(self, name: str) -> str:
        return (self._directory / name).read_text(encoding="utf-8")

    def __repr__(self) -> str:
        return f"DirectorySource({str(self._directory)!r})"


def filename_pattern(extension: str = "sql") -> re.Pattern[str]:
    """Compiled ``^(\\d+)_(.+)\\.<ext>$`` for the given extension."""
    return re.compile(rf"^(\d+)_(.+)\.{re.escape(extension)}$")


def parse_filename(filename: str, extension: str = "sql") -> tuple[int, str]:
    """Split ``<version>_<name>.<ext>`` into ``(version, name)``.

    Raises:
        DiscoveryError: if the name does not match or the version is 0.
    """
    match = filename_pattern(extension).match(filename)
    if not match:
        raise DiscoveryError(
            f"Invalid migration filename: {filename} "
            f"(expected <version>_<name>.{extension})",
            filename=filename,
        )
    version = int(match.group(1))
    if version < 1:
        raise DiscoveryError(
            f"Invalid migration version in {filename}: versions start at 1",
            filename=filename,
        )
    return version, match.group(2)


def discover_definitions(
    source: ArtifactSource,
    extension: str = "sql",
) -> list[MigrationDefinition]:
    """Read every migration from ``source``, sorted by numeric version.

    A missing location is created empty and yields ``[]``.
    """
    if source.ensure_exists():
        logger.info("migrations.directory_created", source=repr(source))
        return []

    suffix = f".{extension}"
    by_version: dict[int, MigrationDefinition] = {}

    for filename in source.list_names():
        if not filename.endswith(suffix):
            continue
        version, name = parse_filename(filename, extension)
        if version in by_version:
            raise DiscoveryError(
                f"Duplicate migration version {version}: "
                f"{by_version[version].filename} and {filename}",
                filename=filename,
            ).with_context(version=version)
        by_version[version] = MigrationDefinition(
            version=version,
            name=name,
            body=source.read_text(filename),
            filename=filename,
        )

    definitions = [by_version[v] for v in sorted(by_version)]
    logger.debug("migrations.discovered", count=len(definitions))
    return definitions


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")
    if not slug:
        raise DiscoveryError(f"Cannot build a migration name from {name!r}")
    return slug


def scaffold_migration(
    directory: Path | str,
    name: str,
    extension: str = "sql",
) -> Path:
    """Create an empty migration file numbered after the current highest version.

    Existing files are validated first, so a directory with a malformed
    name refuses to grow.
    """
    source = DirectorySource(directory)
    existing = discover_definitions(source, extension)
    version = existing[-1].version + 1 if existing else 1

    path = source.directory / f"{version}_{slugify(name)}.{extension}"
    path.write_text(f"-- {version}: {name}\n", encoding="utf-8")
    logger.info("migration.created", version=version, path=str(path))
    return path


__all__ = [
    "DirectorySource",
    "discover_definitions",
    "filename_pattern",
    "parse_filename",
    "scaffold_migration",
    "slugify",
]
