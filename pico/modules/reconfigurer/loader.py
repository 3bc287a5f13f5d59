"""
Manifest loading for the reconfigurer.

The repository root holds a ``pico.yaml`` manifest with a ``targets`` list.
Each item is validated on its own: a malformed item is skipped, while a
manifest that cannot be found, read or parsed fails the whole load.

Every loaded entry carries a content hash covering its definition and,
for entries that live in a subdirectory, the files in that directory.
"""

import hashlib
import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Set

import yaml
from pydantic import ValidationError

from ...errors import ConfigurationError, EntryError
from ..task.models import TargetEntry

logger = logging.getLogger(__name__)

MANIFEST_NAMES = ("pico.yaml", "pico.yml")

_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class LoadedEntry:
    """A validated target entry in scope for this host."""
    entry: TargetEntry
    content_hash: str

    @property
    def name(self) -> str:
        return self.entry.name


@dataclass
class LoadResult:
    """Entries in manifest order plus the names of entries that failed validation."""
    entries: List[LoadedEntry] = field(default_factory=list)
    invalid: Set[str] = field(default_factory=set)


def find_manifest(root: str) -> str:
    """
    Locate the manifest in the repository root.

    Raises:
        ConfigurationError: If the root is unreadable or has no manifest
    """
    if not os.path.isdir(root):
        raise ConfigurationError(f"working directory {root} does not exist")
    for name in MANIFEST_NAMES:
        path = os.path.join(root, name)
        if os.path.isfile(path):
            return path
    raise ConfigurationError(f"no {' or '.join(MANIFEST_NAMES)} found in {root}")


def read_manifest(root: str) -> List[Any]:
    """
    Read the raw ``targets`` list.

    Raises:
        ConfigurationError: If the manifest cannot be read or has no targets list
    """
    path = find_manifest(root)
    try:
        with open(path, encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"cannot parse {path}: {e}") from e

    if not isinstance(document, dict) or "targets" not in document:
        raise ConfigurationError(f"{path} must be a mapping with a 'targets' list")

    targets = document["targets"]
    if targets is None:
        return []
    if not isinstance(targets, list):
        raise ConfigurationError(f"'targets' in {path} must be a list")
    return targets


def parse_entry(raw: Any, index: int) -> TargetEntry:
    """
    Validate one raw manifest item.

    Raises:
        EntryError: If the item is not a valid target
    """
    if not isinstance(raw, dict):
        raise EntryError(f"targets[{index}] must be a mapping, got {type(raw).__name__}")

    name = raw.get("name") if isinstance(raw.get("name"), str) else None
    try:
        return TargetEntry.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'entry'}: {error['msg']}"
            for error in e.errors()
        )
        raise EntryError(f"targets[{index}] ({name or 'unnamed'}) is invalid: {problems}", name=name) from e


def hash_directory(digest, directory: str) -> None:
    """Feed every file below a directory into a digest, in a stable order."""
    for current, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if d != ".git")
        for filename in sorted(files):
            path = os.path.join(current, filename)
            relative = os.path.relpath(path, directory)
            digest.update(relative.encode("utf-8", errors="surrogateescape"))
            digest.update(b"\0")
            if os.path.islink(path):
                digest.update(b"link:" + os.readlink(path).encode("utf-8", errors="surrogateescape"))
            else:
                with open(path, "rb") as f:
                    for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                        digest.update(chunk)
            digest.update(b"\0")


def content_hash(entry: TargetEntry, root: str) -> str:
    """
    Hash an entry's definition and the contents of its directory.

    Entries at the repository root are hashed by definition only, so that
    edits elsewhere in the repository do not re-run them.

    Raises:
        EntryError: If the entry's directory is missing or unreadable
    """
    digest = hashlib.sha256(entry.definition_hash().encode())
    if entry.directory == ".":
        return digest.hexdigest()

    directory = os.path.join(root, entry.directory)
    if not os.path.isdir(directory):
        raise EntryError(f"target {entry.name}: directory {entry.directory} does not exist", name=entry.name)
    try:
        hash_directory(digest, directory)
    except OSError as e:
        raise EntryError(f"target {entry.name}: cannot read {entry.directory}: {e}", name=entry.name) from e
    return digest.hexdigest()


def load_targets(root: str, hostname: str) -> LoadResult:
    """
    Load the targets that apply to a host.

    Args:
        root: Repository working directory
        hostname: This agent's hostname

    Returns:
        LoadResult with valid in-scope entries in manifest order

    Raises:
        ConfigurationError: On structural failures only
    """
    result = LoadResult()
    seen: Set[str] = set()

    for index, raw in enumerate(read_manifest(root)):
        try:
            entry = parse_entry(raw, index)
            if entry.name in seen:
                logger.error(f"targets[{index}]: duplicate target name {entry.name}, skipping")
                continue
            seen.add(entry.name)

            if not entry.applies_to(hostname):
                logger.debug(f"Target {entry.name} is scoped to {entry.hosts}, not {hostname}")
                continue

            result.entries.append(LoadedEntry(entry=entry, content_hash=content_hash(entry, root)))
        except EntryError as e:
            logger.error(f"Skipping target: {e}")
            if e.name:
                seen.add(e.name)
                result.invalid.add(e.name)

    logger.debug(
        f"Loaded {len(result.entries)} target(s) for {hostname}"
        + (f", {len(result.invalid)} invalid" if result.invalid else "")
    )
    return result
