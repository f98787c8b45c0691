"""Script GUID registry built from Unity .meta sidecars.

Maps the opaque identifier Unity assigns to every asset onto the script file
that owns it. Populated concurrently once per run, read-only afterwards.
"""
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

from ..utils.logger import get_logger

logger = get_logger("analyzer.registry")

GUID_PATTERN = re.compile(r'guid:\s*(\w+)')


@dataclass(frozen=True)
class ArtifactRecord:
    """One registered script."""
    identifier: str
    location: Path


def read_sidecar_guid(sidecar_path: str | Path) -> Optional[str]:
    """Scan a sidecar for its `guid: <token>` line.

    Returns:
        The identifier, or None if the sidecar is missing, unreadable or has no guid line
    """
    sidecar_path = Path(sidecar_path)
    if not sidecar_path.exists():
        return None

    try:
        content = sidecar_path.read_text(encoding='utf-8', errors='ignore')
    except OSError:
        return None

    match = GUID_PATTERN.search(content)
    return match.group(1) if match else None


class ScriptRegistry:
    """Thread-safe identifier -> script location map.

    A later registration of an identifier already present replaces the
    earlier location.
    """

    def __init__(self, sidecar_suffix: str = ".meta"):
        """
        Args:
            sidecar_suffix: Appended to a script path to locate its sidecar
        """
        self.sidecar_suffix = sidecar_suffix
        self._records: Dict[str, ArtifactRecord] = {}
        self._lock = threading.Lock()

    def register(self, artifact_path: str | Path, sidecar_path: str | Path | None = None) -> Optional[ArtifactRecord]:
        """Register a script if its sidecar carries an identifier.

        Args:
            artifact_path: Path to the script
            sidecar_path: Path to its metadata sidecar (defaults to the script path plus sidecar_suffix)

        Returns:
            The stored record, or None if the script was not registered
        """
        artifact_path = Path(artifact_path)
        if sidecar_path is None:
            sidecar_path = artifact_path.with_name(artifact_path.name + self.sidecar_suffix)

        identifier = read_sidecar_guid(sidecar_path)
        if identifier is None:
            logger.debug("No identifier for %s", artifact_path)
            return None

        record = ArtifactRecord(identifier=identifier, location=artifact_path)
        with self._lock:
            self._records[identifier] = record
        logger.debug("Registered %s as %s", artifact_path, identifier)
        return record

    def lookup(self, identifier: str) -> Optional[ArtifactRecord]:
        if not identifier:
            return None
        with self._lock:
            return self._records.get(identifier)

    def identifiers(self) -> list[str]:
        """Registered identifiers in insertion order."""
        with self._lock:
            return list(self._records)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[ArtifactRecord]:
        with self._lock:
            return iter(list(self._records.values()))


class UsedScripts:
    """Thread-safe set of identifiers confirmed used by at least one scene."""

    def __init__(self):
        self._used: Dict[str, bool] = {}
        self._lock = threading.Lock()

    def mark(self, identifier: str) -> bool:
        """Record an identifier as used.

        Returns:
            True if this call was the first to mark it
        """
        with self._lock:
            if identifier in self._used:
                return False
            self._used[identifier] = True
            return True

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._used

    def __len__(self) -> int:
        with self._lock:
            return len(self._used)

    def snapshot(self) -> set[str]:
        with self._lock:
            return set(self._used)
