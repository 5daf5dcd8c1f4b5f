"""
DocInsight - Resource Cache
Owns the locally materialized blobs (fetched PDFs, podcast audio) that the
viewer and audio player read through local:// URLs. Each key holds at most one
blob; replacing or releasing a key deletes the backing file.
"""

import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from core.models import BlobResource

logger = logging.getLogger(__name__)


class ResourceCache:
    """Keyed store of blob files with explicit release."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._resources: Dict[str, BlobResource] = {}
        # Conservation counters: every created blob is released exactly once
        self.created = 0
        self.released = 0

    def __contains__(self, key: str) -> bool:
        return key in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def get(self, key: str) -> Optional[BlobResource]:
        return self._resources.get(key)

    def keys(self) -> List[str]:
        return list(self._resources)

    def materialize(self, key: str, data: bytes, suffix: str = "") -> BlobResource:
        """Write `data` to a fresh file for `key`, releasing the previous blob first."""
        self.release(key)

        path = self.directory / f"{key}-{uuid.uuid4().hex}{suffix}"
        path.write_bytes(data)
        resource = BlobResource(key=key, path=path, size=len(data))
        self._resources[key] = resource
        self.created += 1
        logger.debug(f"Materialized {key}: {len(data)} bytes -> {path.name}")
        return resource

    def release(self, key: str) -> bool:
        """Delete the blob held for `key`. Unknown keys are a no-op."""
        resource = self._resources.pop(key, None)
        if resource is None:
            return False

        try:
            resource.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete blob file {resource.path}: {e}")
        self.released += 1
        logger.debug(f"Released {key} ({resource.path.name})")
        return True

    def release_all(self) -> None:
        for key in list(self._resources):
            self.release(key)
