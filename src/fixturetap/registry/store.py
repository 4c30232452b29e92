"""
FixtureTap Artifact Store

Read-only access to response artifacts stored under a directory.
"""

import logging
import threading
from pathlib import Path
from typing import Union

logger = logging.getLogger("fixturetap.registry")


class ArtifactStore:
    """
    Reads artifact bytes by name, relative to a response directory.

    Names may contain sub-directories but must stay inside the response
    directory. The number of reads is tracked in ``read_count``.

    Example:
        store = ArtifactStore('fixtures/responses')
        data = store.read('GetUser.json')
    """

    def __init__(self, response_dir: Union[str, Path]):
        self.response_dir = Path(response_dir)
        self.read_count = 0
        self._lock = threading.Lock()

    def path_for(self, artifact: str) -> Path:
        """
        Resolve an artifact name to its file path.

        Raises:
            PermissionError: If the name escapes the response directory
        """
        root = self.response_dir.resolve()
        path = (root / artifact).resolve()
        if path != root and root not in path.parents:
            raise PermissionError(f"Artifact path escapes response directory: {artifact}")
        return path

    def read(self, artifact: str) -> bytes:
        """
        Read an artifact's raw bytes.

        Raises:
            OSError: If the file cannot be read
        """
        path = self.path_for(artifact)
        with self._lock:
            self.read_count += 1
        logger.debug(f"Reading artifact {path}")
        return path.read_bytes()

    def exists(self, artifact: str) -> bool:
        try:
            return self.path_for(artifact).is_file()
        except PermissionError:
            return False
