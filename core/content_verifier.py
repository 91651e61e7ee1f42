# core/content_verifier.py

import hashlib
import logging
import os
from typing import Dict, Optional

from core.errors import ConfigError

logger = logging.getLogger(__name__)


class ContentVerifier:
    """
    Byte-identity check for two files: equal size and equal strong digest

    Digests are memoised per path for the lifetime of the verifier, which
    is one scan.
    """

    def __init__(self, algorithm: str = "sha1", chunk_size: int = 1024 * 1024):
        if algorithm not in hashlib.algorithms_available:
            raise ConfigError(f"Unknown digest algorithm: {algorithm}")
        self.algorithm = algorithm
        self.chunk_size = chunk_size
        self._digests: Dict[str, str] = {}

    def file_size(self, path: str) -> int:
        """Size in bytes, or -1 if the file cannot be stat'ed"""
        try:
            return os.path.getsize(path)
        except OSError as e:
            logger.warning("Cannot stat %s: %s", path, e)
            return -1

    def content_digest(self, path: str) -> Optional[str]:
        """Hex digest of the whole file, None if it cannot be read"""
        if path in self._digests:
            return self._digests[path]

        digest = hashlib.new(self.algorithm)
        try:
            with open(path, 'rb') as f:
                for chunk in iter(lambda: f.read(self.chunk_size), b''):
                    digest.update(chunk)
        except OSError as e:
            logger.warning("Cannot read %s for %s: %s", path, self.algorithm, e)
            return None

        self._digests[path] = digest.hexdigest()
        return self._digests[path]

    def identical(self, path_a: str, path_b: str) -> Optional[str]:
        """
        Return the shared digest if both files hold the same bytes, else None
        """
        size_a = self.file_size(path_a)
        if size_a < 0 or size_a != self.file_size(path_b):
            return None

        digest_a = self.content_digest(path_a)
        if digest_a is None or digest_a != self.content_digest(path_b):
            return None

        return digest_a
