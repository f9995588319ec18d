"""On-disk persistence of analysis results."""

import json
import logging
import time
from pathlib import Path
from typing import Iterable, Optional

import blake3

from ..results import AnalysisResult

logger = logging.getLogger(__name__)

CACHE_DIR = Path(".sensedev") / "cache"
CACHE_FILE = "analysis.json"
FORMAT_VERSION = 1


def compute_fingerprint(files: Iterable[str]) -> str:
    """Blake3 hash over the sorted paths and contents of the analysed files.

    Unreadable files contribute their path only, so a file that disappears
    still changes the fingerprint.
    """
    hasher = blake3.blake3()
    for file_path in sorted(files):
        hasher.update(file_path.encode("utf-8"))
        hasher.update(b"\0")
        try:
            with open(file_path, "rb") as f:
                hasher.update(f.read())
        except OSError as e:
            logger.debug(f"Fingerprint skipping unreadable {file_path}: {e}")
        hasher.update(b"\0")
    return hasher.hexdigest()


class AnalysisCache:
    """Saves and loads results at ``<project>/.sensedev/cache/analysis.json``."""

    def cache_file(self, project_path: str) -> Path:
        return Path(project_path) / CACHE_DIR / CACHE_FILE

    def save_analysis(
        self,
        result: AnalysisResult,
        project_path: str,
        files: Optional[Iterable[str]] = None,
    ) -> bool:
        """Save an analysis result.

        Args:
            result: Result to persist
            project_path: Project root the cache belongs to
            files: Analysed files, used for the staleness fingerprint

        Returns:
            True if the document was written
        """
        cache_file = self.cache_file(project_path)
        document = result.to_dict()
        document["format_version"] = FORMAT_VERSION
        document["saved_at"] = time.time()
        document["fingerprint"] = compute_fingerprint(files) if files is not None else None

        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = cache_file.with_suffix(".json.tmp")
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            tmp_file.replace(cache_file)
            logger.info(f"Analysis saved to {cache_file}")
            return True
        except Exception as e:
            logger.error(f"Failed to save analysis to {cache_file}: {e}")
            return False

    def _load_document(self, project_path: str) -> Optional[dict]:
        cache_file = self.cache_file(project_path)
        if not cache_file.exists():
            logger.info(f"No cached analysis found at {cache_file}")
            return None
        try:
            with open(cache_file, "r", encoding="utf-8") as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Failed to read cached analysis {cache_file}: {e}")
            return None

    def load_analysis(self, project_path: str) -> Optional[AnalysisResult]:
        """Load the cached result for a project.

        Args:
            project_path: Project root

        Returns:
            The result, or None when there is no readable cache
        """
        document = self._load_document(project_path)
        if document is None:
            return None
        try:
            result = AnalysisResult.from_dict(document)
        except Exception as e:
            logger.error(f"Failed to load cached analysis for {project_path}: {e}")
            return None
        logger.info(f"Analysis loaded from {self.cache_file(project_path)}")
        return result

    def has_cached_analysis(self, project_path: str) -> bool:
        return self.cache_file(project_path).exists()

    def is_stale(self, project_path: str, files: Iterable[str]) -> bool:
        """Whether the cache is missing or was saved for different file contents."""
        document = self._load_document(project_path)
        if document is None:
            return True
        saved = document.get("fingerprint")
        if not saved:
            return True
        return saved != compute_fingerprint(files)

    def clear_cache(self, project_path: str) -> bool:
        cache_file = self.cache_file(project_path)
        try:
            if cache_file.exists():
                cache_file.unlink()
                logger.info(f"Cleared cached analysis {cache_file}")
            return True
        except OSError as e:
            logger.error(f"Failed to clear cache {cache_file}: {e}")
            return False
