"""Project directory scanning for Kotlin and Java sources."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from gitignore_parser import parse_gitignore

from .grammars import LanguageRegistry, get_language_registry

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES = {"build", "gradle", "node_modules", "__pycache__"}


@dataclass
class ProjectIndex:
    """Source files found in a project, absolute and sorted."""

    kotlin_files: List[str] = field(default_factory=list)
    java_files: List[str] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.kotlin_files) + len(self.java_files)

    @property
    def all_files(self) -> List[str]:
        return sorted(self.kotlin_files + self.java_files)


class ProjectIndexer:
    """Walks a project tree and sorts source files by language."""

    def __init__(
        self,
        exclude_patterns: Optional[List[str]] = None,
        follow_gitignore: bool = True,
        registry: Optional[LanguageRegistry] = None,
    ):
        """Initialize project indexer.

        Args:
            exclude_patterns: Glob patterns to skip (e.g. "*Test.kt", "generated/*")
            follow_gitignore: Whether to respect the project's .gitignore
            registry: Language registry (defaults to the global one)
        """
        self.exclude_patterns = [p for p in (exclude_patterns or []) if p]
        self.follow_gitignore = follow_gitignore
        self.registry = registry or get_language_registry()

    def index_project(self, project_path: str) -> ProjectIndex:
        """Index a project directory.

        Args:
            project_path: Root of the project

        Returns:
            ProjectIndex, empty when the path is missing or not a directory
        """
        root = Path(project_path).resolve()
        if not root.is_dir():
            logger.warning(f"Project path is not a directory: {project_path}")
            return ProjectIndex()

        gitignore_matcher = None
        if self.follow_gitignore:
            gitignore_path = root / ".gitignore"
            if gitignore_path.exists():
                try:
                    gitignore_matcher = parse_gitignore(gitignore_path)
                    logger.info(f"Loaded .gitignore from {gitignore_path}")
                except Exception as e:
                    logger.warning(f"Error parsing .gitignore: {e}")

        index = ProjectIndex()
        for file_path in root.rglob("*"):
            relative_parts = file_path.relative_to(root).parts

            # Hidden entries and build output at any depth
            if any(part.startswith(".") or part in DEFAULT_EXCLUDES for part in relative_parts):
                continue

            if not file_path.is_file():
                continue

            language = self.registry.detect_language(str(file_path))
            if language is None:
                continue

            if gitignore_matcher and gitignore_matcher(str(file_path)):
                continue

            if any(file_path.match(pattern) for pattern in self.exclude_patterns):
                continue

            if language == "kotlin":
                index.kotlin_files.append(str(file_path))
            elif language == "java":
                index.java_files.append(str(file_path))

        index.kotlin_files.sort()
        index.java_files.sort()
        logger.info(
            f"Indexed {project_path}: {len(index.kotlin_files)} Kotlin, "
            f"{len(index.java_files)} Java files"
        )
        return index
