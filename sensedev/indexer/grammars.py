"""Source language configuration: extensions, extraction mode and AST node roles."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).parent.parent / "config" / "languages.json"


@dataclass
class LanguageConfig:
    """How one source language is recognised and extracted.

    ``node_types`` maps a role ("class", "method", "call", ...) to the
    tree-sitter node types that play it. Pattern-extracted languages leave
    it empty.
    """

    name: str
    extensions: List[str]
    extraction: str = "pattern"  # "tree_sitter" or "pattern"
    node_types: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "LanguageConfig":
        return cls(
            name=name,
            extensions=[ext.lower() for ext in data["extensions"]],
            extraction=data.get("extraction", "pattern"),
            node_types=data.get("node_types", {}),
        )

    @property
    def uses_tree_sitter(self) -> bool:
        return self.extraction == "tree_sitter"

    def get_node_types(self, role: str) -> List[str]:
        """Node types configured for a role; empty when the role is not configured."""
        return list(self.node_types.get(role, []))


class LanguageRegistry:
    """Maps file extensions to language configurations loaded from JSON."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize language registry.

        Args:
            config_path: Path to a languages.json file (defaults to the packaged one)

        Raises:
            OSError, ValueError: If the configuration cannot be read or parsed
        """
        self.config_path = config_path or DEFAULT_CONFIG
        self.languages: Dict[str, LanguageConfig] = {}
        self.extension_map: Dict[str, str] = {}

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)
        except Exception as e:
            logger.error(f"Error loading language config from {self.config_path}: {e}")
            raise

        for name, data in config_data.items():
            language = LanguageConfig.from_dict(name, data)
            self.languages[name] = language
            self.extension_map.update({ext: name for ext in language.extensions})

        logger.info(f"Loaded {len(self.languages)} language configurations")

    def detect_language(self, file_path: str) -> Optional[str]:
        """Language name for a file, by extension; None when unrecognised."""
        extension = Path(file_path).suffix.lower()
        language = self.extension_map.get(extension)
        if language is None:
            logger.debug(f"Unknown file extension: {extension}")
        return language

    def get_language_config(self, language: str) -> Optional[LanguageConfig]:
        return self.languages.get(language)

    def get_supported_languages(self) -> List[str]:
        return list(self.languages)


_registry: Optional[LanguageRegistry] = None


def get_language_registry(config_path: Optional[Path] = None) -> LanguageRegistry:
    """Get the shared language registry, creating it on first call.

    Args:
        config_path: Path to config file (only used on first call)

    Returns:
        Language registry instance
    """
    global _registry
    if _registry is None:
        _registry = LanguageRegistry(config_path)
    return _registry
