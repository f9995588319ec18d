"""MCP tool for extracting class symbols from a single source file."""

import logging
from pathlib import Path
from typing import Optional

from ..indexer.grammars import LanguageRegistry, get_language_registry
from ..indexer.symbol_extractors import ExtractorRegistry

logger = logging.getLogger(__name__)


class SymbolTool:
    """Runs one extractor over one file, as the analysis would."""

    def __init__(self, registry: Optional[LanguageRegistry] = None):
        self.registry = registry or get_language_registry()

    def get_symbols(self, file_path: str, class_name: Optional[str] = None) -> dict:
        """Extract classes, methods, fields and call targets from a Kotlin or Java file.

        Args:
            file_path: Path to the file
            class_name: Only return classes with this simple name

        Returns:
            Dictionary with the extracted classes
        """
        if not Path(file_path).is_file():
            return {"success": False, "error": f"File not found: {file_path}"}

        language = self.registry.detect_language(file_path)
        config = self.registry.get_language_config(language) if language else None
        extractor = ExtractorRegistry.get_extractor(language) if language else None
        if config is None or extractor is None:
            return {"success": False, "error": f"Unsupported file type: {file_path}"}

        try:
            classes = extractor.extract(file_path)
        except Exception as e:
            logger.error(f"Error extracting symbols from {file_path}: {e}")
            return {"success": False, "error": str(e)}

        if class_name:
            classes = [c for c in classes if c.name == class_name]
        logger.info(f"Extracted {len(classes)} classes from {file_path} ({language})")

        return {
            "success": True,
            "file_path": file_path,
            "language": language,
            "extraction": config.extraction,
            "filter": class_name,
            "total_classes": len(classes),
            "total_methods": sum(len(c.methods) for c in classes),
            "classes": [c.to_dict() for c in classes],
        }
