"""Language-specific symbol extractors using strategy pattern.

Each source syntax has its own extractor that turns one file into
``ClassDescriptor`` objects. All extractors share the same output shape and
the same call-target normalization, so the graph stage never needs to know
which syntax a class came from.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .models import ClassDescriptor

logger = logging.getLogger(__name__)

SENSOR_MANAGER = "android.hardware.SensorManager"
LOCATION_MANAGER = "android.location.LocationManager"


def qualify_call(receiver: str, method: str) -> str:
    """Turn a receiver-qualified call into its call-target string.

    Calls on sensor/location managers, and any ``registerListener``-style
    call, are rewritten to a fully-qualified framework hint so the sensor
    detector can recognise them whatever the variable is called.
    """
    lowered = receiver.lower()
    if receiver == "SensorManager" or "sensormanager" in lowered:
        return f"{SENSOR_MANAGER}.{method}"
    if receiver == "LocationManager" or "locationmanager" in lowered:
        return f"{LOCATION_MANAGER}.{method}"
    if "registerlistener" in method.lower():
        return f"{SENSOR_MANAGER}.{method}"
    if not receiver:
        return method
    return f"{receiver}.{method}"


def qualified_name(package_name: str, name: str) -> str:
    return f"{package_name}.{name}" if package_name else name


def role_hints(super_class: Optional[str]) -> Dict[str, bool]:
    """Framework role flags derived from the superclass name."""
    super_class = super_class or ""
    return {
        "is_activity": "Activity" in super_class,
        "is_fragment": "Fragment" in super_class,
        "is_view_model": "ViewModel" in super_class,
    }


class SymbolExtractor(ABC):
    """Base class for language-specific symbol extraction."""

    def __init__(self, language: str):
        self.language = language

    @abstractmethod
    def extract_source(self, source: str, file_path: str) -> List[ClassDescriptor]:
        """Extract class descriptors from already-loaded source text."""
        pass

    def extract(self, file_path: str) -> List[ClassDescriptor]:
        """Read and extract one file.

        Failures never propagate: an unreadable or unparsable file is logged
        and contributes no classes.

        Args:
            file_path: Path to the source file

        Returns:
            List of class descriptors (possibly empty)
        """
        try:
            source = Path(file_path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error(f"Error reading file {file_path}: {e}")
            return []

        try:
            classes = self.extract_source(source, file_path)
        except Exception as e:
            logger.error(f"Error parsing {file_path}: {e}")
            return []

        logger.debug(f"Extracted {len(classes)} classes from {file_path}")
        return classes


def _default_factories() -> Dict[str, Callable[[], SymbolExtractor]]:
    from .java_extractor import JavaSymbolExtractor
    from .kotlin_extractor import KotlinSymbolExtractor

    return {
        "kotlin": KotlinSymbolExtractor,
        "java": JavaSymbolExtractor,
    }


class ExtractorRegistry:
    """Registry for language-specific symbol extractors."""

    _extractors: Dict[str, SymbolExtractor] = {}

    @classmethod
    def get_extractor(cls, language: str) -> Optional[SymbolExtractor]:
        """Get the symbol extractor for a language, creating it on first use.

        Args:
            language: Language name

        Returns:
            SymbolExtractor instance or None if not supported
        """
        extractor = cls._extractors.get(language)
        if extractor is not None:
            return extractor

        factory = _default_factories().get(language)
        if factory is None:
            return None

        extractor = factory()
        cls._extractors[language] = extractor
        return extractor

    @classmethod
    def register_extractor(cls, language: str, extractor: SymbolExtractor) -> None:
        """Register a custom symbol extractor.

        Args:
            language: Language name
            extractor: SymbolExtractor instance
        """
        cls._extractors[language] = extractor

    @classmethod
    def get_supported_languages(cls) -> List[str]:
        return sorted(set(_default_factories()) | set(cls._extractors))
