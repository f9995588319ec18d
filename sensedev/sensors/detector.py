"""Detection of sensor entry points from extracted method symbols."""

import logging
from typing import Iterable, List, Optional

from ..indexer.models import ClassDescriptor, MethodDescriptor
from .models import SensorEntryPoint, SensorType

logger = logging.getLogger(__name__)

LOCATION_CALLBACKS = ("onlocationchanged", "onlocationresult")
CAMERA_CALLBACKS = ("oncameraframe", "onpreviewframe", "onimageavailable")

# Checked in order; the first keyword found in a registration call wins
REGISTRATION_KEYWORDS = (
    ("ACCELEROMETER", SensorType.ACCELEROMETER),
    ("GYROSCOPE", SensorType.GYROSCOPE),
    ("LIGHT", SensorType.LIGHT),
    ("PROXIMITY", SensorType.PROXIMITY),
    ("MAGNETIC", SensorType.MAGNETOMETER),
    ("STEP", SensorType.STEP_COUNTER),
)


def infer_sensor_type(call: str) -> SensorType:
    """Guess the sensor type named in a registration call."""
    upper = call.upper()
    for keyword, sensor_type in REGISTRATION_KEYWORDS:
        if keyword in upper:
            return sensor_type
    return SensorType.OTHER


def callback_sensor_type(method_name: str) -> Optional[SensorType]:
    """Sensor type of a framework callback method, or None if it is not one."""
    if method_name == "onSensorChanged":
        # The concrete sensor is only known from the registration
        return SensorType.OTHER
    lowered = method_name.lower()
    if any(callback in lowered for callback in LOCATION_CALLBACKS):
        return SensorType.LOCATION
    if any(callback in lowered for callback in CAMERA_CALLBACKS):
        return SensorType.CAMERA
    return None


def call_sensor_type(call: str) -> Optional[SensorType]:
    """Sensor type acquired by a call target, or None if it touches no sensor API."""
    if "registerListener" in call and "Sensor" in call:
        return infer_sensor_type(call)
    if "AudioRecord" in call or "MediaRecorder" in call:
        return SensorType.MICROPHONE
    return None


class SensorDetector:
    """Finds methods that receive or acquire sensor data."""

    def detect(self, classes: Iterable[ClassDescriptor]) -> List[SensorEntryPoint]:
        """Detect all sensor entry points.

        A method contributes one entry for a recognised callback name plus
        one entry per sensor-acquiring call site; nothing is merged.

        Args:
            classes: Extracted classes

        Returns:
            Entry points in class, method and call order
        """
        entry_points: List[SensorEntryPoint] = []
        for class_symbol in classes:
            for method in class_symbol.methods:
                entry_points.extend(self._detect_in_method(class_symbol, method))

        logger.info(f"Detected {len(entry_points)} sensor entry points")
        return entry_points

    def _detect_in_method(
        self, class_symbol: ClassDescriptor, method: MethodDescriptor
    ) -> List[SensorEntryPoint]:
        found = []

        sensor_type = callback_sensor_type(method.name)
        if sensor_type is not None:
            found.append(self._entry(class_symbol, method, sensor_type))

        for call in method.calls_to:
            sensor_type = call_sensor_type(call)
            if sensor_type is not None:
                logger.debug(f"{method.qualified_name}: '{call}' acquires {sensor_type.value}")
                found.append(self._entry(class_symbol, method, sensor_type))

        return found

    @staticmethod
    def _entry(
        class_symbol: ClassDescriptor, method: MethodDescriptor, sensor_type: SensorType
    ) -> SensorEntryPoint:
        return SensorEntryPoint(
            class_qualified_name=class_symbol.qualified_name,
            method_qualified_name=method.qualified_name,
            sensor_type=sensor_type,
            file_path=class_symbol.file_path,
            line_number=method.line_number,
        )
