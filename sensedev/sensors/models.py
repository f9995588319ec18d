"""Sensor categories and detected sensor entry points."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from ..indexer.models import known_fields


class SensorType(str, Enum):
    """Category of device sensor or sensing API."""

    ACCELEROMETER = "ACCELEROMETER"
    GYROSCOPE = "GYROSCOPE"
    MAGNETOMETER = "MAGNETOMETER"
    LIGHT = "LIGHT"
    PROXIMITY = "PROXIMITY"
    LOCATION = "LOCATION"
    CAMERA = "CAMERA"
    MICROPHONE = "MICROPHONE"
    STEP_COUNTER = "STEP_COUNTER"
    OTHER = "OTHER"


@dataclass(frozen=True)
class SensorEntryPoint:
    """A method where sensor data enters the application."""

    class_qualified_name: str
    method_qualified_name: str
    sensor_type: SensorType
    file_path: str
    line_number: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_qualified_name": self.class_qualified_name,
            "method_qualified_name": self.method_qualified_name,
            "sensor_type": self.sensor_type.value,
            "file_path": self.file_path,
            "line_number": self.line_number,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SensorEntryPoint":
        values = known_fields(cls, data)
        values["sensor_type"] = SensorType(values["sensor_type"])
        return cls(**values)
