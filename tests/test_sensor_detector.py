import pytest

from sensedev.sensors.detector import (
    SensorDetector,
    call_sensor_type,
    callback_sensor_type,
    infer_sensor_type,
)
from sensedev.sensors.models import SensorEntryPoint, SensorType
from tests._fixtures.project_builder import make_class


@pytest.mark.parametrize(
    "method_name, expected",
    [
        ("onSensorChanged", SensorType.OTHER),
        ("onLocationChanged", SensorType.LOCATION),
        ("handleLocationResult", None),
        ("onLocationResult", SensorType.LOCATION),
        ("onImageAvailable", SensorType.CAMERA),
        ("onPreviewFrame", SensorType.CAMERA),
        ("onCreate", None),
    ],
)
def test_callback_sensor_type(method_name, expected) -> None:
    assert callback_sensor_type(method_name) == expected


@pytest.mark.parametrize(
    "call, expected",
    [
        ("android.hardware.SensorManager.registerListener", SensorType.OTHER),
        ("android.hardware.SensorManager.unregisterListener", SensorType.OTHER),
        ("AudioRecord", SensorType.MICROPHONE),
        ("recorder.MediaRecorder", SensorType.MICROPHONE),
        ("android.location.LocationManager.requestLocationUpdates", None),
        ("cameraManager.openCamera", None),
        ("registerListener", None),
        ("viewModel.startSensing", None),
    ],
)
def test_call_sensor_type(call, expected) -> None:
    assert call_sensor_type(call) == expected


def test_infer_sensor_type_first_keyword_wins() -> None:
    assert infer_sensor_type("Sensor.TYPE_ACCELEROMETER") == SensorType.ACCELEROMETER
    assert infer_sensor_type("sensor_light") == SensorType.LIGHT
    assert infer_sensor_type("TYPE_MAGNETIC_FIELD") == SensorType.MAGNETOMETER
    assert infer_sensor_type("TYPE_STEP_COUNTER") == SensorType.STEP_COUNTER
    assert infer_sensor_type("ACCELEROMETER_AND_GYROSCOPE") == SensorType.ACCELEROMETER
    assert infer_sensor_type("somethingElse") == SensorType.OTHER


def test_detect_keeps_every_entry() -> None:
    repo = make_class(
        "Repo",
        methods={
            "onSensorChanged": [
                "android.hardware.SensorManager.registerListener",
                "android.hardware.SensorManager.registerListener",
            ],
            "helper": ["log"],
        },
    )

    entries = SensorDetector().detect([repo])

    assert len(entries) == 3
    assert all(e.method_qualified_name == "com.example.Repo.onSensorChanged" for e in entries)
    assert all(e.class_qualified_name == "com.example.Repo" for e in entries)
    assert entries[0] == SensorEntryPoint(
        class_qualified_name="com.example.Repo",
        method_qualified_name="com.example.Repo.onSensorChanged",
        sensor_type=SensorType.OTHER,
        file_path="/src/Repo.kt",
        line_number=10,
    )


def test_detect_in_class_and_method_order() -> None:
    location = make_class("Locator", methods={"onLocationChanged": []})
    mic = make_class("Recorder", methods={"record": ["AudioRecord"]})

    entries = SensorDetector().detect([location, mic])

    assert [e.sensor_type for e in entries] == [SensorType.LOCATION, SensorType.MICROPHONE]


def test_detect_nothing() -> None:
    assert SensorDetector().detect([make_class("Plain", methods={"run": ["print"]})]) == []


def test_entry_point_dict_round_trip() -> None:
    entry = SensorEntryPoint("a.B", "a.B.c", SensorType.GYROSCOPE, "/B.kt", 3)
    data = entry.to_dict()

    assert data["sensor_type"] == "GYROSCOPE"
    assert SensorEntryPoint.from_dict({**data, "extra": 1}) == entry
