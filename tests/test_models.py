import pytest

from sensedev.graph.models import Edge, EdgeType, GraphData, Node, NodeType
from sensedev.indexer.grammars import LanguageRegistry, get_language_registry
from sensedev.indexer.models import ClassDescriptor, FieldDescriptor, SymbolTable
from sensedev.indexer.symbol_extractors import (
    ExtractorRegistry,
    SymbolExtractor,
    qualify_call,
    role_hints,
)
from sensedev.results import AnalysisResult
from tests._fixtures.project_builder import make_class


@pytest.mark.parametrize(
    "receiver, method, expected",
    [
        ("sensorManager", "getDefaultSensor", "android.hardware.SensorManager.getDefaultSensor"),
        ("SensorManager", "getDefaultSensor", "android.hardware.SensorManager.getDefaultSensor"),
        ("locManager", "getLastKnownLocation", "locManager.getLastKnownLocation"),
        ("locationManager", "removeUpdates", "android.location.LocationManager.removeUpdates"),
        ("listener", "registerListener", "android.hardware.SensorManager.registerListener"),
        ("", "registerListener", "android.hardware.SensorManager.registerListener"),
        ("", "helper", "helper"),
        ("repo", "load", "repo.load"),
    ],
)
def test_qualify_call(receiver, method, expected) -> None:
    assert qualify_call(receiver, method) == expected


def test_role_hints() -> None:
    assert role_hints("AppCompatActivity")["is_activity"]
    assert role_hints("DialogFragment")["is_fragment"]
    assert role_hints("AndroidViewModel")["is_view_model"]
    assert not any(role_hints(None).values())


def test_field_flags() -> None:
    state = FieldDescriptor.from_type("state", "StateFlow<Int>")
    live = FieldDescriptor.from_type("live", "MutableLiveData<Float>")
    plain = FieldDescriptor.from_type("count", "Int")

    assert state.is_state_flow and state.is_flow and state.is_reactive
    assert live.is_live_data and not live.is_flow
    assert not plain.is_reactive


def test_symbol_table_keeps_last_duplicate() -> None:
    first = make_class("Dup", methods={"a": []}, file_path="/src/one/Dup.kt")
    second = make_class("Dup", methods={"b": []}, file_path="/src/two/Dup.kt")

    table = SymbolTable.build([first, second])

    assert len(table) == 1
    assert table.classes["com.example.Dup"] is second
    assert table.classes_in_file("/src/two/Dup.kt") == [second]


def test_symbol_table_lookup() -> None:
    table = SymbolTable.build(
        [make_class("Repo", package="b"), make_class("Repo", package="a"), make_class("Solo")]
    )

    assert [c.qualified_name for c in table.sorted_classes()] == [
        "a.Repo",
        "b.Repo",
        "com.example.Solo",
    ]
    assert table.find_by_name("b.Repo").qualified_name == "b.Repo"
    assert table.find_by_name("Repo").qualified_name == "a.Repo"
    assert table.find_by_name("") is None
    assert table.find_by_name("Missing") is None


def test_class_descriptor_from_dict_ignores_unknown_keys() -> None:
    descriptor = make_class("Repo", methods={"load": ["db.query"]}, fields={"cache": "Flow<Int>"})
    data = descriptor.to_dict()
    data["methods"][0]["complexity"] = 3
    data["new_flag"] = True

    assert ClassDescriptor.from_dict(data) == descriptor


def test_graph_lookups() -> None:
    a = Node("A", NodeType.UI, "/A.kt", "x.A", id="a")
    b = Node("B", NodeType.GENERIC, "/B.kt", "y.A", id="b")
    graph = GraphData(nodes=[a, b], edges=[Edge("a", "b", EdgeType.CALLS, id="e")])

    assert graph.find_node_by_name("y.A") is b
    assert graph.find_node_by_name("A") is a
    assert graph.incoming("b")[0].id == "e"
    assert graph.outgoing("b") == []
    assert graph.nodes_of_type(NodeType.UI) == [a]
    assert GraphData.from_dict(graph.to_dict()) == graph


def test_failure_result() -> None:
    result = AnalysisResult.failure("nope", "/project")

    assert not result.success
    assert result.to_dict()["graph"] is None
    assert AnalysisResult.from_dict(result.to_dict()) == result


def test_language_registry() -> None:
    registry = get_language_registry()

    assert registry.detect_language("Main.kt") == "kotlin"
    assert registry.detect_language("Main.JAVA") == "java"
    assert registry.detect_language("build.gradle") is None
    assert registry.get_language_config("java").uses_tree_sitter
    assert registry.get_language_config("java").get_node_types("call") == ["method_invocation"]
    assert registry.get_language_config("kotlin").get_node_types("call") == []


def test_language_registry_bad_config(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        LanguageRegistry(tmp_path / "missing.json")


def test_extractor_registry() -> None:
    class NullExtractor(SymbolExtractor):
        def __init__(self):
            super().__init__("null")

        def extract_source(self, source, file_path):
            return []

    assert ExtractorRegistry.get_extractor("kotlin").language == "kotlin"
    assert ExtractorRegistry.get_extractor("cobol") is None

    ExtractorRegistry.register_extractor("null", NullExtractor())
    try:
        assert "null" in ExtractorRegistry.get_supported_languages()
        assert ExtractorRegistry.get_extractor("null").extract_source("", "x") == []
    finally:
        ExtractorRegistry._extractors.pop("null", None)
