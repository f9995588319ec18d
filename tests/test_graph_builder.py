import pytest

from sensedev.graph.builder import (
    GraphBuilder,
    classify_edge,
    node_type_for,
    thread_hint_for,
)
from sensedev.graph.models import EdgeType, NodeType, SourceLocation, ThreadHint
from sensedev.indexer.models import SymbolTable
from sensedev.sensors.models import SensorEntryPoint, SensorType
from tests._fixtures.project_builder import make_class

PLAIN = make_class("Helper")
SENSOR_HUB = make_class("SensorHub")


@pytest.mark.parametrize(
    "method_name, target, expected",
    [
        ("registerListener", PLAIN, EdgeType.USES_SENSOR_DATA),
        ("startListening", PLAIN, EdgeType.USES_SENSOR_DATA),
        ("getReading", SENSOR_HUB, EdgeType.USES_SENSOR_DATA),
        ("readValue", SENSOR_HUB, EdgeType.USES_SENSOR_DATA),
        ("getReading", PLAIN, EdgeType.READS_STATE),
        ("setValue", PLAIN, EdgeType.WRITES_STATE),
        ("updateData", PLAIN, EdgeType.WRITES_STATE),
        ("emit", PLAIN, EdgeType.WRITES_STATE),
        ("observe", PLAIN, EdgeType.READS_STATE),
        ("collectLatest", PLAIN, EdgeType.READS_STATE),
        ("startSensing", PLAIN, EdgeType.CALLS),
    ],
)
def test_classify_edge(method_name, target, expected) -> None:
    assert classify_edge(method_name, target) == expected


def test_node_type_precedence() -> None:
    vm = make_class("MainViewModel", is_view_model=True)

    assert node_type_for(vm, has_sensor_entry=True) == NodeType.SENSOR_SOURCE
    assert node_type_for(vm, has_sensor_entry=False) == NodeType.VIEWMODEL
    assert node_type_for(make_class("Home", is_activity=True), False) == NodeType.UI
    assert node_type_for(make_class("Panel", is_fragment=True), False) == NodeType.UI
    assert node_type_for(make_class("ScreenKt", is_composable=True), False) == NodeType.UI
    assert node_type_for(make_class("UserRepository"), False) == NodeType.LOGIC
    assert node_type_for(make_class("SessionManager"), False) == NodeType.LOGIC
    assert node_type_for(PLAIN, False) == NodeType.GENERIC


def test_thread_hint() -> None:
    worker = make_class("Worker", methods={"run": ["Executors.newSingleThreadExecutor"]})

    assert thread_hint_for(make_class("Home", is_activity=True)) == ThreadHint.MAIN
    assert thread_hint_for(worker) == ThreadHint.BACKGROUND
    assert thread_hint_for(PLAIN) == ThreadHint.UNKNOWN


@pytest.fixture
def layered():
    activity = make_class(
        "MainActivity",
        methods={"onCreate": ["viewModel.load"]},
        fields={"viewModel": "MainViewModel"},
        is_activity=True,
    )
    vm = make_class(
        "MainViewModel",
        methods={"load": ["repo.startListening", "load", "unknownCall"]},
        fields={"repo": "SensorRepo", "state": "StateFlow<Float>"},
        is_view_model=True,
    )
    repo = make_class("SensorRepo", methods={"startListening": []})
    entries = [
        SensorEntryPoint(repo.qualified_name, "x", SensorType.ACCELEROMETER, repo.file_path, 10),
        SensorEntryPoint(repo.qualified_name, "x", SensorType.ACCELEROMETER, repo.file_path, 10),
        SensorEntryPoint(repo.qualified_name, "y", SensorType.LIGHT, repo.file_path, 11),
    ]
    return SymbolTable.build([repo, vm, activity]), entries


def test_build_nodes(layered) -> None:
    symbols, entries = layered
    graph = GraphBuilder().build(symbols, entries)

    assert [n.name for n in graph.nodes] == ["MainActivity", "MainViewModel", "SensorRepo"]
    activity, vm, repo = graph.nodes
    assert [n.type for n in graph.nodes] == [
        NodeType.UI,
        NodeType.VIEWMODEL,
        NodeType.SENSOR_SOURCE,
    ]
    assert repo.sensor_types == [SensorType.ACCELEROMETER, SensorType.LIGHT]
    assert activity.metadata.has_lifecycle
    assert activity.metadata.thread_hint == ThreadHint.MAIN
    assert vm.metadata.state_exposure == ["StateFlow<Float>"]
    assert vm.methods == ["com.example.MainViewModel.load"]


def test_build_edges(layered) -> None:
    symbols, entries = layered
    graph = GraphBuilder().build(symbols, entries)
    activity, vm, repo = graph.nodes

    assert [(e.from_id, e.to_id, e.type) for e in graph.edges] == [
        (activity.id, vm.id, EdgeType.CALLS),
        (vm.id, repo.id, EdgeType.USES_SENSOR_DATA),
        (repo.id, vm.id, EdgeType.DATA_FLOW),
        (vm.id, activity.id, EdgeType.WRITES_STATE),
        (vm.id, vm.id, EdgeType.WRITES_STATE),
    ]
    assert graph.edges[0].source_location == SourceLocation("/src/MainActivity.kt", 10)
    assert graph.edges[2].source_location is None


def test_edges_reference_graph_nodes(layered) -> None:
    symbols, entries = layered
    graph = GraphBuilder().build(symbols, entries)
    ids = {n.id for n in graph.nodes}

    assert len(ids) == len(graph.nodes)
    assert all(e.from_id in ids and e.to_id in ids for e in graph.edges)


def test_empty_symbols() -> None:
    graph = GraphBuilder().build(SymbolTable(), [])
    assert graph.nodes == [] and graph.edges == []


def test_repeated_call_sites_give_parallel_edges() -> None:
    caller = make_class("Caller", methods={"run": ["b.go", "b.go"]}, fields={"b": "Callee"})
    callee = make_class("Callee", methods={"go": []})

    graph = GraphBuilder().build(SymbolTable.build([caller, callee]), [])
    by_name = {n.name: n for n in graph.nodes}
    caller_node, callee_node = by_name["Caller"], by_name["Callee"]

    assert [(e.from_id, e.to_id, e.type) for e in graph.edges] == [
        (caller_node.id, callee_node.id, EdgeType.CALLS)
    ] * 2
    assert graph.edges[0] is not graph.edges[1]
    assert [e.source_location for e in graph.edges] == [
        SourceLocation("/src/Caller.kt", 10)
    ] * 2
