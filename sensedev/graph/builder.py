"""Builds the class-level call and data-flow graph."""

import logging
from typing import Dict, List, Optional

from ..indexer.models import ClassDescriptor, SymbolTable
from ..sensors.models import SensorEntryPoint, SensorType
from .models import (
    Edge,
    EdgeType,
    GraphData,
    Node,
    NodeMetadata,
    NodeType,
    SourceLocation,
    ThreadHint,
)
from .resolvers import CallTarget, ResolverChain

logger = logging.getLogger(__name__)

BACKGROUND_MARKERS = ("withContext", "Executor", "Thread", "HandlerThread")
STATE_WRITERS = ("postValue", "setValue", "emit", "tryEmit")


def classify_edge(method_name: str, target_class: ClassDescriptor) -> EdgeType:
    """Edge type implied by the called method's name, first matching rule wins."""
    lowered = method_name.lower()
    if "registerlistener" in lowered or "listening" in lowered:
        return EdgeType.USES_SENSOR_DATA
    if "sensor" in target_class.name.lower() and ("get" in method_name or "read" in method_name):
        return EdgeType.USES_SENSOR_DATA
    if method_name.startswith("set") or "update" in method_name or method_name in STATE_WRITERS:
        return EdgeType.WRITES_STATE
    if method_name.startswith("get") or "observe" in method_name or "collect" in method_name:
        return EdgeType.READS_STATE
    return EdgeType.CALLS


def node_type_for(class_symbol: ClassDescriptor, has_sensor_entry: bool) -> NodeType:
    if has_sensor_entry:
        return NodeType.SENSOR_SOURCE
    if class_symbol.is_view_model:
        return NodeType.VIEWMODEL
    if class_symbol.is_activity or class_symbol.is_fragment or class_symbol.is_composable:
        return NodeType.UI
    lowered = class_symbol.name.lower()
    if "repository" in lowered or "manager" in lowered:
        return NodeType.LOGIC
    return NodeType.GENERIC


def thread_hint_for(class_symbol: ClassDescriptor) -> ThreadHint:
    if class_symbol.is_activity or class_symbol.is_fragment or class_symbol.is_composable:
        return ThreadHint.MAIN
    for call in class_symbol.all_calls():
        if any(marker in call for marker in BACKGROUND_MARKERS):
            return ThreadHint.BACKGROUND
    return ThreadHint.UNKNOWN


def is_state_owner(class_symbol: ClassDescriptor) -> bool:
    """Classes assumed to observe reactive state."""
    return (
        class_symbol.is_activity
        or class_symbol.is_fragment
        or class_symbol.is_composable
        or class_symbol.is_view_model
    )


class GraphBuilder:
    """Turns the symbol table and sensor entry points into ``GraphData``."""

    def __init__(self, resolver: Optional[ResolverChain] = None):
        self.resolver = resolver or ResolverChain()

    def build(self, symbols: SymbolTable, entry_points: List[SensorEntryPoint]) -> GraphData:
        """Build one node per class and the typed edges between them.

        Args:
            symbols: Project symbol table
            entry_points: Detected sensor entry points

        Returns:
            Graph whose edges all reference nodes of this graph
        """
        sensor_types: Dict[str, List[SensorType]] = {}
        for entry in entry_points:
            types = sensor_types.setdefault(entry.class_qualified_name, [])
            if entry.sensor_type not in types:
                types.append(entry.sensor_type)

        classes = symbols.sorted_classes()
        nodes: Dict[str, Node] = {}
        for class_symbol in classes:
            nodes[class_symbol.qualified_name] = self._build_node(
                class_symbol, sensor_types.get(class_symbol.qualified_name)
            )

        observers = [
            nodes[c.qualified_name]
            for c in classes
            if is_state_owner(c)
            or nodes[c.qualified_name].type in (NodeType.UI, NodeType.VIEWMODEL)
        ]

        edges: List[Edge] = []
        for class_symbol in classes:
            from_node = nodes[class_symbol.qualified_name]
            edges.extend(self._call_edges(class_symbol, from_node, symbols, nodes))

            # Reactive state is assumed to reach every observer, the owner included
            for field_symbol in class_symbol.fields:
                if not field_symbol.is_reactive:
                    continue
                for observer in observers:
                    edges.append(Edge(from_node.id, observer.id, EdgeType.WRITES_STATE))

        graph = GraphData(nodes=list(nodes.values()), edges=edges)
        logger.info(f"Built graph with {len(graph.nodes)} nodes and {len(graph.edges)} edges")
        return graph

    @staticmethod
    def _build_node(
        class_symbol: ClassDescriptor, sensor_types: Optional[List[SensorType]]
    ) -> Node:
        return Node(
            name=class_symbol.name,
            qualified_name=class_symbol.qualified_name,
            type=node_type_for(class_symbol, bool(sensor_types)),
            file_path=class_symbol.file_path,
            methods=[method.qualified_name for method in class_symbol.methods],
            sensor_types=list(sensor_types or []),
            metadata=NodeMetadata(
                has_lifecycle=class_symbol.is_activity or class_symbol.is_fragment,
                thread_hint=thread_hint_for(class_symbol),
                state_exposure=[f.type for f in class_symbol.fields if f.is_reactive],
            ),
        )

    def _call_edges(
        self,
        class_symbol: ClassDescriptor,
        from_node: Node,
        symbols: SymbolTable,
        nodes: Dict[str, Node],
    ) -> List[Edge]:
        edges = []
        for method in class_symbol.methods:
            location = SourceLocation(class_symbol.file_path, method.line_number)
            for raw_target in method.calls_to:
                target_class = self.resolver.resolve(raw_target, class_symbol, symbols)
                if target_class is None:
                    continue
                to_node = nodes.get(target_class.qualified_name)
                if to_node is None or to_node.id == from_node.id:
                    continue

                edge_type = classify_edge(CallTarget.parse(raw_target).method, target_class)
                edges.append(Edge(from_node.id, to_node.id, edge_type, location))
                if edge_type in (EdgeType.READS_STATE, EdgeType.USES_SENSOR_DATA):
                    edges.append(Edge(to_node.id, from_node.id, EdgeType.DATA_FLOW))
        return edges
