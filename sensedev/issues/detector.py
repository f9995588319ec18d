"""Rule-based detection of sensor anti-patterns."""

import logging
from collections import deque
from typing import Dict, List, Optional

from ..graph.models import GraphData, Node, NodeType
from ..indexer.models import ClassDescriptor, SymbolTable
from .models import CodeReference, Issue, IssueType, Severity

logger = logging.getLogger(__name__)

SINK_KEYWORDS = ("http", "retrofit", "database", "room", "sharedpreferences", "file")


def is_register_call(call: str) -> bool:
    return "registerListener" in call and "unregisterListener" not in call


def is_unregister_call(call: str) -> bool:
    return "unregisterListener" in call


def is_sink(node: Node) -> bool:
    """Nodes that look like network or storage code."""
    lowered = node.name.lower()
    return any(keyword in lowered for keyword in SINK_KEYWORDS)


class IssueDetector:
    """Runs every issue rule over the symbols and the graph."""

    def detect(self, symbols: SymbolTable, graph: GraphData) -> List[Issue]:
        """Detect issues.

        Args:
            symbols: Project symbol table
            graph: Built graph

        Returns:
            Issues grouped by rule, in rule order
        """
        nodes_by_qname: Dict[str, Node] = {
            node.qualified_name: node for node in graph.nodes if node.qualified_name
        }

        issues: List[Issue] = []
        issues.extend(self.detect_unregistered_listeners(symbols, nodes_by_qname))
        issues.extend(self.detect_main_thread_sensors(graph))
        issues.extend(self.detect_duplicate_listeners(symbols))
        issues.extend(self.detect_privacy_leaks(graph))

        logger.info(f"Detected {len(issues)} issues")
        return issues

    def detect_unregistered_listeners(
        self, symbols: SymbolTable, nodes_by_qname: Dict[str, Node]
    ) -> List[Issue]:
        issues = []
        for class_symbol in symbols.sorted_classes():
            registering = self._first_registering_method_line(class_symbol)
            if registering is None:
                continue
            if any(is_unregister_call(call) for call in class_symbol.all_calls()):
                continue

            node = nodes_by_qname.get(class_symbol.qualified_name)
            issues.append(
                Issue(
                    type=IssueType.UNREGISTERED_LISTENER,
                    severity=Severity.HIGH,
                    description=(
                        f"Sensor listener registered but never unregistered in {class_symbol.name}"
                    ),
                    recommendation=(
                        "Add unregisterListener() in onPause() or onDestroy() "
                        "to avoid battery drain"
                    ),
                    node_refs=[node.id] if node else [],
                    code_refs=[CodeReference(class_symbol.file_path, registering)],
                )
            )
        return issues

    @staticmethod
    def _first_registering_method_line(class_symbol: ClassDescriptor) -> Optional[int]:
        for method in class_symbol.methods:
            if any(is_register_call(call) for call in method.calls_to):
                return method.line_number
        return None

    def detect_main_thread_sensors(self, graph: GraphData) -> List[Issue]:
        """A direct edge from a sensor source to a UI node counts as main-thread handling."""
        issues = []
        ui_nodes = graph.nodes_of_type(NodeType.UI)
        for source in graph.nodes_of_type(NodeType.SENSOR_SOURCE):
            targets = {edge.to_id for edge in graph.outgoing(source.id)}
            for ui_node in ui_nodes:
                if ui_node.id not in targets:
                    continue
                issues.append(
                    Issue(
                        type=IssueType.MAIN_THREAD_SENSOR,
                        severity=Severity.MEDIUM,
                        description=(
                            f"Sensor data from {source.name} processed directly on the main "
                            f"thread in {ui_node.name}"
                        ),
                        recommendation=(
                            "Move sensor data processing to a background thread or use coroutines"
                        ),
                        node_refs=[source.id, ui_node.id],
                    )
                )
        return issues

    def detect_duplicate_listeners(self, symbols: SymbolTable) -> List[Issue]:
        issues = []
        for class_symbol in symbols.sorted_classes():
            groups: Dict[str, List[int]] = {}
            for method in class_symbol.methods:
                for call in method.calls_to:
                    if "registerListener" in call:
                        groups.setdefault(call, []).append(method.line_number)

            for call, lines in groups.items():
                if len(lines) < 2:
                    continue
                issues.append(
                    Issue(
                        type=IssueType.DUPLICATE_LISTENER,
                        severity=Severity.MEDIUM,
                        description=(
                            f"{len(lines)} identical listener registrations ({call}) "
                            f"in {class_symbol.name}"
                        ),
                        recommendation="Ensure each sensor listener is registered only once",
                        code_refs=[CodeReference(class_symbol.file_path, lines[0])],
                    )
                )
        return issues

    def detect_privacy_leaks(self, graph: GraphData) -> List[Issue]:
        issues = []
        sinks = [node for node in graph.nodes if is_sink(node)]
        if not sinks:
            return issues

        for source in graph.nodes_of_type(NodeType.SENSOR_SOURCE):
            reachable = self._reachable_from(source.id, graph)
            for sink in sinks:
                if sink.id not in reachable:
                    continue
                issues.append(
                    Issue(
                        type=IssueType.PRIVACY_LEAK,
                        severity=Severity.HIGH,
                        description=(
                            f"Potential privacy leak: sensor data from {source.name} "
                            f"may flow to {sink.name}"
                        ),
                        recommendation=(
                            "Obtain user consent before transmitting or storing sensor data"
                        ),
                        node_refs=[source.id, sink.id],
                    )
                )
        return issues

    @staticmethod
    def _reachable_from(start_id: str, graph: GraphData) -> set:
        """Breadth-first closure over every outgoing edge."""
        visited = {start_id}
        queue = deque([start_id])
        while queue:
            current = queue.popleft()
            for edge in graph.outgoing(current):
                if edge.to_id not in visited:
                    visited.add(edge.to_id)
                    queue.append(edge.to_id)
        return visited
