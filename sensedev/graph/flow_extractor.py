"""Extraction of sensor-to-UI flows from the graph."""

import logging
import threading
from typing import FrozenSet, Iterator, List, Optional, Tuple

from .models import EdgeType, Flow, GraphData, Node, NodeType

logger = logging.getLogger(__name__)

FLOW_EDGE_TYPES: FrozenSet[EdgeType] = frozenset(
    {EdgeType.CALLS, EdgeType.WRITES_STATE, EdgeType.USES_SENSOR_DATA, EdgeType.DATA_FLOW}
)


class FlowCancelled(Exception):
    """Raised when flow extraction is interrupted by its cancel event."""


def path_confidence(path_length: int) -> float:
    """Shorter paths are more trustworthy."""
    if path_length <= 2:
        return 1.0
    if path_length == 3:
        return 0.9
    if path_length == 4:
        return 0.7
    return 0.5


class FlowExtractor:
    """Enumerates every simple path from a sensor source to a UI node."""

    def __init__(self, cancel_event: Optional[threading.Event] = None):
        self.cancel_event = cancel_event

    def extract(self, graph: GraphData) -> List[Flow]:
        """Extract flows, one per (source, sensor type, path).

        Args:
            graph: Built graph

        Returns:
            Flows in source, sensor type and traversal order
        """
        flows: List[Flow] = []
        for source in graph.nodes_of_type(NodeType.SENSOR_SOURCE):
            for sensor_type in source.sensor_types:
                for path in self._trace_paths(source, graph):
                    flows.append(Flow(sensor_type, path, path_confidence(len(path))))

        logger.info(f"Extracted {len(flows)} flows")
        return flows

    def _trace_paths(self, start: Node, graph: GraphData) -> Iterator[List[str]]:
        """Depth-first, exhaustive, with a per-path visited set.

        A UI node ends its path; the search does not continue past it.
        """
        if start.type == NodeType.UI:
            yield [start.id]
            return

        stack: List[Tuple[List[str], Iterator]] = [([start.id], iter(graph.outgoing(start.id)))]
        while stack:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise FlowCancelled()

            path, edges = stack[-1]
            edge = next(edges, None)
            if edge is None:
                stack.pop()
                continue
            if edge.type not in FLOW_EDGE_TYPES or edge.to_id in path:
                continue
            next_node = graph.get_node(edge.to_id)
            if next_node is None:
                continue

            next_path = path + [next_node.id]
            if next_node.type == NodeType.UI:
                yield next_path
            else:
                stack.append((next_path, iter(graph.outgoing(next_node.id))))
