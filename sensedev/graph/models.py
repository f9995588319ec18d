"""Graph data model: class nodes, typed edges and sensor-to-UI flows."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..indexer.models import known_fields
from ..sensors.models import SensorType


def new_id() -> str:
    return str(uuid.uuid4())


class NodeType(str, Enum):
    """Architectural role of a class node."""

    SENSOR_SOURCE = "SENSOR_SOURCE"
    LOGIC = "LOGIC"
    VIEWMODEL = "VIEWMODEL"
    UI = "UI"
    GENERIC = "GENERIC"


class ThreadHint(str, Enum):
    """Likely execution context of a class."""

    MAIN = "MAIN"
    BACKGROUND = "BACKGROUND"
    UNKNOWN = "UNKNOWN"


class EdgeType(str, Enum):
    """Relationship kinds between nodes."""

    CALLS = "CALLS"
    READS_STATE = "READS_STATE"
    WRITES_STATE = "WRITES_STATE"
    USES_SENSOR_DATA = "USES_SENSOR_DATA"
    LIFECYCLE_LINK = "LIFECYCLE_LINK"
    DATA_FLOW = "DATA_FLOW"


@dataclass
class NodeMetadata:
    """Derived facts about the class behind a node."""

    has_lifecycle: bool = False
    thread_hint: ThreadHint = ThreadHint.UNKNOWN
    state_exposure: List[str] = field(default_factory=list)  # reactive field types

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_lifecycle": self.has_lifecycle,
            "thread_hint": self.thread_hint.value,
            "state_exposure": list(self.state_exposure),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeMetadata":
        values = known_fields(cls, data)
        if "thread_hint" in values:
            values["thread_hint"] = ThreadHint(values["thread_hint"])
        return cls(**values)


@dataclass
class Node:
    """One class in the graph."""

    name: str
    type: NodeType
    file_path: str
    qualified_name: str = ""
    methods: List[str] = field(default_factory=list)  # method qualified names
    sensor_types: List[SensorType] = field(default_factory=list)
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "qualified_name": self.qualified_name,
            "type": self.type.value,
            "file_path": self.file_path,
            "methods": list(self.methods),
            "sensor_types": [s.value for s in self.sensor_types],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        values = known_fields(cls, data)
        values["type"] = NodeType(values["type"])
        values["sensor_types"] = [SensorType(s) for s in values.get("sensor_types", [])]
        values["metadata"] = NodeMetadata.from_dict(values.get("metadata", {}))
        return cls(**values)


@dataclass(frozen=True)
class SourceLocation:
    """File and 1-based line where a relationship originates."""

    file_path: str
    line_number: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file_path": self.file_path, "line_number": self.line_number}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceLocation":
        return cls(**known_fields(cls, data))


@dataclass
class Edge:
    """Directed, typed relationship between two nodes, referenced by id."""

    from_id: str
    to_id: str
    type: EdgeType
    source_location: Optional[SourceLocation] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from_id": self.from_id,
            "to_id": self.to_id,
            "type": self.type.value,
            "source_location": self.source_location.to_dict() if self.source_location else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        values = known_fields(cls, data)
        values["type"] = EdgeType(values["type"])
        location = values.get("source_location")
        values["source_location"] = SourceLocation.from_dict(location) if location else None
        return cls(**values)


@dataclass
class GraphData:
    """Flat node and edge lists with id lookup and outgoing adjacency."""

    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    _by_id: Optional[Dict[str, Node]] = field(default=None, init=False, repr=False, compare=False)
    _outgoing: Optional[Dict[str, List[Edge]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def _index(self) -> None:
        self._by_id = {node.id: node for node in self.nodes}
        self._outgoing = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            self._outgoing.setdefault(edge.from_id, []).append(edge)

    def get_node(self, node_id: str) -> Optional[Node]:
        if self._by_id is None:
            self._index()
        return self._by_id.get(node_id)

    def outgoing(self, node_id: str) -> List[Edge]:
        """Edges leaving a node, in insertion order."""
        if self._outgoing is None:
            self._index()
        return self._outgoing.get(node_id, [])

    def incoming(self, node_id: str) -> List[Edge]:
        return [edge for edge in self.edges if edge.to_id == node_id]

    def find_node_by_name(self, name: str) -> Optional[Node]:
        """Match a node by qualified name first, then simple name."""
        for node in self.nodes:
            if node.qualified_name == name:
                return node
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def nodes_of_type(self, node_type: NodeType) -> List[Node]:
        return [node for node in self.nodes if node.type == node_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphData":
        return cls(
            nodes=[Node.from_dict(n) for n in data.get("nodes", [])],
            edges=[Edge.from_dict(e) for e in data.get("edges", [])],
        )


@dataclass
class Flow:
    """A path of node ids carrying one sensor type from its source to a UI node."""

    sensor_type: SensorType
    path: List[str]
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sensor_type": self.sensor_type.value,
            "path": list(self.path),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Flow":
        values = known_fields(cls, data)
        values["sensor_type"] = SensorType(values["sensor_type"])
        return cls(**values)
