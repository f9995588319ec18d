"""Issue data model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from ..graph.models import new_id
from ..indexer.models import known_fields


class IssueType(str, Enum):
    UNREGISTERED_LISTENER = "UNREGISTERED_LISTENER"
    MAIN_THREAD_SENSOR = "MAIN_THREAD_SENSOR"
    OVER_SAMPLING = "OVER_SAMPLING"
    DUPLICATE_LISTENER = "DUPLICATE_LISTENER"
    MISSING_PERMISSION = "MISSING_PERMISSION"
    PRIVACY_LEAK = "PRIVACY_LEAK"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class CodeReference:
    file_path: str
    line_number: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file_path": self.file_path, "line_number": self.line_number}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodeReference":
        return cls(**known_fields(cls, data))


@dataclass
class Issue:
    """A detected anti-pattern with pointers into the graph and the sources."""

    type: IssueType
    severity: Severity
    description: str
    recommendation: str
    node_refs: List[str] = field(default_factory=list)  # node ids
    code_refs: List[CodeReference] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
            "node_refs": list(self.node_refs),
            "code_refs": [ref.to_dict() for ref in self.code_refs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Issue":
        values = known_fields(cls, data)
        values["type"] = IssueType(values["type"])
        values["severity"] = Severity(values["severity"])
        values["code_refs"] = [CodeReference.from_dict(r) for r in values.get("code_refs", [])]
        return cls(**values)
