"""Analysis run progress and result models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .graph.models import Flow, GraphData
from .indexer.models import known_fields
from .issues.models import Issue


@dataclass(frozen=True)
class AnalysisProgress:
    """A progress checkpoint: fraction in [0, 1] and a stage message."""

    fraction: float
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"fraction": self.fraction, "message": self.message}


@dataclass
class AnalysisResult:
    """Outcome of one analysis run."""

    success: bool
    project_path: Optional[str] = None
    graph: Optional[GraphData] = None
    flows: List[Flow] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    total_files: int = 0
    total_classes: int = 0
    sensor_count: int = 0
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, message: str, project_path: Optional[str] = None) -> "AnalysisResult":
        return cls(success=False, project_path=project_path, error_message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "project_path": self.project_path,
            "graph": self.graph.to_dict() if self.graph else None,
            "flows": [flow.to_dict() for flow in self.flows],
            "issues": [issue.to_dict() for issue in self.issues],
            "total_files": self.total_files,
            "total_classes": self.total_classes,
            "sensor_count": self.sensor_count,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        values = known_fields(cls, data)
        graph = values.get("graph")
        values["graph"] = GraphData.from_dict(graph) if graph else None
        values["flows"] = [Flow.from_dict(f) for f in values.get("flows", [])]
        values["issues"] = [Issue.from_dict(i) for i in values.get("issues", [])]
        return cls(**values)
