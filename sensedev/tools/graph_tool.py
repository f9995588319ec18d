"""MCP tool for querying an analysis graph, its flows and its issues."""

import logging
from collections import Counter
from typing import Optional

from ..graph.models import Edge, GraphData
from ..issues.models import IssueType, Severity
from ..sensors.models import SensorType
from .analysis_tool import AnalysisTool

logger = logging.getLogger(__name__)


class GraphTool:
    """Read-only queries over the latest analysis of a project."""

    def __init__(self, analysis_tool: AnalysisTool):
        """Initialize graph tool.

        Args:
            analysis_tool: Source of loaded analysis results
        """
        self.analysis_tool = analysis_tool

    def _load(self, project_path: str):
        result = self.analysis_tool.get_loaded_result(project_path)
        if result is None or result.graph is None:
            return None, {"success": False, "error": f"No analysis available for {project_path}"}
        return result, None

    @staticmethod
    def _node_name(graph: GraphData, node_id: str) -> str:
        node = graph.get_node(node_id)
        return node.name if node else node_id

    def get_summary(self, project_path: str) -> dict:
        """Counts of nodes, edges, flows and issues by kind."""
        try:
            result, error = self._load(project_path)
            if error:
                return error
            graph = result.graph
            return {
                "success": True,
                "project_path": result.project_path,
                "total_files": result.total_files,
                "total_classes": result.total_classes,
                "sensor_count": result.sensor_count,
                "nodes_by_type": dict(Counter(node.type.value for node in graph.nodes)),
                "edges_by_type": dict(Counter(edge.type.value for edge in graph.edges)),
                "flows_by_sensor": dict(Counter(flow.sensor_type.value for flow in result.flows)),
                "issues_by_severity": dict(
                    Counter(issue.severity.value for issue in result.issues)
                ),
            }
        except Exception as e:
            logger.error(f"Error building summary: {e}")
            return {"success": False, "error": str(e)}

    def list_flows(
        self,
        project_path: str,
        sensor_type: Optional[str] = None,
        min_confidence: float = 0.0,
        limit: int = 50,
    ) -> dict:
        """List sensor-to-UI flows with node names resolved.

        Args:
            project_path: Path to the project root
            sensor_type: Only flows of this sensor type (e.g. "LOCATION")
            min_confidence: Minimum flow confidence
            limit: Maximum number of flows returned

        Returns:
            Dictionary with matching flows, highest confidence first
        """
        try:
            result, error = self._load(project_path)
            if error:
                return error

            wanted = None
            if sensor_type:
                try:
                    wanted = SensorType(sensor_type.upper())
                except ValueError:
                    return {"success": False, "error": f"Unknown sensor type: {sensor_type}"}

            flows = [
                flow
                for flow in result.flows
                if (wanted is None or flow.sensor_type == wanted)
                and flow.confidence >= min_confidence
            ]
            flows.sort(key=lambda flow: -flow.confidence)

            return {
                "success": True,
                "total_flows": len(flows),
                "flows": [
                    {
                        "sensor_type": flow.sensor_type.value,
                        "confidence": flow.confidence,
                        "path": [self._node_name(result.graph, node_id) for node_id in flow.path],
                    }
                    for flow in flows[:limit]
                ],
            }
        except Exception as e:
            logger.error(f"Error listing flows: {e}")
            return {"success": False, "error": str(e)}

    def list_issues(
        self,
        project_path: str,
        severity: Optional[str] = None,
        issue_type: Optional[str] = None,
    ) -> dict:
        """List detected issues, optionally filtered by severity and type."""
        try:
            result, error = self._load(project_path)
            if error:
                return error

            try:
                wanted_severity = Severity(severity.upper()) if severity else None
                wanted_type = IssueType(issue_type.upper()) if issue_type else None
            except ValueError as e:
                return {"success": False, "error": str(e)}

            issues = [
                issue
                for issue in result.issues
                if (wanted_severity is None or issue.severity == wanted_severity)
                and (wanted_type is None or issue.type == wanted_type)
            ]
            return {
                "success": True,
                "total_issues": len(issues),
                "issues": [
                    {
                        **issue.to_dict(),
                        "nodes": [self._node_name(result.graph, ref) for ref in issue.node_refs],
                    }
                    for issue in issues
                ],
            }
        except Exception as e:
            logger.error(f"Error listing issues: {e}")
            return {"success": False, "error": str(e)}

    def describe_node(self, project_path: str, name: str) -> dict:
        """Describe one node and its incoming and outgoing edges.

        Args:
            project_path: Path to the project root
            name: Qualified or simple class name

        Returns:
            Dictionary with the node and its edges, endpoints given by name
        """
        try:
            result, error = self._load(project_path)
            if error:
                return error
            graph = result.graph

            node = graph.find_node_by_name(name)
            if node is None:
                return {"success": False, "error": f"Node not found: {name}"}

            def describe(edge: Edge, endpoint: str) -> dict:
                return {
                    "type": edge.type.value,
                    endpoint: self._node_name(
                        graph, edge.to_id if endpoint == "to" else edge.from_id
                    ),
                    "location": edge.source_location.to_dict() if edge.source_location else None,
                }

            return {
                "success": True,
                "node": node.to_dict(),
                "outgoing": [describe(edge, "to") for edge in graph.outgoing(node.id)],
                "incoming": [describe(edge, "from") for edge in graph.incoming(node.id)],
            }
        except Exception as e:
            logger.error(f"Error describing node {name}: {e}")
            return {"success": False, "error": str(e)}
