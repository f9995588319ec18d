"""FastMCP server exposing sensor data-flow analysis of Android projects."""

import logging
import os
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .cache.analysis_cache import AnalysisCache
from .engine import AnalysisEngine
from .indexer.grammars import get_language_registry
from .indexer.job_manager import JobManager
from .tools.analysis_tool import AnalysisTool
from .tools.graph_tool import GraphTool
from .tools.symbol_tool import SymbolTool

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging() -> None:
    """Send logs to stderr and, in full, to LOG_FILE."""
    level = os.getenv("LOG_LEVEL", "INFO")
    formatter = logging.Formatter(LOG_FORMAT)

    handlers = [
        logging.StreamHandler(),
        logging.FileHandler(os.getenv("LOG_FILE", "/tmp/sensedev-server.log")),
    ]
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


logger = logging.getLogger(__name__)

mcp = FastMCP("sensedev-analyzer")

# Initialized on startup
analysis_tool: Optional[AnalysisTool] = None
graph_tool: Optional[GraphTool] = None
symbol_tool: Optional[SymbolTool] = None


def get_env_config():
    """Get configuration from environment variables."""
    exclude = os.getenv("EXCLUDE_PATTERNS", "")
    return {
        "workspace_path": os.getenv("WORKSPACE_PATH", "/workspace"),
        "parse_workers": int(os.getenv("PARSE_WORKERS", "1")),
        "follow_gitignore": os.getenv("FOLLOW_GITIGNORE", "true").lower() == "true",
        "exclude_patterns": [p.strip() for p in exclude.split(",") if p.strip()],
        "write_cache": os.getenv("WRITE_CACHE", "true").lower() == "true",
    }


def initialize_components() -> None:
    """Initialize all components on startup."""
    global analysis_tool, graph_tool, symbol_tool

    config = get_env_config()
    logger.info("Initializing SenseDev analyzer...")

    registry = get_language_registry()
    engine = AnalysisEngine(parse_workers=config["parse_workers"])
    analysis_tool = AnalysisTool(
        engine=engine,
        cache=AnalysisCache(),
        job_manager=JobManager(),
        follow_gitignore=config["follow_gitignore"],
        default_excludes=config["exclude_patterns"],
        write_cache=config["write_cache"],
    )
    graph_tool = GraphTool(analysis_tool)
    symbol_tool = SymbolTool(registry)

    logger.info(
        f"Components initialized (parse_workers={config['parse_workers']}, "
        f"languages={registry.get_supported_languages()})"
    )


@mcp.tool()
async def analyze_project(
    project_path: Optional[str] = None,
    exclude_patterns: Optional[List[str]] = None,
    use_cache: bool = False,
) -> dict:
    """Analyze an Android project for sensor data flows and sensor-related issues.

    Args:
        project_path: Project root (defaults to WORKSPACE_PATH)
        exclude_patterns: Glob patterns to skip (e.g. ["*Test.kt"])
        use_cache: Reuse the saved analysis when no source file changed

    Returns:
        Dictionary with counts of classes, sensor entry points, flows and issues
    """
    if not analysis_tool:
        return {"success": False, "error": "Server not initialized"}

    project_path = project_path or get_env_config()["workspace_path"]
    return await analysis_tool.analyze_project(project_path, exclude_patterns, use_cache)


@mcp.tool()
async def start_analysis(
    project_path: Optional[str] = None,
    exclude_patterns: Optional[List[str]] = None,
) -> dict:
    """Start analyzing a project in the background.

    Args:
        project_path: Project root (defaults to WORKSPACE_PATH)
        exclude_patterns: Glob patterns to skip

    Returns:
        Dictionary with the job id to poll with get_job_status
    """
    if not analysis_tool:
        return {"success": False, "error": "Server not initialized"}

    project_path = project_path or get_env_config()["workspace_path"]
    return await analysis_tool.start_analysis_job(project_path, exclude_patterns)


@mcp.tool()
def get_job_status(job_id: str) -> dict:
    """Get status and progress of a background analysis job.

    Args:
        job_id: Job identifier returned by start_analysis

    Returns:
        Dictionary with job status, progress fraction and stage message
    """
    if not analysis_tool:
        return {"success": False, "error": "Server not initialized"}

    return analysis_tool.get_job_status(job_id)


@mcp.tool()
def list_analysis_jobs() -> dict:
    """List all background analysis jobs."""
    if not analysis_tool:
        return {"success": False, "error": "Server not initialized"}

    return analysis_tool.list_jobs()


@mcp.tool()
async def cancel_analysis_job(job_id: str) -> dict:
    """Cancel a queued or running analysis job.

    Args:
        job_id: Job identifier

    Returns:
        Dictionary with cancellation status
    """
    if not analysis_tool:
        return {"success": False, "error": "Server not initialized"}

    return await analysis_tool.cancel_job(job_id)


@mcp.tool()
def get_analysis_result(project_path: str, include_graph: bool = False) -> dict:
    """Get the latest analysis of a project, from memory or its saved cache.

    Args:
        project_path: Project root
        include_graph: Include the full graph, flows and issues

    Returns:
        Dictionary with the result summary
    """
    if not analysis_tool:
        return {"success": False, "error": "Server not initialized"}

    return analysis_tool.get_result(project_path, include_graph)


@mcp.tool()
def clear_analysis(project_path: str) -> dict:
    """Forget a project's analysis and delete its saved cache."""
    if not analysis_tool:
        return {"success": False, "error": "Server not initialized"}

    return analysis_tool.clear_analysis(project_path)


@mcp.tool()
def get_graph_summary(project_path: str) -> dict:
    """Summarize the analysis graph: nodes, edges, flows and issues by kind."""
    if not graph_tool:
        return {"success": False, "error": "Server not initialized"}

    return graph_tool.get_summary(project_path)


@mcp.tool()
def list_flows(
    project_path: str,
    sensor_type: Optional[str] = None,
    min_confidence: float = 0.0,
    limit: int = 50,
) -> dict:
    """List sensor-to-UI data flows.

    Args:
        project_path: Project root
        sensor_type: Filter by sensor type (e.g. "ACCELEROMETER", "LOCATION")
        min_confidence: Minimum confidence between 0 and 1
        limit: Maximum number of flows to return

    Returns:
        Dictionary with flows as lists of class names
    """
    if not graph_tool:
        return {"success": False, "error": "Server not initialized"}

    return graph_tool.list_flows(project_path, sensor_type, min_confidence, limit)


@mcp.tool()
def list_issues(
    project_path: str,
    severity: Optional[str] = None,
    issue_type: Optional[str] = None,
) -> dict:
    """List detected sensor issues.

    Args:
        project_path: Project root
        severity: Filter by severity ("LOW", "MEDIUM", "HIGH")
        issue_type: Filter by type (e.g. "UNREGISTERED_LISTENER")

    Returns:
        Dictionary with issues, recommendations and code references
    """
    if not graph_tool:
        return {"success": False, "error": "Server not initialized"}

    return graph_tool.list_issues(project_path, severity, issue_type)


@mcp.tool()
def describe_node(project_path: str, name: str) -> dict:
    """Describe one class node and its incoming and outgoing edges.

    Args:
        project_path: Project root
        name: Simple or qualified class name

    Returns:
        Dictionary with node details and edges
    """
    if not graph_tool:
        return {"success": False, "error": "Server not initialized"}

    return graph_tool.describe_node(project_path, name)


@mcp.tool()
def get_symbols(file_path: str, class_name: Optional[str] = None) -> dict:
    """Extract classes, methods, fields and call targets from a Kotlin or Java file.

    Args:
        file_path: Path to the source file
        class_name: Only return the class with this name

    Returns:
        Dictionary with extracted classes
    """
    if not symbol_tool:
        return {"success": False, "error": "Server not initialized"}

    return symbol_tool.get_symbols(file_path, class_name)


@mcp.tool()
def health_check() -> dict:
    """Check health status of the server components."""
    return {
        "success": True,
        "components": {
            "server": True,
            "analysis_tool": analysis_tool is not None,
            "graph_tool": graph_tool is not None,
            "symbol_tool": symbol_tool is not None,
        },
    }


if __name__ == "__main__":
    configure_logging()
    logger.info("Starting SenseDev MCP server...")
    initialize_components()

    # Blocks until shutdown
    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Server interrupted")
    except Exception as e:
        logger.error(f"Server error: {e}")
        raise
