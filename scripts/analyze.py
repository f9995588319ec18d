#!/usr/bin/env python3
"""Standalone analyzer script - analyzes one project, prints a JSON summary and exits."""

import json
import logging
import os
import sys
from pathlib import Path

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Main analyzer function."""
    try:
        # Import here to avoid issues if running from different context
        from sensedev.cache.analysis_cache import AnalysisCache
        from sensedev.engine import AnalysisEngine
        from sensedev.indexer.project_indexer import ProjectIndexer

        # Get configuration from environment; a path argument overrides WORKSPACE_PATH
        workspace_path = os.getenv("WORKSPACE_PATH", "/workspace")
        if len(sys.argv) > 1:
            workspace_path = sys.argv[1]
        parse_workers = int(os.getenv("PARSE_WORKERS", "1"))
        follow_gitignore = os.getenv("FOLLOW_GITIGNORE", "true").lower() == "true"
        write_cache = os.getenv("WRITE_CACHE", "true").lower() == "true"
        exclude_patterns = [
            p.strip() for p in os.getenv("EXCLUDE_PATTERNS", "").split(",") if p.strip()
        ]

        logger.info(f"Starting analysis of: {workspace_path}")
        logger.info(f"Parse workers: {parse_workers}")
        if exclude_patterns:
            logger.info(f"Exclude patterns: {exclude_patterns}")

        if not Path(workspace_path).is_dir():
            logger.error(f"Project path does not exist: {workspace_path}")
            return 1

        indexer = ProjectIndexer(
            exclude_patterns=exclude_patterns, follow_gitignore=follow_gitignore
        )
        index = indexer.index_project(workspace_path)

        engine = AnalysisEngine(parse_workers=parse_workers)
        result = engine.analyze_files(
            index.kotlin_files,
            index.java_files,
            project_path=workspace_path,
            on_progress=lambda p: logger.info(f"[{p.fraction:.0%}] {p.message}"),
        )

        if not result.success:
            logger.error(result.error_message)
            print(json.dumps({"success": False, "error": result.error_message}, indent=2))
            return 1

        if write_cache:
            AnalysisCache().save_analysis(result, workspace_path, index.all_files)

        summary = {
            "success": True,
            "project_path": workspace_path,
            "total_files": result.total_files,
            "total_classes": result.total_classes,
            "sensor_count": result.sensor_count,
            "nodes": len(result.graph.nodes),
            "edges": len(result.graph.edges),
            "flows": len(result.flows),
            "issues": [
                {
                    "type": issue.type.value,
                    "severity": issue.severity.value,
                    "description": issue.description,
                }
                for issue in result.issues
            ],
        }
        print(json.dumps(summary, indent=2))
        logger.info("Analysis complete!")
        return 0

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
