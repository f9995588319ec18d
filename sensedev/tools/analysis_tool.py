"""MCP tool for running and managing project analyses."""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..cache.analysis_cache import AnalysisCache
from ..engine import AnalysisCancelled, AnalysisEngine
from ..indexer.job_manager import JobManager
from ..indexer.project_indexer import ProjectIndexer
from ..results import AnalysisProgress, AnalysisResult

logger = logging.getLogger(__name__)


def result_summary(result: AnalysisResult) -> dict:
    """Compact, JSON-friendly description of a successful result."""
    return {
        "project_path": result.project_path,
        "total_files": result.total_files,
        "total_classes": result.total_classes,
        "sensor_count": result.sensor_count,
        "nodes": len(result.graph.nodes) if result.graph else 0,
        "edges": len(result.graph.edges) if result.graph else 0,
        "flows": len(result.flows),
        "issues": len(result.issues),
    }


class AnalysisTool:
    """Tool for analyzing projects, synchronously or as background jobs."""

    def __init__(
        self,
        engine: AnalysisEngine,
        cache: AnalysisCache,
        job_manager: Optional[JobManager] = None,
        follow_gitignore: bool = True,
        default_excludes: Optional[List[str]] = None,
        write_cache: bool = True,
    ):
        """Initialize analysis tool.

        Args:
            engine: Analysis engine
            cache: Result cache
            job_manager: Optional job manager for background analysis
            follow_gitignore: Whether project .gitignore files are honoured
            default_excludes: Glob patterns always excluded
            write_cache: Whether successful results are persisted
        """
        self.engine = engine
        self.cache = cache
        self.job_manager = job_manager or JobManager()
        self.follow_gitignore = follow_gitignore
        self.default_excludes = list(default_excludes or [])
        self.write_cache = write_cache
        self.results: Dict[str, AnalysisResult] = {}

    @staticmethod
    def _key(project_path: str) -> str:
        return str(Path(project_path).resolve())

    def _indexer(self, exclude_patterns: Optional[List[str]]) -> ProjectIndexer:
        return ProjectIndexer(
            exclude_patterns=self.default_excludes + list(exclude_patterns or []),
            follow_gitignore=self.follow_gitignore,
        )

    def _fresh_cached(
        self, project_path: str, exclude_patterns: Optional[List[str]]
    ) -> Optional[AnalysisResult]:
        """The cached result if the project's sources are unchanged; runs in a worker thread."""
        if not self.cache.has_cached_analysis(project_path):
            return None
        files = self._indexer(exclude_patterns).index_project(project_path).all_files
        if self.cache.is_stale(project_path, files):
            return None
        cached = self.cache.load_analysis(project_path)
        if cached is None or not cached.success:
            return None
        return cached

    def _run(
        self,
        project_path: str,
        exclude_patterns: Optional[List[str]],
        on_progress=None,
        cancel_event=None,
    ) -> AnalysisResult:
        """Index and analyze; runs in a worker thread."""
        index = self._indexer(exclude_patterns).index_project(project_path)
        result = self.engine.analyze_files(
            index.kotlin_files,
            index.java_files,
            project_path=project_path,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )
        if result.success:
            # Only a successful run replaces what is loaded and cached
            self.results[self._key(project_path)] = result
            if self.write_cache:
                self.cache.save_analysis(result, project_path, index.all_files)
        return result

    async def analyze_project(
        self,
        project_path: str,
        exclude_patterns: Optional[List[str]] = None,
        use_cache: bool = False,
    ) -> dict:
        """Analyze a project and wait for the result.

        Args:
            project_path: Path to the project root
            exclude_patterns: Extra glob patterns to exclude
            use_cache: Return the cached result when it is still fresh

        Returns:
            Dictionary with the result summary
        """
        logger.info(f"Starting analysis: {project_path}")
        if not Path(project_path).is_dir():
            return {"success": False, "error": f"Project path does not exist: {project_path}"}

        try:
            if use_cache:
                cached = await asyncio.to_thread(self._fresh_cached, project_path, exclude_patterns)
                if cached is not None:
                    self.results[self._key(project_path)] = cached
                    return {"success": True, "cached": True, **result_summary(cached)}

            result = await asyncio.to_thread(self._run, project_path, exclude_patterns)
            if not result.success:
                return {"success": False, "error": result.error_message}
            return {"success": True, "cached": False, **result_summary(result)}

        except Exception as e:
            logger.error(f"Error analyzing {project_path}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def analyze_project_with_progress(
        self,
        job_id: str,
        project_path: str,
        exclude_patterns: Optional[List[str]] = None,
    ) -> dict:
        """Analyze a project while reporting progress to a job.

        Args:
            job_id: Job identifier for progress tracking
            project_path: Path to the project root
            exclude_patterns: Extra glob patterns to exclude

        Returns:
            Dictionary with the result summary
        """
        job = self.job_manager.get_job(job_id)
        if job is None:
            return {"success": False, "error": f"Job not found: {job_id}"}

        try:
            await self.job_manager.mark_started(job_id)

            if not Path(project_path).is_dir():
                error_msg = f"Project path does not exist: {project_path}"
                await self.job_manager.mark_failed(job_id, error_msg)
                return {"success": False, "error": error_msg}

            loop = asyncio.get_running_loop()

            def on_progress(progress: AnalysisProgress) -> None:
                # Called from the worker thread
                asyncio.run_coroutine_threadsafe(
                    self.job_manager.update_progress(job_id, progress.fraction, progress.message),
                    loop,
                )

            result = await asyncio.to_thread(
                self._run, project_path, exclude_patterns, on_progress, job.cancel_event
            )

            if not result.success:
                await self.job_manager.mark_failed(job_id, result.error_message or "unknown error")
                return {"success": False, "error": result.error_message}

            summary = result_summary(result)
            await self.job_manager.mark_completed(job_id, summary)
            return {"success": True, **summary}

        except AnalysisCancelled:
            logger.info(f"Analysis job {job_id} stopped after cancellation")
            await self.job_manager.cancel_job(job_id)
            return {"success": False, "error": "Analysis cancelled"}
        except Exception as e:
            error_msg = str(e)
            logger.error(f"Error during analysis job {job_id}: {e}", exc_info=True)
            await self.job_manager.mark_failed(job_id, error_msg)
            return {"success": False, "error": error_msg}

    async def start_analysis_job(
        self,
        project_path: str,
        exclude_patterns: Optional[List[str]] = None,
    ) -> dict:
        """Start an analysis in the background.

        Args:
            project_path: Path to the project root
            exclude_patterns: Extra glob patterns to exclude

        Returns:
            Dictionary with job information
        """
        job = self.job_manager.create_job(project_path)
        job.task = asyncio.create_task(
            self.analyze_project_with_progress(job.job_id, project_path, exclude_patterns)
        )
        logger.info(f"Started background analysis job {job.job_id} for {project_path}")

        return {
            "success": True,
            "job_id": job.job_id,
            "project_path": project_path,
            "status": job.status.value,
            "message": f"Background analysis started for '{project_path}'",
        }

    def get_job_status(self, job_id: str) -> dict:
        job = self.job_manager.get_job(job_id)
        if job is None:
            return {"success": False, "error": f"Job not found: {job_id}"}
        return {"success": True, **self.job_manager.get_status_dict(job)}

    def list_jobs(self) -> dict:
        jobs = [self.job_manager.get_status_dict(job) for job in self.job_manager.list_jobs()]
        return {"success": True, "total_jobs": len(jobs), "jobs": jobs}

    async def cancel_job(self, job_id: str) -> dict:
        if await self.job_manager.cancel_job(job_id):
            return {"success": True, "job_id": job_id, "status": "cancelled"}
        return {"success": False, "error": f"Job {job_id} not found or already finished"}

    def get_loaded_result(self, project_path: str) -> Optional[AnalysisResult]:
        """The in-memory result for a project, falling back to its cache file."""
        key = self._key(project_path)
        result = self.results.get(key)
        if result is not None:
            return result
        result = self.cache.load_analysis(project_path)
        if result is not None:
            self.results[key] = result
        return result

    def get_result(self, project_path: str, include_graph: bool = False) -> dict:
        """Get the latest result for a project.

        Args:
            project_path: Path to the project root
            include_graph: Include the full serialized result

        Returns:
            Dictionary with the result summary (and the full result if requested)
        """
        try:
            in_memory = self._key(project_path) in self.results
            result = self.get_loaded_result(project_path)
            if result is None:
                return {"success": False, "error": f"No analysis available for {project_path}"}

            response = {
                "success": True,
                "source": "memory" if in_memory else "cache",
                **result_summary(result),
            }
            if include_graph:
                response["result"] = result.to_dict()
            return response

        except Exception as e:
            logger.error(f"Error loading result for {project_path}: {e}")
            return {"success": False, "error": str(e)}

    def clear_analysis(self, project_path: str) -> dict:
        """Forget the in-memory result and delete the cache file."""
        self.results.pop(self._key(project_path), None)
        if not self.cache.clear_cache(project_path):
            return {"success": False, "error": f"Could not clear cache for {project_path}"}
        return {"success": True, "project_path": project_path}
