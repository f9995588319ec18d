"""Analysis pipeline orchestration.

Stages run strictly in order: parse -> symbol table -> sensor detection ->
graph -> flows -> issues. Each stage only reads the output of the stages
before it.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from .graph.builder import GraphBuilder
from .graph.flow_extractor import FlowCancelled, FlowExtractor
from .indexer.models import ClassDescriptor, SymbolTable
from .indexer.project_indexer import ProjectIndexer
from .indexer.symbol_extractors import ExtractorRegistry
from .issues.detector import IssueDetector
from .results import AnalysisProgress, AnalysisResult
from .sensors.detector import SensorDetector

logger = logging.getLogger(__name__)

NO_SOURCES_MESSAGE = "No Kotlin or Java files found in project"

ProgressCallback = Callable[[AnalysisProgress], None]


class AnalysisCancelled(Exception):
    """Raised when a run is cancelled through its cancel event."""


class AnalysisEngine:
    """Runs the full analysis pipeline over a set of source files."""

    def __init__(
        self,
        parse_workers: int = 1,
        project_indexer: Optional[ProjectIndexer] = None,
        sensor_detector: Optional[SensorDetector] = None,
        graph_builder: Optional[GraphBuilder] = None,
        issue_detector: Optional[IssueDetector] = None,
    ):
        """Initialize analysis engine.

        Args:
            parse_workers: Thread-pool size for file parsing (1 parses inline)
            project_indexer: Indexer used by analyze_project
            sensor_detector: Sensor entry-point detector
            graph_builder: Graph builder
            issue_detector: Issue detector
        """
        self.parse_workers = max(1, parse_workers)
        self.project_indexer = project_indexer or ProjectIndexer()
        self.sensor_detector = sensor_detector or SensorDetector()
        self.graph_builder = graph_builder or GraphBuilder()
        self.issue_detector = issue_detector or IssueDetector()

    def analyze_project(
        self,
        project_path: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """Index a project directory and analyze every source file in it.

        Args:
            project_path: Root of the project
            on_progress: Optional progress callback
            cancel_event: Optional event that cancels the run when set

        Returns:
            Analysis result

        Raises:
            AnalysisCancelled: If cancel_event was set during the run
        """
        logger.info(f"Analyzing project {project_path}")
        try:
            index = self.project_indexer.index_project(project_path)
        except Exception as e:
            logger.error(f"Indexing {project_path} failed: {e}", exc_info=True)
            return AnalysisResult.failure(f"Analysis failed: {e}")

        return self.analyze_files(
            index.kotlin_files,
            index.java_files,
            project_path=project_path,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    def analyze_files(
        self,
        kotlin_files: List[str],
        java_files: List[str],
        project_path: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """Analyze an explicit set of Kotlin and Java files.

        Failures never raise: they come back as a result with
        ``success=False`` and an error message. Only cancellation raises.

        Args:
            kotlin_files: Kotlin source paths
            java_files: Java source paths
            project_path: Project root recorded on the result
            on_progress: Optional progress callback
            cancel_event: Optional event that cancels the run when set

        Returns:
            Analysis result

        Raises:
            AnalysisCancelled: If cancel_event was set during the run
        """

        def report(fraction: float, message: str) -> None:
            if on_progress is not None:
                on_progress(AnalysisProgress(fraction, message))

        def check_cancelled() -> None:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Analysis cancelled")
                raise AnalysisCancelled()

        try:
            total_files = len(kotlin_files) + len(java_files)
            report(0.1, f"Found {total_files} source files")
            if total_files == 0:
                logger.warning(NO_SOURCES_MESSAGE)
                return AnalysisResult.failure(NO_SOURCES_MESSAGE)

            check_cancelled()
            report(0.3, f"Parsing {total_files} files...")
            classes = self._parse_files(kotlin_files, java_files, check_cancelled)
            symbols = SymbolTable.build(classes)
            logger.info(f"Extracted {len(classes)} classes from {total_files} files")

            check_cancelled()
            entry_points = self.sensor_detector.detect(classes)
            report(0.5, "Detected sensor API usage")

            check_cancelled()
            graph = self.graph_builder.build(symbols, entry_points)
            report(0.7, "Built call graph")

            check_cancelled()
            try:
                flows = FlowExtractor(cancel_event).extract(graph)
            except FlowCancelled:
                raise AnalysisCancelled() from None
            report(0.8, "Extracted data flows")

            check_cancelled()
            issues = self.issue_detector.detect(symbols, graph)
            report(0.9, "Detected issues")

            result = AnalysisResult(
                success=True,
                project_path=project_path,
                graph=graph,
                flows=flows,
                issues=issues,
                total_files=total_files,
                total_classes=len(classes),
                sensor_count=len(entry_points),
            )
            report(1.0, "Analysis complete")
            logger.info(
                f"Analysis complete: {result.total_classes} classes, {len(flows)} flows, "
                f"{len(issues)} issues"
            )
            return result

        except AnalysisCancelled:
            raise
        except Exception as e:
            logger.error(f"Analysis failed: {e}", exc_info=True)
            return AnalysisResult.failure(f"Analysis failed: {e}")

    def _parse_files(
        self,
        kotlin_files: List[str],
        java_files: List[str],
        check_cancelled: Callable[[], None],
    ) -> List[ClassDescriptor]:
        """Extract every file; results are merged in path order."""
        work: List[Tuple[str, str]] = sorted(
            [(path, "kotlin") for path in kotlin_files] + [(path, "java") for path in java_files]
        )

        def extract(item: Tuple[str, str]) -> List[ClassDescriptor]:
            path, language = item
            extractor = ExtractorRegistry.get_extractor(language)
            if extractor is None:
                logger.warning(f"No extractor for {language}, skipping {path}")
                return []
            return extractor.extract(path)

        classes: List[ClassDescriptor] = []
        if self.parse_workers == 1:
            for item in work:
                check_cancelled()
                classes.extend(extract(item))
            return classes

        with ThreadPoolExecutor(max_workers=self.parse_workers) as pool:
            futures = [pool.submit(extract, item) for item in work]
            try:
                for future in futures:
                    check_cancelled()
                    classes.extend(future.result())
            except AnalysisCancelled:
                for future in futures:
                    future.cancel()
                raise
        return classes
