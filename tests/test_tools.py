"""Tests for the MCP-facing tool classes."""

import asyncio
import threading

import pytest

from sensedev.cache.analysis_cache import AnalysisCache
from sensedev.engine import NO_SOURCES_MESSAGE, AnalysisEngine
from sensedev.indexer.job_manager import JobManager
from sensedev.tools.analysis_tool import AnalysisTool
from sensedev.tools.graph_tool import GraphTool
from sensedev.tools.symbol_tool import SymbolTool
from tests._fixtures.project_builder import SENSOR_PROJECT


def make_tool(**kwargs) -> AnalysisTool:
    return AnalysisTool(
        engine=AnalysisEngine(), cache=AnalysisCache(), job_manager=JobManager(), **kwargs
    )


@pytest.fixture
def sensor_project(project_builder):
    project_builder.write(SENSOR_PROJECT)
    return project_builder


@pytest.fixture
def analysed(sensor_project):
    tool = make_tool()
    response = asyncio.run(tool.analyze_project(sensor_project.path()))
    assert response["success"], response
    return tool, sensor_project.path()


def test_analyze_project_summary(sensor_project) -> None:
    tool = make_tool()

    response = asyncio.run(tool.analyze_project(sensor_project.path()))

    assert response == {
        "success": True,
        "cached": False,
        "project_path": sensor_project.path(),
        "total_files": 3,
        "total_classes": 3,
        "sensor_count": 2,
        "nodes": 3,
        "edges": 5,
        "flows": 1,
        "issues": 1,
    }
    assert tool.cache.has_cached_analysis(sensor_project.path())


def test_fresh_cache_is_reused(analysed) -> None:
    _, path = analysed
    other = make_tool()

    response = asyncio.run(other.analyze_project(path, use_cache=True))

    assert response["success"] and response["cached"]
    assert response["flows"] == 1


def test_cache_freshness_is_checked_off_the_event_loop(analysed, monkeypatch) -> None:
    _, path = analysed
    other = make_tool()
    threads = []
    is_stale = other.cache.is_stale

    def recording_is_stale(*args):
        threads.append(threading.get_ident())
        return is_stale(*args)

    monkeypatch.setattr(other.cache, "is_stale", recording_is_stale)

    response = asyncio.run(other.analyze_project(path, use_cache=True))

    assert response["cached"]
    assert threads and threads[0] != threading.get_ident()


def test_changed_sources_bypass_cache(analysed, sensor_project) -> None:
    _, path = analysed
    sensor_project.write({"Extra.kt": "class Extra"})

    response = asyncio.run(make_tool().analyze_project(path, use_cache=True))

    assert response["success"] and not response["cached"]
    assert response["total_files"] == 4


def test_write_cache_disabled(sensor_project) -> None:
    tool = make_tool(write_cache=False)
    asyncio.run(tool.analyze_project(sensor_project.path()))
    assert not tool.cache.has_cached_analysis(sensor_project.path())


def test_exclude_patterns_reach_the_indexer(sensor_project) -> None:
    tool = make_tool(default_excludes=["*Activity.kt"])

    response = asyncio.run(tool.analyze_project(sensor_project.path(), ["*ViewModel.kt"]))

    assert response["total_files"] == 1
    assert response["flows"] == 0


def test_analyze_errors(tmp_path, project_builder) -> None:
    tool = make_tool()

    missing = asyncio.run(tool.analyze_project(str(tmp_path / "missing")))
    empty = asyncio.run(tool.analyze_project(project_builder.path()))

    assert not missing["success"] and "does not exist" in missing["error"]
    assert empty == {"success": False, "error": NO_SOURCES_MESSAGE}
    assert tool.get_result(project_builder.path())["success"] is False


def test_background_job(sensor_project) -> None:
    tool = make_tool()

    async def run():
        started = await tool.start_analysis_job(sensor_project.path())
        job = tool.job_manager.get_job(started["job_id"])
        outcome = await job.task
        return started, outcome

    started, outcome = asyncio.run(run())
    status = tool.get_job_status(started["job_id"])

    assert started["status"] == "queued"
    assert outcome["success"] and outcome["flows"] == 1
    assert status["status"] == "completed"
    assert status["progress"]["fraction"] == 1.0
    assert status["summary"]["issues"] == 1
    assert tool.list_jobs()["total_jobs"] == 1
    assert tool.get_result(sensor_project.path())["source"] == "memory"


def test_background_job_failure(project_builder) -> None:
    tool = make_tool()

    async def run():
        started = await tool.start_analysis_job(project_builder.path())
        await tool.job_manager.get_job(started["job_id"]).task
        return started["job_id"]

    job_id = asyncio.run(run())
    status = tool.get_job_status(job_id)

    assert status["status"] == "failed"
    assert status["error"] == NO_SOURCES_MESSAGE


def test_cancelled_job_does_not_store_a_result(sensor_project) -> None:
    tool = make_tool()

    async def run():
        job = tool.job_manager.create_job(sensor_project.path())
        cancelled = await tool.cancel_job(job.job_id)
        outcome = await tool.analyze_project_with_progress(job.job_id, sensor_project.path())
        return job, cancelled, outcome

    job, cancelled, outcome = asyncio.run(run())

    assert cancelled == {"success": True, "job_id": job.job_id, "status": "cancelled"}
    assert outcome == {"success": False, "error": "Analysis cancelled"}
    assert tool.get_job_status(job.job_id)["status"] == "cancelled"
    assert tool.get_result(sensor_project.path())["success"] is False


def test_unknown_jobs() -> None:
    tool = make_tool()

    assert not tool.get_job_status("nope")["success"]
    assert not asyncio.run(tool.cancel_job("nope"))["success"]
    assert not asyncio.run(tool.analyze_project_with_progress("nope", "/tmp"))["success"]


def test_result_from_memory_then_cache(analysed) -> None:
    tool, path = analysed

    in_memory = tool.get_result(path, include_graph=True)
    from_cache = make_tool().get_result(path)

    assert in_memory["source"] == "memory"
    assert len(in_memory["result"]["graph"]["nodes"]) == 3
    assert from_cache["source"] == "cache"
    assert "result" not in from_cache
    assert from_cache["flows"] == 1


def test_clear_analysis(analysed) -> None:
    tool, path = analysed

    assert tool.clear_analysis(path) == {"success": True, "project_path": path}
    assert not tool.get_result(path)["success"]
    assert not tool.cache.has_cached_analysis(path)


def test_graph_summary(analysed) -> None:
    tool, path = analysed

    summary = GraphTool(tool).get_summary(path)

    assert summary["nodes_by_type"] == {"UI": 1, "SENSOR_SOURCE": 1, "VIEWMODEL": 1}
    assert summary["edges_by_type"] == {
        "CALLS": 1,
        "USES_SENSOR_DATA": 1,
        "DATA_FLOW": 1,
        "WRITES_STATE": 2,
    }
    assert summary["flows_by_sensor"] == {"OTHER": 1}
    assert summary["issues_by_severity"] == {"HIGH": 1}


def test_list_flows(analysed) -> None:
    tool, path = analysed
    graph_tool = GraphTool(tool)

    flows = graph_tool.list_flows(path)
    assert flows["total_flows"] == 1
    assert flows["flows"][0]["path"] == ["TestRepository", "TestViewModel", "TestActivity"]
    assert flows["flows"][0]["confidence"] == 0.9

    assert graph_tool.list_flows(path, sensor_type="other")["total_flows"] == 1
    assert graph_tool.list_flows(path, sensor_type="location")["total_flows"] == 0
    assert graph_tool.list_flows(path, min_confidence=0.95)["total_flows"] == 0
    assert graph_tool.list_flows(path, limit=0)["flows"] == []
    assert not graph_tool.list_flows(path, sensor_type="sonar")["success"]


def test_list_issues(analysed) -> None:
    tool, path = analysed
    graph_tool = GraphTool(tool)

    issues = graph_tool.list_issues(path, severity="high")
    assert issues["total_issues"] == 1
    assert issues["issues"][0]["type"] == "UNREGISTERED_LISTENER"
    assert issues["issues"][0]["nodes"] == ["TestRepository"]

    assert graph_tool.list_issues(path, issue_type="privacy_leak")["total_issues"] == 0
    assert not graph_tool.list_issues(path, severity="urgent")["success"]


def test_describe_node(analysed) -> None:
    tool, path = analysed
    graph_tool = GraphTool(tool)

    described = graph_tool.describe_node(path, "com.example.test.TestViewModel")

    assert described["node"]["type"] == "VIEWMODEL"
    assert [(e["type"], e["to"]) for e in described["outgoing"]] == [
        ("USES_SENSOR_DATA", "TestRepository"),
        ("WRITES_STATE", "TestActivity"),
        ("WRITES_STATE", "TestViewModel"),
    ]
    assert [(e["type"], e["from"]) for e in described["incoming"]] == [
        ("CALLS", "TestActivity"),
        ("DATA_FLOW", "TestRepository"),
        ("WRITES_STATE", "TestViewModel"),
    ]
    assert described["outgoing"][0]["location"]["file_path"].endswith("TestViewModel.kt")
    assert not graph_tool.describe_node(path, "Nowhere")["success"]


def test_graph_queries_without_analysis(tmp_path) -> None:
    graph_tool = GraphTool(make_tool())

    assert not graph_tool.get_summary(str(tmp_path))["success"]
    assert not graph_tool.list_flows(str(tmp_path))["success"]


def test_get_symbols(project_builder) -> None:
    (path, text_file) = project_builder.write(
        {
            "Screen.kt": """
                package com.example

                class Screen {
                    fun render() {}
                }

                class Other
            """,
            "notes.txt": "hello",
        }
    )
    tool = SymbolTool()

    response = tool.get_symbols(path)
    assert response["success"]
    assert response["language"] == "kotlin"
    assert response["total_classes"] == 2
    assert response["total_methods"] == 1

    filtered = tool.get_symbols(path, class_name="Screen")
    assert [c["name"] for c in filtered["classes"]] == ["Screen"]

    assert "Unsupported" in tool.get_symbols(text_file)["error"]
    assert "not found" in tool.get_symbols(path + ".missing")["error"]
