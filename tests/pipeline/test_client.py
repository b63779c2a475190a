"""Tests for the pipeline client's run state machine."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from agentlog.models import ParseError
from agentlog.pipeline.client import PipelineClient, RunState, RunStatus
from agentlog.pipeline.messages import BatchMessage, DoneMessage, ErrorMessage, ProgressMessage
from agentlog.sources import BytesSource
from tests.helpers import SlowSource, jsonl, make_message


def _source(*texts: str, name: str = "s.jsonl") -> BytesSource:
    return BytesSource(jsonl(*({"role": "user", "content": t} for t in texts)), name=name)


@pytest.mark.asyncio
async def test_run_to_completion():
    async with PipelineClient() as client:
        run_id = client.start_from_file(_source("a", "b"))
        assert client.state.status is RunStatus.LOADING
        state = await client.wait()

    assert state.run_id == run_id
    assert state.status is RunStatus.DONE
    assert [e.text for e in state.events] == ["a", "b"]
    assert state.error_count == 0
    assert state.finished


@pytest.mark.asyncio
async def test_start_from_path(session_file):
    async with PipelineClient() as client:
        client.start_from_file(session_file)
        state = await client.wait()

    assert state.status is RunStatus.DONE
    assert state.error_count == 1
    assert state.error_samples[0].line_number == 2
    assert state.bytes_read == session_file.stat().st_size
    assert state.progress == 1.0


@pytest.mark.asyncio
async def test_missing_file_ends_in_error(tmp_path):
    async with PipelineClient() as client:
        client.start_from_file(tmp_path / "nope.jsonl")
        state = await client.wait()

    assert state.status is RunStatus.ERROR
    assert state.error_message == "File not found: nope.jsonl"
    assert state.events == []


@pytest.mark.asyncio
async def test_new_run_supersedes_in_flight_run():
    slow = SlowSource(jsonl({"role": "user", "content": "stale"}))
    async with PipelineClient() as client:
        first = client.start_from_file(slow)
        await asyncio.sleep(0.01)
        second = client.start_from_file(_source("fresh"))
        state = await client.wait()
        await asyncio.sleep(0.01)

    assert second == first + 1
    assert state.run_id == second
    assert [e.text for e in state.events] == ["fresh"]
    assert slow.closed


@pytest.mark.asyncio
async def test_stale_messages_ignored():
    async with PipelineClient() as client:
        client.start_from_file(_source("a"))
        current = client.run_id
        assert not client.apply(BatchMessage(run_id=current - 1, events=(make_message(0),)))
        assert not client.apply(DoneMessage(run_id=current + 1))
        assert client.state.events == []
        assert client.state.status is RunStatus.LOADING
        await client.wait()


@pytest.mark.asyncio
async def test_finished_run_is_frozen():
    async with PipelineClient() as client:
        client.start_from_file(_source("a"))
        state = await client.wait()
        assert not client.apply(BatchMessage(run_id=state.run_id, events=(make_message(1),)))
        assert not client.apply(ErrorMessage(run_id=state.run_id, message="late"))

    assert state.status is RunStatus.DONE
    assert len(state.events) == 1


@pytest.mark.asyncio
async def test_reset_returns_to_idle():
    updates: list[RunStatus] = []
    async with PipelineClient(on_update=lambda s: updates.append(s.status)) as client:
        client.start_from_file(_source("a"))
        done = await client.wait()
        client.reset()

        assert client.state.status is RunStatus.IDLE
        assert client.state.events == []
        assert client.run_id > done.run_id
        assert not client.apply(BatchMessage(run_id=done.run_id, events=(make_message(0),)))

    assert updates[0] is RunStatus.LOADING
    assert RunStatus.DONE in updates
    assert updates[-1] is RunStatus.IDLE


@pytest.mark.asyncio
async def test_reset_abandons_in_flight_run():
    slow = SlowSource(jsonl({"role": "user", "content": "x"}))
    async with PipelineClient() as client:
        client.start_from_file(slow)
        await asyncio.sleep(0.01)
        client.reset()
        await asyncio.sleep(0.01)
        client.drain()
        assert client.state.status is RunStatus.IDLE
        assert client.state.events == []
    assert slow.closed


@pytest.mark.asyncio
async def test_drain_applies_queued_messages():
    async with PipelineClient() as client:
        client.start_from_file(_source("a", "b", "c"))
        for _ in range(50):
            await asyncio.sleep(0)
            client.drain()
            if client.state.finished:
                break

    assert client.state.status is RunStatus.DONE
    assert len(client.state.events) == 3


@pytest.mark.asyncio
async def test_on_message_sees_only_applied_messages():
    seen: list[str] = []
    async with PipelineClient(on_message=lambda m: seen.append(m.op)) as client:
        client.start_from_file(_source("a"))
        client.apply(ProgressMessage(run_id=client.run_id + 5, bytes_read=1))
        await client.wait()

    assert seen[-1] == "done"
    assert "batch" in seen
    assert seen.count("progress") >= 1


def test_apply_error_message():
    client = PipelineClient()
    client.state = RunState(run_id=4, status=RunStatus.LOADING)
    sample = ParseError(line_number=1, message="Invalid JSON content")

    assert client.apply(ErrorMessage(run_id=4, message="Invalid JSON content", error_samples=(sample,)))

    assert client.state.status is RunStatus.ERROR
    assert client.state.error_message == "Invalid JSON content"
    assert client.state.error_count == 1
    assert client.state.error_samples == [sample]


def test_progress_overwrites_snapshot():
    client = PipelineClient()
    client.state = RunState(run_id=1, status=RunStatus.LOADING)
    client.apply(ProgressMessage(run_id=1, bytes_read=10, total_bytes=40))
    client.apply(ProgressMessage(run_id=1, bytes_read=30, total_bytes=40))
    assert client.state.bytes_read == 30
    assert client.state.progress == 0.75


def test_progress_unknown_without_total():
    assert RunState(bytes_read=10).progress is None
    assert RunState(bytes_read=10, total_bytes=0).progress is None


@pytest.mark.asyncio
async def test_start_from_url_uses_shared_http_client():
    body = jsonl({"role": "assistant", "content": "over http"})

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body, headers={"content-type": "application/json"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        async with PipelineClient(http_client=http_client) as client:
            client.start_from_url("http://logs.test/api/fs/stream?path=/x.jsonl")
            state = await client.wait()

    assert state.status is RunStatus.DONE
    assert [e.text for e in state.events] == ["over http"]
    assert state.total_bytes == len(body)
