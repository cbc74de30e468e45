"""Tests for binding the core to an event-based agent channel."""

from __future__ import annotations

from typing import Any

import pytest

from frontdesk.context import SessionContext
from frontdesk.router import ToolCallRouter
from frontdesk.session import TOOLCALL_EVENT, ToolCallSession
from frontdesk.tools.scheduling import BookAppointmentHandler, GetScheduleHandler


class FakeChannel:
    """Minimal agent connection: an event registry plus a sent-message log."""

    def __init__(self) -> None:
        self.listeners: dict[str, list[Any]] = {}
        self.sent: list[dict[str, Any]] = []

    def on(self, event: str, listener: Any) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Any) -> None:
        self.listeners[event].remove(listener)

    async def send_tool_response(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)

    async def fire(self, event: str, payload: Any) -> None:
        for listener in list(self.listeners.get(event, [])):
            await listener(payload)


def _router() -> ToolCallRouter:
    return ToolCallRouter([GetScheduleHandler(), BookAppointmentHandler()])


@pytest.mark.asyncio
async def test_attached_session_answers_batches() -> None:
    channel = FakeChannel()
    session = ToolCallSession(channel, _router())
    session.attach()

    await channel.fire(
        TOOLCALL_EVENT,
        {
            "functionCalls": [
                {"name": "get_schedule", "id": "call-1", "args": {"doctorName": "priya"}},
                {"name": "render_altair", "id": "call-2", "args": {}},
            ]
        },
    )

    assert len(channel.sent) == 1
    responses = channel.sent[0]["functionResponses"]
    assert [r["id"] for r in responses] == ["call-1"]
    output = responses[0]["response"]["output"]
    assert output["success"] is True
    assert output["data"][0]["doctorId"] == "D003"


@pytest.mark.asyncio
async def test_detached_session_stops_listening() -> None:
    channel = FakeChannel()
    session = ToolCallSession(channel, _router())

    async with session:
        assert session.attached
        assert channel.listeners[TOOLCALL_EVENT] == [session.on_tool_call]

    assert not session.attached
    assert channel.listeners[TOOLCALL_EVENT] == []
    await channel.fire(
        TOOLCALL_EVENT, {"functionCalls": [{"name": "get_schedule", "id": "x"}]}
    )
    assert channel.sent == []


@pytest.mark.asyncio
async def test_attach_is_idempotent() -> None:
    channel = FakeChannel()
    session = ToolCallSession(channel, _router())
    session.attach()
    session.attach()

    assert len(channel.listeners[TOOLCALL_EVENT]) == 1


@pytest.mark.asyncio
async def test_batch_with_no_known_calls_sends_nothing() -> None:
    channel = FakeChannel()
    async with ToolCallSession(channel, _router()):
        await channel.fire(
            TOOLCALL_EVENT, {"functionCalls": [{"name": "googleSearch", "id": "g"}]}
        )

    assert channel.sent == []


@pytest.mark.asyncio
async def test_injected_context_is_used() -> None:
    context = SessionContext(session_id="s-1", primary_resource_id="p-1")
    session = ToolCallSession(FakeChannel(), _router(), context=context)

    assert session.context is context


@pytest.mark.asyncio
async def test_malformed_call_does_not_sink_the_batch() -> None:
    channel = FakeChannel()
    async with ToolCallSession(channel, _router()):
        await channel.fire(
            TOOLCALL_EVENT,
            {
                "functionCalls": [
                    {"name": "get_schedule", "id": "ok-1", "args": {}},
                    {"name": "googleSearch", "id": "x", "args": None},
                    {"name": "book_appointment", "id": 7, "args": {}},
                    {"id": "no-name"},
                ]
            },
        )

    assert len(channel.sent) == 1
    responses = channel.sent[0]["functionResponses"]
    assert [r["id"] for r in responses] == ["ok-1"]
    assert responses[0]["response"]["output"]["success"] is True


@pytest.mark.asyncio
async def test_null_args_are_treated_as_empty() -> None:
    channel = FakeChannel()
    async with ToolCallSession(channel, _router()):
        await channel.fire(
            TOOLCALL_EVENT,
            {"functionCalls": [{"name": "get_schedule", "id": "s", "args": None}]},
        )

    output = channel.sent[0]["functionResponses"][0]["response"]["output"]
    assert output["success"] is True
    assert len(output["data"]) == 4


@pytest.mark.asyncio
async def test_unreadable_batch_sends_nothing() -> None:
    channel = FakeChannel()
    async with ToolCallSession(channel, _router()):
        await channel.fire(TOOLCALL_EVENT, {"functionCalls": "get_schedule"})

    assert channel.sent == []
