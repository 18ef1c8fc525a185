"""Unit tests for CompletionStreamController."""

import pytest

from postdraft.editor.controller import CompletionStreamController
from postdraft.models.completion import CompletionStatus
from postdraft.services.exceptions import AlreadyStreaming, NetworkError, RateLimited


class RecordingListener:
    """Collects controller events as (name, accumulated) tuples."""

    def __init__(self):
        self.events = []
        self.errors = []

    def completion_updated(self, session):
        self.events.append(("updated", session.accumulated))

    def completion_finished(self, session):
        self.events.append(("finished", session.accumulated))

    def completion_failed(self, session, error):
        self.events.append(("failed", session.accumulated))
        self.errors.append(error)

    def completion_cancelled(self, session):
        self.events.append(("cancelled", session.accumulated))


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def controller(stream, listener):
    return CompletionStreamController(stream, listener)


class TestStreaming:
    """Test chunk delivery and completion."""

    @pytest.mark.asyncio
    async def test_updates_arrive_in_order(self, controller, stream, listener):
        session = controller.start("prompt")
        stream.push("wor", "ld", ", friend", stream.END)

        await controller.wait()

        assert listener.events == [
            ("updated", "wor"),
            ("updated", "world"),
            ("updated", "world, friend"),
            ("finished", "world, friend"),
        ]
        assert session.status == CompletionStatus.FINISHED
        assert stream.prompts == ["prompt"]

    @pytest.mark.asyncio
    async def test_completion_property_reports_text_so_far(self, controller, stream, settle):
        assert controller.completion == ""

        controller.start("prompt")
        stream.push("Hi")
        await settle()

        assert controller.completion == "Hi"
        assert controller.is_streaming

        stream.push(stream.END)
        await controller.wait()
        assert not controller.is_streaming

    @pytest.mark.asyncio
    async def test_second_start_while_streaming_is_rejected(self, controller, stream):
        first = controller.start("one")

        with pytest.raises(AlreadyStreaming):
            controller.start("two")

        assert controller.session is first
        stream.push(stream.END)
        await controller.wait()

    @pytest.mark.asyncio
    async def test_new_start_after_finish(self, controller, stream):
        controller.start("one")
        stream.push(stream.END)
        await controller.wait()

        stream.next_stream()
        second = controller.start("two")
        stream.push("x", stream.END)
        await controller.wait()

        assert second.accumulated == "x"
        assert stream.prompts == ["one", "two"]


class TestCancellation:
    """Test cancel()."""

    @pytest.mark.asyncio
    async def test_cancel_stops_updates(self, controller, stream, listener, settle):
        session = controller.start("prompt")
        stream.push("world")
        await settle()

        controller.cancel()
        stream.push(", friend", stream.END)
        await controller.wait()

        assert session.status == CompletionStatus.CANCELLED
        assert session.accumulated == "world"
        assert listener.events == [("updated", "world"), ("cancelled", "world")]
        assert stream.closed == 1

    @pytest.mark.asyncio
    async def test_cancel_when_idle_does_nothing(self, controller, listener):
        controller.cancel()

        assert listener.events == []

    @pytest.mark.asyncio
    async def test_cancel_twice_reports_once(self, controller, stream, listener):
        controller.start("prompt")

        controller.cancel()
        controller.cancel()
        await controller.wait()

        assert listener.events == [("cancelled", "")]


class TestFailures:
    """Test error translation into Failed sessions."""

    @pytest.mark.asyncio
    async def test_completion_error_fails_session(self, controller, stream, listener):
        session = controller.start("prompt")
        stream.push("par", RateLimited("limit reached"))

        await controller.wait()

        assert session.status == CompletionStatus.FAILED
        assert session.failure.kind == "rate_limited"
        assert listener.events[-1] == ("failed", "par")
        assert isinstance(listener.errors[0], RateLimited)

    @pytest.mark.asyncio
    async def test_network_error_fails_session(self, controller, stream, listener):
        session = controller.start("prompt")
        stream.push(NetworkError("connection reset"))

        await controller.wait()

        assert session.failure.kind == "network_error"
        assert session.failure.message == "connection reset"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_upstream_error(self, controller, stream, listener):
        session = controller.start("prompt")
        stream.push(RuntimeError("boom"))

        await controller.wait()

        assert session.status == CompletionStatus.FAILED
        assert session.failure.kind == "upstream_error"
        assert "boom" in session.failure.message
