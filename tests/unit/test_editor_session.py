"""Unit tests for EditorSession, the per-document completion engine."""

import pytest

from postdraft.editor.session import EditorSession
from postdraft.models.completion import CompletionStatus
from postdraft.models.document import Document
from postdraft.services.exceptions import AlreadyStreaming, NetworkError, RateLimited


@pytest.fixture
def document():
    return Document.from_text("Hello ")


@pytest.fixture
def changes():
    return []


@pytest.fixture
def session(document, stream, notifications, changes):
    _, notify = notifications
    return EditorSession(
        document,
        stream,
        metadata=lambda: ("My Trip", "Notes"),
        notify=notify,
        on_change=lambda: changes.append(document.text),
    )


def type_text(document, session, text):
    document.insert(document.cursor, text)
    return session.document_changed()


class TestTrigger:
    """Test starting completions from the trigger."""

    @pytest.mark.asyncio
    async def test_trigger_removes_text_and_starts_completion(self, document, session, stream):
        event = type_text(document, session, "++")

        assert event is not None
        assert document.text == "Hello "
        assert session.is_streaming
        assert session.session.prompt == event.prompt
        assert event.prompt == "Title: My Trip\n Description: Notes\n\n Hello "

    @pytest.mark.asyncio
    async def test_plain_edit_reports_change(self, document, session, changes):
        assert type_text(document, session, "w") is None

        assert changes == ["Hello w"]
        assert not session.is_streaming

    @pytest.mark.asyncio
    async def test_trigger_while_streaming_is_plain_text(self, document, session, stream, settle):
        type_text(document, session, "++")
        stream.push("world")
        await settle()

        assert type_text(document, session, "++") is None

        assert document.text == "Hello world++"
        assert len(stream.prompts) == 1

    @pytest.mark.asyncio
    async def test_start_while_streaming_raises_and_keeps_anchor(self, document, session, stream, settle):
        type_text(document, session, "++")
        anchor = session.session.anchor

        with pytest.raises(AlreadyStreaming):
            session.start_completion("again")

        assert [p for p in document._tracked if p is anchor] == [anchor]
        assert len(document._tracked) == 1

        document.insert(0, ">> ")
        stream.push("world")
        await settle()

        assert anchor.offset == 9
        assert document.text == ">> Hello world"


class TestStreamedText:
    """Test how streamed text lands in the document."""

    @pytest.mark.asyncio
    async def test_chunks_extend_document(self, document, session, stream, settle, changes):
        type_text(document, session, "++")

        stream.push("world")
        await settle()
        assert document.text == "Hello world"

        stream.push(", friend")
        await settle()
        assert document.text == "Hello world, friend"
        assert changes[-2:] == ["Hello world", "Hello world, friend"]

    @pytest.mark.asyncio
    async def test_finish_selects_generated_text(self, document, session, stream):
        type_text(document, session, "++")

        stream.push("world", stream.END)
        await session.wait()

        assert session.session.status == CompletionStatus.FINISHED
        assert document.selected_text == "world"
        assert document._tracked == []

    @pytest.mark.asyncio
    async def test_empty_completion_finishes_cleanly(self, document, session, stream):
        type_text(document, session, "++")

        stream.push(stream.END)
        await session.wait()

        assert document.text == "Hello "
        assert session.session.status == CompletionStatus.FINISHED


class TestFailures:
    """Test failed completions."""

    @pytest.mark.asyncio
    async def test_failure_rolls_back_and_notifies(self, document, session, stream, notifications):
        collected, _ = notifications
        type_text(document, session, "++")

        stream.push("wor", RateLimited("You have reached your request limit for the day."))
        await session.wait()

        assert document.text == "Hello ++"
        assert session.session.status == CompletionStatus.FAILED
        assert collected == [("You have reached your request limit for the day.", "error")]

    @pytest.mark.asyncio
    async def test_failure_of_resumed_session_restores_nothing(self, document, session, stream, notifications):
        session.start_completion("prompt")

        stream.push("abc", NetworkError("Connection reset"))
        await session.wait()

        assert document.text == "Hello "
        assert notifications[0] == [("Connection reset", "error")]

    @pytest.mark.asyncio
    async def test_editor_stays_usable_after_failure(self, document, session, stream):
        type_text(document, session, "++")
        stream.push(NetworkError("down"))
        await session.wait()

        stream.next_stream()
        document.set_cursor(len(document))
        type_text(document, session, "x++")

        assert session.is_streaming


class TestCancelCompletion:
    """Test programmatic cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_completion_restores_trigger(self, document, session, stream, settle):
        type_text(document, session, "++")
        stream.push("world")
        await settle()

        session.cancel_completion()

        assert document.text == "Hello ++"
        assert not session.is_streaming

    def test_cancel_completion_when_idle(self, document, session):
        session.cancel_completion()

        assert document.text == "Hello "
