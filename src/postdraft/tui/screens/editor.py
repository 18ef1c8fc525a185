"""EditorScreen: title, description, body and slide editors and save indicator for one post."""

from pathlib import Path
from typing import Optional

from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import Screen
from textual.widgets import Footer, Header, Input, Static
import structlog

from postdraft.editor.post import PostEditor
from postdraft.editor.session import EditorSession
from postdraft.models.post import post_url
from postdraft.models.slides import read_slide_import
from postdraft.services.exceptions import MalformedSlidesData, SlugRequired
from postdraft.services.persistence import SaveState
from postdraft.tui.screens.confirm_resume import ConfirmResumeScreen
from postdraft.tui.screens.import_slides import ImportSlidesScreen
from postdraft.tui.widgets.post_editor_area import PostEditorArea

logger = structlog.get_logger()


class EditorScreen(Screen):
    """Main editing screen."""

    CSS = """
    #meta {
        height: auto;
    }

    #title {
        width: 3fr;
    }

    #slug {
        width: 1fr;
    }

    #post-editor {
        height: 1fr;
    }

    #slides {
        height: auto;
        max-height: 40%;
    }

    .slide {
        height: 5;
        border: round $primary-darken-2;
    }

    #status-bar {
        height: 1;
    }

    #save-status {
        width: auto;
        padding: 0 1;
    }

    #post-url {
        width: 1fr;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "save", "Save", show=True, priority=True),
        Binding("ctrl+t", "toggle_publish", "Publish", show=True),
        Binding("ctrl+n", "add_slide", "Add slide", show=True, priority=True),
        Binding("ctrl+r", "delete_slide", "Delete slide", show=True, priority=True),
        Binding("ctrl+o", "import_slides", "Import", show=True, priority=True),
    ]

    def __init__(self, editor: PostEditor, root_domain: str | None = None, **kwargs):
        """Initialize EditorScreen.

        Args:
            editor: Editing state for the post
            root_domain: Public root domain used for the post URL
        """
        super().__init__(**kwargs)
        self.editor = editor
        self.root_domain = root_domain

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            with Horizontal(id="meta"):
                yield Input(value=self.editor.title, placeholder="Title", id="title")
                yield Input(value=self.editor.post.slug or "", placeholder="slug", id="slug")
            yield Input(
                value=self.editor.description,
                placeholder="SEO description (170 characters)",
                id="description",
            )
            yield PostEditorArea(self.editor.main, id="post-editor")
            with VerticalScroll(id="slides"):
                for session in self.editor.slide_sessions:
                    yield self._slide_area(session)
            with Horizontal(id="status-bar"):
                yield Static(SaveState.SAVED.label, id="save-status")
                yield Static("", id="post-url")
        yield Footer()

    def on_mount(self) -> None:
        self.editor.scheduler.on_state_change = self._show_save_state
        self._show_url()
        self.query_one("#post-editor", PostEditorArea).focus()

    def _show_save_state(self, state: SaveState) -> None:
        self.query_one("#save-status", Static).update(state.label)

    def _show_url(self) -> None:
        text = post_url(self.editor.post, self.root_domain) if self.editor.published else ""
        self.query_one("#post-url", Static).update(text)

    def _slide_area(self, session: EditorSession) -> PostEditorArea:
        return PostEditorArea(session, classes="slide")

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "title" and event.value != self.editor.title:
            self.editor.set_title(event.value)
        elif event.input.id == "description" and event.value != self.editor.description:
            self.editor.set_description(event.value)

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "slug":
            return
        try:
            await self.editor.update_slug(event.value)
        except SlugRequired:
            event.input.focus()
            return
        self._show_url()

    # Interrupts

    def _streaming_session(self) -> Optional[EditorSession]:
        for session in [self.editor.main, *self.editor.slide_sessions]:
            if session.is_streaming:
                return session
        return None

    def on_mouse_down(self, event: events.MouseDown) -> None:
        """A click while generating pauses the completion and asks whether to continue."""
        session = self._streaming_session()
        if session is not None:
            event.prevent_default()
            event.stop()
            self.run_worker(self._pause_completion(session), name="pause_completion")

    async def _pause_completion(self, session: Optional[EditorSession] = None) -> None:
        await (session or self.editor.main).handle_pointer(self._confirm)

    async def _confirm(self, question: str) -> bool:
        return bool(await self.app.push_screen_wait(ConfirmResumeScreen(question)))

    # Actions

    async def action_save(self) -> None:
        await self.editor.save_now()

    async def action_toggle_publish(self) -> None:
        await self.editor.toggle_published()
        self._show_url()
        logger.info("publish_toggled", published=self.editor.published)

    async def action_add_slide(self) -> None:
        area = self._slide_area(self.editor.add_slide())
        await self.query_one("#slides", VerticalScroll).mount(area)
        area.focus()

    async def action_delete_slide(self) -> None:
        """Delete the slide whose editor has focus."""
        area = self.focused
        if not isinstance(area, PostEditorArea) or area.session not in self.editor.slide_sessions:
            self.notify("Focus a slide to delete it", severity="warning")
            return
        self.editor.delete_slide(self.editor.slide_sessions.index(area.session))
        await area.remove()
        self.query_one("#post-editor", PostEditorArea).focus()

    def action_import_slides(self) -> None:
        self.run_worker(self._import_slides(), name="import_slides", exclusive=True)

    async def _import_slides(self) -> None:
        path = await self.app.push_screen_wait(ImportSlidesScreen())
        if not path:
            return
        try:
            data = read_slide_import(Path(path).expanduser())
        except MalformedSlidesData as e:
            self.notify(e.message, severity="error")
            return
        except OSError as e:
            self.notify(f"Could not read {path}: {e.strerror}", severity="error")
            return

        self.editor.import_slides(data.slides, data.content)
        slides = self.query_one("#slides", VerticalScroll)
        await slides.remove_children()
        await slides.mount_all([self._slide_area(session) for session in self.editor.slide_sessions])
