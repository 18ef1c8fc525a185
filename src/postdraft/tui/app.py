"""Main Postdraft TUI Application.

Hosts a single EditorScreen for one post. The app owns the PostEditor so that
engine notifications (failed completions, failed saves, metadata results)
surface as Textual toasts.
"""

from textual.app import App
from textual.binding import Binding
import structlog

from postdraft.editor.controller import TextStream
from postdraft.editor.post import PostEditor
from postdraft.models.config import EditorConfig
from postdraft.models.post import Post
from postdraft.services.post_actions import PostActions
from postdraft.tui.screens.editor import EditorScreen

logger = structlog.get_logger()


class PostdraftApp(App):
    """Blog post editor with streamed AI completions."""

    TITLE = "postdraft"

    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True, priority=True),
    ]

    def __init__(
        self,
        post: Post,
        client: TextStream,
        actions: PostActions,
        config: EditorConfig | None = None,
        debounce_seconds: float = 1.0,
    ):
        """Initialize the Postdraft app.

        Args:
            post: Post to edit
            client: Generation client
            actions: Persistence backend
            config: Editor settings
            debounce_seconds: Autosave quiet period
        """
        super().__init__()
        self.config = config or EditorConfig()
        self.editor = PostEditor(
            post,
            client,
            actions,
            config=self.config,
            debounce_seconds=debounce_seconds,
            notify=self._notify,
        )

        logger.info("app_initialized", post_id=post.id)

    def on_mount(self) -> None:
        self.sub_title = self.editor.title or "Untitled"
        self.push_screen(EditorScreen(self.editor, root_domain=self.config.root_domain))

    def _notify(self, message: str, severity: str = "information") -> None:
        self.notify(message, severity=severity)

    async def action_quit(self) -> None:
        """Stop completions and save pending edits before exiting."""
        await self.editor.close()
        logger.info("app_quit", post_id=self.editor.post.id)
        self.exit()
