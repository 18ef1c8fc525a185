"""Rich-text document model edited by the completion engine.

The document is an ordered list of text nodes, each carrying a set of marks
(bold, italic, code). Everything outside this module addresses it through
offsets into the flattened text projection, and changes it only through
``insert`` and ``delete_range`` so that formatting and undo history survive
generated insertions.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Literal, Optional, Tuple

from postdraft.utils.logging import get_logger

logger = get_logger(__name__)

MARKDOWN_DELIMITERS = {
    "bold": "**",
    "italic": "_",
    "code": "`",
}

_MARKDOWN_TOKEN = re.compile(r"\*\*(.+?)\*\*|_(.+?)_|`(.+?)`", re.DOTALL)


@dataclass(frozen=True)
class TextNode:
    """A run of text sharing the same marks."""

    text: str
    marks: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Step:
    """One recorded mutation, kept for undo and for mirroring into views.

    ``nodes`` holds the inserted content for an insert step and the removed
    content for a delete step, so either can be inverted exactly.
    """

    kind: Literal["insert", "delete"]
    offset: int
    nodes: Tuple[TextNode, ...]

    @property
    def text(self) -> str:
        return "".join(node.text for node in self.nodes)

    @property
    def length(self) -> int:
        return sum(len(node.text) for node in self.nodes)


@dataclass(eq=False)
class TrackedPosition:
    """An offset that follows the text around it as the document changes.

    Insertions exactly at the position leave it in place (it sticks to the
    text on its left). Positions compare by identity: two positions at the
    same offset are still different positions.
    """

    offset: int


DocumentListener = Callable[[Optional[Step]], None]


@dataclass
class Document:
    """Mutable rich-text document with a selection.

    The selection is ``(anchor, head)``; the cursor is ``head``. A collapsed
    selection has ``anchor == head``.

    Example:
        >>> doc = Document.from_text("Hello ")
        >>> doc.insert(6, "world")
        >>> doc.text
        'Hello world'
        >>> doc.undo()
        True
        >>> doc.text
        'Hello '
    """

    nodes: List[TextNode] = field(default_factory=list)
    anchor: int = 0
    head: int = 0
    history: List[Step] = field(default_factory=list)
    _tracked: List[TrackedPosition] = field(default_factory=list, repr=False)
    _listeners: List[DocumentListener] = field(default_factory=list, repr=False)

    @classmethod
    def from_text(cls, text: str) -> "Document":
        """Create a document holding unformatted text, cursor at the end."""
        nodes = [TextNode(text)] if text else []
        return cls(nodes=nodes, anchor=len(text), head=len(text))

    @classmethod
    def from_markdown(cls, markdown: str) -> "Document":
        """Create a document from the inline markdown written by ``to_markdown``."""
        nodes: List[TextNode] = []
        position = 0
        for match in _MARKDOWN_TOKEN.finditer(markdown):
            if match.start() > position:
                nodes.append(TextNode(markdown[position:match.start()]))
            bold, italic, code = match.groups()
            if bold is not None:
                nodes.append(TextNode(bold, frozenset({"bold"})))
            elif italic is not None:
                nodes.append(TextNode(italic, frozenset({"italic"})))
            else:
                nodes.append(TextNode(code, frozenset({"code"})))
            position = match.end()
        if position < len(markdown):
            nodes.append(TextNode(markdown[position:]))

        doc = cls(nodes=_normalize(nodes))
        doc.anchor = doc.head = len(doc)
        return doc

    # Projections

    @property
    def text(self) -> str:
        """Flattened plain-text projection."""
        return "".join(node.text for node in self.nodes)

    def __len__(self) -> int:
        return sum(len(node.text) for node in self.nodes)

    def get_text(self) -> str:
        return self.text

    def text_between(self, start: int, end: int, block_separator: str = "\n") -> str:
        """Return the text in ``[start, end)``.

        Offsets outside the document are clamped, so windows that reach past
        either boundary shrink instead of raising.
        """
        start = self._clamp(start)
        end = self._clamp(end)
        if end <= start:
            return ""
        chunk = self.text[start:end]
        if block_separator != "\n":
            chunk = chunk.replace("\n", block_separator)
        return chunk

    def to_markdown(self) -> str:
        """Render the document as inline markdown."""
        parts = []
        for node in self.nodes:
            text = node.text
            for mark in ("code", "italic", "bold"):
                if mark in node.marks:
                    delimiter = MARKDOWN_DELIMITERS[mark]
                    text = f"{delimiter}{text}{delimiter}"
            parts.append(text)
        return "".join(parts)

    # Selection

    @property
    def cursor(self) -> int:
        return self.head

    @property
    def selection(self) -> Tuple[int, int]:
        """Selection as an ordered ``(from, to)`` pair."""
        return (min(self.anchor, self.head), max(self.anchor, self.head))

    @property
    def selected_text(self) -> str:
        start, end = self.selection
        return self.text_between(start, end)

    def set_cursor(self, offset: int) -> None:
        self.select(offset, offset)

    def select(self, anchor: int, head: Optional[int] = None) -> None:
        """Set the selection; a missing ``head`` collapses it at ``anchor``."""
        self.anchor = self._clamp(anchor)
        self.head = self._clamp(anchor if head is None else head)
        self._emit(None)

    # Mutations

    def insert(self, offset: int, text: str, marks: Optional[FrozenSet[str]] = None) -> None:
        """Insert ``text`` at ``offset`` and place the cursor after it.

        Inserted text inherits the marks of the text immediately before
        ``offset`` unless ``marks`` is given.
        """
        if not text:
            return
        offset = self._clamp(offset)
        if marks is None:
            marks = self._marks_at(offset)
        step = Step("insert", offset, (TextNode(text, frozenset(marks)),))
        self._apply(step)
        self.history.append(step)
        self.anchor = self.head = offset + len(text)
        self._emit(step)

    def delete_range(self, start: int, end: int) -> None:
        """Delete ``[start, end)``; the cursor collapses at ``start``."""
        start = self._clamp(start)
        end = self._clamp(end)
        if end <= start:
            return
        step = Step("delete", start, tuple(self._slice(start, end)))
        self._apply(step)
        self.history.append(step)
        self.anchor = self.head = start
        self._emit(step)

    def undo(self) -> bool:
        """Revert the most recent mutation. Returns False when history is empty."""
        if not self.history:
            return False
        step = self.history.pop()
        inverse = Step("delete" if step.kind == "insert" else "insert", step.offset, step.nodes)
        self._apply(inverse)
        if inverse.kind == "insert":
            self.anchor = self.head = step.offset + step.length
        else:
            self.anchor = self.head = step.offset
        logger.debug("document_undo", kind=step.kind, offset=step.offset, length=step.length)
        self._emit(inverse)
        return True

    # Position tracking and change listeners

    def track(self, offset: int) -> TrackedPosition:
        """Start remapping ``offset`` across future mutations."""
        position = TrackedPosition(self._clamp(offset))
        self._tracked.append(position)
        return position

    def untrack(self, position: TrackedPosition) -> None:
        self._tracked = [p for p in self._tracked if p is not position]

    def subscribe(self, listener: DocumentListener) -> Callable[[], None]:
        """Call ``listener`` after every mutation (with the step) and every
        selection change (with None). Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Internals

    def _clamp(self, offset: int) -> int:
        return max(0, min(offset, len(self)))

    def _emit(self, step: Optional[Step]) -> None:
        for listener in list(self._listeners):
            listener(step)

    def _marks_at(self, offset: int) -> FrozenSet[str]:
        position = 0
        for node in self.nodes:
            if position < offset <= position + len(node.text):
                return node.marks
            position += len(node.text)
        return frozenset()

    def _split(self, offset: int) -> int:
        """Split the node containing ``offset``; return the index of the first
        node starting at or after it."""
        position = 0
        for index, node in enumerate(self.nodes):
            end = position + len(node.text)
            if offset == position:
                return index
            if position < offset < end:
                cut = offset - position
                self.nodes[index:index + 1] = [
                    TextNode(node.text[:cut], node.marks),
                    TextNode(node.text[cut:], node.marks),
                ]
                return index + 1
            position = end
        return len(self.nodes)

    def _slice(self, start: int, end: int) -> List[TextNode]:
        nodes = []
        position = 0
        for node in self.nodes:
            node_end = position + len(node.text)
            low = max(start, position)
            high = min(end, node_end)
            if low < high:
                nodes.append(TextNode(node.text[low - position:high - position], node.marks))
            position = node_end
        return nodes

    def _apply(self, step: Step) -> None:
        if step.kind == "insert":
            index = self._split(step.offset)
            self.nodes[index:index] = list(step.nodes)
            for position in self._tracked:
                if position.offset > step.offset:
                    position.offset += step.length
        else:
            end = step.offset + step.length
            first = self._split(step.offset)
            last = self._split(end)
            del self.nodes[first:last]
            for position in self._tracked:
                if position.offset >= end:
                    position.offset -= step.length
                elif position.offset > step.offset:
                    position.offset = step.offset
        self.nodes = _normalize(self.nodes)


def _normalize(nodes: List[TextNode]) -> List[TextNode]:
    """Drop empty nodes and merge neighbours with identical marks."""
    merged: List[TextNode] = []
    for node in nodes:
        if not node.text:
            continue
        if merged and merged[-1].marks == node.marks:
            merged[-1] = TextNode(merged[-1].text + node.text, node.marks)
        else:
            merged.append(node)
    return merged
