"""Slide deck model and slides JSON handling."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError

from postdraft.services.exceptions import MalformedSlidesData
from postdraft.utils.logging import get_logger

logger = get_logger(__name__)

_MARKUP_CHARACTERS = re.compile(r"[<{]")


def escape_special_characters(text: str) -> str:
    """Backslash-escape characters the editor would read as markup (``<`` and ``{``).

    Example:
        >>> escape_special_characters("<b>Hi</b> {x}")
        '\\\\<b>Hi\\\\</b> \\\\{x}'
    """
    return _MARKUP_CHARACTERS.sub(lambda match: "\\" + match.group(0), text)


def import_slides(slides: Sequence[str], content: str) -> Tuple[List[str], str]:
    """Escape externally supplied slide texts and combined content before insertion."""
    return [escape_special_characters(slide) for slide in slides], escape_special_characters(content)


class SlideImport(BaseModel):
    """Contents of a slides export file: ``{"slides": [...], "content": "..."}``."""

    slides: List[str] = Field(default_factory=list, description="Slide texts in order")

    content: str = Field(default="", description="Combined text for the post body")


def read_slide_import(path: Path) -> SlideImport:
    """Read a slides export file.

    Raises:
        MalformedSlidesData: If the file is not JSON of the expected shape
    """
    raw = path.read_text(encoding="utf-8")
    try:
        return SlideImport.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedSlidesData(raw, f"{path.name} is not a slides export: {e.errors()[0]['msg']}") from e


def parse_slides(raw: Optional[str]) -> List[str]:
    """Parse persisted slides JSON.

    Raises:
        MalformedSlidesData: If ``raw`` is not a JSON list of strings
    """
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedSlidesData(raw, f"Slides data is not valid JSON: {e.msg}") from e
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise MalformedSlidesData(raw)
    return data


def load_slides(raw: Optional[str]) -> List[str]:
    """Parse persisted slides JSON, falling back to an empty list when malformed."""
    try:
        return parse_slides(raw)
    except MalformedSlidesData as e:
        logger.warning("slides_data_malformed", error=e.message, raw=e.raw[:100])
        return []


@dataclass
class SlideDeck:
    """Ordered, index-addressed list of slide texts."""

    slides: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "SlideDeck":
        return cls(slides=load_slides(raw))

    def __len__(self) -> int:
        return len(self.slides)

    def __getitem__(self, index: int) -> str:
        return self.slides[index]

    def add(self, text: str = "") -> int:
        """Append a slide and return its index."""
        self.slides.append(text)
        return len(self.slides) - 1

    def update(self, index: int, text: str) -> None:
        self.slides[index] = text

    def delete(self, index: int) -> str:
        """Remove a slide; later slides move down one index."""
        return self.slides.pop(index)

    def replace_all(self, slides: Sequence[str]) -> None:
        self.slides = list(slides)

    def to_json(self) -> str:
        return json.dumps(self.slides, ensure_ascii=False, separators=(",", ":"))
