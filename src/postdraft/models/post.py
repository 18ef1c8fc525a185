"""Post models: the persisted record and the snapshot sent to persistence."""

from pydantic import BaseModel, Field
from typing import Optional


class PostSnapshot(BaseModel):
    """Serializable projection of the editor state sent to the persistence backend.

    Snapshots are immutable values; the scheduler compares them field by field
    against the last saved one to skip redundant saves.
    """

    title: str = Field(default="", description="Post title")

    description: str = Field(default="", description="SEO description")

    content: str = Field(default="", description="Post body as inline markdown")

    slides_json: str = Field(default="[]", description="JSON-encoded list of slide texts")

    published: bool = Field(default=False, description="Whether the post is public")

    model_config = {"frozen": True, "extra": "forbid"}

    def same_content(self, other: Optional["PostSnapshot"]) -> bool:
        """True when title, description, content and slides all match ``other``.

        ``published`` is not compared; it is saved through the metadata action.
        """
        if other is None:
            return False
        return (
            self.title == other.title
            and self.description == other.description
            and self.content == other.content
            and self.slides_json == other.slides_json
        )


class Post(BaseModel):
    """A post as loaded from the backend."""

    id: str = Field(..., description="Post identifier")

    title: Optional[str] = Field(default=None, description="Post title")

    description: Optional[str] = Field(default=None, description="SEO description")

    content: Optional[str] = Field(default=None, description="Post body as inline markdown")

    slides: Optional[str] = Field(default=None, description="Slides as a JSON string")

    slug: Optional[str] = Field(default=None, description="URL slug")

    published: bool = Field(default=False, description="Whether the post is public")

    subdomain: Optional[str] = Field(default=None, description="Subdomain of the owning site")

    def snapshot(self) -> PostSnapshot:
        """Snapshot of the stored values, used as the initial saved baseline."""
        return PostSnapshot(
            title=self.title or "",
            description=self.description or "",
            content=self.content or "",
            slides_json=self.slides or "[]",
            published=self.published,
        )


def post_url(post: Post, root_domain: Optional[str] = None) -> str:
    """Public URL of a post.

    Without a root domain the local development host is used.

    Example:
        >>> post_url(Post(id="1", slug="hello", subdomain="blog"), "example.com")
        'https://blog.example.com/hello'
    """
    if root_domain:
        return f"https://{post.subdomain}.{root_domain}/{post.slug}"
    return f"http://{post.subdomain}.localhost:3000/{post.slug}"
