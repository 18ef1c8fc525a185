"""Unit tests for immediate metadata updates."""

import pytest

from postdraft.services.exceptions import SlugRequired
from postdraft.services.metadata import MetadataUpdater, make_slug


@pytest.fixture
def updater(actions, notifications):
    _, notify = notifications
    return MetadataUpdater("42", actions, notify=notify)


class TestMakeSlug:
    """Test slug generation from titles."""

    @pytest.mark.parametrize("title,expected", [
        ("My First Post", "my-first-post"),
        ("already-slugged", "already-slugged"),
        ("", ""),
        (None, ""),
    ])
    def test_make_slug(self, title, expected):
        assert make_slug(title) == expected


class TestUpdateSlug:
    """Test slug updates."""

    @pytest.mark.asyncio
    async def test_slug_update_sends_single_field(self, updater, actions, notifications):
        collected, _ = notifications

        result = await updater.update_slug("new-slug")

        assert result.ok
        assert actions.metadata == [("42", "slug", "new-slug")]
        assert collected == [("Successfully updated slug!", "information")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("slug", ["", "   "])
    async def test_empty_slug_is_rejected_without_request(self, updater, actions, notifications, slug):
        collected, _ = notifications

        with pytest.raises(SlugRequired):
            await updater.update_slug(slug)

        assert actions.metadata == []
        assert collected == [("Slug required", "error")]

    @pytest.mark.asyncio
    async def test_backend_error_is_reported(self, updater, actions, notifications):
        collected, _ = notifications
        actions.error = "Slug already taken"

        result = await updater.update_slug("taken")

        assert not result.ok
        assert collected == [("Slug already taken", "error")]


class TestPublish:
    """Test publish flag updates."""

    @pytest.mark.asyncio
    async def test_publish(self, updater, actions, notifications):
        collected, _ = notifications

        await updater.set_published(True)

        assert actions.metadata == [("42", "published", True)]
        assert collected == [("Successfully published your post.", "information")]

    @pytest.mark.asyncio
    async def test_unpublish(self, updater, notifications):
        collected, _ = notifications

        await updater.set_published(False)

        assert collected == [("Successfully unpublished your post.", "information")]
