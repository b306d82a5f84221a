"""
Feed snapshot models.

Snapshots are frozen: a cached value is never mutated, only replaced.
"""

from pydantic import BaseModel, ConfigDict, Field


class Item(BaseModel):
    """One feed entry."""

    model_config = ConfigDict(frozen=True)

    link: str = Field(default="", description="Entry link, identity for change detection")
    title: str = Field(default="", description="Entry title")
    description: str = Field(default="", description="Entry description")


class FeedSnapshot(BaseModel):
    """Latest accepted state of one feed source."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(default="", description="Feed title")
    link: str = Field(default="", description="Feed home page link")
    items: tuple[Item, ...] = Field(default=(), description="Entries, newest first")
    last_update: str = Field(..., description="Timestamp of the refresh cycle that produced it")

    @property
    def newest_link(self) -> str | None:
        """Link of the newest entry, or None if the feed has no entries."""
        return self.items[0].link if self.items else None

    def to_json(self) -> str:
        """Serialize to a JSON document."""
        return self.model_dump_json()
