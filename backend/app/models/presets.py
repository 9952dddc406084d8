"""Preset palette schemas and the fixed category library.

Categories are immutable at runtime; the library is checked at application
startup via :func:`validate_categories`.
"""

import logging
from datetime import datetime
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, Field, StrictInt, field_validator, model_validator

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 200
MIN_DYES = 2
MAX_DYES = 5
MAX_TAGS = 10
TAG_MAX_LENGTH = 30


class PresetCategory(StrEnum):
    jobs = "jobs"
    grand_companies = "grand-companies"
    seasons = "seasons"
    events = "events"
    aesthetics = "aesthetics"
    community = "community"


class PresetStatus(StrEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    flagged = "flagged"
    hidden = "hidden"


class PresetSort(StrEnum):
    popular = "popular"
    recent = "recent"
    name = "name"


class CategoryMeta(BaseModel):
    """Display metadata for a preset category."""

    id: PresetCategory
    name: str
    description: str
    icon: str | None = None
    is_curated: bool = False
    display_order: int
    preset_count: int | None = None


CATEGORIES: list[CategoryMeta] = [
    CategoryMeta(
        id=PresetCategory.jobs,
        name="Jobs",
        description="Palettes inspired by job and class identities.",
        icon="⚔️",
        is_curated=True,
        display_order=1,
    ),
    CategoryMeta(
        id=PresetCategory.grand_companies,
        name="Grand Companies",
        description="Colors of the three Grand Companies.",
        icon="🏛️",
        is_curated=True,
        display_order=2,
    ),
    CategoryMeta(
        id=PresetCategory.seasons,
        name="Seasons",
        description="Spring, summer, autumn and winter palettes.",
        icon="🍂",
        is_curated=True,
        display_order=3,
    ),
    CategoryMeta(
        id=PresetCategory.events,
        name="Events",
        description="Seasonal event and festival themes.",
        icon="🎉",
        is_curated=True,
        display_order=4,
    ),
    CategoryMeta(
        id=PresetCategory.aesthetics,
        name="Aesthetics",
        description="Mood and style driven combinations.",
        icon="🎨",
        display_order=5,
    ),
    CategoryMeta(
        id=PresetCategory.community,
        name="Community",
        description="Anything else the community comes up with.",
        icon="👥",
        display_order=6,
    ),
]


def validate_categories() -> None:
    """Validate the category library. Raises ``ValueError`` on violations."""
    ids = [c.id for c in CATEGORIES]
    if len(ids) != len(set(ids)):
        raise ValueError("Duplicate category ids in CATEGORIES")
    missing = set(PresetCategory) - set(ids)
    if missing:
        raise ValueError(f"Categories without metadata: {sorted(missing)}")
    orders = [c.display_order for c in CATEGORIES]
    if len(orders) != len(set(orders)):
        raise ValueError("Duplicate display_order values in CATEGORIES")
    logger.info("categories_validated: count=%d", len(CATEGORIES))


DyeId = Annotated[StrictInt, Field(gt=0)]
Tag = Annotated[str, Field(min_length=1, max_length=TAG_MAX_LENGTH)]


class PresetSubmission(BaseModel):
    """A new palette as submitted by a community member."""

    name: str = Field(..., min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    description: str = Field(
        ..., min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH,
    )
    category_id: PresetCategory
    dyes: list[DyeId] = Field(..., min_length=MIN_DYES, max_length=MAX_DYES)
    tags: list[Tag] = Field(default_factory=list, max_length=MAX_TAGS)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def strip_tags(cls, v: list | None) -> list | None:
        if isinstance(v, list):
            return [t.strip() if isinstance(t, str) else t for t in v]
        return v


class PresetEdit(BaseModel):
    """Partial update from the preset's author; unset fields are untouched."""

    name: str | None = Field(
        default=None, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH,
    )
    description: str | None = Field(
        default=None,
        min_length=DESCRIPTION_MIN_LENGTH,
        max_length=DESCRIPTION_MAX_LENGTH,
    )
    dyes: list[DyeId] | None = Field(
        default=None, min_length=MIN_DYES, max_length=MAX_DYES,
    )
    tags: list[Tag] | None = Field(default=None, max_length=MAX_TAGS)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def strip_tags(cls, v: list | None) -> list | None:
        if isinstance(v, list):
            return [t.strip() if isinstance(t, str) else t for t in v]
        return v

    @model_validator(mode="after")
    def _require_one_field(self) -> "PresetEdit":
        if all(
            v is None for v in (self.name, self.description, self.dyes, self.tags)
        ):
            raise ValueError("At least one of name, description, dyes, tags is required")
        return self


class PresetSnapshot(BaseModel):
    """Editable fields captured before a flagged edit, for moderator revert."""

    name: str
    description: str
    tags: list[str]
    dyes: list[int]


class CommunityPreset(BaseModel):
    """Public representation of a stored preset."""

    id: str
    name: str
    description: str
    category_id: PresetCategory
    dyes: list[int]
    tags: list[str]
    author_discord_id: str | None = None
    author_name: str | None = None
    vote_count: int
    status: PresetStatus
    is_curated: bool
    created_at: datetime
    updated_at: datetime
    dye_signature: str | None = None
    previous_values: PresetSnapshot | None = None


class PresetFilters(BaseModel):
    """Query filters for :func:`~backend.app.services.preset_repository.list_presets`."""

    category: PresetCategory | None = None
    search: str | None = Field(default=None, max_length=100)
    status: PresetStatus = PresetStatus.approved
    sort: PresetSort = PresetSort.popular
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    is_curated: bool | None = None


class PresetListResponse(BaseModel):
    presets: list[CommunityPreset]
    total: int
    page: int
    limit: int
    has_more: bool


class FeaturedPresetsResponse(BaseModel):
    presets: list[CommunityPreset]


class PresetSubmitResponse(BaseModel):
    """Outcome of a submission: a new preset, or a collapsed duplicate."""

    success: bool = True
    preset: CommunityPreset | None = None
    duplicate: CommunityPreset | None = None
    vote_added: bool | None = None
    moderation_status: PresetStatus | None = None


class PresetEditResponse(BaseModel):
    success: bool = True
    preset: CommunityPreset
    moderation_status: PresetStatus
    flagged: bool = False


class CategoryListResponse(BaseModel):
    categories: list[CategoryMeta]
