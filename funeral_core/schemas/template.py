"""Pydantic schemas for memorial document templates."""

from pydantic import BaseModel, Field, field_validator

from funeral_core.db.enums import TemplateCategory, TemplateStatus
from funeral_core.schemas.versioning import VersionRead

PAGE_SIZES = ("letter", "legal", "a4", "4x6", "5x7")
ORIENTATIONS = ("portrait", "landscape")
PRINT_QUALITIES = (150, 300, 600)


class TemplateContent(BaseModel):
    html_template: str = Field(min_length=1)
    css_styles: str = ""
    preview_image_url: str | None = Field(default=None, max_length=1024)

    @field_validator("html_template")
    @classmethod
    def html_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("html_template cannot be blank")
        return v


class TemplateSettings(BaseModel):
    """Print settings. Margins are inches."""
    page_size: str = "letter"
    orientation: str = "portrait"
    margin_top: float = Field(default=0.5, ge=0, le=2)
    margin_right: float = Field(default=0.5, ge=0, le=2)
    margin_bottom: float = Field(default=0.5, ge=0, le=2)
    margin_left: float = Field(default=0.5, ge=0, le=2)
    print_quality: int = 300

    @field_validator("page_size")
    @classmethod
    def check_page_size(cls, v: str) -> str:
        v = v.lower()
        if v not in PAGE_SIZES:
            raise ValueError(f"page_size must be one of {', '.join(PAGE_SIZES)}")
        return v

    @field_validator("orientation")
    @classmethod
    def check_orientation(cls, v: str) -> str:
        v = v.lower()
        if v not in ORIENTATIONS:
            raise ValueError(f"orientation must be one of {', '.join(ORIENTATIONS)}")
        return v

    @field_validator("print_quality")
    @classmethod
    def check_print_quality(cls, v: int) -> int:
        if v not in PRINT_QUALITIES:
            raise ValueError("print_quality must be 150, 300 or 600 dpi")
        return v


class TemplateCreate(BaseModel):
    """funeral_home_id None creates a system template shared by every funeral home."""
    funeral_home_id: str | None = Field(default=None, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    category: TemplateCategory
    content: TemplateContent
    settings: TemplateSettings = Field(default_factory=TemplateSettings)


class TemplateUpdate(BaseModel):
    """Any subset of content/settings/name; a new version is written."""
    name: str | None = Field(default=None, min_length=1, max_length=255)
    content: TemplateContent | None = None
    settings: TemplateSettings | None = None
    reason: str | None = Field(default=None, max_length=500)


class TemplateStatusChange(BaseModel):
    status: TemplateStatus
    reason: str | None = Field(default=None, max_length=500)


class TemplateRead(VersionRead):
    funeral_home_id: str | None
    name: str
    category: TemplateCategory
    status: TemplateStatus
    html_template: str
    css_styles: str
    preview_image_url: str | None
    page_size: str
    orientation: str
    margin_top: float
    margin_right: float
    margin_bottom: float
    margin_left: float
    print_quality: int
    variables: list[str]


class TemplateVariablesRequest(BaseModel):
    content: str


class TemplateVariablesResponse(BaseModel):
    variables: list[str]
