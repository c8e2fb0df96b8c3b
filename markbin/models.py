"""
Pydantic models for pastes and request/response validation.
"""
from typing import Optional
from pydantic import BaseModel, Field


class PasteMetadata(BaseModel):
    """Per-paste settings edited through the config editor."""
    title: str = Field("", description="Display title (url is used when empty)")
    view_password: str = Field("", description="Password required to view (empty for none)")


class Paste(BaseModel):
    """A stored paste."""
    url: str = Field(..., description="Unique paste identifier")
    content: str = Field(..., description="Raw markdown source")
    metadata: PasteMetadata = Field(default_factory=PasteMetadata)

    @property
    def display_title(self) -> str:
        return self.metadata.title or self.url


class PasteCreate(BaseModel):
    """Schema for creating a new paste."""
    content: str = Field(..., min_length=1, description="Markdown content (required, non-empty)")
    url: Optional[str] = Field(None, min_length=1, description="Custom url (generated when omitted)")
    metadata: PasteMetadata = Field(default_factory=PasteMetadata)


class PasteResponse(BaseModel):
    """Schema for paste creation response."""
    url: str = Field(..., description="Unique paste identifier")
    link: str = Field(..., description="Shareable link to view the paste")


class RenderMarkdown(BaseModel):
    """Schema for the live-preview render endpoint."""
    content: str = Field(..., description="Markdown to render")


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
