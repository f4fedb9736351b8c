from __future__ import annotations

import time
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PageMode = Literal["single-page", "multi-page"]


class FileRecord(BaseModel):
    path: str = Field(..., min_length=1, description="Relative path of the generated file")
    content: str = Field("", description="File body as produced by the model")
    language: str = Field("html", description="Lower-cased language tag")

    @field_validator("path")
    @classmethod
    def _strip_path(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("path must be non-empty")
        return v


class GenerationResult(BaseModel):
    description: str = ""
    files: List[FileRecord] = Field(default_factory=list)


class TemplatePage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    filename: str
    title: str
    sections: List[str] = Field(default_factory=list)
    required: bool = True


class WebsiteTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    category: Literal["business", "ecommerce", "portfolio", "blog", "dashboard", "landing"]
    features: List[str] = Field(default_factory=list)
    pages: List[TemplatePage] = Field(default_factory=list)
    shared_styles: str = ""

    def required_pages(self) -> List[TemplatePage]:
        return [p for p in self.pages if p.required]


class InlineImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    mime_type: str = "image/jpeg"
    data: str = Field(..., min_length=1, description="Base64 payload without the data: prefix")


class GenerationRequest(BaseModel):
    """Everything derived from a prompt before the model is called."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    image: Optional[InlineImage] = None
    page_mode: PageMode = "single-page"
    template: WebsiteTemplate

    @property
    def is_single_page(self) -> bool:
        return self.page_mode == "single-page"


class DescriptionContext(BaseModel):
    """Inputs for the synthesized description when the model's prose is unusable."""

    template_name: str
    category: str
    features: List[str] = Field(default_factory=list)
    pages: List[TemplatePage] = Field(default_factory=list)
    file_count: int = 0
    single_page: bool = True


class Project(BaseModel):
    id: str
    name: str
    summary: str = ""
    files: Dict[str, FileRecord] = Field(default_factory=dict)
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)

    def ordered_files(self) -> List[FileRecord]:
        return list(self.files.values())


class GenerateRequest(BaseModel):
    prompt: str = Field("", description="Natural-language description of the site to build")
    project_id: Optional[str] = Field(default=None, description="Existing project to regenerate or edit in place")
    image_base64: Optional[str] = Field(default=None, description="Optional reference screenshot, base64 encoded")
    image_mime_type: str = Field("image/jpeg", description="MIME type of image_base64")
    decorate: bool = Field(True, description="Swap placeholder images for stock photos when configured")


class EditRequest(BaseModel):
    instruction: str = Field(..., min_length=1, description="What to change in the current project")


class FileUpdate(BaseModel):
    content: str
    language: Optional[str] = None
