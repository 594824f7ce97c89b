# =========================================================
# FILE: /artforge/schemas/generate.py
# =========================================================

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, validator

from artforge.services.prompt_service import CATEGORIES, STYLES


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ""
    quality: Literal["standard", "hd"] = "standard"
    content_type: Literal["image", "video"] = Field(default="image", alias="contentType")
    # Images only; defaults to 1024x1024
    size: Optional[Literal["1024x1024", "1792x1024", "1024x1792"]] = None
    category: Optional[str] = None
    style: Optional[str] = None

    @validator("category")
    def validate_category(cls, v: Optional[str]):
        v = (v or "").lower().strip()
        if not v:
            return None
        if v not in CATEGORIES:
            raise ValueError(f"category must be one of {sorted(CATEGORIES)}")
        return v

    @validator("style")
    def validate_style(cls, v: Optional[str]):
        v = (v or "").lower().strip()
        if not v:
            return None
        if v not in STYLES:
            raise ValueError(f"style must be one of {sorted(STYLES)}")
        return v


class GenerationItem(BaseModel):
    id: str
    prompt: str
    content_type: str
    quality: str
    size: Optional[str] = None
    category: Optional[str] = None
    style: Optional[str] = None
    cost: int
    status: str
    result_url: Optional[str] = None
    created_at: str


class GenerateResponse(BaseModel):
    success: bool = True
    generation: GenerationItem
    content_url: str
    credits_used: int


class GenerationList(BaseModel):
    items: List[GenerationItem] = Field(default_factory=list)
    limit: int
    offset: int


class EnhancePromptRequest(BaseModel):
    prompt: str = ""


class EnhancePromptResponse(BaseModel):
    enhanced_prompt: str
    success: bool = True
