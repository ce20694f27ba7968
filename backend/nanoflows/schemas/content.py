"""
Schemas for site content: hero slides, about sections, AI tools and jobs.

Hero slides speak camelCase on the wire (the carousel component reads
``backgroundImage``, ``trustBadges`` ...); snake_case input is accepted too.
"""

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime


def _split_list(value: Any) -> Any:
    """Accept "a, b, c" where a list is expected"""
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    return value


# ============== Hero Slides ==============

SlidePosition = Literal["start", "end", "before", "after"]


class HeroSlideFields(BaseModel):
    variant: Optional[str] = None
    title: Optional[str] = None
    highlight: Optional[str] = None
    subtitle: Optional[str] = None
    button_text: Optional[str] = None
    pre_heading: Optional[str] = None
    heading: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[List[str]] = None
    trust_badges: Optional[List[str]] = None
    services: Optional[List[Dict[str, Any]]] = None
    primary_cta_label: Optional[str] = None
    primary_cta_route: Optional[str] = None
    secondary_cta_label: Optional[str] = None
    secondary_cta_route: Optional[str] = None
    background_image: Optional[str] = None
    background_overlay: Optional[str] = None

    @field_validator('categories', 'trust_badges', mode='before')
    @classmethod
    def split_comma_lists(cls, v):
        return _split_list(v)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class HeroSlideCreate(HeroSlideFields):
    variant: str = "default"
    position: SlidePosition = "end"
    reference_slide_id: Optional[str] = None


class HeroSlideUpdate(HeroSlideFields):
    position: Optional[SlidePosition] = None
    reference_slide_id: Optional[str] = None


class HeroSlideResponse(HeroSlideFields):
    id: str
    variant: str
    order_index: int

    @field_validator('categories', 'trust_badges', 'services', mode='before')
    @classmethod
    def default_empty(cls, v):
        return v or []

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ============== About Sections ==============

class AboutSectionCreate(BaseModel):
    section_type: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    icon_name: Optional[str] = None
    images: List[Dict[str, Any]] = []
    team_members: List[Dict[str, Any]] = []
    company_logos: List[Dict[str, Any]] = []
    order_index: int = Field(0, ge=0)
    active: bool = True


class AboutSectionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    icon_name: Optional[str] = None
    images: Optional[List[Dict[str, Any]]] = None
    team_members: Optional[List[Dict[str, Any]]] = None
    company_logos: Optional[List[Dict[str, Any]]] = None
    order_index: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None


class AboutSectionResponse(BaseModel):
    id: str
    section_type: str
    title: str
    content: Optional[str] = None
    icon_name: Optional[str] = None
    images: List[Dict[str, Any]] = []
    team_members: List[Dict[str, Any]] = []
    company_logos: List[Dict[str, Any]] = []
    order_index: int
    active: bool
    updated_at: Optional[datetime] = None

    @field_validator('images', 'team_members', 'company_logos', mode='before')
    @classmethod
    def default_empty(cls, v):
        return v or []

    class Config:
        from_attributes = True


# ============== AI Tools ==============

class AIToolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = None
    features: List[str] = []
    pricing_type: str = "free"
    url: Optional[str] = None
    is_active: bool = True

    @field_validator('features', mode='before')
    @classmethod
    def split_features(cls, v):
        return _split_list(v)


class AIToolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    color: Optional[str] = None
    features: Optional[List[str]] = None
    pricing_type: Optional[str] = None
    url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('features', mode='before')
    @classmethod
    def split_features(cls, v):
        return _split_list(v)


class AIToolResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    color: Optional[str] = None
    features: List[str] = []
    pricing_type: str
    url: Optional[str] = None
    is_active: bool
    created_at: datetime

    @field_validator('features', mode='before')
    @classmethod
    def default_empty(cls, v):
        return v or []

    class Config:
        from_attributes = True


# ============== Jobs ==============

class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    department: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=255)
    type: str = "Full-time"
    description: str = Field(..., min_length=1)
    requirements: List[str] = []
    is_active: bool = True


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[str] = None
    location: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    is_active: Optional[bool] = None


class JobResponse(BaseModel):
    id: str
    title: str
    department: str
    location: str
    type: str
    description: str
    requirements: List[str] = []
    is_active: bool
    created_at: datetime

    @field_validator('requirements', mode='before')
    @classmethod
    def default_empty(cls, v):
        return v or []

    class Config:
        from_attributes = True
