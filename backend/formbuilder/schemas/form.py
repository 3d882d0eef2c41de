from pydantic import BaseModel, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
import re

from formbuilder.models.form import FieldType, FormStatus, MediaType
from formbuilder.services.field_types import needs_options

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{1,99}$")


class FormCreate(BaseModel):
    name: str
    description: Optional[str] = None
    status: FormStatus = FormStatus.DRAFT
    public_url: Optional[str] = None  # random token when omitted
    media_type: MediaType = MediaType.NONE
    media_url: Optional[str] = None
    tutorial_video_url: Optional[str] = None
    template: Optional[str] = None

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Form name is required')
        return v.strip()

    @field_validator('public_url')
    @classmethod
    def valid_slug(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not SLUG_PATTERN.match(v):
            raise ValueError('Public URL may only contain letters, digits, "-" and "_"')
        return v


class FormUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[FormStatus] = None
    media_type: Optional[MediaType] = None
    media_url: Optional[str] = None
    tutorial_video_url: Optional[str] = None

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Form name cannot be empty')
        return v.strip() if v else v


class FieldCreate(BaseModel):
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None
    order: Optional[int] = None
    enabled: bool = True
    depends_on_field_id: Optional[int] = None
    show_when_value: Optional[str] = None

    @field_validator('label')
    @classmethod
    def label_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field label is required')
        return v.strip()

    @model_validator(mode='after')
    def check_options_and_condition(self):
        if needs_options(self.type):
            if not [o for o in (self.options or []) if o and o.strip()]:
                raise ValueError(f"Options are required for '{self.type.value}' fields")
        if (self.depends_on_field_id is None) != (self.show_when_value is None):
            raise ValueError('depends_on_field_id and show_when_value must be set together')
        return self


class FieldUpdate(BaseModel):
    label: Optional[str] = None
    type: Optional[FieldType] = None
    required: Optional[bool] = None
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None
    enabled: Optional[bool] = None
    depends_on_field_id: Optional[int] = None
    show_when_value: Optional[str] = None

    @field_validator('label')
    @classmethod
    def label_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Field label cannot be empty')
        return v.strip() if v else v


class FieldMove(BaseModel):
    direction: str

    @field_validator('direction')
    @classmethod
    def up_or_down(cls, v):
        if v not in ("up", "down"):
            raise ValueError('direction must be "up" or "down"')
        return v


class FieldResponse(BaseModel):
    id: int
    form_id: int
    label: str
    type: FieldType
    required: bool
    placeholder: Optional[str]
    options: Optional[List[str]]
    order: int
    enabled: bool
    depends_on_field_id: Optional[int]
    show_when_value: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FormResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    status: FormStatus
    public_url: str
    media_type: MediaType
    media_url: Optional[str]
    tutorial_video_url: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
