from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

MAX_KEYWORDS = 3
MAX_DESCRIPTION_LENGTH = 250
SLUG_PATTERN = r"^[A-Za-z0-9_-]+$"

_http_url = TypeAdapter(HttpUrl)


def _clean_keywords(value):
    if value is None:
        return value
    return [k.strip() for k in value if k and k.strip()]


def _check_website(value):
    if value:
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("website must be an http or https URL")
    return value


def _check_hero_image(value):
    if value and not value.startswith("data:image/"):
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("hero image must be an http(s) URL or an image data URI")
    return value


class PublicCard(BaseModel):
    id: Optional[str] = None
    business_name: str
    business_description: str = Field("", max_length=MAX_DESCRIPTION_LENGTH)
    phone_number: str
    email: str
    address: str
    website: str = ""
    hero_image: str = ""
    url_slug: str
    keywords: List[str] = Field(default_factory=list, max_length=MAX_KEYWORDS)
    created_at: datetime
    updated_at: datetime


class CardRecord(PublicCard):
    owner_id: str

    def to_public(self) -> PublicCard:
        return PublicCard(**self.model_dump(exclude={"owner_id"}))


class CardCreate(BaseModel):
    business_name: str
    business_description: str = Field("", max_length=MAX_DESCRIPTION_LENGTH)
    phone_number: str
    email: str
    address: str
    website: str = ""
    hero_image: str = ""
    url_slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    keywords: List[str] = Field(default_factory=list, max_length=MAX_KEYWORDS)

    @field_validator("keywords", mode="before")
    @classmethod
    def strip_keywords(cls, value):
        return _clean_keywords(value)

    @field_validator("website")
    @classmethod
    def check_website(cls, value):
        return _check_website(value)

    @field_validator("hero_image")
    @classmethod
    def check_hero_image(cls, value):
        return _check_hero_image(value)


class CardUpdate(BaseModel):
    business_name: Optional[str] = None
    business_description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    hero_image: Optional[str] = None
    url_slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    keywords: Optional[List[str]] = Field(None, max_length=MAX_KEYWORDS)

    @field_validator("keywords", mode="before")
    @classmethod
    def strip_keywords(cls, value):
        return _clean_keywords(value)

    @field_validator("website")
    @classmethod
    def check_website(cls, value):
        return _check_website(value)

    @field_validator("hero_image")
    @classmethod
    def check_hero_image(cls, value):
        return _check_hero_image(value)
