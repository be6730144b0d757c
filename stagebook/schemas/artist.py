"""Artist schemas for storage and API payloads.

Artists are persisted and returned with camelCase keys (``imageUrl``,
``createdAt``); Python code uses the snake_case attribute names.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from stagebook.utils.normalization import clean_text, normalize_languages, parse_fee


class ApprovalStatus(str, Enum):
    """Review state of an artist application."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============== Stored Record ==============

class Artist(CamelModel):
    """An artist record as stored in the collection."""
    id: str
    name: str
    email: str = ""
    phone: str = ""
    category: str = "Other"
    city: str = ""
    bio: str = ""
    experience: str = ""
    languages: list[str] = []
    fee: int = 0
    image_url: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.PENDING
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    @field_validator("languages", mode="before")
    @classmethod
    def _languages(cls, value: Any) -> list[str]:
        return normalize_languages(value)

    @field_validator("fee", mode="before")
    @classmethod
    def _fee(cls, value: Any) -> int:
        return parse_fee(value)

    @field_validator("image_url", mode="before")
    @classmethod
    def _image_url(cls, value: Any) -> Optional[str]:
        return value or None

    @model_validator(mode="after")
    def _clear_rejection_reason(self) -> "Artist":
        # Only rejected artists keep a reason
        if self.status != ApprovalStatus.REJECTED:
            self.rejection_reason = None
        return self

    def to_storage(self) -> dict[str, Any]:
        """JSON-compatible dict written to the key-value store."""
        return self.model_dump(mode="json", by_alias=True)


# ============== Request Payloads ==============

class ArtistCreate(CamelModel):
    """Onboarding submission, from a JSON body or a multipart form."""
    name: str = ""
    email: str = ""
    phone: str = ""
    category: str = ""
    city: str = ""
    bio: str = ""
    experience: str = ""
    languages: list[str] = []
    fee: int = 0
    image_url: Optional[str] = None

    @field_validator(
        "name", "email", "phone", "category", "city", "bio", "experience",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> str:
        return clean_text(value)

    @field_validator("languages", mode="before")
    @classmethod
    def _languages(cls, value: Any) -> list[str]:
        return normalize_languages(value)

    @field_validator("fee", mode="before")
    @classmethod
    def _fee(cls, value: Any) -> int:
        return parse_fee(value)

    @field_validator("image_url", mode="before")
    @classmethod
    def _image_url(cls, value: Any) -> Optional[str]:
        if isinstance(value, str):
            value = value.strip()
        return value or None


class ArtistStatusUpdate(CamelModel):
    """Admin approve/reject request body."""
    id: Optional[str] = None
    status: Optional[str] = None
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""
    error: str
    missingFields: Optional[list[str]] = None


class UploadResponse(BaseModel):
    """Uploaded file location."""
    url: str
