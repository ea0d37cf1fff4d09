"""
Short-link record model shared by every storage backend.

Field names are snake_case in Python and camelCase on the wire / in the JSON
data file (``shortCode``, ``originalUrl``, ``qrCodeImage``, ``clicks``,
``createdAt``, ``lastAccessed``).
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC and normalize aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ShortLinkRecord(BaseModel):
    """
    One short code and its access metadata.

    The short code is the primary key and never changes once created.
    ``clicks`` and ``last_accessed`` move together on every resolution.
    """

    short_code: str = Field(..., min_length=1, max_length=10)
    original_url: str
    # Older data files call this field "qrCode"
    qr_code_image: str = Field(
        default="",
        alias="qrCodeImage",
        validation_alias=AliasChoices("qrCodeImage", "qrCode", "qr_code_image"),
    )
    clicks: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    last_accessed: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("created_at", "last_accessed")
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    def to_document(self) -> Dict[str, Any]:
        """Serialize for the JSON data file (camelCase, ISO-8601 timestamps)."""
        return self.model_dump(mode="json", by_alias=True)


class ShortLinkUpdate(BaseModel):
    """
    Partial update of a stored record.

    Only the fields explicitly set are applied; ``short_code`` and
    ``created_at`` are not updatable. An update with nothing set is a no-op.
    """

    original_url: Optional[str] = None
    qr_code_image: Optional[str] = Field(
        default=None,
        alias="qrCodeImage",
        validation_alias=AliasChoices("qrCodeImage", "qrCode", "qr_code_image"),
    )
    clicks: Optional[int] = Field(default=None, ge=0)
    last_accessed: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    @field_validator("original_url", "qr_code_image", "clicks")
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        # Runs only for explicitly provided values; these columns are NOT NULL
        if value is None:
            raise ValueError("field cannot be set to null")
        return value

    @field_validator("last_accessed")
    @classmethod
    def _normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    def changes(self) -> Dict[str, Any]:
        """Fields that were explicitly provided, keyed by Python field name."""
        return self.model_dump(exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set
