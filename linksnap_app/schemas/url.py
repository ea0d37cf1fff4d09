from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Responses use the same camelCase field names as the data file."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ShortenRequest(BaseModel):
    # Validated by the service (http/https only) so the API answers 400, not 422
    url: str = Field(..., description="The original URL to be shortened")


class ShortenResponse(CamelModel):
    success: bool = True
    short_code: str
    short_url: str
    original_url: str
    qr_code: str
    created_at: datetime


class URLInfo(CamelModel):
    """Full record, as stored"""
    success: bool = True
    short_code: str
    original_url: str
    qr_code_image: str
    clicks: int
    created_at: datetime
    last_accessed: Optional[datetime] = None


class URLSummary(CamelModel):
    short_code: str
    original_url: str
    clicks: int
    created_at: datetime
    last_accessed: Optional[datetime] = None


class URLList(CamelModel):
    success: bool = True
    urls: List[URLSummary]


class URLStats(CamelModel):
    short_code: str
    original_url: str
    clicks: int
    created_at: datetime
    last_accessed: Optional[datetime] = None


class AnalyticsResponse(CamelModel):
    success: bool = True
    analytics: URLStats


class RedirectResponseBody(CamelModel):
    success: bool = True
    redirect_url: str
