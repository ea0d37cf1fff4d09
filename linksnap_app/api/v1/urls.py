from fastapi import APIRouter, Depends, HTTPException, status

from linksnap_app.schemas.url import (
    AnalyticsResponse,
    ShortenRequest,
    ShortenResponse,
    URLInfo,
    URLList,
    URLStats,
    URLSummary,
)
from linksnap_app.services.url_service import InvalidURLError, URLService
from linksnap_app.dependencies import get_url_service

router = APIRouter(tags=["urls"])


@router.post("/shorten", response_model=ShortenResponse, status_code=status.HTTP_201_CREATED)
async def shorten_url(
    payload: ShortenRequest,
    url_service: URLService = Depends(get_url_service)
):
    """Create a new short URL"""
    try:
        record = await url_service.create_short_url(payload.url)
    except InvalidURLError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ShortenResponse(
        short_code=record.short_code,
        short_url=url_service.short_url_for(record.short_code),
        original_url=record.original_url,
        qr_code=record.qr_code_image,
        created_at=record.created_at,
    )


@router.get("/urls", response_model=URLList)
async def list_urls(url_service: URLService = Depends(get_url_service)):
    """List every short URL, newest first"""
    records = await url_service.list_urls()
    return URLList(urls=[URLSummary(**record.model_dump()) for record in records])


@router.get("/urls/{short_code}", response_model=URLInfo)
async def get_url_info(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Get information about a short URL (does not count a click)"""
    record = await url_service.get_url(short_code)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="URL not found"
        )
    return URLInfo(**record.model_dump())


@router.delete("/urls/{short_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_url(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Delete a short URL"""
    if not await url_service.delete_url(short_code):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="URL not found"
        )


@router.get("/analytics/{short_code}", response_model=AnalyticsResponse)
async def get_analytics(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Get click statistics for a short URL"""
    record = await url_service.get_url(short_code)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="URL not found"
        )
    return AnalyticsResponse(analytics=URLStats(**record.model_dump()))
