from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse

from linksnap_app.schemas.url import RedirectResponseBody
from linksnap_app.services.url_service import URLService
from linksnap_app.dependencies import get_url_service

# JSON lookup used by client-side redirect pages
api_router = APIRouter(tags=["redirect"])

# Bare /{short_code} redirect, mounted last so it doesn't shadow other routes
router = APIRouter(tags=["redirect"])


async def _resolve_or_404(url_service: URLService, short_code: str) -> str:
    original_url = await url_service.resolve(short_code)
    if not original_url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="URL not found"
        )
    return original_url


@api_router.get("/redirect/{short_code}", response_model=RedirectResponseBody)
async def resolve_short_code(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Return the original URL and count the click"""
    original_url = await _resolve_or_404(url_service, short_code)
    return RedirectResponseBody(redirect_url=original_url)


@router.get("/{short_code}")
async def redirect_to_original_url(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """
    Redirect to the original URL.

    The click is counted (clicks + 1 and last access time, together)
    before the redirect is sent.
    """
    original_url = await _resolve_or_404(url_service, short_code)
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
