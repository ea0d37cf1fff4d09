import logging
from typing import List, Optional

from linksnap_app.config import settings
from linksnap_app.schemas.link import ShortLinkRecord, utc_now
from linksnap_app.services.qr_code import generate_qr_data_uri
from linksnap_app.services.short_code import RandomShortCodeStrategy, is_valid_url
from linksnap_app.storage.exceptions import DuplicateCode
from linksnap_app.storage.strategies import StorageStrategy

logger = logging.getLogger(__name__)


class InvalidURLError(ValueError):
    """The submitted URL is not an absolute http(s) URL."""


class URLService:
    """
    URL Service with dependency injection for storage.

    The storage handle is injected (not looked up internally), so the same
    service runs on the JSON file backend, the SQL backend or a test double.
    """

    def __init__(
        self,
        storage: StorageStrategy,
        base_url: Optional[str] = None,
        code_length: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize URL service with dependencies.

        Args:
            storage: Storage strategy holding the short links
            base_url: Public base of short URLs (defaults to settings)
            code_length: Short code length (defaults to settings)
            max_retries: Attempts for finding / inserting a free code
        """
        self.storage = storage
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.max_retries = max_retries or settings.max_retries
        self.short_code_strategy = RandomShortCodeStrategy(
            storage,
            length=code_length or settings.short_url_length,
            max_retries=self.max_retries,
        )

    def short_url_for(self, short_code: str) -> str:
        return f"{self.base_url}/{short_code}"

    async def create_short_url(self, original_url: str) -> ShortLinkRecord:
        """Create a new short URL

        Process:
        1. Validate the URL (http/https only)
        2. Pick a code that does not exist yet
        3. Render the QR code for the full short URL
        4. Insert; if another request took the code in the meantime
           (DuplicateCode), start over with a new code
        """
        if not is_valid_url(original_url):
            raise InvalidURLError("Invalid URL provided")

        for attempt in range(1, self.max_retries + 1):
            short_code = await self.short_code_strategy.generate()
            record = ShortLinkRecord(
                short_code=short_code,
                original_url=original_url,
                qr_code_image=generate_qr_data_uri(self.short_url_for(short_code)),
                clicks=0,
                created_at=utc_now(),
                last_accessed=None,
            )
            try:
                await self.storage.create(short_code, record)
            except DuplicateCode:
                logger.warning(
                    "Short code %s was taken concurrently (attempt %d/%d)",
                    short_code, attempt, self.max_retries,
                )
                continue
            return record

        raise DuplicateCode(short_code)

    async def resolve(self, short_code: str) -> Optional[str]:
        """
        Get the original URL and count the visit.

        Returns None (and counts nothing) for unknown codes.
        """
        record = await self.storage.find_by_code(short_code)
        if record is None:
            return None

        await self.storage.increment_clicks(short_code)
        return record.original_url

    async def get_url(self, short_code: str) -> Optional[ShortLinkRecord]:
        """Get a record by short code without counting a visit"""
        return await self.storage.find_by_code(short_code)

    async def list_urls(self) -> List[ShortLinkRecord]:
        """All records, newest first"""
        return await self.storage.get_all()

    async def delete_url(self, short_code: str) -> bool:
        """
        Delete a short URL.

        Returns False if the code did not exist (storage delete itself is a no-op then).
        """
        if not await self.storage.exists(short_code):
            return False
        await self.storage.delete(short_code)
        return True
