"""
Short code generation and URL validation.

The generator is deliberately not cryptographically secure: collisions are
possible and are handled by the uniqueness loop below (and by the creation
flow retrying on DuplicateCode), not by the generator itself.
"""

import random
import string
from urllib.parse import urlsplit

from linksnap_app.storage.strategies import StorageStrategy

ALPHABET = string.ascii_letters + string.digits  # 62 characters
DEFAULT_LENGTH = 6
ALLOWED_SCHEMES = ("http", "https")


class ShortCodeGenerationError(Exception):
    """No free short code was found within the retry budget."""


def generate_short_code(length: int = DEFAULT_LENGTH) -> str:
    """Generate a random string of specified length"""
    return ''.join(random.choice(ALPHABET) for _ in range(length))


def is_valid_url(candidate) -> bool:
    """True only for absolute http(s) URLs with a host."""
    if not isinstance(candidate, str):
        return False
    try:
        parts = urlsplit(candidate.strip())
    except ValueError:
        return False
    return parts.scheme in ALLOWED_SCHEMES and bool(parts.netloc)


class RandomShortCodeStrategy:
    """
    Random generation strategy.
    Generates random strings and checks storage for uniqueness.

    Pros: Simple, unpredictable
    Cons: Collision risk grows with volume, one lookup per attempt
    """

    def __init__(self, storage: StorageStrategy, length: int = DEFAULT_LENGTH, max_retries: int = 5):
        self.storage = storage
        self.length = length
        self.max_retries = max_retries

    async def generate(self) -> str:
        """Generate random short code with collision checking"""
        for attempt in range(self.max_retries):
            short_code = generate_short_code(self.length)

            # Check if code already exists
            if not await self.storage.exists(short_code):
                return short_code

        # If all retries failed
        raise ShortCodeGenerationError(
            f"Could not generate unique short code after {self.max_retries} attempts"
        )
