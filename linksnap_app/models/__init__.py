"""
Database models for the relational storage backend.

The JSON file backend does not use these; both backends exchange
``ShortLinkRecord`` objects (see ``linksnap_app.schemas.link``).
"""

from .link import ShortLink

__all__ = ["ShortLink"]
