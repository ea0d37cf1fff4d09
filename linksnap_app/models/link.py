from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from linksnap_app.database.connection import Base


class ShortLink(Base):
    """One row per short code; see schemas.link.ShortLinkRecord for the field contract."""
    __tablename__ = "urls"

    short_code = Column(String(10), primary_key=True)
    original_url = Column(Text, nullable=False)
    qr_code = Column(Text, nullable=False)
    clicks = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_accessed = Column(DateTime(timezone=True), nullable=True)


# Backs the newest-first listing
Index("idx_urls_created_at", ShortLink.created_at.desc())
