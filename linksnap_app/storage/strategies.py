"""
Short-link storage strategies using Strategy Pattern.

Allows switching between persistence media without touching the service or
route code:
- JSON file: zero setup, single-process deployments
- SQL (PostgreSQL, SQLite for development): pooled connections, atomic counters

Blocking I/O (file access, database driver calls) runs in a worker thread so
awaiting a storage call never blocks the event loop.
"""

import contextlib
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import (
    ArgumentError,
    IntegrityError,
    InterfaceError,
    NoSuchModuleError,
    OperationalError,
)
from sqlalchemy.orm import Session

from linksnap_app.database.connection import Base, create_db_engine, create_session_factory
from linksnap_app.models.link import ShortLink
from linksnap_app.schemas.link import ShortLinkRecord, ShortLinkUpdate, ensure_utc, utc_now
from .exceptions import DuplicateCode, StorageCorrupted, StorageUnavailable

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class StorageStrategy(ABC):
    """
    Abstract base class for short-link storage strategies.

    Every backend honours the same semantics:
    - lookups return None for a missing code (never raise)
    - mutating a missing code is a no-op
    - create raises DuplicateCode if the code is taken
    - medium failures raise StorageUnavailable
    - no retries happen inside the storage layer

    All methods are async because every backend performs I/O.
    """

    name: str = "abstract"

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the persistence medium (directories, files, tables, indexes).

        Safe to call any number of times; never duplicates or drops data.

        Raises:
            StorageUnavailable: medium cannot be prepared
        """
        pass

    @abstractmethod
    async def create(self, short_code: str, record: ShortLinkRecord) -> None:
        """
        Insert a new record.

        Args:
            short_code: Primary key; must equal record.short_code
            record: Record to store

        Raises:
            DuplicateCode: a record with this code already exists
        """
        pass

    @abstractmethod
    async def find_by_code(self, short_code: str) -> Optional[ShortLinkRecord]:
        """
        Look up a record.

        Returns:
            The stored record, or None if the code does not exist
        """
        pass

    @abstractmethod
    async def update(self, short_code: str, changes: ShortLinkUpdate) -> None:
        """
        Merge the explicitly set fields of ``changes`` into the stored record.

        No-op when the code does not exist or nothing is set.
        """
        pass

    @abstractmethod
    async def increment_clicks(self, short_code: str) -> None:
        """Add one click and stamp last_accessed with the current time, together."""
        pass

    @abstractmethod
    async def touch_last_accessed(self, short_code: str, timestamp: datetime) -> None:
        """Set last_accessed without touching clicks (out-of-band corrections)."""
        pass

    @abstractmethod
    async def exists(self, short_code: str) -> bool:
        """Presence check used by the code generation loop."""
        pass

    @abstractmethod
    async def get_all(self) -> List[ShortLinkRecord]:
        """Return every record, newest (created_at) first."""
        pass

    @abstractmethod
    async def delete(self, short_code: str) -> None:
        """Remove a record; no-op if absent."""
        pass

    async def close(self) -> None:
        """Release resources held by the backend (idempotent)."""
        return None

    @staticmethod
    def _check_key(short_code: str, record: ShortLinkRecord) -> None:
        if record.short_code != short_code:
            raise ValueError(
                f"Record short code '{record.short_code}' does not match key '{short_code}'"
            )


class JSONFileStorage(StorageStrategy):
    """
    JSON file implementation: one file holding a {code: record} mapping.

    Every mutation reads the whole mapping, changes it in memory and writes
    the whole file back. Writes go to a temporary file that then replaces the
    data file, so readers never see a half-written file.

    Pros:
    - Zero configuration (no external services)
    - Human-readable data file

    Cons:
    - No locking: concurrent writers race and the last one wins
    - Cost of every call grows with the number of records

    Use case:
    - Development, demos, single-process deployments
    """

    name = "json"

    def __init__(
        self,
        file_path: Union[str, Path] = "data/urls.json",
        strict: bool = True,
        clock: Clock = utc_now,
    ):
        """
        Initialize JSON file storage.

        Args:
            file_path: Path of the data file
            strict: Raise on unreadable/corrupt data instead of treating it as empty
            clock: Returns the current UTC time (used by increment_clicks)
        """
        self.file_path = Path(file_path)
        self.strict = strict
        self.clock = clock

    # ---- file access -----------------------------------------------------

    def _initialize_sync(self) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create data directory {self.file_path.parent}: {e}") from e

        try:
            # "x" mode only creates; an existing data file is never truncated
            with self.file_path.open("x", encoding="utf-8") as fh:
                fh.write("{}")
            logger.info("Created JSON data file %s", self.file_path)
        except FileExistsError:
            pass
        except OSError as e:
            raise StorageUnavailable(f"Cannot prepare data file {self.file_path}: {e}") from e

    def _read_data(self) -> Dict[str, ShortLinkRecord]:
        try:
            raw = self.file_path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            return self._unreadable(StorageUnavailable(f"Cannot read {self.file_path}: {e}"))

        try:
            text = raw.decode("utf-8")
            documents = json.loads(text) if text.strip() else {}
            if not isinstance(documents, dict):
                raise ValueError("top-level value is not an object")
            return {
                code: ShortLinkRecord.model_validate(document)
                for code, document in documents.items()
            }
        except (ValueError, ValidationError) as e:
            # UnicodeDecodeError and json.JSONDecodeError are ValueErrors
            return self._unreadable(StorageCorrupted(f"Corrupt data file {self.file_path}: {e}"))

    def _unreadable(self, error: Exception) -> Dict[str, ShortLinkRecord]:
        if self.strict:
            raise error
        logger.error("%s; treating data file as empty", error)
        return {}

    def _write_data(self, data: Dict[str, ShortLinkRecord]) -> None:
        payload = {code: record.to_document() for code, record in data.items()}
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.file_path.parent, prefix=f".{self.file_path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
            raise StorageUnavailable(f"Cannot write {self.file_path}: {e}") from e

    # ---- operations (run in a worker thread) ------------------------------

    def _create_sync(self, short_code: str, record: ShortLinkRecord) -> None:
        data = self._read_data()
        if short_code in data:
            raise DuplicateCode(short_code)
        data[short_code] = record
        self._write_data(data)

    def _update_sync(self, short_code: str, changes: ShortLinkUpdate) -> None:
        data = self._read_data()
        record = data.get(short_code)
        if record is None:
            return
        data[short_code] = record.model_copy(update=changes.changes())
        self._write_data(data)

    def _increment_clicks_sync(self, short_code: str) -> None:
        data = self._read_data()
        record = data.get(short_code)
        if record is None:
            return
        data[short_code] = record.model_copy(
            update={"clicks": record.clicks + 1, "last_accessed": self.clock()}
        )
        self._write_data(data)

    def _touch_last_accessed_sync(self, short_code: str, timestamp: datetime) -> None:
        data = self._read_data()
        record = data.get(short_code)
        if record is None:
            return
        data[short_code] = record.model_copy(update={"last_accessed": ensure_utc(timestamp)})
        self._write_data(data)

    def _delete_sync(self, short_code: str) -> None:
        data = self._read_data()
        if data.pop(short_code, None) is not None:
            self._write_data(data)

    # ---- contract ---------------------------------------------------------

    async def initialize(self) -> None:
        await run_in_threadpool(self._initialize_sync)

    async def create(self, short_code: str, record: ShortLinkRecord) -> None:
        self._check_key(short_code, record)
        await run_in_threadpool(self._create_sync, short_code, record)

    async def find_by_code(self, short_code: str) -> Optional[ShortLinkRecord]:
        data = await run_in_threadpool(self._read_data)
        return data.get(short_code)

    async def update(self, short_code: str, changes: ShortLinkUpdate) -> None:
        if changes.is_empty():
            return
        await run_in_threadpool(self._update_sync, short_code, changes)

    async def increment_clicks(self, short_code: str) -> None:
        await run_in_threadpool(self._increment_clicks_sync, short_code)

    async def touch_last_accessed(self, short_code: str, timestamp: datetime) -> None:
        await run_in_threadpool(self._touch_last_accessed_sync, short_code, timestamp)

    async def exists(self, short_code: str) -> bool:
        data = await run_in_threadpool(self._read_data)
        return short_code in data

    async def get_all(self) -> List[ShortLinkRecord]:
        data = await run_in_threadpool(self._read_data)
        return sorted(data.values(), key=lambda record: record.created_at, reverse=True)

    async def delete(self, short_code: str) -> None:
        await run_in_threadpool(self._delete_sync, short_code)


class SQLStorage(StorageStrategy):
    """
    Relational implementation: one row per short code in the ``urls`` table.

    Every call checks a connection out of the engine's pool inside a short
    transaction and returns it on every exit path (commit, empty result,
    rollback on error).

    Pros:
    - Atomic server-side click counter (no lost updates)
    - Multiple processes can share one database
    - Indexed newest-first listing

    Cons:
    - Requires a database server in production

    Use case:
    - Production (PostgreSQL); SQLite works for development and tests
    """

    name = "postgresql"

    # Updatable record fields and the columns they live in
    UPDATABLE_COLUMNS = {
        "original_url": "original_url",
        "qr_code_image": "qr_code",
        "clicks": "clicks",
        "last_accessed": "last_accessed",
    }

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
        clock: Clock = utc_now,
    ):
        """
        Initialize SQL storage.

        Args:
            database_url: SQLAlchemy/PostgreSQL connection string
            pool_size: Connections kept open in the pool
            max_overflow: Extra connections allowed under load
            echo: Log every SQL statement
            clock: Returns the current UTC time (used by increment_clicks)
        """
        try:
            self.engine = create_db_engine(
                database_url, pool_size=pool_size, max_overflow=max_overflow, echo=echo
            )
        except (ArgumentError, NoSuchModuleError, ImportError) as e:
            # malformed URL, unknown dialect or missing driver
            raise StorageUnavailable(f"Cannot configure database engine: {e}") from e
        self.session_factory = create_session_factory(self.engine)
        self.clock = clock

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        """One session/transaction per operation; connectivity errors become StorageUnavailable."""
        try:
            with self.session_factory.begin() as session:
                yield session
        except (OperationalError, InterfaceError) as e:
            logger.error("Database unavailable while %s: %s", action, e)
            raise StorageUnavailable(f"Database unavailable while {action}") from e

    @staticmethod
    def _to_record(row: ShortLink) -> ShortLinkRecord:
        return ShortLinkRecord(
            short_code=row.short_code,
            original_url=row.original_url,
            qr_code_image=row.qr_code,
            clicks=row.clicks,
            created_at=row.created_at,
            last_accessed=row.last_accessed,
        )

    # ---- operations (run in a worker thread) ------------------------------

    def _initialize_sync(self) -> None:
        try:
            # checkfirst: CREATE TABLE / INDEX only when missing
            Base.metadata.create_all(self.engine, tables=[ShortLink.__table__], checkfirst=True)
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailable(f"Cannot initialize database tables: {e}") from e
        logger.info("Database tables initialized")

    def _create_sync(self, short_code: str, record: ShortLinkRecord) -> None:
        try:
            with self._transaction("creating a short link") as session:
                session.execute(
                    insert(ShortLink).values(
                        short_code=short_code,
                        original_url=record.original_url,
                        qr_code=record.qr_code_image,
                        clicks=record.clicks,
                        created_at=record.created_at,
                        last_accessed=record.last_accessed,
                    )
                )
        except IntegrityError as e:
            raise DuplicateCode(short_code) from e

    def _find_by_code_sync(self, short_code: str) -> Optional[ShortLinkRecord]:
        with self._transaction("looking up a short link") as session:
            row = session.get(ShortLink, short_code)
            return self._to_record(row) if row is not None else None

    def _update_sync(self, short_code: str, changes: ShortLinkUpdate) -> None:
        values = {
            self.UPDATABLE_COLUMNS[field]: value
            for field, value in changes.changes().items()
        }
        with self._transaction("updating a short link") as session:
            session.execute(
                update(ShortLink)
                .where(ShortLink.short_code == short_code)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

    def _increment_clicks_sync(self, short_code: str) -> None:
        # Single statement: the database applies clicks + 1 under its row lock
        with self._transaction("counting a click") as session:
            session.execute(
                update(ShortLink)
                .where(ShortLink.short_code == short_code)
                .values(clicks=ShortLink.clicks + 1, last_accessed=self.clock())
                .execution_options(synchronize_session=False)
            )

    def _touch_last_accessed_sync(self, short_code: str, timestamp: datetime) -> None:
        with self._transaction("updating last access time") as session:
            session.execute(
                update(ShortLink)
                .where(ShortLink.short_code == short_code)
                .values(last_accessed=ensure_utc(timestamp))
                .execution_options(synchronize_session=False)
            )

    def _exists_sync(self, short_code: str) -> bool:
        with self._transaction("checking a short code") as session:
            found = session.execute(
                select(ShortLink.short_code).where(ShortLink.short_code == short_code)
            ).first()
            return found is not None

    def _get_all_sync(self) -> List[ShortLinkRecord]:
        with self._transaction("listing short links") as session:
            rows = session.scalars(select(ShortLink).order_by(ShortLink.created_at.desc()))
            return [self._to_record(row) for row in rows]

    def _delete_sync(self, short_code: str) -> None:
        with self._transaction("deleting a short link") as session:
            session.execute(delete(ShortLink).where(ShortLink.short_code == short_code))

    # ---- contract ---------------------------------------------------------

    async def initialize(self) -> None:
        await run_in_threadpool(self._initialize_sync)

    async def create(self, short_code: str, record: ShortLinkRecord) -> None:
        self._check_key(short_code, record)
        await run_in_threadpool(self._create_sync, short_code, record)

    async def find_by_code(self, short_code: str) -> Optional[ShortLinkRecord]:
        return await run_in_threadpool(self._find_by_code_sync, short_code)

    async def update(self, short_code: str, changes: ShortLinkUpdate) -> None:
        if changes.is_empty():
            return
        await run_in_threadpool(self._update_sync, short_code, changes)

    async def increment_clicks(self, short_code: str) -> None:
        await run_in_threadpool(self._increment_clicks_sync, short_code)

    async def touch_last_accessed(self, short_code: str, timestamp: datetime) -> None:
        await run_in_threadpool(self._touch_last_accessed_sync, short_code, timestamp)

    async def exists(self, short_code: str) -> bool:
        return await run_in_threadpool(self._exists_sync, short_code)

    async def get_all(self) -> List[ShortLinkRecord]:
        return await run_in_threadpool(self._get_all_sync)

    async def delete(self, short_code: str) -> None:
        await run_in_threadpool(self._delete_sync, short_code)

    async def close(self) -> None:
        """Dispose of the engine, closing every pooled connection."""
        self.engine.dispose()
