"""
Database engine and session construction.

The relational storage backend owns its engine (and therefore its
connection pool) for the life of the process; this module only knows how to
build one from a connection string.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def normalize_database_url(database_url: str) -> str:
    """
    Point bare PostgreSQL URLs at the psycopg 3 driver.

    Hosting platforms hand out ``postgres://`` / ``postgresql://`` URLs;
    SQLAlchemy would pick psycopg2 for those.
    """
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    if database_url.startswith("postgresql://"):
        database_url = "postgresql+psycopg://" + database_url[len("postgresql://"):]
    return database_url


def create_db_engine(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
) -> Engine:
    """
    Create an engine with a connection pool suited to the database.

    SQLite (development/tests) keeps SQLAlchemy's default pool and allows
    use from worker threads; server databases get a sized, pre-pinged pool.
    """
    url = make_url(normalize_database_url(database_url))

    if url.get_backend_name() == "sqlite":
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},  # threadpool use; wait on write locks
        )

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=30,
        pool_recycle=1800,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to ``engine``; one short session per operation."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
