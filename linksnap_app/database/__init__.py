from .connection import Base, create_db_engine, create_session_factory, normalize_database_url

__all__ = ["Base", "create_db_engine", "create_session_factory", "normalize_database_url"]
