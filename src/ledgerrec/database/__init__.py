"""Database layer for ledgerrec."""

from ledgerrec.database.base import Database
from ledgerrec.database.factories import create_sqlite_database
from ledgerrec.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_sqlite_database"]
