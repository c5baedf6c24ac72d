"""Database access through SQLAlchemy Core.

Core components:
- **pool**: Process-wide pooled engine with lazy, thread-safe construction
- **data_service**: Generic CRUD operations with row mappers and
  transaction scopes
"""

from user_api.infrastructure.database.data_service import DataService, RowMapper
from user_api.infrastructure.database.pool import (
    check_database_connection,
    create_data_source,
    get_data_source,
)

__all__ = [
    "DataService",
    "RowMapper",
    "check_database_connection",
    "create_data_source",
    "get_data_source",
]
