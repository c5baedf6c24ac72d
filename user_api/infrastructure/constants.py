"""Infrastructure-related constants, particularly for the database."""

# Connection pool
POOL_RECYCLE_SECONDS = 3600  # 1 hour
CONNECT_TIMEOUT_SECONDS = 5

# Query logging
MAX_LOGGED_STATEMENT_LENGTH = 500

# Primary table of the user domain; quoted because USER is reserved
USER_TABLE = '"User"'
