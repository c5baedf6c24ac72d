"""Infrastructure layer for data persistence.

Holds the process-wide connection pool and the generic data access layer
that the domain services build on.
"""
