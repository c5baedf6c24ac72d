"""User domain: records, mappers and the read service."""
