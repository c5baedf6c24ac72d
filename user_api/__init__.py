"""User API - serverless read access to user records.

The API runs as AWS Lambda functions behind API Gateway and reads users
from PostgreSQL through a small per-process connection pool.

Architecture Overview:
- **Handlers**: Gateway event adapters with validation and JSON envelopes
- **Users**: Domain records, mappers and the user service
- **Infrastructure**: Connection pool provider and generic data access layer
- **Core**: Configuration, logging, tracing, errors and request context
- **API**: FastAPI server exposing the handlers for local development
"""
