"""FastAPI application serving the handlers for local development."""
