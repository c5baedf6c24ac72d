"""Middleware for the local FastAPI application."""
