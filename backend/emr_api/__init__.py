"""Application package for the EMR CRUD API.

This package exposes the entity models, the generic entity service and
the router factory used by the FastAPI application. It is intentionally
lightweight; individual modules contain the concrete implementations and
documentation.
"""
