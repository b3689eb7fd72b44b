"""
Backend package for the society community app.

This package provides a FastAPI application with document-store, storage,
auth and queue abstractions so the mobile client no longer writes to the
database directly.
"""
