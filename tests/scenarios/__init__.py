"""Conformance test scenarios for idempotency middleware.

This package contains end-to-end scenario tests that drive the middleware
through a FastAPI application or the core entry point. Each scenario covers
one aspect of idempotency handling.
"""
