"""
Shared utilities for the JWT revocation manager client.

This package aggregates the cross-cutting building blocks the client uses:

- config: Client configuration via pydantic-settings
- logging: Structured logging with trace correlation
- errors: Canonical error types

Nothing in shared/ imports from manager_client.app.
"""
