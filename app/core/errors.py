from __future__ import annotations


class NotFoundError(ValueError):
    """Requested row does not exist in the relational store."""


class ObjectStorageError(RuntimeError):
    """S3 rejected or failed a request."""


class GatewayError(RuntimeError):
    """Processing gateway unreachable, unconfigured or returned a non-success status."""
