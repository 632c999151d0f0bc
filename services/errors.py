# services/errors.py
from __future__ import annotations


class BillingError(Exception):
    """Base class for failures raised by the billing core."""


class ValidationError(BillingError):
    """Caller input is malformed or logically inconsistent."""


class NotFoundError(BillingError):
    """A referenced household or bill does not exist (or is not visible)."""


class StorageError(BillingError):
    """The backing store rejected or failed a read/write."""


class DuplicateError(ValidationError):
    """A row with the same natural key already exists."""
