"""Application-level exception types.

Convention:
- ``RemoteStoreError`` and its subclasses never leave the remote store adapter.
  They are raised inside it and converted to "no data" at its public boundary.
- ``PageReferenceError`` (a ``ValueError``) is the only error the controller
  lets reach callers: it signals a programmer error such as saving without
  any identifiable page.
- ``InternalServerError`` is for page server errors whose details must never
  reach clients.
"""

from __future__ import annotations


class RemoteStoreError(Exception):
    """Base class for failures talking to the remote page store."""


class RemoteUnavailableError(RemoteStoreError):
    """Network, DNS or server failure; treated like an empty response."""


class MalformedResponseError(RemoteStoreError):
    """Response body was not JSON or lacked expected fields."""


class PageReferenceError(ValueError):
    """Raised when an operation has no identifiable page to act on."""


class PageNotFoundError(PageReferenceError):
    """Raised when a page id is not present in the registry."""


class InternalServerError(Exception):
    """Raised for internal page server errors whose details must not be exposed.

    The global exception handler in ``eventpages/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """
