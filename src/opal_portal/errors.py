from __future__ import annotations

from typing import Optional


class PortalError(RuntimeError):
    """
    Base class for everything the portal client raises.
    """


class TransportError(PortalError):
    """
    Network failure or a non-success HTTP status from the portal.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(PortalError):
    """
    The login exchange failed, or the session could not be re-established after logging in.
    """


class PageStructureError(PortalError):
    """
    An expected anchor (table, caption, tbody, input) or row shape was not found on a page.
    """


class FieldParseError(PortalError, ValueError):
    """
    A required cell, or a populated optional cell, did not match its expected format.
    """
