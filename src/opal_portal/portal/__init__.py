from .client import Fetched, PortalClient, SessionExpired
from .parsers import parse_activity, parse_login, parse_overview

__all__ = [
    "PortalClient",
    "Fetched",
    "SessionExpired",
    "parse_activity",
    "parse_login",
    "parse_overview",
]
