from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from http.cookiejar import Cookie
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union
from urllib.parse import urlparse

import httpx

from ..auth_store import AuthStore
from ..errors import AuthenticationError, FieldParseError, PageStructureError, TransportError
from ..models import Activity, ActivityRequest, Overview, StoredCookie
from ..util.dates import load_zone
from .anchors import PortalAnchors
from .parsers import parse_activity, parse_login, parse_overview


logger = logging.getLogger(__name__)
T = TypeVar("T")

DEFAULT_BASE_URL = "https://www.opal.com.au"


@dataclass(frozen=True)
class Fetched:
    response: httpx.Response


@dataclass(frozen=True)
class SessionExpired:
    """
    The portal tried to send us somewhere under the login path: our cookies no longer authenticate us.
    """

    location: str


FetchOutcome = Union[Fetched, SessionExpired]


class PortalClient:
    """
    Cookie-session client for the Opal web portal.

    Each fetch performs at most two page requests: if the first is redirected to the login path, the client
    logs in once and retries. Not safe for concurrent use; give each caller its own instance.
    """

    def __init__(
        self,
        auth_store: AuthStore,
        *,
        base_url: str = DEFAULT_BASE_URL,
        zone: Optional[tzinfo] = None,
        timeout_seconds: float = 30.0,
        user_agent: str = "",
        debug_dir: str = "",
        max_redirects: int = 10,
        anchors: Optional[PortalAnchors] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.auth_store = auth_store
        self.auth = auth_store.load()

        self.base_url = base_url.rstrip("/")
        self.zone = zone if zone is not None else load_zone()
        self.anchors = anchors or PortalAnchors()
        self.debug_dir = debug_dir
        self.max_redirects = int(max_redirects)
        self._host = (urlparse(self.base_url).hostname or "").lower()

        headers = {"User-Agent": user_agent} if user_agent else None
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout_seconds,
            follow_redirects=False,
            transport=transport,
        )
        for stored in self.auth.cookies:
            self._http.cookies.jar.set_cookie(self._to_jar_cookie(stored))
        logger.debug("Loaded %d stored cookies for %s", len(self.auth.cookies), self._host)

    def __enter__(self) -> "PortalClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # Public operations

    def fetch_overview(self) -> Overview:
        body = self._fetch(self.anchors.overview_path)
        return self._parse("overview", body, lambda raw: parse_overview(raw, anchors=self.anchors))

    def fetch_activity(self, request: Optional[ActivityRequest] = None) -> Activity:
        req = request or ActivityRequest()
        params: dict[str, int] = {self.anchors.activity_card_param: req.card_index}
        if req.page:
            params[self.anchors.activity_page_param] = req.page
        body = self._fetch(self.anchors.activity_path, params=params)
        return self._parse(
            "activity",
            body,
            lambda raw: parse_activity(raw, zone=self.zone, anchors=self.anchors),
        )

    def save_session(self) -> None:
        """
        Persist credentials plus the current portal cookies through the auth store.
        """
        self.auth = self.auth.model_copy(update={"cookies": self.session_cookies()})
        self.auth_store.save(self.auth)
        logger.debug("Saved %d cookies for %s", len(self.auth.cookies), self._host)

    def session_cookies(self) -> list[StoredCookie]:
        out: list[StoredCookie] = []
        for c in self._http.cookies.jar:
            domain = (c.domain or "").lstrip(".").lower()
            if domain and not (self._host == domain or self._host.endswith("." + domain)):
                continue
            out.append(
                StoredCookie(
                    name=c.name,
                    value=c.value or "",
                    domain=c.domain or "",
                    path=c.path or "/",
                    expires=c.expires,
                    secure=bool(c.secure),
                )
            )
        return out

    # Session protocol

    def _fetch(self, path: str, *, params: Optional[dict[str, int]] = None) -> bytes:
        for attempt in (1, 2):
            outcome = self._get(path, params=params)
            if isinstance(outcome, Fetched):
                return self._body(outcome.response, what=path)
            if attempt == 2:
                raise AuthenticationError(
                    f"still redirected to login ({urlparse(outcome.location).path}) after logging in; "
                    "check the stored username/password"
                )
            logger.warning("Session expired (redirected to %s); logging in.", urlparse(outcome.location).path)
            self._login()
        raise AssertionError("unreachable")

    def _get(self, path: str, *, params: Optional[dict[str, int]] = None) -> FetchOutcome:
        return self._send(self._http.build_request("GET", path, params=params))

    def _send(self, request: httpx.Request) -> FetchOutcome:
        """
        Send `request`, following ordinary redirects ourselves so a hop to the login path can be reported
        instead of followed.
        """
        for _ in range(self.max_redirects + 1):
            logger.debug("%s %s", request.method, request.url.path)
            try:
                response = self._http.send(request)
            except httpx.HTTPError as e:
                raise TransportError(f"{request.method} {request.url.path}: {e}") from e

            if not response.has_redirect_location or response.next_request is None:
                return Fetched(response)

            nxt = response.next_request
            response.close()
            if nxt.url.path.startswith(self.anchors.login_path_prefix):
                return SessionExpired(location=str(nxt.url))
            logger.debug("Following redirect %s -> %s", request.url.path, nxt.url.path)
            request = nxt

        raise TransportError(f"too many redirects (> {self.max_redirects}) for {request.url.path}")

    def _body(self, response: httpx.Response, *, what: str) -> bytes:
        if not response.is_success:
            raise TransportError(
                f"HTTP response {response.status_code} {response.reason_phrase} for {what}",
                status_code=response.status_code,
            )
        return response.content

    def _login(self) -> None:
        logger.info("Logging in to %s", self._host)
        try:
            outcome = self._get(self.anchors.login_page_path)
            if isinstance(outcome, SessionExpired):
                raise AuthenticationError(f"login form redirected to {urlparse(outcome.location).path}")
            form_page = self._body(outcome.response, what="login form")
        except TransportError as e:
            raise AuthenticationError(f"GETting login form: {e}") from e

        try:
            token = parse_login(form_page, anchors=self.anchors)
        except PageStructureError as e:
            self._save_debug("login", form_page)
            raise AuthenticationError(str(e)) from e

        form = {
            self.anchors.username_field: self.auth.username,
            self.anchors.password_field: self.auth.password,
            self.anchors.csrf_input_name: token,
        }
        try:
            outcome = self._send(self._http.build_request("POST", self.anchors.login_submit_path, data=form))
            if isinstance(outcome, SessionExpired):
                raise AuthenticationError(
                    f"login form submission was redirected back to {urlparse(outcome.location).path}"
                )
            # A successful response sets the session cookies on self._http.
            self._body(outcome.response, what="login form submission")
        except TransportError as e:
            raise AuthenticationError(f"POSTing login form: {e}") from e
        logger.info("Logged in to %s", self._host)

    # Helpers

    def _parse(self, page: str, body: bytes, parser: Callable[[bytes], T]) -> T:
        try:
            return parser(body)
        except (PageStructureError, FieldParseError):
            self._save_debug(page, body)
            raise

    def _save_debug(self, page: str, body: bytes) -> None:
        if not self.debug_dir:
            return
        try:
            out_dir = Path(self.debug_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            out = out_dir / f"{page}_failure.html"
            out.write_bytes(body)
            logger.info("Saved %s page capture: %s", page, out)
        except Exception:
            logger.debug("Failed to save debug capture for page=%s.", page, exc_info=True)

    def _to_jar_cookie(self, stored: StoredCookie) -> Cookie:
        domain = stored.domain or self._host
        return Cookie(
            version=0,
            name=stored.name,
            value=stored.value,
            port=None,
            port_specified=False,
            domain=domain,
            domain_specified=bool(stored.domain),
            domain_initial_dot=domain.startswith("."),
            path=stored.path or "/",
            path_specified=True,
            secure=stored.secure,
            expires=stored.expires,
            discard=stored.expires is None,
            comment=None,
            comment_url=None,
            rest={},
        )
