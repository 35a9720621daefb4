from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path
from typing import Optional, Protocol, Union

from pydantic import ValidationError

from .models import Auth


logger = logging.getLogger(__name__)

DEFAULT_AUTH_FILE = str(Path.home() / ".opal")


class AuthStoreError(RuntimeError):
    """
    The stored credentials/cookies could not be loaded or saved.
    """


class AuthStore(Protocol):
    def load(self) -> Auth: ...

    def save(self, auth: Auth) -> None: ...


class FileAuthStore:
    """
    JSON file holding username, password and session cookies.

    The file holds a password, so `load()` refuses a file that group/other can access.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_AUTH_FILE) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Auth:
        try:
            st = self.path.stat()
        except OSError as e:
            raise AuthStoreError(f"cannot read auth file {self.path}: {e}") from e

        mode = stat.S_IMODE(st.st_mode)
        if mode & 0o077:
            raise AuthStoreError(
                f"security check failed on {self.path}: mode is {mode:04o}; "
                "it should not be accessible by group/other (chmod 600)"
            )

        try:
            raw = self.path.read_text(encoding="utf-8")
            return Auth.model_validate(json.loads(raw))
        except OSError as e:
            raise AuthStoreError(f"cannot read auth file {self.path}: {e}") from e
        except (json.JSONDecodeError, ValidationError) as e:
            raise AuthStoreError(f"bad auth file {self.path}: {e}") from e

    def save(self, auth: Auth) -> None:
        payload = json.dumps(auth.model_dump(mode="json"), indent=2)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            # O_CREAT's mode is ignored when the temp file already existed.
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except OSError as e:
            raise AuthStoreError(f"cannot write auth file {self.path}: {e}") from e
        logger.debug("Wrote auth file %s (%d cookies)", self.path, len(auth.cookies))


class MemoryAuthStore:
    """
    In-process store; `saved` holds the last value passed to `save()`.
    """

    def __init__(self, auth: Auth) -> None:
        self.auth = auth
        self.saved: Optional[Auth] = None

    def load(self) -> Auth:
        return self.auth.model_copy(deep=True)

    def save(self, auth: Auth) -> None:
        self.saved = auth.model_copy(deep=True)
        self.auth = self.saved
