from __future__ import annotations

import time
import zipfile
from pathlib import Path
from typing import Iterable, Optional


def create_debug_bundle(
    *,
    debug_dir: str,
    log_file: str,
    out_dir: str = "data",
    label: str = "",
    extra_paths: Optional[Iterable[str]] = None,
    exclude_paths: Optional[Iterable[str]] = None,
) -> Path:
    """
    Zip the saved page captures and the log so a parsing failure can be reported.

    Pass the auth file in `exclude_paths`; it holds the password and live session cookies.
    """
    out_root = Path(out_dir)
    out_root.mkdir(parents=True, exist_ok=True)

    stamp = time.strftime("%Y%m%d_%H%M%S")
    safe_label = "".join(ch for ch in (label or "").strip().lower() if ch.isalnum() or ch in "-_")
    label_part = f"_{safe_label}" if safe_label else ""
    out_path = out_root / f"debug_bundle{label_part}_{stamp}.zip"

    excluded = {Path(p).expanduser().resolve() for p in (exclude_paths or ())}

    def _add(z: zipfile.ZipFile, file_path: Path, arcname: str) -> None:
        if not file_path.is_file() or file_path.resolve() in excluded:
            return
        try:
            z.write(file_path, arcname=arcname)
        except OSError:
            # A capture may disappear while we bundle; skip it.
            return

    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        log = Path(log_file)
        _add(z, log, arcname=log.name)

        dbg = Path(debug_dir)
        if dbg.is_dir():
            for p in sorted(dbg.rglob("*")):
                _add(z, p, arcname=str(Path("debug") / p.relative_to(dbg)))

        for raw in extra_paths or ():
            p = Path(raw)
            if p.is_file():
                _add(z, p, arcname=str(Path("extra") / p.name))
            elif p.is_dir():
                for f in sorted(p.rglob("*")):
                    _add(z, f, arcname=str(Path("extra") / p.name / f.relative_to(p)))

    return out_path
