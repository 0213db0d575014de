"""Screenshot collaborator interface and file naming."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

_UNSAFE_CHARS = re.compile(r"[^\w\-./]+")


@runtime_checkable
class ScreenshotService(Protocol):
    async def save(self, file_name: str) -> str | None:
        """Capture a screenshot to ``file_name``; return the written path or None."""
        ...


class NullScreenshotService:
    """Used when screenshots are disabled; never writes anything."""

    async def save(self, file_name: str) -> str | None:
        return None


def get_file_name(
    prefix: str,
    is_error: bool,
    screenshots_path: str | Path,
    now: datetime | None = None,
) -> str:
    """Build ``<path>/<prefix>_<ERROR|FAILED>_<timestamp>.png``.

    ``prefix`` may contain ``/`` to nest screenshots per module.
    """
    stamp = (now or datetime.now()).strftime("%b-%d-%Y--%H%M%S-%f")[:-3]
    safe_prefix = _UNSAFE_CHARS.sub("-", prefix).strip("-")
    kind = "ERROR" if is_error else "FAILED"
    return str(Path(screenshots_path) / f"{safe_prefix}_{kind}_{stamp}.png")
