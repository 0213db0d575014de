"""Console formatting helpers: durations, stack traces and count summaries."""

from __future__ import annotations

import traceback


def format_elapsed_time(elapsed_ms: int | float, include_ms: bool = False) -> str:
    """Render a duration: ``850ms``, ``2.35s`` or ``3m 12s`` (``/ 192000ms`` when include_ms)."""
    elapsed_ms = int(elapsed_ms)
    seconds = elapsed_ms / 1000

    if seconds < 1:
        return f"{elapsed_ms}ms"
    if seconds < 60:
        return f"{seconds:g}s"

    text = f"{int(seconds // 60)}m {int(seconds % 60)}s"
    if include_ms:
        text += f" / {elapsed_ms}ms"
    return text


def error_to_stack_trace(err: BaseException) -> str:
    """Format an error with its traceback, or just ``Name: message`` if it was never raised."""
    lines = traceback.format_exception(type(err), err, err.__traceback__)
    return "".join(lines).rstrip()


def join_with_and(parts: list[str]) -> str:
    """``["a", "b", "c"]`` -> ``"a, b and c"``."""
    if len(parts) <= 1:
        return "".join(parts)
    return f"{', '.join(parts[:-1])} and {parts[-1]}"


def summarize_counts(failed: int, errors: int, passed: int, skipped: int) -> str:
    """``"2 assertions failed, 1 errors and 1 skipped"``; zero counts are left out."""
    parts: list[str] = []
    if failed > 0:
        parts.append(f"{failed} assertions failed")
    if errors > 0:
        parts.append(f"{errors} errors")
    if passed > 0:
        parts.append(f"{passed} passed")
    if skipped > 0:
        parts.append(f"{skipped} skipped")
    return join_with_and(parts)
