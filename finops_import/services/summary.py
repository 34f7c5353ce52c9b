from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format (one line, last line of every CLI run)::

    SUMMARY files={n}/{n} success={s} failed={f} valid_rows={v} error_rows={e} unmatched={u} elapsed_sec={t}
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(seconds: float) -> str:
    """Render seconds without scientific notation; integral values as ints."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ProcessingResult) -> str:
    """Render the SUMMARY line for a directory run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = ProcessingResult(
        ...     success_files=2, failed_files=1, valid_rows=10, error_rows=2,
        ...     unmatched_rows=1, start_time=t, end_time=t, elapsed_seconds=1.5,
        ... )
        >>> render_summary_line(r)
        'SUMMARY files=3/3 success=2 failed=1 valid_rows=10 error_rows=2 unmatched=1 elapsed_sec=1.5'
    """
    total = result.total_files
    return (
        f"SUMMARY files={total}/{total} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"valid_rows={result.valid_rows} "
        f"error_rows={result.error_rows} "
        f"unmatched={result.unmatched_rows} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )
