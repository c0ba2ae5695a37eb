"""Logging utility functions."""


def format_cycle_output(
    cycle_count: int,
    succeeded: int,
    failed: int,
    skipped: int = 0,
    pending: int | None = None,
    since_last: dict[str, int] | None = None,
    interval_seconds: float = 10,
) -> str:
    """
    Format a progress line for a drain in flight.

    Example:
        >>> format_cycle_output(1, 120, 3, 2)
        'Cycle 1: processed=125 (succeeded=120, failed=3, skipped=2)'
        >>> format_cycle_output(5, 120, 3, 0, 40, {"succeeded": 20, "failed": 0}, 10)
        'Cycle 5: +20 this cycle | total: 120 succeeded, 3 failed | 40 pending | 2.0 files/s'
    """
    if since_last is not None:
        delta_total = (
            since_last.get("succeeded", 0)
            + since_last.get("failed", 0)
            + since_last.get("skipped", 0)
        )
        rate = delta_total / interval_seconds if interval_seconds > 0 else 0

        total_parts = [f"{succeeded} succeeded"]
        if failed > 0:
            total_parts.append(f"{failed} failed")
        if skipped > 0:
            total_parts.append(f"{skipped} skipped")

        parts = [f"+{delta_total} this cycle", f"total: {', '.join(total_parts)}"]
        if pending is not None:
            parts.append(f"{pending} pending")
        parts.append(f"{rate:.1f} files/s")
        return f"Cycle {cycle_count}: {' | '.join(parts)}"

    total_processed = succeeded + failed + skipped
    detail = [f"succeeded={succeeded}", f"failed={failed}"]
    if skipped > 0:
        detail.append(f"skipped={skipped}")
    return f"Cycle {cycle_count}: processed={total_processed} ({', '.join(detail)})"
