"""Fixed schedule template for office-hours slots.

Slots run every 15 minutes from 05:00 up to (not including) 07:30.
"""
from typing import List

SLOT_START_MINUTE = 5 * 60
SLOT_END_MINUTE = 7 * 60 + 30  # exclusive
SLOT_STEP_MINUTES = 15


def format_minutes(minute: int) -> str:
    """Minutes since midnight -> zero-padded "HH:MM"."""
    hours, minutes = divmod(minute, 60)
    return f"{hours:02d}:{minutes:02d}"


def generate_slot_grid(
    start: int = SLOT_START_MINUTE,
    end: int = SLOT_END_MINUTE,
    step: int = SLOT_STEP_MINUTES,
) -> List[str]:
    """
    Build the half-open slot grid ``start <= t < end``.

    Args:
        start: First slot, in minutes since midnight
        end: Exclusive upper bound, in minutes since midnight
        step: Slot length in minutes

    Returns:
        Ascending list of "HH:MM" strings
    """
    if step <= 0:
        raise ValueError("step must be positive")
    return [format_minutes(minute) for minute in range(start, end, step)]


SLOT_GRID = tuple(generate_slot_grid())


def is_grid_slot(time: str) -> bool:
    return time in SLOT_GRID
