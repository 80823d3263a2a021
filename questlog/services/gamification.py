"""Gamification rules - XP awards, level curve, and streak tracking.

Everything in this module is a pure function of its arguments: no clock,
no database. The completion service feeds them stored state and "now".
"""

from datetime import date, datetime
from typing import Any


# =============================================================================
# CONSTANTS
# =============================================================================

# XP awards for a daily completion (additive)
XP_SOURCES = {
    "completion": 50,
    "medication_free": 25,
    "early_bird": 15,
}

# Completions strictly before this local hour earn the early-bird bonus
EARLY_BIRD_CUTOFF_HOUR = 12

# Level curve: advancing from level L to L+1 costs BASE + (L-1) * STEP
LEVEL_BASE_COST = 100
LEVEL_COST_STEP = 150


# =============================================================================
# LEVEL CALCULATIONS
# =============================================================================

def xp_cost_for_level(level: int) -> int:
    """XP needed to advance from `level` to `level + 1`."""
    if level < 1:
        raise ValueError(f"Level must be >= 1, got {level}")
    return LEVEL_BASE_COST + (level - 1) * LEVEL_COST_STEP


def xp_threshold_for_level(level: int) -> int:
    """Cumulative XP required to reach a level from level 1."""
    if level < 1:
        raise ValueError(f"Level must be >= 1, got {level}")
    return sum(xp_cost_for_level(l) for l in range(1, level))


def level_for(total_xp: int) -> int:
    """Highest level fully paid for by `total_xp`. No upper bound."""
    if total_xp < 0:
        raise ValueError(f"Total XP must be >= 0, got {total_xp}")

    level = 1
    remaining_xp = total_xp
    while remaining_xp >= xp_cost_for_level(level):
        remaining_xp -= xp_cost_for_level(level)
        level += 1
    return level


def level_progress(total_xp: int) -> dict[str, Any]:
    """
    Level and progress toward the next one.

    Returns:
        {
            'current_level': int,
            'xp_into_level': int,
            'xp_to_next_level': int,
            'xp_for_next_level': int (cumulative threshold of the next level),
            'progress': float (0.0 - 1.0)
        }
    """
    level = level_for(total_xp)
    level_start = xp_threshold_for_level(level)
    cost = xp_cost_for_level(level)
    xp_into_level = total_xp - level_start

    return {
        "current_level": level,
        "xp_into_level": xp_into_level,
        "xp_to_next_level": cost - xp_into_level,
        "xp_for_next_level": level_start + cost,
        "progress": xp_into_level / cost,
    }


# =============================================================================
# XP AWARDS
# =============================================================================

def compute_xp(used_medication: bool, completion_hour: int) -> int:
    """XP for one completion: base, medication-free bonus, early-bird bonus."""
    if not 0 <= completion_hour <= 23:
        raise ValueError(f"Completion hour must be 0-23, got {completion_hour}")

    amount = XP_SOURCES["completion"]
    if not used_medication:
        amount += XP_SOURCES["medication_free"]
    if completion_hour < EARLY_BIRD_CUTOFF_HOUR:
        amount += XP_SOURCES["early_bird"]
    return amount


# =============================================================================
# STREAKS
# =============================================================================

def to_calendar_day(value: date | datetime) -> date:
    """Strip time-of-day so comparisons happen on whole calendar days."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(earlier: date | datetime, later: date | datetime) -> int:
    """Whole calendar days from `earlier` to `later` (negative if reversed)."""
    return (to_calendar_day(later) - to_calendar_day(earlier)).days


def update_streak(
    last_completion_date: date | datetime | None,
    today: date | datetime,
    current_streak: int,
    longest_streak: int = 0,
) -> tuple[int, int]:
    """
    Advance a streak for a completion made on `today`.

    Returns (new_streak, new_longest). A gap of two or more days, or a
    last completion in the future (clock skew), restarts the streak at 1.
    """
    if last_completion_date is None:
        new_streak = 1
    else:
        days_since = days_between(last_completion_date, today)
        if days_since == 1:
            new_streak = current_streak + 1
        elif days_since == 0:
            # Same day; the completion service rejects this before we get here
            new_streak = current_streak
        else:
            new_streak = 1

    return new_streak, max(longest_streak, new_streak)
