"""
XP and Leveling System

XP is earned by solving problems: each solved problem contributes its
catalog `xp_reward`. Levels are flat, 100 XP per level:

- 0-99 XP: Level 1
- 100-199 XP: Level 2
- 250 XP: Level 3, 50 XP to next level
"""

from typing import Dict, Iterable
import logging

from dsa_tracker.models.problem import UserProblemState

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 100


def calculate_level_from_xp(total_xp: int) -> Dict[str, int]:
    """
    Calculate level from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int
        }
    """
    if total_xp < 0:
        raise ValueError(f"total_xp must not be negative, got {total_xp}")

    xp_in_level = total_xp % XP_PER_LEVEL

    return {
        "current_level": total_xp // XP_PER_LEVEL + 1,
        "xp_in_current_level": xp_in_level,
        "xp_to_next_level": XP_PER_LEVEL - xp_in_level,
    }


def total_xp(states: Iterable[UserProblemState]) -> int:
    """Sum XP rewards over solved problems"""
    return sum(state.xp_reward for state in states if state.is_solved)
