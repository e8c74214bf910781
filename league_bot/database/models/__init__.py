from .student import MAX_TIER, MIN_TIER, TIER_NAMES, Student, clamp_tier, tier_name
from .league import MAX_LEAGUE_SIZE, League, LeagueMembership
from .award import AwardType, WeeklyAward
from .attempt import Attempt
from .xp_event import XpEvent
from .usage import UsageLog

__all__ = [
    "MAX_TIER",
    "MIN_TIER",
    "TIER_NAMES",
    "Student",
    "clamp_tier",
    "tier_name",
    "MAX_LEAGUE_SIZE",
    "League",
    "LeagueMembership",
    "AwardType",
    "WeeklyAward",
    "Attempt",
    "XpEvent",
    "UsageLog",
]
