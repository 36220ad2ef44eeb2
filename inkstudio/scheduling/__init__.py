from .availability import BLOCKING_STATUSES, check_availability, find_conflicts, overlapping
from .windows import TimeWindow, intervals_overlap, utcnow

__all__ = [
    "BLOCKING_STATUSES",
    "TimeWindow",
    "check_availability",
    "find_conflicts",
    "intervals_overlap",
    "overlapping",
    "utcnow",
]
