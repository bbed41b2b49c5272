"""Domain Types — status vocabulary and identity types shared by every layer.

Invariants:
    - DrawId, GroupId, UserId, MembershipId, SuiteId wrap UUIDs
    - All valid states encoded as str Enums; DB columns store the .value
    - ACCEPTED is the only committed membership status; PENDING_STATUSES are cascadable
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

DrawId = NewType("DrawId", UUID)
GroupId = NewType("GroupId", UUID)
UserId = NewType("UserId", UUID)
MembershipId = NewType("MembershipId", UUID)
SuiteId = NewType("SuiteId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class MembershipStatus(str, Enum):
    """Commitment state of a user's link to a group."""
    REQUESTED = "requested"
    INVITED = "invited"
    ACCEPTED = "accepted"


class GroupStatus(str, Enum):
    """Group lifecycle states — maps to DB `status` column."""
    OPEN = "open"
    CLOSED = "closed"
    FULL = "full"
    FINALIZING = "finalizing"
    LOCKED = "locked"


class HousingIntent(str, Enum):
    """Whether a student plans to live on campus this cycle."""
    ON_CAMPUS = "on_campus"
    OTHER = "other"
    UNDECLARED = "undeclared"


PENDING_STATUSES: frozenset[MembershipStatus] = frozenset(
    {MembershipStatus.REQUESTED, MembershipStatus.INVITED},
)

# closed and full are both "at capacity"; full is kept for older rows
AT_CAPACITY_STATUSES: frozenset[GroupStatus] = frozenset(
    {GroupStatus.CLOSED, GroupStatus.FULL},
)

UPDATABLE_MEMBERSHIP_FIELDS: frozenset[str] = frozenset(
    {"status", "locked", "group_id", "user_id"},
)
