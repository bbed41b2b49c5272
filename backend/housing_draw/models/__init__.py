"""ORM Models — SQLAlchemy declarative models for draws, users, suites, groups, memberships.

Invariants:
    - All models inherit from Base (db/base.py)
    - Draw is the scoping root; groups and users carry draw_id
    - groups.memberships_count and groups.status are written only by the membership engine

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / autogenerate
"""

from housing_draw.models.draw import Draw  # noqa: F401
from housing_draw.models.user import User  # noqa: F401
from housing_draw.models.suite import Suite  # noqa: F401
from housing_draw.models.group import Group  # noqa: F401
from housing_draw.models.membership import Membership  # noqa: F401
