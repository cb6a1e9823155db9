"""Filter planning for recipe listings.

Provides named strategies that emulate combined substring/category/tag
filtering on top of a store that supports a single membership filter per
query, and a :class:`Planner` that picks the right one.
"""

from .base import (
    FilterSet,
    FilterStrategy,
    get_strategy,
    list_strategies,
    register_strategy,
)
from .membership import (
    COMBINED_OVERFETCH_FACTOR,
    CombinedMembershipStrategy,
    MembershipStrategy,
)
from .planner import EmptyStrategy, Planner
from .recent_window import RECENT_WINDOW_SIZE, RecentWindowStrategy

# Register built-in strategies
register_strategy(EmptyStrategy())
register_strategy(RecentWindowStrategy())
register_strategy(MembershipStrategy("categories"))
register_strategy(MembershipStrategy("tags"))
register_strategy(CombinedMembershipStrategy())

__all__ = [
    "COMBINED_OVERFETCH_FACTOR",
    "RECENT_WINDOW_SIZE",
    "CombinedMembershipStrategy",
    "EmptyStrategy",
    "FilterSet",
    "FilterStrategy",
    "MembershipStrategy",
    "Planner",
    "RecentWindowStrategy",
    "get_strategy",
    "list_strategies",
    "register_strategy",
]
