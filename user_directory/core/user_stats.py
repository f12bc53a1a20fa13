"""User Stats — pure computation of directory summary statistics from store counts.

Invariants:
    - Inputs are counts read from the store at call time (never cached)
    - users_without_address = total - with_address
    - completion rate is a percentage; 0.0 when there are no users

Design Decisions:
    - Pure function over counts, not a repository method (ADR: store counts, core derives)
    - "With address" means a COMPLETE address; the store counts accordingly
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserStatistics:
    total_users: int
    users_with_address: int
    users_without_address: int
    address_completion_rate: float


def compute_user_stats(total: int, with_complete_address: int) -> UserStatistics:
    """Derive summary statistics from two counts. Pure, no IO."""
    rate = with_complete_address / total * 100 if total > 0 else 0.0
    return UserStatistics(
        total_users=total,
        users_with_address=with_complete_address,
        users_without_address=total - with_complete_address,
        address_completion_rate=rate,
    )
