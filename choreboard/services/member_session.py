"""Acting-member context passed explicitly into services."""

from dataclasses import dataclass
from typing import Optional

from choreboard.models import HouseholdMember


@dataclass(frozen=True)
class MemberSession:
    """Who is acting, in which household, with which role."""

    user_id: int
    household_id: int
    role: str = 'member'

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'


def load_member_session(user_id: int, household_id: int) -> Optional[MemberSession]:
    """Build a MemberSession from the membership row, or None if not a member."""
    membership = HouseholdMember.query.filter_by(
        user_id=user_id,
        household_id=household_id
    ).first()
    if membership is None:
        return None
    return MemberSession(user_id=user_id, household_id=household_id, role=membership.role)
