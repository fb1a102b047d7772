import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_approvals.models.auth.profile import Profile
from hotel_approvals.models.auth.user_role import UserRole

logger = logging.getLogger(__name__)

SUPERVISOR_ROLE = "supervisor"


class AssigneeResolver(Protocol):
    """Role/property based lookup of who should act on a step"""

    async def resolve_supervisor(self, requester_id: int) -> Optional[int]:
        ...

    async def resolve_approver(
        self,
        requester_id: int,
        role: str,
        property_id: Optional[int] = None,
        exclude: Optional[set] = None,
    ) -> Optional[int]:
        ...


class DirectoryAssigneeResolver:
    """
    Resolves approvers from the profiles / user_roles directory.

    - "supervisor" slot: the requester's active supervisor, else any
      supervisor role holder
    - any other role: a holder scoped to the property first, then a regional
      holder (user_roles.property_id IS NULL)
    The requester is never returned as their own approver.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_supervisor(self, requester_id: int) -> Optional[int]:
        result = await self.session.execute(
            select(Profile.supervisor_id).where(Profile.id == requester_id)
        )
        supervisor_id = result.scalar_one_or_none()
        if supervisor_id is None:
            return None

        active = await self.session.scalar(
            select(Profile.id).where(Profile.id == supervisor_id, Profile.is_active == True)
        )
        return active

    async def resolve_approver(
        self,
        requester_id: int,
        role: str,
        property_id: Optional[int] = None,
        exclude: Optional[set] = None,
    ) -> Optional[int]:
        excluded = set(exclude or ())
        excluded.add(requester_id)

        if role == SUPERVISOR_ROLE:
            supervisor_id = await self.resolve_supervisor(requester_id)
            if supervisor_id is not None and supervisor_id not in excluded:
                return supervisor_id

        if property_id is None:
            property_id = await self.session.scalar(
                select(Profile.property_id).where(Profile.id == requester_id)
            )

        base_query = (
            select(UserRole.user_id)
            .join(Profile, Profile.id == UserRole.user_id)
            .where(
                UserRole.role == role,
                UserRole.is_active == True,
                Profile.is_active == True,
                UserRole.user_id.notin_(excluded),
            )
            .order_by(UserRole.id)
            .limit(1)
        )

        # Property holder first
        if property_id is not None:
            holder = await self.session.scalar(
                base_query.where(UserRole.property_id == property_id)
            )
            if holder is not None:
                return holder

        # Then a regional holder
        holder = await self.session.scalar(base_query.where(UserRole.property_id.is_(None)))
        if holder is None:
            logger.info(f"No approver found for role '{role}' (property={property_id}, requester={requester_id})")
        return holder
