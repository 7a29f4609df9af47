"""
Group service: the Identity & Group Directory operations.

Create, join and leave keep the group's member set, its member count and the
identity's group index in step inside one transaction. Every public method
returns a definite failure indicator instead of raising.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quraniq.config import Config
from quraniq.context import ClientContext, GroupSummary
from quraniq.database.models import Group, GroupMember
from quraniq.services.base import BaseService
from quraniq.services.profile import get_or_create_profile
from quraniq.utils.exceptions import (
    AlreadyMemberError,
    CodeGenerationError,
    GroupFullError,
    GroupLimitError,
    GroupNotFoundError,
    InvalidGroupCodeError,
    InvalidGroupNameError,
)
from quraniq.utils.group_codes import generate_group_code, is_valid_group_code, normalize_group_code

logger = logging.getLogger(__name__)


async def count_player_groups(session: AsyncSession, uid: str) -> int:
    result = await session.execute(
        select(func.count(GroupMember.id)).where(GroupMember.uid == uid)
    )
    return result.scalar() or 0


async def get_membership(session: AsyncSession, code: str, uid: str) -> Optional[GroupMember]:
    result = await session.execute(
        select(GroupMember).where(
            GroupMember.group_code == code,
            GroupMember.uid == uid
        )
    )
    return result.scalar_one_or_none()


async def delete_group(session: AsyncSession, code: str):
    """Remove a group and any remaining memberships."""
    await session.execute(delete(GroupMember).where(GroupMember.group_code == code))
    await session.execute(delete(Group).where(Group.code == code))


class GroupService(BaseService):
    """Service for group creation, membership and the local group cache."""
    
    def __init__(self, session_factory, max_groups: Optional[int] = None, max_members: Optional[int] = None):
        super().__init__(session_factory)
        self.max_groups = max_groups or Config.MAX_GROUPS_PER_USER
        self.max_members = max_members or Config.MAX_MEMBERS_PER_GROUP
    
    def _check_group_limit(self, ctx: ClientContext, store_count: int = 0):
        if max(len(ctx.groups), store_count) >= self.max_groups:
            raise GroupLimitError(self.max_groups)
    
    async def _reserve_code(self, session: AsyncSession) -> str:
        """Draw codes until one is unused, giving up after the configured attempts."""
        for attempt in range(Config.GROUP_CODE_ATTEMPTS):
            candidate = generate_group_code()
            if await session.get(Group, candidate) is None:
                return candidate
            logger.debug(f"Group code collision on attempt {attempt + 1}: {candidate}")
        raise CodeGenerationError(Config.GROUP_CODE_ATTEMPTS)
    
    async def create_group(self, ctx: ClientContext, name: str) -> Optional[str]:
        """
        Create a group with the current player as sole member.
        
        The name is trimmed and cut to the maximum length. Returns the new
        group code, or None on failure.
        """
        clean_name = (name or '').strip()[:Config.GROUP_NAME_MAX_LENGTH]
        uid = ctx.identity
        try:
            if len(clean_name) < Config.GROUP_NAME_MIN_LENGTH:
                raise InvalidGroupNameError(clean_name, Config.GROUP_NAME_MIN_LENGTH)
            self._check_group_limit(ctx)
            
            async with self.get_session() as session:
                self._check_group_limit(ctx, await count_player_groups(session, uid))
                code = await self._reserve_code(session)
                await get_or_create_profile(session, uid)
                session.add(Group(code=code, name=clean_name, created_by=uid, member_count=1))
                session.add(GroupMember(group_code=code, uid=uid))
        except Exception as e:
            self.report_failure(ctx, "create_group", e)
            return None
        
        ctx.add_group(code, GroupSummary(name=clean_name, member_count=1))
        logger.info(f"Group created: {code} {clean_name}")
        return code
    
    async def join_group(self, ctx: ClientContext, code: str) -> bool:
        """Join an existing group by its code."""
        clean_code = normalize_group_code(code)
        uid = ctx.identity
        try:
            if not is_valid_group_code(clean_code):
                raise InvalidGroupCodeError(clean_code)
            if clean_code in ctx.groups:
                raise AlreadyMemberError(clean_code)
            self._check_group_limit(ctx)
            
            async with self.get_session() as session:
                if await get_membership(session, clean_code, uid) is not None:
                    raise AlreadyMemberError(clean_code)
                self._check_group_limit(ctx, await count_player_groups(session, uid))
                
                group = await session.get(Group, clean_code)
                if group is None:
                    raise GroupNotFoundError(clean_code)
                if (group.member_count or 0) >= self.max_members:
                    raise GroupFullError(clean_code, self.max_members)
                
                await get_or_create_profile(session, uid)
                session.add(GroupMember(group_code=clean_code, uid=uid))
                group.member_count = (group.member_count or 0) + 1
                summary = GroupSummary(name=group.name, member_count=group.member_count)
        except Exception as e:
            self.report_failure(ctx, "join_group", e)
            return False
        
        ctx.add_group(clean_code, summary)
        ctx.leaderboard_cache.invalidate(clean_code)
        logger.info(f"Joined group: {clean_code} {summary.name}")
        return True
    
    async def leave_group(self, ctx: ClientContext, code: str) -> bool:
        """Leave a group; the last member out deletes it."""
        clean_code = normalize_group_code(code)
        uid = ctx.identity
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    delete(GroupMember).where(
                        GroupMember.group_code == clean_code,
                        GroupMember.uid == uid
                    )
                )
                group = await session.get(Group, clean_code)
                if group is not None and result.rowcount:
                    current_count = group.member_count or 1
                    if current_count <= 1:
                        await delete_group(session, clean_code)
                        logger.info(f"Group {clean_code} is empty, removed")
                    else:
                        group.member_count = current_count - 1
        except Exception as e:
            self.report_failure(ctx, "leave_group", e)
            return False
        
        ctx.remove_group(clean_code)
        ctx.leaderboard_cache.invalidate(clean_code)
        logger.info(f"Left group: {clean_code}")
        return True
    
    async def load_user_groups(self, ctx: ClientContext) -> bool:
        """
        Refresh the local group cache from the directory.
        
        A group that has disappeared from under an index entry keeps its code
        as name with a zero count. The local cache is left untouched when the
        store cannot be reached.
        """
        uid = ctx.identity
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(GroupMember.group_code, Group.name, Group.member_count)
                    .outerjoin(Group, Group.code == GroupMember.group_code)
                    .where(GroupMember.uid == uid)
                    .order_by(GroupMember.id)
                )
                fresh: Dict[str, GroupSummary] = {
                    code: GroupSummary(name=name or code, member_count=member_count or 0)
                    for code, name, member_count in result
                }
        except Exception as e:
            logger.error(f"Load user groups failed: {e}")
            return False
        
        ctx.set_groups(fresh, ctx.active_group_code)
        logger.debug(f"Loaded {len(fresh)} group(s)")
        return True
    
    def set_active_group(self, ctx: ClientContext, code: str) -> bool:
        return ctx.set_active_group(normalize_group_code(code))
    
    def has_groups(self, ctx: ClientContext) -> bool:
        return ctx.has_groups()
    
    def get_user_groups(self, ctx: ClientContext) -> Dict[str, GroupSummary]:
        return ctx.groups
