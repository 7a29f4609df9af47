"""
Identity Migration Manager.

After a save blob is restored on a fresh client, the blob's identity is
"old" and the client's live identity is "new". This service moves the old
identity's display name, group memberships and score history onto the new
one, then deletes the old identity.

Every step is safe to repeat. The pending-migration marker is only cleared
once the whole protocol has succeeded, so an interrupted run simply starts
over on the next attempt.
"""

import logging

from sqlalchemy import delete

from quraniq.context import ClientContext, PendingMigration
from quraniq.database.models import DailyScore, Group, GroupMember, PlayerProfile
from quraniq.services.base import BaseService
from quraniq.services.group_service import GroupService, get_membership
from quraniq.services.profile import ProfileService, get_or_create_profile
from quraniq.services.score_service import ScoreService
from quraniq.utils.exceptions import MigrationError

logger = logging.getLogger(__name__)


class IdentityMigrationService(BaseService):
    """Replays a pending identity migration recorded by a save-blob import."""
    
    def __init__(
        self,
        session_factory,
        profile_service: ProfileService,
        group_service: GroupService,
        score_service: ScoreService
    ):
        super().__init__(session_factory)
        self.profile_service = profile_service
        self.group_service = group_service
        self.score_service = score_service
    
    async def process_pending_migration(self, ctx: ClientContext) -> bool:
        """
        Run the pending migration, if any.
        
        Returns True when a migration completed (or turned out to be a no-op)
        and False when there was nothing to do or a step failed.
        """
        migration = ctx.pending_migration
        if migration is None:
            return False
        
        new_uid = ctx.identity
        old_uid = migration.old_uid
        if new_uid == old_uid:
            ctx.clear_pending_migration()
            return True
        
        logger.info(f"Processing migration from {old_uid[:8]} to {new_uid[:8]}")
        try:
            await self._restore_display_name(ctx, migration, new_uid)
            for code in migration.group_codes:
                await self._swap_membership(code, old_uid, new_uid)
            await self._copy_score_record(old_uid, new_uid)
            await self._delete_identity(old_uid)
        except Exception as e:
            # Marker is kept so the whole protocol reruns later
            logger.error(f"Migration failed: {e}", exc_info=not isinstance(e, MigrationError))
            return False
        
        ctx.clear_pending_migration()
        ctx.leaderboard_cache.invalidate_all()
        logger.info("Migration complete")
        
        await self.group_service.load_user_groups(ctx)
        return True
    
    async def _restore_display_name(self, ctx: ClientContext, migration: PendingMigration, new_uid: str):
        if not migration.display_name:
            return
        try:
            await self.profile_service.store_display_name(new_uid, migration.display_name)
        except Exception as e:
            raise MigrationError("display name", str(e)) from e
        ctx.display_name = migration.display_name
    
    async def _swap_membership(self, code: str, old_uid: str, new_uid: str):
        """Put the new identity in the old one's place in a single group."""
        try:
            async with self.get_session() as session:
                group = await session.get(Group, code)
                if group is None:
                    logger.info(f"Migration: group {code} no longer exists, skipping")
                    return
                
                old_member = await get_membership(session, code, old_uid)
                new_member = await get_membership(session, code, new_uid)
                if new_member is None:
                    await get_or_create_profile(session, new_uid)
                    session.add(GroupMember(group_code=code, uid=new_uid))
                
                if old_member is not None:
                    await session.delete(old_member)
                    if new_member is not None:
                        # New identity was already in; the old one leaving shrinks the group
                        group.member_count = max(1, (group.member_count or 1) - 1)
                elif new_member is None:
                    group.member_count = (group.member_count or 0) + 1
        except Exception as e:
            raise MigrationError(f"group {code}", str(e)) from e
        logger.info(f"Migration: re-joined group {code}")
    
    async def _copy_score_record(self, old_uid: str, new_uid: str):
        """Overwrite the new identity's history with the old one's."""
        try:
            async with self.get_session() as session:
                entries = await self.score_service.load_score_entries(session, old_uid, limit=0)
                if entries:
                    await self.score_service.replace_score_record(session, new_uid, entries)
        except Exception as e:
            raise MigrationError("score copy", str(e)) from e
        if entries:
            logger.info(f"Migration: {len(entries)} score date(s) migrated")
    
    async def _delete_identity(self, old_uid: str):
        try:
            async with self.get_session() as session:
                await session.execute(delete(DailyScore).where(DailyScore.uid == old_uid))
                await session.execute(delete(PlayerProfile).where(PlayerProfile.uid == old_uid))
        except Exception as e:
            raise MigrationError("old identity cleanup", str(e)) from e
