"""
Group leaderboard service.

Fetches every member of a group in parallel, reduces each history with the
Score Aggregator, folds the current player's ghosts into their entry and
ranks the result. Ghost store cleanup runs as detached background tasks so
the roster can render without waiting for it.
"""

from typing import List, Optional, Set, Tuple
import asyncio
import logging

from sqlalchemy import delete, select

from quraniq.config import Config
from quraniq.constants import ProfileConstants, SortConstants
from quraniq.context import ClientContext, GroupNotification
from quraniq.data_models.leaderboard import GroupLeaderboard, RosterEntry
from quraniq.data_models.scores import PlayerSnapshot, ScoreRecord
from quraniq.database.models import Group, GroupMember, PlayerProfile
from quraniq.operations.aggregation import ScoreAggregator
from quraniq.operations.ghost_resolver import resolve_ghosts
from quraniq.operations.ranking import calculate_badges, sort_roster
from quraniq.services.base import BaseService
from quraniq.services.group_service import delete_group
from quraniq.services.score_service import ScoreService
from quraniq.utils.group_codes import normalize_group_code
from quraniq.utils.redis_utils import RedisUtils

logger = logging.getLogger(__name__)


class LeaderboardService(BaseService):
    """Service for group rosters, rankings and ghost cleanup."""
    
    GHOST_LOCK_TTL = 60
    
    def __init__(self, session_factory, score_service: ScoreService, cutoff_date: Optional[str] = None):
        super().__init__(session_factory)
        self.score_service = score_service
        self.cutoff_date = cutoff_date or Config.SCORE_CUTOFF_DATE
        self.redis_client = None
        self.redis_enabled = bool(Config.REDIS_URL)
        # Background task tracking for proper lifecycle management
        self._background_tasks: set = set()
        self._pending_cleanups: Set[Tuple[str, str]] = set()  # (group_code, ghost_uid)
    
    async def _get_redis_client(self):
        """Get Redis client for the cleanup lock. Returns None if Redis is unavailable."""
        if not self.redis_enabled:
            return None
        
        if self.redis_client is None:
            self.redis_client = await RedisUtils.create_redis_client()
            if self.redis_client is None:
                logger.warning("Redis unreachable. Ghost cleanup will run without locking.")
                self.redis_enabled = False
        return self.redis_client
    
    async def _fetch_member_snapshot(self, uid: str) -> Optional[PlayerSnapshot]:
        """Load one member's profile and recent history. None if the fetch fails."""
        try:
            async with self.get_session() as session:
                profile = await session.get(PlayerProfile, uid)
                scores = await self.score_service.load_score_entries(session, uid)
        except Exception as e:
            logger.warning(f"Skipping member {uid[:8]}: {e}")
            return None
        
        return PlayerSnapshot(
            uid=uid,
            display_name=(profile.display_name if profile else None) or ProfileConstants.ANONYMOUS_NAME,
            scores=scores,
            verses_explored=(profile.verses_explored if profile else 0) or 0,
            quran_percent=(profile.quran_percent if profile else 0.0) or 0.0,
        )
    
    async def fetch_group_leaderboard(self, ctx: ClientContext, code: str) -> List[RosterEntry]:
        """
        Build the resolved roster for one group, sorted by period total.
        
        Members whose fetch fails are left out. Returns an empty list if the
        group is gone or the store cannot be reached.
        """
        group_code = normalize_group_code(code)
        if not group_code:
            return []
        
        cached = await ctx.leaderboard_cache.get(group_code)
        if cached is not None:
            return cached
        
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(GroupMember.uid)
                    .where(GroupMember.group_code == group_code)
                    .order_by(GroupMember.id)
                )
                member_uids = [row[0] for row in result]
        except Exception as e:
            logger.error(f"Fetch leaderboard failed for {group_code}: {e}")
            return []
        
        if not member_uids:
            logger.warning(f"Group {group_code} has no members")
            return []
        
        results = await asyncio.gather(
            *(self._fetch_member_snapshot(uid) for uid in member_uids),
            return_exceptions=True
        )
        snapshots = [r if isinstance(r, PlayerSnapshot) else None for r in results]
        
        self_uid = ctx.identity
        aggregator = ScoreAggregator(ctx.calendar.today(), self.cutoff_date)
        roster = aggregator.build_roster(snapshots, self_uid)
        
        resolution = resolve_ghosts(roster, self_uid)
        for ghost in resolution.ghosts:
            logger.info(f"Merging ghost {ghost.uid[:8]} into {self_uid[:8]} in group {group_code}")
            self._schedule_ghost_cleanup(group_code, self_uid, ghost.uid)
        
        ranked = sort_roster(resolution.roster, SortConstants.TOTAL)
        await ctx.leaderboard_cache.set(group_code, ranked)
        return ranked
    
    async def get_leaderboard(
        self,
        ctx: ClientContext,
        code: str,
        sort_by: str = SortConstants.TOTAL
    ) -> Optional[GroupLeaderboard]:
        """Get a group's roster ordered by `sort_by` with top-scorer badges."""
        roster = await self.fetch_group_leaderboard(ctx, code)
        try:
            ranked = sort_roster(roster, sort_by)
        except ValueError as e:
            logger.warning(f"Rejected leaderboard request: {e}")
            return None
        
        return GroupLeaderboard(
            group_code=normalize_group_code(code),
            sort_by=sort_by,
            entries=tuple(ranked),
            badges=tuple(calculate_badges(ranked, sort_by)),
        )
    
    def _schedule_ghost_cleanup(self, group_code: str, self_uid: str, ghost_uid: str):
        key = (group_code, ghost_uid)
        if key in self._pending_cleanups:
            return
        self._pending_cleanups.add(key)
        task = asyncio.create_task(self._cleanup_ghost(group_code, self_uid, ghost_uid))
        self._background_tasks.add(task)
        # Remove task from set when it completes to prevent memory leaks
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(lambda _: self._pending_cleanups.discard(key))
    
    async def _cleanup_ghost(self, group_code: str, self_uid: str, ghost_uid: str):
        """
        Background task: fold a ghost's history into ours and drop it from the group.
        
        Best effort. Failures are logged and never re-raised; the next render
        that still sees the ghost schedules another attempt.
        """
        redis_client = await self._get_redis_client()
        if redis_client:
            lock_key = f"ghost_cleanup_lock:{group_code}:{ghost_uid}"
            try:
                is_locked = await redis_client.set(lock_key, "1", ex=self.GHOST_LOCK_TTL, nx=True)
            except Exception as e:
                logger.warning(f"Ghost cleanup lock unavailable, continuing without it: {e}")
                is_locked = True
            if not is_locked:
                logger.info(f"Ghost cleanup for {ghost_uid[:8]} in {group_code} throttled - lock exists")
                return
        
        try:
            async with self.get_session() as session:
                ghost_entries = await self.score_service.load_score_entries(session, ghost_uid, limit=0)
                if ghost_entries:
                    own_entries = await self.score_service.load_score_entries(session, self_uid, limit=0)
                    merged = ScoreRecord(self_uid, own_entries).merged_with(ScoreRecord(ghost_uid, ghost_entries))
                    await self.score_service.replace_score_record(session, self_uid, merged.entries)
                
                result = await session.execute(
                    delete(GroupMember).where(
                        GroupMember.group_code == group_code,
                        GroupMember.uid == ghost_uid
                    )
                )
                group = await session.get(Group, group_code)
                if group is None:
                    logger.warning(f"Ghost cleanup: group {group_code} already gone")
                elif result.rowcount:
                    group.member_count = max(0, (group.member_count or 1) - 1)
                    if group.member_count == 0:
                        await delete_group(session, group_code)
                else:
                    logger.warning(f"Ghost cleanup: {ghost_uid[:8]} already removed from {group_code}")
            logger.info(f"Ghost {ghost_uid[:8]} removed from group {group_code}")
        except Exception as e:
            # Log error but don't re-raise in background task to prevent event loop instability
            logger.error(f"Ghost cleanup failed for {ghost_uid[:8]} in {group_code}: {e}", exc_info=True)
    
    async def check_group_notifications(self, ctx: ClientContext) -> List[GroupNotification]:
        """
        Queue one notification per other member who has scored today in any
        of our groups. Each (group, member, date) is announced once.
        """
        today = ctx.calendar.today()
        self_uid = ctx.identity
        queued = []
        
        for code, summary in ctx.groups.items():
            roster = await self.fetch_group_leaderboard(ctx, code)
            for entry in roster:
                if entry.uid == self_uid or entry.today_total <= 0:
                    continue
                key = f"{code}_{entry.uid}_{today}"
                if not ctx.mark_notified(key):
                    continue
                notification = GroupNotification(
                    group_code=code,
                    group_name=summary.name or code,
                    player_name=entry.display_name,
                    total=entry.today_total,
                    key=key,
                )
                ctx.notifications.append(notification)
                queued.append(notification)
        
        return queued
    
    def invalidate(self, ctx: ClientContext, code: str):
        ctx.leaderboard_cache.invalidate(normalize_group_code(code))
    
    def invalidate_all(self, ctx: ClientContext):
        ctx.leaderboard_cache.invalidate_all()
    
    async def cleanup(self, cancel: bool = True):
        """Cleanup background tasks and resources for graceful shutdown."""
        if self._background_tasks:
            logger.info(f"Waiting for {len(self._background_tasks)} background tasks to complete...")
            if cancel:
                for task in self._background_tasks:
                    if not task.done():
                        task.cancel()
            
            # Wait for all tasks to complete or be cancelled
            if self._background_tasks:
                await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
            
            self._background_tasks.clear()
            logger.info("All background tasks cleaned up.")
        
        if self.redis_client:
            await self.redis_client.close()
            self.redis_client = None
