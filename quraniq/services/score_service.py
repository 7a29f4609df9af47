"""
Score service: the write path into the Score Record Store.

Every write is keyed by the canonical puzzle date and ratchets per-mode
values upwards; `total` is recomputed from the five modes on every write.
Concurrent writers to the same date are last-writer-wins at the store, so a
race can only under-count.
"""

import logging
from typing import Dict, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from quraniq.config import Config
from quraniq.constants import ScoreConstants
from quraniq.context import ClientContext
from quraniq.data_models.scores import ScoreEntry, ScoreRecord
from quraniq.database.models import DailyScore, GroupMember
from quraniq.operations.backfill import best_local_streak, derive_mode_scores
from quraniq.services.base import BaseService
from quraniq.services.profile import ProfileService, get_or_create_profile
from quraniq.utils.exceptions import ScoreValidationError

logger = logging.getLogger(__name__)

SCORE_RESET_KEY = 'score_reset_v1'
STATS_KEY = 'stats'


def apply_entry(row: DailyScore, entry: ScoreEntry):
    """Copy a ScoreEntry onto a DailyScore row, keeping the total invariant."""
    for score_field in ScoreConstants.SCORE_FIELDS:
        setattr(row, score_field, entry.get(score_field))
    row.total = entry.total
    row.streak = entry.streak


class ScoreService(BaseService):
    """Service for submitting, backfilling and reading per-date scores."""
    
    def __init__(
        self,
        session_factory,
        history_limit: Optional[int] = None,
        profile_service: Optional[ProfileService] = None
    ):
        super().__init__(session_factory)
        self.history_limit = history_limit or Config.SCORE_HISTORY_LIMIT
        self.profile_service = profile_service  # Optional: publishes verse stats after writes
    
    @staticmethod
    def resolve_field(game_mode: str) -> str:
        score_field = ScoreConstants.MODE_FIELD_MAP.get(game_mode)
        if score_field is None:
            raise ScoreValidationError(game_mode, f"Unknown game mode '{game_mode}'.")
        return score_field
    
    @staticmethod
    def validate_crescents(crescents) -> int:
        if isinstance(crescents, bool) or not isinstance(crescents, int):
            raise ScoreValidationError(crescents, "Score must be a whole number.")
        if not 0 <= crescents <= ScoreConstants.MAX_MODE_SCORE:
            raise ScoreValidationError(
                crescents, f"Score must be between 0 and {ScoreConstants.MAX_MODE_SCORE}."
            )
        return crescents
    
    async def _ratchet_scores(
        self,
        session: AsyncSession,
        uid: str,
        puzzle_date: str,
        scores: Mapping[str, int],
        streak: Optional[int]
    ) -> bool:
        """Raise the stored per-mode values for one date. Returns True if the row changed."""
        await get_or_create_profile(session, uid)
        result = await session.execute(
            select(DailyScore).where(
                DailyScore.uid == uid,
                DailyScore.puzzle_date == puzzle_date
            )
        )
        row = result.scalar_one_or_none()
        current = ScoreEntry.from_row(row) if row is not None else ScoreEntry()
        
        updated = current
        for score_field, value in scores.items():
            updated = updated.ratcheted(score_field, value)
        
        if row is not None and updated == current:
            return False
        
        if row is None:
            row = DailyScore(uid=uid, puzzle_date=puzzle_date)
            session.add(row)
        apply_entry(row, updated)
        if streak is not None:
            row.streak = streak
        row.submitted_at = func.now()
        return True
    
    async def invalidate_player_groups(self, ctx: ClientContext, uid: str):
        """Drop cached rosters for every group `uid` belongs to. Never raises."""
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(GroupMember.group_code).where(GroupMember.uid == uid)
                )
                codes = [row[0] for row in result]
        except Exception as e:
            logger.warning(f"Could not list groups for cache invalidation, clearing all: {e}")
            ctx.leaderboard_cache.invalidate_all()
            return
        for code in codes:
            ctx.leaderboard_cache.invalidate(code)
    
    async def _sync_verse_stats(self, ctx: ClientContext):
        if self.profile_service is not None:
            await self.profile_service.sync_local_verse_stats(ctx)
    
    async def submit_score(
        self,
        ctx: ClientContext,
        game_mode: str,
        crescents: int,
        streak: Optional[int] = None
    ) -> bool:
        """
        Record crescents for one game mode on today's puzzle date.
        
        The stored value for the mode only ever goes up. When `streak` is not
        given, the best streak from the local play statistics is stamped.
        """
        uid = ctx.identity
        puzzle_date = ctx.calendar.today()
        try:
            score_field = self.resolve_field(game_mode)
            self.validate_crescents(crescents)
            if streak is None:
                streak = best_local_streak(ctx.local_state.get(STATS_KEY))
            async with self.get_session() as session:
                changed = await self._ratchet_scores(
                    session, uid, puzzle_date, {score_field: crescents}, streak
                )
        except Exception as e:
            self.report_failure(ctx, "submit_score", e)
            return False
        
        logger.info(f"Score submitted: {game_mode}={crescents} for {puzzle_date} (changed={changed})")
        await self.invalidate_player_groups(ctx, uid)
        await self._sync_verse_stats(ctx)
        return True
    
    async def backfill_today_scores(
        self,
        ctx: ClientContext,
        local_states: Mapping[str, Optional[Mapping]],
        streak: Optional[int] = None
    ) -> bool:
        """
        Catch-up pass run when the leaderboard opens.
        
        Re-derives each mode's crescents from the local completion state and
        writes only modes whose derived value beats the stored one. Returns
        True if anything was written.
        """
        if not ctx.has_groups():
            return False
        
        derived = derive_mode_scores(local_states)
        if not derived:
            return False
        
        uid = ctx.identity
        puzzle_date = ctx.calendar.today()
        try:
            if streak is None:
                streak = best_local_streak(ctx.local_state.get(STATS_KEY))
            async with self.get_session() as session:
                changed = await self._ratchet_scores(session, uid, puzzle_date, derived, streak)
        except Exception as e:
            logger.error(f"Score backfill failed: {e}")
            return False
        
        if changed:
            logger.info(f"Backfill wrote {derived} for {puzzle_date}")
            await self.invalidate_player_groups(ctx, uid)
            await self._sync_verse_stats(ctx)
        return changed
    
    async def load_score_entries(
        self,
        session: AsyncSession,
        uid: str,
        limit: Optional[int] = None
    ) -> Dict[str, ScoreEntry]:
        """Read an identity's most recent dates (all dates when limit is 0)."""
        query = (
            select(DailyScore)
            .where(DailyScore.uid == uid)
            .order_by(DailyScore.puzzle_date.desc())
        )
        limit = self.history_limit if limit is None else limit
        if limit:
            query = query.limit(limit)
        result = await session.execute(query)
        return {row.puzzle_date: ScoreEntry.from_row(row) for row in result.scalars().all()}
    
    async def get_score_record(self, uid: str, limit: Optional[int] = None) -> Optional[ScoreRecord]:
        """Fetch an identity's score record, or None if the store is unreachable."""
        try:
            async with self.get_session() as session:
                entries = await self.load_score_entries(session, uid, limit)
        except Exception as e:
            logger.error(f"Score fetch failed for {uid[:8]}: {e}")
            return None
        return ScoreRecord(uid=uid, entries=entries)
    
    async def replace_score_record(self, session: AsyncSession, uid: str, entries: Mapping[str, ScoreEntry]):
        """Overwrite an identity's whole history with `entries`."""
        await get_or_create_profile(session, uid)
        await session.execute(delete(DailyScore).where(DailyScore.uid == uid))
        for puzzle_date, entry in sorted(entries.items()):
            row = DailyScore(uid=uid, puzzle_date=puzzle_date)
            apply_entry(row, entry)
            if entry.submitted_at is not None:
                row.submitted_at = entry.submitted_at
            session.add(row)
    
    async def prune_scores_before(self, ctx: ClientContext, cutoff: Optional[str] = None) -> bool:
        """
        One-time clean slate: delete this client's dates before the cutoff.
        
        Runs once per client. The marker is only recorded on success so a
        failed attempt retries on the next start.
        """
        if SCORE_RESET_KEY in ctx.local_state:
            return False
        cutoff = cutoff or Config.SCORE_CUTOFF_DATE
        uid = ctx.identity
        
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    delete(DailyScore).where(
                        DailyScore.uid == uid,
                        DailyScore.puzzle_date < cutoff
                    )
                )
                removed = result.rowcount or 0
        except Exception as e:
            logger.error(f"Score reset failed: {e}")
            return False
        
        if removed:
            logger.info(f"Score reset: removed {removed} date(s) before {cutoff}")
            ctx.leaderboard_cache.invalidate_all()
        ctx.local_state.set(SCORE_RESET_KEY, cutoff)
        return True
