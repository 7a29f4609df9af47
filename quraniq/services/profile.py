"""
Profile service: display names and verse exploration stats.

The profile is the part of an identity's store record that other group
members see next to its scores.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession

from quraniq.config import Config
from quraniq.constants import ScoreConstants
from quraniq.context import ClientContext
from quraniq.database.models import PlayerProfile
from quraniq.services.base import BaseService
from quraniq.utils.exceptions import InvalidDisplayNameError

logger = logging.getLogger(__name__)

VERSES_KEY = 'verses'


async def get_or_create_profile(session: AsyncSession, uid: str) -> PlayerProfile:
    """Load an identity's profile row, creating an empty one if absent."""
    profile = await session.get(PlayerProfile, uid)
    if profile is None:
        profile = PlayerProfile(uid=uid, verses_explored=0, quran_percent=0.0)
        session.add(profile)
        await session.flush()
    return profile


def quran_percent(verses_explored: int) -> float:
    """Share of all verses explored, rounded to one decimal place."""
    return round(verses_explored / ScoreConstants.QURAN_VERSE_COUNT * 1000) / 10


class ProfileService(BaseService):
    """Service for per-identity profile fields."""
    
    async def _write_display_name(self, uid: str, name: str):
        async with self.get_session() as session:
            profile = await get_or_create_profile(session, uid)
            profile.display_name = name
    
    async def store_display_name(self, uid: str, name: str):
        """Write a display name for any identity, retrying once on store errors. Raises on failure."""
        async def write():
            await self._write_display_name(uid, name)
        await self.execute_with_retry(write, max_retries=2)
    
    async def set_display_name(self, ctx: ClientContext, name: str) -> bool:
        """Set or update the current player's display name."""
        clean_name = (name or '').strip()[:Config.DISPLAY_NAME_MAX_LENGTH]
        try:
            if not clean_name:
                raise InvalidDisplayNameError()
            await self.store_display_name(ctx.identity, clean_name)
        except Exception as e:
            self.report_failure(ctx, "set_display_name", e)
            return False
        
        ctx.display_name = clean_name
        logger.info(f"Display name saved: {clean_name}")
        return True
    
    async def get_display_name(self, ctx: ClientContext) -> str:
        """Get the current display name from the local cache, falling back to the store."""
        cached = ctx.display_name
        if cached:
            return cached
        
        try:
            async with self.get_session() as session:
                profile = await session.get(PlayerProfile, ctx.identity)
                name = (profile.display_name if profile else None) or ''
        except Exception as e:
            logger.warning(f"Could not load display name: {e}")
            return ''
        
        if name:
            ctx.display_name = name
        return name
    
    async def sync_verse_stats(self, ctx: ClientContext, verses_explored: int) -> bool:
        """Publish the local verse exploration count so groups can show Quran %. Best effort."""
        try:
            async with self.get_session() as session:
                profile = await get_or_create_profile(session, ctx.identity)
                profile.verses_explored = verses_explored
                profile.quran_percent = quran_percent(verses_explored)
            return True
        except Exception as e:
            logger.error(f"Verse stats sync failed: {e}")
            return False
    
    async def sync_local_verse_stats(self, ctx: ClientContext) -> bool:
        """Publish the count of locally explored verses, if any have been recorded."""
        refs = (ctx.local_state.get(VERSES_KEY) or {}).get('refs') or []
        if not refs:
            return False
        return await self.sync_verse_stats(ctx, len(set(refs)))
