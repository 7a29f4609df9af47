import asyncio

import pytest
from sqlalchemy import select

from quraniq.context import ClientContext
from quraniq.database.database import Database
from quraniq.database.models import DailyScore, Group, GroupMember, PlayerProfile
from quraniq.services.group_service import GroupService
from quraniq.services.leaderboard import LeaderboardService
from quraniq.services.leaderboard_cache import LeaderboardCache
from quraniq.services.migration_service import IdentityMigrationService
from quraniq.services.profile import ProfileService
from quraniq.services.score_service import ScoreService
from quraniq.utils.dates import PuzzleCalendar
from quraniq.utils.local_state import LocalStateStore

TODAY = '2026-03-01'


class ServiceHarness:
    """A fresh SQLite store with every service wired to it."""
    
    def __init__(self, database_url: str):
        self.db = Database(database_url)
    
    async def start(self):
        await self.db.initialize()
        factory = self.db.session_factory
        self.profiles = ProfileService(factory)
        self.scores = ScoreService(factory, profile_service=self.profiles)
        self.groups = GroupService(factory)
        self.leaderboards = LeaderboardService(factory, self.scores)
        self.migrations = IdentityMigrationService(factory, self.profiles, self.groups, self.scores)
    
    async def stop(self):
        await self.leaderboards.cleanup(cancel=False)
        await self.db.close()
    
    def client(self, uid: str = None, puzzle_date: str = TODAY, display_name: str = None) -> ClientContext:
        """Build an in-memory client, optionally with a fixed identity."""
        state = LocalStateStore()
        if uid:
            state.set(ClientContext.IDENTITY_KEY, uid)
        ctx = ClientContext(
            local_state=state,
            calendar=PuzzleCalendar(puzzle_date),
            leaderboard_cache=LeaderboardCache(),
        )
        if display_name:
            ctx.display_name = display_name
        return ctx
    
    async def named_client(self, uid: str, name: str, puzzle_date: str = TODAY) -> ClientContext:
        ctx = self.client(uid, puzzle_date)
        assert await self.profiles.set_display_name(ctx, name)
        return ctx
    
    # Direct store reads for assertions
    async def get_profile(self, uid: str):
        async with self.db.session_factory() as session:
            return await session.get(PlayerProfile, uid)
    
    async def get_group(self, code: str):
        async with self.db.session_factory() as session:
            return await session.get(Group, code)
    
    async def get_group_member_uids(self, code: str):
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(GroupMember.uid)
                .where(GroupMember.group_code == code)
                .order_by(GroupMember.id)
            )
            return [row[0] for row in result]
    
    async def get_group_codes_for_player(self, uid: str):
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(GroupMember.group_code).where(GroupMember.uid == uid)
            )
            return [row[0] for row in result]
    
    async def get_scores_by_date(self, uid: str):
        async with self.db.session_factory() as session:
            result = await session.execute(select(DailyScore).where(DailyScore.uid == uid))
            return {row.puzzle_date: row for row in result.scalars().all()}


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def run(database_url):
    """Run an async scenario against a fresh harness."""
    def runner(scenario):
        async def main():
            harness = ServiceHarness(database_url)
            await harness.start()
            try:
                return await scenario(harness)
            finally:
                await harness.stop()
        return asyncio.run(main())
    return runner
