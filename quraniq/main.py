import asyncio
import logging
import traceback
from typing import Optional

from quraniq.config import Config
from quraniq.context import ClientContext
from quraniq.database.database import Database
from quraniq.services.leaderboard_cache import LeaderboardCache
from quraniq.services.group_service import GroupService
from quraniq.services.leaderboard import LeaderboardService
from quraniq.services.migration_service import IdentityMigrationService
from quraniq.services.profile import ProfileService
from quraniq.services.score_service import ScoreService
from quraniq.utils.dates import PuzzleCalendar
from quraniq.utils.local_state import LocalStateStore
from quraniq.utils.logger import setup_logger

class QuranIQApp:
    """Wires the store, services and client context together for one client."""
    
    def __init__(self, database_url: Optional[str] = None, local_state: Optional[LocalStateStore] = None):
        self.db = Database(database_url)
        self.local_state = local_state
        self.ctx: Optional[ClientContext] = None
        self.profiles: Optional[ProfileService] = None
        self.scores: Optional[ScoreService] = None
        self.groups: Optional[GroupService] = None
        self.leaderboards: Optional[LeaderboardService] = None
        self.migrations: Optional[IdentityMigrationService] = None
        self.logger = logging.getLogger(__name__)
    
    async def setup(self):
        """Called when the client is starting up"""
        self.logger.info("Setting up QuranIQ groups...")
        
        await self.db.initialize()
        session_factory = self.db.session_factory
        
        self.profiles = ProfileService(session_factory)
        self.scores = ScoreService(session_factory, profile_service=self.profiles)
        self.groups = GroupService(session_factory)
        self.leaderboards = LeaderboardService(session_factory, self.scores)
        self.migrations = IdentityMigrationService(
            session_factory, self.profiles, self.groups, self.scores
        )
        
        self.ctx = ClientContext(
            local_state=self.local_state or LocalStateStore(Config.LOCAL_STATE_PATH),
            calendar=PuzzleCalendar(),
            leaderboard_cache=LeaderboardCache(),
        )
        self.logger.info(f"Client identity: {self.ctx.identity[:8]}")
        
        await self.scores.prune_scores_before(self.ctx)
        await self.migrations.process_pending_migration(self.ctx)
        await self.groups.load_user_groups(self.ctx)
        await self.profiles.get_display_name(self.ctx)
        
        self.logger.info("QuranIQ groups setup complete!")
    
    async def close(self):
        """Cleanup when the client is shutting down"""
        self.logger.info("Shutting down QuranIQ groups...")
        
        if self.leaderboards:
            await self.leaderboards.cleanup()
        
        await self.db.close()

async def main():
    """Main entry point"""
    setup_logger('quraniq')
    Config.validate()
    
    app = QuranIQApp()
    
    try:
        await app.setup()
        for code, summary in app.ctx.groups.items():
            leaderboard = await app.leaderboards.get_leaderboard(app.ctx, code)
            app.logger.info(f"{summary.name} ({code}): {len(leaderboard.entries) if leaderboard else 0} member(s)")
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        traceback.print_exc()
    finally:
        await app.close()

if __name__ == "__main__":
    asyncio.run(main())
