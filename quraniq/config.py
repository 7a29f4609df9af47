import os
from datetime import date
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Leaderboard core configuration settings"""
    
    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite+aiosqlite:///quraniq.db')
    REDIS_URL = os.getenv('REDIS_URL', '')
    
    # Client settings
    LOCAL_STATE_PATH = os.getenv('LOCAL_STATE_PATH', os.path.join(os.path.expanduser('~'), '.quraniq', 'state.json'))
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    
    # Scoring settings
    SCORE_CUTOFF_DATE = os.getenv('SCORE_CUTOFF_DATE', '2026-02-13')  # Dates before this are not ranked
    SCORE_HISTORY_LIMIT = int(os.getenv('SCORE_HISTORY_LIMIT', 30))    # Most recent dates read per member
    
    # Leaderboard cache settings
    LEADERBOARD_CACHE_TTL = int(os.getenv('LEADERBOARD_CACHE_TTL', 300))  # 5 minutes
    LEADERBOARD_CACHE_MAX_SIZE = 100
    
    # Group settings
    MAX_GROUPS_PER_USER = 5
    MAX_MEMBERS_PER_GROUP = 20
    GROUP_CODE_LENGTH = 6
    GROUP_CODE_ATTEMPTS = 5
    GROUP_NAME_MIN_LENGTH = 2
    GROUP_NAME_MAX_LENGTH = 40
    DISPLAY_NAME_MAX_LENGTH = 30
    
    @classmethod
    def get_database_url(cls):
        """Get the async database URL, rewriting plain sqlite URLs to aiosqlite"""
        database_url = cls.DATABASE_URL
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')
        return database_url
    
    @classmethod
    def validate(cls):
        """Validate that configuration values are usable"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        try:
            date.fromisoformat(cls.SCORE_CUTOFF_DATE)
        except ValueError:
            raise ValueError("SCORE_CUTOFF_DATE must be an ISO date (YYYY-MM-DD)")
        for name in ('SCORE_HISTORY_LIMIT', 'LEADERBOARD_CACHE_TTL', 'MAX_GROUPS_PER_USER',
                     'MAX_MEMBERS_PER_GROUP', 'GROUP_CODE_LENGTH'):
            if getattr(cls, name) <= 0:
                raise ValueError(f"{name} must be a positive integer")
