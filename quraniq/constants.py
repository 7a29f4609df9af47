"""
Core-wide constants for the QuranIQ group leaderboard.

This module contains the fixed values shared by the scoring, ranking and
group directory code.
"""

class ScoreConstants:
    """Constants related to per-mode crescent scores."""
    
    # Canonical score fields, in display order
    SCORE_FIELDS = ('connections', 'harf', 'deduction', 'scramble', 'juz')
    
    # Game mode names used by the puzzle UIs -> canonical score field
    MODE_FIELD_MAP = {
        'connections': 'connections',
        'wordle': 'harf',  # Legacy name for Harf by Harf
        'harf': 'harf',
        'deduction': 'deduction',
        'scramble': 'scramble',
        'juz': 'juz',
    }
    
    # Highest crescent count any single mode can award (Connections: 4 rows x 2)
    MAX_MODE_SCORE = 8
    
    # Verses in the Quran, used for exploration percentage
    QURAN_VERSE_COUNT = 6236

class GroupConstants:
    """Constants for the group directory."""
    
    # Removed confusing chars (I, O, 0, 1)
    CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'

class SortConstants:
    """Sort keys accepted by the ranking calculator."""
    
    TOTAL = 'total'
    TODAY = 'today'
    QURAN = 'quran'
    ALLOWED = (TOTAL, TODAY, QURAN)

class BadgeConstants:
    """Top-scorer badge catalogue, one per game mode."""
    
    GAMES = (
        ('connections', '🔗', 'Connections'),
        ('harf', '🔤', 'Harf by Harf'),
        ('deduction', '🔍', 'Who Am I'),
        ('scramble', '🧩', 'Scramble'),
        ('juz', '🌙', 'Juz Journey'),
    )

class ProfileConstants:
    """Profile display defaults."""
    
    # Shown for members who never set a display name
    ANONYMOUS_NAME = 'Anonymous'
