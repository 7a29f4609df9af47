"""QuranIQ group leaderboard core."""
