"""
Per-client session context.

One ClientContext is built at start-up and passed to every service call. It
owns the client's identity, cached group list, active group, leaderboard
cache, pending-migration marker and the queue of user-facing messages.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from quraniq.services.leaderboard_cache import LeaderboardCache
from quraniq.utils.dates import PuzzleCalendar
from quraniq.utils.local_state import LocalStateStore


@dataclass(frozen=True)
class GroupSummary:
    """Locally cached view of one group the player belongs to."""
    name: str
    member_count: int = 0
    
    def to_dict(self) -> dict:
        return {'name': self.name, 'memberCount': self.member_count}
    
    @classmethod
    def from_dict(cls, code: str, data) -> "GroupSummary":
        if not isinstance(data, dict):
            return cls(name=code)
        return cls(name=data.get('name') or code, member_count=int(data.get('memberCount') or 0))


@dataclass(frozen=True)
class PendingMigration:
    """Marker left by a save-blob import until the identity migration succeeds."""
    old_uid: str
    group_codes: Tuple[str, ...] = ()
    display_name: str = ''
    timestamp: str = ''
    
    def to_dict(self) -> dict:
        return {
            'oldUid': self.old_uid,
            'groupCodes': list(self.group_codes),
            'displayName': self.display_name,
            'timestamp': self.timestamp,
        }
    
    @classmethod
    def from_dict(cls, data) -> Optional["PendingMigration"]:
        if not isinstance(data, dict) or not data.get('oldUid'):
            return None
        return cls(
            old_uid=data['oldUid'],
            group_codes=tuple(data.get('groupCodes') or ()),
            display_name=data.get('displayName') or '',
            timestamp=data.get('timestamp') or '',
        )


@dataclass(frozen=True)
class GroupNotification:
    """Another member scored today in one of our groups."""
    group_code: str
    group_name: str
    player_name: str
    total: int
    key: str


class ClientContext:
    """Explicit client state threaded through every core operation."""
    
    IDENTITY_KEY = 'identity'
    DISPLAY_NAME_KEY = 'display_name'
    GROUPS_KEY = 'groups'
    ACTIVE_GROUP_KEY = 'active_group_code'
    MIGRATION_KEY = 'pending_migration'
    NOTIFIED_KEY = 'notified'
    
    def __init__(
        self,
        local_state: Optional[LocalStateStore] = None,
        calendar: Optional[PuzzleCalendar] = None,
        leaderboard_cache: Optional[LeaderboardCache] = None,
    ):
        self.local_state = local_state or LocalStateStore()
        self.calendar = calendar or PuzzleCalendar()
        self.leaderboard_cache = leaderboard_cache or LeaderboardCache()
        self.messages: List[str] = []
        self.notifications: List[GroupNotification] = []
    
    # Identity
    @property
    def identity(self) -> str:
        """The client's PlayerIdentity, created on first use."""
        uid = self.local_state.get(self.IDENTITY_KEY)
        if not uid:
            uid = uuid.uuid4().hex
            self.local_state.set(self.IDENTITY_KEY, uid)
        return uid
    
    def replace_identity(self, uid: str):
        """Swap in a new live identity (e.g. a fresh install). Cached rosters are dropped."""
        self.local_state.set(self.IDENTITY_KEY, uid)
        self.leaderboard_cache.invalidate_all()
    
    @property
    def display_name(self) -> str:
        return self.local_state.get(self.DISPLAY_NAME_KEY, '') or ''
    
    @display_name.setter
    def display_name(self, name: str):
        self.local_state.set(self.DISPLAY_NAME_KEY, name)
    
    # Groups
    @property
    def groups(self) -> Dict[str, GroupSummary]:
        raw = self.local_state.get(self.GROUPS_KEY, {}) or {}
        return {code: GroupSummary.from_dict(code, data) for code, data in raw.items()}
    
    @property
    def active_group_code(self) -> Optional[str]:
        return self.local_state.get(self.ACTIVE_GROUP_KEY)
    
    def has_groups(self) -> bool:
        return bool(self.groups)
    
    def set_groups(self, groups: Dict[str, GroupSummary], active_group_code: Optional[str] = None):
        """Replace the cached group list, keeping the active group valid."""
        self.local_state.set(self.GROUPS_KEY, {code: g.to_dict() for code, g in groups.items()})
        if active_group_code not in groups:
            active_group_code = next(iter(groups), None)
        self.local_state.set(self.ACTIVE_GROUP_KEY, active_group_code)
    
    def add_group(self, code: str, summary: GroupSummary):
        """Cache a newly created or joined group and make it active."""
        groups = self.groups
        groups[code] = summary
        self.set_groups(groups, code)
    
    def remove_group(self, code: str):
        groups = self.groups
        groups.pop(code, None)
        active = self.active_group_code
        self.set_groups(groups, None if active == code else active)
    
    def set_active_group(self, code: str) -> bool:
        """Switch the active group. Its cached roster is invalidated to force a refresh."""
        if code not in self.groups:
            return False
        self.local_state.set(self.ACTIVE_GROUP_KEY, code)
        self.leaderboard_cache.invalidate(code)
        return True
    
    # Migration marker
    @property
    def pending_migration(self) -> Optional[PendingMigration]:
        return PendingMigration.from_dict(self.local_state.get(self.MIGRATION_KEY))
    
    def set_pending_migration(self, migration: PendingMigration):
        self.local_state.set(self.MIGRATION_KEY, migration.to_dict())
    
    def clear_pending_migration(self):
        self.local_state.remove(self.MIGRATION_KEY)
    
    # User-facing messages
    def notify(self, message: str):
        """Queue a toast message for the UI."""
        self.messages.append(message)
    
    def pop_messages(self) -> List[str]:
        messages, self.messages = self.messages, []
        return messages
    
    def mark_notified(self, key: str) -> bool:
        """
        Record a notification key ending in "_YYYY-MM-DD"; False if it was
        already recorded. Keys dated before today are dropped on each new record.
        """
        notified = self.local_state.get(self.NOTIFIED_KEY, []) or []
        if key in notified:
            return False
        today = self.calendar.today()
        notified = [k for k in notified if k.rsplit('_', 1)[-1] >= today]
        notified.append(key)
        self.local_state.set(self.NOTIFIED_KEY, notified)
        return True
    
    def pop_notifications(self) -> List[GroupNotification]:
        notifications, self.notifications = self.notifications, []
        return notifications


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
