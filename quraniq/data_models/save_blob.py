"""
Portable save blob data models.

The blob is a versioned snapshot of client-local progress that a player can
copy to another device. Version 2 added the identity and group section used
for identity migration.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SaveBlob:
    """Decoded contents of a save code."""
    version: int
    stats: Dict[str, Any]
    verse_refs: List[str] = field(default_factory=list)
    player_id: Optional[str] = None
    theme: Optional[str] = None
    percentile: Any = None
    uid: Optional[str] = None
    display_name: str = ''
    groups: Dict[str, Any] = field(default_factory=dict)
    active_group_code: Optional[str] = None
    exported: Optional[str] = None
    
    def to_dict(self) -> dict:
        return {
            'v': self.version,
            'stats': self.stats,
            'verses': {'refs': list(self.verse_refs)},
            'playerId': self.player_id,
            'theme': self.theme,
            'percentile': self.percentile,
            'firebase': {
                'uid': self.uid,
                'displayName': self.display_name,
                'groups': self.groups,
                'activeGroupCode': self.active_group_code,
            },
            'exported': self.exported,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SaveBlob":
        identity = data.get('firebase') or {}
        verses = data.get('verses') or {}
        return cls(
            version=data.get('v') or 0,
            stats=data.get('stats') or {},
            verse_refs=list(verses.get('refs') or []),
            player_id=data.get('playerId'),
            theme=data.get('theme'),
            percentile=data.get('percentile'),
            uid=identity.get('uid'),
            display_name=identity.get('displayName') or '',
            groups=identity.get('groups') or {},
            active_group_code=identity.get('activeGroupCode'),
            exported=data.get('exported'),
        )


@dataclass(frozen=True)
class ImportResult:
    """Outcome of restoring a save code, with a message for the player."""
    success: bool
    message: str
