"""
Progress export and import through the portable save code.

A save code is "QIQ:" followed by base64 of the JSON blob. Importing restores
local statistics immediately and leaves a pending-migration marker; the
identity migration itself runs later against the store.
"""

import base64
import binascii
import json
import logging
from datetime import datetime
from typing import Optional

from quraniq.context import ClientContext, GroupSummary, PendingMigration, utc_now_iso
from quraniq.data_models.save_blob import ImportResult, SaveBlob

logger = logging.getLogger(__name__)

SAVE_PREFIX = 'QIQ:'
SAVE_VERSION = 2

STATS_KEY = 'stats'
VERSES_KEY = 'verses'
PLAYER_ID_KEY = 'player_id'
THEME_KEY = 'theme'
PERCENTILE_KEY = 'percentile'
DEFAULT_THEME = 'dark'


def encode_save_code(blob: SaveBlob) -> str:
    payload = json.dumps(blob.to_dict(), ensure_ascii=False).encode('utf-8')
    return SAVE_PREFIX + base64.b64encode(payload).decode('ascii')


def decode_save_code(text: str) -> dict:
    """Decode a save code into its raw JSON object. Raises ValueError if it is malformed."""
    try:
        payload = base64.b64decode(text[len(SAVE_PREFIX):].strip(), validate=True)
        data = json.loads(payload.decode('utf-8'))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(str(e)) from e
    if not isinstance(data, dict):
        raise ValueError("save data is not an object")
    return data


def export_progress(ctx: ClientContext) -> str:
    """Bundle the client's local progress and group identity into a save code."""
    state = ctx.local_state
    verses = state.get(VERSES_KEY) or {}
    blob = SaveBlob(
        version=SAVE_VERSION,
        stats=state.get(STATS_KEY) or {},
        verse_refs=list(verses.get('refs') or []),
        player_id=state.get(PLAYER_ID_KEY),
        theme=state.get(THEME_KEY) or DEFAULT_THEME,
        percentile=state.get(PERCENTILE_KEY),
        uid=ctx.identity,
        display_name=ctx.display_name,
        groups={code: summary.to_dict() for code, summary in ctx.groups.items()},
        active_group_code=ctx.active_group_code,
        exported=utc_now_iso(),
    )
    return encode_save_code(blob)


def _exported_label(exported: Optional[str]) -> str:
    if not exported:
        return 'backup'
    try:
        return datetime.fromisoformat(exported.replace('Z', '+00:00')).strftime('%Y-%m-%d')
    except ValueError:
        return 'backup'


def import_progress(ctx: ClientContext, text: str) -> ImportResult:
    """
    Restore a save code onto this client.
    
    Statistics, theme, percentile and player id are replaced; explored verses
    are unioned with what is already here. When the blob carries an identity,
    its display name and group cache are restored and a pending migration is
    recorded for the next start-up.
    """
    if not text or not text.startswith(SAVE_PREFIX):
        return ImportResult(False, f"Invalid save code. It should start with {SAVE_PREFIX}")
    
    try:
        data = decode_save_code(text)
    except ValueError as e:
        logger.warning(f"Rejected save code: {e}")
        return ImportResult(False, f"Failed to restore: {e}")
    
    if not data.get('v') or not isinstance(data.get('stats'), dict):
        return ImportResult(False, "Invalid or corrupted save data.")
    
    blob = SaveBlob.from_dict(data)
    state = ctx.local_state
    state.set(STATS_KEY, blob.stats)
    
    existing = list((state.get(VERSES_KEY) or {}).get('refs') or [])
    state.set(VERSES_KEY, {'refs': list(dict.fromkeys(existing + blob.verse_refs))})
    
    if blob.player_id:
        state.set(PLAYER_ID_KEY, blob.player_id)
    if blob.theme:
        state.set(THEME_KEY, blob.theme)
    if blob.percentile:
        state.set(PERCENTILE_KEY, blob.percentile)
    
    if blob.display_name:
        ctx.display_name = blob.display_name
    if blob.groups:
        groups = {code: GroupSummary.from_dict(code, summary) for code, summary in blob.groups.items()}
        ctx.set_groups(groups, blob.active_group_code)
    if blob.uid:
        ctx.set_pending_migration(PendingMigration(
            old_uid=blob.uid,
            group_codes=tuple(blob.groups),
            display_name=blob.display_name,
            timestamp=utc_now_iso(),
        ))
        logger.info(f"Pending migration recorded from {blob.uid[:8]} ({len(blob.groups)} group(s))")
    
    return ImportResult(True, f"Progress restored! Stats and groups from {_exported_label(blob.exported)} loaded.")
