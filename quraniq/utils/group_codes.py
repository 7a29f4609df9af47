import secrets
from typing import Optional

from quraniq.config import Config
from quraniq.constants import GroupConstants


def generate_group_code(length: int = None) -> str:
    """Generate a random group code from the unambiguous alphabet."""
    length = length or Config.GROUP_CODE_LENGTH
    alphabet = GroupConstants.CODE_ALPHABET
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def normalize_group_code(code: Optional[str]) -> str:
    """Trim and uppercase a user-entered code."""
    return (code or '').strip().upper()


def is_valid_group_code(code: str) -> bool:
    """Check length and alphabet of an already normalized code."""
    if len(code) != Config.GROUP_CODE_LENGTH:
        return False
    return all(ch in GroupConstants.CODE_ALPHABET for ch in code)
