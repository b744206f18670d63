from datetime import datetime, timezone
from typing import Optional, Union

from app.schemas.upload import ImageRole, OUTPUT_EXTENSION

__all__ = ["build_key", "epoch_millis", "CHARACTER_ENTITY_KIND"]

CHARACTER_ENTITY_KIND = "characters"


def epoch_millis(now: Optional[Union[datetime, int]] = None) -> int:
    if now is None:
        now = datetime.now(timezone.utc)
    if isinstance(now, datetime):
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return int(now.timestamp() * 1000)
    return int(now)


def build_key(
    entity_kind: str,
    owner_id: str,
    role: Union[ImageRole, str],
    now: Optional[Union[datetime, int]] = None,
    ext: str = OUTPUT_EXTENSION,
) -> str:
    """
    Storage key for one processed upload: `{entity_kind}/{owner_id}/{role}-{epochMillis}.{ext}`.

    The millisecond timestamp keeps repeated uploads for the same owner and role
    apart; keys are never reused, so a replaced object is simply left behind.
    """
    role_name = role.value if isinstance(role, ImageRole) else str(role)
    parts = [entity_kind.strip("/"), str(owner_id).strip("/")]
    if not all(parts):
        raise ValueError("entity_kind and owner_id are required to build a storage key.")
    return f"{parts[0]}/{parts[1]}/{role_name}-{epoch_millis(now)}.{ext}"
