"""Geradores de identificadores."""

from __future__ import annotations

import re
import uuid
from datetime import datetime

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]+")


def new_session_id(user_id: str, created_at: datetime, attempt: int = 0) -> str:
    """Deriva session_id de user_id + instante de criação (ms).

    Em colisão, o chamador incrementa `attempt` para obter um sufixo distinto.
    """

    slug = _UNSAFE_CHARS.sub("-", user_id).strip("-") or "user"
    base = f"onb-{slug}-{int(created_at.timestamp() * 1000)}"
    if attempt <= 0:
        return base
    return f"{base}-{uuid.uuid4().hex[:6]}"
