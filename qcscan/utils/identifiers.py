from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone


def generate_image_id() -> str:
    return f"img_{uuid.uuid4().hex}"


def generate_template_id() -> str:
    return f"tmpl_{uuid.uuid4().hex}"


def current_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_date_range(days: int) -> tuple[str, str]:
    end = datetime.now(timezone.utc)
    start = end - timedelta(days=days)
    return (
        start.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        end.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    )
