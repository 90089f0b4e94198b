"""Shared payload builders for flowtrack tests."""

from datetime import datetime, timedelta, timezone

import pytest

ORDERED_AT = datetime(2024, 3, 5, 8, 0, tzinfo=timezone.utc)


def _stage(minutes: int, **extra) -> dict:
    return {
        "user": {"id": 7, "username": "rina", "full_name": "Rina Putri"},
        "created_at": (ORDERED_AT + timedelta(minutes=minutes)).isoformat(),
        **extra,
    }


@pytest.fixture
def make_flow():
    """Build a raw flow payload with the given wire stage keys completed.

    Stages are stamped 15 minutes apart in the order given.
    """

    def _make(tracking: str = "AB123-01", stages=(), complained: bool = False) -> dict:
        raw = {
            "tracking": tracking,
            "order": {
                "tracking": tracking,
                "order_ginee_id": f"GN-{tracking}",
                "complained": complained,
                "created_at": ORDERED_AT.isoformat(),
            },
        }
        for position, key in enumerate(stages, start=1):
            extra = (
                {"expedition": "JNE", "expedition_color": "#d32f2f"}
                if key == "outbound"
                else {}
            )
            raw[key] = _stage(position * 15, **extra)
        return raw

    return _make


@pytest.fixture
def make_chart():
    """Build a raw chart payload for March 2024 from a list of daily counts."""

    def _make(counts, total=None, month: str = "March", year: int = 2024) -> dict:
        daily = [
            {"date": f"{year}-03-{day:02d}", "count": count}
            for day, count in enumerate(counts, start=1)
        ]
        return {
            "month": month,
            "year": year,
            "daily_counts": daily,
            "total_count": sum(counts) if total is None else total,
        }

    return _make
