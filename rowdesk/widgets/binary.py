"""
Boolean-state widgets: the raw value is read as a flag (0 = off, 1 = on).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from rowdesk.domain.models import DeviceReading
from rowdesk.widgets.abstract import AbstractWidget, DeviceType, Presentation, Tone


def time_since(moment: Optional[datetime], now: datetime) -> str:
    """Coarse relative time: "Just now", "5 minutes ago", "2 hours ago"."""
    if moment is None:
        return "Unknown"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    minutes = int((now - moment).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    hours = minutes // 60
    return f"{hours} hour{'' if hours == 1 else 's'} ago"


class DoorWidget(AbstractWidget):
    device_type = DeviceType.DOOR
    needs_value = False

    def describe(
        self, reading: DeviceReading, value: Optional[float], now: datetime
    ) -> Presentation:
        changed = (
            reading.updated_at.astimezone().strftime("%H:%M:%S")
            if reading.updated_at is not None
            else "Unknown"
        )
        state = "Open" if value else "Closed"
        return self.present(
            reading,
            value_text=state,
            label=state,
            caption=f"Last changed: {changed}",
            tone=Tone.YELLOW if value else Tone.GREEN,
        )


class MotionWidget(AbstractWidget):
    device_type = DeviceType.MOTION
    needs_value = False

    def describe(
        self, reading: DeviceReading, value: Optional[float], now: datetime
    ) -> Presentation:
        state = "Motion Detected" if value else "No Motion"
        return self.present(
            reading,
            value_text=state,
            label=state,
            caption=f"Last activity: {time_since(reading.updated_at, now)}",
            tone=Tone.ORANGE if value else Tone.GRAY,
        )


class WaterLeakWidget(AbstractWidget):
    device_type = DeviceType.WATER_LEAK
    needs_value = False

    def describe(
        self, reading: DeviceReading, value: Optional[float], now: datetime
    ) -> Presentation:
        leaking = bool(value)
        return self.present(
            reading,
            value_text="Leak Detected!" if leaking else "No Leaks",
            label="Leak Detected!" if leaking else "No Leaks",
            caption="Immediate attention required" if leaking else "System operating normally",
            tone=Tone.RED if leaking else Tone.GREEN,
            alert=leaking,
        )


__all__ = ["DoorWidget", "MotionWidget", "WaterLeakWidget", "time_since"]
