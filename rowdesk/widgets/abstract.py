"""
Widget interfaces and presentation contracts for the device dashboard.

Concrete widgets implement the RenderStrategy protocol (usually through the
AbstractWidget ABC) and return a Presentation, a plain description of what to
show for one device reading. Terminal rendering lives in `rowdesk.reporter`.
"""

from __future__ import annotations

import abc
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict

from rowdesk.domain.models import DeviceReading


class DeviceType(str, Enum):
    """Closed set of device tags the dashboard knows how to draw."""

    AIR_QUALITY = "air_quality"
    CO2 = "co2"
    DOOR = "door"
    HUMIDITY = "humidity"
    LIGHT = "light"
    MOTION = "motion"
    NOISE = "noise"
    POWER = "power"
    PRESSURE = "pressure"
    SCALE = "scale"
    SOIL_MOISTURE = "soil_moisture"
    THERMOMETER = "thermometer"
    WATER_LEAK = "water_leak"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, tag: Optional[str]) -> "DeviceType":
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


class Tone(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"
    BLUE = "blue"
    CYAN = "cyan"
    PURPLE = "purple"
    GRAY = "gray"


class Presentation(BaseModel):
    """
    What a widget shows for one reading.

    Attributes
    ----------
    value_text : str
        The headline value, e.g. "1500 ppm".
    label : str
        The band or state name, e.g. "Moderate" or "Open".
    caption : str
        Secondary line under the value.
    tone : Tone
        Color of the headline value.
    status_tone : Tone
        Color of the online/offline dot derived from the reading's status.
    percent : float | None
        Fill level for gauge-like widgets, 0-100.
    alert : bool
        Whether the reading needs immediate attention.
    """

    device_id: str
    name: str
    device_type: str
    value_text: str
    label: str
    caption: str = ""
    tone: Tone = Tone.GRAY
    status_tone: Tone = Tone.GRAY
    percent: Optional[float] = None
    alert: bool = False

    model_config = ConfigDict(frozen=True)


class Band(NamedTuple):
    """Values below `limit` (or at it, when `inclusive`) get this label."""

    limit: float
    label: str
    tone: Tone
    inclusive: bool = False


def classify(value: float, bands: Sequence[Band], otherwise: Band) -> Band:
    for band in bands:
        if value < band.limit or (band.inclusive and value == band.limit):
            return band
    return otherwise


def format_number(value: float) -> str:
    """Print integral floats without a trailing '.0'."""
    return str(int(value)) if float(value).is_integer() else str(value)


def status_tone(status: Optional[bool]) -> Tone:
    if status is None:
        return Tone.GRAY
    return Tone.GREEN if status else Tone.RED


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class RenderStrategy(Protocol):
    """
    Common interface all widgets implement.

    Attributes
    ----------
    device_type : DeviceType
        The tag this widget draws.
    """

    device_type: DeviceType

    def render(self, reading: DeviceReading, now: Optional[datetime] = None) -> Presentation:
        """
        Describe `reading` for display.

        Parameters
        ----------
        reading : DeviceReading
            The device row to draw.
        now : datetime | None
            Reference time for relative captions ("5 minutes ago").
        """
        ...


class AbstractWidget(abc.ABC):
    """
    ABC helper for class-based widgets.

    Handles the missing-value case and the status dot; subclasses implement
    `describe` for a present value. Widgets that read raw_value as a flag set
    `needs_value = False` and treat a missing value as "off".
    """

    device_type: DeviceType
    needs_value: bool = True

    def render(self, reading: DeviceReading, now: Optional[datetime] = None) -> Presentation:
        now = now or utcnow()
        if reading.raw_value is None and self.needs_value:
            return self.present(reading, value_text="N/A", label="Unknown", caption="No reading")
        return self.describe(reading, reading.raw_value, now)

    @abc.abstractmethod
    def describe(
        self, reading: DeviceReading, value: Optional[float], now: datetime
    ) -> Presentation:  # pragma: no cover - interface only
        """Build the presentation for a reading."""
        raise NotImplementedError

    def present(self, reading: DeviceReading, **fields: object) -> Presentation:
        fields.setdefault("caption", fields.get("label", ""))
        return Presentation(
            device_id=reading.id,
            name=reading.name,
            device_type=reading.type,
            status_tone=status_tone(reading.status),
            **fields,
        )


__all__ = [
    "AbstractWidget",
    "Band",
    "DeviceType",
    "Presentation",
    "RenderStrategy",
    "Tone",
    "classify",
    "format_number",
    "status_tone",
    "utcnow",
]
