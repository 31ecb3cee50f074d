"""
Widget dispatch: device-type tag -> rendering strategy.

`resolve` may return None for an unknown tag; `render_reading` never fails
and falls back to `UnknownWidget`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, List, Optional

from rowdesk.domain.models import DeviceReading
from rowdesk.widgets.abstract import (
    AbstractWidget,
    DeviceType,
    Presentation,
    RenderStrategy,
    Tone,
)
from rowdesk.widgets.binary import DoorWidget, MotionWidget, WaterLeakWidget
from rowdesk.widgets.gauges import (
    AirQualityWidget,
    Co2Widget,
    HumidityWidget,
    LightWidget,
    NoiseWidget,
    PowerWidget,
    PressureWidget,
    ScaleWidget,
    SoilMoistureWidget,
    ThermometerWidget,
)


class UnknownWidget(AbstractWidget):
    """Labeled placeholder for device types without a widget."""

    device_type = DeviceType.UNKNOWN
    needs_value = False

    def describe(
        self, reading: DeviceReading, value: Optional[float], now: datetime
    ) -> Presentation:
        return self.present(
            reading,
            value_text="",
            label="Unknown",
            caption=f"Unknown device type: {reading.type}",
            tone=Tone.RED,
        )


def _widget_factories() -> Dict[DeviceType, Callable[[], RenderStrategy]]:
    """Registry of available widgets."""
    return {
        DeviceType.AIR_QUALITY: AirQualityWidget,
        DeviceType.CO2: Co2Widget,
        DeviceType.DOOR: DoorWidget,
        DeviceType.HUMIDITY: HumidityWidget,
        DeviceType.LIGHT: LightWidget,
        DeviceType.MOTION: MotionWidget,
        DeviceType.NOISE: NoiseWidget,
        DeviceType.POWER: PowerWidget,
        DeviceType.PRESSURE: PressureWidget,
        DeviceType.SCALE: ScaleWidget,
        DeviceType.SOIL_MOISTURE: SoilMoistureWidget,
        DeviceType.THERMOMETER: ThermometerWidget,
        DeviceType.WATER_LEAK: WaterLeakWidget,
    }


def available_widgets() -> List[str]:
    """List device-type tags that have a widget."""
    return sorted(device_type.value for device_type in _widget_factories())


def resolve(device_type: str) -> Optional[RenderStrategy]:
    factory = _widget_factories().get(DeviceType.parse(device_type))
    return factory() if factory is not None else None


def render_reading(reading: DeviceReading, now: Optional[datetime] = None) -> Presentation:
    widget = resolve(reading.type) or UnknownWidget()
    return widget.render(reading, now)


__all__ = ["UnknownWidget", "available_widgets", "render_reading", "resolve"]
