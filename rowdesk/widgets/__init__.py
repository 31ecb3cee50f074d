"""
Widgets package for rowdesk.

Re-exports the widget interfaces, the concrete widgets, and the dispatch
registry so the dashboard can import from `rowdesk.widgets` directly.
"""

from rowdesk.widgets.abstract import (
    AbstractWidget,
    DeviceType,
    Presentation,
    RenderStrategy,
    Tone,
)
from rowdesk.widgets.binary import DoorWidget, MotionWidget, WaterLeakWidget, time_since
from rowdesk.widgets.gauges import (
    AirQualityWidget,
    Co2Widget,
    HumidityWidget,
    LightWidget,
    NoiseWidget,
    PowerWidget,
    PressureWidget,
    ScaleConfig,
    ScaleWidget,
    SoilMoistureWidget,
    ThermometerWidget,
)
from rowdesk.widgets.registry import UnknownWidget, available_widgets, render_reading, resolve

__all__ = [
    # Abstracts
    "AbstractWidget",
    "DeviceType",
    "Presentation",
    "RenderStrategy",
    "Tone",
    # Concrete widgets
    "AirQualityWidget",
    "Co2Widget",
    "DoorWidget",
    "HumidityWidget",
    "LightWidget",
    "MotionWidget",
    "NoiseWidget",
    "PowerWidget",
    "PressureWidget",
    "ScaleConfig",
    "ScaleWidget",
    "SoilMoistureWidget",
    "ThermometerWidget",
    "UnknownWidget",
    "WaterLeakWidget",
    # Dispatch
    "available_widgets",
    "render_reading",
    "resolve",
    "time_since",
]
