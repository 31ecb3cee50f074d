"""
Numeric gauge widgets.

Each gauge maps a single sensor value onto fixed display bands. The band
edges are presentation constants, not configuration.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from rowdesk.domain.models import DeviceReading
from rowdesk.widgets.abstract import (
    AbstractWidget,
    Band,
    DeviceType,
    Presentation,
    Tone,
    classify,
    format_number,
)

CO2_BANDS = (
    Band(400, "Excellent", Tone.GREEN),
    Band(1000, "Good", Tone.GREEN),
    Band(2000, "Moderate", Tone.YELLOW),
    Band(5000, "Poor", Tone.ORANGE),
)
CO2_OTHERWISE = Band(float("inf"), "Dangerous", Tone.RED)

HUMIDITY_BANDS = (
    Band(30, "Dry", Tone.ORANGE),
    Band(50, "Comfortable", Tone.GREEN),
    Band(70, "Humid", Tone.CYAN),
)
HUMIDITY_OTHERWISE = Band(float("inf"), "Very Humid", Tone.BLUE)

TEMPERATURE_BANDS = (
    Band(0, "Freezing", Tone.BLUE),
    Band(15, "Cold", Tone.CYAN),
    Band(25, "Comfortable", Tone.GREEN),
    Band(35, "Warm", Tone.YELLOW),
)
TEMPERATURE_OTHERWISE = Band(float("inf"), "Hot", Tone.RED)

AQI_BANDS = (
    Band(50, "Good", Tone.GREEN, inclusive=True),
    Band(100, "Moderate", Tone.YELLOW, inclusive=True),
    Band(150, "Unhealthy for Sensitive Groups", Tone.ORANGE, inclusive=True),
    Band(200, "Unhealthy", Tone.RED, inclusive=True),
)
AQI_OTHERWISE = Band(float("inf"), "Very Unhealthy", Tone.PURPLE)
AQI_DESCRIPTIONS = {
    "Good": "Healthy air quality",
    "Moderate": "Acceptable air quality",
    "Unhealthy for Sensitive Groups": "Sensitive groups should reduce exposure",
    "Unhealthy": "Everyone may experience effects",
    "Very Unhealthy": "Health alert: everyone may experience serious effects",
}

LIGHT_BANDS = (
    Band(50, "Very Dark", Tone.BLUE),
    Band(200, "Dark", Tone.CYAN),
    Band(500, "Dim", Tone.YELLOW),
    Band(1000, "Bright", Tone.YELLOW),
)
LIGHT_OTHERWISE = Band(float("inf"), "Very Bright", Tone.ORANGE)

NOISE_BANDS = (
    Band(30, "Very Quiet", Tone.GREEN),
    Band(50, "Quiet", Tone.GREEN),
    Band(60, "Moderate", Tone.YELLOW),
    Band(70, "Loud", Tone.ORANGE),
)
NOISE_OTHERWISE = Band(float("inf"), "Very Loud", Tone.RED)

POWER_BANDS = (
    Band(100, "Low", Tone.GREEN),
    Band(500, "Moderate", Tone.YELLOW),
    Band(1000, "High", Tone.ORANGE),
)
POWER_OTHERWISE = Band(float("inf"), "Very High", Tone.RED)

SOIL_BANDS = (
    Band(20, "Very Dry", Tone.RED),
    Band(40, "Dry", Tone.ORANGE),
    Band(60, "Moderate", Tone.GREEN),
    Band(80, "Moist", Tone.CYAN),
)
SOIL_OTHERWISE = Band(float("inf"), "Very Moist", Tone.BLUE)
SOIL_NEEDS_WATER = frozenset({"Very Dry", "Dry"})

STANDARD_PRESSURE_HPA = 1013.25


def _clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, value))


class Co2Widget(AbstractWidget):
    device_type = DeviceType.CO2

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        band = classify(value, CO2_BANDS, CO2_OTHERWISE)
        return self.present(
            reading,
            value_text=f"{format_number(value)} ppm",
            label=band.label,
            caption=f"CO₂ Level: {band.label}",
            tone=band.tone,
        )


class HumidityWidget(AbstractWidget):
    device_type = DeviceType.HUMIDITY

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        percentage = _clamp_percent(value)
        band = classify(percentage, HUMIDITY_BANDS, HUMIDITY_OTHERWISE)
        return self.present(
            reading,
            value_text=f"{percentage:.1f}%",
            label=band.label,
            tone=band.tone,
            percent=percentage,
        )


class ThermometerWidget(AbstractWidget):
    device_type = DeviceType.THERMOMETER

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        band = classify(value, TEMPERATURE_BANDS, TEMPERATURE_OTHERWISE)
        return self.present(
            reading, value_text=f"{value:.1f}°C", label=band.label, tone=band.tone
        )


class AirQualityWidget(AbstractWidget):
    device_type = DeviceType.AIR_QUALITY

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        band = classify(value, AQI_BANDS, AQI_OTHERWISE)
        return self.present(
            reading,
            value_text=f"AQI {format_number(value)}",
            label=band.label,
            caption=AQI_DESCRIPTIONS[band.label],
            tone=band.tone,
        )


class LightWidget(AbstractWidget):
    device_type = DeviceType.LIGHT

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        band = classify(value, LIGHT_BANDS, LIGHT_OTHERWISE)
        return self.present(
            reading,
            value_text=f"{value:.0f} lux",
            label=band.label,
            tone=band.tone,
            percent=_clamp_percent(value / 1000 * 100),
        )


class NoiseWidget(AbstractWidget):
    device_type = DeviceType.NOISE

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        band = classify(value, NOISE_BANDS, NOISE_OTHERWISE)
        return self.present(
            reading,
            value_text=f"{format_number(value)} dB",
            label=band.label,
            caption=f"Noise Level: {band.label}",
            tone=band.tone,
            percent=_clamp_percent(value),
        )


class PowerWidget(AbstractWidget):
    device_type = DeviceType.POWER

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        band = classify(value, POWER_BANDS, POWER_OTHERWISE)
        text = f"{format_number(value)}W" if value < 1000 else f"{value / 1000:.1f}kW"
        return self.present(
            reading,
            value_text=text,
            label=band.label,
            caption=f"Power Usage: {band.label}",
            tone=band.tone,
        )


class PressureWidget(AbstractWidget):
    device_type = DeviceType.PRESSURE

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        deviation = (value - STANDARD_PRESSURE_HPA) / STANDARD_PRESSURE_HPA * 100
        spread = abs(deviation)
        if spread < 0.5:
            tone = Tone.GREEN
        elif spread < 1:
            tone = Tone.YELLOW
        else:
            tone = Tone.RED
        direction = "Above" if deviation > 0 else "Below"
        return self.present(
            reading,
            value_text=f"{value:.1f} hPa",
            label=f"{direction} normal ({spread:.1f}%)",
            tone=tone,
        )


class SoilMoistureWidget(AbstractWidget):
    device_type = DeviceType.SOIL_MOISTURE

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        band = classify(value, SOIL_BANDS, SOIL_OTHERWISE)
        needs_water = band.label in SOIL_NEEDS_WATER
        return self.present(
            reading,
            value_text=f"{format_number(value)}%",
            label=band.label,
            caption="Needs water" if needs_water else band.label,
            tone=band.tone,
            percent=_clamp_percent(value),
            alert=needs_water,
        )


class ScaleConfig(BaseModel):
    min_weight: float = 0
    max_weight: float = 200
    unit: str = "kg"
    full_is_good: bool = False
    low_tone: Tone = Tone.GREEN
    medium_tone: Tone = Tone.YELLOW
    high_tone: Tone = Tone.RED

    model_config = ConfigDict(frozen=True)


class ScaleWidget(AbstractWidget):
    device_type = DeviceType.SCALE

    def __init__(self, config: Optional[ScaleConfig] = None) -> None:
        self.config = config or ScaleConfig()

    def _tone(self, percentage: float) -> Tone:
        config = self.config
        if percentage < 33:
            return config.low_tone if config.full_is_good else config.high_tone
        if percentage < 66:
            return config.medium_tone
        return config.high_tone if config.full_is_good else config.low_tone

    def describe(self, reading: DeviceReading, value: float, now: datetime) -> Presentation:
        config = self.config
        span = config.max_weight - config.min_weight
        percentage = (value - config.min_weight) / span * 100 if span else 0.0
        return self.present(
            reading,
            value_text=f"{value:.1f} {config.unit}",
            label=f"{min(100.0, percentage):.0f}%",
            caption=reading.name.lower(),
            tone=self._tone(percentage),
            percent=_clamp_percent(percentage),
        )


__all__ = [
    "AirQualityWidget",
    "Co2Widget",
    "HumidityWidget",
    "LightWidget",
    "NoiseWidget",
    "PowerWidget",
    "PressureWidget",
    "ScaleConfig",
    "ScaleWidget",
    "SoilMoistureWidget",
    "ThermometerWidget",
]
