"""
Environment Model

Provides air density versus altitude and the wind/turbulence disturbance
acting on the aircraft.

Air density uses the International Standard Atmosphere troposphere
approximation, floored so aerodynamic forces stay finite at extreme
altitude. The stratosphere is deliberately not modeled beyond that floor.
"""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .frames import vec3, norm


# ISA Constants at sea level
ISA_T0 = 288.15      # Temperature (K)
ISA_RHO0 = 1.225     # Density (kg/m³)
ISA_G0 = 9.80665     # Standard gravity (m/s²)
ISA_R = 287.05       # Specific gas constant for air (J/(kg·K))

# Lapse rate in troposphere (K/m)
ISA_LAPSE_RATE = 0.0065

# Density floor (kg/m³)
MIN_AIR_DENSITY = 0.18


def air_density(altitude: float) -> float:
    """
    Air density at altitude.

    rho = rho0 * (1 - L*h/T0) ** (g / (R*L)), floored at MIN_AIR_DENSITY.

    Args:
        altitude: Height above the ground plane (m); negative values are
                  treated as sea level

    Returns:
        Density (kg/m³)
    """
    h = max(0.0, altitude)
    base = 1.0 - ISA_LAPSE_RATE * h / ISA_T0
    if base <= 0.0:
        return MIN_AIR_DENSITY

    exponent = ISA_G0 / (ISA_R * ISA_LAPSE_RATE)
    rho = ISA_RHO0 * base ** exponent
    return max(MIN_AIR_DENSITY, rho)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Turbulence source. Pass a seed for reproducible runs."""
    return np.random.default_rng(seed)


@dataclass(frozen=True)
class EnvironmentParameters:
    """
    Wind and gravity settings.

    Replaced whole when tuned, never edited in place.
    """

    # Steady wind speed (m/s)
    wind_speed: float = 5.0

    # Compass bearing the wind blows FROM (deg)
    wind_direction_deg: float = 200.0

    # Peak per-axis turbulence amplitude (m/s)
    turbulence_intensity: float = 0.6

    # Gravitational acceleration (m/s²)
    gravity: float = ISA_G0

    def __post_init__(self):
        if self.wind_speed < 0:
            raise ValueError(f"wind_speed must be >= 0, got {self.wind_speed}")
        if self.turbulence_intensity < 0:
            raise ValueError(
                f"turbulence_intensity must be >= 0, got {self.turbulence_intensity}"
            )
        if self.gravity <= 0:
            raise ValueError(f"gravity must be > 0, got {self.gravity}")
        if not np.all(np.isfinite([self.wind_speed, self.wind_direction_deg,
                                   self.turbulence_intensity, self.gravity])):
            raise ValueError("Environment parameters must be finite")

    @classmethod
    def calm(cls) -> 'EnvironmentParameters':
        """No wind, no turbulence."""
        return cls(wind_speed=0.0, wind_direction_deg=0.0, turbulence_intensity=0.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EnvironmentParameters':
        """Create parameters from a configuration dictionary."""
        return cls(
            wind_speed=data.get('wind_speed', 5.0),
            wind_direction_deg=data.get('wind_direction_deg', 200.0),
            turbulence_intensity=data.get('turbulence_intensity', 0.6),
            gravity=data.get('gravity', ISA_G0)
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WindModel:
    """
    Steady wind plus uniform per-axis turbulence, in the world frame.

    The turbulence generator is injected so runs can be reproduced; each
    call to sample() draws exactly three values from it.
    """

    def __init__(self, environment: EnvironmentParameters,
                 rng: Optional[np.random.Generator] = None):
        self.environment = environment
        self.rng = rng if rng is not None else make_rng()

    def steady_wind(self) -> np.ndarray:
        """
        Steady wind vector (m/s), pointing where the air moves TO.

        The configured direction is where the wind comes FROM, so the
        reciprocal bearing is used.
        """
        env = self.environment
        bearing = np.radians((env.wind_direction_deg + 180.0) % 360.0)
        return vec3(np.cos(bearing) * env.wind_speed, 0.0, np.sin(bearing) * env.wind_speed)

    def turbulence(self) -> np.ndarray:
        """Independent uniform noise in [-1, 1] per axis, scaled by intensity."""
        noise = self.rng.uniform(-1.0, 1.0, size=3)
        return noise * self.environment.turbulence_intensity

    def sample(self) -> np.ndarray:
        """Disturbed wind vector for one step (m/s)."""
        return self.steady_wind() + self.turbulence()


def relative_wind(wind: np.ndarray, velocity: np.ndarray) -> np.ndarray:
    """Air motion seen from the aircraft: wind - velocity."""
    return np.asarray(wind, dtype=np.float64) - np.asarray(velocity, dtype=np.float64)


def airspeed(wind: np.ndarray, velocity: np.ndarray) -> float:
    """Magnitude of the relative wind (m/s)."""
    return norm(relative_wind(wind, velocity))
