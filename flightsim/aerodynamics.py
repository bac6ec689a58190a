"""
Aerodynamics Module

Computes lift and drag for the current flight condition:
- Dynamic pressure from air density and speed
- Angle of attack in the pitch plane
- Linear lift curve with a parabolic drag polar
- Post-stall lift collapse and drag rise

Only scalar magnitudes are produced here; the integrator applies their
directions (lift along body up, drag against the relative wind).
"""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Any, Dict

from .state import FlightState, AeroState
from .aircraft import AircraftParameters
from .frames import norm


# Body speeds below this leave the angle of attack undefined (m/s)
MIN_AOA_SPEED = 1e-3


@dataclass(frozen=True)
class StallModel:
    """
    Post-stall behavior.

    The drag penalty is an empirically tuned constant, kept configurable
    rather than derived.
    """

    # Critical angle of attack (rad)
    angle: float = float(np.radians(14.0))

    # Lowest fraction of the linear CL retained after stall
    cl_floor: float = 0.05

    # Added to CD while stalled (separated-flow drag rise)
    drag_penalty: float = 1.5

    def __post_init__(self):
        if not 0.0 < self.angle < np.pi / 2:
            raise ValueError(f"stall angle must be in (0, pi/2), got {self.angle}")
        if not 0.0 <= self.cl_floor <= 1.0:
            raise ValueError(f"cl_floor must be in [0, 1], got {self.cl_floor}")
        if self.drag_penalty < 0:
            raise ValueError(f"drag_penalty must be >= 0, got {self.drag_penalty}")

    def lift_factor(self, alpha: float) -> float:
        """Multiplier applied to CL once |alpha| exceeds the stall angle."""
        excess = abs(alpha) - self.angle
        return max(self.cl_floor, 1.0 - excess / (np.pi / 2 - self.angle))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def estimate_angle_of_attack(state: FlightState) -> float:
    """
    Pitch-plane angle of attack.

    World velocity is rotated into body axes and alpha = atan2(v_y, v_x).
    This is a simplified 2D estimate: sideslip is not decomposed and wind
    does not enter. Changing it changes the character of the flight model,
    so it is kept as is.

    Returns:
        Angle of attack (rad), 0 when the aircraft is (nearly) stationary
    """
    body_velocity = state.orientation.inverse_rotate_vector(state.velocity)
    if norm(body_velocity) < MIN_AOA_SPEED:
        return 0.0
    return float(np.arctan2(body_velocity[1], body_velocity[0]))


def lift_coefficient(alpha: float, aircraft: AircraftParameters) -> float:
    """Linear lift curve CL0 + CLalpha * alpha (pre-stall)."""
    return aircraft.CL0 + aircraft.CLalpha * alpha


def drag_coefficient(CL: float, aircraft: AircraftParameters) -> float:
    """Parabolic drag polar CD0 + k * CL²."""
    return aircraft.CD0 + aircraft.induced_drag_factor * CL**2


def aerodynamic_coefficients(
    alpha: float,
    aircraft: AircraftParameters,
    stall: StallModel
) -> tuple:
    """
    Compute (CL, CD, stalled) at an angle of attack.

    CD is evaluated from the unstalled CL, then the stall drag penalty is
    added on top.
    """
    CL = lift_coefficient(alpha, aircraft)
    CD = drag_coefficient(CL, aircraft)

    stalled = abs(alpha) > stall.angle
    if stalled:
        CL *= stall.lift_factor(alpha)
        CD += stall.drag_penalty

    return CL, CD, stalled


def compute_aerodynamics(
    state: FlightState,
    aircraft: AircraftParameters,
    air_density: float,
    stall: StallModel = StallModel()
) -> AeroState:
    """
    Compute aerodynamic state for the current flight condition.

    Args:
        state: Current aircraft state
        aircraft: Aircraft configuration
        air_density: Local air density (kg/m³)
        stall: Post-stall model

    Returns:
        AeroState with dynamic pressure, alpha, coefficients and forces
    """
    speed = state.speed
    q_bar = 0.5 * air_density * speed**2

    alpha = estimate_angle_of_attack(state)
    CL, CD, stalled = aerodynamic_coefficients(alpha, aircraft, stall)

    S = aircraft.wing_area

    return AeroState(
        dynamic_pressure=q_bar,
        angle_of_attack=alpha,
        CL=CL,
        CD=CD,
        lift=q_bar * S * CL,
        drag=q_bar * S * CD,
        stalled=stalled,
        speed=speed,
        air_density=air_density
    )
