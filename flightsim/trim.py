"""
Trim Solver

Finds steady-state operating points of the flight model:
- Level or constant-climb flight at a given airspeed (pitch and thrust)
- The equilibrium airspeed at which drag balances a thrust setting

A trim point uses the same force computation as the integrator, so a
trimmed state stepped with zero wind starts with (near) zero acceleration.
"""

import numpy as np
from scipy.optimize import brentq, least_squares
from typing import Optional
from dataclasses import dataclass

from .state import FlightState, ControlInputs, ForcesAndMoments
from .aircraft import AircraftParameters
from .environment import EnvironmentParameters, air_density
from .aerodynamics import StallModel, aerodynamic_coefficients
from .dynamics import SimulationConfig, compute_forces_and_torques
from .frames import Quaternion, vec3


# Upper bracket for the equilibrium search grows from 100 m/s to ~1e14 m/s
MAX_BRACKET_DOUBLINGS = 40


@dataclass
class TrimCondition:
    """Desired steady flight condition."""

    # Target airspeed (m/s)
    airspeed: float = 200.0

    # Target altitude (m)
    altitude: float = 609.6

    # Climb rate (m/s, positive = climbing)
    climb_rate: float = 0.0

    # Heading (rad)
    heading: float = 0.0


@dataclass
class TrimResult:
    """Result of trim solution."""

    success: bool
    state: FlightState
    controls: ControlInputs
    pitch: float
    residuals: np.ndarray
    forces_moments: ForcesAndMoments
    iterations: int
    message: str


def _trim_state(condition: TrimCondition, pitch: float, thrust_percent: float) -> FlightState:
    V = condition.airspeed
    gamma = np.arcsin(np.clip(condition.climb_rate / V, -1.0, 1.0))
    heading = condition.heading

    # Velocity along the flight path, rotated to the requested heading
    velocity = V * vec3(np.cos(gamma) * np.cos(heading),
                        np.sin(gamma),
                        -np.cos(gamma) * np.sin(heading))

    return FlightState(
        position=vec3(0.0, condition.altitude, 0.0),
        velocity=velocity,
        orientation=Quaternion.from_euler(0.0, pitch, heading),
        angular_velocity=np.zeros(3),
        thrust_percent=thrust_percent,
        time=0.0
    )


def compute_trim(
    condition: TrimCondition,
    aircraft: AircraftParameters,
    environment: Optional[EnvironmentParameters] = None,
    sim_config: Optional[SimulationConfig] = None,
    tolerance: float = 1e-6
) -> TrimResult:
    """
    Compute pitch attitude and thrust for steady straight flight.

    Solves for: pitch, thrust_percent
    such that the net force is zero with the wings level and no wind.

    Args:
        condition: Desired trim condition
        aircraft: Aircraft configuration
        environment: Gravity source (wind is ignored)
        sim_config: Simulation configuration
        tolerance: Largest accepted residual, as a fraction of weight

    Returns:
        TrimResult with solution or failure info
    """
    if condition.airspeed <= 0:
        raise ValueError(f"Trim airspeed must be > 0, got {condition.airspeed}")

    environment = environment or EnvironmentParameters.calm()
    sim_config = sim_config or SimulationConfig()
    weight = aircraft.mass * environment.gravity
    no_wind = np.zeros(3)

    def forces(pitch, thrust_percent):
        state = _trim_state(condition, pitch, thrust_percent)
        return state, compute_forces_and_torques(
            state, state.controls, aircraft, environment, no_wind, sim_config
        )

    def residuals(x):
        pitch, thrust_percent = x
        _, fm = forces(pitch, thrust_percent)

        # Along-track and vertical force, normalized by weight
        return np.array([
            fm.force[0] * np.cos(condition.heading) - fm.force[2] * np.sin(condition.heading),
            fm.force[1]
        ]) / weight

    result = least_squares(
        residuals,
        np.array([0.0, 50.0]),
        bounds=([-0.5, 0.0], [0.5, 100.0]),
        x_scale=np.array([0.1, 10.0]),
        method='trf',
        ftol=1e-12,
        xtol=1e-12
    )

    pitch, thrust_percent = result.x
    state, fm = forces(pitch, thrust_percent)
    max_residual = float(np.max(np.abs(result.fun)))
    success = bool(result.success) and max_residual < tolerance

    if success:
        message = "Converged"
    elif thrust_percent >= 100.0 - 1e-6:
        message = f"Insufficient thrust (residual {max_residual:.2e})"
    else:
        message = f"Did not converge: {result.message} (residual {max_residual:.2e})"

    return TrimResult(
        success=success,
        state=state,
        controls=state.controls,
        pitch=float(pitch),
        residuals=result.fun,
        forces_moments=fm,
        iterations=result.nfev,
        message=message
    )


def equilibrium_airspeed(
    aircraft: AircraftParameters,
    thrust_percent: float,
    altitude: float = 0.0,
    angle_of_attack: float = 0.0,
    stall: StallModel = StallModel()
) -> float:
    """
    Airspeed at which drag equals thrust for a fixed angle of attack.

    Args:
        aircraft: Aircraft configuration
        thrust_percent: Thrust setting (%)
        altitude: Altitude for air density (m)
        angle_of_attack: Held angle of attack (rad)
        stall: Post-stall model

    Returns:
        Equilibrium airspeed (m/s); inf when there is no drag to balance
        the thrust within MAX_BRACKET_DOUBLINGS bracket expansions
    """
    thrust = np.clip(thrust_percent, 0.0, 100.0) / 100.0 * aircraft.max_thrust
    if thrust <= 0.0:
        return 0.0

    rho = air_density(altitude)
    _, CD, _ = aerodynamic_coefficients(angle_of_attack, aircraft, stall)

    if CD <= 0.0:
        return float('inf')

    def excess_drag(v):
        return 0.5 * rho * v**2 * aircraft.wing_area * CD - thrust

    upper = 100.0
    for _ in range(MAX_BRACKET_DOUBLINGS):
        if excess_drag(upper) >= 0.0:
            break
        upper *= 2.0
    else:
        return float('inf')

    return float(brentq(excess_drag, 0.0, upper, xtol=1e-9))
