"""
Aircraft State Representation

The state vector contains 13 states for the rigid body:
- Position (3): world frame, Y = altitude above the ground plane
- Velocity (3): world frame
- Attitude (4): Quaternion (w, x, y, z), body to world
- Angular rates (3): body frame (roll, yaw, pitch about X, Y, Z)

Plus the control inputs applied on the step that produced the state, the
per-step aerodynamic results and the read-only snapshot handed to
renderers and HUDs.
"""

import numpy as np
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Tuple

from .frames import Quaternion, attitude, vec3, norm


# Unit conversions for display quantities
MS_TO_KNOTS = 1.94384
M_TO_FEET = 1.0 / 0.3048

# Default scenario: 2000 ft, 240 kt, straight and level
DEFAULT_ALTITUDE = 2000 * 0.3048
DEFAULT_SPEED = 240 * 0.514444
DEFAULT_THRUST_PERCENT = 50.0


class ContactState(Enum):
    """Vertical regime relative to the ground plane."""
    AIRBORNE = "airborne"
    GROUNDED = "grounded"


@dataclass(frozen=True)
class ControlInputs:
    """
    Pilot inputs, written by the input collaborator between steps.

    Surfaces are normalized deflections in [-1, 1]; thrust is a percentage
    of maximum. Sign conventions (body axes):
        - Elevator: positive = nose up (about body Z)
        - Aileron: positive = right wing down (about body X)
        - Rudder: positive = nose left (about body Y)
    """

    elevator: float = 0.0
    aileron: float = 0.0
    rudder: float = 0.0
    thrust_percent: float = DEFAULT_THRUST_PERCENT

    def clip(self) -> 'ControlInputs':
        """
        Return clipped control inputs within limits.

        Returns:
            New ControlInputs with clipped values
        """
        return ControlInputs(
            elevator=float(np.clip(self.elevator, -1.0, 1.0)),
            aileron=float(np.clip(self.aileron, -1.0, 1.0)),
            rudder=float(np.clip(self.rudder, -1.0, 1.0)),
            thrust_percent=float(np.clip(self.thrust_percent, 0.0, 100.0))
        )

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(
            [self.elevator, self.aileron, self.rudder, self.thrust_percent]
        )))


@dataclass
class FlightState:
    """
    Complete rigid-body state of the aircraft.

    All values are in SI units (m, m/s, rad/s). A state is never edited in
    place by the integrator: each step returns a new instance.
    """

    # Position in world frame (m)
    position: np.ndarray = field(default_factory=lambda: vec3(0.0, DEFAULT_ALTITUDE, 0.0))

    # Velocity in world frame (m/s)
    velocity: np.ndarray = field(default_factory=lambda: vec3(DEFAULT_SPEED, 0.0, 0.0))

    # Attitude quaternion (body to world)
    orientation: Quaternion = field(default_factory=Quaternion.identity)

    # Angular velocity in body frame (rad/s) - [roll, yaw, pitch]
    angular_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    # Inputs in effect for the step that produced this state
    thrust_percent: float = DEFAULT_THRUST_PERCENT
    elevator: float = 0.0
    aileron: float = 0.0
    rudder: float = 0.0

    # Time (s)
    time: float = 0.0

    def __post_init__(self):
        """Ensure arrays are numpy arrays."""
        self.position = np.array(self.position, dtype=np.float64)
        self.velocity = np.array(self.velocity, dtype=np.float64)
        self.angular_velocity = np.array(self.angular_velocity, dtype=np.float64)

    @property
    def altitude(self) -> float:
        """Height above the ground plane (m)."""
        return float(self.position[1])

    @property
    def speed(self) -> float:
        """Inertial speed (m/s)."""
        return norm(self.velocity)

    @property
    def climb_rate(self) -> float:
        """Vertical speed, positive up (m/s)."""
        return float(self.velocity[1])

    @property
    def attitude(self) -> Tuple[float, float, float]:
        """(roll, pitch, heading) in radians."""
        return attitude(self.orientation)

    @property
    def controls(self) -> ControlInputs:
        return ControlInputs(
            elevator=self.elevator,
            aileron=self.aileron,
            rudder=self.rudder,
            thrust_percent=self.thrust_percent
        )

    def is_finite(self) -> bool:
        """True when every numeric component is finite."""
        return bool(np.all(np.isfinite(self.to_array())) and np.isfinite(self.time))

    def to_array(self) -> np.ndarray:
        """
        Convert state to flat array.

        Returns:
            17-element array:
            [pos(3), vel(3), quat(4), omega(3), thrust, elevator, aileron, rudder]
        """
        return np.concatenate([
            self.position,
            self.velocity,
            self.orientation.to_array(),
            self.angular_velocity,
            [self.thrust_percent, self.elevator, self.aileron, self.rudder]
        ])

    @classmethod
    def from_array(cls, arr: np.ndarray, time: float = 0.0) -> 'FlightState':
        """
        Create state from flat array.

        Args:
            arr: 13-element array [pos(3), vel(3), quat(4), omega(3)],
                 optionally followed by [thrust, elevator, aileron, rudder]
            time: Current simulation time

        Returns:
            FlightState instance
        """
        arr = np.asarray(arr, dtype=np.float64)
        extras = arr[13:17] if len(arr) >= 17 else [DEFAULT_THRUST_PERCENT, 0.0, 0.0, 0.0]
        return cls(
            position=arr[0:3],
            velocity=arr[3:6],
            orientation=Quaternion.from_array(arr[6:10]),
            angular_velocity=arr[10:13],
            thrust_percent=float(extras[0]),
            elevator=float(extras[1]),
            aileron=float(extras[2]),
            rudder=float(extras[3]),
            time=time
        )

    def copy(self) -> 'FlightState':
        """Create a deep copy of this state."""
        return FlightState(
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            orientation=self.orientation,
            angular_velocity=self.angular_velocity.copy(),
            thrust_percent=self.thrust_percent,
            elevator=self.elevator,
            aileron=self.aileron,
            rudder=self.rudder,
            time=self.time
        )

    @classmethod
    def on_ground(cls, thrust_percent: float = 0.0) -> 'FlightState':
        """Aircraft at rest on the ground plane at the origin."""
        return cls(
            position=np.zeros(3),
            velocity=np.zeros(3),
            thrust_percent=thrust_percent
        )


@dataclass(frozen=True)
class AeroState:
    """Aerodynamic quantities for a single step."""

    # Dynamic pressure (Pa)
    dynamic_pressure: float = 0.0

    # Pitch-plane angle of attack (rad)
    angle_of_attack: float = 0.0

    # Coefficients
    CL: float = 0.0
    CD: float = 0.0

    # Force magnitudes (N); directions are applied by the integrator
    lift: float = 0.0
    drag: float = 0.0

    stalled: bool = False

    # Inputs the coefficients were evaluated at
    speed: float = 0.0
    air_density: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ForcesAndMoments:
    """
    Aggregated forces and torques acting on the aircraft for one step.

    Forces in world frame (N), torques in body frame (N·m).
    """

    # Totals
    force: np.ndarray = field(default_factory=lambda: np.zeros(3))
    torque: np.ndarray = field(default_factory=lambda: np.zeros(3))

    # Individual components for debugging
    thrust_force: np.ndarray = field(default_factory=lambda: np.zeros(3))
    drag_force: np.ndarray = field(default_factory=lambda: np.zeros(3))
    lift_force: np.ndarray = field(default_factory=lambda: np.zeros(3))
    weight: np.ndarray = field(default_factory=lambda: np.zeros(3))
    control_torque: np.ndarray = field(default_factory=lambda: np.zeros(3))
    damping_torque: np.ndarray = field(default_factory=lambda: np.zeros(3))

    # Air data
    wind: np.ndarray = field(default_factory=lambda: np.zeros(3))
    relative_wind: np.ndarray = field(default_factory=lambda: np.zeros(3))
    airspeed: float = 0.0
    thrust: float = 0.0
    aero: AeroState = field(default_factory=AeroState)

    def __post_init__(self):
        """Ensure arrays are numpy arrays."""
        for name in ('force', 'torque', 'thrust_force', 'drag_force', 'lift_force',
                     'weight', 'control_torque', 'damping_torque', 'wind', 'relative_wind'):
            setattr(self, name, np.asarray(getattr(self, name), dtype=np.float64))

    def is_finite(self) -> bool:
        return bool(
            np.all(np.isfinite(self.force))
            and np.all(np.isfinite(self.torque))
            and np.isfinite(self.airspeed)
            and np.isfinite(self.aero.lift)
            and np.isfinite(self.aero.drag)
        )


def _frozen(v: np.ndarray) -> np.ndarray:
    out = np.array(v, dtype=np.float64)
    out.setflags(write=False)
    return out


@dataclass(frozen=True, eq=False)
class FlightSnapshot:
    """
    Read-only view of the simulation after a step.

    This is the only thing handed to renderers and HUDs; arrays are copies
    with the write flag cleared.
    """

    time: float
    position: np.ndarray
    orientation: Quaternion
    velocity: np.ndarray
    angular_velocity: np.ndarray
    aerodynamics: AeroState
    thrust_percent: float
    airspeed: float = 0.0
    contact: ContactState = ContactState.AIRBORNE

    # False when the last step was rejected and this repeats the prior state
    valid: bool = True

    @classmethod
    def capture(cls, state: FlightState, aero: AeroState, airspeed: float = 0.0,
                contact: ContactState = ContactState.AIRBORNE,
                valid: bool = True) -> 'FlightSnapshot':
        return cls(
            time=state.time,
            position=_frozen(state.position),
            orientation=state.orientation,
            velocity=_frozen(state.velocity),
            angular_velocity=_frozen(state.angular_velocity),
            aerodynamics=aero,
            thrust_percent=state.thrust_percent,
            airspeed=airspeed,
            contact=contact,
            valid=valid
        )

    @property
    def altitude(self) -> float:
        return float(self.position[1])

    @property
    def speed(self) -> float:
        return norm(self.velocity)

    @property
    def speed_knots(self) -> float:
        return self.speed * MS_TO_KNOTS

    @property
    def altitude_feet(self) -> float:
        return self.altitude * M_TO_FEET

    @property
    def attitude_deg(self) -> Tuple[float, float, float]:
        """(roll, pitch, heading) in degrees."""
        return tuple(float(np.degrees(a)) for a in attitude(self.orientation))

    def to_dict(self) -> Dict[str, Any]:
        """Plain-Python representation for logging and export."""
        return {
            'time': self.time,
            'position': self.position.tolist(),
            'orientation': self.orientation.to_array().tolist(),
            'velocity': self.velocity.tolist(),
            'angular_velocity': self.angular_velocity.tolist(),
            'aerodynamics': self.aerodynamics.to_dict(),
            'thrust_percent': self.thrust_percent,
            'airspeed': self.airspeed,
            'contact': self.contact.value,
            'valid': self.valid,
        }
