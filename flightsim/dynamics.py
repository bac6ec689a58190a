"""
Rigid Body Dynamics

Advances the flight state one explicit step at a time:
- Force accumulation (thrust, drag, lift, weight) in the world frame
- Translational update (semi-implicit Euler)
- Torque accumulation and per-axis angular update (diagonal inertia)
- Orientation update from body rates, re-normalized every step
- Ground plane contact

`euler_step` is a pure function of its inputs; `FlightDynamics` wraps it
into a session that owns the state, accepts inputs between steps and
publishes read-only snapshots.
"""

import logging
import threading
import warnings
import numpy as np
import yaml
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .state import (
    FlightState,
    ControlInputs,
    ForcesAndMoments,
    FlightSnapshot,
    ContactState,
)
from .aircraft import AircraftParameters
from .environment import (
    EnvironmentParameters,
    WindModel,
    air_density,
    relative_wind,
    make_rng,
)
from .aerodynamics import StallModel, compute_aerodynamics
from .controls import ControlSurfaceModel, compute_control_torque
from .ground import GroundContactModel, resolve_ground_contact
from .frames import (
    vec3,
    norm,
    body_forward,
    body_up,
    integrate_orientation,
)


logger = logging.getLogger(__name__)


# Relative wind below this magnitude gives no usable drag direction (m/s)
MIN_DRAG_AIRSPEED = 1e-3

# Thrust lever step of the original keyboard/button surface (%)
THRUST_STEP = 5.0


class NonFiniteStateWarning(RuntimeWarning):
    """A step produced NaN/Inf values and was discarded."""


@dataclass
class SimulationConfig:
    """Simulation parameters and tunable model constants."""

    # Largest timestep accepted per call; longer frame hitches are clamped (s)
    max_dt: float = 0.05

    # Below this body rate the orientation is left unchanged (rad/s)
    angular_rate_epsilon: float = 1e-6

    stall: StallModel = field(default_factory=StallModel)
    control_surfaces: ControlSurfaceModel = field(default_factory=ControlSurfaceModel)
    ground: GroundContactModel = field(default_factory=GroundContactModel)

    def __post_init__(self):
        if self.max_dt <= 0:
            raise ValueError(f"max_dt must be > 0, got {self.max_dt}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationConfig':
        """Create config from dictionary."""
        stall = data.get('stall', {})
        surfaces = data.get('control_surfaces', {})
        ground = data.get('ground', {})

        if 'angle_deg' in stall:
            stall = dict(stall)
            stall['angle'] = float(np.radians(stall.pop('angle_deg')))

        return cls(
            max_dt=data.get('max_dt', 0.05),
            angular_rate_epsilon=data.get('angular_rate_epsilon', 1e-6),
            stall=StallModel(**stall),
            control_surfaces=ControlSurfaceModel(**surfaces),
            ground=GroundContactModel(**ground)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_dt': self.max_dt,
            'angular_rate_epsilon': self.angular_rate_epsilon,
            'stall': self.stall.to_dict(),
            'control_surfaces': self.control_surfaces.to_dict(),
            'ground': self.ground.to_dict(),
        }


def load_session_config(
    filepath: str
) -> Tuple[AircraftParameters, EnvironmentParameters, SimulationConfig]:
    """
    Load a complete session configuration from YAML.

    The file may contain `aircraft`, `environment` and `simulation`
    sections; any missing section uses defaults.
    """
    with open(filepath, 'r') as f:
        data = yaml.safe_load(f) or {}

    return (
        AircraftParameters.from_dict(data.get('aircraft', {})),
        EnvironmentParameters.from_dict(data.get('environment', {})),
        SimulationConfig.from_dict(data.get('simulation', {}))
    )


def clamp_dt(dt: float, max_dt: float) -> float:
    """Clamp a frame delta into [0, max_dt]."""
    if dt < 0:
        raise ValueError(f"dt must be >= 0, got {dt}")
    return min(dt, max_dt)


def compute_forces_and_torques(
    state: FlightState,
    controls: ControlInputs,
    aircraft: AircraftParameters,
    environment: EnvironmentParameters,
    wind: np.ndarray,
    config: SimulationConfig
) -> ForcesAndMoments:
    """
    Compute all forces and torques acting on the aircraft.

    This is the core physics function. The wind sample is passed in so the
    caller controls when turbulence is drawn.

    Args:
        state: Current aircraft state
        controls: Control inputs for this step (already clipped)
        aircraft: Aircraft configuration
        environment: Environment parameters (gravity)
        wind: Disturbed wind vector in world frame (m/s)
        config: Simulation settings

    Returns:
        ForcesAndMoments with totals and components
    """
    rho = air_density(state.altitude)
    aero = compute_aerodynamics(state, aircraft, rho, config.stall)

    rel_wind = relative_wind(wind, state.velocity)
    airspeed = norm(rel_wind)

    # === THRUST ===
    thrust = controls.thrust_percent / 100.0 * aircraft.max_thrust
    thrust_force = body_forward(state.orientation) * thrust

    # === DRAG ===
    # Opposes the aircraft's motion through the air, i.e. along the relative wind
    if airspeed > MIN_DRAG_AIRSPEED:
        drag_force = (rel_wind / airspeed) * aero.drag
    else:
        drag_force = np.zeros(3)

    # === LIFT ===
    lift_force = body_up(state.orientation) * aero.lift

    # === GRAVITY ===
    weight = vec3(0.0, -aircraft.mass * environment.gravity, 0.0)

    total_force = thrust_force + drag_force + lift_force + weight

    # === TORQUES ===
    control_torque, damping_torque = compute_control_torque(
        controls,
        aero.dynamic_pressure,
        state.angular_velocity,
        aircraft.control_effectiveness,
        config.control_surfaces
    )

    return ForcesAndMoments(
        force=total_force,
        torque=control_torque + damping_torque,
        thrust_force=thrust_force,
        drag_force=drag_force,
        lift_force=lift_force,
        weight=weight,
        control_torque=control_torque,
        damping_torque=damping_torque,
        wind=wind,
        relative_wind=rel_wind,
        airspeed=airspeed,
        thrust=thrust,
        aero=aero
    )


def euler_step(
    state: FlightState,
    controls: ControlInputs,
    aircraft: AircraftParameters,
    environment: EnvironmentParameters,
    dt: float,
    rng: Optional[np.random.Generator] = None,
    config: Optional[SimulationConfig] = None
) -> Tuple[FlightState, ForcesAndMoments, ContactState]:
    """
    Perform one semi-implicit Euler integration step.

    Args:
        state: Current state (not modified)
        controls: Control inputs, treated as fixed for the whole step
        aircraft: Aircraft configuration
        environment: Wind and gravity
        dt: Frame delta (s), clamped to config.max_dt
        rng: Turbulence source (unseeded if None)
        config: Simulation settings

    Returns:
        (new_state, forces_and_moments at start of step, contact_state)
    """
    config = config or SimulationConfig()
    dt = clamp_dt(dt, config.max_dt)
    controls = controls.clip()

    wind = WindModel(environment, rng).sample()
    fm = compute_forces_and_torques(state, controls, aircraft, environment, wind, config)

    # --- Translational dynamics ---
    # Velocity first, then position with the updated velocity
    acceleration = fm.force / aircraft.mass
    velocity = state.velocity + acceleration * dt
    position = state.position + velocity * dt

    # --- Rotational dynamics ---
    # Diagonal inertia: each axis is independent, no gyroscopic coupling
    angular_acceleration = fm.torque / aircraft.inertia_vector
    angular_velocity = state.angular_velocity + angular_acceleration * dt

    orientation = integrate_orientation(
        state.orientation, angular_velocity, dt, config.angular_rate_epsilon
    )

    # --- Ground plane ---
    position, velocity, contact = resolve_ground_contact(position, velocity, config.ground)

    new_state = FlightState(
        position=position,
        velocity=velocity,
        orientation=orientation,
        angular_velocity=angular_velocity,
        thrust_percent=controls.thrust_percent,
        elevator=controls.elevator,
        aileron=controls.aileron,
        rudder=controls.rudder,
        time=state.time + dt
    )

    return new_state, fm, contact


class FlightDynamics:
    """
    Main flight dynamics simulation engine.

    Owns the flight state for one session and provides the input surface
    (control inputs, thrust, parameter hot-swap) and the step/run interface.
    Inputs and parameters may be written from another thread; each step
    copies them once at its start and uses that copy throughout.
    """

    def __init__(
        self,
        aircraft: Optional[AircraftParameters] = None,
        environment: Optional[EnvironmentParameters] = None,
        sim_config: Optional[SimulationConfig] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None
    ):
        self.aircraft = aircraft or AircraftParameters()
        self.environment = environment or EnvironmentParameters()
        self.sim_config = sim_config or SimulationConfig()
        self.rng = rng if rng is not None else make_rng(seed)

        self._lock = threading.Lock()

        # Current state
        self.state = FlightState()

        # Pending controls, applied at the start of the next step
        self.controls = self.state.controls

        # Latest forces/moments (for debugging)
        self.forces_moments = ForcesAndMoments()
        self.contact = ContactState.AIRBORNE
        self._snapshot = self._initial_snapshot(self.state, self.contact)

        # Count of rejected (non-finite) steps
        self.rejected_steps = 0

        # History (optional, for analysis)
        self.history: List[Dict[str, Any]] = []
        self.record_history = False

    def reset(self, initial_state: Optional[FlightState] = None):
        """Reset simulation to initial conditions."""
        if initial_state is not None:
            state = initial_state.copy()
        else:
            # Default: straight and level at 2000 ft, 240 kt, 50 % thrust
            state = FlightState()

        if not state.is_finite():
            raise ValueError("Initial state must be finite")

        with self._lock:
            self.state = state
            self.controls = state.controls.clip()

        self.forces_moments = ForcesAndMoments()
        self.contact = ContactState.GROUNDED if state.altitude <= 0.0 else ContactState.AIRBORNE
        self._snapshot = self._initial_snapshot(state, self.contact)
        self.rejected_steps = 0
        self.history = []

    def _initial_snapshot(self, state: FlightState, contact: ContactState) -> FlightSnapshot:
        """Snapshot of a state that has not been stepped yet, without turbulence."""
        aero = compute_aerodynamics(
            state, self.aircraft, air_density(state.altitude), self.sim_config.stall
        )
        wind = WindModel(self.environment, self.rng).steady_wind()
        return FlightSnapshot.capture(state, aero, norm(relative_wind(wind, state.velocity)),
                                     contact)

    # === INPUT SURFACE ===

    def set_control_inputs(self, elevator: float, aileron: float, rudder: float):
        """Set stick and pedal deflections, each clipped to [-1, 1]."""
        with self._lock:
            self.controls = ControlInputs(
                elevator=elevator,
                aileron=aileron,
                rudder=rudder,
                thrust_percent=self.controls.thrust_percent
            ).clip()

    def adjust_thrust(self, delta: float) -> float:
        """
        Move the thrust lever by delta percent, clamped to [0, 100].

        Returns:
            New thrust setting (%)
        """
        with self._lock:
            return self._set_thrust_locked(self.controls.thrust_percent + delta)

    def set_thrust(self, percent: float) -> float:
        """Set the thrust lever directly, clamped to [0, 100]."""
        with self._lock:
            return self._set_thrust_locked(percent)

    def _set_thrust_locked(self, percent: float) -> float:
        thrust = float(np.clip(percent, 0.0, 100.0))
        self.controls = ControlInputs(
            elevator=self.controls.elevator,
            aileron=self.controls.aileron,
            rudder=self.controls.rudder,
            thrust_percent=thrust
        )
        return thrust

    def set_parameters(self, params: Union[AircraftParameters, EnvironmentParameters]):
        """
        Replace aircraft or environment parameters between steps.

        The flight state is kept; the next step uses the new parameters.
        """
        with self._lock:
            if isinstance(params, AircraftParameters):
                self.aircraft = params
            elif isinstance(params, EnvironmentParameters):
                self.environment = params
            else:
                raise TypeError(
                    f"Expected AircraftParameters or EnvironmentParameters, "
                    f"got {type(params).__name__}"
                )
        logger.debug("Parameters replaced: %s", type(params).__name__)

    # === STEPPING ===

    def step(self, dt: float, controls: Optional[ControlInputs] = None) -> FlightSnapshot:
        """
        Advance simulation by one frame.

        Args:
            dt: Real-time frame delta (s), clamped to sim_config.max_dt
            controls: Control inputs (uses the pending inputs if None)

        Returns:
            Read-only snapshot of the new state. If the step produced
            non-finite values, the previous state is kept and the snapshot
            is marked invalid.
        """
        if controls is not None:
            with self._lock:
                self.controls = controls.clip()

        # Copy-on-read: everything this step needs, taken once
        with self._lock:
            state = self.state
            step_controls = self.controls
            aircraft = self.aircraft
            environment = self.environment

        new_state, fm, contact = euler_step(
            state,
            step_controls,
            aircraft,
            environment,
            dt,
            self.rng,
            self.sim_config
        )

        if not (new_state.is_finite() and fm.is_finite()):
            self.rejected_steps += 1
            message = (
                f"Non-finite state at t={state.time:.3f}s; "
                f"keeping last valid state"
            )
            logger.warning(message)
            warnings.warn(message, NonFiniteStateWarning, stacklevel=2)

            last = self._snapshot
            self._snapshot = FlightSnapshot.capture(
                state, last.aerodynamics, last.airspeed, last.contact, valid=False
            )
            return self._snapshot

        with self._lock:
            self.state = new_state

        self.forces_moments = fm
        self.contact = contact
        self._snapshot = FlightSnapshot.capture(new_state, fm.aero, fm.airspeed, contact)

        if self.record_history:
            self.history.append(self._history_record())

        return self._snapshot

    def snapshot(self) -> FlightSnapshot:
        """Most recent read-only snapshot."""
        return self._snapshot

    def _history_record(self) -> Dict[str, Any]:
        s = self.state
        fm = self.forces_moments
        aero = fm.aero
        return {
            'time': s.time,
            'position': s.position.copy(),
            'velocity': s.velocity.copy(),
            'orientation': s.orientation.to_array(),
            'attitude': s.attitude,
            'omega': s.angular_velocity.copy(),
            'airspeed': fm.airspeed,
            'alpha': aero.angle_of_attack,
            'dynamic_pressure': aero.dynamic_pressure,
            'CL': aero.CL,
            'CD': aero.CD,
            'lift': aero.lift,
            'drag': aero.drag,
            'stalled': aero.stalled,
            'forces': fm.force.copy(),
            'torques': fm.torque.copy(),
            'controls': (s.elevator, s.aileron, s.rudder, s.thrust_percent),
            'contact': self.contact.value,
        }

    def run(
        self,
        duration: float,
        dt: Optional[float] = None,
        control_callback: Optional[Callable[[FlightState, float], ControlInputs]] = None
    ) -> list:
        """
        Run simulation for a specified duration at a fixed step.

        Args:
            duration: Simulation duration (s)
            dt: Step size (s), defaults to sim_config.max_dt
            control_callback: Optional function(state, time) -> ControlInputs

        Returns:
            History list of per-step records
        """
        dt = clamp_dt(self.sim_config.max_dt if dt is None else dt, self.sim_config.max_dt)
        if dt <= 0:
            raise ValueError("dt must be > 0 for a timed run")

        self.record_history = True
        steps = int(round(duration / dt))

        try:
            for _ in range(steps):
                controls = None
                if control_callback is not None:
                    controls = control_callback(self.state, self.state.time)

                snapshot = self.step(dt, controls)

                if not snapshot.valid:
                    logger.warning("Stopping run at t=%.3fs after a rejected step",
                                   self.state.time)
                    break
        finally:
            self.record_history = False

        return self.history

    def get_diagnostic_string(self) -> str:
        """Get formatted diagnostic output for debugging."""
        snap = self._snapshot
        aero = snap.aerodynamics
        roll, pitch, heading = snap.attitude_deg

        status = ""
        if not snap.valid:
            status = " | INVALID STEP"
        elif aero.stalled:
            status = " | STALL"
        elif snap.contact is ContactState.GROUNDED:
            status = " | ON GROUND"

        return (
            f"t={snap.time:.2f}s | "
            f"Alt={snap.altitude:.1f}m | "
            f"V={snap.speed:.1f}m/s | "
            f"α={np.degrees(aero.angle_of_attack):.1f}° | "
            f"φ={roll:.1f}° θ={pitch:.1f}° ψ={heading:.1f}° | "
            f"T={snap.thrust_percent:.0f}%"
            f"{status}"
        )
