"""
Fixed-Wing Jet Flight Model

A real-time flight dynamics core: thrust, lift/drag with stall, gravity,
wind/turbulence and pilot inputs, advanced step by step against a variable
frame delta and published as read-only snapshots for a renderer or HUD.
"""

__version__ = "0.3.0"

# Core simulation modules
from .frames import Quaternion, vec3, normalize, attitude
from .aircraft import AircraftParameters
from .environment import EnvironmentParameters, WindModel, air_density, make_rng
from .state import (
    FlightState,
    ControlInputs,
    AeroState,
    ForcesAndMoments,
    FlightSnapshot,
    ContactState,
)
from .aerodynamics import StallModel, compute_aerodynamics, estimate_angle_of_attack
from .controls import ControlSurfaceModel, compute_control_torque
from .ground import GroundContactModel, resolve_ground_contact
from .dynamics import (
    FlightDynamics,
    SimulationConfig,
    NonFiniteStateWarning,
    THRUST_STEP,
    euler_step,
    compute_forces_and_torques,
    load_session_config,
)

# Analysis modules
from .trim import TrimCondition, TrimResult, compute_trim, equilibrium_airspeed
from .data_export import history_to_dataframe, export_history_csv, export_json
