"""
Control Surface Model

Maps normalized stick and pedal inputs to body-frame torques. Torques scale
with dynamic pressure relative to a reference condition (100 m/s at sea
level), so surfaces lose authority at low speed. Angular damping stands in
for aerodynamic resistance to rotation and keeps high-deflection maneuvers
numerically stable.

Axis order matches the body frame and the inertia vector:
    X - roll  (aileron)
    Y - yaw   (rudder)
    Z - pitch (elevator)
"""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple

from .state import ControlInputs
from .environment import ISA_RHO0


@dataclass(frozen=True)
class ControlSurfaceModel:
    """Per-axis control authority and rate damping."""

    # Torque at full deflection and reference dynamic pressure (N·m)
    elevator_effect: float = 60000.0
    aileron_effect: float = 45000.0
    rudder_effect: float = 15000.0

    # Torque per unit angular rate opposing rotation (N·m·s/rad)
    damping_gain: float = 1000.0

    # Calibration airspeed at sea-level density (m/s)
    reference_airspeed: float = 100.0

    def __post_init__(self):
        if self.reference_airspeed <= 0:
            raise ValueError(f"reference_airspeed must be > 0, got {self.reference_airspeed}")
        if self.damping_gain < 0:
            raise ValueError(f"damping_gain must be >= 0, got {self.damping_gain}")

    @property
    def reference_dynamic_pressure(self) -> float:
        """qRef = 0.5 * rho0 * V_ref² (Pa)."""
        return 0.5 * ISA_RHO0 * self.reference_airspeed**2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_control_torque(
    controls: ControlInputs,
    dynamic_pressure: float,
    angular_velocity: np.ndarray,
    control_effectiveness: float,
    model: ControlSurfaceModel = ControlSurfaceModel()
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute control and damping torques in body frame.

    Args:
        controls: Normalized surface deflections in [-1, 1]
        dynamic_pressure: Current q (Pa)
        angular_velocity: Body rates [roll, yaw, pitch] (rad/s)
        control_effectiveness: Aircraft-level authority multiplier
        model: Per-axis constants

    Returns:
        (control_torque, damping_torque), each [roll, yaw, pitch] in N·m
    """
    scale = (dynamic_pressure / model.reference_dynamic_pressure) * control_effectiveness

    control_torque = np.array([
        controls.aileron * model.aileron_effect * scale,
        controls.rudder * model.rudder_effect * scale,
        controls.elevator * model.elevator_effect * scale
    ])

    damping_torque = -model.damping_gain * np.asarray(angular_velocity, dtype=np.float64)

    return control_torque, damping_torque
