"""
Aircraft Parameters

Defines the physical properties of the simulated jet:
- Mass and per-axis inertia
- Wing reference dimensions
- Lift curve and drag polar coefficients
- Maximum thrust and control authority

Parameters are immutable for the duration of a session; a tuning surface
swaps in a whole new instance (see FlightDynamics.set_parameters).
"""

import numpy as np
import yaml
from dataclasses import dataclass, replace
from typing import Dict, Any, Tuple


# Oswald-like span efficiency reproducing k = 1.2 / (pi * AR)
DEFAULT_OSWALD_EFFICIENCY = 1.0 / 1.2


@dataclass(frozen=True)
class AircraftParameters:
    """
    Complete aircraft configuration.

    Inertia is a diagonal approximation: three independent per-axis values
    ordered (roll, yaw, pitch) to match body axes (X, Y, Z). Cross-coupling
    products of inertia are intentionally absent.
    """

    name: str = "Generic Jet Fighter"

    # Mass (kg)
    mass: float = 15000.0

    # Reference dimensions
    wing_area: float = 78.04    # S (m²)
    wing_span: float = 13.56    # b (m)

    # Lift curve: CL = CL0 + CLalpha * alpha
    CL0: float = 0.2
    CLalpha: float = 5.7        # per rad

    # Drag polar: CD = CD0 + k * CL²
    CD0: float = 0.02
    oswald_efficiency: float = DEFAULT_OSWALD_EFFICIENCY

    # Propulsion (N)
    max_thrust: float = 312000.0

    # Control torque multiplier (dimensionless)
    control_effectiveness: float = 1.0

    # Moments of inertia about body X, Y, Z (kg·m²)
    inertia: Tuple[float, float, float] = (10000.0, 20000.0, 30000.0)

    def __post_init__(self):
        # Normalize inertia to a float tuple so the instance stays hashable
        object.__setattr__(self, 'inertia', tuple(float(i) for i in self.inertia))

        for attr in ('mass', 'wing_area', 'wing_span', 'max_thrust', 'oswald_efficiency'):
            value = getattr(self, attr)
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"{attr} must be a positive finite number, got {value}")

        if len(self.inertia) != 3:
            raise ValueError(f"inertia must have 3 components, got {len(self.inertia)}")
        if any(not np.isfinite(i) or i <= 0 for i in self.inertia):
            raise ValueError(f"inertia components must be positive, got {self.inertia}")

        if not np.isfinite(self.control_effectiveness) or self.control_effectiveness < 0:
            raise ValueError(
                f"control_effectiveness must be >= 0, got {self.control_effectiveness}"
            )

        if not np.all(np.isfinite([self.CL0, self.CLalpha, self.CD0])):
            raise ValueError("Aerodynamic coefficients must be finite")
        if self.CD0 < 0:
            raise ValueError(f"CD0 must be >= 0, got {self.CD0}")

    @property
    def aspect_ratio(self) -> float:
        """AR = b² / S."""
        return self.wing_span**2 / self.wing_area

    @property
    def induced_drag_factor(self) -> float:
        """k = 1 / (pi * e * AR)."""
        return 1.0 / (np.pi * self.oswald_efficiency * self.aspect_ratio)

    @property
    def inertia_vector(self) -> np.ndarray:
        """Per-axis inertia as a numpy array [Ixx, Iyy, Izz]."""
        return np.array(self.inertia, dtype=np.float64)

    def with_updates(self, **changes) -> 'AircraftParameters':
        """Return a validated copy with some fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_yaml(cls, filepath: str) -> 'AircraftParameters':
        """Load aircraft configuration from YAML file."""
        with open(filepath, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AircraftParameters':
        """Create config from dictionary. Missing keys keep their defaults."""
        defaults = cls()
        aero = data.get('aerodynamics', {})

        return cls(
            name=data.get('name', defaults.name),
            mass=data.get('mass', defaults.mass),
            wing_area=data.get('wing_area', defaults.wing_area),
            wing_span=data.get('wing_span', defaults.wing_span),
            CL0=aero.get('CL0', defaults.CL0),
            CLalpha=aero.get('CLalpha', defaults.CLalpha),
            CD0=aero.get('CD0', defaults.CD0),
            oswald_efficiency=aero.get('oswald_efficiency', defaults.oswald_efficiency),
            max_thrust=data.get('max_thrust', defaults.max_thrust),
            control_effectiveness=data.get('control_effectiveness',
                                           defaults.control_effectiveness),
            inertia=tuple(data.get('inertia', defaults.inertia))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            'name': self.name,
            'mass': self.mass,
            'wing_area': self.wing_area,
            'wing_span': self.wing_span,
            'aerodynamics': {
                'CL0': self.CL0,
                'CLalpha': self.CLalpha,
                'CD0': self.CD0,
                'oswald_efficiency': self.oswald_efficiency,
            },
            'max_thrust': self.max_thrust,
            'control_effectiveness': self.control_effectiveness,
            'inertia': list(self.inertia),
        }

    def save_yaml(self, filepath: str):
        """Save configuration to YAML file."""
        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)
