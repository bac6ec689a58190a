"""
Ground Contact

Resolves the boundary condition against an infinite flat plane at y = 0.
Only the vertical axis is affected; there is no friction and no geometry
beyond the plane.

Two regimes result: AIRBORNE while above the plane and GROUNDED on
contact. Leaving the ground needs no special handling; it happens as soon
as the vertical velocity turns positive and the position rises above y = 0.
"""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple

from .state import ContactState


@dataclass(frozen=True)
class GroundContactModel:
    """
    Touchdown thresholds.

    The restitution coefficient is an empirically tuned constant, kept
    configurable rather than derived.
    """

    # Descent rate above which contact is a hard impact (m/s)
    hard_impact_speed: float = 8.0

    # Fraction of the descent rate returned as a bounce
    restitution: float = 0.15

    # Vertical speeds below this come to rest on contact (m/s)
    rest_speed: float = 2.0

    def __post_init__(self):
        if self.hard_impact_speed < 0:
            raise ValueError(f"hard_impact_speed must be >= 0, got {self.hard_impact_speed}")
        if not 0.0 <= self.restitution <= 1.0:
            raise ValueError(f"restitution must be in [0, 1], got {self.restitution}")
        if self.rest_speed < 0:
            raise ValueError(f"rest_speed must be >= 0, got {self.rest_speed}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def resolve_ground_contact(
    position: np.ndarray,
    velocity: np.ndarray,
    model: GroundContactModel = GroundContactModel()
) -> Tuple[np.ndarray, np.ndarray, ContactState]:
    """
    Apply the ground plane to an integrated position and velocity.

    - Above the plane: unchanged.
    - Hard impact (descending faster than hard_impact_speed): the vertical
      velocity is reflected with partial restitution.
    - Soft contact: vertical velocity below rest_speed is zeroed.

    In both contact cases the altitude is clamped to 0.

    Args:
        position: World position after integration (m)
        velocity: World velocity after integration (m/s)
        model: Contact thresholds

    Returns:
        (position, velocity, contact_state) as new arrays
    """
    position = np.array(position, dtype=np.float64)
    velocity = np.array(velocity, dtype=np.float64)

    if position[1] > 0.0:
        return position, velocity, ContactState.AIRBORNE

    if velocity[1] < -model.hard_impact_speed:
        velocity[1] *= -model.restitution
    elif abs(velocity[1]) < model.rest_speed:
        velocity[1] = 0.0

    position[1] = 0.0
    return position, velocity, ContactState.GROUNDED
