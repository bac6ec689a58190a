"""
Coordinate Frames, Vectors and Quaternions

Reference frames used throughout the simulator:
- World: Y up (altitude above the ground plane), X/Z span the ground plane
- Body: X forward (nose), Y up (canopy), Z right (starboard wing)

Vectors are plain numpy float64 arrays of length 3. Orientation is a unit
quaternion rotating body-frame vectors into the world frame.

Convention: quaternion q = [w, x, y, z] where w is the scalar part
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass


# Below this magnitude a vector has no usable direction
NORMALIZE_EPSILON = 1e-12


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    """Build a world or body vector."""
    return np.array([x, y, z], dtype=np.float64)


def norm(v: np.ndarray) -> float:
    """Euclidean length of a vector."""
    return float(np.sqrt(np.dot(v, v)))


def normalize(v: np.ndarray) -> np.ndarray:
    """
    Return the unit vector along v.

    A zero-length vector is returned unchanged (all zeros) instead of
    producing NaN components.
    """
    length = norm(v)
    if length < NORMALIZE_EPSILON:
        return np.zeros(3)
    return np.asarray(v, dtype=np.float64) / length


@dataclass(frozen=True)
class Quaternion:
    """
    Quaternion for attitude representation.
    q = w + xi + yj + zk, stored as [w, x, y, z]

    Represents rotation from Body frame to World frame. Instances are
    immutable; every operation returns a new quaternion.
    """
    w: float = 1.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def identity(cls) -> 'Quaternion':
        """Wings level, nose along world +X."""
        return cls(1.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_axis_angle(cls, axis: np.ndarray, angle: float) -> 'Quaternion':
        """
        Rotation of `angle` radians about `axis`.

        The axis is normalized here; a zero axis yields the identity.
        """
        unit = normalize(axis)
        if not unit.any():
            return cls.identity()
        half = 0.5 * angle
        s = np.sin(half)
        return cls(float(np.cos(half)), float(unit[0] * s), float(unit[1] * s), float(unit[2] * s))

    @classmethod
    def from_euler(cls, roll: float, pitch: float, heading: float) -> 'Quaternion':
        """
        Create an orientation from roll, pitch and heading.

        Rotations are applied heading (about world Y), then pitch (about
        body Z, nose up positive), then roll (about body X, right wing
        down positive).

        Args:
            roll: Bank angle (rad)
            pitch: Nose elevation above the horizon (rad)
            heading: Rotation of the nose about the vertical (rad),
                     positive from +X toward -Z
        """
        q_heading = cls.from_axis_angle(vec3(0.0, 1.0, 0.0), heading)
        q_pitch = cls.from_axis_angle(vec3(0.0, 0.0, 1.0), pitch)
        q_roll = cls.from_axis_angle(vec3(1.0, 0.0, 0.0), roll)
        return (q_heading * q_pitch * q_roll).normalized()

    @classmethod
    def from_array(cls, arr: np.ndarray) -> 'Quaternion':
        """Create quaternion from numpy array [w, x, y, z]."""
        return cls(float(arr[0]), float(arr[1]), float(arr[2]), float(arr[3]))

    def to_array(self) -> np.ndarray:
        """Return quaternion as numpy array [w, x, y, z]."""
        return np.array([self.w, self.x, self.y, self.z])

    @property
    def norm(self) -> float:
        """Quaternion magnitude (1 for a valid orientation)."""
        return float(np.sqrt(self.w**2 + self.x**2 + self.y**2 + self.z**2))

    def normalized(self) -> 'Quaternion':
        """Return the unit quaternion with the same rotation."""
        n = self.norm
        if n < NORMALIZE_EPSILON:
            return Quaternion.identity()
        return Quaternion(self.w / n, self.x / n, self.y / n, self.z / n)

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.to_array())))

    def to_dcm(self) -> np.ndarray:
        """
        Convert to Direction Cosine Matrix (rotation matrix).

        Returns:
            3x3 rotation matrix R_body_to_world
            v_world = R @ v_body
        """
        w, x, y, z = self.w, self.x, self.y, self.z

        return np.array([
            [1 - 2*(y**2 + z**2),     2*(x*y - w*z),     2*(x*z + w*y)],
            [    2*(x*y + w*z), 1 - 2*(x**2 + z**2),     2*(y*z - w*x)],
            [    2*(x*z - w*y),     2*(y*z + w*x), 1 - 2*(x**2 + y**2)]
        ])

    def conjugate(self) -> 'Quaternion':
        """Return conjugate (inverse for unit quaternions)."""
        return Quaternion(self.w, -self.x, -self.y, -self.z)

    def __mul__(self, other: 'Quaternion') -> 'Quaternion':
        """Quaternion multiplication (Hamilton product)."""
        w1, x1, y1, z1 = self.w, self.x, self.y, self.z
        w2, x2, y2, z2 = other.w, other.x, other.y, other.z

        return Quaternion(
            w1*w2 - x1*x2 - y1*y2 - z1*z2,
            w1*x2 + x1*w2 + y1*z2 - z1*y2,
            w1*y2 - x1*z2 + y1*w2 + z1*x2,
            w1*z2 + x1*y2 - y1*x2 + z1*w2
        )

    def rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """
        Rotate a vector from body frame to world frame.

        Args:
            v: 3D vector in body frame

        Returns:
            3D vector in world frame
        """
        return self.to_dcm() @ np.asarray(v, dtype=np.float64)

    def inverse_rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """
        Rotate a vector from world frame to body frame.

        Args:
            v: 3D vector in world frame

        Returns:
            3D vector in body frame
        """
        return self.to_dcm().T @ np.asarray(v, dtype=np.float64)


def body_forward(q: Quaternion) -> np.ndarray:
    """Nose direction in the world frame."""
    return q.rotate_vector(vec3(1.0, 0.0, 0.0))


def body_up(q: Quaternion) -> np.ndarray:
    """Canopy direction in the world frame (lift acts along this axis)."""
    return q.rotate_vector(vec3(0.0, 1.0, 0.0))


def body_right(q: Quaternion) -> np.ndarray:
    """Starboard wing direction in the world frame."""
    return q.rotate_vector(vec3(0.0, 0.0, 1.0))


def integrate_orientation(q: Quaternion, omega_body: np.ndarray, dt: float,
                          epsilon: float = 1e-6) -> Quaternion:
    """
    Advance an orientation by a body-frame angular velocity over dt.

    The increment is built from the axis-angle of omega*dt and composed on
    the body side (q * dq) since omega is expressed in body axes. The
    result is re-normalized to remove accumulated floating-point drift.

    Args:
        q: Current orientation (body to world)
        omega_body: Angular velocity in body frame (rad/s)
        dt: Timestep (s)
        epsilon: Rates at or below this magnitude leave q unchanged

    Returns:
        New unit quaternion
    """
    rate = norm(omega_body)
    if rate <= epsilon:
        return q
    dq = Quaternion.from_axis_angle(omega_body / rate, rate * dt)
    return (q * dq).normalized()


def attitude(q: Quaternion) -> Tuple[float, float, float]:
    """
    Extract roll, pitch and heading from an orientation.

    Returns:
        (roll, pitch, heading) in radians. Heading is in [0, 2*pi), measured
        from world +X toward -Z, matching Quaternion.from_euler.

    Note: Roll is ill-defined at pitch = ±90°.
    """
    forward = body_forward(q)
    up = body_up(q)
    right = body_right(q)

    pitch = float(np.arcsin(np.clip(forward[1], -1.0, 1.0)))
    heading = float(np.arctan2(-forward[2], forward[0]) % (2 * np.pi))
    roll = float(np.arctan2(-right[1], up[1]))

    return roll, pitch, heading
