"""
Tests for flight dynamics.

These tests validate the physics implementation building up one effect
at a time:
1. Gravity-only (The Brick)
2. Ground plane contact
3. Gravity + Thrust + Drag (The Rocket)
4. + Torques (The Arrow)
and then the session surface: inputs, parameter swaps, snapshots and
the non-finite step guard.
"""

import threading
from pathlib import Path
import numpy as np
import pytest
from flightsim.state import FlightState, ControlInputs, ContactState
from flightsim.aircraft import AircraftParameters
from flightsim.environment import EnvironmentParameters, air_density
from flightsim.aerodynamics import StallModel
from flightsim.dynamics import (
    FlightDynamics,
    NonFiniteStateWarning,
    SimulationConfig,
    THRUST_STEP,
    clamp_dt,
    compute_forces_and_torques,
    euler_step,
    load_session_config,
)
from flightsim.frames import Quaternion
from flightsim.trim import equilibrium_airspeed


G = 9.80665


def make_sim(aircraft=None, environment=None, sim_config=None, seed=0):
    return FlightDynamics(
        aircraft or AircraftParameters(),
        environment or EnvironmentParameters.calm(),
        sim_config or SimulationConfig(),
        seed=seed
    )


class TestBrick:
    """Phase 1: Gravity-only tests."""

    @pytest.fixture
    def brick_sim(self):
        """Simulation with every aerodynamic effect zeroed."""
        aircraft = AircraftParameters(CL0=0.0, CLalpha=0.0, CD0=0.0)
        config = SimulationConfig(stall=StallModel(drag_penalty=0.0))
        sim = make_sim(aircraft, sim_config=config)
        sim.reset(FlightState(
            position=[0.0, 1000.0, 0.0],
            velocity=np.zeros(3),
            thrust_percent=0.0
        ))
        return sim

    def test_free_fall_acceleration(self, brick_sim):
        """Object in free fall should accelerate at g."""
        for _ in range(100):
            brick_sim.step(0.01)

        # Should have velocity ≈ g*t downward after 1 second
        assert brick_sim.state.velocity[1] == pytest.approx(-G, rel=1e-9)
        assert brick_sim.state.time == pytest.approx(1.0)

    def test_semi_implicit_position(self, brick_sim):
        """Position integrates with the already-updated velocity."""
        for _ in range(100):
            brick_sim.step(0.01)

        expected_drop = G * 0.01**2 * sum(range(1, 101))
        assert brick_sim.state.altitude == pytest.approx(1000.0 - expected_drop)

    def test_no_rotation_without_torque(self, brick_sim):
        for _ in range(50):
            brick_sim.step(0.02)
        np.testing.assert_array_equal(brick_sim.state.angular_velocity, np.zeros(3))
        assert brick_sim.state.orientation == Quaternion.identity()


class TestGround:
    """Phase 2: ground plane behavior."""

    def test_at_rest_stays_at_rest(self):
        sim = make_sim()
        sim.reset(FlightState.on_ground(thrust_percent=0.0))

        for _ in range(200):
            snap = sim.step(0.05)
            assert snap.contact is ContactState.GROUNDED

        assert np.all(np.abs(sim.state.velocity) < 1e-3)
        assert sim.state.altitude == 0.0

    def test_hard_impact_bounces(self):
        sim = make_sim()
        sim.reset(FlightState(position=np.zeros(3), velocity=[0.0, -10.0, 0.0],
                              thrust_percent=0.0))

        snap = sim.step(0.001)

        assert snap.contact is ContactState.GROUNDED
        assert snap.velocity[1] == pytest.approx(1.5, abs=0.01)
        assert snap.altitude == 0.0

    def test_soft_contact_stops_descent(self):
        sim = make_sim()
        sim.reset(FlightState(position=np.zeros(3), velocity=[0.0, -1.0, 0.0],
                              thrust_percent=0.0))

        snap = sim.step(0.001)

        assert snap.velocity[1] == 0.0
        assert snap.altitude == 0.0

    def test_altitude_never_negative(self):
        sim = make_sim(environment=EnvironmentParameters(), seed=5)
        sim.reset(FlightState(position=[0.0, 20.0, 0.0],
                              velocity=[80.0, -30.0, 0.0],
                              orientation=Quaternion.from_euler(0.0, -0.4, 0.0),
                              thrust_percent=0.0))
        for _ in range(400):
            snap = sim.step(0.05)
            assert snap.altitude >= 0.0

    def test_reset_on_ground_reports_grounded(self):
        sim = make_sim()
        sim.reset(FlightState.on_ground())
        assert sim.snapshot().contact is ContactState.GROUNDED


class TestRocket:
    """Phase 3: Gravity + Thrust + Drag."""

    def test_thrust_accelerates_along_nose(self):
        sim = make_sim()
        sim.reset(FlightState.on_ground(thrust_percent=100.0))
        sim.step(0.05)

        fm = sim.forces_moments
        np.testing.assert_array_almost_equal(fm.thrust_force, [312000.0, 0.0, 0.0])
        assert sim.state.velocity[0] == pytest.approx(312000.0 / 15000.0 * 0.05)

    def test_drag_opposes_motion_through_air(self):
        sim = make_sim()
        sim.reset(FlightState(velocity=[150.0, 0.0, 0.0]))
        sim.step(0.01)

        drag = sim.forces_moments.drag_force
        assert drag[0] < 0.0
        assert abs(drag[1]) < 1e-9

    def test_thrust_drag_equilibrium(self):
        """Full-length ground run settles where drag balances thrust."""
        aircraft = AircraftParameters(CL0=0.0)
        sim = make_sim(aircraft)
        sim.reset(FlightState.on_ground(thrust_percent=50.0))

        for _ in range(4000):
            sim.step(0.05)

        thrust = 0.5 * aircraft.max_thrust
        closed_form = np.sqrt(thrust / (0.5 * 1.225 * aircraft.wing_area * aircraft.CD0))
        v_eq = equilibrium_airspeed(aircraft, 50.0)

        assert v_eq == pytest.approx(closed_form, rel=1e-6)
        assert sim.state.velocity[0] == pytest.approx(v_eq, rel=0.01)
        assert sim.state.altitude == 0.0

    def test_gravity_in_world_frame(self):
        env = EnvironmentParameters(wind_speed=0.0, turbulence_intensity=0.0, gravity=3.7)
        fm = compute_forces_and_torques(
            FlightState(orientation=Quaternion.from_euler(0.5, 0.3, 1.0)),
            ControlInputs(), AircraftParameters(), env, np.zeros(3), SimulationConfig()
        )
        np.testing.assert_array_almost_equal(fm.weight, [0.0, -15000.0 * 3.7, 0.0])


class TestArrow:
    """Phase 4: control torques and rotation."""

    def test_elevator_pitches_nose_up(self):
        sim = make_sim()
        sim.reset()
        sim.set_control_inputs(0.5, 0.0, 0.0)
        for _ in range(10):
            sim.step(0.02)

        _, pitch, _ = sim.state.attitude
        assert sim.state.angular_velocity[2] > 0.0
        assert pitch > 0.0

    def test_aileron_rolls(self):
        sim = make_sim()
        sim.reset()
        sim.set_control_inputs(0.0, 0.5, 0.0)
        for _ in range(10):
            sim.step(0.02)
        assert sim.state.angular_velocity[0] > 0.0

    def test_damping_decays_rates(self):
        aircraft = AircraftParameters()
        sim = make_sim(aircraft)
        sim.reset(FlightState(velocity=np.zeros(3), angular_velocity=[0.5, 0.5, 0.5],
                              position=[0.0, 3000.0, 0.0], thrust_percent=0.0))
        for _ in range(100):
            sim.step(0.05)

        # Per-axis time constant is I / damping: 10, 20 and 30 seconds
        rates = sim.state.angular_velocity
        assert np.all(rates < 0.5)
        assert rates[0] < rates[1] < rates[2]

    def test_orientation_stays_normalized(self):
        sim = make_sim(environment=EnvironmentParameters(), seed=3)
        sim.reset()
        rng = np.random.default_rng(99)

        for _ in range(2000):
            e, a, r = rng.uniform(-1.0, 1.0, size=3)
            sim.set_control_inputs(e, a, r)
            snap = sim.step(0.02)
            assert abs(snap.orientation.norm - 1.0) < 1e-5


class TestTimestep:
    """Tests for frame delta handling."""

    def test_clamp_dt(self):
        assert clamp_dt(0.01, 0.05) == 0.01
        assert clamp_dt(1.0, 0.05) == 0.05
        assert clamp_dt(0.0, 0.05) == 0.0

    def test_negative_dt_rejected(self):
        sim = make_sim()
        sim.reset()
        with pytest.raises(ValueError):
            sim.step(-0.01)

    def test_long_frame_equals_max_dt(self):
        a = make_sim(environment=EnvironmentParameters(), seed=17)
        b = make_sim(environment=EnvironmentParameters(), seed=17)
        a.reset()
        b.reset()

        snap_long = a.step(10.0)
        snap_max = b.step(0.05)

        assert snap_long.time == pytest.approx(0.05)
        np.testing.assert_array_equal(snap_long.position, snap_max.position)
        np.testing.assert_array_equal(snap_long.velocity, snap_max.velocity)

    def test_zero_dt_keeps_state(self):
        sim = make_sim()
        sim.reset()
        before = sim.state.copy()
        sim.step(0.0)
        np.testing.assert_array_equal(sim.state.position, before.position)
        np.testing.assert_array_equal(sim.state.velocity, before.velocity)

    def test_euler_step_is_pure(self):
        state = FlightState()
        before = state.to_array()
        euler_step(state, ControlInputs(elevator=1.0), AircraftParameters(),
                   EnvironmentParameters(), 0.05, np.random.default_rng(0))
        np.testing.assert_array_equal(state.to_array(), before)


class TestInputs:
    """Tests for the control and parameter surface."""

    def test_set_control_inputs_clipped(self):
        sim = make_sim()
        sim.set_control_inputs(3.0, -2.0, 0.25)
        assert sim.controls.elevator == 1.0
        assert sim.controls.aileron == -1.0
        assert sim.controls.rudder == 0.25

    def test_adjust_thrust(self):
        sim = make_sim()
        sim.reset()
        assert sim.adjust_thrust(THRUST_STEP) == 55.0
        assert sim.adjust_thrust(-THRUST_STEP) == 50.0
        assert sim.adjust_thrust(500.0) == 100.0
        assert sim.adjust_thrust(-500.0) == 0.0

    def test_thrust_applies_on_next_step(self):
        sim = make_sim()
        sim.reset()
        sim.set_thrust(80.0)
        snap = sim.step(0.01)
        assert snap.thrust_percent == 80.0
        assert sim.forces_moments.thrust == pytest.approx(0.8 * 312000.0)

    def test_set_parameters_hot_swap(self):
        sim = make_sim()
        sim.reset()
        sim.step(0.01)
        position = sim.state.position.copy()

        sim.set_parameters(AircraftParameters(mass=30000.0))
        np.testing.assert_array_equal(sim.state.position, position)

        sim.step(0.01)
        assert sim.forces_moments.weight[1] == pytest.approx(-30000.0 * G)

    def test_set_environment(self):
        sim = make_sim()
        sim.reset()
        sim.set_parameters(EnvironmentParameters(wind_speed=20.0, wind_direction_deg=0.0,
                                                 turbulence_intensity=0.0))
        sim.step(0.01)
        np.testing.assert_array_almost_equal(sim.forces_moments.wind, [-20.0, 0.0, 0.0])

    def test_set_parameters_rejects_other_types(self):
        sim = make_sim()
        with pytest.raises(TypeError):
            sim.set_parameters({'mass': 1.0})

    def test_inputs_from_another_thread(self):
        sim = make_sim(environment=EnvironmentParameters(), seed=2)
        sim.reset()
        stop = threading.Event()

        def pilot():
            rng = np.random.default_rng(1)
            while not stop.is_set():
                sim.set_control_inputs(*rng.uniform(-1.0, 1.0, size=3))
                sim.adjust_thrust(rng.choice([-THRUST_STEP, THRUST_STEP]))

        thread = threading.Thread(target=pilot)
        thread.start()
        try:
            for _ in range(500):
                snap = sim.step(0.02)
                assert snap.valid
                assert 0.0 <= snap.thrust_percent <= 100.0
        finally:
            stop.set()
            thread.join()


class TestSnapshots:
    """Tests for the read-only published state."""

    def test_snapshot_is_read_only(self):
        sim = make_sim()
        sim.reset()
        snap = sim.step(0.02)
        with pytest.raises(ValueError):
            snap.position[1] = 0.0

    def test_snapshot_unaffected_by_later_steps(self):
        sim = make_sim()
        sim.reset()
        snap = sim.step(0.02)
        position = snap.position.copy()
        for _ in range(10):
            sim.step(0.02)
        np.testing.assert_array_equal(snap.position, position)

    def test_default_scenario(self):
        sim = make_sim()
        sim.reset()
        snap = sim.snapshot()
        assert snap.altitude_feet == pytest.approx(2000.0)
        assert snap.speed_knots == pytest.approx(240.0, abs=0.01)
        assert snap.thrust_percent == 50.0

    def test_reset_snapshot_has_air_data(self):
        """Before the first step the snapshot already reports the flight condition."""
        sim = make_sim()
        sim.reset()
        snap = sim.snapshot()
        speed = snap.speed

        assert snap.aerodynamics.dynamic_pressure == pytest.approx(
            0.5 * air_density(snap.altitude) * speed**2)
        assert snap.aerodynamics.CL == pytest.approx(0.2)
        assert snap.aerodynamics.lift > 0.0
        assert snap.airspeed == pytest.approx(speed)

    def test_initial_snapshot_uses_steady_wind(self):
        tailwind = EnvironmentParameters(wind_speed=10.0, wind_direction_deg=180.0,
                                         turbulence_intensity=0.6)
        sim = make_sim(environment=tailwind)
        snap = sim.snapshot()
        assert snap.aerodynamics.dynamic_pressure > 0.0
        assert snap.airspeed == pytest.approx(snap.speed - 10.0)

    def test_diagnostic_string(self):
        sim = make_sim()
        sim.reset()
        sim.step(0.02)
        text = sim.get_diagnostic_string()
        assert "Alt=" in text
        assert "T=50%" in text


class TestNonFiniteGuard:
    """Tests for rejection of NaN/Inf steps."""

    def test_nan_input_rejected(self):
        sim = make_sim()
        sim.reset()
        sim.step(0.02)
        before = sim.state.to_array()

        sim.set_control_inputs(float('nan'), 0.0, 0.0)
        with pytest.warns(NonFiniteStateWarning):
            snap = sim.step(0.02)

        assert not snap.valid
        assert sim.rejected_steps == 1
        np.testing.assert_array_equal(sim.state.to_array(), before)
        np.testing.assert_array_equal(snap.position, before[0:3])

    def test_recovers_after_valid_input(self):
        sim = make_sim()
        sim.reset()
        sim.set_control_inputs(float('nan'), 0.0, 0.0)
        with pytest.warns(NonFiniteStateWarning):
            sim.step(0.02)

        sim.set_control_inputs(0.0, 0.0, 0.0)
        snap = sim.step(0.02)
        assert snap.valid
        assert snap.time == pytest.approx(0.02)

    def test_reset_rejects_non_finite_state(self):
        sim = make_sim()
        with pytest.raises(ValueError):
            sim.reset(FlightState(velocity=[np.inf, 0.0, 0.0]))

    def test_run_stops_on_rejected_step(self):
        sim = make_sim()
        sim.reset()

        def callback(state, time):
            return ControlInputs(elevator=float('nan'))

        with pytest.warns(NonFiniteStateWarning):
            history = sim.run(1.0, dt=0.05, control_callback=callback)
        assert history == []


class TestRun:
    """Tests for fixed-step batch runs."""

    def test_run_records_history(self):
        sim = make_sim()
        sim.reset()
        history = sim.run(1.0, dt=0.05)

        assert len(history) == 20
        assert history[-1]['time'] == pytest.approx(1.0)
        assert history[0]['controls'] == (0.0, 0.0, 0.0, 50.0)
        assert not sim.record_history

    def test_run_with_callback(self):
        sim = make_sim()
        sim.reset()
        history = sim.run(0.5, dt=0.05,
                          control_callback=lambda s, t: ControlInputs(elevator=0.3,
                                                                      thrust_percent=90.0))
        assert history[-1]['controls'][0] == 0.3
        assert history[-1]['controls'][3] == 90.0


class TestSessionConfig:
    """Tests for YAML session loading."""

    def test_load_session_config(self, tmp_path):
        path = tmp_path / "session.yaml"
        path.write_text(
            "aircraft:\n"
            "  name: Heavy Jet\n"
            "  mass: 20000.0\n"
            "  aerodynamics:\n"
            "    CD0: 0.025\n"
            "environment:\n"
            "  wind_speed: 0.0\n"
            "  turbulence_intensity: 0.0\n"
            "simulation:\n"
            "  max_dt: 0.02\n"
            "  stall:\n"
            "    angle_deg: 16.0\n"
            "  ground:\n"
            "    restitution: 0.3\n"
        )

        aircraft, environment, config = load_session_config(str(path))

        assert aircraft.name == "Heavy Jet"
        assert aircraft.mass == 20000.0
        assert aircraft.CD0 == 0.025
        assert environment.wind_speed == 0.0
        assert config.max_dt == 0.02
        assert config.stall.angle == pytest.approx(np.radians(16.0))
        assert config.ground.restitution == 0.3

    def test_empty_session_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        aircraft, environment, config = load_session_config(str(path))
        assert aircraft == AircraftParameters()
        assert environment == EnvironmentParameters()
        assert config.max_dt == 0.05

    def test_example_session_matches_defaults(self):
        path = Path(__file__).parent.parent / "examples" / "session.yaml"
        aircraft, environment, config = load_session_config(str(path))
        assert aircraft == AircraftParameters()
        assert environment == EnvironmentParameters()
        assert config == SimulationConfig()
