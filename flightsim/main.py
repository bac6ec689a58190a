"""
Main Entry Point

Run the flight model headless for batch experiments: fly a fixed thrust
setting (or a trimmed condition) for a duration, print a summary and
optionally export the recorded history.
"""

import argparse
import logging
import numpy as np
from typing import Optional

from .aircraft import AircraftParameters
from .environment import EnvironmentParameters
from .dynamics import FlightDynamics, SimulationConfig, load_session_config
from .trim import compute_trim, TrimCondition, equilibrium_airspeed
from .state import FlightState


def run_headless_simulation(
    aircraft: AircraftParameters,
    environment: EnvironmentParameters,
    sim_config: SimulationConfig,
    duration: float = 60.0,
    dt: Optional[float] = None,
    thrust_percent: Optional[float] = None,
    trim_airspeed: Optional[float] = None,
    seed: Optional[int] = None,
    report_interval: float = 10.0
) -> list:
    """Run headless simulation for batch processing."""
    dynamics = FlightDynamics(aircraft, environment, sim_config, seed=seed)

    initial_state = None
    if trim_airspeed is not None:
        print(f"Computing trim for level flight at {trim_airspeed:.1f} m/s...")
        trim_result = compute_trim(TrimCondition(airspeed=trim_airspeed), aircraft,
                                   sim_config=sim_config)
        if trim_result.success:
            print(f"  ✓ Trim successful")
            print(f"    Pitch: {np.degrees(trim_result.pitch):.2f}°")
            print(f"    Thrust: {trim_result.controls.thrust_percent:.1f}%")
            initial_state = trim_result.state
        else:
            print(f"  ✗ Trim failed ({trim_result.message}), using default state")

    dynamics.reset(initial_state)
    if thrust_percent is not None:
        dynamics.set_thrust(thrust_percent)

    step_dt = sim_config.max_dt if dt is None else dt
    report_every = max(1, int(round(report_interval / step_dt)))

    def report(state: FlightState, time: float):
        if int(round(time / step_dt)) % report_every == 0:
            print(f"  {dynamics.get_diagnostic_string()}")
        return None

    print(f"Running {duration}s simulation (dt={step_dt}s)...")
    history = dynamics.run(duration, dt=step_dt, control_callback=report)
    print(f"Simulation complete. {len(history)} data points recorded.")

    if dynamics.rejected_steps:
        print(f"Warning: {dynamics.rejected_steps} step(s) rejected for non-finite values")

    snap = dynamics.snapshot()
    print(f"\nFinal state:")
    print(f"  Time: {snap.time:.1f}s")
    print(f"  Altitude: {snap.altitude:.1f}m ({snap.altitude_feet:.0f} ft)")
    print(f"  Speed: {snap.speed:.1f}m/s ({snap.speed_knots:.0f} kt)")
    print(f"  Thrust: {snap.thrust_percent:.0f}%")

    v_eq = equilibrium_airspeed(aircraft, snap.thrust_percent, snap.altitude)
    print(f"  Drag/thrust equilibrium at this thrust: {v_eq:.1f}m/s")

    return history


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fixed-Wing Jet Flight Model")

    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to session YAML (aircraft, environment, simulation sections)'
    )
    parser.add_argument(
        '--aircraft', '-a',
        type=str,
        help='Path to aircraft configuration YAML (overrides --config aircraft)'
    )
    parser.add_argument(
        '--duration', '-d',
        type=float,
        default=60.0,
        help='Simulation duration (seconds)'
    )
    parser.add_argument(
        '--dt',
        type=float,
        default=None,
        help='Fixed step size (seconds, clamped to max_dt)'
    )
    parser.add_argument(
        '--thrust', '-t',
        type=float,
        default=None,
        help='Thrust setting (%%)'
    )
    parser.add_argument(
        '--trim',
        type=float,
        default=None,
        metavar='AIRSPEED',
        help='Start from level-flight trim at this airspeed (m/s)'
    )
    parser.add_argument(
        '--calm',
        action='store_true',
        help='Disable wind and turbulence'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Turbulence seed for reproducible runs'
    )
    parser.add_argument(
        '--output', '-o',
        type=str,
        help='CSV file for the recorded history'
    )
    parser.add_argument(
        '--json',
        type=str,
        help='JSON file for the recorded history'
    )
    parser.add_argument(
        '--plot',
        type=str,
        help='Image file for a time-history plot'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.config:
        aircraft, environment, sim_config = load_session_config(args.config)
        print(f"Loaded session: {args.config}")
    else:
        aircraft, environment, sim_config = (
            AircraftParameters(), EnvironmentParameters(), SimulationConfig()
        )

    if args.aircraft:
        aircraft = AircraftParameters.from_yaml(args.aircraft)
    print(f"Aircraft: {aircraft.name}")
    print(f"  Mass: {aircraft.mass} kg")
    print(f"  Wing span: {aircraft.wing_span} m")
    print(f"  Wing area: {aircraft.wing_area} m²")
    print(f"  Max thrust: {aircraft.max_thrust} N")

    if args.calm:
        environment = EnvironmentParameters.calm()
    print(f"Wind: {environment.wind_speed} m/s from {environment.wind_direction_deg}°, "
          f"turbulence {environment.turbulence_intensity}")
    print()

    history = run_headless_simulation(
        aircraft,
        environment,
        sim_config,
        duration=args.duration,
        dt=args.dt,
        thrust_percent=args.thrust,
        trim_airspeed=args.trim,
        seed=args.seed
    )

    if history and args.output:
        from .data_export import export_history_csv
        export_history_csv(history, args.output, metadata={'aircraft': aircraft.name})
        print(f"Saved CSV to {args.output}")

    if history and args.json:
        from .data_export import export_json
        export_json(history, args.json, metadata={'aircraft': aircraft.to_dict()})
        print(f"Saved JSON to {args.json}")

    if history and args.plot:
        from .plotting import plot_time_history
        plot_time_history(history, save_path=args.plot)
        print(f"Saved plot to {args.plot}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
