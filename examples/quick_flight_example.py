#!/usr/bin/env python3
"""
Quick Flight Example

Demonstrates the flight model in minimal code: trim, a scripted pull-up
with the throttle back, recovery, and export of the recorded history.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
from flightsim import (
    AircraftParameters,
    ControlInputs,
    EnvironmentParameters,
    FlightDynamics,
    TrimCondition,
    compute_trim,
    export_history_csv,
    load_session_config,
)


def pull_up_schedule(trim_thrust):
    """Elevator and thrust as a function of time."""
    def schedule(state, t):
        if t < 5.0:
            return ControlInputs(thrust_percent=trim_thrust)
        if t < 15.0:
            return ControlInputs(elevator=1.0, thrust_percent=0.0)
        return ControlInputs(elevator=-0.2, thrust_percent=100.0)
    return schedule


def main():
    print("="*70)
    print("QUICK FLIGHT EXAMPLE")
    print("="*70)

    session_file = Path(__file__).parent / "session.yaml"
    if session_file.exists():
        aircraft, environment, sim_config = load_session_config(str(session_file))
        print(f"\nLoaded session: {session_file.name}")
    else:
        aircraft, environment = AircraftParameters(), EnvironmentParameters()
        sim_config = None

    # Step 1: Trim
    print("\n[1/3] Trimming for level flight at 200 m/s...")
    trim = compute_trim(TrimCondition(airspeed=200.0), aircraft, sim_config=sim_config)
    print(f"  {trim.message}")
    print(f"  Pitch:  {np.degrees(trim.pitch):.2f}°")
    print(f"  Thrust: {trim.controls.thrust_percent:.1f}%")

    # Step 2: Fly the maneuver
    print("\n[2/3] Flying pull-up and recovery (30 s)...")
    sim = FlightDynamics(aircraft, environment, sim_config, seed=1)
    sim.reset(trim.state if trim.success else None)
    history = sim.run(30.0, dt=0.02,
                      control_callback=pull_up_schedule(trim.controls.thrust_percent))

    stalled = [r['time'] for r in history if r['stalled']]
    peak = max(r['position'][1] for r in history)
    print(f"  Peak altitude: {peak:.0f} m")
    if stalled:
        print(f"  Stalled from t={stalled[0]:.1f}s to t={stalled[-1]:.1f}s")
    else:
        print("  No stall")
    print(f"  Final: {sim.get_diagnostic_string()}")

    # Step 3: Export
    print("\n[3/3] Exporting...")
    output_dir = Path(__file__).parent / "flight_output"
    output_dir.mkdir(exist_ok=True)

    export_history_csv(history, str(output_dir / "pull_up.csv"),
                       metadata={'aircraft': aircraft.name, 'seed': 1})
    print(f"  Saved CSV to: {output_dir / 'pull_up.csv'}")

    import matplotlib
    matplotlib.use('Agg')  # Non-interactive backend
    import matplotlib.pyplot as plt
    from flightsim.plotting import plot_time_history

    fig = plot_time_history(history, title="Pull-up and Recovery",
                            save_path=str(output_dir / "pull_up.png"))
    plt.close(fig)
    print(f"  Saved plot to: {output_dir / 'pull_up.png'}")

    print()


if __name__ == "__main__":
    main()
