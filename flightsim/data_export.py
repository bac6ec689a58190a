"""
Data Export Module

Export recorded flight history for analysis:
- Flat CSV with unit-suffixed column headers
- JSON for web tools or further processing
"""

import json
import logging
import numpy as np
import pandas as pd
from datetime import datetime
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)


def history_to_dataframe(history: List[Dict]) -> pd.DataFrame:
    """
    Flatten FlightDynamics.run() records into a table.

    Columns:
    - Time (s)
    - Position: x, altitude, z (m)
    - Velocity: world frame (m/s)
    - Attitude: roll, pitch, heading (deg)
    - Body rates: roll, yaw, pitch (deg/s)
    - Airdata: airspeed (m/s), alpha (deg), q_bar (Pa)
    - Aero: CL, CD, lift, drag, stalled
    - Net force (N), net torque (N·m)
    - Controls: elevator, aileron, rudder (normalized), thrust (%)
    """
    if not history:
        raise ValueError("History is empty")

    rows = []

    for record in history:
        roll, pitch, heading = record['attitude']
        rows.append({
            'time_s': record['time'],

            # Position (world frame, Y up)
            'x_m': record['position'][0],
            'altitude_m': record['position'][1],
            'z_m': record['position'][2],

            'vx_m_s': record['velocity'][0],
            'vy_m_s': record['velocity'][1],
            'vz_m_s': record['velocity'][2],

            'roll_deg': np.degrees(roll),
            'pitch_deg': np.degrees(pitch),
            'heading_deg': np.degrees(heading),

            'roll_rate_deg_s': np.degrees(record['omega'][0]),
            'yaw_rate_deg_s': np.degrees(record['omega'][1]),
            'pitch_rate_deg_s': np.degrees(record['omega'][2]),

            'airspeed_m_s': record['airspeed'],
            'alpha_deg': np.degrees(record['alpha']),
            'q_bar_Pa': record['dynamic_pressure'],

            'CL': record['CL'],
            'CD': record['CD'],
            'lift_N': record['lift'],
            'drag_N': record['drag'],
            'stalled': record['stalled'],

            'Fx_N': record['forces'][0],
            'Fy_N': record['forces'][1],
            'Fz_N': record['forces'][2],
            'roll_torque_Nm': record['torques'][0],
            'yaw_torque_Nm': record['torques'][1],
            'pitch_torque_Nm': record['torques'][2],

            'elevator': record['controls'][0],
            'aileron': record['controls'][1],
            'rudder': record['controls'][2],
            'thrust_pct': record['controls'][3],

            'contact': record['contact'],
        })

    return pd.DataFrame(rows)


def export_history_csv(
    history: List[Dict],
    filename: str,
    metadata: Optional[Dict[str, Any]] = None
) -> pd.DataFrame:
    """
    Export flight history to CSV with a commented header.

    Args:
        history: List of state dictionaries from simulation
        filename: Output filename
        metadata: Optional metadata dictionary for header

    Returns:
        The exported table
    """
    df = history_to_dataframe(history)

    with open(filename, 'w') as f:
        f.write("# Flight History\n")
        f.write(f"# Generated: {datetime.now().isoformat()}\n")

        if metadata:
            for key, value in metadata.items():
                f.write(f"# {key}: {value}\n")

        f.write("#\n")
        f.write("# Coordinate Systems:\n")
        f.write("#   Position/velocity: world frame (Y up)\n")
        f.write("#   Body rates: X roll, Y yaw, Z pitch\n")
        f.write("#\n")

        df.to_csv(f, index=False)

    logger.info("Exported %d records to %s", len(df), filename)
    return df


def export_json(
    history: List[Dict],
    filename: str,
    metadata: Optional[Dict] = None
) -> None:
    """
    Export to JSON format for web visualization or further processing.

    Args:
        history: Simulation history
        filename: Output filename
        metadata: Optional metadata
    """
    output = {
        'metadata': metadata or {},
        'generated': datetime.now().isoformat(),
        'n_points': len(history),
        'data': history
    }

    with open(filename, 'w') as f:
        json.dump(output, f, indent=2, default=_json_default)

    logger.info("Exported %d records to %s", len(history), filename)


def _json_default(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return str(value)
