"""
Plotting Module

Time-history plots of recorded flights for offline analysis. This is not
a renderer: it draws charts from FlightDynamics.run() history.
"""

import matplotlib.pyplot as plt
from typing import List, Dict, Optional

from .data_export import history_to_dataframe


# Plot styling
PLOT_STYLE = {
    'figure.figsize': (10, 6),
    'figure.dpi': 100,
    'axes.grid': True,
    'grid.alpha': 0.3,
    'lines.linewidth': 1.5,
}

VARIABLE_LABELS = {
    'altitude_m': 'Altitude (m)',
    'airspeed_m_s': 'Airspeed (m/s)',
    'alpha_deg': r'$\alpha$ (deg)',
    'roll_deg': r'$\phi$ (deg)',
    'pitch_deg': r'$\theta$ (deg)',
    'heading_deg': r'$\psi$ (deg)',
    'CL': r'$C_L$',
    'CD': r'$C_D$',
    'thrust_pct': 'Thrust (%)',
    'elevator': r'$\delta_e$',
    'aileron': r'$\delta_a$',
    'rudder': r'$\delta_r$',
}

DEFAULT_VARIABLES = ['altitude_m', 'airspeed_m_s', 'alpha_deg', 'pitch_deg', 'thrust_pct']


def setup_plot_style():
    """Apply consistent styling to all plots."""
    plt.rcParams.update(PLOT_STYLE)


def plot_time_history(
    history: List[Dict],
    variables: Optional[List[str]] = None,
    title: str = "Flight Time History",
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Plot selected variables against time, one axis per variable.

    Args:
        history: Records from FlightDynamics.run()
        variables: Column names from history_to_dataframe()
        title: Figure title
        save_path: Optional path to save figure

    Returns:
        Matplotlib figure
    """
    variables = variables or DEFAULT_VARIABLES
    df = history_to_dataframe(history)

    missing = [v for v in variables if v not in df.columns]
    if missing:
        raise ValueError(f"Unknown variables: {missing}. Available: {df.columns.tolist()}")

    setup_plot_style()

    n_vars = len(variables)
    fig, axes = plt.subplots(n_vars, 1, figsize=(10, 2.5*n_vars), sharex=True)

    if n_vars == 1:
        axes = [axes]

    time = df['time_s'].values

    for ax, var in zip(axes, variables):
        ax.plot(time, df[var].values, 'b-')
        ax.set_ylabel(VARIABLE_LABELS.get(var, var))
        ax.axhline(0, color='gray', linestyle=':', linewidth=1, alpha=0.5)

    # Shade stalled intervals on the alpha trace
    if 'alpha_deg' in variables and df['stalled'].any():
        ax = axes[variables.index('alpha_deg')]
        ax.fill_between(time, 0, 1, where=df['stalled'].values,
                        color='red', alpha=0.15, transform=ax.get_xaxis_transform(),
                        label='Stalled')
        ax.legend(loc='upper right')

    axes[-1].set_xlabel('Time (s)')
    fig.suptitle(title)
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
