"""
Comparative statics over the endowment k.

Lambdifies the closed forms of an EquilibriumReport and evaluates them on a
numpy grid of k values, collecting the results in a pandas DataFrame that can
be written to CSV or plotted.
"""

from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import sympy

import walras_config as cfg

TABLE_COLUMNS = [
    "px", "py", "z_alpha", "z_beta",
    "income_A", "income_B",
    "xA", "yA", "xB", "yB",
    "utility_A", "utility_B", "welfare_ratio",
    "excess_demand_Y",
]


def k_grid(start=None, stop=None, num=None):
    """Evenly spaced positive endowment values (defaults from walras_config.K_GRID)."""
    d_start, d_stop, d_num = cfg.K_GRID
    start = d_start if start is None else start
    stop = d_stop if stop is None else stop
    num = d_num if num is None else num
    if start <= 0 or stop <= 0:
        raise ValueError(f"Endowment grid must be positive, got [{start}, {stop}].")
    if num < 1:
        raise ValueError(f"Grid needs at least one point, got num={num}.")
    return np.linspace(start, stop, int(num))


def report_expressions(report):
    """Map each table column to its closed-form expression in k."""
    welfare = report.welfare
    solution = report.solution
    return {
        "px": solution.px,
        "py": solution.py,
        "z_alpha": solution.z_alpha,
        "z_beta": solution.z_beta,
        "income_A": welfare.incomes["A"],
        "income_B": welfare.incomes["B"],
        "xA": welfare.allocations["xA"],
        "yA": welfare.allocations["yA"],
        "xB": welfare.allocations["xB"],
        "yB": welfare.allocations["yB"],
        "utility_A": welfare.utility_a,
        "utility_B": welfare.utility_b,
        "welfare_ratio": welfare.welfare_ratio,
        "excess_demand_Y": welfare.excess_demand_y,
    }


def endowment_table(report, k_values: Optional[Sequence[float]] = None) -> pd.DataFrame:
    """
    Evaluate the report's closed forms at each endowment value.

    Args:
        report: EquilibriumReport with k still symbolic
        k_values: positive endowment values, k_grid() when omitted

    Returns:
        DataFrame indexed by k with one column per entry of TABLE_COLUMNS.
    """
    if report.k_value is not None:
        raise ValueError(f"Report already has k bound to {report.k_value}; run the pipeline without k_value.")
    k_values = k_grid() if k_values is None else np.asarray(k_values, dtype=float)
    if np.any(k_values <= 0):
        raise ValueError("Endowment values must be positive.")

    k = report.model.k
    columns = {}
    for name, expr in report_expressions(report).items():
        func = sympy.lambdify(k, expr, modules="numpy")
        # constant expressions come back as scalars
        columns[name] = np.broadcast_to(np.asarray(func(k_values), dtype=float), k_values.shape)

    table = pd.DataFrame(columns, index=pd.Index(k_values, name="k"))
    return table[TABLE_COLUMNS]


def plot_endowment_table(table: pd.DataFrame, columns: Optional[List[str]] = None,
                         title="Equilibrium as a function of the endowment k", figsize=None):
    """Grid of line plots, one panel per column; returns the figure without showing it."""
    columns = list(table.columns) if columns is None else list(columns)
    if not columns:
        raise ValueError("No columns to plot")
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise ValueError(f"Columns {missing} not found in table")

    num_vars = len(columns)
    cols = 4 if num_vars > 9 else (3 if num_vars > 4 else (2 if num_vars > 1 else 1))
    rows = (num_vars + cols - 1) // cols
    figsize = (min(5 * cols, 18), 3 * rows) if figsize is None else figsize

    fig, axes = plt.subplots(rows, cols, figsize=figsize, sharex=True, squeeze=False)
    axes = axes.flatten()
    fig.suptitle(title, fontsize=14)

    for i, name in enumerate(columns):
        ax = axes[i]
        ax.plot(table.index.values, table[name].values, label=name)
        ax.set_title(name)
        ax.grid(True, linestyle='--', alpha=0.6)
        if (i // cols) == (rows - 1):
            ax.set_xlabel("k")

    # Hide unused subplots
    for j in range(num_vars, len(axes)):
        axes[j].set_visible(False)

    fig.tight_layout(rect=[0, 0.03, 1, 0.95])
    return fig
