#!/usr/bin/env python3
"""
Sizing Charts

Trade size and post-trade price error against mispricing.
"""

from pathlib import Path
from typing import Optional, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd


def _setup_styling():
    plt.style.use('default')
    plt.rcParams.update({
        'figure.figsize': (12, 8),
        'font.size': 11,
        'axes.titlesize': 14,
        'axes.labelsize': 12,
        'legend.fontsize': 10,
    })


def plot_sizing_curve(sweep: pd.DataFrame, output_path: Union[str, Path],
                      profits: Optional[pd.DataFrame] = None) -> Path:
    """
    Write the sizing chart for a mispricing sweep.

    Args:
        sweep: Output of sweep_mispricing
        output_path: PNG file to write
        profits: Optional output of profit_sweep, drawn as a third panel

    Returns:
        Path of the written chart
    """
    _setup_styling()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    panels = 3 if profits is not None else 2
    fig, axes = plt.subplots(panels, 1, figsize=(12, 4 * panels), sharex=True)
    fig.suptitle('Flash-Loan Arbitrage Sizing vs Mispricing', fontsize=16, fontweight='bold')

    colors = {"redeem": "#2E86AB", "create": "#A23B72"}

    ax = axes[0]
    for strategy, group in sweep.dropna(subset=["strategy"]).groupby("strategy"):
        ax.plot(group["ratio"], group["trade_size"], 'o-', color=colors.get(strategy),
                label=f"{strategy} path", linewidth=2, markersize=4)
    ax.axvline(1.0, color='gray', linestyle='--', alpha=0.7)
    ax.set_ylabel('Trade size (base units)')
    ax.set_title('Closed-form trade size')
    ax.legend()
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    ax.semilogy(sweep["ratio"], sweep["price_error"].clip(lower=1e-18), 's-',
                color='#F18F01', linewidth=2, markersize=4)
    ax.set_ylabel('|post - intrinsic| / intrinsic')
    ax.set_title('Post-trade price error (fee-less pool)')
    ax.grid(True, alpha=0.3)

    if profits is not None:
        ax = axes[2]
        completed = profits[profits["completed"]]
        ax.bar(completed["ratio"], completed["profit_bps"], width=0.03, color='#C73E1D', alpha=0.8)
        ax.axhline(0, color='black', linewidth=0.8)
        ax.set_ylabel('Profit (bps of loan)')
        ax.set_title('Full-cycle profit on the local host')
        ax.grid(True, alpha=0.3)

    axes[-1].set_xlabel('Market price / intrinsic price')

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return output_path
