"""Sizing sweeps, cycle reports and charts"""

from .sizing import post_trade_price, profit_sweep, sweep_mispricing
from .reports import cycle_report, summarize_cycle
from .charts import plot_sizing_curve

__all__ = [
    "post_trade_price", "profit_sweep", "sweep_mispricing",
    "cycle_report", "summarize_cycle",
    "plot_sizing_curve",
]
