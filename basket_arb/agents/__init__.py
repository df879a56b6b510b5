"""Contracts the local host can address"""

from .base_agent import BaseContract, ExecutionContext
from .orchestrator import ArbitrageOrchestrator, CycleStage

__all__ = [
    "BaseContract", "ExecutionContext",
    "ArbitrageOrchestrator", "CycleStage",
]
