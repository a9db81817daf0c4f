"""Scenario simulation for staking pools."""

from .runner import SimulationResult, SimulationRunner

__all__ = ["SimulationRunner", "SimulationResult"]
