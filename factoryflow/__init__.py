"""
FactoryFlow - Line Balancing & Throughput Simulation

A computation engine for paced, mixed-model assembly lines.

This package provides:
- SALBP-2 line balancing (one MILP per station count, solved concurrently)
- Throughput and capacity of a conveyor line over a finite operating day
- Mixed-model (goal chasing) production sequencing
- Discrete-event simulation of the day's schedule
- A CLI over the engine and a JSON balancer request contract
"""

__version__ = "0.1.0"

from factoryflow.config.defaults import DEFAULT_CONFIG

__all__ = [
    "__version__",
    "DEFAULT_CONFIG",
]
