"""
Data models for FactoryFlow.

This module contains Pydantic models representing:
- Tasks, product models and the precedence graph
- Station assignments and balanced line configurations
- Operating points and production units
"""

from factoryflow.models.line import (
    LineConfig,
    StationAssignment,
)
from factoryflow.models.production import (
    OperatingPoint,
    ProductionUnit,
)
from factoryflow.models.tasks import (
    ProductModel,
    Task,
    TaskModel,
)

__all__ = [
    # Tasks
    "ProductModel",
    "Task",
    "TaskModel",
    # Line
    "LineConfig",
    "StationAssignment",
    # Production
    "OperatingPoint",
    "ProductionUnit",
]
