"""
Operating point and production unit models.
"""

from pydantic import BaseModel, ConfigDict, Field


class OperatingPoint(BaseModel):
    """The operating parameters a capacity query is evaluated at.

    The employee count is the number of staffed stations (one operator per
    station) and is used for labor availability statistics only.
    """

    model_config = ConfigDict(frozen=True)

    daily_demand: int = Field(ge=0, description="Target units per day")
    op_hours_per_day: float = Field(ge=0.0, le=24.0, description="Operating hours per day")
    employee_count: int = Field(ge=0, description="Operators on the line")

    @property
    def horizon_minutes(self) -> float:
        return self.op_hours_per_day * 60


class ProductionUnit(BaseModel):
    """One unit to be built, in launch order."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    unit_id: str = Field(description="Unique unit id, '<model_id>-<sequence_index>'")
    model_id: int = Field(ge=0, description="Model being built")
    sequence_index: int = Field(ge=0, description="Launch position (0-based)")
