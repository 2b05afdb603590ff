"""
Station assignment and line configuration models.

A StationAssignment maps station ids (1..m) to the ordered task ids worked
at that station. A LineConfig pairs an assignment with the cycle time the
balancer achieved for it. Balancer output and hand-edited assignments use
the same model; hand-edited ones are checked with
factoryflow.engine.validation before use.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StationAssignment(BaseModel):
    """Ordered task lists per station."""

    model_config = ConfigDict(frozen=True)

    stations: dict[int, tuple[int, ...]] = Field(
        default_factory=dict,
        description="Map of station_id to ordered task ids",
    )

    @field_validator("stations")
    @classmethod
    def _station_ids_positive(
        cls, v: dict[int, tuple[int, ...]]
    ) -> dict[int, tuple[int, ...]]:
        bad = [sid for sid in v if sid < 1]
        if bad:
            raise ValueError(f"Station ids must be >= 1, got {sorted(bad)}")
        return v

    @property
    def station_ids(self) -> list[int]:
        """Station ids in line order."""
        return sorted(self.stations)

    @property
    def station_count(self) -> int:
        return len(self.stations)

    @property
    def task_ids(self) -> list[int]:
        """All assigned task ids in line order (duplicates kept)."""
        return [tid for sid in self.station_ids for tid in self.stations[sid]]

    def tasks_at(self, station_id: int) -> tuple[int, ...]:
        """Task ids worked at a station (empty if the station is unknown)."""
        return self.stations.get(station_id, ())

    def station_of(self, task_id: int) -> Optional[int]:
        """Station a task is assigned to (first occurrence)."""
        for sid in self.station_ids:
            if task_id in self.stations[sid]:
                return sid
        return None

    def station_map(self) -> dict[int, int]:
        """Map of task_id to station_id (first occurrence wins)."""
        mapping: dict[int, int] = {}
        for sid in self.station_ids:
            for tid in self.stations[sid]:
                mapping.setdefault(tid, sid)
        return mapping

    def move_task(self, task_id: int, station_id: int, position: Optional[int] = None) -> "StationAssignment":
        """Return a copy with a task moved to another station.

        Args:
            task_id: Task to move
            station_id: Destination station
            position: Index within the destination list (None = append)
        """
        stations = {
            sid: tuple(t for t in tids if t != task_id)
            for sid, tids in self.stations.items()
        }
        dest = list(stations.get(station_id, ()))
        if position is None:
            dest.append(task_id)
        else:
            dest.insert(position, task_id)
        stations[station_id] = tuple(dest)
        return self.model_copy(update={"stations": stations})

    def to_wire(self) -> dict[str, list[int]]:
        """Station map with string keys, as used in balancer responses."""
        return {str(sid): list(self.stations[sid]) for sid in self.station_ids}

    @classmethod
    def from_wire(cls, data: dict[Any, Any]) -> "StationAssignment":
        """Build from a station map with string (or int) keys."""
        return cls(
            stations={int(sid): tuple(int(t) for t in tids) for sid, tids in data.items()}
        )


class LineConfig(BaseModel):
    """A balanced line for one station count."""

    model_config = ConfigDict(frozen=True)

    station_count: int = Field(ge=1, description="Number of stations m")
    assignment: StationAssignment = Field(description="Tasks per station")
    cycle_time: float = Field(ge=0.0, description="Realized cycle time C (minutes)")
