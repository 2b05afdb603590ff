"""
Schedule export for FactoryFlow.

Projects a simulated schedule onto one row per unit, in the order units
entered the line:

    Sequence,Model,Enter Time,Exit Time
    1,Ultra,00:00:00,00:41:15
    2,Super,00:03:42,00:44:57
"""

import csv
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO, Union

from factoryflow.engine.schedule import ScheduleResult
from factoryflow.models.tasks import TaskModel

CSV_HEADER = ["Sequence", "Model", "Enter Time", "Exit Time"]


@dataclass(frozen=True)
class ScheduleRow:
    """One unit of an exported schedule."""

    sequence: int
    model_name: str
    enter_time: float
    exit_time: float


def format_minutes_to_clock(minutes: float) -> str:
    """Format minutes since the start of the day as HH:MM:SS.

    Seconds are rounded half up. Negative or non-finite values give "N/A".

    Example:
        >>> format_minutes_to_clock(75.5)
        '01:15:30'
    """
    if not math.isfinite(minutes) or minutes < 0:
        return "N/A"
    total_seconds = math.floor(minutes * 60 + 0.5)
    hours, rest = divmod(total_seconds, 3600)
    mins, secs = divmod(rest, 60)
    return f"{hours:02d}:{mins:02d}:{secs:02d}"


def schedule_rows(
    schedule: ScheduleResult,
    task_model: Optional[TaskModel] = None,
) -> list[ScheduleRow]:
    """One row per unit, numbered from 1 by enter time.

    Args:
        schedule: Simulated schedule
        task_model: Supplies model names (falls back to "Model <id>")
    """
    rows = []
    for index, span in enumerate(schedule.unit_spans(), start=1):
        model = task_model.get_model(span.model_id) if task_model is not None else None
        name = model.display_name if model is not None else f"Model {span.model_id}"
        rows.append(ScheduleRow(
            sequence=index,
            model_name=name,
            enter_time=span.enter_time,
            exit_time=span.exit_time,
        ))
    return rows


def write_schedule_csv(
    schedule: ScheduleResult,
    destination: Union[str, Path, TextIO],
    task_model: Optional[TaskModel] = None,
) -> int:
    """Write the build sequence as CSV.

    Args:
        schedule: Simulated schedule
        destination: File path, path object, or file-like object
        task_model: Supplies model names

    Returns:
        Number of unit rows written
    """
    rows = schedule_rows(schedule, task_model)

    def _write(f: TextIO) -> None:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for row in rows:
            writer.writerow([
                row.sequence,
                row.model_name,
                format_minutes_to_clock(row.enter_time),
                format_minutes_to_clock(row.exit_time),
            ])

    if isinstance(destination, (str, Path)):
        with open(destination, "w", encoding="utf-8", newline="") as f:
            _write(f)
    else:
        _write(destination)
    return len(rows)
