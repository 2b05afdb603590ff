"""
File I/O for FactoryFlow.

This module handles:
- Balancer requests and responses (JSON wire contract)
- Schedule export (build sequence CSV)
"""

from factoryflow.io.balancer_io import (
    SOLVE_SALBP,
    BalancerIOError,
    BalancerRequest,
    BalancerResponse,
    ElementSpec,
    ModelSpec,
    configs_from_response,
    handle_request,
    load_request,
    parse_request,
    write_response,
)
from factoryflow.io.schedule_export import (
    CSV_HEADER,
    ScheduleRow,
    format_minutes_to_clock,
    schedule_rows,
    write_schedule_csv,
)

__all__ = [
    # Balancer
    "SOLVE_SALBP",
    "BalancerIOError",
    "BalancerRequest",
    "BalancerResponse",
    "ElementSpec",
    "ModelSpec",
    "configs_from_response",
    "handle_request",
    "load_request",
    "parse_request",
    "write_response",
    # Schedule export
    "CSV_HEADER",
    "ScheduleRow",
    "format_minutes_to_clock",
    "schedule_rows",
    "write_schedule_csv",
]
