"""
Balancer request/response contract for FactoryFlow.

Request (JSON):
    {
        "type": "SOLVE_SALBP",                       optional
        "elements": [
            {"id": 1, "baseTime": 2.5, "predecessors": [], "usage": [1, 2, 3],
             "description": "Frame"},
            ...
        ],
        "models": [                                  optional, default mix if absent
            {"id": 1, "ratio": 0.35, "name": "Super",
             "length": 3, "width": 3, "height": 6, "weight": 300},
            ...
        ]
    }

Response:
    {"success": true, "configData": {"<m>": {"<stationId>": [taskId, ...]}}}
    {"success": false, "error": "<message>"}
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, TextIO, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from factoryflow.config.defaults import DEFAULT_MODELS
from factoryflow.engine.balancer import BalanceResult, LineBalancer
from factoryflow.engine.throughput import ThroughputEngine
from factoryflow.models.line import LineConfig, StationAssignment
from factoryflow.models.tasks import ProductModel, Task, TaskModel

logger = logging.getLogger(__name__)

SOLVE_SALBP = "SOLVE_SALBP"


class BalancerIOError(Exception):
    """Error reading or interpreting a balancer request or response."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        self.source = source
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


class ElementSpec(BaseModel):
    """One work element as sent over the wire."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(ge=0)
    base_time: float = Field(alias="baseTime", ge=0.0)
    predecessors: list[int] = Field(default_factory=list)
    usage: list[int] = Field(default_factory=list, description="Model ids using the element")
    description: Optional[str] = None

    def to_task(self, known_ids: Optional[set[int]] = None) -> Task:
        """Build the Task; predecessors outside `known_ids` are dropped."""
        predecessors = frozenset(self.predecessors)
        if known_ids is not None:
            predecessors &= known_ids
        return Task(
            task_id=self.id,
            base_time=self.base_time,
            predecessors=predecessors,
            used_by=frozenset(self.usage),
            description=self.description,
        )


class ModelSpec(BaseModel):
    """One product model as sent over the wire."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(ge=0)
    ratio: float = Field(ge=0.0, le=1.0)
    name: str = ""
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    weight: Optional[float] = None

    def to_product_model(self) -> ProductModel:
        return ProductModel(
            model_id=self.id,
            name=self.name,
            ratio=self.ratio,
            length=self.length,
            width=self.width,
            height=self.height,
            weight=self.weight,
        )


class BalancerRequest(BaseModel):
    """A request to balance a line for every offerable station count."""

    model_config = ConfigDict(extra="ignore")

    type: str = SOLVE_SALBP
    elements: list[ElementSpec]
    models: Optional[list[ModelSpec]] = None

    def to_task_model(self) -> TaskModel:
        """Build the task model; the default mix is used when no models are given.

        Predecessor ids that name no element are ignored with a warning.

        Raises:
            pydantic.ValidationError: On duplicate ids or cyclic precedence
        """
        if self.models is None:
            models = [ModelSpec.model_validate(m) for m in DEFAULT_MODELS]
        else:
            models = self.models

        known = {e.id for e in self.elements}
        for element in self.elements:
            unknown = sorted(set(element.predecessors) - known)
            if unknown:
                logger.warning(
                    "Element %d: ignoring unknown predecessors %s", element.id, unknown
                )

        return TaskModel(
            tasks=tuple(e.to_task(known) for e in self.elements),
            models=tuple(m.to_product_model() for m in models),
        )


class BalancerResponse(BaseModel):
    """Outcome of a balancer request."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    config_data: Optional[dict[str, dict[str, list[int]]]] = Field(
        default=None, alias="configData"
    )
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: BalanceResult) -> "BalancerResponse":
        return cls(success=True, config_data=result.to_wire())

    @classmethod
    def fail(cls, message: str) -> "BalancerResponse":
        return cls(success=False, error=message)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "configData": self.config_data or {}}
        return {"success": False, "error": self.error or "Unknown balancer error"}


def parse_request(payload: dict[str, Any]) -> BalancerRequest:
    """Validate a request payload.

    Raises:
        BalancerIOError: If the payload is not a valid request
    """
    try:
        return BalancerRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise BalancerIOError(f"Invalid balancer request: {e}") from e


def load_request(source: Union[str, Path, TextIO]) -> BalancerRequest:
    """Read a request from a JSON file.

    Args:
        source: File path, path object, or file-like object

    Raises:
        BalancerIOError: If the file is missing, not JSON, or not a request
    """
    name = str(source) if isinstance(source, (str, Path)) else None
    try:
        if isinstance(source, (str, Path)):
            with open(source, encoding="utf-8") as f:
                data = json.load(f)
        else:
            data = json.load(source)
    except FileNotFoundError as e:
        raise BalancerIOError("Request file not found", name) from e
    except json.JSONDecodeError as e:
        raise BalancerIOError(f"Corrupt request file: {e}", name) from e

    if not isinstance(data, dict):
        raise BalancerIOError("Request must be a JSON object", name)
    return parse_request(data)


def handle_request(
    payload: dict[str, Any],
    balancer: Optional[LineBalancer] = None,
    timeout: Optional[float] = None,
) -> dict[str, Any]:
    """Answer a balancer request.

    Every failure (bad payload, invalid task graph, solver error, timeout)
    is returned as a failure response; nothing is raised.

    Args:
        payload: Request as a JSON-compatible dict
        balancer: Balancer to use (a default one if None)
        timeout: Seconds to wait for the whole run

    Returns:
        Response dict (see module docstring)
    """
    try:
        request = parse_request(payload)
        if request.type != SOLVE_SALBP:
            return BalancerResponse.fail(f"Unknown request type: {request.type}").to_dict()

        task_model = request.to_task_model()
        balancer = balancer or LineBalancer()
        result = balancer.solve(task_model, timeout=timeout)
        if result.errors and not result.configs:
            first = min(result.errors)
            return BalancerResponse.fail(result.errors[first]).to_dict()
        return BalancerResponse.ok(result).to_dict()
    except Exception as e:
        logger.error("Balancer request failed: %s", e)
        return BalancerResponse.fail(str(e) or type(e).__name__).to_dict()


def configs_from_response(
    response: Union[dict[str, Any], BalancerResponse],
    task_model: TaskModel,
    engine: Optional[ThroughputEngine] = None,
) -> dict[int, LineConfig]:
    """Rebuild LineConfigs from a stored response.

    The configData map carries no cycle times, so each one is recomputed as
    the bottleneck of its assignment.

    Raises:
        BalancerIOError: If the response is a failure or malformed
    """
    if isinstance(response, dict):
        try:
            response = BalancerResponse.model_validate(response)
        except PydanticValidationError as e:
            raise BalancerIOError(f"Invalid balancer response: {e}") from e

    if not response.success:
        raise BalancerIOError(f"Balancer reported failure: {response.error}")

    engine = engine or ThroughputEngine()
    configs: dict[int, LineConfig] = {}
    for key, stations in (response.config_data or {}).items():
        try:
            station_count = int(key)
        except ValueError as e:
            raise BalancerIOError(f"Invalid station count key: {key!r}") from e
        assignment = StationAssignment.from_wire(stations)
        metrics = engine.station_metrics(assignment, task_model)
        configs[station_count] = LineConfig(
            station_count=station_count,
            assignment=assignment,
            cycle_time=metrics.bottleneck_time,
        )
    return configs


def write_response(response: dict[str, Any], destination: Union[str, Path, TextIO]) -> None:
    """Write a response dict as JSON."""
    if isinstance(destination, (str, Path)):
        with open(destination, "w", encoding="utf-8") as f:
            json.dump(response, f, indent=2)
    else:
        json.dump(response, destination, indent=2)
