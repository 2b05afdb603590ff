"""
Line balancer for FactoryFlow.

Solves the simple assembly line balancing problem, type 2 (SALBP-2): for a
fixed number of stations m, assign every task to a station so that the
largest station load (the cycle time C) is as small as possible.

MILP formulation (one problem per m):
    minimize    C
    subject to  sum_j x[t][j] = 1                         every task t
                sum_t time[t] * x[t][j] <= C               every station j
                sum_j j*x[p][j] <= sum_j j*x[t][j]         every edge p -> t
                max(max_task, total/m) <= C <= total
    x binary, C continuous

Station counts run from MIN_STATIONS up to ceil(total_work / max_task_time).
Each m is an independent problem, so solves are dispatched to an executor
and joined as they complete. A station count without an optimal solution is
left out of the result; callers treat a missing m as "not offerable".
"""

import logging
import math
from concurrent.futures import (
    CancelledError,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Iterable, Optional

import pulp

from factoryflow.config.schema import FactoryflowConfig, get_default_config
from factoryflow.engine.validation import precedence_violations
from factoryflow.models.line import LineConfig, StationAssignment
from factoryflow.models.tasks import TaskModel

logger = logging.getLogger(__name__)


class BalancerError(Exception):
    """Exception raised when a balancing run cannot be completed."""

    pass


@dataclass
class SolveRequest:
    """Problem description for a single station count.

    Everything a worker needs; must stay picklable.
    """

    task_model: TaskModel
    station_count: int
    time_limit_seconds: Optional[float] = None
    solver_msg: bool = False
    assignment_threshold: float = 0.9


@dataclass
class BalanceResult:
    """Balanced configurations keyed by station count."""

    configs: dict[int, LineConfig] = field(default_factory=dict)
    infeasible: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)
    cancelled: list[int] = field(default_factory=list)

    @property
    def station_counts(self) -> list[int]:
        """Station counts with a valid configuration, ascending."""
        return sorted(self.configs)

    @property
    def success(self) -> bool:
        """True when no solve failed (infeasible counts are not failures)."""
        return not self.errors

    def get(self, station_count: int) -> Optional[LineConfig]:
        return self.configs.get(station_count)

    def __contains__(self, station_count: object) -> bool:
        return station_count in self.configs

    def to_wire(self) -> dict[str, dict[str, list[int]]]:
        """configData map: {"<m>": {"<station_id>": [task_id, ...]}}."""
        return {
            str(m): self.configs[m].assignment.to_wire()
            for m in self.station_counts
        }


def station_count_range(
    task_model: TaskModel,
    min_stations: int = 3,
    max_stations: Optional[int] = None,
) -> list[int]:
    """Candidate station counts for a task model.

    Args:
        task_model: Line to balance
        min_stations: Smallest count offered
        max_stations: Optional cap on the largest count

    Returns:
        Station counts from min_stations to
        max(min_stations, ceil(total_work / max_task_time)), empty when the
        model has no work
    """
    total_work = task_model.total_work
    max_task = task_model.max_task_time
    if total_work <= 0 or max_task <= 0:
        return []

    upper = max(min_stations, math.ceil(total_work / max_task - 1e-9))
    if max_stations is not None:
        upper = min(upper, max_stations)
    return list(range(min_stations, upper + 1))


def build_problem(
    task_model: TaskModel,
    station_count: int,
) -> tuple[pulp.LpProblem, dict[int, dict[int, pulp.LpVariable]], pulp.LpVariable]:
    """Build the SALBP-2 MILP for one station count.

    Returns:
        (problem, x[task_id][station_id], C)
    """
    times = task_model.effective_times()
    task_ids = task_model.task_ids
    stations = list(range(1, station_count + 1))

    total_work = sum(times.values())
    max_task = max(times.values(), default=0.0)
    lower = max(max_task, total_work / station_count)

    prob = pulp.LpProblem(f"SALBP2_m{station_count}", pulp.LpMinimize)

    x = pulp.LpVariable.dicts("x", (task_ids, stations), cat=pulp.LpBinary)
    cycle = pulp.LpVariable("C", lowBound=lower, upBound=total_work, cat=pulp.LpContinuous)

    prob += cycle, "CycleTime"

    for t in task_ids:
        prob += pulp.lpSum(x[t][j] for j in stations) == 1, f"Assign_{t}"

    for j in stations:
        prob += (
            pulp.lpSum(times[t] * x[t][j] for t in task_ids) <= cycle,
            f"StationLoad_{j}",
        )

    for pred, succ in task_model.edges():
        prob += (
            pulp.lpSum(j * x[pred][j] for j in stations)
            <= pulp.lpSum(j * x[succ][j] for j in stations),
            f"Precedence_{pred}_{succ}",
        )

    return prob, x, cycle


def solve_station_count(request: SolveRequest) -> Optional[LineConfig]:
    """Solve one station count.

    Runs in a worker; module-level so it can be pickled.

    Returns:
        LineConfig if CBC proves optimality and the extracted assignment
        respects precedence, otherwise None
    """
    task_model = request.task_model
    m = request.station_count
    logger.debug("Solving SALBP-2 for %d stations (%d tasks)", m, len(task_model.tasks))

    prob, x, cycle = build_problem(task_model, m)
    solver = pulp.PULP_CBC_CMD(
        msg=request.solver_msg,
        timeLimit=request.time_limit_seconds,
    )
    prob.solve(solver)

    status = pulp.LpStatus[prob.status]
    sol_status = getattr(prob, "sol_status", pulp.LpSolutionOptimal)
    if status != "Optimal" or sol_status != pulp.LpSolutionOptimal:
        logger.warning("Could not find optimal solution for %d stations (status: %s)", m, status)
        return None

    stations: dict[int, tuple[int, ...]] = {}
    placed: set[int] = set()
    for j in range(1, m + 1):
        chosen = [
            t for t in task_model.task_ids
            if (x[t][j].varValue or 0.0) > request.assignment_threshold
        ]
        placed.update(chosen)
        stations[j] = tuple(task_model.topological_order(chosen))

    if placed != set(task_model.task_ids):
        logger.warning("Solver left tasks unassigned for %d stations", m)
        return None

    assignment = StationAssignment(stations=stations)
    violations = precedence_violations(task_model, assignment)
    if violations:
        logger.warning(
            "Discarding %d-station solution: precedence violated on %s",
            m,
            sorted(violations),
        )
        return None

    cycle_time = max(0.0, pulp.value(cycle) or 0.0)
    logger.debug("Solved %d stations: C = %.4f", m, cycle_time)
    return LineConfig(station_count=m, assignment=assignment, cycle_time=cycle_time)


class BalanceJob:
    """A running set of per-station-count solves.

    Futures complete in any order. result() joins them into a
    BalanceResult; cancel() stops solves that have not started yet.
    """

    def __init__(self, futures: dict[Future, int], executor: Optional[Executor] = None):
        self._futures = futures
        self._executor = executor
        self._result = BalanceResult()
        self._collected: set[Future] = set()

    @property
    def station_counts(self) -> list[int]:
        return sorted(self._futures.values())

    def done(self) -> bool:
        """Check whether every solve has finished or been cancelled."""
        return all(f.done() for f in self._futures)

    def _collect(self, future: Future) -> None:
        if future in self._collected:
            return
        self._collected.add(future)
        m = self._futures[future]
        try:
            config = future.result()
        except CancelledError:
            self._result.cancelled.append(m)
            return
        except Exception as e:
            logger.error("Balancer solve for %d stations failed: %s", m, e)
            self._result.errors[m] = str(e) or type(e).__name__
            return

        if config is None:
            self._result.infeasible.append(m)
        else:
            self._result.configs[m] = config

    def completed(self) -> BalanceResult:
        """Results of the solves finished so far (never blocks)."""
        for future in self._futures:
            if future.done():
                self._collect(future)
        return self._result

    def result(self, timeout: Optional[float] = None) -> BalanceResult:
        """Wait for all solves and return the merged result.

        Args:
            timeout: Seconds to wait for the whole job (None = no limit)

        Raises:
            BalancerError: If the timeout expires first. Results finished
                before the deadline stay available through completed().
        """
        # as_completed never yields futures cancelled during executor shutdown
        live = []
        for future in self._futures:
            if future.cancelled():
                self._collect(future)
            else:
                live.append(future)

        try:
            for future in as_completed(live, timeout=timeout):
                self._collect(future)
        except FuturesTimeoutError as e:
            raise BalancerError(
                f"Balancing did not finish within {timeout} seconds"
            ) from e
        finally:
            if self.done():
                self._shutdown()

        self._result.infeasible.sort()
        self._result.cancelled.sort()
        return self._result

    def cancel(self) -> None:
        """Cancel solves that have not started. Running solves finish."""
        for future in self._futures:
            future.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None


class LineBalancer:
    """Balances a line for every offerable station count.

    Usage:
        balancer = LineBalancer()
        result = balancer.solve(task_model)
        config = result.get(5)

        # or without blocking
        job = balancer.submit(task_model)
        ...
        result = job.result(timeout=60)
    """

    def __init__(self, config: Optional[FactoryflowConfig] = None):
        """Initialize the balancer.

        Args:
            config: Engine configuration (uses defaults if None)
        """
        self.config = config or get_default_config()

    def station_counts(self, task_model: TaskModel) -> list[int]:
        """Candidate station counts for a task model."""
        balancer = self.config.balancer
        return station_count_range(
            task_model,
            min_stations=balancer.min_stations,
            max_stations=balancer.max_stations,
        )

    def make_request(self, task_model: TaskModel, station_count: int) -> SolveRequest:
        """Package one station count as a worker request."""
        if station_count < 1:
            raise BalancerError(f"Station count must be >= 1, got {station_count}")
        balancer = self.config.balancer
        return SolveRequest(
            task_model=task_model,
            station_count=station_count,
            time_limit_seconds=balancer.time_limit_seconds,
            solver_msg=balancer.solver_msg,
            assignment_threshold=balancer.assignment_threshold,
        )

    def solve_one(self, task_model: TaskModel, station_count: int) -> Optional[LineConfig]:
        """Solve a single station count in the calling thread."""
        return solve_station_count(self.make_request(task_model, station_count))

    def submit(
        self,
        task_model: TaskModel,
        station_counts: Optional[Iterable[int]] = None,
        executor: Optional[Executor] = None,
    ) -> BalanceJob:
        """Dispatch one solve per station count.

        Args:
            task_model: Line to balance
            station_counts: Counts to solve (default: station_counts())
            executor: Executor to use; when None a pool is created from the
                balancer config and shut down when the job finishes

        Returns:
            BalanceJob to join or cancel
        """
        counts = sorted(set(station_counts)) if station_counts is not None else self.station_counts(task_model)
        requests = [self.make_request(task_model, m) for m in counts]

        owned: Optional[Executor] = None
        if executor is None and requests:
            owned = self._make_executor()
            executor = owned

        futures: dict[Future, int] = {}
        for request in requests:
            futures[executor.submit(solve_station_count, request)] = request.station_count  # type: ignore[union-attr]

        return BalanceJob(futures, owned)

    def solve(
        self,
        task_model: TaskModel,
        station_counts: Optional[Iterable[int]] = None,
        timeout: Optional[float] = None,
    ) -> BalanceResult:
        """Balance the line and wait for every station count.

        Args:
            task_model: Line to balance
            station_counts: Counts to solve (default: station_counts())
            timeout: Seconds to wait for the whole run

        Returns:
            BalanceResult with one LineConfig per offerable station count
        """
        job = self.submit(task_model, station_counts)
        try:
            return job.result(timeout=timeout)
        except BalancerError:
            job.cancel()
            raise

    def _make_executor(self) -> Executor:
        balancer = self.config.balancer
        if balancer.use_processes:
            return ProcessPoolExecutor(max_workers=balancer.max_workers)
        return ThreadPoolExecutor(max_workers=balancer.max_workers)
