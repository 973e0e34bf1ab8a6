"""
Measurement Orchestrator.

Dispatches latency evaluations as independent units of work and funnels
their results back through a single outcome queue. Each unit runs the
blocking evaluator on a daemon thread and posts exactly one immutable
outcome to the event loop; it never touches table state. The table is
only mutated by `apply`, called from one serial consumer.

Units are never joined: leaving the event loop (or the interpreter)
abandons whatever is still in flight.
"""

import asyncio
import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Union

from latai.evaluator import Evaluator
from latai.models import Model
from latai.prompts import PromptSource
from latai.providers.base import ProviderClient
from latai.table import RankedTable, RowStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LatencyUpdated:
    """A unit of work finished successfully."""

    row_id: int
    model_name: str
    average_latency_ms: float
    samples: tuple[float, ...] = ()


@dataclass(frozen=True)
class LatencyFailed:
    """A unit of work failed."""

    row_id: int
    model_name: str
    error: str


Outcome = Union[LatencyUpdated, LatencyFailed]


class MeasurementOrchestrator:
    """
    Fan-out of latency evaluations, fan-in of their outcomes.

    Must be used from within a running event loop.
    """

    def __init__(
        self,
        table: RankedTable,
        prompt_source: PromptSource,
        sample_size: Optional[int] = None,
        rng_factory: Optional[Callable[[], random.Random]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            table: Table the outcomes are applied to
            prompt_source: Source queried once per unit of work
            sample_size: Calls per evaluation; None uses the prompt pool size
            rng_factory: Builds a random source per unit of work
        """
        self.table = table
        self.prompt_source = prompt_source
        self.sample_size = sample_size
        self.rng_factory = rng_factory or random.Random

        self._outcomes: asyncio.Queue = asyncio.Queue()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Dispatched units whose outcome has not been applied yet."""
        return self._pending

    def measure_one(self, row_id: int) -> bool:
        """
        Start measuring a single row.

        Args:
            row_id: Stable row ID

        Returns:
            True if a unit of work was dispatched, False if the row is
            already being measured
        """
        row = self.table.get(row_id)
        if row.status is RowStatus.MEASURING:
            logger.info("%s is already being measured", row.model.name)
            return False

        self.table.mark_measuring(row_id)
        self._dispatch(row_id, row.provider, row.model)
        return True

    def measure_all(self) -> int:
        """
        Start measuring every row concurrently.

        Returns:
            Number of units dispatched
        """
        targets = []
        for row in self.table.rows:
            if row.status is RowStatus.MEASURING:
                logger.info("%s is already being measured", row.model.name)
                continue
            self.table.mark_measuring(row.row_id)
            targets.append(row)

        for row in targets:
            self._dispatch(row.row_id, row.provider, row.model)

        return len(targets)

    def _dispatch(self, row_id: int, provider: ProviderClient, model: Model) -> None:
        loop = asyncio.get_running_loop()
        self._pending += 1
        worker = threading.Thread(
            target=self._run_unit,
            args=(loop, row_id, provider, model),
            name=f"measure-{model.id}",
            daemon=True,
        )
        worker.start()

    def _run_unit(
        self,
        loop: asyncio.AbstractEventLoop,
        row_id: int,
        provider: ProviderClient,
        model: Model,
    ) -> None:
        """One unit of work, on its own thread. Posts exactly one outcome."""
        try:
            evaluation = self._evaluate(provider, model)
        except Exception as e:
            logger.error("Measuring %s failed: %s", model.id, e)
            outcome: Outcome = LatencyFailed(
                row_id=row_id,
                model_name=model.name,
                error=str(e) or type(e).__name__,
            )
        else:
            outcome = LatencyUpdated(
                row_id=row_id,
                model_name=model.name,
                average_latency_ms=evaluation.average_latency_ms,
                samples=tuple(evaluation.latencies_ms),
            )

        try:
            loop.call_soon_threadsafe(self._outcomes.put_nowait, outcome)
        except RuntimeError:
            # loop closed: the unit was abandoned on quit
            logger.debug("Dropped outcome for %s, event loop is closed", model.id)

    def _evaluate(self, provider: ProviderClient, model: Model):
        prompts = self.prompt_source.get_prompts()
        evaluator = Evaluator(
            provider,
            model,
            prompts,
            sample_size=self.sample_size,
            rng=self.rng_factory(),
        )
        return evaluator.evaluate()

    async def next_outcome(self) -> Outcome:
        """Wait for the next outcome posted by a unit of work."""
        return await self._outcomes.get()

    def apply(self, outcome: Outcome) -> None:
        """
        Apply an outcome to the table. The only mutation path for results.

        Args:
            outcome: Outcome from `next_outcome`
        """
        if not isinstance(outcome, (LatencyUpdated, LatencyFailed)):
            raise TypeError(f"unknown outcome: {outcome!r}")

        self._pending = max(0, self._pending - 1)

        if isinstance(outcome, LatencyUpdated):
            self.table.update_latency(
                outcome.row_id,
                outcome.average_latency_ms,
                outcome.samples,
            )
        else:
            self.table.set_error(outcome.row_id, outcome.error)

    async def drain(self) -> list[Outcome]:
        """
        Apply outcomes until no unit of work is pending.

        Returns:
            Applied outcomes in arrival order
        """
        applied = []
        while self._pending > 0:
            outcome = await self.next_outcome()
            self.apply(outcome)
            applied.append(outcome)
        return applied
