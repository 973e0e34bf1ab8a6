"""
Unit tests for concurrent measurement orchestration.

Async code is driven with `asyncio.run` from plain test functions.
"""

import asyncio
import os
import subprocess
import threading
import time

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from helpers import FakeProvider, make_model, make_prompts
from latai.exceptions import InvalidTransitionError, TransportError
from latai.orchestrator import LatencyFailed, LatencyUpdated, MeasurementOrchestrator
from latai.prompts import StaticPromptSource
from latai.table import RankedTable, RowStatus

ROOT = Path(__file__).parent.parent
TESTS = Path(__file__).parent

# Starts one slow unit, leaves the loop at once and prints the seconds
# spent between entering the loop and the interpreter's exit handlers.
QUIT_WHILE_MEASURING = """
import asyncio
import atexit
import time

from helpers import FakeProvider, make_model, make_prompts
from latai.orchestrator import MeasurementOrchestrator
from latai.prompts import StaticPromptSource
from latai.table import RankedTable


class SlowProvider(FakeProvider):
    def measure(self, model, prompt):
        time.sleep(5)
        return super().measure(model, prompt)


async def main():
    table = RankedTable.from_providers([SlowProvider([make_model(0)])])
    orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
    orchestrator.measure_all()
    await asyncio.sleep(0.1)


started = time.perf_counter()
atexit.register(lambda: print(round(time.perf_counter() - started, 3)))
asyncio.run(main())
"""


class GatedProvider(FakeProvider):
    """Blocks every call until the gate opens."""

    def __init__(self, models, gate: threading.Event):
        super().__init__(models)
        self.gate = gate

    def measure(self, model, prompt):
        self.gate.wait(10)
        return super().measure(model, prompt)


def setup(count: int = 3, **provider_kwargs):
    models = [make_model(i) for i in range(count)]
    provider = FakeProvider(models, **provider_kwargs)
    table = RankedTable.from_providers([provider])
    return provider, table


class TestMeasureAll:
    """Fan-out over every row."""

    def test_one_failure_is_isolated(self):
        """Ten rows, row 4 fails, the other nine are measured."""
        provider, table = setup(
            10,
            failures={"model-4": TransportError("503 service unavailable", "model-4")},
        )

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(2)))
            dispatched = orchestrator.measure_all()
            assert dispatched == 10
            assert all(row.status is RowStatus.MEASURING for row in table)
            outcomes = await orchestrator.drain()
            assert orchestrator.pending == 0
            return outcomes

        outcomes = asyncio.run(scenario())

        assert len(outcomes) == 10
        assert sum(isinstance(o, LatencyFailed) for o in outcomes) == 1
        for row in table:
            if row.row_id == 4:
                assert row.status is RowStatus.FAILED
                assert "503" in row.state.error
            else:
                assert row.status is RowStatus.MEASURED
                assert row.latency_ms == 100.0

    def test_scripted_latencies(self):
        provider, table = setup(2, latencies={
            "model-0": [100.0, 150.0, 200.0],
            "model-1": [10.0, 20.0, 30.0],
        })

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(3)))
            orchestrator.measure_all()
            await orchestrator.drain()

        asyncio.run(scenario())

        assert table.get(0).latency_ms == 150.0
        assert table.get(0).state.samples == (100.0, 150.0, 200.0)
        assert table.get(1).latency_ms == 20.0

    def test_sample_size_applies(self):
        provider, table = setup(1)

        async def scenario():
            orchestrator = MeasurementOrchestrator(
                table, StaticPromptSource(make_prompts(2)), sample_size=5
            )
            orchestrator.measure_all()
            await orchestrator.drain()

        asyncio.run(scenario())

        assert len(provider.calls_for("model-0")) == 5

    def test_skips_rows_already_measuring(self):
        provider, table = setup(3)

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            orchestrator.measure_one(1)
            dispatched = orchestrator.measure_all()
            assert orchestrator.pending == 3
            await orchestrator.drain()
            return dispatched

        assert asyncio.run(scenario()) == 2
        assert len(provider.calls_for("model-1")) == 1


class TestMeasureOne:
    """Single-row measurement."""

    def test_marks_measuring_immediately(self):
        provider, table = setup(2)

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            assert orchestrator.measure_one(1)
            assert table.get(1).status is RowStatus.MEASURING
            assert table.get(0).status is RowStatus.UNMEASURED
            outcome = await orchestrator.next_outcome()
            orchestrator.apply(outcome)
            return outcome

        outcome = asyncio.run(scenario())

        assert isinstance(outcome, LatencyUpdated)
        assert outcome.row_id == 1
        assert outcome.model_name == "Model 1"
        assert table.get(1).status is RowStatus.MEASURED

    def test_redispatch_ignored(self):
        """A row being measured is not dispatched again."""
        provider, table = setup(1)

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            assert orchestrator.measure_one(0)
            assert not orchestrator.measure_one(0)
            assert orchestrator.pending == 1
            await orchestrator.drain()

        asyncio.run(scenario())

        assert len(provider.calls) == 1

    def test_remeasure_after_failure(self):
        provider, table = setup(1, failures={"model-0": TransportError("timeout")})

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            orchestrator.measure_one(0)
            await orchestrator.drain()
            assert table.get(0).status is RowStatus.FAILED

            provider.failures.clear()
            orchestrator.measure_one(0)
            await orchestrator.drain()

        asyncio.run(scenario())

        assert table.get(0).status is RowStatus.MEASURED


class TestUnitErrors:
    """Every error inside a unit becomes a failed outcome."""

    def test_validation_error(self):
        provider, table = setup(1)

        async def scenario():
            orchestrator = MeasurementOrchestrator(
                table, StaticPromptSource(make_prompts(1)), sample_size=0
            )
            orchestrator.measure_one(0)
            return await orchestrator.drain()

        (outcome,) = asyncio.run(scenario())

        assert isinstance(outcome, LatencyFailed)
        assert "sample size" in outcome.error
        assert provider.calls == []

    def test_prompt_source_error(self):
        provider, table = setup(1)

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource([]))
            orchestrator.measure_one(0)
            await orchestrator.drain()

        asyncio.run(scenario())

        assert table.get(0).state.error == "no prompt(s) provided"

    def test_unexpected_error(self):
        provider, table = setup(1, failures={"model-0": RuntimeError()})

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            orchestrator.measure_one(0)
            await orchestrator.drain()

        asyncio.run(scenario())

        assert table.get(0).status is RowStatus.FAILED
        assert table.get(0).state.error == "RuntimeError"


class TestApply:
    """Outcome application."""

    def test_rejects_unknown_outcome(self):
        provider, table = setup(1)

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            with pytest.raises(TypeError):
                orchestrator.apply("not an outcome")

        asyncio.run(scenario())

    def test_outcome_for_idle_row(self):
        provider, table = setup(1)

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            with pytest.raises(InvalidTransitionError):
                orchestrator.apply(LatencyUpdated(row_id=0, model_name="Model 0", average_latency_ms=1.0))

        asyncio.run(scenario())

    def test_stray_object_keeps_pending_count(self):
        provider, table = setup(1)

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            orchestrator.measure_one(0)
            with pytest.raises(TypeError):
                orchestrator.apply(object())
            assert orchestrator.pending == 1
            return await orchestrator.drain()

        (outcome,) = asyncio.run(scenario())

        assert isinstance(outcome, LatencyUpdated)
        assert table.get(0).status is RowStatus.MEASURED


class TestAbandonOnQuit:
    """Leaving the loop never waits for units still in flight."""

    def test_event_loop_exit_is_prompt(self):
        gate = threading.Event()
        provider = GatedProvider([make_model(0)], gate)
        table = RankedTable.from_providers([provider])

        async def scenario():
            orchestrator = MeasurementOrchestrator(table, StaticPromptSource(make_prompts(1)))
            orchestrator.measure_one(0)
            await asyncio.sleep(0.05)

        started = time.perf_counter()
        asyncio.run(scenario())
        elapsed = time.perf_counter() - started
        gate.set()

        assert elapsed < 2
        assert table.get(0).status is RowStatus.MEASURING

    def test_interpreter_exit_is_prompt(self):
        env = dict(os.environ, PYTHONPATH=os.pathsep.join([str(ROOT), str(TESTS)]))
        result = subprocess.run(
            [sys.executable, "-c", QUIT_WHILE_MEASURING],
            capture_output=True,
            text=True,
            cwd=ROOT,
            env=env,
            timeout=60,
        )

        assert result.returncode == 0, result.stderr
        assert float(result.stdout.strip().splitlines()[-1]) < 2
