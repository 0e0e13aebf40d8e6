"""
Concurrent load harness.

Each ActionExecutor runs a fixed number of cycles. On every cycle it draws a
uniform value in [0, 1) and performs its action only when the draw is below
its probability. All executors of a run share a CountDownLatch that the
orchestrator waits on.

Nothing here serializes access to the services under test: workers hit the
shared store and cache concurrently, which is exactly what is being measured.
"""
import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable, Sequence

from benchmark.report import BenchmarkReport, WorkerResult

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[object]]


class CountDownLatch:
    """Barrier that opens once count_down() has been called `count` times."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("count must be non-negative")
        self._count = count
        self._released = asyncio.Event()
        if count == 0:
            self._released.set()

    @property
    def count(self) -> int:
        return self._count

    def count_down(self) -> None:
        """Decrement the count, releasing waiters when it reaches zero."""
        if self._count == 0:
            return
        self._count -= 1
        if self._count == 0:
            self._released.set()

    async def wait(self) -> None:
        """Block until the count reaches zero."""
        await self._released.wait()


class ActionExecutor:
    """
    Worker that performs an action with a fixed probability per cycle.

    The latch is counted down when the worker finishes, including when the
    action raised; the error is then re-raised from run().
    """

    def __init__(
        self,
        name: str,
        latch: CountDownLatch,
        cycles: int,
        probability: float,
        action: Action,
        rng: random.Random | None = None,
    ) -> None:
        if cycles < 0:
            raise ValueError("cycles must be non-negative")
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be between 0 and 1")
        self.name = name
        self.cycles = cycles
        self.probability = probability
        self._latch = latch
        self._action = action
        self._rng = rng or random.Random()
        self.operations = 0
        self.elapsed_ms = 0.0
        self.latencies_ms: list[float] = []

    async def run(self) -> WorkerResult:
        try:
            for _ in range(self.cycles):
                if self._rng.random() < self.probability:
                    start = time.perf_counter()
                    await self._action()
                    latency_ms = (time.perf_counter() - start) * 1000
                    self.latencies_ms.append(latency_ms)
                    self.elapsed_ms += latency_ms
                    self.operations += 1
        finally:
            logger.info(
                "%s performed %s operations in %.1f ms",
                self.name,
                self.operations,
                self.elapsed_ms,
            )
            self._latch.count_down()
        return self.result()

    def result(self) -> WorkerResult:
        return WorkerResult(
            name=self.name,
            operations=self.operations,
            elapsed_ms=self.elapsed_ms,
            latencies_ms=list(self.latencies_ms),
        )


async def run_workers(
    executors: Sequence[ActionExecutor],
    latch: CountDownLatch,
    name: str = "load",
) -> BenchmarkReport:
    """
    Run executors concurrently and aggregate their results.

    Waits on the shared latch, then collects every worker. If any worker
    failed, the first failure is raised after all workers have finished.

    Raises:
        ValueError: If the latch count does not match the number of executors.
    """
    if latch.count != len(executors):
        raise ValueError(
            f"latch count ({latch.count}) must equal the number of executors ({len(executors)})",
        )

    start = time.perf_counter()
    tasks = [asyncio.create_task(executor.run(), name=executor.name) for executor in executors]
    await latch.wait()
    wall_time_ms = (time.perf_counter() - start) * 1000

    outcomes = await asyncio.gather(*tasks, return_exceptions=True)
    errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
    if errors:
        logger.warning("%s of %s workers failed in run %s", len(errors), len(tasks), name)
        raise errors[0]

    report = BenchmarkReport(name=name, workers=list(outcomes), wall_time_ms=wall_time_ms)
    logger.info(
        "Run %s finished: %s operations in %.1f ms (%s ops/s)",
        name,
        report.total_operations,
        report.wall_time_ms,
        report.throughput_ops,
    )
    return report
