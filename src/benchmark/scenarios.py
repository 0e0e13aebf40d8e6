"""Load scenarios comparing a cached user service against an uncached baseline."""
import logging
import random
import time
from dataclasses import dataclass

from benchmark.harness import ActionExecutor, CountDownLatch, run_workers
from benchmark.report import BenchmarkReport
from models.user import Gender
from schemas.user import UserRecord
from services.user_service import UserService
from services.user_store import UserStore

logger = logging.getLogger(__name__)

LOAD_USER_TEMPLATE = UserRecord(
    first_name="Terry",
    last_name="Jerry",
    gender=Gender.ATTACK_HELICOPTER,
)


def new_load_user() -> UserRecord:
    """A fresh transient user for load runs."""
    return LOAD_USER_TEMPLATE.copy_without_id()


async def seed_users(store: UserStore, count: int) -> list[UserRecord]:
    """Insert `count` identical users in one transaction and return them."""
    start = time.perf_counter()
    users = await store.save_all([new_load_user() for _ in range(count)])
    logger.info(
        "Seeded %s users in %.1f ms", count, (time.perf_counter() - start) * 1000,
    )
    return users


@dataclass
class LinearScenarioResult:
    """Sequential list_users timings for a cached and an uncached service."""

    cycles: int
    cached_ms: float
    baseline_ms: float


async def _time_list_users(service: UserService, cycles: int) -> float:
    start = time.perf_counter()
    for _ in range(cycles):
        await service.list_users()
    return (time.perf_counter() - start) * 1000


async def run_linear_scenario(
    cached: UserService,
    baseline: UserService,
    cycles: int = 1000,
) -> LinearScenarioResult:
    """Call list_users `cycles` times on each service, one after the other."""
    # Warm the cached list so the timed loop measures hits only
    await cached.list_users()
    cached_ms = await _time_list_users(cached, cycles)
    baseline_ms = await _time_list_users(baseline, cycles)
    logger.info(
        "Linear scenario (%s cycles): cached %.1f ms, baseline %.1f ms",
        cycles,
        cached_ms,
        baseline_ms,
    )
    return LinearScenarioResult(cycles=cycles, cached_ms=cached_ms, baseline_ms=baseline_ms)


async def run_mixed_load_scenario(
    cached: UserService,
    baseline: UserService,
    workers: int = 11,
    cycles: int = 1000,
    list_probability: float = 1.0,
    save_probability: float = 0.01,
    rng: random.Random | None = None,
) -> BenchmarkReport:
    """
    Run list readers against both services alongside one writer.

    workers - 1 readers call list_users, alternating between the cached and
    the baseline service. A single writer saves a new user through the cached
    service and then calls reload_users() when the service has one, so the
    cached list is refreshed after each write.
    """
    if workers < 2:
        raise ValueError("workers must be at least 2 (readers plus one writer)")
    rng = rng or random.Random()
    latch = CountDownLatch(workers)
    executors: list[ActionExecutor] = []

    for i in range(workers - 1):
        service = cached if i % 2 == 0 else baseline
        suffix = "cached" if i % 2 == 0 else "baseline"
        executors.append(
            ActionExecutor(
                name=f"list-users-{suffix}-{i}",
                latch=latch,
                cycles=cycles,
                probability=list_probability,
                action=service.list_users,
                rng=random.Random(rng.random()),
            ),
        )

    async def save_and_reload() -> None:
        await cached.save_user(new_load_user())
        reload_users = getattr(cached, "reload_users", None)
        if reload_users is not None:
            await reload_users()

    executors.append(
        ActionExecutor(
            name="save-user",
            latch=latch,
            cycles=cycles,
            probability=save_probability,
            action=save_and_reload,
            rng=random.Random(rng.random()),
        ),
    )
    return await run_workers(executors, latch, name="mixed-load")
