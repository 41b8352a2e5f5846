"""
Checkout saga — sequential steps with compensation.

    from storefront.checkout import _saga as S

    saga = S.step("reserve", reserve, compensate=release).then(
        lambda reservation: S.step("assign_reference", assign(reservation))
    )
    result = await S.run(saga)

When a step fails, the compensators of the steps that already succeeded
run in reverse order. A failing compensator is logged and counted; it
never hides the original error.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from kungfu import Result, Ok, Error, LazyCoroResult

logger = logging.getLogger(__name__)

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Undo action; receives the value its step produced."""


# ═══════════════════════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    name: str
    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None = None

    def then[U](self, f: Callable[[T], SagaStep[U, E]]) -> Then[T, U, E]:
        """Chain another step that needs this step's value."""
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E]:
    first: SagaStep[T, E]
    next: Callable[[T], SagaStep[U, E]]


def step[T, E](
    name: str,
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
) -> SagaStep[T, E]:
    return SagaStep(name=name, action=action, compensate=compensate)


# ═══════════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    error: E
    failed_step: str
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


# ═══════════════════════════════════════════════════════════════════════════════
# Execution
# ═══════════════════════════════════════════════════════════════════════════════

type _Recorded = tuple[str, object, Compensator[object]]


async def _run_step[T, E](
    saga_step: SagaStep[T, E],
    recorded: list[_Recorded],
) -> Result[T, E]:
    result = await saga_step.action
    match result:
        case Ok(value):
            if saga_step.compensate is not None:
                recorded.append((saga_step.name, value, saga_step.compensate))  # type: ignore[arg-type]
            return Ok(value)
        case Error(e):
            return Error(e)


async def _compensate(recorded: list[_Recorded]) -> tuple[int, int]:
    """Run compensators in reverse. Returns (run, failed)."""
    run_count = 0
    failed = 0
    for name, value, compensator in reversed(recorded):
        try:
            await compensator(value)
            run_count += 1
        except Exception:
            failed += 1
            logger.exception("compensation for step %r failed", name)
    return run_count, failed


async def run[T, U, E](
    saga: SagaStep[T, E] | Then[T, U, E],
) -> Result[SagaResult[T] | SagaResult[U], SagaError[E]]:
    """
    Execute a single step or a two-step chain.

    On failure the already-recorded compensators run before the error is
    returned.
    """
    recorded: list[_Recorded] = []
    first = saga.first if isinstance(saga, Then) else saga

    first_result = await _run_step(first, recorded)
    match first_result:
        case Error(e):
            return Error(await _failure(e, first.name, recorded))
        case Ok(value):
            pass

    if not isinstance(saga, Then):
        return Ok(SagaResult(value=value, steps_executed=1))

    second = saga.next(value)
    second_result = await _run_step(second, recorded)
    match second_result:
        case Ok(final):
            return Ok(SagaResult(value=final, steps_executed=2))
        case Error(e):
            return Error(await _failure(e, second.name, recorded))


async def _failure[E](error: E, step_name: str, recorded: list[_Recorded]) -> SagaError[E]:
    comp_run, comp_failed = await _compensate(recorded)
    return SagaError(
        error=error,
        failed_step=step_name,
        compensators_run=comp_run,
        compensators_failed=comp_failed,
    )


__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "step",
    "SagaResult",
    "SagaError",
    "run",
)
