"""Explicit fallback chains.

Hey future me - the old client had "try backend, catch, try mirror, catch, try
other mirror..." nested four levels deep with rotation side effects hidden in
the catch blocks. Now a chain is just a LIST of steps run by one small loop:

    steps = [
        FallbackStep("backend", lambda: backend.search(base, q)),
        *pool_steps(piped_pool, lambda inst: mirrors.piped_search(inst, q)),
        *pool_steps(invidious_pool, lambda inst: mirrors.invidious_search(inst, q)),
    ]
    outcome = await run_fallback_chain("youtube-search", steps)

The order and the rotate/promote side effects can be read (and tested) on their own.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from unistream.domain.exceptions import PaywallRequiredError, ProviderUnavailableError
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FallbackStep(Generic[T]):
    """One attempt in a chain.

    Attributes:
        name: Shown in logs and in FallbackOutcome.via
        attempt: Coroutine factory doing the actual work
        on_success: Side effect after an accepted result (e.g. promote mirror)
        on_failure: Side effect after an error/rejected result (e.g. rotate pool)
        accept: Predicate on the result; a rejected result counts as failure
    """

    name: str
    attempt: Callable[[], Awaitable[T]]
    on_success: Callable[[T], None] | None = None
    on_failure: Callable[[Exception], None] | None = None
    accept: Callable[[T], bool] | None = None


@dataclass
class FallbackOutcome(Generic[T]):
    value: T
    via: str


class _Rejected(Exception):
    pass


# Yo, PaywallRequiredError is a VERDICT, not a transient failure - trying the next
# mirror would not make a VIP song free. Those stop the chain immediately.
async def run_fallback_chain(
    label: str,
    steps: Sequence[FallbackStep[T]],
    stop_on: tuple[type[BaseException], ...] = (PaywallRequiredError,),
) -> FallbackOutcome[T]:
    """Run steps in order until one succeeds.

    Args:
        label: Chain name for logs and the final error
        steps: Ordered attempts
        stop_on: Exception types that abort the chain and propagate unchanged

    Returns:
        Value of the first accepted step and the step's name

    Raises:
        ProviderUnavailableError: Every step failed (or there were no steps)
    """
    errors: list[str] = []
    for step in steps:
        try:
            value = await step.attempt()
            if step.accept is not None and not step.accept(value):
                raise _Rejected("result rejected")
        except stop_on:
            raise
        except Exception as e:
            errors.append(f"{step.name}: {e}")
            logger.debug(f"[{label}] step {step.name} failed: {e}")
            if step.on_failure is not None:
                step.on_failure(e)
            continue

        if step.on_success is not None:
            step.on_success(value)
        return FallbackOutcome(value=value, via=step.name)

    raise ProviderUnavailableError(
        label, "; ".join(errors) if errors else "no fallback step available"
    )


def pool_steps(
    pool: EndpointPool,
    attempt: Callable[[str], Awaitable[T]],
    accept: Callable[[T], bool] | None = None,
) -> list[FallbackStep[T]]:
    """One step per pool candidate: success promotes, failure rotates.

    Candidates are taken when the chain is BUILT (override first, then from the
    preferred pointer on), so each mirror is tried at most once per chain.
    """

    def make_step(endpoint: str) -> FallbackStep[T]:
        def on_failure(error: Exception) -> None:
            if endpoint == pool.override:
                # the override is not part of the rotation
                return
            next_endpoint = pool.rotate()
            logger.info(
                LogMessages.mirror_rotated(
                    pool=pool.name, failed=endpoint, next_endpoint=next_endpoint, error=str(error)
                )
            )

        return FallbackStep(
            name=f"{pool.name}:{endpoint}",
            attempt=lambda: attempt(endpoint),
            on_success=lambda _value: pool.promote(endpoint),
            on_failure=on_failure,
            accept=accept,
        )

    return [make_step(endpoint) for endpoint in pool.candidates()]
