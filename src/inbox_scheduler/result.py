"""Result type for upstream provider calls and the mock-fallback policy.

Gateways never swallow failures themselves. They return ``Ok(value)`` or
``Err(ProviderError)`` and the calling agent decides, through
:func:`resolve_with_fallback`, whether a failure becomes a typed error or is
replaced by mock data.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from inbox_scheduler.errors import AppError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderError:
    """A failed upstream call.

    Parameters
    ----------
    provider:
        Short provider name, e.g. ``"gmail"`` or ``"calendar"``.
    operation:
        The gateway operation that failed, e.g. ``"create_event"``.
    message:
        Upstream error text (status line plus provider message).
    status_code:
        Upstream HTTP status, or None for transport errors.
    classified:
        The typed error a recognised message maps to, or None.
    unconfigured:
        True when no provider credentials are configured at all.
    """

    provider: str
    operation: str
    message: str
    status_code: int | None = None
    classified: AppError | None = None
    unconfigured: bool = False

    @property
    def recognized(self) -> bool:
        return self.classified is not None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: ProviderError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def resolve_with_fallback(result: Result[T], fallback: Callable[[], T]) -> T:
    """Apply the mock-fallback policy to *result*.

    - ``Ok``: the wrapped value.
    - ``Err`` with a recognised error: the typed :class:`AppError` is raised.
    - Any other ``Err``: *fallback* is called and its value returned.
    """
    if isinstance(result, Ok):
        return result.value

    error = result.error
    if error.classified is not None:
        raise error.classified
    if error.unconfigured:
        logger.debug("%s.%s not configured; using mock data", error.provider, error.operation)
    else:
        logger.warning(
            "%s.%s failed (%s); falling back to mock data",
            error.provider,
            error.operation,
            error.message,
        )
    return fallback()


__all__ = ["Err", "Ok", "ProviderError", "Result", "resolve_with_fallback"]
