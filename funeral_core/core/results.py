"""Result types for multi-step use cases.

Use cases that span the local store and the remote ERP return ``Ok`` or
``Err`` instead of raising, so callers handle failure explicitly and can see
which steps had already committed when a later step failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeAlias, TypeVar

from funeral_core.core.errors import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """
    Failed use case.

    error: the original exception, unchanged
    completed_steps: steps that committed before the failure (not compensated)
    artifacts: identifiers an operator needs to reconcile (journal entry id, case id)
    """

    error: DomainError
    completed_steps: tuple[str, ...] = ()
    artifacts: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    @property
    def is_partial(self) -> bool:
        return bool(self.completed_steps)


Result: TypeAlias = Ok[T] | Err


class StepTracker:
    """Records completed saga steps and the artifacts they produced."""

    def __init__(self) -> None:
        self.completed: list[str] = []
        self.artifacts: dict[str, str] = {}

    def done(self, step: str, **artifacts: str) -> None:
        self.completed.append(step)
        self.artifacts.update(artifacts)

    def fail(self, error: DomainError) -> Err:
        return Err(
            error=error,
            completed_steps=tuple(self.completed),
            artifacts=dict(self.artifacts),
        )


class UseCaseFailed(Exception):
    """Raised at the API boundary to surface an Err (with partial progress) as a response."""

    def __init__(self, err: Err):
        super().__init__(err.error.message)
        self.err = err


def unwrap(result: Result[T]) -> T:
    """Return the Ok value or raise UseCaseFailed carrying the Err."""
    if isinstance(result, Err):
        raise UseCaseFailed(result)
    return result.value
