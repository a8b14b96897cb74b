"""Explicit success/failure values for steps whose failure is routine.

Model output that cannot be parsed is an expected outcome of the intake
pipeline, so the classifier, extractor and segmenter hand back a ``Result``
instead of raising. The API layer turns an ``Err`` into its exception with
``unwrap()``.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err[E]]
