# storefront/ftypes.py
# Small functional types: Maybe, Either and the four-state Resource wrapper
# that every live store publishes.

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
L = TypeVar("L")
R = TypeVar("R")


# Maybe (optional value)


@dataclass(frozen=True)
class Maybe(Generic[T]):
    """
    Maybe-обёртка (Option): Maybe.some(value) или Maybe.nothing().
    """

    value: Optional[T]

    @staticmethod
    def some(value: T) -> "Maybe[T]":
        return Maybe(value)

    @staticmethod
    def nothing() -> "Maybe[None]":
        return Maybe(None)

    @staticmethod
    def of(value: Optional[T]) -> "Maybe[T]":
        return Maybe(value)

    def is_some(self) -> bool:
        return self.value is not None

    def is_none(self) -> bool:
        return self.value is None

    def get_or_else(self, default: U) -> T | U:
        return self.value if self.is_some() else default

    def __repr__(self) -> str:
        return f"Some({self.value})" if self.is_some() else "Nothing"


# Either (Left / Right)


@dataclass(frozen=True)
class Either(Generic[L, R]):
    """
    Either<L, R>: левая ветвь - ошибка, правая - успешное значение.
    """

    is_left: bool
    value: Union[L, R]

    @staticmethod
    def left(value: L) -> "Either[L, R]":
        return Either(True, value)

    @staticmethod
    def right(value: R) -> "Either[L, R]":
        return Either(False, value)

    @property
    def is_right(self) -> bool:
        return not self.is_left

    def map(self, fn: Callable[[R], U]) -> "Either[L, U]":
        return Either.right(fn(self.value)) if not self.is_left else self  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Left({self.value})" if self.is_left else f"Right({self.value})"


# Resource (Unspecified / Loading / Success / Error)


class ResourceState(Enum):
    UNSPECIFIED = "unspecified"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Resource(Generic[T]):
    """
    Состояние удалённой операции или подписки.
    UNSPECIFIED - до первой подписки, не то же самое что LOADING.
    """

    state: ResourceState
    data: Optional[T] = None
    message: Optional[str] = None

    @staticmethod
    def unspecified() -> "Resource[T]":
        return Resource(ResourceState.UNSPECIFIED)

    @staticmethod
    def loading() -> "Resource[T]":
        return Resource(ResourceState.LOADING)

    @staticmethod
    def success(data: T) -> "Resource[T]":
        return Resource(ResourceState.SUCCESS, data=data)

    @staticmethod
    def error(message: str) -> "Resource[T]":
        return Resource(ResourceState.ERROR, message=message)

    @property
    def is_unspecified(self) -> bool:
        return self.state is ResourceState.UNSPECIFIED

    @property
    def is_loading(self) -> bool:
        return self.state is ResourceState.LOADING

    @property
    def is_success(self) -> bool:
        return self.state is ResourceState.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.state is ResourceState.ERROR

    def __repr__(self) -> str:
        if self.is_success:
            return f"Success({self.data})"
        if self.is_error:
            return f"Error({self.message})"
        return self.state.name.capitalize()
