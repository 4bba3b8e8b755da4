import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Generic, List, Optional, TypeVar

from .ftypes import Maybe

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Subscription:
    """Хэндл подписки; cancel() отписывает обработчик"""

    cancel_fn: Callable[[], None]

    def cancel(self) -> None:
        self.cancel_fn()


class _Flow(Generic[T]):
    """Горячий поток: подписчики - функции value -> None"""

    def __init__(self) -> None:
        self._subscribers: Dict[object, Callable[[T], None]] = {}

    def _register(self, handler: Callable[[T], None]) -> Subscription:
        token = object()
        self._subscribers[token] = handler
        return Subscription(lambda: self._subscribers.pop(token, None))

    def _dispatch(self, value: T) -> None:
        for handler in tuple(self._subscribers.values()):
            handler(value)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class StateFlow(_Flow[T]):
    """
    Значение, которое меняется во времени.
    Новый подписчик сразу получает текущее значение.
    """

    def __init__(self, initial: T) -> None:
        super().__init__()
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    def emit(self, value: T) -> None:
        self._value = value
        self._dispatch(value)

    def subscribe(
        self, handler: Callable[[T], None], replay: bool = True
    ) -> Subscription:
        subscription = self._register(handler)
        if replay:
            handler(self._value)
        return subscription

    def map(self, fn: Callable[[T], U]) -> "StateFlow[U]":
        """Производный поток, пересчитывается при каждом изменении"""
        derived: StateFlow[U] = StateFlow(fn(self._value))
        self.subscribe(lambda value: derived.emit(fn(value)), replay=False)
        return derived

    async def collect(self) -> AsyncIterator[T]:
        """
        Асинхронный итератор по значениям.
        Медленный потребитель видит только последнее значение (conflated).
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)

        def offer(value: T) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(value)

        subscription = self.subscribe(offer)
        try:
            while True:
                yield await queue.get()
        finally:
            subscription.cancel()


class SharedFlow(_Flow[T]):
    """Поток событий без текущего значения: получают только активные подписчики"""

    def emit(self, value: T) -> None:
        self._dispatch(value)

    def subscribe(self, handler: Callable[[T], None]) -> Subscription:
        return self._register(handler)

    async def collect(self) -> AsyncIterator[T]:
        queue: asyncio.Queue = asyncio.Queue()
        subscription = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            subscription.cancel()


class ConflatedChannel(Generic[T]):
    """
    Канал на одно значение: новый send заменяет непрочитанное.
    Потребитель читает и очищает слот (poll / receive).
    """

    def __init__(self) -> None:
        self._pending: Optional[T] = None
        self._waiters: List[asyncio.Future] = []

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def send(self, value: T) -> None:
        self._pending = value
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def poll(self) -> Maybe[T]:
        value, self._pending = self._pending, None
        return Maybe.of(value)

    async def receive(self) -> T:
        while self._pending is None:
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter
        return self.poll().value
