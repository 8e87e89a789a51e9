"""
Очередь изменений (insert / update / delete) для одной таблицы.

Задачи выполняются строго по одной и в порядке добавления: следующая
начинается только после того, как предыдущая полностью завершилась,
включая сетевой запрос. Добавление не блокирует вызывающего.

Каждой задаче соответствует MutationTicket с состоянием и future.
При propagate_errors=False ошибка задачи только логируется, а future
получает None (поведение "fire-and-forget").
"""
from __future__ import annotations
import asyncio
import itertools
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

MutationTask = Callable[[], Awaitable[Any]]


class QueueClosedError(RuntimeError):
    pass


class TaskState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class MutationTicket:
    def __init__(self, seq: int, label: str, task: MutationTask, future: asyncio.Future):
        self.seq = seq
        self.label = label
        self.task = task
        self.future = future
        self.state = TaskState.QUEUED
        self.error: Optional[BaseException] = None

    def __await__(self):
        return self.future.__await__()

    def __repr__(self) -> str:
        return f"<MutationTicket #{self.seq} {self.label} {self.state.value}>"


class MutationQueue:
    def __init__(self, *, name: str = "rows", propagate_errors: bool = True):
        self.name = name
        self.propagate_errors = propagate_errors
        self._queue: asyncio.Queue[MutationTicket] = asyncio.Queue()
        self._seq = itertools.count(1)
        self._worker: Optional[asyncio.Task] = None
        self._current: Optional[MutationTicket] = None
        self._closed = False

    # --- public ---

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Сколько задач ещё не завершено (в очереди + выполняющаяся)."""
        return self._queue.qsize() + (1 if self._current is not None else 0)

    def add(self, task: MutationTask, label: str = "mutation") -> MutationTicket:
        """Поставить задачу в очередь. Должно вызываться изнутри event loop."""
        if self._closed:
            raise QueueClosedError(f"mutation queue '{self.name}' is closed")
        loop = asyncio.get_running_loop()
        ticket = MutationTicket(next(self._seq), label, task, loop.create_future())
        self._queue.put_nowait(ticket)
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(), name=f"mutation-queue-{self.name}")
        logger.debug("[%s] queued %r", self.name, ticket)
        return ticket

    async def join(self) -> None:
        """Дождаться, пока очередь опустеет."""
        await self._queue.join()

    async def close(self, drain: bool = True) -> None:
        """
        Закрыть очередь: новые задачи больше не принимаются.
        drain=True: дождаться выполнения всего, что уже в очереди;
        drain=False: отменить ожидающие задачи. Выполняющаяся задача
        дорабатывает до конца: запрос в потоке прервать нельзя.
        """
        self._closed = True
        if not drain:
            self._cancel_queued()
        await self._queue.join()
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            # воркер простаивает на пустой очереди
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)

    # --- internal ---

    def _cancel_queued(self) -> None:
        while True:
            try:
                ticket = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            ticket.state = TaskState.CANCELLED
            ticket.future.cancel()
            self._queue.task_done()
            logger.info("[%s] cancelled %r", self.name, ticket)

    async def _drain(self) -> None:
        while True:
            ticket = await self._queue.get()
            try:
                await self._run(ticket)
            finally:
                self._queue.task_done()

    async def _run(self, ticket: MutationTicket) -> None:
        ticket.state = TaskState.RUNNING
        self._current = ticket
        try:
            result = await ticket.task()
        except asyncio.CancelledError:
            ticket.state = TaskState.CANCELLED
            ticket.future.cancel()
            raise
        except Exception as e:
            ticket.state = TaskState.FAILED
            ticket.error = e
            logger.error("[%s] %r failed: %s", self.name, ticket, e)
            if not ticket.future.done():
                if self.propagate_errors:
                    ticket.future.set_exception(e)
                    # ошибка уже в логе: без этого asyncio повторит её при сборке
                    # future, если тикет никто не ждёт
                    ticket.future.exception()
                else:
                    ticket.future.set_result(None)
        else:
            ticket.state = TaskState.COMPLETED
            if not ticket.future.done():
                ticket.future.set_result(result)
            logger.debug("[%s] %r done", self.name, ticket)
        finally:
            self._current = None
