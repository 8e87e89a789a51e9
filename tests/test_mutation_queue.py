import asyncio
import gc
import logging

import pytest

from rowgrid.services.mutation_queue import MutationQueue, QueueClosedError, TaskState


def test_tasks_run_in_submission_order_without_overlap():
    log = []
    running = []

    def make(i, delay):
        async def task():
            running.append(i)
            assert len(running) == 1
            log.append(("start", i))
            await asyncio.sleep(delay)
            log.append(("end", i))
            running.remove(i)
            return i
        return task

    async def run():
        queue = MutationQueue()
        # задержки убывают: без очереди задачи завершились бы в обратном порядке
        tickets = [queue.add(make(i, delay)) for i, delay in enumerate([0.05, 0.03, 0.01, 0.0])]
        results = [await t for t in tickets]
        await queue.close()
        return tickets, results

    tickets, results = asyncio.run(run())
    assert results == [0, 1, 2, 3]
    assert log == [(kind, i) for i in range(4) for kind in ("start", "end")]
    assert all(t.state is TaskState.COMPLETED for t in tickets)


def test_add_does_not_block():
    async def run():
        queue = MutationQueue()
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(0.05)

        ticket = queue.add(slow)
        assert ticket.state is TaskState.QUEUED
        assert queue.pending == 1
        await started.wait()
        assert ticket.state is TaskState.RUNNING
        await queue.join()
        assert queue.pending == 0
        return ticket

    ticket = asyncio.run(run())
    assert ticket.state is TaskState.COMPLETED


def test_failed_task_reaches_ticket_and_queue_continues():
    async def run():
        queue = MutationQueue()

        async def bad():
            raise RuntimeError("db down")

        async def good():
            return "ok"

        t1 = queue.add(bad)
        t2 = queue.add(good)
        with pytest.raises(RuntimeError, match="db down"):
            await t1
        assert await t2 == "ok"
        return t1

    t1 = asyncio.run(run())
    assert t1.state is TaskState.FAILED
    assert isinstance(t1.error, RuntimeError)


def test_fire_and_forget_mode_discards_errors():
    async def run():
        queue = MutationQueue(propagate_errors=False)

        async def bad():
            raise RuntimeError("db down")

        ticket = queue.add(bad)
        return ticket, await ticket

    ticket, result = asyncio.run(run())
    assert result is None
    assert ticket.state is TaskState.FAILED


def test_close_with_drain_runs_pending_tasks():
    done = []

    async def run():
        queue = MutationQueue()
        for i in range(3):
            async def task(i=i):
                await asyncio.sleep(0.01)
                done.append(i)
            queue.add(task)
        await queue.close(drain=True)
        with pytest.raises(QueueClosedError):
            queue.add(lambda: asyncio.sleep(0))

    asyncio.run(run())
    assert done == [0, 1, 2]


def test_close_without_drain_lets_running_task_finish():
    done = []

    async def run():
        queue = MutationQueue()
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(0.05)
            done.append("slow")
            return "written"

        async def never():
            done.append("never")

        t1 = queue.add(slow)
        t2 = queue.add(never)
        await started.wait()
        await queue.close(drain=False)
        # close вернулся только после того, как текущая задача отработала
        assert done == ["slow"]
        return t1, t2

    t1, t2 = asyncio.run(run())
    assert t1.state is TaskState.COMPLETED
    assert t1.future.result() == "written"
    assert t2.state is TaskState.CANCELLED
    assert t2.future.cancelled()


def test_unawaited_failure_is_logged_once(caplog):
    reported = []

    async def run():
        asyncio.get_running_loop().set_exception_handler(lambda _loop, ctx: reported.append(ctx))
        queue = MutationQueue()

        async def bad():
            raise RuntimeError("db down")

        ticket = queue.add(bad)
        await queue.close()
        assert ticket.state is TaskState.FAILED
        del ticket
        gc.collect()

    with caplog.at_level(logging.ERROR, logger="rowgrid.services.mutation_queue"):
        asyncio.run(run())
    assert reported == []
    assert len([r for r in caplog.records if "db down" in r.getMessage()]) == 1
