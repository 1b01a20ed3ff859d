import asyncio
from typing import List

import pytest

from datalake_sdk.common.batch import Batch
from datalake_sdk.common.error_codes import OperationCancelledError, ValidationError


class Tracker:
    def __init__(self):
        self.in_flight = 0
        self.max_in_flight = 0
        self.started: List[int] = []
        self.finished: List[int] = []

    def operation(self, index: int, fail: bool = False, yields: int = 3):
        async def run() -> None:
            self.started.append(index)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                for _ in range(yields):
                    await asyncio.sleep(0)
                if fail:
                    raise RuntimeError(f"operation {index} failed")
                self.finished.append(index)
            finally:
                self.in_flight -= 1

        return run


class TestBatch:
    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            Batch(0)

        assert exc_info.value.error_code is ValidationError.CONCURRENCY_ERROR

    @pytest.mark.asyncio
    async def test_empty_batch_completes(self):
        batch = Batch(3)

        await batch.do()

        assert batch.completed == 0

    @pytest.mark.asyncio
    async def test_runs_all_with_bounded_concurrency(self):
        tracker = Tracker()
        batch = Batch(3)
        for index in range(10):
            batch.add_operation(tracker.operation(index))

        await batch.do()

        assert sorted(tracker.finished) == list(range(10))
        assert tracker.max_in_flight == 3
        assert batch.completed == 10
        assert batch.in_flight == 0

    @pytest.mark.asyncio
    async def test_starts_in_fifo_order(self):
        tracker = Tracker()
        batch = Batch(1)
        for index in range(5):
            batch.add_operation(tracker.operation(index))

        await batch.do()

        assert tracker.started == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_first_error_stops_new_operations(self):
        tracker = Tracker()
        batch = Batch(2)
        batch.add_operation(tracker.operation(0, yields=1))
        batch.add_operation(tracker.operation(1, yields=5))
        batch.add_operation(tracker.operation(2, fail=True, yields=1))
        for index in range(3, 10):
            batch.add_operation(tracker.operation(index))

        with pytest.raises(RuntimeError, match="operation 2 failed"):
            await batch.do()

        # operation 1 was already running and is allowed to finish
        assert 1 in tracker.finished
        assert not set(tracker.started) & set(range(4, 10))
        assert tracker.in_flight == 0

    @pytest.mark.asyncio
    async def test_cancel_event(self):
        tracker = Tracker()
        cancel_event = asyncio.Event()
        batch = Batch(1, cancel_event=cancel_event)
        batch.add_operation(tracker.operation(0))

        async def cancel() -> None:
            cancel_event.set()

        batch.add_operation(cancel)
        batch.add_operation(tracker.operation(2))

        with pytest.raises(OperationCancelledError):
            await batch.do()

        assert tracker.started == [0]

    @pytest.mark.asyncio
    async def test_cannot_add_or_run_after_start(self):
        tracker = Tracker()
        batch = Batch(2)
        batch.add_operation(tracker.operation(0))
        await batch.do()

        with pytest.raises(ValidationError):
            batch.add_operation(tracker.operation(1))
        with pytest.raises(ValidationError):
            await batch.do()

    @pytest.mark.asyncio
    async def test_task_cancellation_cancels_workers(self):
        tracker = Tracker()
        batch = Batch(2)
        for index in range(4):
            batch.add_operation(tracker.operation(index, yields=1000))

        task = asyncio.create_task(batch.do())
        for _ in range(5):
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert tracker.in_flight == 0
        assert tracker.finished == []
