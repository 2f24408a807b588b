"""Tests for the asyncio reader/writer lock."""

import asyncio

import pytest

from training_recommender.utils.locks import AsyncReadWriteLock


class TestAsyncReadWriteLock:
    """Tests for AsyncReadWriteLock."""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        lock = AsyncReadWriteLock()

        async with lock.read():
            async with lock.read():
                assert lock.readers == 2

        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        lock = AsyncReadWriteLock()
        events = []

        async def writer():
            async with lock.write():
                events.append("write")

        async with lock.read():
            task = asyncio.create_task(writer())
            await asyncio.sleep(0.01)
            assert events == []
            events.append("read-done")

        await task
        assert events == ["read-done", "write"]

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        """Readers arriving after a waiting writer go after it."""
        lock = AsyncReadWriteLock()
        events = []

        async def writer():
            async with lock.write():
                events.append("write")

        async def reader():
            async with lock.read():
                events.append("late-read")

        async with lock.read():
            writer_task = asyncio.create_task(writer())
            await asyncio.sleep(0.01)
            reader_task = asyncio.create_task(reader())
            await asyncio.sleep(0.01)
            assert events == []

        await asyncio.gather(writer_task, reader_task)
        assert events == ["write", "late-read"]

    @pytest.mark.asyncio
    async def test_cancelled_writer_releases_readers(self):
        lock = AsyncReadWriteLock()

        async with lock.read():
            task = asyncio.create_task(self._write(lock))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        async with lock.read():
            assert lock.readers == 1
        assert not lock.writer_active

    @staticmethod
    async def _write(lock):
        async with lock.write():
            pass
