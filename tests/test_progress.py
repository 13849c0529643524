"""Tests for the batching progress channel."""

import asyncio

from progress import ProgressChannel, pump


async def collect(channel, window=0.05, idle=0.01):
    return [batch async for batch in channel.batches(window, idle)]


class TestProgressChannel:
    def test_chunks_in_one_window_are_joined(self):
        async def scenario():
            channel = ProgressChannel()
            channel.send("ubnt@10.0.0.5\n")
            channel.send("BZ.v4.3# ")
            channel.close()
            return await collect(channel)

        assert asyncio.run(scenario()) == ["ubnt@10.0.0.5\nBZ.v4.3# "]

    def test_separate_windows(self):
        async def producer(channel):
            channel.send("one")
            await asyncio.sleep(0.3)
            channel.send("two")
            channel.close()

        async def scenario():
            channel = ProgressChannel()
            batches, _ = await asyncio.gather(collect(channel), producer(channel))
            return batches

        assert asyncio.run(scenario()) == ["one", "two"]

    def test_empty_stream(self):
        async def scenario():
            channel = ProgressChannel()
            channel.close()
            return await collect(channel)

        assert asyncio.run(scenario()) == []

    def test_send_after_close(self):
        async def scenario():
            channel = ProgressChannel()
            channel.close()
            return channel.send("late")

        assert asyncio.run(scenario()) is False

    def test_send_from_worker_thread(self):
        async def scenario():
            channel = ProgressChannel()
            loop = asyncio.get_running_loop()

            def work():
                channel.send("from thread\n")
                return "done"

            consumer = asyncio.ensure_future(collect(channel))
            await loop.run_in_executor(None, work)
            channel.close()
            return await consumer

        assert asyncio.run(scenario()) == ["from thread\n"]

    def test_consumer_leaving_detaches(self):
        async def scenario():
            channel = ProgressChannel()
            channel.send("first")
            batches = channel.batches(0.05, 0.01)
            first = await batches.__anext__()
            await batches.aclose()
            return first, channel.send("ignored")

        assert asyncio.run(scenario()) == ("first", False)

    def test_send_after_loop_closed(self):
        async def make():
            return ProgressChannel()

        channel = asyncio.run(make())
        assert channel.send("nobody listening") is False

    def test_pump(self):
        received = []

        async def scenario():
            channel = ProgressChannel()
            channel.send("a")
            channel.send("b")
            channel.close()
            await pump(channel, received.append, 0.05, 0.01)

        asyncio.run(scenario())
        assert received == ["ab"]

    def test_pump_detaches_failing_consumer(self):
        calls = []

        def consumer(batch):
            calls.append(batch)
            raise ValueError("render failed")

        async def scenario():
            channel = ProgressChannel()
            channel.send("a")
            await pump(channel, consumer, 0.05, 0.01)
            return channel.send("b")

        assert asyncio.run(scenario()) is False
        assert calls == ["a"]
