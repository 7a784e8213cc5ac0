"""
Property-Based Tests for the Word Counter

Tests that concurrent updates to the shared counter are never lost.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from hypothesis import given, settings, strategies as st

from src.core.dispatcher import OutboundQueue
from src.services.bot.counter import SharedCounter
from src.services.bot.handlers import WordCounterHandler
from tests.utils import privmsg


word = st.text(alphabet='abcdefghijklmnopqrstuvwxyz', min_size=1, max_size=8)
body = st.lists(word, max_size=12).map(" ".join)


class TestCounterAccumulation:
    """
    Property: after any set of increments complete, the counter equals their
    sum, regardless of interleaving.
    """

    @settings(max_examples=50, deadline=None)
    @given(amounts=st.lists(st.integers(min_value=0, max_value=1000), max_size=200))
    def test_threaded_adds_sum_exactly(self, amounts):
        counter = SharedCounter()

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(counter.add, amounts))

        assert counter.value == sum(amounts)

    @settings(max_examples=50, deadline=None)
    @given(initial=st.integers(min_value=0, max_value=10**6),
           amounts=st.lists(st.integers(min_value=0, max_value=1000), max_size=50))
    def test_total_is_monotonic(self, initial, amounts):
        counter = SharedCounter(initial)
        previous = initial

        for amount in amounts:
            total = counter.add(amount)
            assert total >= previous
            previous = total

        assert counter.value == initial + sum(amounts)


class TestWordCounterHandler:
    """
    Property: concurrently dispatched messages add exactly their word counts,
    and the report reflects the total.
    """

    @settings(max_examples=50, deadline=None)
    @given(bodies=st.lists(body, max_size=60))
    def test_concurrent_messages_count_every_word(self, bodies):
        async def _run():
            handler = WordCounterHandler("!words")
            sink = OutboundQueue()
            await asyncio.gather(*(handler.handle(privmsg(b), sink) for b in bodies))
            await handler.handle(privmsg("!words"), sink)
            return handler, sink.drain_nowait()

        handler, sent = asyncio.run(_run())
        expected = sum(len(b.split()) for b in bodies)

        assert handler.counter.value == expected
        assert [m.params[1] for m in sent] == [f"dave: I have counted {expected} words."]
