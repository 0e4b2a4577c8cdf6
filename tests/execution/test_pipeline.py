"""
Tests for docspine.execution.pipeline module.

Covers:
- results come back in submission order whatever the completion order
- never more than ``window`` requests outstanding
- per-item failures isolated as Err(APIFailure) carrying the items
- stop_on_error stops refilling but yields what was dispatched
- batching by item count and by estimated size
"""

import random
import threading

import pytest

from docspine.core.errors import SerializationError
from docspine.core.result import APIFailure, Err, Ok
from docspine.execution.pipeline import BatchPipeline


class EchoPipeline(BatchPipeline):
    """Posts each batch and yields the echoed items."""

    name = "echo"

    def __init__(self, transport, source, **kwargs):
        self.transport = transport
        super().__init__(source, **kwargs)

    def _serialize(self, item):
        if item == "unserializable":
            raise TypeError("cannot encode")
        return item

    def _dispatch(self, payloads):
        return self.transport.post("/echo", {"items": payloads})

    def _interpret(self, items, response):
        return [Ok(value) for value in response["items"]]


def echo(call):
    items = call.body["items"]
    if 42 in items:
        raise RuntimeError("item 42 rejected")
    return {"items": items}


def jitter(call):
    return random.uniform(0, 0.005)


class TestOrdering:
    """Results are FIFO with respect to the source."""

    @pytest.mark.parametrize("window", [1, 3, 10])
    def test_in_order_with_random_latency(self, make_transport, window):
        """1..100 come back as 1..100 for any window."""
        transport = make_transport(lambda call: {"items": call.body["items"]}, latency=jitter)
        pipeline = EchoPipeline(transport, range(1, 101), window=window)
        assert [r.unwrap() for r in pipeline] == list(range(1, 101))

    @pytest.mark.parametrize("window", [1, 3, 10])
    def test_in_flight_bounded(self, make_transport, window):
        """Outstanding requests never exceed the window."""
        transport = make_transport(lambda call: {"items": call.body["items"]}, latency=jitter)
        pipeline = EchoPipeline(transport, range(100), window=window)
        for _ in pipeline:
            assert pipeline.in_flight <= window
        assert pipeline.max_in_flight <= window
        assert transport.max_active <= window

    def test_window_is_filled(self, make_transport):
        """Construction dispatches a full window before any consumption."""
        gate = threading.Event()
        transport = make_transport(lambda call: (gate.wait(5), {"items": call.body["items"]})[1])
        pipeline = EchoPipeline(transport, range(20), window=4)
        assert pipeline.in_flight == 4
        assert len(transport.calls) == 4
        gate.set()
        assert len(list(pipeline)) == 20

    def test_empty_source(self, make_transport):
        """An empty source yields nothing and sends nothing."""
        transport = make_transport()
        pipeline = EchoPipeline(transport, [], window=3)
        assert list(pipeline) == []
        assert pipeline.has_next() is False
        assert transport.calls == []

    def test_invalid_window(self, make_transport):
        """Windows below one are rejected."""
        with pytest.raises(ValueError):
            EchoPipeline(make_transport(), [1], window=0)


class TestFailureIsolation:
    """One bad item does not abort the stream."""

    def test_remote_failure_carries_items(self, make_transport):
        """Item 42 fails alone; every other item succeeds in order."""
        transport = make_transport(echo, latency=jitter)
        results = list(EchoPipeline(transport, range(1, 101), window=5))

        assert len(results) == 100
        failed = [r for r in results if r.is_err()]
        assert len(failed) == 1
        assert isinstance(failed[0].error, APIFailure)
        assert failed[0].error.request == [42]
        assert isinstance(failed[0].exception, RuntimeError)
        assert [r.value for r in results if r.is_ok()] == [i for i in range(1, 101) if i != 42]
        assert results[41] is failed[0]

    def test_batch_failure_carries_whole_batch(self, make_transport):
        """A failed batch reports all of its items."""
        transport = make_transport(echo)
        results = list(EchoPipeline(transport, range(40, 50), window=2, batch_limit=5))
        assert [r.is_ok() for r in results] == [False, True, True, True, True, True]
        assert results[0].error.request == [40, 41, 42, 43, 44]

    def test_stop_on_error(self, make_transport):
        """After the failure no new requests go out; dispatched ones finish."""
        transport = make_transport(echo, latency=0.002)
        pipeline = EchoPipeline(transport, range(1, 101), window=5, stop_on_error=True)
        results = list(pipeline)

        assert pipeline.stopped
        assert sum(r.is_err() for r in results) == 1
        assert len(results) < 100
        # dispatched requests still complete; at most window - 1 follow the failure
        values = [r.value for r in results if r.is_ok()]
        assert values == sorted(values)
        assert len(results) <= 42 + 5 - 1
        assert len(transport.calls) == len(results)

    def test_interpret_failure(self, make_transport):
        """A malformed response becomes Err(APIFailure) with the batch items."""
        transport = make_transport(lambda call: {"unexpected": True})
        results = list(EchoPipeline(transport, [1, 2], window=1, batch_limit=2))
        assert len(results) == 1
        assert isinstance(results[0].exception, KeyError)
        assert results[0].error.request == [1, 2]


class TestSerializationFailures:
    """Items that cannot be serialized fail locally."""

    def test_failure_emitted_between_batches(self, make_transport):
        """The accumulated batch goes first, then the failed item, then the rest."""
        transport = make_transport(lambda call: {"items": call.body["items"]})
        source = [1, 2, "unserializable", 3, 4]
        results = list(EchoPipeline(transport, source, window=2, batch_limit=10))

        assert [type(r) for r in results] == [Ok, Ok, Err, Ok, Ok]
        assert [r.value for r in results if r.is_ok()] == [1, 2, 3, 4]
        failure = results[2].error
        assert failure.request == ["unserializable"]
        assert isinstance(failure.error, SerializationError)
        assert isinstance(failure.error.__cause__, TypeError)
        # the bad item never reached the wire
        assert all("unserializable" not in c.body["items"] for c in transport.calls)

    def test_local_failure_stops_when_requested(self, make_transport):
        """A local failure also trips stop_on_error."""
        transport = make_transport(lambda call: {"items": call.body["items"]})
        source = ["unserializable", 1, 2, 3]
        results = list(EchoPipeline(transport, source, window=1, stop_on_error=True))
        assert len(results) == 1
        assert results[0].is_err()
        assert transport.calls == []

    def test_stop_on_error_mid_stream(self, make_transport):
        """Item 42 fails to serialize: nothing after it is sent, earlier batches still arrive."""
        transport = make_transport(lambda call: {"items": call.body["items"]}, latency=jitter)
        source = ["unserializable" if i == 42 else i for i in range(1, 101)]
        results = list(
            EchoPipeline(transport, source, window=3, batch_limit=5, stop_on_error=True)
        )

        assert [r.value for r in results[:-1]] == list(range(1, 42))
        assert all(r.is_ok() for r in results[:-1])
        assert results[-1].is_err()
        assert results[-1].error.request == ["unserializable"]
        sent = [item for call in transport.calls for item in call.body["items"]]
        assert max(sent) == 41
        assert sent == list(range(1, 42))


class TestBatching:
    """Batch boundaries."""

    def test_batch_limit(self, make_transport):
        """Batches close at batch_limit items."""
        transport = make_transport(lambda call: {"items": call.body["items"]})
        list(EchoPipeline(transport, range(25), window=3, batch_limit=10))
        assert [len(c.body["items"]) for c in transport.calls] == [10, 10, 5]

    def test_batch_target_bytes(self, make_transport):
        """Batches close once the estimated size reaches the target."""
        transport = make_transport(lambda call: {"items": call.body["items"]})
        source = ["x" * 98] * 6  # 100 bytes each once JSON-encoded
        list(EchoPipeline(transport, source, window=3, batch_limit=100, batch_target_bytes=250))
        assert [len(c.body["items"]) for c in transport.calls] == [3, 3]

    def test_dispatch_exception_becomes_failure(self, make_transport):
        """A dispatch that raises fails its batch only."""

        class Flaky(EchoPipeline):
            def _dispatch(self, payloads):
                if payloads == [2]:
                    raise ConnectionError("down")
                return super()._dispatch(payloads)

        transport = make_transport(lambda call: {"items": call.body["items"]})
        results = list(Flaky(transport, [1, 2, 3], window=2))
        assert [r.is_ok() for r in results] == [True, False, True]
        assert isinstance(results[1].exception, ConnectionError)


class TestHasNext:
    """has_next reflects pending work."""

    def test_has_next(self, make_transport):
        transport = make_transport(lambda call: {"items": call.body["items"]})
        pipeline = EchoPipeline(transport, [1, 2], window=1)
        assert pipeline.has_next()
        next(pipeline)
        next(pipeline)
        assert not pipeline.has_next()
        with pytest.raises(StopIteration):
            next(pipeline)
