"""Unit tests for in-process metrics."""

from pollster.monitoring.metrics import Counter, Histogram


class TestCounter:
    def test_inc_per_label_set(self):
        counter = Counter("test_total", "test")

        counter.inc(outcome="batch")
        counter.inc(outcome="batch")
        counter.inc(2, outcome="error")

        assert counter.get(outcome="batch") == 2
        assert counter.get(outcome="error") == 2
        assert counter.get(outcome="empty") == 0

    def test_label_order_is_irrelevant(self):
        counter = Counter("test_total", "test")

        counter.inc(a=1, b=2)

        assert counter.get(b=2, a=1) == 1

    def test_reset(self):
        counter = Counter("test_total", "test")
        counter.inc()
        counter.reset()

        assert counter.get() == 0


class TestHistogram:
    def test_observe_into_buckets(self):
        hist = Histogram("test_seconds", "test", buckets=[0.1, 1.0])

        hist.observe(0.05)
        hist.observe(0.5)
        hist.observe(5.0)

        assert hist.counts[()] == [1, 1, 1]
        assert hist.total() == 3

    def test_reset(self):
        hist = Histogram("test_seconds", "test", buckets=[1.0])
        hist.observe(0.5)
        hist.reset()

        assert hist.total() == 0
