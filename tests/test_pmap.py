import random
import threading
import time

import pytest

from ledger_ingest.pmap import p_map


def test_p_map_preserves_input_order():
    def slow_square(x: int) -> int:
        time.sleep(random.uniform(0, 0.01))
        return x * x

    assert p_map(range(20), slow_square, concurrency=5) == [x * x for x in range(20)]


def test_p_map_respects_concurrency_bound():
    lock = threading.Lock()
    active = 0
    peak = 0

    def track(x: int) -> int:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.005)
        with lock:
            active -= 1
        return x

    assert p_map(range(12), track, concurrency=3) == list(range(12))
    assert 1 <= peak <= 3


def test_p_map_on_error_substitutes_fallback():
    def mapper(x: int) -> str:
        if x % 2:
            raise RuntimeError(f"odd {x}")
        return f"ok {x}"

    out = p_map(range(5), mapper, concurrency=2, on_error=lambda item, exc: f"fallback {item}")
    assert out == ["ok 0", "fallback 1", "ok 2", "fallback 3", "ok 4"]


def test_p_map_propagates_without_on_error():
    def boom(x: int) -> int:
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        p_map([1, 2, 3], boom, concurrency=2)


@pytest.mark.parametrize("bad", [0, -1, 1.5])
def test_p_map_rejects_bad_concurrency(bad):
    with pytest.raises(ValueError):
        p_map([1], lambda x: x, concurrency=bad)


def test_p_map_empty_input():
    assert p_map([], lambda x: x, concurrency=4) == []
