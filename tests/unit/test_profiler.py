from __future__ import annotations

import pytest

from seedflow.utils.profiler import profile_block


def test_profile_block_records_duration_and_memory() -> None:
    with profile_block("work", sample_interval_ms=5) as stats:
        payload = [bytes(1024) for _ in range(256)]

    assert payload
    assert stats.label == "work"
    assert stats.duration_seconds >= 0
    assert stats.end_ts >= stats.start_ts
    assert stats.peak_rss_bytes is not None and stats.peak_rss_bytes > 0
    assert stats.cpu_percent is not None
    assert stats.peak_traced_bytes is None


def test_profile_block_without_memory_sampling_only_times() -> None:
    with profile_block("timing-only", sample_memory=False) as stats:
        pass

    assert stats.duration_seconds >= 0
    assert stats.peak_rss_bytes is None
    assert stats.cpu_percent is None


def test_profile_block_tracemalloc_peak() -> None:
    with profile_block("traced", enable_tracemalloc=True, sample_memory=False) as stats:
        buffers = [bytearray(4096) for _ in range(64)]

    assert buffers
    assert stats.peak_traced_bytes is not None and stats.peak_traced_bytes > 0


def test_profile_block_records_timing_when_block_raises() -> None:
    with pytest.raises(RuntimeError):
        with profile_block("failing", sample_memory=False) as stats:
            raise RuntimeError("boom")

    assert stats.end_ts >= stats.start_ts
