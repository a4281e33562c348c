import contextlib
import threading
import time
from collections import defaultdict


class InferenceTimer:
    """Accumulates wall-clock time and call counts per named inference stage."""

    def __init__(self):
        self.timing_data = defaultdict(float)
        self.call_counts = defaultdict(int)
        self._lock = threading.Lock()

    def reset(self):
        with self._lock:
            self.timing_data.clear()
            self.call_counts.clear()

    @contextlib.contextmanager
    def time_operation(self, operation_name: str):
        """Context manager to time an operation."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start_time
            with self._lock:
                self.timing_data[operation_name] += elapsed
                self.call_counts[operation_name] += 1

    def get_summary(self) -> dict:
        with self._lock:
            timing = dict(self.timing_data)
            calls = dict(self.call_counts)

        total_time = sum(timing.values())
        summary = {
            op: {
                "time": spent,
                "calls": calls[op],
                "avg_time": spent / calls[op] if calls[op] else 0.0,
                "percentage": spent / total_time * 100 if total_time > 0 else 0.0,
            }
            for op, spent in timing.items()
        }
        summary["_total"] = total_time
        return summary

    def print_summary(self, title: str = "Inference Timing Summary"):
        summary = self.get_summary()
        total_time = summary.pop("_total")

        print(f"\n{title}")
        print("=" * len(title))
        for op, data in sorted(summary.items(), key=lambda kv: kv[1]["time"], reverse=True):
            avg_str = f"{data['avg_time']:.4f}s avg" if data["calls"] > 1 else ""
            print(
                f"  {op:<20} {data['time']:>9.4f}s ({data['percentage']:>5.1f}%) "
                f"{data['calls']:>5} calls {avg_str}"
            )
        print(f"  {'TOTAL':<20} {total_time:>9.4f}s")
