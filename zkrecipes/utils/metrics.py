"""
Metrics collector menggunakan Prometheus.
File ini mengumpulkan data performa recipes seperti
lock wait time, watch wakeups, queue size, dan resource usage.
"""

from typing import Optional
import time

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
import psutil


class MetricsCollector:
    """
    Class untuk mengumpulkan metrics lock dan queue.
    Menggunakan Prometheus format untuk monitoring.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # Lock metrics
        self.locks_acquired = Counter(
            'zkrecipes_lock_acquired_total',
            'Total number of lock acquisitions',
            ['root'],
            registry=self.registry
        )
        self.locks_released = Counter(
            'zkrecipes_lock_released_total',
            'Total number of lock releases',
            ['root'],
            registry=self.registry
        )
        self.lock_wait = Histogram(
            'zkrecipes_lock_wait_seconds',
            'Time spent between node creation and lock ownership',
            ['root'],
            registry=self.registry
        )

        # Watch wakeups: berapa kali blocked caller dibangunkan
        self.watch_wakeups = Counter(
            'zkrecipes_watch_wakeups_total',
            'Number of watch notifications that woke a waiter',
            ['kind', 'event'],
            registry=self.registry
        )

        # Queue metrics
        self.items_enqueued = Counter(
            'zkrecipes_queue_enqueued_total',
            'Total number of enqueued items',
            ['root'],
            registry=self.registry
        )
        self.items_dequeued = Counter(
            'zkrecipes_queue_dequeued_total',
            'Total number of dequeued items',
            ['root'],
            registry=self.registry
        )
        self.queue_size = Gauge(
            'zkrecipes_queue_size',
            'Last observed queue size',
            ['root'],
            registry=self.registry
        )

        # System metrics
        self.cpu_usage = Gauge('cpu_usage_percent', 'CPU usage percentage', registry=self.registry)
        self.memory_usage = Gauge('memory_usage_percent', 'Memory usage percentage', registry=self.registry)

    def record_lock_acquired(self, root: str, wait_seconds: float):
        self.locks_acquired.labels(root=root).inc()
        self.lock_wait.labels(root=root).observe(wait_seconds)

    def record_lock_released(self, root: str):
        self.locks_released.labels(root=root).inc()

    def record_wakeup(self, kind: str, event: str):
        """
        Record satu watch wakeup.

        Args:
            kind: 'node' (predecessor watch) atau 'children' (queue watch)
            event: Tipe event yang diterima
        """
        self.watch_wakeups.labels(kind=kind, event=event).inc()

    def record_enqueue(self, root: str):
        self.items_enqueued.labels(root=root).inc()

    def record_dequeue(self, root: str):
        self.items_dequeued.labels(root=root).inc()

    def set_queue_size(self, root: str, size: int):
        """Update queue size"""
        self.queue_size.labels(root=root).set(size)

    def update_system_metrics(self):
        """Update CPU dan memory usage"""
        self.cpu_usage.set(psutil.cpu_percent())
        self.memory_usage.set(psutil.virtual_memory().percent)

    def get_metrics(self) -> bytes:
        """
        Export metrics dalam Prometheus format.
        Returns: Metrics data dalam bytes
        """
        self.update_system_metrics()
        return generate_latest(self.registry)


# Context manager untuk measure waktu eksekusi
class measure_time:
    """
    Context manager untuk mengukur execution time.

    Contoh penggunaan:
        with measure_time() as timer:
            await lock.acquire()
        print(f"Waited {timer.elapsed}s")
    """

    def __init__(self):
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.monotonic() - self.start_time
        return False


# Singleton instance
metrics = MetricsCollector()
