"""
Utils package initialization.
Import semua utilities di sini agar mudah diakses.
"""

from .config import Config
from .metrics import metrics, measure_time, MetricsCollector

__all__ = ['Config', 'metrics', 'measure_time', 'MetricsCollector']
