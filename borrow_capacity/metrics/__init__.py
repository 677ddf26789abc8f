"""Position health metrics"""

from .core import compute_all_metrics, compute_position_metrics, metrics_frame, min_health

__all__ = ["compute_position_metrics", "compute_all_metrics", "min_health", "metrics_frame"]
