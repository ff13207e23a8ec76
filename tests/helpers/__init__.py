from .metric_delta import get_histogram_count, histogram_observes, metric_delta

__all__ = ["get_histogram_count", "histogram_observes", "metric_delta"]
