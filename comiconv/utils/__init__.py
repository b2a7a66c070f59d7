"""
Utility functions for the comiconv pipeline.
"""
from comiconv.utils.progress import (
    ProgressSink,
    NullProgressSink,
    LoggingProgressSink
)

from comiconv.utils.metrics import (
    get_cpu_mem,
    calculate_image_metrics,
    measure_quality,
    measure_conversion_performance,
    PerformanceTimer
)

from comiconv.utils.file_handling import (
    output_extension,
    output_path_for,
    temp_file_context,
    atomic_write
)

__all__ = [
    # Progress reporting
    'ProgressSink',
    'NullProgressSink',
    'LoggingProgressSink',

    # Metrics utilities
    'get_cpu_mem',
    'calculate_image_metrics',
    'measure_quality',
    'measure_conversion_performance',
    'PerformanceTimer',

    # File handling utilities
    'output_extension',
    'output_path_for',
    'temp_file_context',
    'atomic_write'
]
