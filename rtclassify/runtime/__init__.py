"""rtclassify.runtime: エンジン非依存の推論実行・集計・順位付け."""

from .device_buffer import DeviceBuffer
from .interfaces import IExecutionContext, IExecutionEngine
from .preprocess import preprocess_pixels
from .profiler import ProfilingAggregator, ProfilingState
from .ranker import ResultRanker
from .runner import BATCH_SIZE, InferenceRunner, InferenceRunResult
from .types import (
    ClassScore,
    DecisionResult,
    LayerTimingReport,
    RankedClass,
    TensorBinding,
)

__all__ = [
    "BATCH_SIZE",
    "ClassScore",
    "DecisionResult",
    "DeviceBuffer",
    "IExecutionContext",
    "IExecutionEngine",
    "InferenceRunner",
    "InferenceRunResult",
    "LayerTimingReport",
    "ProfilingAggregator",
    "ProfilingState",
    "RankedClass",
    "ResultRanker",
    "TensorBinding",
    "preprocess_pixels",
]
