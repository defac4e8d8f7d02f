"""
rtclassify: TensorRT image classification with per-layer profiling.

ネットワーク定義からTensorRTエンジンを生成し, 画像1枚の分類結果と
層別実行時間を出力する

Example:
    >>> from rtclassify import InferenceRunner, ResultRanker, RunConfig
    >>> from rtclassify.tensorrt import NetworkCompiler, TensorRTEngine
    >>> config = RunConfig(input_image="dog.ppm")
    >>> compiler = NetworkCompiler(config.proto_file, config.weights_file)
    >>> serialized = compiler.compile("prob")
    >>> with TensorRTEngine.load(serialized) as engine:
    ...     result = InferenceRunner(engine, config).run()
"""

from .config import RunConfig
from .errors import ConfigurationError, DataError, DataFileError, ResourceError
from .io import LabelTable, read_ppm_image
from .logging import LoggerManager
from .runtime import InferenceRunner, ProfilingAggregator, ResultRanker

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DataError",
    "DataFileError",
    "InferenceRunner",
    "LabelTable",
    "LoggerManager",
    "ProfilingAggregator",
    "ResourceError",
    "ResultRanker",
    "RunConfig",
    "read_ppm_image",
]
