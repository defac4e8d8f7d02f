"""rtclassify.tensorrt: TensorRTによるエンジン生成・読み込み・実行.

tensorrt モジュールは各クラスの使用時に読み込むため,
未インストール環境でも本パッケージのimport自体は成功する.
"""

from .compiler import NetworkCompiler
from .engine import (
    TensorRTEngine,
    TensorRTExecutionContext,
    check_tensorrt_availability,
    create_layer_profiler,
)
from .trt_logger import create_trt_logger

__all__ = [
    "NetworkCompiler",
    "TensorRTEngine",
    "TensorRTExecutionContext",
    "check_tensorrt_availability",
    "create_layer_profiler",
    "create_trt_logger",
]
