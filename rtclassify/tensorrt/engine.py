"""TensorRTエンジンの読み込みと同期実行.

単一入力・単一出力の分類ネットワークのみを対象とする.
デバイスバッファはPyTorchのテンソルで確保するため, pycudaは不要.
"""

import logging
from types import TracebackType
from typing import Any, List, Optional, Sequence, Type

import numpy as np

from rtclassify.errors import ConfigurationError, ResourceError
from rtclassify.logging import LoggerManager
from rtclassify.runtime.device_buffer import DeviceBuffer
from rtclassify.runtime.profiler import ProfilingAggregator
from rtclassify.runtime.types import TensorBinding
from rtclassify.tensorrt.trt_logger import create_trt_logger

logger: logging.Logger = LoggerManager().get_logger(__name__)


def check_tensorrt_availability() -> bool:
    """TensorRTの利用可否をチェック.

    Returns:
        TensorRTが利用可能な場合True
    """
    try:
        import tensorrt as trt  # noqa: F401

        return True
    except ImportError:
        return False


def create_layer_profiler(trt: Any, aggregator: ProfilingAggregator) -> Any:
    """層ごとの実行時間を aggregator へ転送する ``trt.IProfiler`` を作成する.

    Args:
        trt: tensorrt モジュール
        aggregator: 報告先の集計器

    Returns:
        実行コンテキストに設定するプロファイラ
    """

    class _LayerProfiler(trt.IProfiler):  # type: ignore[misc, name-defined]
        def __init__(self) -> None:
            trt.IProfiler.__init__(self)

        def report_layer_time(self, layer_name: str, ms: float) -> None:
            aggregator.record(layer_name, ms)

    return _LayerProfiler()


class TensorRTExecutionContext:
    """``trt.IExecutionContext`` の所有ラッパー.

    Attributes:
        context: TensorRT実行コンテキスト (解放後はNone)
    """

    def __init__(self, context: Any, trt: Any, implicit_batch: bool = False) -> None:
        """TensorRTExecutionContextを初期化.

        Args:
            context: TensorRT実行コンテキスト
            trt: tensorrt モジュール
            implicit_batch: 暗黙バッチのエンジンならTrue.
                Trueの場合は ``execute(batch_size, bindings)`` で実行する.
        """
        self.context: Optional[Any] = context
        self._trt = trt
        self.implicit_batch = implicit_batch
        # TensorRT側は弱参照のため, コンテキストと同じ寿命で保持する
        self._profiler: Optional[Any] = None

    def __enter__(self) -> "TensorRTExecutionContext":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()

    def _require_context(self) -> Any:
        if self.context is None:
            raise ResourceError("解放済みの実行コンテキストは使用できません")
        return self.context

    def set_profiler(self, aggregator: ProfilingAggregator) -> None:
        """層ごとの実行時間を aggregator へ報告させる."""
        context = self._require_context()
        self._profiler = create_layer_profiler(self._trt, aggregator)
        context.profiler = self._profiler

    def execute_sync(self, batch_size: int, buffers: Sequence[DeviceBuffer]) -> None:
        """順伝播を同期実行する.

        Args:
            batch_size: バッチサイズ (暗黙バッチのエンジンでのみ使用)
            buffers: スロット位置順に並べたデバイスバッファ

        Raises:
            ResourceError: 実行に失敗した場合
        """
        context = self._require_context()
        bindings = [buffer.device_pointer for buffer in buffers]

        # 暗黙バッチのエンジンは execute_v2 を受け付けない
        if self.implicit_batch or not hasattr(context, "execute_v2"):
            succeeded = context.execute(batch_size, bindings)
        else:
            succeeded = context.execute_v2(bindings)

        if not succeeded:
            raise ResourceError("TensorRTエンジンの実行に失敗しました")

    def release(self) -> None:
        """コンテキストを解放する. 解放済みなら何もしない."""
        if self.context is None:
            return
        self.context = None
        self._profiler = None
        logger.debug("実行コンテキストを解放")


class TensorRTEngine:
    """デシリアライズ済み ``trt.ICudaEngine`` の所有ラッパー.

    Attributes:
        engine: TensorRTエンジン (解放後はNone)
    """

    def __init__(
        self,
        engine: Any,
        trt: Any,
        runtime: Optional[Any] = None,
        trt_logger: Optional[Any] = None,
    ) -> None:
        """TensorRTEngineを初期化.

        Args:
            engine: TensorRTエンジン
            trt: tensorrt モジュール
            runtime: エンジンを生成したランタイム (エンジンより先に破棄させない)
            trt_logger: ランタイムに渡したロガー
        """
        self.engine: Optional[Any] = engine
        self._trt = trt
        self._runtime = runtime
        self._trt_logger = trt_logger

    @classmethod
    def load(
        cls,
        serialized_engine: bytes,
        trt_logger: Optional[Any] = None,
        verbose: bool = False,
    ) -> "TensorRTEngine":
        """シリアライズ済みエンジンを読み込む.

        Args:
            serialized_engine: エンジンのバイト列
            trt_logger: TensorRTロガー. 省略時はブリッジロガーを作成する.
            verbose: ブリッジロガー作成時の詳細モード

        Returns:
            読み込んだエンジン

        Raises:
            ImportError: TensorRTがインストールされていない場合
            RuntimeError: デシリアライズに失敗した場合
        """
        if not check_tensorrt_availability():
            raise ImportError(
                "TensorRTがインストールされていません. "
                "TensorRT SDKをインストールしてください."
            )

        import tensorrt as trt

        trt_logger = trt_logger or create_trt_logger(trt, verbose=verbose)
        runtime = trt.Runtime(trt_logger)
        engine = runtime.deserialize_cuda_engine(serialized_engine)
        if engine is None:
            raise RuntimeError(
                "エンジンのデシリアライズに失敗しました "
                "(破損, またはTensorRTのバージョン不一致の可能性があります)"
            )

        logger.debug(f"TensorRTエンジンを読み込み: {len(serialized_engine)} bytes")
        return cls(engine, trt, runtime=runtime, trt_logger=trt_logger)

    def __enter__(self) -> "TensorRTEngine":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()

    def _require_engine(self) -> Any:
        if self.engine is None:
            raise ResourceError("解放済みのエンジンは使用できません")
        return self.engine

    @property
    def implicit_batch(self) -> bool:
        """暗黙バッチ (Caffe等の旧形式) のエンジンならTrue."""
        engine = self._require_engine()
        return bool(getattr(engine, "has_implicit_batch_dimension", False))

    def _tensor_names(self) -> List[str]:
        engine = self._require_engine()
        return [engine.get_tensor_name(i) for i in range(engine.num_io_tensors)]

    @property
    def num_bindings(self) -> int:
        """入出力テンソルの総数."""
        return int(self._require_engine().num_io_tensors)

    def resolve_binding(self, name: str) -> TensorBinding:
        """テンソル名からバインディングを解決する.

        スロット位置はビルドごとに変わり得るため, 必ず名前で引く.
        明示バッチのエンジンでは先頭のバッチ次元を除いた形状を返す.

        Args:
            name: テンソル名

        Returns:
            解決済みバインディング

        Raises:
            ConfigurationError: 名前が見つからない, または形状が動的な場合
        """
        engine = self._require_engine()
        names = self._tensor_names()
        if name not in names:
            raise ConfigurationError(
                f"テンソル '{name}' がエンジンに存在しません (候補: {names})"
            )

        shape = tuple(int(d) for d in engine.get_tensor_shape(name))
        if any(d < 0 for d in shape):
            raise ConfigurationError(
                f"動的形状のテンソルはサポートしていません: {name} {shape}"
            )

        if not self.implicit_batch and len(shape) > 1:
            shape = shape[1:]

        dtype = np.dtype(self._trt.nptype(engine.get_tensor_dtype(name)))
        mode = engine.get_tensor_mode(name)
        return TensorBinding(
            name=name,
            slot_index=names.index(name),
            shape=shape,
            element_size=dtype.itemsize,
            is_input=mode == self._trt.TensorIOMode.INPUT,
        )

    def create_context(self) -> TensorRTExecutionContext:
        """実行コンテキストを作成する.

        Raises:
            ResourceError: コンテキストの作成に失敗した場合
        """
        context = self._require_engine().create_execution_context()
        if context is None:
            raise ResourceError("実行コンテキストの作成に失敗しました")
        return TensorRTExecutionContext(
            context, self._trt, implicit_batch=self.implicit_batch
        )

    def release(self) -> None:
        """エンジンとランタイムを解放する. 解放済みなら何もしない."""
        if self.engine is None:
            return
        self.engine = None
        self._runtime = None
        logger.debug("TensorRTエンジンを解放")
