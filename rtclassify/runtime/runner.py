"""推論実行とプロファイリングのオーケストレーション."""

import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from rtclassify.config import RunConfig
from rtclassify.errors import ConfigurationError
from rtclassify.io.image_loader import read_ppm_image
from rtclassify.logging import LoggerManager
from rtclassify.runtime.device_buffer import DeviceBuffer
from rtclassify.runtime.interfaces import IExecutionEngine
from rtclassify.runtime.preprocess import preprocess_pixels
from rtclassify.runtime.profiler import ProfilingAggregator
from rtclassify.runtime.types import LayerTimingReport, TensorBinding

logger: logging.Logger = LoggerManager().get_logger(__name__)

BATCH_SIZE = 1
EXPECTED_BINDINGS = 2
_OUTPUT_DTYPE = np.dtype(np.float32)


@dataclass(frozen=True)
class InferenceRunResult:
    """1セッション分の推論結果.

    Attributes:
        probabilities: 最終反復の出力ベクトル (float32)
        layer_timing: 層別平均実行時間
        iterations: 実行回数
        input_binding: 入力バインディング
        output_binding: 出力バインディング
        wall_time_ms: 全反復の合計経過時間 (ms)
    """

    probabilities: np.ndarray
    layer_timing: LayerTimingReport
    iterations: int
    input_binding: TensorBinding
    output_binding: TensorBinding
    wall_time_ms: float

    @property
    def avg_wall_time_ms(self) -> float:
        """1反復あたりの平均経過時間 (ms)."""
        return self.wall_time_ms / self.iterations


class InferenceRunner:
    """画像1枚をエンジンで繰り返し実行し, 出力と層別時間を集める.

    デバイスバッファと実行コンテキストは ``run`` の中だけで所有し,
    成功・失敗を問わず ``run`` を抜ける前に解放する.
    """

    def __init__(self, engine: IExecutionEngine, config: RunConfig) -> None:
        """InferenceRunnerを初期化.

        Args:
            engine: デシリアライズ済みの実行エンジン
            config: 実行設定. デバイスバッファは config.buffer_device に確保する.
        """
        self._engine = engine
        self._config = config

    def resolve_bindings(self) -> Tuple[TensorBinding, TensorBinding]:
        """入出力バインディングを名前で解決する.

        Returns:
            (入力バインディング, 出力バインディング)

        Raises:
            ConfigurationError: バインディング数が2でない, 名前が見つからない,
                入出力の向きが逆, またはスロット位置が重複・範囲外の場合
        """
        num_bindings = self._engine.num_bindings
        if num_bindings != EXPECTED_BINDINGS:
            raise ConfigurationError(
                f"入出力バインディングは{EXPECTED_BINDINGS}個を想定していますが, "
                f"{num_bindings}個検出されました"
            )

        input_binding = self._engine.resolve_binding(self._config.input_blob_name)
        output_binding = self._engine.resolve_binding(self._config.output_blob_name)

        if not input_binding.is_input:
            raise ConfigurationError(
                f"入力テンソル '{input_binding.name}' はエンジンの入力ではありません"
            )
        if output_binding.is_input:
            raise ConfigurationError(
                f"出力テンソル '{output_binding.name}' はエンジンの出力ではありません"
            )

        slots = {input_binding.slot_index, output_binding.slot_index}
        if slots != set(range(EXPECTED_BINDINGS)):
            raise ConfigurationError(
                f"スロット位置が不正です: {input_binding.name}="
                f"{input_binding.slot_index}, {output_binding.name}="
                f"{output_binding.slot_index}"
            )
        if output_binding.element_size != _OUTPUT_DTYPE.itemsize:
            raise ConfigurationError(
                f"出力要素サイズ {output_binding.element_size} bytes は "
                f"float32 ({_OUTPUT_DTYPE.itemsize} bytes) ではありません"
            )
        return input_binding, output_binding

    def _log_binding_sizes(self, binding: TensorBinding, size: int) -> None:
        label = "input" if binding.is_input else "output"
        logger.debug(f"{label}Size  : {size}")
        logger.debug(f"batchSize  : {BATCH_SIZE}")
        for axis, dim in enumerate(binding.shape):
            logger.debug(f"{label}Dims.d[{axis}]: {dim}")
        logger.debug(f"elementSize: {binding.element_size}")

    def run(self, image_path: Optional[Union[str, Path]] = None) -> InferenceRunResult:
        """推論を config.iterations 回実行する.

        Args:
            image_path: 入力画像. 省略時は config.input_image.

        Returns:
            最終反復の出力と層別時間

        Raises:
            ConfigurationError: トポロジ前提の違反
            ResourceError: デバイスメモリ・実行の失敗
            FileNotFoundError: 入力画像が存在しない場合
            DataFileError: 入力画像が短すぎる場合
        """
        config = self._config
        iterations = config.iterations
        aggregator = ProfilingAggregator()

        input_binding, output_binding = self.resolve_bindings()
        input_size = input_binding.byte_size(BATCH_SIZE)
        output_size = output_binding.byte_size(BATCH_SIZE)
        self._log_binding_sizes(input_binding, input_size)
        self._log_binding_sizes(output_binding, output_size)

        with ExitStack() as stack:
            context = self._engine.create_context()
            stack.callback(context.release)
            context.set_profiler(aggregator)

            d_input = stack.enter_context(
                DeviceBuffer(input_size, config.buffer_device)
            )
            d_output = stack.enter_context(
                DeviceBuffer(output_size, config.buffer_device)
            )

            pixels = read_ppm_image(
                image_path or config.input_image,
                height=config.input_height,
                width=config.input_width,
                strict_header=config.strict_image_header,
            )
            d_input.copy_from_host(preprocess_pixels(pixels))

            buffers: List[DeviceBuffer] = [d_input, d_output]
            if input_binding.slot_index != 0:
                buffers.reverse()

            logger.debug(f"推論を{iterations}回実行します...")
            start_time = time.perf_counter()
            for _ in range(iterations):
                context.execute_sync(BATCH_SIZE, buffers)
            wall_time_ms = (time.perf_counter() - start_time) * 1000

            probabilities = d_output.copy_to_host(_OUTPUT_DTYPE)

        return InferenceRunResult(
            probabilities=probabilities,
            layer_timing=aggregator.report(iterations),
            iterations=iterations,
            input_binding=input_binding,
            output_binding=output_binding,
            wall_time_ms=wall_time_ms,
        )
