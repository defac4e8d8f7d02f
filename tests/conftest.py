"""テスト共通フィクスチャ."""

from pathlib import Path
from typing import Sequence

import numpy as np
import pytest
from PIL import Image

from rtclassify.config import RunConfig
from rtclassify.errors import ConfigurationError, ResourceError
from rtclassify.runtime.device_buffer import DeviceBuffer
from rtclassify.runtime.profiler import ProfilingAggregator
from rtclassify.runtime.types import TensorBinding


class FakeContext:
    """固定ベクトルを出力し, 固定の層時間を報告する実行コンテキスト."""

    def __init__(self, engine: "FakeEngine") -> None:
        self.engine = engine
        self.aggregator: ProfilingAggregator | None = None
        self.released = False

    def set_profiler(self, aggregator: ProfilingAggregator) -> None:
        self.aggregator = aggregator

    def execute_sync(self, batch_size: int, buffers: Sequence[DeviceBuffer]) -> None:
        if self.released:
            raise ResourceError("released")
        engine = self.engine
        engine.execute_calls += 1
        engine.batch_sizes.append(batch_size)
        fail_on_call = engine.fail_on_call
        if fail_on_call is not None and engine.execute_calls >= fail_on_call:
            raise ResourceError("accelerator execution failed")

        engine.observed_buffers = list(buffers)
        if engine.capture_input:
            engine.last_input = buffers[engine.input_slot].copy_to_host(np.float32)
        buffers[engine.output_slot].copy_from_host(engine.output_vector)

        if self.aggregator is not None:
            for name, ms in engine.layer_times:
                self.aggregator.record(name, ms)

    def release(self) -> None:
        self.released = True


class FakeEngine:
    """IExecutionEngine を満たすCPU上のFakeエンジン."""

    def __init__(
        self,
        output_vector: np.ndarray,
        *,
        input_name: str = "data",
        output_name: str = "prob",
        input_shape: tuple[int, ...] = (3, 227, 227),
        output_shape: tuple[int, ...] | None = None,
        input_slot: int = 0,
        extra_bindings: int = 0,
        layer_times: Sequence[tuple[str, float]] = (("conv1", 0.5), ("fc8", 0.25)),
        fail_on_call: int | None = None,
        capture_input: bool = False,
    ) -> None:
        self.output_vector = np.asarray(output_vector, dtype=np.float32)
        self.input_name = input_name
        self.output_name = output_name
        self.input_shape = input_shape
        self.output_shape = output_shape or (self.output_vector.size, 1, 1)
        self.input_slot = input_slot
        self.output_slot = 1 - input_slot
        self.extra_bindings = extra_bindings
        self.layer_times = list(layer_times)
        self.fail_on_call = fail_on_call
        self.capture_input = capture_input

        self.execute_calls = 0
        self.batch_sizes: list[int] = []
        self.contexts: list[FakeContext] = []
        self.observed_buffers: list[DeviceBuffer] = []
        self.last_input: np.ndarray | None = None
        self.released = False

    @property
    def num_bindings(self) -> int:
        return 2 + self.extra_bindings

    def resolve_binding(self, name: str) -> TensorBinding:
        if name == self.input_name:
            return TensorBinding(name, self.input_slot, self.input_shape, 4, True)
        if name == self.output_name:
            return TensorBinding(name, self.output_slot, self.output_shape, 4, False)
        raise ConfigurationError(f"unknown tensor: {name}")

    def create_context(self) -> FakeContext:
        context = FakeContext(self)
        self.contexts.append(context)
        return context

    def release(self) -> None:
        self.released = True


@pytest.fixture
def fake_engine_cls() -> type[FakeEngine]:
    """FakeEngine クラスを返すフィクスチャ."""
    return FakeEngine


@pytest.fixture
def one_hot_output():
    """指定インデックスのみ1.0の出力ベクトルを作るファクトリフィクスチャ.

    Returns:
        作成関数. 引数: index, size (デフォルト: 1000)
    """

    def _create(index: int, size: int = 1000) -> np.ndarray:
        vector = np.zeros(size, dtype=np.float32)
        vector[index] = 1.0
        return vector

    return _create


@pytest.fixture
def create_ppm(tmp_path: Path):
    """PPM画像ファイルを作成するファクトリフィクスチャ.

    Args:
        tmp_path: pytest組み込みの一時ディレクトリ.

    Returns:
        作成関数. 引数:
            pixels: uint8配列 (H, W, 3). 省略時は color で塗りつぶす.
            color: 塗りつぶし色 (R, G, B)
            size: (height, width) (デフォルト: (227, 227))
            name: ファイル名

    Example:
        >>> def test_example(create_ppm):
        ...     path = create_ppm(color=(10, 20, 30))
    """

    def _create(
        pixels: np.ndarray | None = None,
        *,
        color: tuple[int, int, int] = (0, 0, 0),
        size: tuple[int, int] = (227, 227),
        name: str = "image.ppm",
    ) -> Path:
        if pixels is None:
            height, width = size
            image = Image.new("RGB", (width, height), color=color)
        else:
            image = Image.fromarray(np.asarray(pixels, dtype=np.uint8))
        path = tmp_path / name
        image.save(path, format="PPM")
        return path

    return _create


@pytest.fixture
def create_labels(tmp_path: Path):
    """``class_0`` 形式のラベルファイルを作成するファクトリフィクスチャ.

    Returns:
        作成関数. 引数: count (デフォルト: 1000), name
    """

    def _create(count: int = 1000, name: str = "labels.txt") -> Path:
        path = tmp_path / name
        path.write_text("\n".join(f"class_{i}" for i in range(count)) + "\n")
        return path

    return _create


@pytest.fixture
def run_config_factory(tmp_path: Path):
    """テスト用 RunConfig を作るファクトリフィクスチャ.

    CPU上のバッファ・少ない反復回数を既定値とする.
    """

    def _create(**overrides) -> RunConfig:
        payload = {
            "input_image": str(tmp_path / "image.ppm"),
            "proto_file": str(tmp_path / "deploy.prototxt"),
            "weights_file": str(tmp_path / "weights.caffemodel"),
            "labels_file": str(tmp_path / "labels.txt"),
            "iterations": 3,
            "buffer_device": "cpu",
        }
        payload.update(overrides)
        return RunConfig(**payload)

    return _create
