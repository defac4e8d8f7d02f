"""実行エンジンのインターフェース定義.

`typing.Protocol` による構造的型付けを採用し,
TensorRT実装とテスト用のFakeエンジンを同じ型で扱う.
"""

from typing import Protocol, Sequence

from rtclassify.runtime.device_buffer import DeviceBuffer
from rtclassify.runtime.profiler import ProfilingAggregator
from rtclassify.runtime.types import TensorBinding


class IExecutionContext(Protocol):
    """1セッション分の実行状態 (中間アクティベーション領域) を保持するコンテキスト."""

    def set_profiler(self, aggregator: ProfilingAggregator) -> None:
        """層ごとの実行時間を aggregator へ報告させる.

        Args:
            aggregator: 報告先の集計器.
        """
        ...

    def execute_sync(self, batch_size: int, buffers: Sequence[DeviceBuffer]) -> None:
        """順伝播を同期実行する.

        Args:
            batch_size: バッチサイズ.
            buffers: スロット位置順に並べたデバイスバッファ.
        """
        ...

    def release(self) -> None:
        """コンテキストを解放する. 複数回呼んでもよい."""
        ...


class IExecutionEngine(Protocol):
    """デシリアライズ済みエンジンのインターフェース."""

    @property
    def num_bindings(self) -> int:
        """入出力テンソルの総数."""
        ...

    def resolve_binding(self, name: str) -> TensorBinding:
        """テンソル名からバインディングを解決する.

        Args:
            name: テンソル名.

        Returns:
            解決済みバインディング.
        """
        ...

    def create_context(self) -> IExecutionContext:
        """実行コンテキストを作成する.

        Returns:
            新しい実行コンテキスト.
        """
        ...

    def release(self) -> None:
        """エンジンを解放する. 複数回呼んでもよい."""
        ...
