"""推論ランタイムで共有するデータ型."""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class TensorBinding:
    """名前解決済みのエンジン入出力バインディング.

    Attributes:
        name: テンソル名
        slot_index: 実行時バッファ配列におけるスロット位置
        shape: バッチ次元を除いた1サンプルあたりの形状
        element_size: 1要素のバイト数
        is_input: 入力テンソルならTrue
    """

    name: str
    slot_index: int
    shape: Tuple[int, ...]
    element_size: int
    is_input: bool

    @property
    def volume(self) -> int:
        """1サンプルあたりの要素数."""
        return int(np.prod(self.shape, dtype=np.int64))

    def byte_size(self, batch_size: int) -> int:
        """batch_size × volume × element_size."""
        return batch_size * self.volume * self.element_size


@dataclass(frozen=True)
class ClassScore:
    """クラスインデックスと確率の組."""

    class_index: int
    probability: float


@dataclass(frozen=True)
class RankedClass:
    """ラベル付きの順位結果."""

    rank: int
    class_index: int
    label: str
    probability: float

    @property
    def percentage(self) -> float:
        """確率を百分率で返す."""
        return self.probability * 100


@dataclass(frozen=True)
class DecisionResult:
    """単一クラス判定の結果.

    Attributes:
        match: 1位のクラスが対象クラスと一致すればTrue
        top_index: 1位のクラスインデックス
        target_index: 判定対象のクラスインデックス
        top_probability: 1位の確率
        target_label: 判定対象のラベル (ラベル未指定時はNone)
    """

    match: bool
    top_index: int
    target_index: int
    top_probability: float
    target_label: Optional[str] = None


@dataclass(frozen=True)
class LayerTimingReport:
    """層ごとの平均実行時間の集計結果.

    Attributes:
        rows: (層名, 1反復あたり平均ms) を初出順に並べたもの
        total_ms: 全層の平均の合計
        iterations: 平均化に用いた反復回数
    """

    rows: Tuple[Tuple[str, float], ...]
    total_ms: float
    iterations: int
