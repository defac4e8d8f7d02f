"""出力確率ベクトルの順位付けと単一クラス判定."""

from typing import List, Optional

import numpy as np

from rtclassify.errors import DataError
from rtclassify.io.label_table import LabelTable
from rtclassify.runtime.types import ClassScore, DecisionResult, RankedClass


class ResultRanker:
    """確率の降順に並べ, 同値はインデックスの小さい方を先にする."""

    @staticmethod
    def _order(probabilities: np.ndarray) -> np.ndarray:
        vector = np.asarray(probabilities, dtype=np.float64).reshape(-1)
        if vector.size == 0:
            raise DataError("出力ベクトルが空です")
        # 符号反転した値を安定ソートすると, 同値は元のインデックス順を保つ
        return np.argsort(-vector, kind="stable")

    def rank(self, probabilities: np.ndarray) -> List[ClassScore]:
        """全クラスを確率降順に並べる.

        Args:
            probabilities: 出力確率ベクトル (長さN)

        Returns:
            長さNの ClassScore リスト
        """
        vector = np.asarray(probabilities).reshape(-1)
        return [
            ClassScore(class_index=int(i), probability=float(vector[i]))
            for i in self._order(vector)
        ]

    def top_k(
        self,
        probabilities: np.ndarray,
        labels: LabelTable,
        k: int = 5,
    ) -> List[RankedClass]:
        """上位k件をラベル付きで返す.

        Args:
            probabilities: 出力確率ベクトル
            labels: ラベルテーブル
            k: 件数. ベクトル長を超える場合はベクトル長に切り詰める.

        Returns:
            上位k件の RankedClass リスト

        Raises:
            DataError: 上位k件に含まれるインデックスのラベルが存在しない場合
        """
        if k < 1:
            raise ValueError(f"k は1以上を指定してください: {k}")

        vector = np.asarray(probabilities).reshape(-1)
        order = self._order(vector)[:k]
        labels.require(int(order.max()) + 1)
        return [
            RankedClass(
                rank=rank,
                class_index=int(index),
                label=labels[int(index)],
                probability=float(vector[index]),
            )
            for rank, index in enumerate(order, start=1)
        ]

    def decide(
        self,
        probabilities: np.ndarray,
        target_index: int,
        labels: Optional[LabelTable] = None,
    ) -> DecisionResult:
        """1位のクラスが target_index と一致するかを判定する.

        近接した確率は考慮せず, 1位のみを比較する.

        Args:
            probabilities: 出力確率ベクトル
            target_index: 判定対象のクラスインデックス
            labels: 指定時は判定対象のラベル名を結果に含める

        Returns:
            判定結果

        Raises:
            DataError: target_index が出力ベクトルの範囲外, または
                labels 指定時にラベルが不足している場合
        """
        vector = np.asarray(probabilities).reshape(-1)
        if not 0 <= target_index < vector.size:
            raise DataError(
                f"判定対象インデックス {target_index} が出力範囲 "
                f"(0..{vector.size - 1}) の外です"
            )

        top_index = int(self._order(vector)[0])
        target_label = labels[target_index] if labels is not None else None
        return DecisionResult(
            match=top_index == target_index,
            top_index=top_index,
            target_index=target_index,
            top_probability=float(vector[top_index]),
            target_label=target_label,
        )
