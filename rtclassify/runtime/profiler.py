"""層ごとの実行時間集計."""

import logging
from enum import Enum
from typing import Dict

from rtclassify.logging import LoggerManager
from rtclassify.runtime.types import LayerTimingReport

logger: logging.Logger = LoggerManager().get_logger(__name__)


class ProfilingState(Enum):
    """集計器の状態."""

    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    REPORTED = "reported"


class ProfilingAggregator:
    """複数回の実行にわたり層名ごとの経過時間を累積する.

    同じ層名の報告は加算され, 置き換えられることはない.
    レポート順は層名の初出順. 空文字の層名も通常のキーとして扱う.
    ``report`` を呼ぶとセッションが終了し, 以降の記録はできない.
    """

    def __init__(self) -> None:
        """空の集計器を作成."""
        self._totals: Dict[str, float] = {}
        self._state = ProfilingState.EMPTY

    @property
    def state(self) -> ProfilingState:
        """現在の状態."""
        return self._state

    def record(self, layer_name: str, elapsed_ms: float) -> None:
        """1層分の実行時間を記録する.

        Args:
            layer_name: 層名
            elapsed_ms: 経過時間 (ms)

        Raises:
            RuntimeError: レポート済みの場合
        """
        if self._state is ProfilingState.REPORTED:
            raise RuntimeError("レポート済みのセッションには記録できません")

        self._totals[layer_name] = self._totals.get(layer_name, 0.0) + elapsed_ms
        self._state = ProfilingState.ACCUMULATING

    def totals(self) -> Dict[str, float]:
        """層名ごとの累積時間 (初出順) のコピーを返す."""
        return dict(self._totals)

    def report(self, iteration_count: int) -> LayerTimingReport:
        """累積時間を反復回数で割った層別平均を返し, セッションを終了する.

        Args:
            iteration_count: 実行回数

        Returns:
            層別平均と, その合計

        Raises:
            ValueError: iteration_count が1未満の場合
            RuntimeError: 既にレポート済みの場合
        """
        if iteration_count < 1:
            raise ValueError(f"反復回数は1以上を指定してください: {iteration_count}")
        if self._state is ProfilingState.REPORTED:
            raise RuntimeError("このセッションは既にレポート済みです")

        rows = tuple(
            (name, total / iteration_count) for name, total in self._totals.items()
        )
        total_ms = sum(average for _, average in rows)
        self._state = ProfilingState.REPORTED
        logger.debug(f"プロファイル集計: {len(rows)}層, {iteration_count}回平均")
        return LayerTimingReport(
            rows=rows, total_ms=total_ms, iterations=iteration_count
        )
