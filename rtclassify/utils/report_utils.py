"""推論結果と層別実行時間のログ出力."""

import logging
from typing import List, Sequence

from rtclassify.logging import LoggerManager
from rtclassify.runtime.types import DecisionResult, LayerTimingReport, RankedClass

logger: logging.Logger = LoggerManager().get_logger(__name__)


def format_ranked_class(ranked: RankedClass) -> str:
    """順位結果1件を ``ラベル 確率%`` の固定幅行へ整形する."""
    return f"{ranked.label:<30.30} {ranked.percentage:4.2f}%"


def format_layer_time(layer_name: str, average_ms: float) -> str:
    """層別時間1件を固定幅行へ整形する."""
    return f"{layer_name:<40.40} {average_ms:4.3f}ms"


def format_layer_report(report: LayerTimingReport) -> List[str]:
    """層別時間レポート全体を出力行のリストへ整形する."""
    lines = ["Time of inference per layer:"]
    lines.extend(format_layer_time(name, average) for name, average in report.rows)
    lines.append(f"Time over all layers: {report.total_ms:4.3f}ms")
    return lines


def log_top_k(results: Sequence[RankedClass]) -> None:
    """確信度順の分類結果をログに出力する.

    Args:
        results: 上位k件の順位結果
    """
    logger.info("Results of inference sorted by confidence:")
    for ranked in results:
        logger.info(format_ranked_class(ranked))


def log_decision(result: DecisionResult) -> None:
    """単一クラス判定の結果をログに出力する.

    Args:
        result: 判定結果
    """
    target = result.target_label or f"class {result.target_index}"
    if result.match:
        logger.info(f"{target}: MATCH")
    else:
        logger.info(f"NOT {target}: NO MATCH (top-1: class {result.top_index})")
    logger.debug(f"top-1確率: {result.top_probability * 100:.2f}%")


def log_layer_times(report: LayerTimingReport) -> None:
    """層別平均実行時間と全層合計をログに出力する.

    Args:
        report: 層別時間レポート
    """
    for line in format_layer_report(report):
        logger.info(line)
    logger.debug(f"平均化に用いた反復回数: {report.iterations}")
