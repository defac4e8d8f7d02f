"""
rtclassify.utils: ユーティリティモジュール.

設定ファイル読み込みと結果のログ出力を提供
"""

from .config_loader import ConfigLoader
from .report_utils import (
    format_layer_report,
    format_ranked_class,
    log_decision,
    log_layer_times,
    log_top_k,
)

__all__ = [
    "ConfigLoader",
    "format_layer_report",
    "format_ranked_class",
    "log_decision",
    "log_layer_times",
    "log_top_k",
]
