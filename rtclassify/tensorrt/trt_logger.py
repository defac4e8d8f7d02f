"""TensorRTのログをアプリケーションのロガーへ流すブリッジ."""

import logging
from typing import Any

from rtclassify.logging import LoggerManager

logger: logging.Logger = LoggerManager().get_logger(__name__)

# TensorRTの重大度名 -> Pythonのログレベル. 値が大きいほど詳細.
_SEVERITY_LEVELS = {
    "INTERNAL_ERROR": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "VERBOSE": logging.DEBUG,
}
_SEVERITY_ORDER = ["INTERNAL_ERROR", "ERROR", "WARNING", "INFO", "VERBOSE"]


def severity_to_level(severity_name: str) -> int:
    """TensorRTの重大度名をPythonのログレベルへ変換する.

    未知の重大度はWARNINGとして扱う.
    """
    return _SEVERITY_LEVELS.get(severity_name, logging.WARNING)


def is_reportable(severity_name: str, verbose: bool) -> bool:
    """重大度が出力対象かを返す.

    通常はWARNING以上, 詳細モードではINFO以上を出力する.
    """
    threshold = "INFO" if verbose else "WARNING"
    if severity_name not in _SEVERITY_ORDER:
        return True
    return _SEVERITY_ORDER.index(severity_name) <= _SEVERITY_ORDER.index(threshold)


def create_trt_logger(trt: Any, verbose: bool = False) -> Any:
    """``trt.ILogger`` を実装したロガーを作成する.

    Args:
        trt: tensorrt モジュール
        verbose: Trueの場合INFOレベルのTensorRTメッセージも出力する

    Returns:
        Builder / Runtime に渡すTensorRTロガー
    """

    class _BridgeLogger(trt.ILogger):  # type: ignore[misc, name-defined]
        def __init__(self) -> None:
            trt.ILogger.__init__(self)

        def log(self, severity: Any, msg: str) -> None:
            name = getattr(severity, "name", str(severity))
            if is_reportable(name, verbose):
                logger.log(severity_to_level(name), f"[TensorRT] {msg}")

    return _BridgeLogger()
