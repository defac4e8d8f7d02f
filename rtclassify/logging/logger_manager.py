"""
rtclassify.logging.logger_manager: ログ管理マネージャー.

colorlogを使用したシングルトンのログ管理. CLIの --verbose に応じて
全ロガーの出力レベルと書式をまとめて切り替える.
"""

import logging
from enum import Enum
from typing import Dict, Optional

import colorlog


class LevelBasedFormatter(logging.Formatter):
    """詳細モードによって切り替わるログ形式."""

    def __init__(
        self,
        info_format: str,
        debug_format: str,
        datefmt: str,
        log_colors: Optional[Dict[str, str]] = None,
        force_debug_format: bool = False,
    ) -> None:
        """ログ整形の初期化."""
        super().__init__(datefmt=datefmt)
        colors = log_colors or {}
        self._info_formatter = colorlog.ColoredFormatter(
            info_format, datefmt=datefmt, log_colors=colors
        )
        self._debug_formatter = colorlog.ColoredFormatter(
            debug_format, datefmt=datefmt, log_colors=colors
        )
        self.force_debug_format = force_debug_format

    def format(self, record: logging.LogRecord) -> str:
        """ログレコードを整形."""
        record.levelname = {"WARNING": "WARN"}.get(record.levelname, record.levelname)
        if self.force_debug_format:
            return str(self._debug_formatter.format(record))
        return str(self._info_formatter.format(record))


class LogLevel(Enum):
    """ログレベル列挙型."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggerManager:
    """
    ログ管理マネージャークラス.

    アプリケーション全体で一貫したcolorlog設定を提供する.
    ロガーは名前ごとに一度だけ作成され, 以降は同じインスタンスを返す.

    Attributes:
        _loggers (Dict[str, logging.Logger]): 管理されているロガーの辞書
        _default_level (LogLevel): 新規ロガーに適用するログレベル
    """

    _instance: Optional["LoggerManager"] = None
    _loggers: Dict[str, logging.Logger] = {}

    def __new__(cls) -> "LoggerManager":
        """シングルトンパターンの実装."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """LoggerManagerを初期化."""
        if hasattr(self, "_initialized"):
            return

        self._default_level = LogLevel.INFO
        self._use_debug_format = False
        self._info_format = (
            "%(asctime)s|%(log_color)s%(levelname)-5.5s%(reset)s| %(message)s"
        )
        self._debug_format = (
            "%(asctime)s|%(log_color)s%(levelname)-5.5s%(reset)s|"
            "%(filename)-20s|%(lineno)03d| %(message)s"
        )
        self._date_format = "%Y-%m-%d %H:%M:%S"
        self._log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARN": "yellow",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        }
        self._initialized = True

    @property
    def default_level(self) -> LogLevel:
        """新規ロガーに適用されるログレベル."""
        return self._default_level

    def get_logger(self, name: str, level: Optional[LogLevel] = None) -> logging.Logger:
        """
        指定された名前のロガーを取得または作成.

        Args:
            name (str): ロガー名
            level (LogLevel, optional): ログレベル

        Returns:
            logging.Logger: 設定されたロガー
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = self._create_logger(name, level or self._default_level)
        self._loggers[name] = logger
        return logger

    def _create_logger(self, name: str, level: LogLevel) -> logging.Logger:
        logger = logging.getLogger(name)
        if logger.handlers:
            return logger

        logger.setLevel(getattr(logging, level.value))
        handler = colorlog.StreamHandler()
        handler.setFormatter(
            LevelBasedFormatter(
                self._info_format,
                self._debug_format,
                datefmt=self._date_format,
                log_colors=self._log_colors,
                force_debug_format=self._use_debug_format,
            )
        )
        logger.addHandler(handler)
        # 親ロガーへの伝播を防ぐ
        logger.propagate = False
        return logger

    def set_default_level(self, level: LogLevel) -> None:
        """
        デフォルトのログレベルを設定.

        DEBUGの場合はファイル名・行番号付きの書式へ切り替える.

        Args:
            level (LogLevel): 新しいデフォルトレベル
        """
        self._default_level = level
        self._use_debug_format = level == LogLevel.DEBUG
        for logger in self._loggers.values():
            for handler in logger.handlers:
                if isinstance(handler.formatter, LevelBasedFormatter):
                    handler.formatter.force_debug_format = self._use_debug_format

    def set_logger_level(self, name: str, level: LogLevel) -> None:
        """
        特定のロガーのレベルを設定.

        Args:
            name (str): ロガー名
            level (LogLevel): 新しいログレベル
        """
        if name in self._loggers:
            self._loggers[name].setLevel(getattr(logging, level.value))

    def set_verbose(self, verbose: bool) -> None:
        """管理中の全ロガーと以降のロガーのレベルを一括で切り替える.

        Args:
            verbose: Trueの場合DEBUG, Falseの場合INFO
        """
        level = LogLevel.DEBUG if verbose else LogLevel.INFO
        self.set_default_level(level)
        for name in self.get_available_loggers():
            self.set_logger_level(name, level)

    def get_available_loggers(self) -> list[str]:
        """
        管理されているロガーの名前一覧を取得.

        Returns:
            list[str]: ロガー名のリスト
        """
        return list(self._loggers.keys())

    @classmethod
    def reset(cls) -> None:
        """シングルトンインスタンスをリセット（主にテスト用）."""
        cls._instance = None
        cls._loggers.clear()
