"""
rtclassify.logging: ログ管理モジュール.

colorlogを使用したログ管理を提供
"""

from .logger_manager import LoggerManager, LogLevel

__all__ = ["LoggerManager", "LogLevel"]
