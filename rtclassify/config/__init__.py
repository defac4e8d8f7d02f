"""rtclassify.config: 型付き設定のエントリーポイント."""

from .run_config import RunConfig

__all__ = ["RunConfig"]
