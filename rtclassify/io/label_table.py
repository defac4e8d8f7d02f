"""クラスラベルテーブル."""

import logging
from pathlib import Path
from typing import Iterator, List, Sequence, Union

from rtclassify.errors import DataError
from rtclassify.logging import LoggerManager

logger: logging.Logger = LoggerManager().get_logger(__name__)


class LabelTable:
    """出力インデックス順に並んだクラス名の一覧.

    長さの検証は読み込み時ではなく, 参照時に ``require`` で行う.
    """

    def __init__(self, labels: Sequence[str]) -> None:
        """LabelTableを初期化.

        Args:
            labels: 行インデックス = クラスインデックスとなるクラス名
        """
        self._labels: List[str] = list(labels)

    @classmethod
    def from_file(cls, label_path: Union[str, Path]) -> "LabelTable":
        """1行1クラス名のテキストファイルから読み込む.

        Args:
            label_path: ラベルファイルパス

        Returns:
            読み込んだLabelTable

        Raises:
            FileNotFoundError: ファイルが存在しない場合
        """
        path = Path(label_path)
        if not path.is_file():
            raise FileNotFoundError(f"ラベルファイルが見つかりません: {path}")

        with open(path, "r", encoding="utf-8") as f:
            labels = [line.rstrip("\r\n") for line in f]

        logger.debug(f"ラベルを読み込み: {path} ({len(labels)}クラス)")
        return cls(labels)

    def __len__(self) -> int:
        return len(self._labels)

    def __getitem__(self, index: int) -> str:
        if index < 0:
            raise DataError(f"負のクラスインデックスは参照できません: {index}")
        self.require(index + 1)
        return self._labels[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels)

    def require(self, count: int) -> None:
        """少なくとも count 件のラベルがあることを確認する.

        Raises:
            DataError: ラベル数が不足している場合
        """
        if len(self._labels) < count:
            raise DataError(
                f"ラベル数が不足しています: {len(self._labels)}件 "
                f"(インデックス {count - 1} の参照に {count}件必要)"
            )
