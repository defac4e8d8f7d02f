"""PPM画像の読み込み.

テキストヘッダ ``MAGIC HEIGHT WIDTH MAXVAL`` の直後に区切り1バイト,
続いて HEIGHT×WIDTH×3 バイトのRGBインターリーブ画素が並ぶ形式を扱う.
画素数はヘッダではなく呼び出し側が指定した固定寸法で決まる.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np

from rtclassify.errors import ConfigurationError, DataFileError
from rtclassify.logging import LoggerManager

logger: logging.Logger = LoggerManager().get_logger(__name__)

PPM_CHANNELS = 3
_WHITESPACE = b" \t\n\r\v\f"


@dataclass(frozen=True)
class PPMHeader:
    """PPMテキストヘッダの内容.

    値は検証せず文字列のまま保持する.
    """

    magic: str
    height: str
    width: str
    max_value: str

    def declared_size(self) -> tuple[int, int] | None:
        """ヘッダ上の (height, width). 数値でない場合はNone."""
        try:
            return int(self.height), int(self.width)
        except ValueError:
            return None


def _read_token(stream: BinaryIO) -> str:
    """空白を読み飛ばし, 次の空白直前までを1トークンとして返す."""
    char = stream.read(1)
    while char and char in _WHITESPACE:
        char = stream.read(1)

    token = bytearray()
    while char and char not in _WHITESPACE:
        token += char
        char = stream.read(1)

    if char:
        # 終端の空白1文字は消費せず戻す
        stream.seek(-1, 1)
    if not token:
        raise DataFileError("PPMヘッダが途中で終了しています")
    return token.decode("ascii", errors="replace")


def parse_ppm_header(stream: BinaryIO) -> PPMHeader:
    """ストリーム先頭のPPMヘッダを読み, 区切り1バイトを読み飛ばす.

    Args:
        stream: バイナリモードで開いたシーク可能なストリーム

    Returns:
        読み取ったヘッダ. 呼び出し後ストリームは画素データ先頭を指す.

    Raises:
        DataFileError: ヘッダの途中でファイルが終了した場合
    """
    magic = _read_token(stream)
    height = _read_token(stream)
    width = _read_token(stream)
    max_value = _read_token(stream)
    stream.seek(1, 1)
    return PPMHeader(magic=magic, height=height, width=width, max_value=max_value)


def read_ppm_image(
    image_path: Union[str, Path],
    height: int = 227,
    width: int = 227,
    strict_header: bool = False,
) -> np.ndarray:
    """PPM画像を固定寸法の画素バッファとして読み込む.

    Args:
        image_path: 画像ファイルパス
        height: 期待する高さ
        width: 期待する幅
        strict_header: Trueの場合, ヘッダ寸法が期待値と異なれば失敗する.
            Falseの場合は警告のみ出し, 期待寸法で読み込みを続ける.

    Returns:
        uint8配列 (height, width, 3), 行優先・チャンネルインターリーブ

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        DataFileError: 画素データが期待バイト数に満たない場合
        ConfigurationError: strict_header=Trueで寸法が一致しない場合
    """
    path = Path(image_path)
    if not path.is_file():
        raise FileNotFoundError(f"入力画像が見つかりません: {path}")

    expected = height * width * PPM_CHANNELS
    with open(path, "rb") as f:
        header = parse_ppm_header(f)
        payload = f.read(expected)

    if header.magic != "P6":
        logger.warning(f"想定外のPPMマジック '{header.magic}': {path}")

    declared = header.declared_size()
    if declared != (height, width):
        message = (
            f"ヘッダ寸法 {header.height}x{header.width} が "
            f"設定寸法 {height}x{width} と一致しません: {path}"
        )
        if strict_header:
            raise ConfigurationError(message)
        logger.warning(f"{message} (設定寸法で読み込みます)")

    if len(payload) < expected:
        raise DataFileError(
            f"画素データが不足しています ({len(payload)} / {expected} bytes): {path}"
        )

    logger.debug(f"画像を読み込み: {path} ({height}x{width}x{PPM_CHANNELS})")
    return np.frombuffer(payload, dtype=np.uint8).reshape(
        height, width, PPM_CHANNELS
    )
