"""デバイスメモリバッファ.

PyTorchのテンソルをバイト列として確保し, そのアドレスをエンジンへ渡す.
確保は生成時, 解放は ``release`` または with ブロック終了時に行う.
"""

import logging
from types import TracebackType
from typing import Optional, Type

import numpy as np
import torch

from rtclassify.errors import ConfigurationError, ResourceError
from rtclassify.logging import LoggerManager

logger: logging.Logger = LoggerManager().get_logger(__name__)


class DeviceBuffer:
    """サイズ固定のデバイスメモリ領域を所有するラッパー.

    Attributes:
        nbytes: 確保したバイト数
        device: 確保先デバイス ("cuda" / "cuda:0" / "cpu" 等)
    """

    def __init__(self, nbytes: int, device: str = "cuda") -> None:
        """バッファを確保する.

        Args:
            nbytes: 確保するバイト数 (1以上)
            device: 確保先デバイス

        Raises:
            ConfigurationError: nbytes が1未満の場合
            ResourceError: デバイスメモリの確保に失敗した場合
        """
        if nbytes < 1:
            raise ConfigurationError(f"バッファサイズが不正です: {nbytes} bytes")

        self.nbytes = nbytes
        self.device = device
        try:
            self._tensor: Optional[torch.Tensor] = torch.empty(
                nbytes, dtype=torch.uint8, device=device
            )
        except (RuntimeError, AssertionError) as e:
            # CUDA未対応ビルドはAssertionError, OOM・ドライバ異常はRuntimeError
            raise ResourceError(
                f"デバイスメモリの確保に失敗しました ({nbytes} bytes, {device}): {e}"
            ) from e
        logger.debug(f"デバイスバッファを確保: {nbytes} bytes ({device})")

    def __enter__(self) -> "DeviceBuffer":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()

    @property
    def released(self) -> bool:
        """解放済みならTrue."""
        return self._tensor is None

    def _require_tensor(self) -> torch.Tensor:
        if self._tensor is None:
            raise ResourceError("解放済みのデバイスバッファは使用できません")
        return self._tensor

    @property
    def device_pointer(self) -> int:
        """エンジンへ渡すデバイスアドレス."""
        return int(self._require_tensor().data_ptr())

    def copy_from_host(self, array: np.ndarray) -> None:
        """ホスト配列をバッファへ転送する.

        Args:
            array: 転送元配列. バイト数がバッファサイズと完全一致する必要がある.

        Raises:
            ConfigurationError: バイト数が一致しない場合
            ResourceError: 転送に失敗した場合, または解放済みの場合
        """
        tensor = self._require_tensor()
        if array.nbytes != self.nbytes:
            raise ConfigurationError(
                f"転送サイズがバッファサイズと一致しません: "
                f"{array.nbytes} bytes != {self.nbytes} bytes"
            )
        source = torch.from_numpy(
            np.ascontiguousarray(array).reshape(-1).view(np.uint8)
        )
        try:
            tensor.copy_(source)
        except RuntimeError as e:
            raise ResourceError(f"ホストからデバイスへの転送に失敗しました: {e}") from e

    def copy_to_host(self, dtype: np.dtype = np.dtype(np.float32)) -> np.ndarray:
        """バッファ全体をホストへ転送する.

        Args:
            dtype: 返す配列の要素型

        Returns:
            バッファ内容を dtype として解釈した1次元配列

        Raises:
            ResourceError: 転送に失敗した場合, または解放済みの場合
        """
        tensor = self._require_tensor()
        try:
            host = tensor.cpu().numpy()
        except RuntimeError as e:
            raise ResourceError(f"デバイスからホストへの転送に失敗しました: {e}") from e
        # cpuデバイスではcpu()が同じ記憶域を返すため複製してから解釈する
        return host.copy().view(dtype)

    def release(self) -> None:
        """バッファを解放する. 解放済みなら何もしない."""
        if self._tensor is None:
            return
        self._tensor = None
        logger.debug(f"デバイスバッファを解放: {self.nbytes} bytes ({self.device})")
