"""画素バッファからエンジン入力テンソルへの前処理."""

import numpy as np


def preprocess_pixels(pixels: np.ndarray) -> np.ndarray:
    """インターリーブ画素をチャンネル反転したプレーナfloat配列へ変換する.

    ``out[c*H*W + p] = float(pixels[p*3 + (2 - c)])``.
    スケーリング・平均減算・正規化は行わない.

    Args:
        pixels: uint8配列 (H, W, 3), 行優先・チャンネルインターリーブ

    Returns:
        float32の1次元配列 (3*H*W,)

    Raises:
        ValueError: 形状が (H, W, 3) でない場合
    """
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"画素バッファの形状は (H, W, 3) が必要です: {pixels.shape}")

    height, width, channels = pixels.shape
    interleaved = pixels.reshape(height * width, channels)
    planar = interleaved[:, ::-1].T.astype(np.float32)
    return np.ascontiguousarray(planar).reshape(-1)
