"""rtclassify.config.run_config: 推論実行設定の Pydantic モデル."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TARGET_CLASS_INDEX = 934
DEFAULT_TIMING_ITERATIONS = 1000


class RunConfig(BaseModel):
    """1回の推論セッションで使う不変設定.

    CLI引数と設定ファイルを統合した結果であり, 生成後は変更できない.
    """

    model_config = ConfigDict(frozen=True)

    input_image: str = "data/alexnet/dog.ppm"
    proto_file: str = "data/alexnet/deploy.prototxt"
    weights_file: str = "data/alexnet/bvlc_alexnet.caffemodel"
    labels_file: str = "data/alexnet/imagenet-labels.txt"

    verbose: bool = False
    decision_mode: bool = False
    target_class_index: int = Field(default=DEFAULT_TARGET_CLASS_INDEX, ge=0)
    iterations: int = Field(default=DEFAULT_TIMING_ITERATIONS, gt=0)
    top_k: int = Field(default=5, gt=0)

    input_blob_name: str = "data"
    output_blob_name: str = "prob"
    input_height: int = Field(default=227, gt=0)
    input_width: int = Field(default=227, gt=0)
    workspace_size: int = Field(default=16 << 20, gt=0)
    strict_image_header: bool = False
    buffer_device: str = "cuda"

    @field_validator(
        "input_image",
        "proto_file",
        "weights_file",
        "labels_file",
        "input_blob_name",
        "output_blob_name",
    )
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        """パス・テンソル名が空文字でないことを検証する."""
        if v.strip() == "":
            raise ValueError("空文字は許可しません")
        return v

    @property
    def pixel_count(self) -> int:
        """1チャンネルあたりの画素数 (H×W)."""
        return self.input_height * self.input_width

    @classmethod
    def from_dict(
        cls,
        config: Dict[str, Any],
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "RunConfig":
        """Dict から RunConfig を生成する.

        未知のキー (設定ファイル内のimportや補助変数) は無視する.
        overrides の値のうち None でないものが config より優先される.

        Args:
            config: 設定ファイル等から読み込んだ辞書
            overrides: CLI引数由来の上書き値

        Returns:
            バリデーション済みの RunConfig
        """
        payload = {k: v for k, v in config.items() if k in cls.model_fields}
        for key, value in (overrides or {}).items():
            if value is not None and key in cls.model_fields:
                payload[key] = value
        result: RunConfig = cls.model_validate(payload)
        return result
