"""ネットワーク定義からTensorRTエンジンを生成するコンパイラ.

Caffe (.prototxt + .caffemodel) はCaffeパーサーを提供するTensorRTでのみ,
それ以外はONNX (.onnx, 外部重みファイル任意) として扱う.
生成したエンジンはバイト列として返し, ディスクには保存しない.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

from rtclassify.errors import ConfigurationError
from rtclassify.logging import LoggerManager
from rtclassify.tensorrt.engine import check_tensorrt_availability
from rtclassify.tensorrt.trt_logger import create_trt_logger

logger: logging.Logger = LoggerManager().get_logger(__name__)

CAFFE_SUFFIXES = (".prototxt",)


class NetworkCompiler:
    """ネットワーク定義と重みをTensorRTエンジンへ変換するクラス.

    Attributes:
        description_path: ネットワーク定義ファイルパス
        weights_path: 重みファイルパス
        workspace_size: ビルダーの最大ワークスペースサイズ (bytes)
    """

    def __init__(
        self,
        description_path: Union[str, Path],
        weights_path: Optional[Union[str, Path]] = None,
        workspace_size: int = 16 << 20,
        trt_logger: Optional[Any] = None,
        verbose: bool = False,
    ) -> None:
        """NetworkCompilerを初期化.

        Args:
            description_path: ネットワーク定義ファイルパス (.prototxt / .onnx)
            weights_path: 重みファイルパス. Caffeでは必須.
            workspace_size: 最大ワークスペースサイズ (デフォルト: 16MB)
            trt_logger: TensorRTロガー. 省略時はブリッジロガーを作成する.
            verbose: ブリッジロガー作成時の詳細モード

        Raises:
            ImportError: TensorRTがインストールされていない場合
            FileNotFoundError: 定義ファイルまたは重みファイルが見つからない場合
        """
        if not check_tensorrt_availability():
            raise ImportError(
                "TensorRTがインストールされていません. "
                "TensorRT SDKをインストールしてください."
            )

        self.description_path = Path(description_path)
        if not self.description_path.is_file():
            raise FileNotFoundError(
                f"ネットワーク定義が見つかりません: {self.description_path}"
            )

        self.weights_path = Path(weights_path) if weights_path else None
        if self.weights_path is not None and not self.weights_path.is_file():
            raise FileNotFoundError(f"重みファイルが見つかりません: {self.weights_path}")
        if self.is_caffe and self.weights_path is None:
            raise FileNotFoundError("Caffeネットワークには重みファイルが必要です")

        self.workspace_size = workspace_size
        self._trt_logger = trt_logger
        self._verbose = verbose

    @property
    def is_caffe(self) -> bool:
        """定義ファイルがCaffe形式ならTrue."""
        return self.description_path.suffix.lower() in CAFFE_SUFFIXES

    def compile(self, output_tensor_name: str, max_batch_size: int = 1) -> bytes:
        """ネットワークをビルドしてシリアライズ済みエンジンを返す.

        Args:
            output_tensor_name: 出力としてマークするテンソル名
            max_batch_size: 最大バッチサイズ

        Returns:
            シリアライズ済みエンジンのバイト列

        Raises:
            ConfigurationError: 出力テンソルが見つからない場合
            RuntimeError: パースまたはビルドに失敗した場合
        """
        import tensorrt as trt

        trt_logger = self._trt_logger or create_trt_logger(trt, verbose=self._verbose)
        builder = trt.Builder(trt_logger)

        logger.info(f"ネットワークを変換中: {self.description_path.name}")
        if self.is_caffe:
            network = self._parse_caffe(trt, builder, output_tensor_name)
            if hasattr(builder, "max_batch_size"):
                builder.max_batch_size = max_batch_size
        else:
            network = self._parse_onnx(trt, builder, trt_logger, output_tensor_name)

        config = builder.create_builder_config()
        if hasattr(config, "set_memory_pool_limit"):
            config.set_memory_pool_limit(
                trt.MemoryPoolType.WORKSPACE, self.workspace_size
            )
        else:
            config.max_workspace_size = self.workspace_size

        logger.info("エンジンをビルド中 (数分かかる場合があります)...")
        serialized_engine = builder.build_serialized_network(network, config)
        if serialized_engine is None:
            raise RuntimeError("TensorRTエンジンのビルドに失敗しました")

        data = bytes(serialized_engine)
        logger.info(f"TensorRTエンジン生成完了: {len(data) / (1024 * 1024):.2f} MB")
        return data

    def _parse_caffe(self, trt: Any, builder: Any, output_tensor_name: str) -> Any:
        """Caffeパーサーでネットワークを構築し, 出力をマークする."""
        if not hasattr(trt, "CaffeParser"):
            raise RuntimeError(
                "インストールされているTensorRTはCaffeパーサーを提供していません. "
                "ONNX形式のネットワーク定義を使用してください."
            )

        network = builder.create_network()
        parser = trt.CaffeParser()
        blob_name_to_tensor = parser.parse(
            deploy=str(self.description_path),
            model=str(self.weights_path),
            network=network,
            dtype=trt.float32,
        )
        if blob_name_to_tensor is None:
            raise RuntimeError(f"Caffeパースエラー: {self.description_path}")

        output = blob_name_to_tensor.find(output_tensor_name)
        if output is None:
            raise ConfigurationError(
                f"出力テンソル '{output_tensor_name}' がネットワークに存在しません"
            )
        network.mark_output(output)
        return network

    def _parse_onnx(
        self,
        trt: Any,
        builder: Any,
        trt_logger: Any,
        output_tensor_name: str,
    ) -> Any:
        """ONNXパーサーでネットワークを構築し, 出力テンソルを確認する."""
        network = builder.create_network(
            1 << int(trt.NetworkDefinitionCreationFlag.EXPLICIT_BATCH)
        )
        parser = trt.OnnxParser(network, trt_logger)
        # 外部重みはモデルファイルからの相対パスで解決される
        if not parser.parse_from_file(str(self.description_path)):
            errors = [str(parser.get_error(i)) for i in range(parser.num_errors)]
            raise RuntimeError(f"ONNXパースエラー: {'; '.join(errors)}")

        outputs = [network.get_output(i) for i in range(network.num_outputs)]
        if any(t.name == output_tensor_name for t in outputs):
            return network

        for i in range(network.num_layers):
            layer = network.get_layer(i)
            for j in range(layer.num_outputs):
                tensor = layer.get_output(j)
                if tensor.name == output_tensor_name:
                    for existing in outputs:
                        network.unmark_output(existing)
                    network.mark_output(tensor)
                    return network

        raise ConfigurationError(
            f"出力テンソル '{output_tensor_name}' がネットワークに存在しません "
            f"(出力: {[t.name for t in outputs]})"
        )
