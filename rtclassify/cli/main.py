#!/usr/bin/env python3
"""
rtclassify CLI エントリーポイント.

ネットワーク定義からTensorRTエンジンを生成し, PPM画像1枚を繰り返し推論して
分類結果 (または単一クラス判定) と層別実行時間を出力する.
"""

import argparse
import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, NoReturn, Optional

from rtclassify.cli.arg_types import non_negative_int, positive_int
from rtclassify.config import RunConfig
from rtclassify.errors import ConfigurationError, DataError, ResourceError
from rtclassify.io.label_table import LabelTable
from rtclassify.logging import LoggerManager
from rtclassify.runtime import (
    BATCH_SIZE,
    IExecutionEngine,
    InferenceRunner,
    ResultRanker,
)
from rtclassify.utils import ConfigLoader, log_decision, log_layer_times, log_top_k

logger: logging.Logger = LoggerManager().get_logger(__name__)

FATAL_ERRORS = (
    ConfigurationError,
    ResourceError,
    DataError,
    OSError,
    RuntimeError,
    ImportError,
    ValueError,
)


class StageFailure(Exception):
    """パイプラインのどのステージで失敗したかを保持する例外."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        """StageFailureを初期化.

        Args:
            stage: 失敗したステージ名
            cause: 元の例外
        """
        super().__init__(f"[{stage}] {type(cause).__name__}: {cause}")
        self.stage = stage
        self.cause = cause


@contextmanager
def stage(name: str) -> Iterator[None]:
    """ブロック内の致命的エラーをステージ名付きの StageFailure に変換する."""
    try:
        yield
    except FATAL_ERRORS as e:
        raise StageFailure(name, e) from e


class UsageExitParser(argparse.ArgumentParser):
    """不正な引数で使い方を表示し, 終了コード1で終了するパーサー."""

    def error(self, message: str) -> NoReturn:
        """使い方とエラー内容を表示して終了する."""
        self.print_help(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


class _HelpAction(argparse.Action):
    """ヘルプを表示して終了コード1で終了する."""

    def __init__(self, option_strings: Any, dest: str, **kwargs: Any) -> None:
        kwargs.setdefault("default", argparse.SUPPRESS)
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(
        self, parser: argparse.ArgumentParser, *args: Any, **kwargs: Any
    ) -> None:
        parser.print_help()
        parser.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """CLI引数パーサーを作成する."""
    parser = UsageExitParser(
        prog="rtclassify",
        description="TensorRTによる画像分類と層別プロファイリング",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog="""
使用例:
  # 既定のAlexNet (Caffe) で推論
  rtclassify --input data/alexnet/dog.ppm

  # ONNXネットワークで推論, 詳細ログ付き
  rtclassify -p model.onnx -l labels.txt -i image.ppm --verbose

  # 単一クラス判定モード (既定の対象クラス: 934)
  rtclassify -i image.ppm --hotdog

  # 設定ファイルを使用 (CLI引数が優先)
  rtclassify --config configs/alexnet_config.py
        """,
    )
    parser.add_argument("--input", "-i", help="入力画像 (PPM)")
    parser.add_argument("--proto", "-p", help="ネットワーク定義 (.prototxt / .onnx)")
    parser.add_argument("--weights", "-w", help="重みファイル (.caffemodel 等)")
    parser.add_argument("--labels", "-l", help="ラベルファイル (1行1クラス)")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=None,
        help="詳細ログを有効化",
    )
    parser.add_argument(
        "--hotdog",
        "-d",
        action="store_true",
        default=None,
        help="単一クラス判定モード (1位が対象クラスか否かのみ出力)",
    )
    parser.add_argument("--config", "-c", help="設定ファイルパス (Python形式)")
    parser.add_argument(
        "--iterations",
        type=positive_int,
        help="計測のための実行回数 (default: 1000, 1以上)",
    )
    parser.add_argument(
        "--target-index",
        type=non_negative_int,
        help="判定モードの対象クラスインデックス (default: 934)",
    )
    parser.add_argument(
        "--device",
        help="デバイスバッファの確保先 (default: cuda)",
    )
    parser.add_argument("--help", "-h", action=_HelpAction, help="ヘルプを表示")
    return parser


def build_run_config(args: argparse.Namespace) -> RunConfig:
    """設定ファイルとCLI引数から RunConfig を作成する.

    Args:
        args: パース済みCLI引数

    Returns:
        CLI引数を優先して統合した設定
    """
    base: Dict[str, Any] = {}
    if args.config:
        base = ConfigLoader.load_config(args.config)
        logger.debug(f"設定ファイルを読み込み: {args.config}")

    overrides: Dict[str, Optional[Any]] = {
        "input_image": args.input,
        "proto_file": args.proto,
        "weights_file": args.weights,
        "labels_file": args.labels,
        "verbose": args.verbose,
        "decision_mode": args.hotdog,
        "iterations": args.iterations,
        "target_class_index": args.target_index,
        "buffer_device": args.device,
    }
    return RunConfig.from_dict(base, overrides)


def compile_network(config: RunConfig) -> bytes:
    """ネットワーク定義をシリアライズ済みエンジンへ変換する."""
    from rtclassify.tensorrt import NetworkCompiler

    compiler = NetworkCompiler(
        config.proto_file,
        config.weights_file,
        workspace_size=config.workspace_size,
        verbose=config.verbose,
    )
    return compiler.compile(config.output_blob_name, max_batch_size=BATCH_SIZE)


def load_engine(serialized_engine: bytes, config: RunConfig) -> IExecutionEngine:
    """シリアライズ済みエンジンを読み込む."""
    from rtclassify.tensorrt import TensorRTEngine

    return TensorRTEngine.load(serialized_engine, verbose=config.verbose)


def run_pipeline(config: RunConfig) -> None:
    """変換・読み込み・推論・結果出力を順に実行する.

    Args:
        config: 実行設定

    Raises:
        StageFailure: いずれかのステージで致命的エラーが発生した場合
    """
    with stage("compile"):
        serialized_engine = compile_network(config)

    with stage("load"):
        engine = load_engine(serialized_engine, config)

    try:
        with stage("infer"):
            runner = InferenceRunner(engine, config)
            result = runner.run()
    finally:
        engine.release()

    logger.debug(
        f"平均実行時間 (全体): {result.avg_wall_time_ms:.3f} ms/iteration "
        f"({result.iterations}回)"
    )

    with stage("report"):
        labels = LabelTable.from_file(config.labels_file)
        ranker = ResultRanker()
        if config.decision_mode:
            decision = ranker.decide(
                result.probabilities, config.target_class_index, labels
            )
            log_decision(decision)
        else:
            log_top_k(ranker.top_k(result.probabilities, labels, k=config.top_k))
        log_layer_times(result.layer_timing)


def main() -> None:
    """メイン関数."""
    parser = build_parser()
    args = parser.parse_args()

    manager = LoggerManager()
    manager.set_verbose(bool(args.verbose))

    logger.info("rtclassify: image classification with TensorRT.")
    logger.info("*" * 50)

    try:
        with stage("config"):
            config = build_run_config(args)
        manager.set_verbose(config.verbose)
        logger.debug(f"設定: {config.model_dump()}")
        if config.decision_mode:
            logger.info(f"判定モード: 対象クラス {config.target_class_index}")

        run_pipeline(config)
    except StageFailure as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info("Done.")


if __name__ == "__main__":
    main()
