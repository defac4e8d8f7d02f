"""rtclassify CLIの単体テスト.

エンジンの生成と読み込みは FakeEngine に差し替えて検証する.
"""

from pathlib import Path

import pytest

import rtclassify.cli.main as main_module
from rtclassify.cli.main import (
    StageFailure,
    build_parser,
    build_run_config,
    run_pipeline,
    stage,
)
from rtclassify.errors import ConfigurationError


class _RecordingLogger:
    """ログ出力を記録するロガー."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def _record(self, level: str, msg: str) -> None:
        self.messages.append((level, msg))

    def info(self, msg: str) -> None:
        self._record("info", msg)

    def debug(self, msg: str) -> None:
        self._record("debug", msg)

    def warning(self, msg: str) -> None:
        self._record("warning", msg)

    def error(self, msg: str) -> None:
        self._record("error", msg)

    def lines(self, level: str = "info") -> list[str]:
        return [msg for lvl, msg in self.messages if lvl == level]


@pytest.fixture
def main_logger(monkeypatch: pytest.MonkeyPatch) -> _RecordingLogger:
    recorder = _RecordingLogger()
    monkeypatch.setattr(main_module, "logger", recorder)
    return recorder


@pytest.fixture
def report_logger(monkeypatch: pytest.MonkeyPatch) -> _RecordingLogger:
    recorder = _RecordingLogger()
    monkeypatch.setattr("rtclassify.utils.report_utils.logger", recorder)
    return recorder


@pytest.fixture
def patch_engine(monkeypatch: pytest.MonkeyPatch, fake_engine_cls):
    """compile_network / load_engine を差し替え, 作成したエンジンを返す."""

    def _patch(output_vector, **kwargs):
        engine = fake_engine_cls(output_vector, **kwargs)
        monkeypatch.setattr(main_module, "compile_network", lambda config: b"engine")
        monkeypatch.setattr(
            main_module, "load_engine", lambda serialized, config: engine
        )
        return engine

    return _patch


class TestBuildParser:
    """build_parser のテスト."""

    def test_short_and_long_options(self) -> None:
        """短縮形と長形式の両方が受け付けられることを確認."""
        args = build_parser().parse_args(
            ["-i", "a.ppm", "--proto", "b.prototxt", "-w", "c.caffemodel", "-l", "d"]
        )

        assert args.input == "a.ppm"
        assert args.proto == "b.prototxt"
        assert args.weights == "c.caffemodel"
        assert args.labels == "d"

    def test_flags_default_to_none(self) -> None:
        """未指定のフラグは設定ファイルを上書きしないようNoneになることを確認."""
        args = build_parser().parse_args([])

        assert args.verbose is None
        assert args.hotdog is None
        assert args.iterations is None

    def test_flags_set_true(self) -> None:
        """-v / -d でフラグが有効になることを確認."""
        args = build_parser().parse_args(["-v", "-d"])

        assert args.verbose is True
        assert args.hotdog is True

    def test_help_exits_with_one(self, capsys) -> None:
        """ヘルプ表示は終了コード1で終了することを確認."""
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--help"])

        assert exc.value.code == 1
        assert "--hotdog" in capsys.readouterr().out

    def test_unknown_option_exits_with_one(self, capsys) -> None:
        """未知のオプションは使い方を表示して終了コード1で終了することを確認."""
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--unknown"])

        assert exc.value.code == 1
        captured = capsys.readouterr()
        assert "--input" in captured.err
        assert "--unknown" in captured.err

    def test_missing_value_exits_with_one(self) -> None:
        """値が必要なオプションに値が無い場合は終了コード1になることを確認."""
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--input"])

        assert exc.value.code == 1

    def test_invalid_iterations_exits_with_one(self) -> None:
        """1未満の反復回数は終了コード1になることを確認."""
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--iterations", "0"])

        assert exc.value.code == 1


class TestBuildRunConfig:
    """build_run_config のテスト."""

    def test_defaults(self) -> None:
        """引数が無い場合は既定値になることを確認."""
        config = build_run_config(build_parser().parse_args([]))

        assert config.input_image == "data/alexnet/dog.ppm"
        assert config.decision_mode is False
        assert config.iterations == 1000
        assert config.target_class_index == 934

    def test_cli_overrides_config_file(self, tmp_path: Path) -> None:
        """CLI引数が設定ファイルより優先されることを確認."""
        config_file = tmp_path / "config.py"
        config_file.write_text(
            'input_image = "from_file.ppm"\n'
            'labels_file = "labels_from_file.txt"\n'
            "iterations = 50\n"
            "decision_mode = True\n"
        )
        args = build_parser().parse_args(
            ["-c", str(config_file), "-i", "from_cli.ppm", "--iterations", "7"]
        )

        config = build_run_config(args)

        assert config.input_image == "from_cli.ppm"
        assert config.labels_file == "labels_from_file.txt"
        assert config.iterations == 7
        assert config.decision_mode is True

    def test_missing_config_file_raises(self, tmp_path: Path) -> None:
        """存在しない設定ファイルは FileNotFoundError になることを確認."""
        args = build_parser().parse_args(["-c", str(tmp_path / "none.py")])

        with pytest.raises(FileNotFoundError):
            build_run_config(args)


class TestStage:
    """stage のテスト."""

    def test_wraps_fatal_error(self) -> None:
        """致命的エラーがステージ名付きで包まれることを確認."""
        with pytest.raises(StageFailure) as exc:
            with stage("load"):
                raise ConfigurationError("bad binding")

        assert exc.value.stage == "load"
        assert isinstance(exc.value.cause, ConfigurationError)
        assert str(exc.value) == "[load] ConfigurationError: bad binding"

    def test_other_errors_pass_through(self) -> None:
        """致命的エラー以外はそのまま送出されることを確認."""
        with pytest.raises(KeyError):
            with stage("report"):
                raise KeyError("x")


class TestRunPipeline:
    """run_pipeline のテスト."""

    def test_top_k_output(
        self,
        patch_engine,
        one_hot_output,
        run_config_factory,
        create_ppm,
        create_labels,
        report_logger,
    ) -> None:
        """上位5件と層別時間が出力され, エンジンが解放されることを確認."""
        engine = patch_engine(one_hot_output(3))
        create_ppm()
        create_labels()

        run_pipeline(run_config_factory())

        lines = report_logger.lines()
        assert lines[0] == "Results of inference sorted by confidence:"
        assert lines[1].startswith("class_3 ")
        assert lines[1].endswith(" 100.00%")
        assert lines[2].startswith("class_0 ")
        assert lines[2].endswith(" 0.00%")
        assert "Time of inference per layer:" in lines
        assert lines[-1] == "Time over all layers: 0.750ms"
        assert engine.released is True

    def test_decision_output(
        self,
        patch_engine,
        one_hot_output,
        run_config_factory,
        create_ppm,
        create_labels,
        report_logger,
    ) -> None:
        """判定モードでは判定結果のみが出力されることを確認."""
        patch_engine(one_hot_output(934))
        create_ppm()
        create_labels()

        run_pipeline(run_config_factory(decision_mode=True))

        lines = report_logger.lines()
        assert lines[0] == "class_934: MATCH"
        assert "Results of inference sorted by confidence:" not in lines

    def test_compile_failure(
        self, monkeypatch: pytest.MonkeyPatch, run_config_factory
    ) -> None:
        """変換失敗は compile ステージの失敗になることを確認."""

        def _fail(config):
            raise RuntimeError("parse error")

        monkeypatch.setattr(main_module, "compile_network", _fail)

        with pytest.raises(StageFailure) as exc:
            run_pipeline(run_config_factory())

        assert exc.value.stage == "compile"

    def test_infer_failure_releases_engine(
        self, patch_engine, one_hot_output, run_config_factory
    ) -> None:
        """推論ステージの失敗でもエンジンが解放されることを確認."""
        engine = patch_engine(one_hot_output(0))

        with pytest.raises(StageFailure) as exc:
            run_pipeline(run_config_factory())

        assert exc.value.stage == "infer"
        assert isinstance(exc.value.cause, FileNotFoundError)
        assert engine.released is True

    def test_short_label_file_fails_in_report(
        self,
        patch_engine,
        one_hot_output,
        run_config_factory,
        create_ppm,
        create_labels,
    ) -> None:
        """ラベル不足は report ステージの失敗になることを確認."""
        patch_engine(one_hot_output(999))
        create_ppm()
        create_labels(count=10)

        with pytest.raises(StageFailure) as exc:
            run_pipeline(run_config_factory())

        assert exc.value.stage == "report"


class TestMain:
    """main のテスト."""

    def test_failure_exits_with_one(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, main_logger
    ) -> None:
        """ステージの失敗はエラー出力の後に終了コード1で終了することを確認."""

        def _fail(config):
            raise ImportError("TensorRTがインストールされていません")

        monkeypatch.setattr(main_module, "compile_network", _fail)
        monkeypatch.setattr("sys.argv", ["rtclassify", "-i", str(tmp_path / "a.ppm")])

        with pytest.raises(SystemExit) as exc:
            main_module.main()

        assert exc.value.code == 1
        errors = main_logger.lines("error")
        assert len(errors) == 1
        assert errors[0].startswith("[compile] ImportError")
        assert "Done." not in main_logger.lines()

    def test_invalid_config_value_exits_with_one(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, main_logger
    ) -> None:
        """不正な設定ファイル値は config ステージの失敗になることを確認."""
        config_file = tmp_path / "config.py"
        config_file.write_text("iterations = 0\n")
        monkeypatch.setattr("sys.argv", ["rtclassify", "-c", str(config_file)])

        with pytest.raises(SystemExit) as exc:
            main_module.main()

        assert exc.value.code == 1
        assert main_logger.lines("error")[0].startswith("[config]")

    def test_banner_and_done(
        self,
        monkeypatch: pytest.MonkeyPatch,
        patch_engine,
        one_hot_output,
        create_ppm,
        create_labels,
        main_logger,
    ) -> None:
        """正常終了時にバナーと Done. が出力されることを確認."""
        patch_engine(one_hot_output(0))
        image = create_ppm()
        labels = create_labels()
        monkeypatch.setattr(
            "sys.argv",
            [
                "rtclassify",
                "-i",
                str(image),
                "-l",
                str(labels),
                "--iterations",
                "2",
                "--device",
                "cpu",
            ],
        )

        main_module.main()

        lines = main_logger.lines()
        assert lines[0] == "rtclassify: image classification with TensorRT."
        assert lines[1] == "*" * 50
        assert lines[-1] == "Done."
