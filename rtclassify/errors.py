"""推論パイプラインの致命的エラー定義.

いずれも再試行はせず, CLIが失敗ステージ名とともにログ出力して終了する.
"""


class ConfigurationError(RuntimeError):
    """トポロジ前提の違反.

    バインディング数の不一致, 未知のテンソル名,
    デバイスバッファサイズと形状の不一致など.
    """


class ResourceError(RuntimeError):
    """デバイスメモリの確保・転送, またはエンジン実行の失敗."""


class DataError(ValueError):
    """ラベルテーブルや出力ベクトルが要求されたインデックスを満たさない."""


class DataFileError(OSError):
    """入力ファイルは開けたが内容が期待するサイズに満たない."""
