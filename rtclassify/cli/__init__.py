"""rtclassify.cli: コマンドラインインターフェース."""
