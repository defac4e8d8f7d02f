"""argparse用のカスタム型バリデーション関数."""

import argparse


def positive_int(value: str) -> int:
    """argparse用の正の整数バリデーション.

    Args:
        value (str): コマンドライン引数の文字列値

    Returns:
        int: 変換された正の整数

    Raises:
        argparse.ArgumentTypeError: 整数でない, または1未満の場合
    """
    try:
        int_value = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"整数を指定してください: {value}")
    if int_value < 1:
        raise argparse.ArgumentTypeError(f"1以上の整数を指定してください: {value}")
    return int_value


def non_negative_int(value: str) -> int:
    """argparse用の0以上の整数バリデーション (クラスインデックス用).

    Args:
        value (str): コマンドライン引数の文字列値

    Returns:
        int: 変換された0以上の整数

    Raises:
        argparse.ArgumentTypeError: 整数でない, または負の場合
    """
    try:
        int_value = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"整数を指定してください: {value}")
    if int_value < 0:
        raise argparse.ArgumentTypeError(f"0以上の整数を指定してください: {value}")
    return int_value
