"""rtclassify.io: 入力画像とラベルファイルの読み込み."""

from .image_loader import PPMHeader, parse_ppm_header, read_ppm_image
from .label_table import LabelTable

__all__ = ["PPMHeader", "parse_ppm_header", "read_ppm_image", "LabelTable"]
