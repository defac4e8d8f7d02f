"""rtclassify 設定ファイル.

モジュールレベルの変数がそのまま RunConfig の項目になる.
CLI引数で指定した値はこのファイルの値より優先される.
"""

# 入力ファイル
input_image = "data/alexnet/dog.ppm"  # 入力画像 (PPM)
proto_file = "data/alexnet/deploy.prototxt"  # ネットワーク定義
weights_file = "data/alexnet/bvlc_alexnet.caffemodel"  # 重みファイル
labels_file = "data/alexnet/imagenet-labels.txt"  # ラベルファイル

# テンソル名
input_blob_name = "data"
output_blob_name = "prob"

# 入力画像の寸法
input_height = 227
input_width = 227
strict_image_header = False  # Trueでヘッダ寸法の不一致をエラーにする

# 実行設定
iterations = 1000  # 層別時間の平均化に使う実行回数
top_k = 5
workspace_size = 16 << 20  # ビルダーのワークスペース (bytes)
buffer_device = "cuda"

# 判定モード
decision_mode = False
target_class_index = 934  # hotdog
