# -*- coding: utf-8 -*-
#

from datetime import datetime
import os
import glob
from pathlib import Path
import re

from utils.MLogger import MLogger # noqa

logger = MLogger(__name__)

# ファイル名に使えない文字
INVALID_FILE_NAME_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


# ディレクトリパス
def get_dir_path(base_file_path):
    if os.path.exists(base_file_path):
        file_path_list = [base_file_path]
    else:
        file_path_list = [p for p in glob.glob(base_file_path) if os.path.isfile(p)]

    if len(file_path_list) == 0:
        return ""

    # ファイルパスをオブジェクトとして解決し、親を取得する
    return str(Path(file_path_list[0]).resolve().parents[0])


# ファイル名(拡張子なし)
def get_file_stem(file_path: str):
    file_name, _ = os.path.splitext(os.path.basename(file_path))
    return file_name


# PMX出力ファイルパス生成
# org_vrm_path: 変換元VRMパス
# output_pmx_path: 出力PMXファイルパス(指定あり)
# output_root: 出力ルートディレクトリ(指定あり)
def get_output_pmx_path(org_vrm_path: str, output_pmx_path=None, output_root=None, now=None):
    if output_pmx_path:
        return output_pmx_path

    # VRMモデルファイル名
    org_vrm_file_name = get_file_stem(org_vrm_path)

    if output_root:
        return os.path.join(output_root, org_vrm_file_name, f'{org_vrm_file_name}.pmx')

    # VRMディレクトリパス
    vrm_dir_path = get_dir_path(org_vrm_path) or os.path.dirname(os.path.abspath(org_vrm_path))
    now = now or datetime.now()

    return os.path.join(vrm_dir_path, f'{org_vrm_file_name}_{now:%Y%m%d%H%M%S}', f'{org_vrm_file_name}.pmx')


# ファイル名に使えない文字を置換
def sanitize_file_name(name: str, default_name="texture"):
    sanitized = INVALID_FILE_NAME_PATTERN.sub("_", name or "").strip(" .")
    return sanitized or default_name


# 重複しないファイル名(拡張子は維持)
def get_unique_file_name(file_name: str, used_names: set):
    if file_name.lower() not in used_names:
        used_names.add(file_name.lower())
        return file_name

    stem, ext = os.path.splitext(file_name)
    n = 1
    while f'{stem}_{n}{ext}'.lower() in used_names:
        n += 1

    unique_name = f'{stem}_{n}{ext}'
    used_names.add(unique_name.lower())
    return unique_name
