# -*- coding: utf-8 -*-
#
import base64
import binascii
import os
from urllib.parse import unquote

import numpy as np
from PIL import Image

from mmd.PmxData import PmxModel, Texture
from mmd.VrmData import VrmModel
from utils import MFileUtils
from utils.MLogger import MLogger # noqa
from utils.MException import MIoFailedException

logger = MLogger(__name__, level=1)

TEXTURE_DIR_NAME = "tex"
GLTF_DIR_NAME = "glTF"
OUTPUT_DIR_MODE = 0o755

MIME_TYPE = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/gif": "gif",
    "image/tga": "tga",
}

# 特殊目テクスチャ
SPECIAL_EYE_TEXTURE_NAMES = ["eye_star", "eye_heart", "eye_hau", "eye_hachume", "eye_nagomi"]
SPECIAL_EYE_TEXTURE_SIZE = 256


class OutputLayoutService:
    def __init__(self, model: PmxModel, vrm: VrmModel, input_path: str, output_path: str):
        self.model = model
        self.vrm = vrm
        self.input_path = input_path
        self.output_path = output_path

    # 出力ディレクトリ作成・glTF展開・テクスチャ抽出
    def execute(self):
        output_dir_path = os.path.dirname(os.path.abspath(self.output_path))
        tex_dir_path = os.path.join(output_dir_path, TEXTURE_DIR_NAME)
        gltf_dir_path = os.path.join(output_dir_path, GLTF_DIR_NAME)

        try:
            for dir_path in [output_dir_path, tex_dir_path, gltf_dir_path]:
                os.makedirs(dir_path, mode=OUTPUT_DIR_MODE, exist_ok=True)
        except OSError as e:
            raise MIoFailedException("出力ディレクトリの作成に失敗しました: {0} ({1})".format(output_dir_path, e))

        self.export_gltf(gltf_dir_path)

        image_texture_indexes = self.export_textures(tex_dir_path)

        for eye_texture_name in export_special_eye_textures(tex_dir_path):
            self.model.textures.append(Texture(os.path.join(TEXTURE_DIR_NAME, eye_texture_name)))

        # 画像INDEX -> テクスチャINDEX
        self.model.image_texture_indexes = image_texture_indexes

        logger.info("-- 出力レイアウト準備終了(テクスチャ: %s)", len(self.model.textures))

        return image_texture_indexes

    # JSON・BINチャンクをそのまま出力
    def export_gltf(self, gltf_dir_path: str):
        base_name = MFileUtils.get_file_stem(self.output_path)

        try:
            with open(os.path.join(gltf_dir_path, f"{base_name}.gltf"), "wb") as f:
                f.write(self.vrm.json_bytes)

            if self.vrm.bin_data is not None:
                with open(os.path.join(gltf_dir_path, f"{base_name}.bin"), "wb") as f:
                    f.write(self.vrm.bin_data)
        except OSError as e:
            raise MIoFailedException("glTF展開ファイルの出力に失敗しました: {0} ({1})".format(gltf_dir_path, e))

        logger.info("-- glTF展開終了")

    def export_textures(self, tex_dir_path: str):
        image_texture_indexes = []
        # 特殊目テクスチャ名とは重複させない
        used_names = set(f"{name}.png" for name in SPECIAL_EYE_TEXTURE_NAMES)
        fallback_base_name = MFileUtils.get_file_stem(self.input_path)

        for iidx, image in enumerate(self.vrm.images):
            image = image if isinstance(image, dict) else {}
            image_bytes, ext = self.resolve_image_data(image)

            texture = Texture("", valid=False)
            if image_bytes:
                ext = ext or detect_image_ext(image_bytes) or "bin"
                base_name = choose_texture_base_name(image, iidx, fallback_base_name)
                file_name = MFileUtils.get_unique_file_name(f"{base_name}.{ext}", used_names)

                try:
                    with open(os.path.join(tex_dir_path, file_name), "wb") as f:
                        f.write(image_bytes)
                except OSError as e:
                    raise MIoFailedException("テクスチャの出力に失敗しました: {0} ({1})".format(file_name, e))

                texture = Texture(os.path.join(TEXTURE_DIR_NAME, file_name))
            else:
                logger.warning("画像データを取得できませんでした: image=%s", iidx)

            image_texture_indexes.append(len(self.model.textures))
            self.model.textures.append(texture)

        logger.info("-- テクスチャ抽出終了(%s)", len(image_texture_indexes))

        return image_texture_indexes

    # 画像バイト列と拡張子
    def resolve_image_data(self, image: dict):
        uri = str(image.get("uri", "") or "").strip()
        mime_ext = MIME_TYPE.get(str(image.get("mimeType", "")).strip().lower(), "")

        if uri:
            if uri.startswith("data:"):
                return decode_data_uri(uri, mime_ext)

            source_path = unquote(uri)
            if not os.path.isabs(source_path):
                source_path = os.path.join(os.path.dirname(os.path.abspath(self.input_path)), *source_path.split("/"))
            try:
                with open(source_path, "rb") as f:
                    image_bytes = f.read()
            except OSError:
                return None, ""
            ext = os.path.splitext(uri)[1].lower().lstrip(".")
            return image_bytes, ext or mime_ext

        view_idx = image.get("bufferView")
        if not isinstance(view_idx, int) or view_idx < 0 or view_idx >= len(self.vrm.buffer_views):
            return None, ""

        view = self.vrm.buffer_views[view_idx]
        view_offset = int(view.get("byteOffset", 0))
        view_length = int(view.get("byteLength", 0))
        if self.vrm.bin_data is None or view_length <= 0 or view_offset < 0 or view_offset + view_length > len(self.vrm.bin_data):
            return None, ""

        return self.vrm.bin_data[view_offset:(view_offset + view_length)], mime_ext


def decode_data_uri(uri: str, mime_ext: str):
    if "," not in uri:
        return None, ""

    meta, payload = uri[len("data:"):].split(",", 1)
    tokens = [token.strip() for token in meta.split(";") if token.strip()]
    is_base64 = "base64" in tokens
    media_types = [token for token in tokens if token != "base64"]
    ext = MIME_TYPE.get(media_types[0].lower(), "") if media_types else ""

    if not is_base64:
        return unquote(payload).encode("utf-8"), ext or mime_ext

    try:
        return base64.b64decode(payload), ext or mime_ext
    except (binascii.Error, ValueError):
        return None, ""


# シグニチャから拡張子を推定
def detect_image_ext(data: bytes):
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if data[:3] == b"\xff\xd8\xff":
        return "jpg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data[:2] == b"BM":
        return "bmp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    return ""


def choose_texture_base_name(image: dict, image_idx: int, fallback_base_name: str):
    image_name = MFileUtils.sanitize_file_name(str(image.get("name", "") or ""), "")
    if image_name:
        return image_name

    uri = str(image.get("uri", "") or "").strip()
    if uri and not uri.startswith("data:"):
        uri_name = MFileUtils.sanitize_file_name(os.path.splitext(os.path.basename(unquote(uri)))[0], "")
        if uri_name:
            return uri_name

    base_name = MFileUtils.sanitize_file_name(fallback_base_name)
    return f"{base_name}_tex_{image_idx + 1:03}"


# 特殊目テクスチャを出力(既にあれば上書きしない)
def export_special_eye_textures(tex_dir_path: str):
    file_names = []
    for texture_name in SPECIAL_EYE_TEXTURE_NAMES:
        file_name = f"{texture_name}.png"
        file_path = os.path.join(tex_dir_path, file_name)
        if not os.path.exists(file_path):
            try:
                create_special_eye_image(texture_name).save(file_path)
            except OSError as e:
                raise MIoFailedException("特殊目テクスチャの出力に失敗しました: {0} ({1})".format(file_name, e))
        file_names.append(file_name)

    logger.info("-- 特殊目テクスチャ出力終了")

    return file_names


# 透明背景に単色の図形を描いた画像
def create_special_eye_image(texture_name: str):
    size = SPECIAL_EYE_TEXTURE_SIZE
    ys, xs = np.mgrid[0:size, 0:size]
    # 中心原点、上が +y の [-1, 1] 座標
    x = (xs - (size - 1) / 2) / (size / 2)
    y = ((size - 1) / 2 - ys) / (size / 2)
    r = np.sqrt(x ** 2 + y ** 2)
    theta = np.arctan2(y, x)

    if texture_name == "eye_star":
        # 五芒星
        star_r = 0.45 + 0.35 * np.cos(5 * (theta - np.pi / 2)) ** 2
        mask = r <= star_r * 0.9
        color = (255, 230, 90)
    elif texture_name == "eye_heart":
        hx = x * 1.25
        hy = y * 1.25 + 0.25
        mask = (hx ** 2 + hy ** 2 - 1) ** 3 - hx ** 2 * hy ** 3 <= 0
        color = (255, 90, 140)
    elif texture_name == "eye_hau":
        # > < の形
        mask = (np.abs(np.abs(y) - (0.6 - np.abs(x)) * 0.8) < 0.08) & (np.abs(x) < 0.6)
        color = (40, 30, 30)
    elif texture_name == "eye_hachume":
        # 渦巻き(同心円)
        mask = (np.abs(np.sin(r * 14)) < 0.35) & (r < 0.8)
        color = (40, 30, 30)
    else:
        # への字
        mask = (np.abs(y - (0.35 - 0.9 * x ** 2)) < 0.07) & (np.abs(x) < 0.6)
        color = (40, 30, 30)

    image_ary = np.zeros((size, size, 4), dtype=np.uint8)
    image_ary[mask] = [color[0], color[1], color[2], 255]

    return Image.fromarray(image_ary)
