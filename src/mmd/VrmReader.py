# -*- coding: utf-8 -*-
#
import json
import os
import struct

import numpy as np

from mmd.VrmData import VrmModel
from utils.MLogger import MLogger # noqa
from utils.MException import MParseException, MFormatUnsupportedException, MFileNotFoundException, MIoFailedException

logger = MLogger(__name__, level=1)

GLB_MAGIC = 0x46546C67
GLB_VERSION = 2
CHUNK_TYPE_JSON = 0x4E4F534A
CHUNK_TYPE_BIN = 0x004E4942

# componentType -> (numpy型, バイト数, 正規化の除数, 下限)
COMPONENT_TYPES = {
    5120: ("<i1", 1, 127.0, -1.0),
    5121: ("<u1", 1, 255.0, None),
    5122: ("<i2", 2, 32767.0, -1.0),
    5123: ("<u2", 2, 65535.0, None),
    5125: ("<u4", 4, 4294967295.0, None),
    5126: ("<f4", 4, None, None),
}

# type -> 要素数
ELEMENT_TYPES = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
}


class VrmReader:
    def __init__(self, file_path: str):
        self.file_path = file_path
        self.offset = 0
        self.buffer = None

    def read_data(self):
        if not os.path.exists(self.file_path) or not os.path.isfile(self.file_path):
            raise MFileNotFoundException("ファイルが見つかりません: {0}".format(self.file_path))

        try:
            with open(self.file_path, "rb") as f:
                self.buffer = f.read()
        except OSError as e:
            raise MIoFailedException("ファイルの読み込みに失敗しました: {0} ({1})".format(self.file_path, e))

        vrm = self.read_bytes(self.buffer)
        vrm.path = self.file_path

        return vrm

    # GLB バイト列の解析
    def read_bytes(self, buffer: bytes):
        self.buffer = buffer
        self.offset = 0

        if len(self.buffer) < 12:
            raise MParseException("GLBヘッダが不足しています: {0}bytes".format(len(self.buffer)))

        magic = self.unpack(4, "<I")
        if magic != GLB_MAGIC:
            raise MParseException("GLBシグニチャが不正です: 0x{0:08X}".format(magic))

        version = self.unpack(4, "<I")
        if version != GLB_VERSION:
            raise MFormatUnsupportedException("GLBバージョンが未対応です: {0}".format(version))

        total_length = self.unpack(4, "<I")
        if total_length > len(self.buffer):
            raise MParseException("GLB全体長が不正です: header={0}, actual={1}".format(total_length, len(self.buffer)))

        json_chunk = None
        bin_chunk = None
        while self.offset + 8 <= total_length:
            chunk_length = self.unpack(4, "<I")
            chunk_type = self.unpack(4, "<I")
            chunk_start = self.offset
            chunk_end = chunk_start + chunk_length
            if chunk_end > total_length:
                raise MParseException("チャンク範囲が不正です: type=0x{0:08X}, end={1}, total={2}".format(chunk_type, chunk_end, total_length))

            if chunk_type == CHUNK_TYPE_JSON:
                if json_chunk is not None:
                    raise MParseException("JSONチャンクが複数あります")
                json_chunk = self.buffer[chunk_start:chunk_end]
            elif chunk_type == CHUNK_TYPE_BIN:
                # 先勝ち
                if bin_chunk is None:
                    bin_chunk = self.buffer[chunk_start:chunk_end]
            else:
                logger.debug("未知のチャンクをスキップ: type=0x%08X, length=%s", chunk_type, chunk_length)

            self.offset = chunk_end

        if json_chunk is None:
            raise MParseException("JSONチャンクがありません")

        vrm = VrmModel()
        vrm.json_bytes = bytes(json_chunk)
        vrm.bin_data = bytes(bin_chunk) if bin_chunk is not None else None

        try:
            json_text = vrm.json_bytes.decode("utf-8").rstrip(" \t\r\n\0")
            vrm.json_data = json.loads(json_text)
        except (UnicodeDecodeError, ValueError) as e:
            raise MParseException("glTF JSONの解析に失敗しました: {0}".format(e))

        if not isinstance(vrm.json_data, dict):
            raise MParseException("glTF JSONがオブジェクトではありません")

        logger.debug("glb: json=%s bytes, bin=%s bytes", len(vrm.json_bytes), len(vrm.bin_data) if vrm.bin_data is not None else -1)

        return vrm

    # 解凍して、offsetを更新する
    def unpack(self, format_size, format):
        bresult = struct.unpack_from(format, self.buffer, self.offset)

        # オフセットを更新する
        self.offset += format_size

        if bresult:
            result = bresult[0]
        else:
            result = None

        return result


# アクセサ経由で値を取得する(行数 x 要素数 の配列)
# https://github.com/ft-lab/Documents_glTF/blob/master/structure.md
def read_from_accessor(vrm: VrmModel, accessor_idx: int):
    if accessor_idx in vrm.accessor_cache:
        return vrm.accessor_cache[accessor_idx]

    accessors = vrm.accessors
    if not isinstance(accessor_idx, int) or accessor_idx < 0 or accessor_idx >= len(accessors):
        raise MParseException("アクセサINDEXが範囲外です: {0}".format(accessor_idx))

    accessor = accessors[accessor_idx]
    if accessor.get("bufferView") is None:
        # スパースアクセサ(bufferViewなし)は未対応
        raise MFormatUnsupportedException("bufferViewのないアクセサは未対応です: accessor={0}".format(accessor_idx))

    component_type = accessor.get("componentType", 0)
    if component_type not in COMPONENT_TYPES:
        raise MFormatUnsupportedException("未対応のcomponentTypeです: accessor={0}, componentType={1}".format(accessor_idx, component_type))

    acc_type = accessor.get("type", "")
    if acc_type not in ELEMENT_TYPES:
        raise MFormatUnsupportedException("未対応のtypeです: accessor={0}, type={1}".format(accessor_idx, acc_type))

    dtype, component_size, normalize_divisor, normalize_min = COMPONENT_TYPES[component_type]
    component_count = ELEMENT_TYPES[acc_type]
    element_size = component_size * component_count
    count = int(accessor.get("count", 0))

    view_idx = accessor["bufferView"]
    buffer_views = vrm.buffer_views
    if not isinstance(view_idx, int) or view_idx < 0 or view_idx >= len(buffer_views):
        raise MParseException("bufferView INDEXが範囲外です: accessor={0}, bufferView={1}".format(accessor_idx, view_idx))

    view = buffer_views[view_idx]
    if view.get("buffer", 0) != 0:
        raise MFormatUnsupportedException("外部バッファは未対応です: bufferView={0}, buffer={1}".format(view_idx, view.get("buffer")))

    if vrm.bin_data is None:
        raise MParseException("BINチャンクがありません: accessor={0}".format(accessor_idx))

    bin_length = len(vrm.bin_data)
    view_offset = int(view.get("byteOffset", 0))
    view_length = int(view.get("byteLength", 0))
    if view_offset < 0 or view_length < 0 or view_offset + view_length > bin_length:
        raise MParseException("bufferView範囲が不正です: bufferView={0}, offset={1}, length={2}, bin={3}".format(view_idx, view_offset, view_length, bin_length))

    stride = int(view.get("byteStride", 0)) or element_size
    if stride < element_size:
        raise MParseException("byteStrideが要素サイズ未満です: bufferView={0}, stride={1}, element={2}".format(view_idx, stride, element_size))

    accessor_offset = int(accessor.get("byteOffset", 0))
    if accessor_offset < 0:
        raise MParseException("アクセサのbyteOffsetが不正です: accessor={0}".format(accessor_idx))

    base_offset = view_offset + accessor_offset
    if count <= 0:
        is_float = dtype == "<f4" or accessor.get("normalized", False)
        values = np.zeros((0, component_count), dtype=np.float64 if is_float else np.int64)
        vrm.accessor_cache[accessor_idx] = values
        return values

    if base_offset + (count - 1) * stride + element_size > view_offset + view_length:
        raise MParseException("アクセサ範囲がbufferViewを超えています: accessor={0}".format(accessor_idx))

    raw_values = np.ndarray(
        shape=(count, component_count),
        dtype=np.dtype(dtype),
        buffer=vrm.bin_data,
        offset=base_offset,
        strides=(stride, component_size),
    )

    if dtype == "<f4":
        values = raw_values.astype(np.float64)
    elif accessor.get("normalized", False):
        values = raw_values.astype(np.float64) / normalize_divisor
        if normalize_min is not None:
            values = np.maximum(values, normalize_min)
    else:
        values = raw_values.astype(np.int64)

    logger.test("-- -- Accessor[%s/%s/%s] count=%s", accessor_idx, acc_type, component_type, count)

    vrm.accessor_cache[accessor_idx] = values
    return values
