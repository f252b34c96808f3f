# -*- coding: utf-8 -*-
#
import struct

import numpy as np
import pytest

from mmd.VrmReader import VrmReader, read_from_accessor, CHUNK_TYPE_JSON
from utils.MException import MParseException, MFormatUnsupportedException, MFileNotFoundException


def test_read_data_glb(tmp_path, glb_builder):
    glb_builder.json_data["nodes"] = [{"name": "root"}]
    glb_builder.add_accessor([[1, 2, 3]], "VEC3")

    file_path = tmp_path / "model.vrm"
    file_path.write_bytes(glb_builder.build())

    vrm = VrmReader(str(file_path)).read_data()

    assert vrm.path == str(file_path)
    assert vrm.nodes == [{"name": "root"}]
    assert vrm.bin_data is not None
    assert len(vrm.bin_data) % 4 == 0


def test_read_data_not_found(tmp_path):
    with pytest.raises(MFileNotFoundException):
        VrmReader(str(tmp_path / "none.vrm")).read_data()


def test_read_bytes_short_header():
    with pytest.raises(MParseException):
        VrmReader("").read_bytes(b"glTF")


def test_read_bytes_bad_magic(glb_builder):
    with pytest.raises(MParseException):
        VrmReader("").read_bytes(glb_builder.build(magic=0x12345678))


def test_read_bytes_unsupported_version(glb_builder):
    with pytest.raises(MFormatUnsupportedException):
        VrmReader("").read_bytes(glb_builder.build(version=1))


def test_read_bytes_no_json_chunk(glb_builder):
    glb_builder.add_accessor([[0, 0, 0]], "VEC3")

    with pytest.raises(MParseException):
        VrmReader("").read_bytes(glb_builder.build(with_json=False))


def test_read_bytes_broken_json():
    json_bytes = b"{broken"
    chunk = struct.pack("<II", len(json_bytes), CHUNK_TYPE_JSON) + json_bytes
    buffer = struct.pack("<III", 0x46546C67, 2, 12 + len(chunk)) + chunk

    with pytest.raises(MParseException):
        VrmReader("").read_bytes(buffer)


def test_read_bytes_chunk_overrun(glb_builder):
    buffer = bytearray(glb_builder.build())
    # JSONチャンク長を全体長より大きくする
    struct.pack_into("<I", buffer, 12, len(buffer))

    with pytest.raises(MParseException):
        VrmReader("").read_bytes(bytes(buffer))


def test_read_bytes_without_bin(glb_builder):
    vrm = VrmReader("").read_bytes(glb_builder.build(with_bin=False))

    assert vrm.bin_data is None
    assert vrm.json_data["asset"]["version"] == "2.0"


def test_read_from_accessor_float(glb_builder):
    accessor_idx = glb_builder.add_accessor([[0, 0.5, 1], [-1, 2, 3]], "VEC3")
    vrm = VrmReader("").read_bytes(glb_builder.build())

    values = read_from_accessor(vrm, accessor_idx)

    assert values.dtype == np.float64
    assert values.shape == (2, 3)
    assert np.allclose(values, [[0, 0.5, 1], [-1, 2, 3]])
    # 2回目はキャッシュ
    assert read_from_accessor(vrm, accessor_idx) is values


def test_read_from_accessor_normalized(glb_builder):
    ubyte_idx = glb_builder.add_accessor([[0, 255], [51, 102]], "VEC2", component_type=5121, normalized=True)
    short_idx = glb_builder.add_accessor([[-32768], [32767]], "SCALAR", component_type=5122, normalized=True)
    vrm = VrmReader("").read_bytes(glb_builder.build())

    assert np.allclose(read_from_accessor(vrm, ubyte_idx), [[0, 1], [0.2, 0.4]])
    # 符号付きは -1 で下限
    assert np.allclose(read_from_accessor(vrm, short_idx), [[-1], [1]])


def test_read_from_accessor_integer(glb_builder):
    accessor_idx = glb_builder.add_accessor([[0, 1, 2, 3], [4, 5, 6, 7]], "VEC4", component_type=5123)
    vrm = VrmReader("").read_bytes(glb_builder.build())

    values = read_from_accessor(vrm, accessor_idx)

    assert values.dtype == np.int64
    assert values.tolist() == [[0, 1, 2, 3], [4, 5, 6, 7]]


def test_read_from_accessor_stride(glb_builder):
    # POSITION(12byte) + 4byte の詰め物
    data = struct.pack("<3f4x3f4x", 1, 2, 3, 4, 5, 6)
    view_idx = glb_builder.add_buffer_view(data, byte_stride=16)
    glb_builder.json_data["accessors"] = [{"bufferView": view_idx, "componentType": 5126, "count": 2, "type": "VEC3"}]
    vrm = VrmReader("").read_bytes(glb_builder.build())

    assert np.allclose(read_from_accessor(vrm, 0), [[1, 2, 3], [4, 5, 6]])


def test_read_from_accessor_stride_too_small(glb_builder):
    view_idx = glb_builder.add_buffer_view(struct.pack("<6f", 1, 2, 3, 4, 5, 6), byte_stride=8)
    glb_builder.json_data["accessors"] = [{"bufferView": view_idx, "componentType": 5126, "count": 2, "type": "VEC3"}]
    vrm = VrmReader("").read_bytes(glb_builder.build())

    with pytest.raises(MParseException):
        read_from_accessor(vrm, 0)


def test_read_from_accessor_out_of_range(glb_builder):
    accessor_idx = glb_builder.add_accessor([[1, 2, 3]], "VEC3")
    glb_builder.json_data["accessors"][accessor_idx]["count"] = 5
    vrm = VrmReader("").read_bytes(glb_builder.build())

    with pytest.raises(MParseException):
        read_from_accessor(vrm, accessor_idx)

    with pytest.raises(MParseException):
        read_from_accessor(vrm, 10)


def test_read_from_accessor_sparse(glb_builder):
    glb_builder.add_accessor([[1, 2, 3]], "VEC3")
    glb_builder.json_data["accessors"].append({"componentType": 5126, "count": 1, "type": "VEC3", "sparse": {"count": 1}})
    vrm = VrmReader("").read_bytes(glb_builder.build())

    with pytest.raises(MFormatUnsupportedException):
        read_from_accessor(vrm, 1)


def test_read_from_accessor_without_bin(glb_builder):
    accessor_idx = glb_builder.add_accessor([[1, 2, 3]], "VEC3")
    vrm = VrmReader("").read_bytes(glb_builder.build(with_bin=False))

    with pytest.raises(MParseException):
        read_from_accessor(vrm, accessor_idx)
