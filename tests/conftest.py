# -*- coding: utf-8 -*-
#
import json
import struct

import numpy as np
import pytest

from mmd.VrmReader import VrmReader, GLB_MAGIC, GLB_VERSION, CHUNK_TYPE_JSON, CHUNK_TYPE_BIN
from service.SceneTransformService import SceneTransformService

# componentType -> numpy型
COMPONENT_DTYPES = {
    5120: "<i1",
    5121: "<u1",
    5122: "<i2",
    5123: "<u2",
    5125: "<u4",
    5126: "<f4",
}


# テスト用 GLB の組み立て
class GlbBuilder:
    def __init__(self, json_data=None):
        self.json_data = json_data if json_data is not None else {"asset": {"version": "2.0"}}
        self.bin_data = bytearray()

    def add_buffer_view(self, data: bytes, byte_stride=None):
        # 4バイト境界
        while len(self.bin_data) % 4:
            self.bin_data.append(0)

        view = {"buffer": 0, "byteOffset": len(self.bin_data), "byteLength": len(data)}
        if byte_stride:
            view["byteStride"] = byte_stride
        self.bin_data.extend(data)

        buffer_views = self.json_data.setdefault("bufferViews", [])
        buffer_views.append(view)
        return len(buffer_views) - 1

    def add_accessor(self, values, acc_type: str, component_type=5126, normalized=False):
        ary = np.asarray(values, dtype=np.dtype(COMPONENT_DTYPES[component_type]))
        view_idx = self.add_buffer_view(ary.tobytes())

        accessor = {"bufferView": view_idx, "componentType": component_type, "count": len(values), "type": acc_type}
        if normalized:
            accessor["normalized"] = True

        accessors = self.json_data.setdefault("accessors", [])
        accessors.append(accessor)
        return len(accessors) - 1

    def build(self, with_bin=True, magic=GLB_MAGIC, version=GLB_VERSION, with_json=True):
        chunks = b""
        if with_json:
            json_bytes = json.dumps(self.json_data).encode("utf-8")
            json_bytes += b" " * (-len(json_bytes) % 4)
            chunks += struct.pack("<II", len(json_bytes), CHUNK_TYPE_JSON) + json_bytes

        if with_bin and self.bin_data:
            bin_bytes = bytes(self.bin_data) + b"\0" * (-len(self.bin_data) % 4)
            chunks += struct.pack("<II", len(bin_bytes), CHUNK_TYPE_BIN) + bin_bytes

        return struct.pack("<III", magic, version, 12 + len(chunks)) + chunks

    # 解析済み(シーン計算済み)の VrmModel
    def create_vrm(self, with_bin=True):
        vrm = VrmReader("").read_bytes(self.build(with_bin=with_bin))
        SceneTransformService(vrm).execute()
        return vrm


# VRM の glTF JSON
def create_vrm_json(nodes: list, humanoid=None, version=0, generator="UniGLTF-1.28", exporter_version="UniVRM-0.51.0"):
    humanoid = humanoid or {}
    json_data = {"asset": {"version": "2.0", "generator": generator}, "nodes": nodes}

    if version == 1:
        json_data["extensionsUsed"] = ["VRMC_vrm"]
        json_data["extensions"] = {
            "VRMC_vrm": {
                "specVersion": "1.0",
                "meta": {"name": "テストモデル", "authors": ["tester"]},
                "humanoid": {"humanBones": {name: {"node": node_idx} for name, node_idx in humanoid.items()}},
            }
        }
    else:
        json_data["extensionsUsed"] = ["VRM"]
        json_data["extensions"] = {
            "VRM": {
                "exporterVersion": exporter_version,
                "meta": {"title": "テストモデル", "author": "tester"},
                "humanoid": {"humanBones": [{"bone": name, "node": node_idx} for name, node_idx in humanoid.items()]},
            }
        }

    return json_data


# 片側(左)の人型骨格
def create_humanoid_nodes():
    nodes = [
        {"name": "J_Bip_C_Hips", "translation": [0, 0.9, 0], "children": [1, 8]},
        {"name": "J_Bip_C_Spine", "translation": [0, 0.1, 0], "children": [2]},
        {"name": "J_Bip_C_Chest", "translation": [0, 0.15, 0], "children": [3, 5]},
        {"name": "J_Bip_C_Neck", "translation": [0, 0.2, 0], "children": [4]},
        {"name": "J_Bip_C_Head", "translation": [0, 0.1, 0]},
        {"name": "J_Bip_L_UpperArm", "translation": [0.2, 0.15, 0], "children": [6]},
        {"name": "J_Bip_L_LowerArm", "translation": [0.25, 0, 0], "children": [7]},
        {"name": "J_Bip_L_Hand", "translation": [0.25, 0, 0]},
        {"name": "J_Bip_L_UpperLeg", "translation": [0.1, -0.05, 0], "children": [9]},
        {"name": "J_Bip_L_LowerLeg", "translation": [0, -0.4, 0], "children": [10]},
        {"name": "J_Bip_L_Foot", "translation": [0, -0.38, 0], "children": [11]},
        {"name": "J_Bip_L_ToeBase", "translation": [0, -0.05, 0.1]},
    ]
    humanoid = {
        "hips": 0,
        "spine": 1,
        "chest": 2,
        "neck": 3,
        "head": 4,
        "leftUpperArm": 5,
        "leftLowerArm": 6,
        "leftHand": 7,
        "leftUpperLeg": 8,
        "leftLowerLeg": 9,
        "leftFoot": 10,
        "leftToes": 11,
    }
    return nodes, humanoid


@pytest.fixture
def glb_builder():
    return GlbBuilder()


@pytest.fixture
def vrm_json():
    return create_vrm_json


@pytest.fixture
def humanoid_nodes():
    return create_humanoid_nodes()


# 1ポリゴンのVRMファイルを書き出す
@pytest.fixture
def triangle_vrm_path(tmp_path):
    def write_vrm(file_name="model.vrm", version=0):
        nodes, humanoid = create_humanoid_nodes()
        nodes = nodes + [{"name": "Face", "mesh": 0}]
        builder = GlbBuilder(create_vrm_json(nodes, humanoid, version=version))
        builder.json_data["meshes"] = [
            {
                "name": "Face",
                "primitives": [
                    {
                        "attributes": {
                            "POSITION": builder.add_accessor([[0, 1, 0], [0, 1.1, 0], [0.1, 1, 0]], "VEC3"),
                            "NORMAL": builder.add_accessor([[0, 0, 1], [0, 0, 1], [0, 0, 1]], "VEC3"),
                            "TEXCOORD_0": builder.add_accessor([[0, 0], [0, 1], [1, 0]], "VEC2"),
                        },
                        "indices": builder.add_accessor([0, 1, 2], "SCALAR", component_type=5123),
                        "material": 0,
                    }
                ],
            }
        ]
        builder.json_data["materials"] = [{"name": "Face_00_SKIN", "pbrMetallicRoughness": {"baseColorFactor": [1, 1, 1, 1]}}]

        file_path = tmp_path / file_name
        file_path.write_bytes(builder.build())
        return str(file_path)

    return write_vrm
