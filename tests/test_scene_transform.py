# -*- coding: utf-8 -*-
#
import math

import pytest

from mmd.PmxData import PmxModel
from mmd.VrmData import VrmModel, VRM_VERSION_0, VRM_VERSION_1, PROFILE_STANDARD, PROFILE_VROID
from service.SceneTransformService import SceneTransformService, create_conversion
from service.SkeletonBuildService import SkeletonBuildService
from utils.MException import MParseException, MFormatUnsupportedException


def create_vrm(json_data: dict):
    vrm = VrmModel()
    vrm.json_data = json_data
    conversion = SceneTransformService(vrm).execute()
    return vrm, conversion


def build_extra_bone_position(json_data: dict):
    vrm, conversion = create_vrm(json_data)
    model = PmxModel()
    SkeletonBuildService(model, vrm, conversion).execute()
    return model.bones["extra"].position


def test_vroid_vrm0(vrm_json):
    json_data = vrm_json([{"name": "extra", "translation": [0.1, 0.3, 0.2]}], generator="VRoid Studio v0.14.0", exporter_version="")
    vrm, conversion = create_vrm(json_data)

    assert vrm.meta.version == VRM_VERSION_0
    assert vrm.meta.profile == PROFILE_VROID
    assert conversion.axis == (-1, 1, 1)

    position = build_extra_bone_position(json_data)
    assert position.x() == pytest.approx(-1.25)
    assert position.y() == pytest.approx(3.75)
    assert position.z() == pytest.approx(2.5)


def test_vroid_vrm1(vrm_json):
    json_data = vrm_json([{"name": "extra", "translation": [0.1, 0.3, 0.2]}], generator="UniGLTF", exporter_version="VRoid Studio-1.22.1")
    json_data["extensionsUsed"] = ["VRM", "VRMC_vrm"]
    json_data["extensions"]["VRMC_vrm"] = {"specVersion": "1.0", "humanoid": {"humanBones": {}}}
    vrm, conversion = create_vrm(json_data)

    assert vrm.meta.version == VRM_VERSION_1
    assert vrm.meta.profile == PROFILE_VROID
    assert conversion.axis == (1, 1, -1)
    assert conversion.reverse_winding

    position = build_extra_bone_position(json_data)
    assert position.x() == pytest.approx(1.25)
    assert position.y() == pytest.approx(3.75)
    assert position.z() == pytest.approx(-2.5)


def test_univrm_vrm0(vrm_json):
    json_data = vrm_json([{"name": "extra", "translation": [0.1, 0.3, 0.2]}], generator="UniGLTF-1.28", exporter_version="UniVRM-0.51.0")
    vrm, conversion = create_vrm(json_data)

    assert vrm.meta.profile == PROFILE_STANDARD
    assert conversion.axis == (-1, 1, 1)

    position = build_extra_bone_position(json_data)
    assert position.x() == pytest.approx(-1.25)
    assert position.z() == pytest.approx(2.5)


def test_minimal_vrm1_humanoid(vrm_json):
    vrm, conversion = create_vrm(vrm_json([{"name": "hips", "translation": [0, 0.8, 0]}], {"Hips": 0}, version=1))

    assert vrm.meta.version == VRM_VERSION_1
    assert vrm.meta.profile == PROFILE_STANDARD
    # humanoid 名は小文字
    assert vrm.meta.humanoid == {"hips": 0}
    assert conversion.convert_position(vrm.node_positions[0]).y() == pytest.approx(10)


def test_no_vrm_extension():
    vrm = VrmModel()
    vrm.json_data = {"asset": {"version": "2.0"}, "nodes": [{"name": "root"}]}

    with pytest.raises(MFormatUnsupportedException):
        SceneTransformService(vrm).execute()


def test_node_cycle(vrm_json):
    with pytest.raises(MParseException):
        create_vrm(vrm_json([{"name": "a", "children": [1]}, {"name": "b", "children": [0]}]))


def test_node_multiple_parents(vrm_json):
    with pytest.raises(MParseException):
        create_vrm(vrm_json([{"name": "a", "children": [2]}, {"name": "b", "children": [2]}, {"name": "c"}]))


def test_child_out_of_range(vrm_json):
    with pytest.raises(MParseException):
        create_vrm(vrm_json([{"name": "a", "children": [5]}]))


def test_world_matrixes(vrm_json):
    half = math.sqrt(0.5)
    nodes = [
        # Y軸90度回転
        {"name": "parent", "translation": [0, 1, 0], "rotation": [0, half, 0, half], "children": [1]},
        {"name": "child", "translation": [1, 0, 0], "children": [2]},
        {"name": "matrix", "matrix": [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 0, 0.5, 0, 1]},
    ]
    vrm, _ = create_vrm(vrm_json(nodes))

    assert vrm.node_parents == [-1, 0, 1]

    child_position = vrm.node_positions[1]
    assert child_position.x() == pytest.approx(0, abs=1e-6)
    assert child_position.y() == pytest.approx(1)
    assert child_position.z() == pytest.approx(-1)

    matrix_position = vrm.node_positions[2]
    assert matrix_position.y() == pytest.approx(1.5)
    assert matrix_position.z() == pytest.approx(-1)


def test_create_conversion_scale(vrm_json):
    vrm, conversion = create_vrm(vrm_json([{"name": "root"}]))

    assert conversion.scale == 12.5
    assert create_conversion(vrm.meta).axis == conversion.axis
    normal = conversion.convert_normal([1, 0, 0])
    assert normal.x() == pytest.approx(-1)
