# -*- coding: utf-8 -*-
#
import math

import pytest

from mmd.PmxData import PmxModel, Bone, Vertex, Bdef1
from mmd.VrmData import VrmModel, VrmMeta, PROFILE_VROID
from module.MMath import MVector2D, MVector3D
from service.StanceTransferService import StanceTransferService, set_local_axis


def create_vrm(profile=PROFILE_VROID):
    vrm = VrmModel()
    vrm.meta = VrmMeta()
    vrm.meta.profile = profile
    return vrm


def append_bone(model: PmxModel, name: str, position: tuple, parent_name=None):
    parent_index = model.bones[parent_name].index if parent_name else -1
    return model.get_bone_by_index(model.append_bone(Bone(name, name, MVector3D(position), parent_index, 0, 0x0002 | 0x0008 | 0x0010)))


# 右腕だけの T スタンス
def create_arm_model():
    model = PmxModel()
    append_bone(model, "上半身", (0, 10, 0))
    append_bone(model, "右腕", (-1, 15, 0), "上半身")
    append_bone(model, "右ひじ", (-3, 15, 0), "右腕")
    append_bone(model, "右手首", (-5, 15, 0), "右ひじ")
    append_bone(model, "右腕捩", (-2, 15, 0), "右腕")
    append_bone(model, "右腕捩1", (-1.5, 15, 0), "右腕")
    append_bone(model, "下半身", (0, 9, 0))
    return model


def test_right_arm_a_stance():
    model = create_arm_model()
    vertex = Vertex(0, MVector3D(-3, 15, 0), MVector3D(0, 1, 0), MVector2D(), [], Bdef1(model.bones["右ひじ"].index), 1.0)
    model.vertices.append(vertex)

    assert StanceTransferService(model, create_vrm()).execute()

    arm = model.bones["右腕"]
    elbow = model.bones["右ひじ"]
    # 腕の位置は変わらず、ひじは下がる
    assert arm.position.data() == pytest.approx([-1, 15, 0])
    assert elbow.position.y() < 15
    assert (elbow.position - arm.position).length() == pytest.approx(2)
    assert elbow.position.y() == pytest.approx(15 - 2 * math.sin(math.radians(35)))
    assert elbow.position.x() == pytest.approx(-1 - 2 * math.cos(math.radians(35)))

    # 頂点はひじに追従
    assert vertex.position.data() == pytest.approx(elbow.position.data())
    assert vertex.normal.length() == pytest.approx(1)

    # チェーン外のボーンはそのまま
    assert model.bones["下半身"].position.data() == pytest.approx([0, 9, 0])

    # ローカル軸
    assert arm.getLocalCoordinateFlag()
    assert arm.local_x_vector.data() == pytest.approx((elbow.position - arm.position).normalized().data())
    twist = model.bones["右腕捩"]
    assert twist.fixed_axis.data() == pytest.approx(arm.local_x_vector.data())


def test_skip_non_vroid():
    model = create_arm_model()

    assert not StanceTransferService(model, create_vrm(profile="standard")).execute()
    assert model.bones["右ひじ"].position.data() == pytest.approx([-3, 15, 0])


def test_skip_without_upper_body():
    model = PmxModel()
    append_bone(model, "右腕", (-1, 15, 0))

    assert not StanceTransferService(model, create_vrm()).execute()


def test_create_bone_links():
    model = create_arm_model()
    service = StanceTransferService(model, create_vrm())

    assert [bone.name for bone in service.create_bone_links("右腕捩1")] == ["上半身", "右腕", "右腕捩1"]
    # 上半身を通らなければ空
    assert service.create_bone_links("下半身") == []
    assert service.create_bone_links("なし") == []


def test_set_local_axis():
    bone = Bone("a", "a", MVector3D(), -1, 0, 0x0002)

    assert not set_local_axis(bone, MVector3D(), MVector3D(0, -1, 0))
    assert not bone.getLocalCoordinateFlag()

    assert set_local_axis(bone, MVector3D(2, 0, 0), MVector3D(0, -1, 0))
    assert bone.local_x_vector.data() == pytest.approx([1, 0, 0])
    assert bone.local_z_vector.data() == pytest.approx([0, 0, -1])
    assert bone.getLocalCoordinateFlag()
