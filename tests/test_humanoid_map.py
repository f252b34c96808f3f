# -*- coding: utf-8 -*-
#
import math

import pytest

from mmd.PmxData import PmxModel, Vertex, Bone, Morph, Bdef1, Bdef2
from mmd.VrmData import VrmModel
from module.MMath import MVector2D, MVector3D
from service.SceneTransformService import SceneTransformService
from service.SkeletonBuildService import SkeletonBuildService
from service.HumanoidMapService import HumanoidMapService, create_humanoid_plan, create_normalized_deform, calc_layers, \
    create_display_slots, get_display_slot_name
from utils.MException import MModelInvalidException


def build_skeleton(json_data: dict):
    vrm = VrmModel()
    vrm.json_data = json_data
    conversion = SceneTransformService(vrm).execute()
    model = PmxModel()
    SkeletonBuildService(model, vrm, conversion).execute()
    return model, vrm


def append_vertex(model: PmxModel, position: MVector3D, bone_name: str):
    vertex = Vertex(len(model.vertices), position, MVector3D(0, 1, 0), MVector2D(), [], Bdef1(model.bones[bone_name].index), 1.0)
    model.vertices.append(vertex)
    return vertex


def assert_bone_invariants(model: PmxModel):
    names = [bone.name for bone in model.bones.values()]
    assert len(names) == len(set(names))
    for bidx, bone in enumerate(model.bones.values()):
        assert bone.index == bidx
        assert model.bone_indexes[bidx] == bone.name
        assert -1 <= bone.parent_index < len(model.bones)
        # 親は子より前
        assert bone.parent_index < bone.index


def test_minimal_vrm1(vrm_json):
    model, vrm = build_skeleton(vrm_json([{"name": "hips", "translation": [0, 0.8, 0]}], {"hips": 0}, version=1))

    assert HumanoidMapService(model, vrm).execute()

    assert set(model.bones.keys()) == {"全ての親", "センター", "グルーブ", "下半身"}
    lower = model.bones["下半身"]
    assert lower.position.x() == pytest.approx(0)
    assert lower.position.y() == pytest.approx(10)
    assert lower.parent_index == model.bones["センター"].index
    assert model.bones["センター"].position.y() == pytest.approx(5)
    assert model.bones["グルーブ"].position.y() == pytest.approx(7)
    assert model.bones["全ての親"].parent_index == -1
    assert_bone_invariants(model)


def test_supplement_bones(vrm_json, humanoid_nodes):
    nodes, humanoid = humanoid_nodes
    model, vrm = build_skeleton(vrm_json(nodes, humanoid))

    HumanoidMapService(model, vrm).execute()

    for bone_name in ["下半身", "上半身", "上半身2", "首", "頭", "左腕", "左ひじ", "左手首", "左足", "左ひざ", "左足首", "左つま先"]:
        assert bone_name in model.bones

    for bone_name in [
        "全ての親", "センター", "グルーブ", "体幹中心", "腰", "左腕捩", "左腕捩1", "左腕捩2", "左腕捩3", "左手捩", "左手捩3",
        "左手首先", "左腰キャンセル", "左つま先先", "左かかと", "左足IK親", "左足ＩＫ", "左つま先ＩＫ", "左足D", "左ひざD", "左足首D", "左足先EX",
    ]:
        assert bone_name in model.bones, bone_name

    # 片側しかない・肩がないものは作らない
    for bone_name in ["足中心", "首根元", "右足ＩＫ", "左肩P", "左肩C", "両目"]:
        assert bone_name not in model.bones

    assert model.bones["体幹中心"].is_system
    assert model.bones["腰"].parent_index == model.bones["体幹中心"].index
    assert_bone_invariants(model)


# VRoid(VRM0) の手: 親指は proximal/intermediate/distal の3節
def test_vroid_hand_fingers(vrm_json, humanoid_nodes):
    nodes, humanoid = humanoid_nodes
    nodes[7]["children"] = [12, 15]
    nodes += [
        {"name": "J_Bip_L_Thumb1", "translation": [0.02, 0, 0.02], "children": [13]},
        {"name": "J_Bip_L_Thumb2", "translation": [0.02, 0, 0.01], "children": [14]},
        {"name": "J_Bip_L_Thumb3", "translation": [0.02, 0, 0]},
        {"name": "J_Bip_L_Index1", "translation": [0.05, 0, 0.01], "children": [16]},
        {"name": "J_Bip_L_Index2", "translation": [0.02, 0, 0], "children": [17]},
        {"name": "J_Bip_L_Index3", "translation": [0.02, 0, 0]},
    ]
    humanoid.update(
        {
            "leftThumbProximal": 12,
            "leftThumbIntermediate": 13,
            "leftThumbDistal": 14,
            "leftIndexProximal": 15,
            "leftIndexIntermediate": 16,
            "leftIndexDistal": 17,
        }
    )
    model, vrm = build_skeleton(vrm_json(nodes, humanoid))

    HumanoidMapService(model, vrm).execute()

    for bone_name, node_idx in [("左親指０", 12), ("左親指１", 13), ("左親指２", 14), ("左人指１", 15), ("左人指２", 16), ("左人指３", 17)]:
        assert model.bones[bone_name].node_index == node_idx, bone_name
    for node_name in ["J_Bip_L_Thumb1", "J_Bip_L_Thumb3", "J_Bip_L_Index1"]:
        assert node_name not in model.bones

    # 指先は最後の節の延長
    for finger_name, prev_name, distal_name in [("左親指先", "左親指１", "左親指２"), ("左人指先", "左人指２", "左人指３")]:
        tip = model.bones[finger_name]
        distal = model.bones[distal_name]
        prev = model.bones[prev_name]
        assert tip.parent_index == distal.index
        expected = distal.position + (distal.position - prev.position) * 0.5
        assert tip.position.data().tolist() == pytest.approx(expected.data().tolist())

    # 親指０は手首の子
    assert model.bones["左親指０"].parent_index == model.bones["左手首"].index
    assert get_display_slot_name("左親指０") == "指"
    assert_bone_invariants(model)


def test_leg_ik(vrm_json, humanoid_nodes):
    nodes, humanoid = humanoid_nodes
    model, vrm = build_skeleton(vrm_json(nodes, humanoid))

    HumanoidMapService(model, vrm).execute()

    ankle = model.bones["左足首"]
    leg_ik = model.bones["左足ＩＫ"]
    assert leg_ik.getIkFlag()
    assert leg_ik.position.data().tolist() == ankle.position.data().tolist()
    assert leg_ik.ik.target_index == ankle.index
    assert leg_ik.ik.loop == 40
    assert leg_ik.ik.limit_radian == pytest.approx(math.radians(114.5916))
    assert [link.bone_index for link in leg_ik.ik.link] == [model.bones["左ひざ"].index, model.bones["左足"].index]
    assert leg_ik.ik.link[0].limit_angle == 1
    assert leg_ik.ik.link[0].limit_min.x() == pytest.approx(math.radians(-180))
    assert leg_ik.ik.link[0].limit_max.x() == pytest.approx(math.radians(-0.5))
    assert leg_ik.tail_index == model.bones["左つま先ＩＫ"].index
    assert leg_ik.parent_index == model.bones["左足IK親"].index

    ik_parent = model.bones["左足IK親"]
    assert ik_parent.position.y() == 0
    assert ik_parent.position.x() == pytest.approx(ankle.position.x())
    assert ik_parent.parent_index == model.bones["全ての親"].index

    toe_ik = model.bones["左つま先ＩＫ"]
    assert toe_ik.ik.target_index == model.bones["左つま先"].index
    assert toe_ik.ik.loop == 3
    assert toe_ik.ik.limit_radian == pytest.approx(math.radians(229.1831))
    assert [link.bone_index for link in toe_ik.ik.link] == [ankle.index]

    assert model.bones["左つま先先"].position.y() == 0
    assert model.bones["左かかと"].position.y() == 0


def test_effect_bones(vrm_json, humanoid_nodes):
    nodes, humanoid = humanoid_nodes
    model, vrm = build_skeleton(vrm_json(nodes, humanoid))

    HumanoidMapService(model, vrm).execute()

    leg_d = model.bones["左足D"]
    assert leg_d.getExternalRotationFlag()
    assert leg_d.effect_index == model.bones["左足"].index
    assert leg_d.effect_factor == 1
    # 付与親の階層 + 1
    assert leg_d.layer == model.bones["左足"].layer + 1

    waist_cancel = model.bones["左腰キャンセル"]
    assert waist_cancel.effect_index == model.bones["腰"].index
    assert waist_cancel.effect_factor == -1

    arm = model.bones["左腕"]
    elbow = model.bones["左ひじ"]
    arm_twist = model.bones["左腕捩"]
    assert arm_twist.getFixedAxisFlag()
    axis = (elbow.position - arm.position).normalized()
    assert arm_twist.fixed_axis.data() == pytest.approx(axis.data())
    assert arm_twist.position.data() == pytest.approx(((arm.position + elbow.position) / 2).data())

    for n, ratio in enumerate([0.25, 0.5, 0.75]):
        twist = model.bones[f"左腕捩{n + 1}"]
        assert twist.effect_index == arm_twist.index
        assert twist.effect_factor == pytest.approx(ratio)
        assert twist.position.data() == pytest.approx((arm.position + (elbow.position - arm.position) * ratio).data())


def test_weight_transfer(vrm_json, humanoid_nodes):
    nodes, humanoid = humanoid_nodes
    model, vrm = build_skeleton(vrm_json(nodes, humanoid))

    leg = model.get_bone_by_index(8)
    leg_vertex = append_vertex(model, leg.position.copy(), leg.name)
    arm = model.get_bone_by_index(5)
    elbow = model.get_bone_by_index(6)
    # 腕とひじの間(0.48の位置)
    arm_vertex = append_vertex(model, arm.position + (elbow.position - arm.position) * 0.48, arm.name)
    hips_vertex = append_vertex(model, model.get_bone_by_index(0).position.copy(), model.get_bone_by_index(0).name)

    HumanoidMapService(model, vrm).execute()

    assert leg_vertex.deform.get_idx_list() == [model.bones["左足D"].index]

    assert isinstance(arm_vertex.deform, Bdef2)
    assert arm_vertex.deform.get_idx_list() == [model.bones["左腕捩2"].index, model.bones["左腕捩1"].index]
    assert sum(arm_vertex.deform.get_weights()) == pytest.approx(1)
    assert arm_vertex.deform.weight0 == pytest.approx(0.92)

    assert hips_vertex.deform.get_idx_list() == [model.bones["下半身"].index]


def test_second_run_is_noop(vrm_json, humanoid_nodes):
    nodes, humanoid = humanoid_nodes
    model, vrm = build_skeleton(vrm_json(nodes, humanoid))
    append_vertex(model, model.get_bone_by_index(5).position.copy(), model.get_bone_by_index(5).name)

    assert HumanoidMapService(model, vrm).execute()
    bone_names = list(model.bones.keys())
    parents = [bone.parent_index for bone in model.bones.values()]
    deforms = [vertex.deform.get_idx_list() for vertex in model.vertices]

    assert not HumanoidMapService(model, vrm).execute()
    assert list(model.bones.keys()) == bone_names
    assert [bone.parent_index for bone in model.bones.values()] == parents
    assert [vertex.deform.get_idx_list() for vertex in model.vertices] == deforms


def test_blocked_rename(vrm_json):
    nodes = [
        {"name": "J_Bip_C_Hips", "translation": [0, 0.8, 0], "children": [1]},
        # humanoid 外のボーンが変換先の名前を持っている
        {"name": "下半身", "translation": [0, -0.1, 0]},
    ]
    model, vrm = build_skeleton(vrm_json(nodes, {"hips": 0}))

    HumanoidMapService(model, vrm).execute()

    assert "J_Bip_C_Hips" in model.bones
    assert "下半身" in model.bones
    assert model.bones["下半身"].parent_index == model.bones["J_Bip_C_Hips"].index
    # 補助ボーンは humanoid のボーン位置を基準にする
    assert model.bones["センター"].position.y() == pytest.approx(5)
    assert_bone_invariants(model)


def test_create_humanoid_plan():
    humanoid = {"hips": 0, "chest": 2, "upperchest": 3, "leftthumbintermediate": 4, "leftthumbdistal": 5, "unknown": 6, "head": 99}

    plan = create_humanoid_plan(humanoid, 10)

    assert plan["下半身"] == 0
    # 優先度の高い方
    assert plan["上半身2"] == 3
    # 親指は存在する節を根元から詰める
    assert plan["左親指０"] == 4
    assert plan["左親指１"] == 5
    assert "頭" not in plan
    assert len(plan) == 4


@pytest.mark.parametrize(
    "thumb_keys",
    [
        # VRM0
        ["thumbproximal", "thumbintermediate", "thumbdistal"],
        # VRM1
        ["thumbmetacarpal", "thumbproximal", "thumbdistal"],
    ],
)
def test_create_humanoid_plan_thumb(thumb_keys):
    humanoid = {f"{side}{key}": 10 * sidx + n for sidx, side in enumerate(["left", "right"]) for n, key in enumerate(thumb_keys)}

    plan = create_humanoid_plan(humanoid, 20)

    assert plan == {"左親指０": 0, "左親指１": 1, "左親指２": 2, "右親指０": 10, "右親指１": 11, "右親指２": 12}


def test_create_normalized_deform():
    assert create_normalized_deform([], [], 3).get_idx_list() == [3]
    assert create_normalized_deform([1, 1], [0.2, 0.3], 0).get_idx_list() == [1]

    deform = create_normalized_deform([1, 2, 3, 4, 5], [0.1, 0.2, 0.3, 0.2, 0.2], 0)
    assert deform.get_idx_list() == [3, 2, 4, 5]
    assert sum(deform.get_weights()) == pytest.approx(1)
    assert all(weight >= 0 for weight in deform.get_weights())


def test_calc_layers():
    model = PmxModel()
    root = model.append_bone(Bone("root", "root", MVector3D(), -1, 0, 0x0002))
    child = model.append_bone(Bone("child", "child", MVector3D(), root, 0, 0x0002))
    effect = Bone("effect", "effect", MVector3D(), root, 0, 0x0002 | 0x0100)
    effect.effect_index = child
    model.append_bone(effect)
    model.append_bone(Bone("effect_child", "effect_child", MVector3D(), effect.index, 0, 0x0002))
    # 付与フラグがなければ付与親を見ない
    no_flag = Bone("no_flag", "no_flag", MVector3D(), child, 0, 0x0002)
    no_flag.effect_index = effect.index
    model.append_bone(no_flag)

    calc_layers(model)

    assert [bone.layer for bone in model.bones.values()] == [0, 0, 1, 1, 0]


def test_calc_layers_cycle():
    model = PmxModel()
    a = Bone("a", "a", MVector3D(), -1, 0, 0x0002 | 0x0100)
    b = Bone("b", "b", MVector3D(), -1, 0, 0x0002 | 0x0100)
    model.append_bone(a)
    model.append_bone(b)
    a.effect_index = b.index
    b.effect_index = a.index

    with pytest.raises(MModelInvalidException):
        calc_layers(model)


def test_display_slots(vrm_json, humanoid_nodes):
    nodes, humanoid = humanoid_nodes
    model, vrm = build_skeleton(vrm_json(nodes, humanoid))
    HumanoidMapService(model, vrm).execute()
    model.append_morph(Morph("まばたき", "blink", 2, Morph.TYPE_VERTEX))
    model.append_morph(Morph("__vrm_target_m000_t000", "", 0, Morph.TYPE_VERTEX))

    display_slots = create_display_slots(model)

    assert list(display_slots.keys())[:2] == ["Root", "表情"]
    assert display_slots["Root"].references == [(0, model.bones["全ての親"].index)]
    assert display_slots["表情"].references == [(1, 0)]
    assert model.morphs[0].display
    assert not model.morphs[1].display

    trunk_indexes = [idx for _, idx in display_slots["体幹"].references]
    assert model.bones["下半身"].index in trunk_indexes
    assert model.bones["左足ＩＫ"].index in [idx for _, idx in display_slots["足"].references]
    assert model.bones["体幹中心"].display_slot == -1
    assert model.bones["センター"].display_slot == list(display_slots.keys()).index("センター")


def test_get_display_slot_name():
    assert get_display_slot_name("グルーブ") == "センター"
    assert get_display_slot_name("左人指２") == "指"
    assert get_display_slot_name("右手捩1") == "腕"
    assert get_display_slot_name("右つま先ＩＫ") == "足"
    assert get_display_slot_name("J_Sec_Hair1_01") == "その他"
