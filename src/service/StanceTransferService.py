# -*- coding: utf-8 -*-
#
import numpy as np

from mmd.PmxData import PmxModel
from mmd.VrmData import VrmModel
from module.MMath import MVector3D, MMatrix4x4, MQuaternion
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)

AXIS_EPSILON = 1e-8
FINGER_NAMES = ["親指", "人指", "中指", "薬指", "小指"]


class StanceTransferService:
    def __init__(self, model: PmxModel, vrm: VrmModel):
        self.model = model
        self.vrm = vrm

    def execute(self):
        if not self.vrm.meta or not self.vrm.meta.is_vroid():
            logger.info("-- Aスタンス調整スキップ(VRoid 以外)")
            return False

        if "上半身" not in self.model.bones:
            logger.warning("上半身ボーンがないため、Aスタンス調整をスキップします")
            return False

        model = self.model
        # 変換前のボーン位置
        bone_positions = {bone.index: bone.position.copy() for bone in model.bones.values()}

        trans_bone_mats = {}
        for end_bone_name in self.get_end_bone_names():
            bone_links = self.create_bone_links(end_bone_name)
            if not bone_links:
                continue

            link_names = ",".join(bone.name for bone in bone_links)
            if "右" in link_names:
                arm_astance_qq = MQuaternion.fromEulerAngles(0, 0, 35)
                arm_bone_name = "右腕"
                thumb0_stance_qq = MQuaternion.fromEulerAngles(0, 8, 0)
                thumb0_bone_name = "右親指０"
                thumb1_stance_qq = MQuaternion.fromEulerAngles(0, 24, 0)
                thumb1_bone_name = "右親指１"
            elif "左" in link_names:
                arm_astance_qq = MQuaternion.fromEulerAngles(0, 0, -35)
                arm_bone_name = "左腕"
                thumb0_stance_qq = MQuaternion.fromEulerAngles(0, -8, 0)
                thumb0_bone_name = "左親指０"
                thumb1_stance_qq = MQuaternion.fromEulerAngles(0, -24, 0)
                thumb1_bone_name = "左親指１"
            else:
                arm_astance_qq = thumb0_stance_qq = thumb1_stance_qq = MQuaternion()
                arm_bone_name = thumb0_bone_name = thumb1_bone_name = ""

            mat = MMatrix4x4()
            mat.setToIdentity()
            prev_position = MVector3D()
            for bone in bone_links:
                mat.translate(bone_positions[bone.index] - prev_position)
                prev_position = bone_positions[bone.index]
                if bone.name == arm_bone_name:
                    # 腕回転させる
                    mat.rotate(arm_astance_qq)
                elif bone.name == thumb0_bone_name:
                    # 親指0回転させる
                    mat.rotate(thumb0_stance_qq)
                elif bone.name == thumb1_bone_name:
                    # 親指1回転させる
                    mat.rotate(thumb1_stance_qq)

                if bone.index not in trans_bone_mats:
                    trans_bone_mats[bone.index] = mat.copy()

        # チェーン外のボーンは親の変形に追従、親もなければそのまま
        for bone in model.bones.values():
            if bone.index in trans_bone_mats:
                continue
            parent_mat = trans_bone_mats.get(bone.parent_index)
            if parent_mat is not None:
                mat = parent_mat.copy()
                mat.translate(bone_positions[bone.index] - bone_positions[bone.parent_index])
            else:
                mat = MMatrix4x4()
                mat.setToIdentity()
                mat.translate(bone_positions[bone.index])
            trans_bone_mats[bone.index] = mat

        for bone_idx, bone_mat in trans_bone_mats.items():
            model.get_bone_by_index(bone_idx).position = bone_mat * MVector3D()

        self.calc_local_axes()
        self.transfer_vertices(bone_positions, trans_bone_mats)

        logger.info("-- Aスタンス・親指調整終了")

        return True

    def get_end_bone_names(self):
        bone_names = ["頭"]

        for direction in ["右", "左"]:
            bone_names.extend(
                [
                    f"{direction}親指先",
                    f"{direction}人指先",
                    f"{direction}中指先",
                    f"{direction}薬指先",
                    f"{direction}小指先",
                    f"{direction}胸先",
                    f"{direction}腕捩1",
                    f"{direction}腕捩2",
                    f"{direction}腕捩3",
                    f"{direction}手捩1",
                    f"{direction}手捩2",
                    f"{direction}手捩3",
                ]
            )

        # 装飾は人体の後
        for bone_name in self.model.bones.keys():
            if "装飾_" in bone_name:
                bone_names.append(bone_name)

        return bone_names

    # 上半身から末端までのボーン(上半身を経由しなければ空)
    def create_bone_links(self, end_bone_name: str):
        if end_bone_name not in self.model.bones:
            return []

        bone_links = []
        bone = self.model.bones[end_bone_name]
        visited = set()
        while bone and bone.index not in visited:
            visited.add(bone.index)
            bone_links.insert(0, bone)
            if bone.name == "上半身":
                return bone_links
            bone = self.model.get_bone_by_index(bone.parent_index)

        return []

    def calc_local_axes(self):
        model = self.model
        local_y_vector = MVector3D(0, -1, 0)

        for bone in model.bones.values():
            direction = bone.name[:1]
            if direction not in ["右", "左"]:
                continue

            arm_bone = model.bones.get(f"{direction}腕")
            elbow_bone = model.bones.get(f"{direction}ひじ")
            wrist_bone = model.bones.get(f"{direction}手首")
            finger_bone = model.bones.get(f"{direction}中指１")

            body_name = bone.name[1:]
            if body_name == "肩" and arm_bone:
                set_local_axis(bone, arm_bone.position - bone.position, local_y_vector)
            elif body_name == "腕" and elbow_bone:
                set_local_axis(bone, elbow_bone.position - bone.position, local_y_vector)
            elif body_name == "ひじ" and wrist_bone:
                # ローカルYで曲げる
                set_local_axis(bone, wrist_bone.position - bone.position, local_y_vector, is_reverse=True)
            elif body_name == "手首" and finger_bone:
                set_local_axis(bone, finger_bone.position - bone.position, local_y_vector)
            elif body_name == "腕捩" and arm_bone and elbow_bone:
                if set_local_axis(bone, elbow_bone.position - arm_bone.position, local_y_vector):
                    bone.fixed_axis = bone.local_x_vector.copy()
            elif body_name == "手捩" and elbow_bone and wrist_bone:
                if set_local_axis(bone, wrist_bone.position - elbow_bone.position, local_y_vector):
                    bone.fixed_axis = bone.local_x_vector.copy()
            elif body_name[:-1] in ["腕捩", "手捩"] and body_name[-1:] in ["1", "2", "3"]:
                twist_bone = model.bones.get(f"{direction}{body_name[:-1]}")
                if twist_bone:
                    set_local_axis(bone, twist_bone.fixed_axis, local_y_vector)
            elif body_name[:2] in FINGER_NAMES:
                tail_bone = model.get_bone_by_index(bone.tail_index) if bone.getConnectionFlag() else None
                tail_position = tail_bone.position if tail_bone else bone.position + bone.tail_position
                set_local_axis(bone, tail_position - bone.position, local_y_vector)

    def transfer_vertices(self, bone_positions: dict, trans_bone_mats: dict):
        for vertex in self.model.vertices:
            trans_vertex_vec = MVector3D()
            trans_normal_vec = MVector3D()
            for bone_idx, weight in zip(vertex.deform.get_idx_list(), vertex.deform.get_weights()):
                if weight <= 0 or bone_idx not in trans_bone_mats:
                    continue
                bone_mat = trans_bone_mats[bone_idx]
                trans_vertex_vec += (bone_mat * (vertex.position - bone_positions[bone_idx])) * weight
                trans_normal_vec += calc_normal(bone_mat, vertex.normal) * weight

            if trans_vertex_vec.isNull() and trans_normal_vec.isNull():
                continue

            vertex.position = trans_vertex_vec
            if trans_normal_vec.length() > AXIS_EPSILON:
                vertex.normal = trans_normal_vec.normalized()


# ローカル軸(X: 子方向、Z: X×(-Y))、ゼロ長なら変更しない
def set_local_axis(bone, x_vector: MVector3D, local_y_vector: MVector3D, is_reverse=False):
    if x_vector.length() <= AXIS_EPSILON:
        return False

    local_x_vector = x_vector.normalized()
    if is_reverse:
        local_z_vector = MVector3D.crossProduct(local_y_vector, local_x_vector)
    else:
        local_z_vector = MVector3D.crossProduct(local_x_vector, local_y_vector)
    if local_z_vector.length() <= AXIS_EPSILON:
        local_z_vector = MVector3D.crossProduct(local_x_vector, MVector3D(1, 0, 0))
    if local_z_vector.length() <= AXIS_EPSILON:
        return False

    bone.local_x_vector = local_x_vector
    bone.local_z_vector = local_z_vector.normalized()
    bone.flag |= 0x0800

    return True


def calc_normal(bone_mat: MMatrix4x4, normal: MVector3D):
    # ボーン行列の3x3行列
    bone_invert_mat = bone_mat.data()[:3, :3]

    return MVector3D(np.sum(normal.data() * bone_invert_mat, axis=1))
