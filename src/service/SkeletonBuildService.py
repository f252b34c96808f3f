# -*- coding: utf-8 -*-
#
from mmd.PmxData import PmxModel, Bone
from mmd.VrmData import VrmModel, VrmConversion
from module.MMath import MVector3D
from service.HumanoidMapService import calc_layers
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)

# 接続先オフセットの既定値
DEFAULT_TAIL_OFFSET = (0, 0.1, 0)


class SkeletonBuildService:
    def __init__(self, model: PmxModel, vrm: VrmModel, conversion: VrmConversion):
        self.model = model
        self.vrm = vrm
        self.conversion = conversion

    # ノード毎に1ボーン作成し、ノードINDEX -> ボーンINDEX を返す
    def execute(self):
        node_bone_indexes = {}
        used_names = set(self.model.bones.keys())

        for nidx, node in enumerate(self.vrm.nodes):
            bone_name = create_bone_name(node.get("name", ""), nidx, used_names)
            position = self.conversion.convert_position(self.vrm.node_positions[nidx])

            # 回転・表示・操作可
            flag = 0x0002 | 0x0008 | 0x0010
            if self.vrm.node_parents[nidx] < 0:
                # ルートは移動可
                flag |= 0x0004

            bone = Bone(bone_name, str(node.get("name", "") or bone_name), position, -1, 0, flag)
            bone.node_index = nidx
            node_bone_indexes[nidx] = self.model.append_bone(bone)

        for nidx, node in enumerate(self.vrm.nodes):
            bone = self.model.get_bone_by_index(node_bone_indexes[nidx])
            parent_idx = self.vrm.node_parents[nidx]
            bone.parent_index = node_bone_indexes.get(parent_idx, -1) if parent_idx >= 0 else -1

            tail_bone_index = -1
            for child_idx in node.get("children", []) or []:
                if child_idx in node_bone_indexes:
                    tail_bone_index = node_bone_indexes[child_idx]
                    break

            if tail_bone_index >= 0:
                bone.flag |= 0x0001
                bone.tail_index = tail_bone_index
            else:
                bone.tail_index = -1
                parent_bone = self.model.get_bone_by_index(bone.parent_index)
                tail_position = (bone.position - parent_bone.position) * 0.5 if parent_bone else MVector3D()
                if tail_position.length() == 0:
                    if parent_bone:
                        logger.warning("ボーンの表示先が決められないため、既定の向きを設定します: %s", bone.name)
                    tail_position = MVector3D(DEFAULT_TAIL_OFFSET)
                bone.tail_position = tail_position

        calc_layers(self.model)

        logger.info("-- ボーン作成終了(%s)", len(self.model.bones))

        return node_bone_indexes


# ボーン名(空ならノードINDEX、重複は連番)
def create_bone_name(node_name: str, node_idx: int, used_names: set):
    base_name = str(node_name or "").strip() or f"node_{node_idx:03}"
    bone_name = base_name
    n = 1
    while bone_name in used_names:
        bone_name = f"{base_name}_{n}"
        n += 1
    used_names.add(bone_name)
    return bone_name
