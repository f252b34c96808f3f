# -*- coding: utf-8 -*-
#
import math

from mmd.PmxData import PmxModel, Bone, Bdef1, Bdef2, Bdef4, Ik, IkLink, DisplaySlot
from mmd.VrmData import VrmModel
from module.MMath import MVector3D
from utils.MLogger import MLogger # noqa
from utils.MException import MModelInvalidException

logger = MLogger(__name__, level=1)

BONE_RENAME_TEMP_PREFIX = "__tmp_"
# 捩り分割の符号判定・軸計算用
WEIGHT_SIGN_EPSILON = 1e-8
AXIS_EPSILON = 1e-8

TWIST_RATIOS = [0.25, 0.5, 0.75]
FINGER_NAMES = ["親指", "人指", "中指", "薬指", "小指"]
# 親指の根元から先端への humanoid 名(存在する節を 親指０/１/２ に詰める)
THUMB_CHAIN_KEYS = ["thumbmetacarpal", "thumbproximal", "thumbintermediate", "thumbdistal"]
THUMB_NAMES = ["親指０", "親指１", "親指２"]


class HumanoidMapService:
    def __init__(self, model: PmxModel, vrm: VrmModel):
        self.model = model
        self.vrm = vrm
        # 変換先ボーン名 -> ボーンINDEX
        self.target_indexes = {}

    def execute(self):
        humanoid = self.vrm.meta.humanoid if self.vrm.meta else {}
        if not humanoid:
            logger.info("-- ボーンマッピングスキップ(humanoid 定義なし)")
            return False

        plan = create_humanoid_plan(humanoid, len(self.vrm.nodes))

        self.target_indexes = {}
        for target_name, node_idx in plan.items():
            bone_idx = self.find_bone_index(node_idx, target_name)
            if bone_idx >= 0:
                self.target_indexes[target_name] = bone_idx
            else:
                logger.warning("humanoid ボーンに対応するボーンが見つかりません: %s (node: %s)", target_name, node_idx)

        bone_count = len(self.model.bones)
        self.append_supplement_bones()
        inserted_count = len(self.model.bones) - bone_count

        # 変換元ボーンINDEX -> 変換先ボーン名
        renames = {bone_idx: target_name for target_name, bone_idx in self.target_indexes.items() if bone_idx < bone_count}
        renamed_count = self.rename_bones(renames)

        if inserted_count > 0:
            self.transfer_weights()

        self.normalize_root_parents()
        self.model.renumber_bones()
        calc_layers(self.model)

        logger.info("-- ボーンマッピング終了(追加: %s, 名称変更: %s)", inserted_count, renamed_count)

        return inserted_count > 0 or renamed_count > 0

    # ノードINDEX一致、なければ名前一致
    def find_bone_index(self, node_idx: int, target_name: str):
        for bone in self.model.bones.values():
            if bone.node_index == node_idx:
                return bone.index
        if target_name in self.model.bones:
            return self.model.bones[target_name].index
        return -1

    def get_bone(self, bone_name: str):
        if bone_name in self.target_indexes:
            return self.model.get_bone_by_index(self.target_indexes[bone_name])
        return self.model.bones.get(bone_name)

    def get_parent_index(self, parent_names: list):
        for parent_name in parent_names:
            parent_bone = self.get_bone(parent_name)
            if parent_bone:
                return parent_bone.index
        return -1

    # 既にあれば追加しない
    def append_bone(self, bone_name: str, position: MVector3D, parent_names: list, flag: int, is_system=False):
        if bone_name in self.target_indexes or bone_name in self.model.bones:
            return None

        bone = Bone(bone_name, bone_name, position, self.get_parent_index(parent_names), 0, flag)
        bone.is_system = is_system
        self.target_indexes[bone_name] = self.model.append_bone(bone)

        return bone

    def append_effect_bone(self, bone_name: str, position: MVector3D, parent_names: list, flag: int, effect_name: str, effect_factor: float):
        effect_bone = self.get_bone(effect_name)
        if not effect_bone:
            return None

        bone = self.append_bone(bone_name, position, parent_names, flag)
        if bone:
            bone.effect_index = effect_bone.index
            bone.effect_factor = effect_factor
        return bone

    def append_supplement_bones(self):
        lower_bone = self.get_bone("下半身")
        upper_bone = self.get_bone("上半身")
        lower_y = lower_bone.position.y() if lower_bone else 0

        self.append_bone("全ての親", MVector3D(), [], 0x0002 | 0x0004 | 0x0008 | 0x0010)
        self.append_bone("センター", MVector3D(0, lower_y * 0.5, 0), ["全ての親"], 0x0002 | 0x0004 | 0x0008 | 0x0010)
        if self.get_bone("センター"):
            self.append_bone("グルーブ", MVector3D(0, lower_y * 0.7, 0), ["センター"], 0x0002 | 0x0004 | 0x0008 | 0x0010)

        if lower_bone and upper_bone:
            trunk_parent_index = self.get_parent_index(["センター"])
            bone = self.append_bone("体幹中心", (upper_bone.position + lower_bone.position) / 2, [], 0x0002, is_system=True)
            if bone:
                bone.parent_index = trunk_parent_index if trunk_parent_index >= 0 else lower_bone.parent_index

        self.append_middle_bone("足中心", "左足", "右足", ["下半身", "センター"], 0x0002, is_system=True)
        self.append_middle_bone("首根元", "左腕", "右腕", ["上半身2", "上半身"], 0x0002, is_system=True)
        self.append_middle_bone("腰", "上半身", "下半身", ["体幹中心", "グルーブ", "センター"], 0x0002 | 0x0004 | 0x0008 | 0x0010)
        self.append_middle_bone("両目", "左目", "右目", ["首根元", "上半身2", "上半身"], 0x0002 | 0x0008 | 0x0010)

        for direction in ["左", "右"]:
            self.append_arm_bones(direction)
            self.append_finger_tail_bones(direction)
            self.append_leg_bones(direction)

    def append_middle_bone(self, bone_name: str, from_name: str, to_name: str, parent_names: list, flag: int, is_system=False):
        from_bone = self.get_bone(from_name)
        to_bone = self.get_bone(to_name)
        if not from_bone or not to_bone:
            return None
        return self.append_bone(bone_name, (from_bone.position + to_bone.position) / 2, parent_names, flag, is_system=is_system)

    def append_arm_bones(self, direction: str):
        shoulder_bone = self.get_bone(f"{direction}肩")
        arm_bone = self.get_bone(f"{direction}腕")
        elbow_bone = self.get_bone(f"{direction}ひじ")
        wrist_bone = self.get_bone(f"{direction}手首")

        # 肩P・肩C
        if shoulder_bone:
            self.append_bone(f"{direction}肩P", shoulder_bone.position.copy(), ["首根元", "上半身2", "上半身"], 0x0002 | 0x0008 | 0x0010)
        if arm_bone:
            self.append_effect_bone(
                f"{direction}肩C",
                arm_bone.position.copy(),
                [f"{direction}肩", f"{direction}肩P", "首根元", "上半身2", "上半身"],
                0x0002 | 0x0100,
                f"{direction}肩P",
                -1,
            )

        # 腕捩・手捩
        if arm_bone and elbow_bone:
            self.append_twist_bones(f"{direction}腕捩", arm_bone, elbow_bone)
        if elbow_bone and wrist_bone:
            self.append_twist_bones(f"{direction}手捩", elbow_bone, wrist_bone)

        # 手首先
        if wrist_bone:
            finger_bones = [self.get_bone(f"{direction}{finger_name}１") for finger_name in FINGER_NAMES]
            finger_bones = [bone for bone in finger_bones if bone]
            if finger_bones:
                position = MVector3D()
                for finger_bone in finger_bones:
                    position += finger_bone.position
                position /= len(finger_bones)
            elif elbow_bone:
                position = wrist_bone.position + (wrist_bone.position - elbow_bone.position) * 0.5
            else:
                position = wrist_bone.position + MVector3D(0, -0.5, 0)
            self.append_bone(f"{direction}手首先", position, [f"{direction}手首"], 0x0002)

    def append_twist_bones(self, twist_name: str, from_bone: Bone, to_bone: Bone):
        fixed_axis = (to_bone.position - from_bone.position).normalized()
        if fixed_axis.length() <= AXIS_EPSILON:
            logger.warning("捩りボーンの軸が決められないため、追加しません: %s", twist_name)
            return

        local_z = MVector3D.crossProduct(fixed_axis, MVector3D(0, -1, 0))
        if local_z.length() <= AXIS_EPSILON:
            local_z = MVector3D.crossProduct(fixed_axis, MVector3D(1, 0, 0))

        twist_bone = self.append_bone(
            twist_name,
            (from_bone.position + to_bone.position) / 2,
            [from_bone.name],
            0x0002 | 0x0008 | 0x0010 | 0x0400 | 0x0800,
        )
        if twist_bone:
            twist_bone.parent_index = from_bone.index
            twist_bone.fixed_axis = fixed_axis.copy()
            twist_bone.local_x_vector = fixed_axis.copy()
            twist_bone.local_z_vector = local_z.normalized()

        for n, ratio in enumerate(TWIST_RATIOS):
            bone = self.append_effect_bone(
                f"{twist_name}{n + 1}",
                from_bone.position + (to_bone.position - from_bone.position) * ratio,
                [],
                0x0002 | 0x0100,
                twist_name,
                ratio,
            )
            if bone:
                bone.parent_index = from_bone.index

    def append_finger_tail_bones(self, direction: str):
        for finger_name in FINGER_NAMES:
            if finger_name == "親指":
                chain_names = [f"{direction}親指０", f"{direction}親指１", f"{direction}親指２"]
            else:
                chain_names = [f"{direction}{finger_name}１", f"{direction}{finger_name}２", f"{direction}{finger_name}３"]

            distal_bone = self.get_bone(chain_names[-1])
            prev_bone = self.get_bone(chain_names[-2])
            if not distal_bone or not prev_bone:
                continue

            self.append_bone(
                f"{direction}{finger_name}先",
                distal_bone.position + (distal_bone.position - prev_bone.position) * 0.5,
                [chain_names[-1]],
                0x0002,
            )

    def append_leg_bones(self, direction: str):
        leg_name = f"{direction}足"
        knee_name = f"{direction}ひざ"
        ankle_name = f"{direction}足首"
        toe_name = f"{direction}つま先"

        leg_bone = self.get_bone(leg_name)
        knee_bone = self.get_bone(knee_name)
        ankle_bone = self.get_bone(ankle_name)
        toe_bone = self.get_bone(toe_name)

        # 腰キャンセル
        if leg_bone:
            self.append_effect_bone(f"{direction}腰キャンセル", leg_bone.position.copy(), ["足中心", "下半身", "センター"], 0x0002 | 0x0100, "腰", -1)

        if not ankle_bone:
            return

        # つま先先・かかと
        toe_tail_position = (toe_bone or ankle_bone).position.copy()
        toe_tail_position.setY(0)
        self.append_bone(f"{direction}つま先先", toe_tail_position, [ankle_name], 0x0002)

        toe_tail_bone = self.get_bone(f"{direction}つま先先")
        if toe_tail_bone and (ankle_bone.position - toe_tail_bone.position).length() > AXIS_EPSILON:
            heel_position = ankle_bone.position + (ankle_bone.position - toe_tail_bone.position) * 0.35
        else:
            heel_position = ankle_bone.position + MVector3D(0, 0, 0.2)
        heel_position.setY(0)
        self.append_bone(f"{direction}かかと", heel_position, [ankle_name], 0x0002)

        # 足IK
        if leg_bone and knee_bone:
            self.append_bone(
                f"{direction}足IK親",
                MVector3D(ankle_bone.position.x(), 0, ankle_bone.position.z()),
                ["全ての親"],
                0x0002 | 0x0004 | 0x0008 | 0x0010,
            )
            leg_ik_bone = self.append_bone(
                f"{direction}足ＩＫ", ankle_bone.position.copy(), [f"{direction}足IK親"], 0x0001 | 0x0002 | 0x0004 | 0x0008 | 0x0010 | 0x0020
            )
            if leg_ik_bone:
                leg_ik_link = []
                leg_ik_link.append(
                    IkLink(
                        knee_bone.index,
                        1,
                        MVector3D(math.radians(-180), 0, 0),
                        MVector3D(math.radians(-0.5), 0, 0),
                    )
                )
                leg_ik_link.append(IkLink(leg_bone.index, 0))
                leg_ik_bone.ik = Ik(ankle_bone.index, 40, math.radians(114.5916), leg_ik_link)

            toe_ik_target = toe_bone or self.get_bone(f"{direction}足先EX") or toe_tail_bone or ankle_bone
            toe_ik_bone = self.append_bone(
                f"{direction}つま先ＩＫ", toe_ik_target.position.copy(), [f"{direction}足ＩＫ"], 0x0002 | 0x0004 | 0x0008 | 0x0010 | 0x0020
            )
            if toe_ik_bone:
                toe_ik_bone.tail_position = MVector3D(0, -1, 0)
                toe_ik_bone.ik = Ik(toe_ik_target.index, 3, math.radians(229.1831), [IkLink(ankle_bone.index, 0)])

            leg_ik_bone = self.get_bone(f"{direction}足ＩＫ")
            toe_ik_bone = self.get_bone(f"{direction}つま先ＩＫ")
            if leg_ik_bone and toe_ik_bone and leg_ik_bone.getConnectionFlag():
                leg_ik_bone.tail_index = toe_ik_bone.index

        # D系
        if leg_bone:
            self.append_effect_bone(
                f"{direction}足D", leg_bone.position.copy(), [f"{direction}腰キャンセル", "足中心", "下半身"], 0x011A, leg_name, 1
            )
        if knee_bone:
            self.append_effect_bone(f"{direction}ひざD", knee_bone.position.copy(), [f"{direction}足D"], 0x011A, knee_name, 1)
        self.append_effect_bone(f"{direction}足首D", ankle_bone.position.copy(), [f"{direction}ひざD"], 0x011A, ankle_name, 1)

        ankle_d_bone = self.get_bone(f"{direction}足首D")
        if ankle_d_bone and toe_tail_bone:
            toe_ex_position = (ankle_d_bone.position + toe_tail_bone.position) / 2
        else:
            toe_ex_position = (toe_bone or ankle_bone).position.copy()
        toe_ex_bone = self.append_bone(f"{direction}足先EX", toe_ex_position, [f"{direction}足首D"], 0x0002 | 0x0008 | 0x0010)
        if toe_ex_bone and toe_bone:
            toe_ex_bone.flag |= 0x0100
            toe_ex_bone.effect_index = toe_bone.index
            toe_ex_bone.effect_factor = 1

    # 一時名を経由した2段階の名称変更
    def rename_bones(self, renames: dict):
        entries = []
        for bone_idx, target_name in sorted(renames.items(), key=lambda r: r[1]):
            bone = self.model.get_bone_by_index(bone_idx)
            if not bone or bone.name == target_name:
                continue
            holder = self.model.bones.get(target_name)
            if holder and holder.index not in renames:
                logger.warning("ボーン名が既に使われているため、名称変更しません: %s -> %s", bone.name, target_name)
                continue
            entries.append((bone_idx, target_name))

        n = 0
        for bone_idx, _ in entries:
            temp_name = f"{BONE_RENAME_TEMP_PREFIX}{n:03}"
            while temp_name in self.model.bones:
                n += 1
                temp_name = f"{BONE_RENAME_TEMP_PREFIX}{n:03}"
            self.model.rename_bone(self.model.bone_indexes[bone_idx], temp_name)
            n += 1

        renamed_count = 0
        for bone_idx, target_name in entries:
            if target_name in self.model.bones:
                logger.warning("ボーン名が重複しているため、名称変更しません: %s", target_name)
                continue
            self.model.rename_bone(self.model.bone_indexes[bone_idx], target_name)
            renamed_count += 1

        return renamed_count

    def transfer_weights(self):
        replace_rules = []
        twist_chains = []
        for direction in ["左", "右"]:
            for from_name, to_name in [("足", "足D"), ("ひざ", "ひざD"), ("足首", "足首D"), ("つま先", "足先EX")]:
                from_bone = self.get_bone(f"{direction}{from_name}")
                to_bone = self.get_bone(f"{direction}{to_name}")
                if from_bone and to_bone:
                    replace_rules.append((from_bone.index, to_bone.index))

            for from_name, to_name, twist_name in [("腕", "ひじ", "腕捩"), ("ひじ", "手首", "手捩")]:
                twist_chain = self.create_twist_chain(f"{direction}{from_name}", f"{direction}{to_name}", f"{direction}{twist_name}")
                if twist_chain:
                    twist_chains.append(twist_chain)

        if not replace_rules and not twist_chains:
            return

        for vertex in self.model.vertices:
            joints = list(vertex.deform.get_idx_list())
            weights = [float(w) for w in vertex.deform.get_weights()]

            for from_idx, to_idx in replace_rules:
                joints = [to_idx if joint == from_idx else joint for joint in joints]

            for twist_chain in twist_chains:
                apply_twist_chain(vertex.position.x(), joints, weights, twist_chain)

            vertex.deform = create_normalized_deform(joints, weights, next((joint for joint in joints if joint >= 0), 0))

        logger.info("-- ウェイト置換終了(D系: %s, 捩り: %s)", len(replace_rules), len(twist_chains))

    def create_twist_chain(self, from_name: str, to_name: str, twist_name: str):
        base_from_bone = self.get_bone(from_name)
        base_to_bone = self.get_bone(to_name)
        twist_bones = [self.get_bone(f"{twist_name}{n + 1}") for n in range(len(TWIST_RATIOS))]
        if not base_from_bone or not base_to_bone or not all(twist_bones):
            return None

        chain_bones = [base_from_bone] + twist_bones
        return {
            "base_from_x": base_from_bone.position.x(),
            "base_distance": base_to_bone.position.x() - base_from_bone.position.x(),
            "candidates": [bone.index for bone in chain_bones],
            "segments": [
                (from_bone.index, to_bone.index, from_bone.position.x(), to_bone.position.x())
                for from_bone, to_bone in zip(chain_bones[:-1], chain_bones[1:])
            ],
        }

    def normalize_root_parents(self):
        def set_parent(bone_name: str, parent_names: list, only_root=False):
            bone = self.get_bone(bone_name)
            if not bone or (only_root and bone.parent_index >= 0):
                return
            parent_index = self.get_parent_index(parent_names)
            if parent_index >= 0 and parent_index != bone.index:
                bone.parent_index = parent_index

        set_parent("センター", ["全ての親"])
        set_parent("グルーブ", ["センター"])
        set_parent("腰", ["体幹中心", "グルーブ", "センター"])
        set_parent("下半身", ["センター"], only_root=True)
        set_parent("両目", ["首根元", "上半身2", "上半身"], only_root=True)


# humanoid 定義から 変換先ボーン名 -> ノードINDEX を作る
def create_humanoid_plan(humanoid: dict, node_count: int):
    candidates = {}
    for humanoid_name, pair in HUMANOID_BONE_PAIRS.items():
        node_idx = humanoid.get(humanoid_name, -1)
        if not isinstance(node_idx, int) or node_idx < 0 or node_idx >= node_count:
            continue
        # 優先度の高い順、同じならノードINDEX順
        candidates.setdefault(pair["name"], []).append((-pair["priority"], node_idx))

    plan = {}
    used_nodes = set()
    for target_name in sorted(candidates.keys()):
        for _, node_idx in sorted(candidates[target_name]):
            if node_idx in used_nodes:
                continue
            plan[target_name] = node_idx
            used_nodes.add(node_idx)
            break

    apply_thumb_plan(plan, humanoid, node_count)

    return plan


# VRM0 は proximal/intermediate/distal、VRM1 は metacarpal/proximal/distal のため、節の並びで割り当てる
def apply_thumb_plan(plan: dict, humanoid: dict, node_count: int):
    for side, direction in [("left", "左"), ("right", "右")]:
        chain = []
        for key in THUMB_CHAIN_KEYS:
            node_idx = humanoid.get(f"{side}{key}", -1)
            if isinstance(node_idx, int) and 0 <= node_idx < node_count:
                chain.append(node_idx)

        for thumb_name, node_idx in zip(THUMB_NAMES, chain):
            plan[f"{direction}{thumb_name}"] = node_idx


def has_same_sign(a: float, b: float):
    if abs(a) <= WEIGHT_SIGN_EPSILON or abs(b) <= WEIGHT_SIGN_EPSILON:
        return False
    return (a > 0) == (b > 0)


# 捩り分割(頂点のX位置で分割先へウェイトを按分)
def apply_twist_chain(vertex_x: float, joints: list, weights: list, twist_chain: dict):
    if not any(joint in twist_chain["candidates"] for joint in joints):
        return
    if not has_same_sign(twist_chain["base_distance"], vertex_x - twist_chain["base_from_x"]):
        return

    for from_idx, to_idx, from_x, to_x in twist_chain["segments"]:
        twist_distance = to_x - from_x
        if abs(twist_distance) <= WEIGHT_SIGN_EPSILON:
            continue
        vertex_distance = vertex_x - from_x
        if not has_same_sign(twist_distance, vertex_distance):
            continue

        factor = vertex_distance / twist_distance
        if factor > 1:
            for n, joint in enumerate(joints):
                if joint == from_idx:
                    joints[n] = to_idx
            continue

        for n in range(len(joints)):
            if joints[n] != from_idx or weights[n] <= 0:
                continue
            from_weight = weights[n]
            weights[n] = from_weight * (1 - factor)
            if from_weight * factor > 0:
                joints.append(to_idx)
                weights.append(from_weight * factor)


# 同一ボーンを合算し、上位4つで正規化
def create_normalized_deform(joints: list, weights: list, fallback_index: int):
    bone_weights = {}
    for joint, weight in zip(joints, weights):
        if joint < 0 or weight <= 0:
            continue
        bone_weights[joint] = bone_weights.get(joint, 0.0) + weight

    if not bone_weights:
        return Bdef1(max(0, fallback_index))

    sorted_weights = sorted(bone_weights.items(), key=lambda bw: (-bw[1], bw[0]))[:4]

    if len(sorted_weights) == 1:
        return Bdef1(sorted_weights[0][0])

    if len(sorted_weights) == 2:
        (index0, weight0), (index1, weight1) = sorted_weights
        return Bdef2(index0, index1, weight0 / (weight0 + weight1))

    total_weight = sum(weight for _, weight in sorted_weights)
    idxs = [bone_idx for bone_idx, _ in sorted_weights]
    ws = [weight / total_weight for _, weight in sorted_weights]
    while len(idxs) < 4:
        idxs.append(idxs[0])
        ws.append(0.0)

    return Bdef4(idxs[0], idxs[1], idxs[2], idxs[3], ws[0], ws[1], ws[2], ws[3])


# 変形階層(付与親があれば付与親+1、なければ親と同じ)
# 親+1 ではなく、付与親を持つボーンだけ階層を上げる
def calc_layers(model: PmxModel):
    layers = {}

    def calc_layer(bone: Bone, visiting: set):
        if bone.index in layers:
            return layers[bone.index]
        if bone.index in visiting:
            raise MModelInvalidException("ボーンの変形階層が循環しています: {0}".format(bone.name))
        visiting.add(bone.index)

        effect_bone = model.get_bone_by_index(bone.effect_index) if bone.flag & 0x0100 else None
        parent_bone = model.get_bone_by_index(bone.parent_index)
        if effect_bone:
            layer = calc_layer(effect_bone, visiting) + 1
        elif parent_bone:
            layer = calc_layer(parent_bone, visiting)
        else:
            layer = 0

        visiting.discard(bone.index)
        layers[bone.index] = layer
        return layer

    for bone in model.bones.values():
        bone.layer = calc_layer(bone, set())


# 表示枠名(ボーン名から判定)
def get_display_slot_name(bone_name: str):
    if bone_name in ["センター", "グルーブ"]:
        return "センター"
    if bone_name in ["腰", "下半身", "上半身", "上半身2", "首", "頭", "両目", "あご"]:
        return "体幹"

    if bone_name[:1] in ["左", "右"]:
        body_name = bone_name[1:]
        if any(finger_name in body_name for finger_name in FINGER_NAMES):
            return "指"
        if any(arm_name in body_name for arm_name in ["肩", "腕", "ひじ", "手首", "手捩"]):
            return "腕"
        if any(leg_name in body_name for leg_name in ["足", "ひざ", "つま先", "かかと", "ＩＫ", "IK"]):
            return "足"
        if body_name in ["目"]:
            return "体幹"

    return "その他"


# 表示枠(Root, 表情, 部位別)を作り直す
def create_display_slots(model: PmxModel):
    display_slots = {}

    root_slot = DisplaySlot("Root", "Root", 1)
    if "全ての親" in model.bones:
        root_slot.references.append((0, model.bones["全ての親"].index))
    else:
        for bone in model.bones.values():
            if bone.parent_index < 0 and not bone.is_system:
                root_slot.references.append((0, bone.index))
    display_slots[root_slot.name] = root_slot

    morph_slot = DisplaySlot("表情", "Exp", 1)
    for morph in model.morphs:
        if morph.panel != 0:
            morph_slot.references.append((1, morph.index))
    display_slots[morph_slot.name] = morph_slot

    for slot_name, english_name in [("センター", "Center"), ("体幹", "Trunk"), ("腕", "Arm"), ("指", "Finger"), ("足", "Leg"), ("その他", "Other")]:
        display_slots[slot_name] = DisplaySlot(slot_name, english_name, 0)

    root_indexes = set(idx for _, idx in root_slot.references)
    for bone in model.bones.values():
        if bone.is_system or bone.index in root_indexes or not bone.getVisibleFlag():
            bone.display_slot = -1
            continue
        display_slots[get_display_slot_name(bone.name)].references.append((0, bone.index))

    model.display_slots = {}
    for slot_name, display_slot in display_slots.items():
        if display_slot.special_flag == 0 and not display_slot.references:
            continue
        model.display_slots[slot_name] = display_slot

    for sidx, display_slot in enumerate(model.display_slots.values()):
        for display_type, idx in display_slot.references:
            if display_type == 0:
                model.get_bone_by_index(idx).display_slot = sidx
            elif display_type == 1 and idx < len(model.morphs):
                model.morphs[idx].display = True

    logger.info("-- 表示枠作成終了(%s)", len(model.display_slots))

    return model.display_slots


HUMANOID_BONE_PAIRS = {
    "hips": {"name": "下半身", "priority": 0},
    "spine": {"name": "上半身", "priority": 0},
    "chest": {"name": "上半身2", "priority": 5},
    "upperchest": {"name": "上半身2", "priority": 10},
    "neck": {"name": "首", "priority": 0},
    "head": {"name": "頭", "priority": 0},
    "leftshoulder": {"name": "左肩", "priority": 0},
    "rightshoulder": {"name": "右肩", "priority": 0},
    "leftupperarm": {"name": "左腕", "priority": 0},
    "rightupperarm": {"name": "右腕", "priority": 0},
    "leftlowerarm": {"name": "左ひじ", "priority": 0},
    "rightlowerarm": {"name": "右ひじ", "priority": 0},
    "lefthand": {"name": "左手首", "priority": 0},
    "righthand": {"name": "右手首", "priority": 0},
    "leftupperleg": {"name": "左足", "priority": 0},
    "rightupperleg": {"name": "右足", "priority": 0},
    "leftlowerleg": {"name": "左ひざ", "priority": 0},
    "rightlowerleg": {"name": "右ひざ", "priority": 0},
    "leftfoot": {"name": "左足首", "priority": 0},
    "rightfoot": {"name": "右足首", "priority": 0},
    "lefttoes": {"name": "左つま先", "priority": 0},
    "righttoes": {"name": "右つま先", "priority": 0},
    "lefteye": {"name": "左目", "priority": 0},
    "righteye": {"name": "右目", "priority": 0},
    "jaw": {"name": "あご", "priority": 0},
    "leftindexproximal": {"name": "左人指１", "priority": 0},
    "leftindexintermediate": {"name": "左人指２", "priority": 0},
    "leftindexdistal": {"name": "左人指３", "priority": 0},
    "rightindexproximal": {"name": "右人指１", "priority": 0},
    "rightindexintermediate": {"name": "右人指２", "priority": 0},
    "rightindexdistal": {"name": "右人指３", "priority": 0},
    "leftmiddleproximal": {"name": "左中指１", "priority": 0},
    "leftmiddleintermediate": {"name": "左中指２", "priority": 0},
    "leftmiddledistal": {"name": "左中指３", "priority": 0},
    "rightmiddleproximal": {"name": "右中指１", "priority": 0},
    "rightmiddleintermediate": {"name": "右中指２", "priority": 0},
    "rightmiddledistal": {"name": "右中指３", "priority": 0},
    "leftringproximal": {"name": "左薬指１", "priority": 0},
    "leftringintermediate": {"name": "左薬指２", "priority": 0},
    "leftringdistal": {"name": "左薬指３", "priority": 0},
    "rightringproximal": {"name": "右薬指１", "priority": 0},
    "rightringintermediate": {"name": "右薬指２", "priority": 0},
    "rightringdistal": {"name": "右薬指３", "priority": 0},
    "leftlittleproximal": {"name": "左小指１", "priority": 0},
    "leftlittleintermediate": {"name": "左小指２", "priority": 0},
    "leftlittledistal": {"name": "左小指３", "priority": 0},
    "rightlittleproximal": {"name": "右小指１", "priority": 0},
    "rightlittleintermediate": {"name": "右小指２", "priority": 0},
    "rightlittledistal": {"name": "右小指３", "priority": 0},
}
