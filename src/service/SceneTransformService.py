# -*- coding: utf-8 -*-
#
from mmd.VrmData import VrmModel, VrmMeta, VrmConversion, VRM_VERSION_0, VRM_VERSION_1, PROFILE_STANDARD, PROFILE_VROID
from module.MMath import MVector3D, MQuaternion, MMatrix4x4
from utils.MLogger import MLogger # noqa
from utils.MException import MParseException, MFormatUnsupportedException

logger = MLogger(__name__, level=1)

# MMDにおける1cm＝0.125(ミクセル)、1m＝12.5
MIKU_METER = 12.5

# DFS の訪問状態
WHITE = 0
GRAY = 1
BLACK = 2


class SceneTransformService:
    def __init__(self, vrm: VrmModel):
        self.vrm = vrm

    def execute(self):
        self.vrm.meta = self.detect_meta()
        self.calc_node_parents()
        self.calc_world_matrixes()

        conversion = create_conversion(self.vrm.meta)

        logger.info("-- シーン解析終了: version=%s, profile=%s", self.vrm.meta.version, self.vrm.meta.profile)
        logger.debug("conversion: %s", conversion)

        return conversion

    # VRMバージョン・出力元の判定
    def detect_meta(self):
        meta = VrmMeta()

        extensions = self.vrm.extensions if isinstance(self.vrm.extensions, dict) else {}
        extensions_used = self.vrm.get("extensionsUsed")
        if not isinstance(extensions_used, list):
            extensions_used = []

        if "VRMC_vrm" in extensions_used or "VRMC_vrm" in extensions:
            meta.version = VRM_VERSION_1
        elif "VRM" in extensions_used or "VRM" in extensions:
            meta.version = VRM_VERSION_0
        else:
            raise MFormatUnsupportedException("VRM拡張がありません")

        asset = self.vrm.get("asset")
        meta.generator = str(asset.get("generator", "")) if isinstance(asset, dict) else ""

        # VRM1 と併記されている場合も VRM0 の出力元は判定に使う
        vrm0 = extensions.get("VRM")
        if isinstance(vrm0, dict):
            meta.exporter_version = str(vrm0.get("exporterVersion", "") or "")

        if "vroid" in meta.generator.lower() or "vroid" in meta.exporter_version.lower():
            meta.profile = PROFILE_VROID
        else:
            meta.profile = PROFILE_STANDARD

        meta.extensions = {key: value for key, value in extensions.items()}
        meta.humanoid = collect_humanoid(extensions)

        logger.debug("meta: %s", meta)

        return meta

    # 親ノードINDEX(ルートは-1)
    def calc_node_parents(self):
        nodes = self.vrm.nodes
        parents = [-1 for _ in range(len(nodes))]

        for nidx, node in enumerate(nodes):
            for child_idx in node.get("children", []) or []:
                if not isinstance(child_idx, int) or child_idx < 0 or child_idx >= len(nodes):
                    raise MParseException("子ノードINDEXが範囲外です: node={0}, child={1}".format(nidx, child_idx))
                if parents[child_idx] >= 0 and parents[child_idx] != nidx:
                    raise MParseException("ノードの親が複数あります: node={0}".format(child_idx))
                parents[child_idx] = nidx

        # 循環検出(三色DFS)
        colors = [WHITE for _ in range(len(nodes))]

        def visit(start_idx):
            stack = [(start_idx, iter(nodes[start_idx].get("children", []) or []))]
            colors[start_idx] = GRAY
            while stack:
                nidx, children = stack[-1]
                child_idx = next(children, None)
                if child_idx is None:
                    colors[nidx] = BLACK
                    stack.pop()
                    continue
                if colors[child_idx] == GRAY:
                    raise MParseException("ノードの親子関係が循環しています: node={0}".format(child_idx))
                if colors[child_idx] == WHITE:
                    colors[child_idx] = GRAY
                    stack.append((child_idx, iter(nodes[child_idx].get("children", []) or [])))

        for nidx in range(len(nodes)):
            if parents[nidx] < 0 and colors[nidx] == WHITE:
                visit(nidx)
        for nidx in range(len(nodes)):
            if colors[nidx] == WHITE:
                visit(nidx)

        self.vrm.node_parents = parents

    # ワールド行列・ワールド位置
    def calc_world_matrixes(self):
        nodes = self.vrm.nodes
        matrixes = [None for _ in range(len(nodes))]

        def world_matrix(nidx):
            if matrixes[nidx] is not None:
                return matrixes[nidx]

            # 親から順に解決する
            chain = []
            cur_idx = nidx
            while cur_idx >= 0 and matrixes[cur_idx] is None:
                chain.append(cur_idx)
                cur_idx = self.vrm.node_parents[cur_idx]

            for chain_idx in reversed(chain):
                parent_idx = self.vrm.node_parents[chain_idx]
                local_mat = calc_local_matrix(nodes[chain_idx])
                if parent_idx >= 0:
                    matrixes[chain_idx] = matrixes[parent_idx] * local_mat
                else:
                    matrixes[chain_idx] = local_mat

            return matrixes[nidx]

        for nidx in range(len(nodes)):
            world_matrix(nidx)

        self.vrm.node_matrixes = matrixes
        self.vrm.node_positions = [mat * MVector3D() for mat in matrixes]


# ノードのローカル行列(matrix 指定がなければ T・R・S)
def calc_local_matrix(node: dict):
    if isinstance(node.get("matrix"), list) and len(node["matrix"]) == 16:
        return MMatrix4x4.fromGltfMatrix(node["matrix"])

    mat = MMatrix4x4()
    mat.setToIdentity()

    translation = node.get("translation") or [0, 0, 0]
    mat.translate(MVector3D(translation))

    mat.rotate(MQuaternion.fromGltfRotation(node.get("rotation") or []))

    scale = node.get("scale") or [1, 1, 1]
    mat.scale(MVector3D(scale))

    return mat


# 座標変換情報
def create_conversion(meta: VrmMeta):
    if meta.is_vroid() and meta.version == VRM_VERSION_1:
        axis = (1, 1, -1)
    else:
        axis = (-1, 1, 1)

    return VrmConversion(MIKU_METER, axis)


# humanoid ボーン名(小文字) -> ノードINDEX
def collect_humanoid(extensions: dict):
    humanoid = {}

    vrm1 = extensions.get("VRMC_vrm")
    if isinstance(vrm1, dict):
        human_bones = (vrm1.get("humanoid") or {}).get("humanBones") or {}
        if isinstance(human_bones, dict):
            for bone_name, human_bone in human_bones.items():
                node_idx = human_bone.get("node", -1) if isinstance(human_bone, dict) else -1
                if isinstance(node_idx, int) and node_idx >= 0:
                    humanoid[bone_name.strip().lower()] = node_idx

    if not humanoid:
        vrm0 = extensions.get("VRM")
        if isinstance(vrm0, dict):
            human_bones = (vrm0.get("humanoid") or {}).get("humanBones") or []
            if isinstance(human_bones, list):
                for human_bone in human_bones:
                    if not isinstance(human_bone, dict):
                        continue
                    node_idx = human_bone.get("node", -1)
                    if isinstance(node_idx, int) and node_idx >= 0:
                        humanoid[str(human_bone.get("bone", "")).strip().lower()] = node_idx

    return humanoid
