# -*- coding: utf-8 -*-
#
import numpy as np

from mmd.PmxData import PmxModel, Vertex, Material, Morph, Bdef1, Bdef2, Bdef4, VertexMorphOffset, MaterialMorphData, UVMorphData, GroupMorphData # noqa
from mmd.VrmData import VrmModel, VrmConversion, VRM_VERSION_1
from mmd.VrmReader import read_from_accessor
from module.MMath import MVector2D, MVector3D, MVector4D
from utils.MLogger import MLogger # noqa
from service.MorphFallbackService import MorphFallbackService
from utils.MException import SizingException, MParseException

logger = MLogger(__name__, level=1)

# primitive.mode
MODE_POINTS = 0
MODE_LINES = 1
MODE_LINE_LOOP = 2
MODE_LINE_STRIP = 3
MODE_TRIANGLES = 4
MODE_TRIANGLE_STRIP = 5
MODE_TRIANGLE_FAN = 6

# モーフパネル
MORPH_SYSTEM = 0
MORPH_EYEBROW = 1
MORPH_EYE = 2
MORPH_LIP = 3
MORPH_OTHER = 4

# 無視する変位量
OFFSET_EPSILON = 1e-9

# VRM0 のテクスチャ変換プロパティ
MAIN_TEX_ST_PROPERTY = "_MainTex_ST"

# 口パネルに振り分ける表情名
LIP_EXPRESSION_NAMES = ["a", "i", "u", "e", "o", "aa", "ih", "ou", "ee", "oh"]


class MeshBuildService:
    def __init__(self, model: PmxModel, vrm: VrmModel, conversion: VrmConversion, node_bone_indexes: dict):
        self.model = model
        self.vrm = vrm
        self.conversion = conversion
        self.node_bone_indexes = node_bone_indexes
        # 頂点再利用: キー -> (開始INDEX, 頂点数)
        self.vertex_ranges = {}
        # glTF材質INDEX -> PMX材質INDEXリスト
        self.gltf_material_indexes = {}
        # 材質名 -> PMX材質INDEXリスト
        self.name_material_indexes = {}
        # (ノードINDEX, ターゲットINDEX) -> モーフ
        self.node_target_morphs = {}
        # (メッシュINDEX, ターゲットINDEX) -> モーフ
        self.mesh_target_morphs = {}
        # 材質INDEX -> 頂点INDEXリスト(UVモーフ用、遅延生成)
        self.material_vertex_indexes = None

    def execute(self):
        meshes = self.vrm.meshes

        for nidx, node in enumerate(self.vrm.nodes):
            if node.get("mesh") is None:
                continue

            mesh_idx = node["mesh"]
            if not isinstance(mesh_idx, int) or mesh_idx < 0 or mesh_idx >= len(meshes):
                raise MParseException("メッシュINDEXが範囲外です: node={0}, mesh={1}".format(nidx, mesh_idx))

            mesh = meshes[mesh_idx]
            primitive_keys = {}
            for pidx, primitive in enumerate(mesh.get("primitives", []) or []):
                primitive_key = create_primitive_key(primitive)
                if primitive.get("targets") and primitive_keys.get(primitive_key, pidx) != pidx:
                    # モーフターゲット付きの重複プリミティブは1回だけ変換する
                    logger.debug("重複プリミティブをスキップ: mesh=%s, primitive=%s", mesh_idx, pidx)
                    continue
                primitive_keys.setdefault(primitive_key, pidx)

                self.convert_primitive(nidx, node, mesh_idx, mesh, pidx, primitive)

            logger.info("-- メッシュ変換: %s", mesh.get("name", "") or f"mesh_{mesh_idx:03}")

        self.convert_expressions()

        MorphFallbackService(self.model).execute()

        logger.info("-- メッシュ変換終了(頂点: %s, 面: %s, 材質: %s)", len(self.model.vertices), len(self.model.faces), len(self.model.materials))

    def convert_primitive(self, node_idx: int, node: dict, mesh_idx: int, mesh: dict, primitive_idx: int, primitive: dict):
        mesh_name = mesh.get("name", "") or f"mesh_{mesh_idx:03}"
        primitive_name = f"{mesh_name}_{primitive_idx:03}"
        attributes = primitive.get("attributes", {}) or {}

        if "POSITION" not in attributes:
            raise MParseException("POSITIONがありません: {0}".format(primitive_name))

        positions = read_from_accessor(self.vrm, attributes["POSITION"])
        vertex_count = len(positions)

        indices = read_from_accessor(self.vrm, primitive["indices"]).flatten() if primitive.get("indices") is not None else np.arange(vertex_count)
        triangles = triangulate(indices, primitive.get("mode", MODE_TRIANGLES))
        if len(triangles) == 0:
            logger.warning("三角形のないプリミティブのため、スキップします: %s (mode=%s)", primitive_name, primitive.get("mode", MODE_TRIANGLES))
            return

        for triangle in triangles:
            for vidx in triangle:
                if vidx < 0 or vidx >= vertex_count:
                    raise MParseException("面の頂点INDEXが範囲外です: {0}, index={1}, count={2}".format(primitive_name, vidx, vertex_count))

        reuse_key = "node={0}|attrs={1}".format(node_idx, ",".join(f"{k}:{v}" for k, v in sorted(attributes.items())))
        vertex_start, reuse_count = self.vertex_ranges.get(reuse_key, (-1, -1))
        is_new_vertices = reuse_count != vertex_count
        if is_new_vertices:
            vertex_start = self.append_vertices(node_idx, node, primitive_name, attributes, positions)
            self.vertex_ranges[reuse_key] = (vertex_start, vertex_count)

        material_index = len(self.model.materials)
        for a, b, c in triangles:
            face = (vertex_start + c, vertex_start + b, vertex_start + a) if self.conversion.reverse_winding else (vertex_start + a, vertex_start + b, vertex_start + c)
            self.model.faces.append(face)
            for vidx in face:
                self.model.vertices[vidx].material_indices.append(material_index)

        self.append_material(primitive, primitive_name, len(triangles))

        self.convert_targets(node_idx, mesh_idx, mesh, primitive, vertex_start, vertex_count, is_new_vertices)

    def append_vertices(self, node_idx: int, node: dict, primitive_name: str, attributes: dict, positions):
        vertex_count = len(positions)

        normals = None
        if "NORMAL" in attributes:
            try:
                normals = read_from_accessor(self.vrm, attributes["NORMAL"])
            except SizingException as e:
                logger.warning("法線を読み込めないため、既定値を使用します: %s (%s)", primitive_name, e.message)
        elif vertex_count > 0:
            logger.debug("法線なし: %s", primitive_name)

        uvs = read_from_accessor(self.vrm, attributes["TEXCOORD_0"]) if "TEXCOORD_0" in attributes else None
        joints = read_from_accessor(self.vrm, attributes["JOINTS_0"]) if "JOINTS_0" in attributes else None
        weights = read_from_accessor(self.vrm, attributes["WEIGHTS_0"]) if "WEIGHTS_0" in attributes else None

        # スキンのジョイント -> ノードINDEX
        skin_joints = None
        skin_idx = node.get("skin")
        if isinstance(skin_idx, int) and 0 <= skin_idx < len(self.vrm.skins):
            skin_joints = self.vrm.skins[skin_idx].get("joints", []) or []

        default_bone_index = self.node_bone_indexes.get(node_idx, 0)

        vertex_start = len(self.model.vertices)
        for vidx in range(vertex_count):
            position = self.conversion.convert_position(positions[vidx])

            if normals is not None and vidx < len(normals):
                normal = self.conversion.convert_normal(normals[vidx])
            else:
                normal = MVector3D(0, 1, 0)

            uv = MVector2D(uvs[vidx][0], uvs[vidx][1]) if uvs is not None and vidx < len(uvs) else MVector2D()

            if joints is not None and weights is not None and vidx < len(joints) and vidx < len(weights):
                deform = self.create_deform(joints[vidx], weights[vidx], skin_joints, default_bone_index)
            else:
                deform = Bdef1(default_bone_index)

            self.model.vertices.append(Vertex(len(self.model.vertices), position, normal, uv, [], deform, 1.0))

        return vertex_start

    # ジョイント・ウェイトからデフォーム生成
    def create_deform(self, joint_row, weight_row, skin_joints, default_bone_index: int):
        node_weights = {}
        for joint, weight in zip(joint_row, weight_row):
            joint = int(joint)
            weight = float(weight)
            if skin_joints is not None:
                if joint < 0 or joint >= len(skin_joints):
                    continue
                joint = skin_joints[joint]
            node_weights[joint] = node_weights.get(joint, 0.0) + weight

        bone_weights = {}
        for node_idx, weight in node_weights.items():
            if node_idx not in self.node_bone_indexes or weight <= 0:
                continue
            bone_idx = self.node_bone_indexes[node_idx]
            bone_weights[bone_idx] = bone_weights.get(bone_idx, 0.0) + weight

        if not bone_weights:
            return Bdef1(default_bone_index)

        sorted_weights = sorted(bone_weights.items(), key=lambda bw: (-bw[1], bw[0]))

        if len(sorted_weights) == 1:
            return Bdef1(sorted_weights[0][0])

        if len(sorted_weights) == 2:
            (index0, weight0), (index1, weight1) = sorted_weights
            return Bdef2(index0, index1, weight0 / (weight0 + weight1))

        top_weights = sorted_weights[:4]
        total_weight = sum(weight for _, weight in top_weights)
        idxs = [bone_idx for bone_idx, _ in top_weights]
        ws = [weight / total_weight for _, weight in top_weights]
        while len(idxs) < 4:
            idxs.append(default_bone_index)
            ws.append(0.0)

        return Bdef4(idxs[0], idxs[1], idxs[2], idxs[3], ws[0], ws[1], ws[2], ws[3])

    def append_material(self, primitive: dict, primitive_name: str, face_count: int):
        materials = self.vrm.materials
        gltf_material_idx = primitive.get("material")
        source = {}
        if isinstance(gltf_material_idx, int) and 0 <= gltf_material_idx < len(materials):
            source = materials[gltf_material_idx] or {}

        material_name = source.get("name", "") or primitive_name
        pbr = source.get("pbrMetallicRoughness", {}) or {}

        diffuse_color = MVector3D(1, 1, 1)
        alpha = 1.0
        base_color = pbr.get("baseColorFactor")
        if isinstance(base_color, list) and len(base_color) == 4:
            diffuse_color = MVector3D(base_color[0], base_color[1], base_color[2])
            alpha = float(base_color[3])

        # 地面影・セルフ影マップへの描画・セルフ影
        flag = 0x04 | 0x08 | 0x10
        if source.get("doubleSided", False):
            # 両面描画
            flag |= 0x01

        texture_index = self.resolve_texture_index(pbr.get("baseColorTexture"))

        material = Material(
            material_name,
            material_name,
            diffuse_color,
            alpha,
            1.0,
            MVector3D(0, 0, 0),
            MVector3D(0.5, 0.5, 0.5),
            flag,
            MVector4D(0, 0, 0, 1),
            1.0,
            texture_index,
            -1,
            0,
            1,
            0,
            "alphaMode={0}".format(str(source.get("alphaMode", "") or "OPAQUE").upper()),
            face_count * 3,
        )

        material_index = len(self.model.materials)
        self.model.materials.append(material)

        if isinstance(gltf_material_idx, int):
            self.gltf_material_indexes.setdefault(gltf_material_idx, []).append(material_index)
        self.name_material_indexes.setdefault(material_name, []).append(material_index)

        logger.debug("材質: %s", material)

        return material_index

    # baseColorTexture -> texture.source -> 画像 -> テクスチャINDEX
    def resolve_texture_index(self, texture_info):
        if not isinstance(texture_info, dict) or not isinstance(texture_info.get("index"), int):
            return -1

        textures = self.vrm.textures
        texture_idx = texture_info["index"]
        if texture_idx < 0 or texture_idx >= len(textures):
            return -1

        image_idx = textures[texture_idx].get("source")
        if not isinstance(image_idx, int) or image_idx < 0 or image_idx >= len(self.model.image_texture_indexes):
            return -1

        pmx_texture_idx = self.model.image_texture_indexes[image_idx]
        if not self.model.textures[pmx_texture_idx].valid:
            return -1

        return pmx_texture_idx

    # モーフターゲット -> 頂点モーフ
    def convert_targets(self, node_idx: int, mesh_idx: int, mesh: dict, primitive: dict, vertex_start: int, vertex_count: int, is_new_vertices: bool):
        targets = primitive.get("targets", []) or []
        if not targets:
            return

        target_names = (primitive.get("extras", {}) or {}).get("targetNames") or (mesh.get("extras", {}) or {}).get("targetNames") or []

        for tidx, target in enumerate(targets):
            target_name = str(target_names[tidx]) if tidx < len(target_names) and target_names[tidx] else f"target_{tidx:03}"
            morph_name = f"__vrm_target_m{mesh_idx:03}_t{tidx:03}_{target_name}"

            morph = self.model.get_morph(morph_name)
            if not morph:
                morph = Morph(morph_name, morph_name, MORPH_SYSTEM, Morph.TYPE_VERTEX)
                self.model.append_morph(morph)

            self.node_target_morphs[(node_idx, tidx)] = morph
            self.mesh_target_morphs[(mesh_idx, tidx)] = morph

            if not is_new_vertices or not isinstance(target, dict) or target.get("POSITION") is None:
                continue

            deltas = read_from_accessor(self.vrm, target["POSITION"])
            for vidx in range(min(len(deltas), vertex_count)):
                offset = self.conversion.convert_position(deltas[vidx])
                if offset.length() <= OFFSET_EPSILON:
                    continue
                morph.offsets.append(VertexMorphOffset(vertex_start + vidx, offset))

    # 表情定義 -> 頂点・材質・UV・グループモーフ
    def convert_expressions(self):
        expressions = []

        vrm1 = self.vrm.extensions.get("VRMC_vrm")
        if self.vrm.meta and self.vrm.meta.version == VRM_VERSION_1 and isinstance(vrm1, dict):
            vrm1_expressions = vrm1.get("expressions", {}) or {}
            for group_name in ["preset", "custom"]:
                group = vrm1_expressions.get(group_name, {}) or {}
                for expression_name in sorted(group.keys()):
                    expression = group[expression_name] or {}
                    binds = []
                    for bind in expression.get("morphTargetBinds", []) or []:
                        morph = self.node_target_morphs.get((bind.get("node"), bind.get("index")))
                        if morph:
                            binds.append((morph, bind.get("weight", 1.0)))
                    material_binds = []
                    for bind in expression.get("materialColorBinds", []) or []:
                        material_indexes = self.gltf_material_indexes.get(bind.get("material"), [])
                        material_binds.append((material_indexes, str(bind.get("type", "")), bind.get("targetValue", []), 1.0))
                    uv_binds = []
                    for bind in expression.get("textureTransformBinds", []) or []:
                        material_indexes = self.gltf_material_indexes.get(bind.get("material"), [])
                        uv_binds.append((material_indexes, bind.get("scale") or [1.0, 1.0], bind.get("offset") or [0.0, 0.0], 1.0))
                    expressions.append((expression_name, expression.get("isBinary", False), binds, material_binds, uv_binds))
        else:
            vrm0 = self.vrm.extensions.get("VRM")
            if isinstance(vrm0, dict):
                for group in (vrm0.get("blendShapeMaster", {}) or {}).get("blendShapeGroups", []) or []:
                    expression_name = group.get("name", "") or group.get("presetName", "")
                    if not expression_name:
                        continue
                    binds = []
                    for bind in group.get("binds", []) or []:
                        morph = self.mesh_target_morphs.get((bind.get("mesh"), bind.get("index")))
                        if morph:
                            binds.append((morph, bind.get("weight", 100.0)))
                    material_binds = []
                    uv_binds = []
                    for bind in group.get("materialValues", []) or []:
                        material_indexes = self.name_material_indexes.get(bind.get("materialName", ""), [])
                        property_name = str(bind.get("propertyName", ""))
                        target_value = bind.get("targetValue", [])
                        if property_name == MAIN_TEX_ST_PROPERTY:
                            # [スケールX, スケールY, オフセットX, オフセットY]
                            values = [float(v) for v in target_value or []] + [1.0, 1.0, 0.0, 0.0][len(target_value or []):]
                            uv_binds.append((material_indexes, values[:2], values[2:4], 1.0))
                            continue
                        material_binds.append((material_indexes, property_name, target_value, 1.0))
                    expressions.append((expression_name, group.get("isBinary", False), binds, material_binds, uv_binds))

        for expression_name, is_binary, binds, material_binds, uv_binds in expressions:
            self.convert_expression(expression_name, is_binary, binds, material_binds, uv_binds)

        logger.info("-- 表情変換終了(%s)", len(expressions))

    def convert_expression(self, expression_name: str, is_binary: bool, binds: list, material_binds: list, uv_binds=None):
        # 頂点オフセット(同一頂点は合算)
        vertex_offsets = {}
        for morph, weight in binds:
            weight = normalize_bind_weight(weight, is_binary)
            if weight <= 0:
                continue
            for offset in morph.offsets:
                if offset.vertex_index not in vertex_offsets:
                    vertex_offsets[offset.vertex_index] = MVector3D()
                vertex_offsets[offset.vertex_index] += offset.position_offset * weight

        vertex_morph_offsets = [
            VertexMorphOffset(vidx, vertex_offsets[vidx]) for vidx in sorted(vertex_offsets.keys()) if vertex_offsets[vidx].length() > OFFSET_EPSILON
        ]

        material_morph_offsets = []
        for material_indexes, property_name, target_value, weight in material_binds:
            weight = normalize_bind_weight(weight, is_binary)
            for material_index in material_indexes:
                offset = create_material_morph_offset(self.model.materials[material_index], material_index, property_name, target_value, weight)
                if offset:
                    material_morph_offsets.append(offset)

        uv_morph_offsets = self.create_uv_morph_offsets(uv_binds or [], is_binary)

        panel = guess_morph_panel(expression_name)

        components = []
        if vertex_morph_offsets:
            components.append(("vertex", Morph.TYPE_VERTEX, vertex_morph_offsets))
        if material_morph_offsets:
            components.append(("material", Morph.TYPE_MATERIAL, material_morph_offsets))
        if uv_morph_offsets:
            components.append(("uv", Morph.TYPE_UV, uv_morph_offsets))

        if len(components) > 1:
            group_offsets = []
            for suffix, morph_type, offsets in components:
                morph = self.upsert_morph(f"{expression_name}__{suffix}", MORPH_SYSTEM, morph_type, offsets)
                group_offsets.append(GroupMorphData(morph.index, 1.0))
            self.upsert_morph(expression_name, panel, Morph.TYPE_GROUP, group_offsets)
        elif components:
            _, morph_type, offsets = components[0]
            self.upsert_morph(expression_name, panel, morph_type, offsets)
        else:
            logger.debug("有効なオフセットのない表情: %s", expression_name)

    # テクスチャ変換バインド -> UVオフセット(材質の全頂点)
    def create_uv_morph_offsets(self, uv_binds: list, is_binary: bool):
        uv_offsets = {}
        for material_indexes, scale, offset, weight in uv_binds:
            weight = normalize_bind_weight(weight, is_binary)
            if weight <= 0:
                continue
            scale = [float(v) for v in scale] + [1.0, 1.0][len(scale):]
            offset = [float(v) for v in offset] + [0.0, 0.0][len(offset):]
            for material_index in material_indexes:
                for vidx in self.get_material_vertex_indexes(material_index):
                    uv = self.model.vertices[vidx].uv
                    du = (uv.x() * (scale[0] - 1) + offset[0]) * weight
                    dv = (uv.y() * (scale[1] - 1) + offset[1]) * weight
                    if abs(du) <= OFFSET_EPSILON and abs(dv) <= OFFSET_EPSILON:
                        continue
                    if vidx not in uv_offsets:
                        uv_offsets[vidx] = MVector4D()
                    uv_offsets[vidx] += MVector4D(du, dv, 0, 0)

        return [UVMorphData(vidx, uv_offsets[vidx]) for vidx in sorted(uv_offsets.keys())]

    # 材質に属する頂点INDEX
    def get_material_vertex_indexes(self, material_index: int):
        if self.material_vertex_indexes is None:
            self.material_vertex_indexes = {}
            for vertex in self.model.vertices:
                for midx in set(vertex.material_indices):
                    self.material_vertex_indexes.setdefault(midx, []).append(vertex.index)
        return self.material_vertex_indexes.get(material_index, [])

    # 同名モーフがあれば置き換え
    def upsert_morph(self, morph_name: str, panel: int, morph_type: int, offsets: list):
        morph = self.model.get_morph(morph_name)
        if morph:
            morph.panel = panel
            morph.morph_type = morph_type
            morph.offsets = offsets
            return morph

        morph = Morph(morph_name, morph_name, panel, morph_type, offsets)
        self.model.append_morph(morph)
        return morph


# プリミティブの同一判定キー
def create_primitive_key(primitive: dict):
    attributes = primitive.get("attributes", {}) or {}
    return "attr={0}|idx={1}|mat={2}|mode={3}".format(
        ",".join(f"{k}:{v}" for k, v in sorted(attributes.items())),
        primitive.get("indices", -1) if primitive.get("indices") is not None else -1,
        primitive.get("material", -1) if primitive.get("material") is not None else -1,
        primitive.get("mode", MODE_TRIANGLES),
    )


# 三角形リスト(縮退面は除外)
def triangulate(indices, mode: int):
    indices = [int(i) for i in indices]
    triangles = []

    if mode == MODE_TRIANGLES:
        for i in range(0, len(indices) - 2, 3):
            triangles.append((indices[i], indices[i + 1], indices[i + 2]))
    elif mode == MODE_TRIANGLE_STRIP:
        for i in range(len(indices) - 2):
            if i % 2 == 0:
                triangles.append((indices[i], indices[i + 1], indices[i + 2]))
            else:
                triangles.append((indices[i + 1], indices[i], indices[i + 2]))
    elif mode == MODE_TRIANGLE_FAN:
        for i in range(1, len(indices) - 1):
            triangles.append((indices[0], indices[i], indices[i + 1]))

    return [(a, b, c) for a, b, c in triangles if a != b and b != c and a != c]


# バインドウェイト(100分率は1に正規化、バイナリは0.5で切替)
def normalize_bind_weight(weight, is_binary: bool):
    weight = float(weight or 0)
    if weight > 1:
        weight /= 100
    if weight < 0:
        weight = 0.0
    if is_binary:
        weight = 1.0 if weight >= 0.5 else 0.0
    return weight


# 材質色バインド -> 加算材質モーフ
def create_material_morph_offset(material: Material, material_index: int, property_name: str, target_value: list, weight: float):
    if weight <= 0 or not isinstance(target_value, list) or len(target_value) == 0:
        return None

    key = property_name.strip().lower().lstrip("_")
    values = [float(v) for v in target_value] + [1.0] * (4 - len(target_value))
    offset = MaterialMorphData(material_index, MaterialMorphData.CALC_ADD)

    if key == "color":
        base = MVector4D(material.diffuse_color.x(), material.diffuse_color.y(), material.diffuse_color.z(), material.alpha)
        offset.diffuse = (MVector4D(values[:4]) - base) * weight
    elif key == "shadecolor":
        offset.ambient = (MVector3D(values[:3]) - material.ambient_color) * weight
    elif key == "emissioncolor":
        offset.specular = (MVector3D(values[:3]) - material.specular_color) * weight
    elif key in ["outlinecolor", "rimcolor"]:
        offset.edge_color = (MVector4D(values[:4]) - material.edge_color) * weight
    elif key == "outlinewidth":
        offset.edge_size = (values[0] - material.edge_size) * weight
    elif key == "matcapcolor":
        offset.sphere_texture_factor = (MVector4D(values[:4]) - material.sphere_texture_factor) * weight
    else:
        logger.debug("未対応の材質プロパティ: %s", property_name)
        return None

    return offset


# 表情名からモーフパネルを推定
def guess_morph_panel(expression_name: str):
    lower_name = expression_name.lower()
    if "brow" in lower_name:
        return MORPH_EYEBROW
    if "eye" in lower_name or "blink" in lower_name or "look" in lower_name:
        return MORPH_EYE
    if "mouth" in lower_name or "jaw" in lower_name or lower_name in LIP_EXPRESSION_NAMES:
        return MORPH_LIP
    return MORPH_OTHER
