# -*- coding: utf-8 -*-
#
import copy
import re

import numpy as np

from mmd.PmxData import PmxModel, Material, Morph
from module.MMath import MVector3D, MVector4D
from service.MaterialReorderService import load_texture_alpha, calc_uv_transparent_ratio
from service.MorphFallbackService import SPECIAL_EYE_TOKENS, EDGE_OFF_MORPH_NAME, normalize_semantic_name, create_multiply_offset
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)

DRAW_FLAG_DOUBLE_SIDED = 0x01
DRAW_FLAG_EDGE = 0x10

INSTANCE_SUFFIX = " (Instance)"
SUFFIX_FRONT = "表面"
SUFFIX_BACK = "裏面"
SUFFIX_EDGE = "エッジ"

# 末尾トークン -> 正規接尾辞(判定順)
VARIANT_SUFFIXES = [
    ("(なし)", SUFFIX_FRONT),
    ("（なし）", SUFFIX_FRONT),
    ("なし", SUFFIX_FRONT),
    (SUFFIX_FRONT, SUFFIX_FRONT),
    ("裏", SUFFIX_BACK),
    (SUFFIX_BACK, SUFFIX_BACK),
    (SUFFIX_EDGE, SUFFIX_EDGE),
]
# 区切りなしでも接尾辞とみなすトークン
LEGACY_SUFFIXES = ["(なし)", "（なし）"]
VARIANT_SEPARATORS = "_ -"

ALPHA_MODE_PATTERN = re.compile(r"(?:^|\s)alphaMode=(\S+)", re.IGNORECASE)
VARIANT_ALPHA_MODES = ["MASK", "BLEND"]

# エッジ押し出し量
EDGE_SIZE_SCALE = 0.02
EDGE_MODEL_FLOOR_RATIO = 2.0e-4
EDGE_MATERIAL_FLOOR_RATIO = 5.0e-4
EDGE_FLOOR_MIN = 1.0e-4
EDGE_FLOOR_MAX = 5.0e-2
NORMAL_EPSILON = 1.0e-6


class VroidMaterialService:
    def __init__(self, model: PmxModel):
        self.model = model
        self.texture_alpha_cache = {}

    # 半透明の服材質を 表面/裏面/エッジ に分け、接尾辞を正規化する
    def execute(self):
        variant_count = self.duplicate_material_variants()
        rename_count = self.rename_materials(normalize_variant_suffix)

        logger.info("-- VRoid材質準備終了(分割: %s, 名称正規化: %s)", variant_count, rename_count)

        return variant_count > 0

    # 材質名の接頭辞・(Instance)・接尾辞を正規化する
    def abbreviate_material_names(self):
        rename_count = self.rename_materials(abbreviate_material_name)

        logger.info("-- 材質名略称終了(%s)", rename_count)

        return rename_count

    def duplicate_material_variants(self):
        if not self.model.materials or not self.model.faces:
            return 0

        face_ranges = self.model.get_material_face_ranges()
        if face_ranges[-1][1] != len(self.model.faces):
            logger.warning("材質頂点数と面数が一致しないため、VRoid材質分割をスキップします")
            return 0

        target_indexes = [midx for midx in range(len(self.model.materials)) if self.is_variant_target(midx, face_ranges[midx])]
        if not target_indexes:
            return 0

        model_diagonal = calc_vertices_diagonal(self.model.vertices)
        vertex_count = len(self.model.vertices)

        old_materials = self.model.materials
        old_faces = self.model.faces
        self.model.materials = []
        self.model.faces = []
        old_to_new = {}
        edge_indexes = []

        for old_index, material in enumerate(old_materials):
            face_start, face_end = face_ranges[old_index]
            faces = old_faces[face_start:face_end]

            if old_index not in target_indexes:
                old_to_new[old_index] = self.append_material(material, faces)
                continue

            base_name = resolve_variant_base_name(material.name)
            material.name = f"{base_name}_{SUFFIX_FRONT}"
            material.flag &= ~(DRAW_FLAG_DOUBLE_SIDED | DRAW_FLAG_EDGE)
            old_to_new[old_index] = self.append_material(material, faces)

            # 裏面: 法線反転・面反転
            back_material = clone_variant_material(material, f"{base_name}_{SUFFIX_BACK}")
            back_index = len(self.model.materials)
            self.append_material(back_material, [self.duplicate_face(face, back_index, 0.0) for face in faces])

            # エッジ: エッジ色で法線方向に押し出した裏面
            edge_material = clone_variant_material(material, f"{base_name}_{SUFFIX_EDGE}")
            edge_material.diffuse_color = MVector3D(material.edge_color.x(), material.edge_color.y(), material.edge_color.z())
            edge_material.ambient_color = edge_material.diffuse_color / 2
            edge_offset = calc_edge_offset(material.edge_size, model_diagonal, calc_faces_diagonal(self.model, faces))
            edge_index = len(self.model.materials)
            self.append_material(edge_material, [self.duplicate_face(face, edge_index, edge_offset) for face in faces])
            edge_indexes.append(edge_index)

            logger.debug("VRoid材質分割: %s (面: %s, エッジ押し出し: %.6f)", base_name, len(faces), edge_offset)

        remap_material_indexes(self.model, old_to_new, vertex_count)
        self.hide_edge_materials_by_morph(edge_indexes)

        return len(target_indexes)

    # エッジOFFでエッジ材質を非表示にする
    def hide_edge_materials_by_morph(self, edge_indexes: list):
        edge_off = self.model.get_morph(EDGE_OFF_MORPH_NAME)
        if not edge_off or edge_off.morph_type != Morph.TYPE_MATERIAL:
            return

        for material_index in edge_indexes:
            edge_off.offsets.append(create_multiply_offset(material_index, 0.0, MVector4D(0, 0, 0, 0)))

    # 服・MASK/BLEND・エッジあり・テクスチャ透明あり・未分割
    def is_variant_target(self, material_index: int, face_range: tuple):
        material = self.model.materials[material_index]
        normalized_name = normalize_semantic_name(f"{material.name} {material.english_name}")
        if "cloth" not in normalized_name:
            return False
        if any(normalize_semantic_name(token) in normalized_name for token in SPECIAL_EYE_TOKENS):
            return False
        if material.edge_size <= 0 or not material.flag & DRAW_FLAG_EDGE or material.texture_index < 0:
            return False
        if resolve_alpha_mode(material) not in VARIANT_ALPHA_MODES:
            return False
        if has_variant_suffix(material.name):
            return False

        alpha_ary = load_texture_alpha(self.model, material.texture_index, self.texture_alpha_cache)
        return calc_uv_transparent_ratio(self.model, face_range, alpha_ary) > 0

    # 同名を避けて材質を追加
    def append_material(self, material: Material, faces: list):
        material.name = create_serial_material_name(self.model, material.name)
        material.english_name = material.name
        material.vertex_count = len(faces) * 3
        self.model.materials.append(material)
        self.model.faces.extend(faces)
        return len(self.model.materials) - 1

    # 面の頂点を複製し、法線を反転して逆回りの面を返す
    def duplicate_face(self, face: tuple, material_index: int, edge_offset: float):
        new_indexes = []
        for vidx in face:
            vertex = copy.deepcopy(self.model.vertices[vidx])
            vertex.index = len(self.model.vertices)
            vertex.material_indices = [material_index]
            if edge_offset > 0:
                direction = vertex.normal.normalized() if vertex.normal.length() > NORMAL_EPSILON else MVector3D(0, 1, 0)
                vertex.position = vertex.position + direction * edge_offset
            vertex.normal = (-vertex.normal).normalized()
            self.model.vertices.append(vertex)
            new_indexes.append(vertex.index)
        return (new_indexes[2], new_indexes[1], new_indexes[0])

    # 名前変更(変更しない材質の名前と重ならないよう連番を付与)
    def rename_materials(self, rename_func):
        renames = {}
        for midx, material in enumerate(self.model.materials):
            new_name = rename_func(material.name.strip()) or f"material_{midx}"
            if new_name != material.name:
                renames[midx] = new_name

        if not renames:
            return 0

        used_names = set(material.name for midx, material in enumerate(self.model.materials) if midx not in renames)
        for midx, new_name in renames.items():
            candidate = new_name
            serial = 2
            while candidate in used_names:
                candidate = f"{new_name}_{serial}"
                serial += 1
            used_names.add(candidate)

            logger.debug("材質名変更: %s -> %s", self.model.materials[midx].name, candidate)
            self.model.materials[midx].name = candidate
            self.model.materials[midx].english_name = candidate

        return len(renames)


def resolve_alpha_mode(material: Material):
    m = ALPHA_MODE_PATTERN.search(material.comment or "")
    return m.group(1).upper() if m else ""


# 末尾の接尾辞を区切り付きで切り離す。(接尾辞前の名前, 一致したか)
def trim_variant_token(name: str, token: str):
    name = name.strip()
    if name == token:
        return "", True
    if not name.endswith(token):
        return "", False

    base_name = name[: -len(token)]
    if not base_name.strip():
        return "", True
    if base_name[-1] in VARIANT_SEPARATORS or token in LEGACY_SUFFIXES:
        return base_name.strip().rstrip(VARIANT_SEPARATORS), True
    return "", False


# 末尾の連番(_2 など)を除去
def trim_serial_suffix(name: str):
    base_name, _, serial = name.strip().rpartition("_")
    if base_name.strip() and serial.isascii() and serial.isdigit():
        return base_name.strip()
    return None


def has_variant_suffix(material_name: str):
    candidates = [material_name.strip()]
    without_serial = trim_serial_suffix(material_name)
    if without_serial:
        candidates.append(without_serial)

    return any(trim_variant_token(candidate, token)[1] for candidate in candidates for token, _ in VARIANT_SUFFIXES)


# 接尾辞・(Instance)を除いた分割元の名前
def resolve_variant_base_name(material_name: str):
    trimmed_name = material_name.replace(INSTANCE_SUFFIX, "").strip()
    if not trimmed_name:
        return "material"

    candidates = [trimmed_name]
    without_serial = trim_serial_suffix(trimmed_name)
    if without_serial:
        candidates.append(without_serial)

    for candidate in candidates:
        for token, _ in VARIANT_SUFFIXES:
            base_name, matched = trim_variant_token(candidate, token)
            if matched:
                return base_name or "material"

    return trimmed_name.rstrip(VARIANT_SEPARATORS)


# 接尾辞を 表面/裏面/エッジ に揃える
def normalize_variant_suffix(material_name: str):
    for token, suffix in VARIANT_SUFFIXES:
        base_name, matched = trim_variant_token(material_name, token)
        if matched:
            return f"{base_name}_{suffix}" if base_name else suffix
    return material_name.strip()


# VRoid の接頭辞(N00_000_00_ など)を除去。該当しなければ None
def trim_vroid_prefix(material_name: str):
    parts = material_name.strip().split("_")
    if len(parts) < 3:
        return None

    head = parts[0]
    if not (len(head) == 3 and head[0].isascii() and head[0].isalpha() and head[1:].isascii() and head[1:].isdigit()):
        return None

    next_index = 1
    while next_index < len(parts) and parts[next_index].isascii() and parts[next_index].isdigit():
        next_index += 1
    if next_index <= 1 or next_index >= len(parts):
        return None

    return "_".join(parts[next_index:]).strip() or None


def abbreviate_material_name(material_name: str):
    name = material_name.replace(INSTANCE_SUFFIX, "").strip()
    name = trim_vroid_prefix(name) or name
    return normalize_variant_suffix(name)


def clone_variant_material(material: Material, material_name: str):
    cloned_material = copy.deepcopy(material)
    cloned_material.name = material_name
    cloned_material.english_name = material_name
    cloned_material.flag &= ~(DRAW_FLAG_DOUBLE_SIDED | DRAW_FLAG_EDGE)
    cloned_material.vertex_count = 0
    return cloned_material


def create_serial_material_name(model: PmxModel, material_name: str):
    material_name = material_name.strip() or "material"
    used_names = set(material.name for material in model.materials)

    candidate = material_name
    serial = 2
    while candidate in used_names:
        candidate = f"{material_name}_{serial}"
        serial += 1
    return candidate


# エッジ太さとモデル・材質の大きさから押し出し量を決める
def calc_edge_offset(edge_size: float, model_diagonal: float, material_diagonal: float):
    scale_floor = max(model_diagonal * EDGE_MODEL_FLOOR_RATIO, material_diagonal * EDGE_MATERIAL_FLOOR_RATIO)
    scale_floor = min(max(scale_floor, EDGE_FLOOR_MIN), EDGE_FLOOR_MAX)
    return max(edge_size * EDGE_SIZE_SCALE, scale_floor)


def calc_vertices_diagonal(vertices: list):
    if not vertices:
        return 0.0
    positions = np.array([vertex.position.data() for vertex in vertices], dtype=np.float64)
    return float(np.linalg.norm(positions.max(axis=0) - positions.min(axis=0)))


def calc_faces_diagonal(model: PmxModel, faces: list):
    return calc_vertices_diagonal([model.vertices[vidx] for face in faces for vidx in face])


# 元材質を参照する頂点・材質モーフを新INDEXへ付け替える
def remap_material_indexes(model: PmxModel, old_to_new: dict, vertex_count: int):
    # 複製頂点は新INDEXを持つため対象外
    for vertex in model.vertices[:vertex_count]:
        vertex.material_indices = sorted(old_to_new.get(midx, midx) for midx in vertex.material_indices)

    for morph in model.morphs:
        if morph.morph_type != Morph.TYPE_MATERIAL:
            continue
        for offset in morph.offsets:
            offset.material_index = old_to_new.get(offset.material_index, offset.material_index)
