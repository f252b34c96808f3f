# -*- coding: utf-8 -*-
#
import copy
import os
import re

from mmd.PmxData import PmxModel, Material, Morph, VertexMorphOffset, MaterialMorphData, BoneMorphData, GroupMorphData # noqa
from module.MMath import MVector3D, MVector4D, MQuaternion
from service.MorphRenameService import find_morph_pair, MORPH_SYSTEM, MORPH_EYEBROW, MORPH_EYE, MORPH_LIP, MORPH_OTHER
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)

# プリミティブターゲット由来のモーフ名
PRIMITIVE_TARGET_PREFIX_PATTERN = re.compile(r"^__vrm_target_m[0-9]+_t[0-9]+_", re.IGNORECASE)

OFFSET_EPSILON = 1e-9

# 材質描画フラグ: エッジ
DRAW_FLAG_EDGE = 0x10

# 特殊目テクスチャのトークン
SPECIAL_EYE_TOKENS = ["eye_star", "eye_heart", "eye_hau", "eye_hachume", "eye_nagomi", "cheek_dye"]

SPECIAL_EYE_CLASS_IRIS = "iris"
SPECIAL_EYE_CLASS_WHITE = "white"
SPECIAL_EYE_CLASS_EYELINE = "eyeline"
SPECIAL_EYE_CLASS_EYELASH = "eyelash"
SPECIAL_EYE_CLASS_FACE = "face"

SPECIAL_EYE_CLASS_KEYWORDS = {
    SPECIAL_EYE_CLASS_IRIS: ["瞳", "虹彩", "iris", "pupil", "eyeiris"],
    SPECIAL_EYE_CLASS_WHITE: ["白目", "eyewhite", "sclera", "irishide"],
    SPECIAL_EYE_CLASS_EYELINE: ["アイライン", "eyeline"],
    SPECIAL_EYE_CLASS_EYELASH: ["まつげ", "睫毛", "eyelash", "lash"],
}

# (ベース材質の分類, テクスチャトークン)
SPECIAL_EYE_AUGMENT_RULES = [
    (SPECIAL_EYE_CLASS_IRIS, "eye_star"),
    (SPECIAL_EYE_CLASS_IRIS, "eye_heart"),
    (SPECIAL_EYE_CLASS_FACE, "cheek_dye"),
    (SPECIAL_EYE_CLASS_WHITE, "eye_hau"),
    (SPECIAL_EYE_CLASS_WHITE, "eye_hachume"),
    (SPECIAL_EYE_CLASS_WHITE, "eye_nagomi"),
]

SPECIAL_EYE_HIDE_CLASSES = [SPECIAL_EYE_CLASS_WHITE, SPECIAL_EYE_CLASS_EYELINE, SPECIAL_EYE_CLASS_EYELASH]

# (モーフ名, パネル, テクスチャトークン, 非表示にする材質の分類)
SPECIAL_EYE_MORPH_RULES = [
    ("はぅ材質", MORPH_SYSTEM, "eye_hau", SPECIAL_EYE_HIDE_CLASSES),
    ("はちゅ目材質", MORPH_SYSTEM, "eye_hachume", SPECIAL_EYE_HIDE_CLASSES),
    ("なごみ材質", MORPH_SYSTEM, "eye_nagomi", SPECIAL_EYE_HIDE_CLASSES),
    ("星目材質", MORPH_SYSTEM, "eye_star", []),
    ("はぁと材質", MORPH_SYSTEM, "eye_heart", []),
    ("照れ", MORPH_OTHER, "cheek_dye", []),
]

EDGE_OFF_MORPH_NAME = "エッジOFF"

BONE_RIGHT_EYE_LIGHT = "right_eye_light"
BONE_LEFT_EYE_LIGHT = "left_eye_light"
BONE_TONGUE1 = "tongue1"
BONE_TONGUE2 = "tongue2"
BONE_TONGUE3 = "tongue3"
BONE_TONGUE4 = "tongue4"

# モーフ名 -> [(ボーン, 移動量, 回転角度(度))]
BONE_MORPH_RULES = [
    ("ｳｨﾝｸ２右ボーン", [(BONE_RIGHT_EYE_LIGHT, (0, 0, -0.015), (-12, 0, 0))]),
    ("ウィンク２ボーン", [(BONE_LEFT_EYE_LIGHT, (0, 0, -0.015), (-12, 0, 0))]),
    ("ウィンク右ボーン", [(BONE_RIGHT_EYE_LIGHT, (0, 0, 0.025), (8, 0, 0))]),
    ("ウィンクボーン", [(BONE_LEFT_EYE_LIGHT, (0, 0, 0.025), (8, 0, 0))]),
    ("あボーン", [(BONE_TONGUE1, (0, 0, 0), (-16, 0, 0)), (BONE_TONGUE2, (0, 0, 0), (-16, 0, 0)), (BONE_TONGUE3, (0, 0, 0), (-10, 0, 0))]),
    ("いボーン", [(BONE_TONGUE1, (0, 0, 0), (-6, 0, 0)), (BONE_TONGUE2, (0, 0, 0), (-6, 0, 0)), (BONE_TONGUE3, (0, 0, 0), (-3, 0, 0))]),
    ("うボーン", [(BONE_TONGUE1, (0, 0, 0), (-16, 0, 0)), (BONE_TONGUE2, (0, 0, 0), (-16, 0, 0)), (BONE_TONGUE3, (0, 0, 0), (-10, 0, 0))]),
    ("えボーン", [(BONE_TONGUE1, (0, 0, 0), (-6, 0, 0)), (BONE_TONGUE2, (0, 0, 0), (-6, 0, 0)), (BONE_TONGUE3, (0, 0, 0), (-3, 0, 0))]),
    ("おボーン", [(BONE_TONGUE1, (0, 0, 0), (-20, 0, 0)), (BONE_TONGUE2, (0, 0, 0), (-18, 0, 0)), (BONE_TONGUE3, (0, 0, 0), (-12, 0, 0))]),
    (
        "ワボーン",
        [
            (BONE_TONGUE1, (0, 0, 0), (-24, 0, 0)),
            (BONE_TONGUE2, (0, 0, 0), (-24, 0, 0)),
            (BONE_TONGUE3, (0, 0, 0), (16, 0, 0)),
            (BONE_TONGUE4, (0, 0, 0), (28, 0, 0)),
        ],
    ),
    ("▲ボーン", [(BONE_TONGUE1, (0, 0, 0), (-6, 0, 0)), (BONE_TONGUE2, (0, 0, 0), (-6, 0, 0)), (BONE_TONGUE3, (0, 0, 0), (-3, 0, 0))]),
    (
        "わーボーン",
        [
            (BONE_TONGUE1, (0, 0, 0), (-24, 0, 0)),
            (BONE_TONGUE2, (0, 0, 0), (-24, 0, 0)),
            (BONE_TONGUE3, (0, 0, 0), (16, 0, 0)),
            (BONE_TONGUE4, (0, 0, 0), (28, 0, 0)),
        ],
    ),
    ("べーボーン", [(BONE_TONGUE1, (0, 0, 0), (-9, 0, 0)), (BONE_TONGUE2, (0, 0, -0.24), (-13.2, 0, 0)), (BONE_TONGUE3, (0, 0, 0), (-23.2, 0, 0))]),
    (
        "ぺろりボーン",
        [
            (BONE_TONGUE1, (0, 0, 0), (0, -5, 0)),
            (BONE_TONGUE2, (0, -0.03, -0.18), (33, -16, -4)),
            (BONE_TONGUE3, (0, 0, 0), (15, 3.6, -1)),
            (BONE_TONGUE4, (0, 0, 0), (20, 0, 0)),
        ],
    ),
]

# (モーフ名, パネル, [(連動モーフ名, 係数)])
LINK_MORPH_RULES = [
    ("下", MORPH_EYEBROW, [("下右", 1.0), ("下左", 1.0)]),
    ("上", MORPH_EYEBROW, [("上右", 1.0), ("上左", 1.0)]),
    ("眉左", MORPH_EYEBROW, [("右眉左", 1.0), ("左眉左", 1.0)]),
    ("眉右", MORPH_EYEBROW, [("右眉右", 1.0), ("左眉右", 1.0)]),
    ("眉手前", MORPH_EYEBROW, [("右眉手前", 1.0), ("左眉手前", 1.0)]),
    ("真面目", MORPH_EYEBROW, [("怒り右", 0.25), ("下右", 0.7), ("怒り左", 0.25), ("下左", 0.7)]),
    ("瞳小", MORPH_EYE, [("瞳小右", 1.0), ("瞳小左", 1.0)]),
    ("瞳大", MORPH_EYE, [("瞳大右", 1.0), ("瞳大左", 1.0)]),
    ("下瞼上げ", MORPH_EYE, [("下瞼上げ右", 1.0), ("下瞼上げ左", 1.0)]),
    ("にんまり", MORPH_EYE, [("にんまり右", 1.0), ("にんまり左", 1.0)]),
    ("はぅ", MORPH_EYE, [("はぅ材質", 1.0), ("目隠し頂点", 1.0)]),
    ("はちゅ目", MORPH_EYE, [("はちゅ目材質", 1.0), ("目隠し頂点", 1.0)]),
    ("なごみ", MORPH_EYE, [("なごみ材質", 1.0), ("目隠し頂点", 1.0)]),
    ("星目", MORPH_EYE, [("目光なし", 1.0), ("星目材質", 1.0)]),
    ("はぁと", MORPH_EYE, [("目光なし", 1.0), ("はぁと材質", 1.0)]),
    ("目上", MORPH_EYE, [("目上右", 1.0), ("目上左", 1.0)]),
    ("目下", MORPH_EYE, [("目下右", 1.0), ("目下左", 1.0)]),
    ("あ", MORPH_LIP, [("あ頂点", 1.0), ("あボーン", 1.0)]),
    ("い", MORPH_LIP, [("い頂点", 1.0), ("いボーン", 1.0)]),
    ("う", MORPH_LIP, [("う頂点", 1.0), ("うボーン", 1.0)]),
    ("え", MORPH_LIP, [("え頂点", 1.0), ("えボーン", 1.0)]),
    ("お", MORPH_LIP, [("お頂点", 1.0), ("おボーン", 1.0)]),
    ("ワ", MORPH_LIP, [("ワ頂点", 1.0), ("ワボーン", 1.0)]),
    ("▲", MORPH_LIP, [("▲頂点", 1.0), ("▲ボーン", 1.0)]),
    ("わー", MORPH_LIP, [("わー頂点", 1.0), ("わーボーン", 1.0)]),
    ("べー", MORPH_LIP, [("あ頂点", 0.12), ("い頂点", 0.56), ("べーボーン", 1.0)]),
    ("ぺろり", MORPH_LIP, [("あ頂点", 0.12), ("にっこり", 0.54), ("ぺろりボーン", 1.0)]),
]


class MorphFallbackService:
    def __init__(self, model: PmxModel):
        self.model = model

    def execute(self):
        canonical_count = self.append_canonical_target_morphs()
        augment_count = self.append_special_eye_materials()
        special_eye_count = self.append_special_eye_morphs()
        edge_count = self.append_edge_off_morph()
        bone_count = self.append_bone_morphs()
        link_count = self.append_link_morphs()

        logger.info(
            "-- 表情補完終了(ターゲット: %s, 特殊目材質: %s, 特殊目モーフ: %s, エッジ: %s, ボーン: %s, 連動: %s)",
            canonical_count,
            augment_count,
            special_eye_count,
            edge_count,
            bone_count,
            link_count,
        )

    # プリミティブターゲットから変換後名称の頂点モーフを生成(表情定義の名称を優先)
    def append_canonical_target_morphs(self):
        # 変換前名称 -> ターゲットモーフリスト
        target_morphs = {}
        claimed_names = set()
        for morph in self.model.morphs:
            if PRIMITIVE_TARGET_PREFIX_PATTERN.match(morph.name):
                target_name = strip_primitive_target_prefix(morph.name)
                if target_name:
                    target_morphs.setdefault(target_name, []).append(morph)
                continue
            claimed_names.add(morph.name)
            pair = find_morph_pair(morph.name)
            if pair:
                claimed_names.add(pair["name"])

        created_count = 0
        for target_name, morphs in target_morphs.items():
            pair = find_morph_pair(target_name)
            if not pair or pair["name"] == target_name:
                continue
            if pair["name"] in claimed_names:
                logger.debug("変換後名称が既にあるためスキップ: %s -> %s", target_name, pair["name"])
                continue

            # 複数メッシュの同名ターゲットは合算
            vertex_offsets = {}
            for morph in morphs:
                for offset in morph.offsets:
                    if offset.vertex_index not in vertex_offsets:
                        vertex_offsets[offset.vertex_index] = MVector3D()
                    vertex_offsets[offset.vertex_index] += offset.position_offset

            offsets = [
                VertexMorphOffset(vidx, vertex_offsets[vidx]) for vidx in sorted(vertex_offsets.keys()) if vertex_offsets[vidx].length() > OFFSET_EPSILON
            ]
            if not offsets:
                continue

            self.model.append_morph(Morph(pair["name"], pair["name"], pair["panel"], Morph.TYPE_VERTEX, offsets))
            claimed_names.add(pair["name"])
            created_count += 1
            logger.debug("ターゲットモーフ生成: %s -> %s (%s)", target_name, pair["name"], len(offsets))

        return created_count

    # 特殊目テクスチャを貼ったオーバーレイ材質を追加
    def append_special_eye_materials(self):
        texture_indexes = {}
        for token in SPECIAL_EYE_TOKENS:
            texture_index = find_texture_index_by_token(self.model, token)
            if texture_index >= 0:
                texture_indexes[token] = texture_index

        material_infos = self.collect_special_eye_material_infos()
        face_ranges = self.model.get_material_face_ranges()

        created_count = 0
        for eye_class, token in SPECIAL_EYE_AUGMENT_RULES:
            if token not in texture_indexes:
                logger.debug("特殊目テクスチャなし: %s", token)
                continue

            for material_index, classes, is_overlay in material_infos:
                if is_overlay or eye_class not in classes:
                    continue

                face_start, face_end = face_ranges[material_index]
                if face_end <= face_start:
                    continue

                base_material = self.model.materials[material_index]
                material_name = create_unique_material_name(self.model, "{0}_{1}".format(trim_instance_suffix(base_material.name), token))
                overlay_material = clone_material(base_material, material_name)
                overlay_material.texture_index = texture_indexes[token]
                overlay_material.alpha = 0.0
                overlay_material.flag &= ~DRAW_FLAG_EDGE

                overlay_index = len(self.model.materials)
                self.model.materials.append(overlay_material)
                face_count = append_material_faces(self.model, face_start, face_end, overlay_index)
                overlay_material.vertex_count = face_count * 3

                created_count += 1
                logger.debug("特殊目材質追加: %s (面: %s)", material_name, face_count)

        return created_count

    # 特殊目材質の表示切替モーフ
    def append_special_eye_morphs(self):
        material_infos = self.collect_special_eye_material_infos()

        created_count = 0
        for morph_name, panel, token, hide_classes in SPECIAL_EYE_MORPH_RULES:
            if find_morph_by_name_or_canonical(self.model, morph_name):
                continue

            offsets = {}
            for material_index, classes, is_overlay in material_infos:
                if match_special_eye_token(self.model, self.model.materials[material_index], token):
                    self.add_alpha_offset(offsets, material_index, 1.0 - self.model.materials[material_index].alpha)

            if not offsets:
                continue

            for material_index, classes, is_overlay in material_infos:
                if is_overlay:
                    continue
                if any(hide_class in classes for hide_class in hide_classes):
                    self.add_alpha_offset(offsets, material_index, -self.model.materials[material_index].alpha)

            self.model.append_morph(Morph(morph_name, morph_name, panel, Morph.TYPE_MATERIAL, [offsets[midx] for midx in sorted(offsets.keys())]))
            created_count += 1

        return created_count

    def add_alpha_offset(self, offsets: dict, material_index: int, alpha_delta: float):
        if abs(alpha_delta) <= OFFSET_EPSILON:
            return
        if material_index not in offsets:
            offsets[material_index] = MaterialMorphData(material_index, MaterialMorphData.CALC_ADD)
        offset = offsets[material_index]
        offset.diffuse.setW(offset.diffuse.w() + alpha_delta)

    # 材質INDEX, 分類, オーバーレイ材質か
    def collect_special_eye_material_infos(self):
        material_infos = []
        for material_index, material in enumerate(self.model.materials):
            texture_name = get_texture_name(self.model, material.texture_index)
            classes = classify_special_eye_material(material, texture_name)
            is_overlay = any(match_special_eye_token(self.model, material, token) for token in SPECIAL_EYE_TOKENS)
            material_infos.append((material_index, classes, is_overlay))
        return material_infos

    # エッジOFF(エッジ材質は非表示、エッジ描画は太さ0)
    def append_edge_off_morph(self):
        if find_morph_by_name_or_canonical(self.model, EDGE_OFF_MORPH_NAME) or not self.model.materials:
            return 0

        offsets = []
        for material_index, material in enumerate(self.model.materials):
            if material.flag & DRAW_FLAG_EDGE:
                offsets.append(create_multiply_offset(material_index, 1.0, MVector4D(1, 1, 1, 0)))
            elif material.name.strip().endswith("_エッジ"):
                offsets.append(create_multiply_offset(material_index, 0.0, MVector4D(0, 0, 0, 0)))

        if not offsets:
            offsets = [create_multiply_offset(material_index, 1.0, MVector4D(1, 1, 1, 0)) for material_index in range(len(self.model.materials))]

        self.model.append_morph(Morph(EDGE_OFF_MORPH_NAME, EDGE_OFF_MORPH_NAME, MORPH_OTHER, Morph.TYPE_MATERIAL, offsets))

        return 1

    # 目光・舌ボーンのボーンモーフ
    def append_bone_morphs(self):
        created_count = 0
        for morph_name, bone_rules in BONE_MORPH_RULES:
            if find_morph_by_name_or_canonical(self.model, morph_name):
                continue

            offsets = []
            for semantic, position, degrees in bone_rules:
                bone_index = find_semantic_bone_index(self.model, semantic)
                if bone_index < 0:
                    continue
                offsets.append(BoneMorphData(bone_index, MVector3D(*position), MQuaternion.fromEulerAngles(*degrees)))

            if not offsets:
                # 対象ボーンがない場合は作らない
                continue

            self.model.append_morph(Morph(morph_name, morph_name, MORPH_SYSTEM, Morph.TYPE_BONE, offsets))
            created_count += 1

        return created_count

    # 既存モーフを束ねるグループモーフ
    def append_link_morphs(self):
        created_count = 0
        for morph_name, panel, binds in LINK_MORPH_RULES:
            if find_morph_by_name_or_canonical(self.model, morph_name):
                continue

            offsets = []
            for bind_name, ratio in binds:
                bind_morph = find_morph_by_name_or_canonical(self.model, bind_name)
                if bind_morph:
                    offsets.append(GroupMorphData(bind_morph.index, ratio))

            if not offsets:
                continue

            self.model.append_morph(Morph(morph_name, morph_name, panel, Morph.TYPE_GROUP, offsets))
            created_count += 1
            logger.debug("連動モーフ生成: %s (%s)", morph_name, ", ".join(self.model.morphs[offset.morph_index].name for offset in offsets))

        return created_count


def strip_primitive_target_prefix(morph_name: str):
    return PRIMITIVE_TARGET_PREFIX_PATTERN.sub("", morph_name or "", count=1).strip()


# 名称完全一致 -> 名称・変換後名称の大小無視一致
def find_morph_by_name_or_canonical(model: PmxModel, morph_name: str):
    morph_name = (morph_name or "").strip()
    if not morph_name:
        return None

    morph = model.get_morph(morph_name)
    if morph:
        return morph

    keys = {morph_name.lower()}
    pair = find_morph_pair(morph_name)
    if pair:
        keys.add(pair["name"].lower())

    for morph in model.morphs:
        for candidate_name in [morph.name, morph.english_name]:
            candidate_name = (candidate_name or "").strip()
            if not candidate_name:
                continue
            if candidate_name.lower() in keys:
                return morph
            candidate_pair = find_morph_pair(candidate_name)
            if candidate_pair and candidate_pair["name"].lower() in keys:
                return morph

    return None


# 英数字のみの小文字
def normalize_semantic_name(value: str):
    return "".join(c for c in (value or "").lower() if ("a" <= c <= "z") or ("0" <= c <= "9"))


def get_texture_name(model: PmxModel, texture_index: int):
    if 0 <= texture_index < len(model.textures):
        return os.path.basename(model.textures[texture_index].name or "")
    return ""


def find_texture_index_by_token(model: PmxModel, token: str):
    normalized_token = normalize_semantic_name(token)
    for texture_index, texture in enumerate(model.textures):
        if texture.valid and normalized_token in normalize_semantic_name(os.path.basename(texture.name or "")):
            return texture_index
    return -1


# テクスチャ名・英名・材質名末尾のいずれかがトークンに一致
def match_special_eye_token(model: PmxModel, material: Material, token: str):
    normalized_token = normalize_semantic_name(token)
    if normalized_token in normalize_semantic_name(get_texture_name(model, material.texture_index)):
        return True
    if normalized_token in normalize_semantic_name(material.english_name):
        return True
    return normalize_semantic_name(material.name).endswith(normalized_token)


def classify_special_eye_material(material: Material, texture_name: str):
    source = " ".join([material.name or "", material.english_name or "", texture_name or ""]).lower()

    classes = set()
    for eye_class, keywords in SPECIAL_EYE_CLASS_KEYWORDS.items():
        if any(keyword.lower() in source for keyword in keywords):
            classes.add(eye_class)

    if ("face" in source and "skin" in source) or "_face_" in (material.english_name or "").lower():
        classes.add(SPECIAL_EYE_CLASS_FACE)

    return classes


def trim_instance_suffix(material_name: str):
    material_name = (material_name or "").strip()
    if material_name.lower().endswith("(instance)"):
        material_name = material_name[: -len("(instance)")].strip()
    return material_name or "special_eye"


def create_unique_material_name(model: PmxModel, material_name: str):
    used_names = set(material.name for material in model.materials)
    if material_name not in used_names:
        return material_name

    serial = 1
    while f"{material_name}_{serial:03}" in used_names:
        serial += 1
    return f"{material_name}_{serial:03}"


def clone_material(material: Material, material_name: str):
    cloned_material = copy.deepcopy(material)
    cloned_material.name = material_name
    cloned_material.english_name = material_name
    cloned_material.vertex_count = 0
    return cloned_material


# 面範囲を複製頂点で新材質へ追加(面数)
def append_material_faces(model: PmxModel, face_start: int, face_end: int, material_index: int):
    duplicated_indexes = {}
    face_count = 0
    for face in model.faces[face_start:face_end]:
        new_face = []
        for vidx in face:
            if vidx not in duplicated_indexes:
                duplicated_indexes[vidx] = copy_vertex(model, vidx, material_index)
            new_face.append(duplicated_indexes[vidx])
        model.faces.append(tuple(new_face))
        face_count += 1
    return face_count


def copy_vertex(model: PmxModel, vertex_index: int, material_index: int):
    vertex = copy.deepcopy(model.vertices[vertex_index])
    vertex.index = len(model.vertices)
    vertex.material_indices = [material_index]
    model.vertices.append(vertex)
    return vertex.index


# 乗算材質モーフ(色・テクスチャ係数は factor 倍、エッジ太さ 0)
def create_multiply_offset(material_index: int, factor: float, edge_color: MVector4D):
    return MaterialMorphData(
        material_index,
        MaterialMorphData.CALC_MULTIPLY,
        diffuse=MVector4D(factor, factor, factor, factor),
        specular=MVector3D(factor, factor, factor),
        specular_factor=factor,
        ambient=MVector3D(factor, factor, factor),
        edge_color=edge_color,
        edge_size=0.0,
        texture_factor=MVector4D(factor, factor, factor, factor),
        sphere_texture_factor=MVector4D(factor, factor, factor, factor),
        toon_texture_factor=MVector4D(factor, factor, factor, factor),
    )


def find_semantic_bone_index(model: PmxModel, semantic: str):
    if semantic in [BONE_RIGHT_EYE_LIGHT, BONE_LEFT_EYE_LIGHT]:
        is_right = semantic == BONE_RIGHT_EYE_LIGHT
        # 目光を優先し、なければ目ボーン
        for is_target in [is_eye_light_name, is_eye_name]:
            for bone in model.bones.values():
                lower_name = bone.name.strip().lower()
                if not is_target(lower_name):
                    continue
                if (is_right and is_right_name(lower_name)) or (not is_right and is_left_name(lower_name)):
                    return bone.index
        return -1

    no = int(semantic[-1])
    for bone in model.bones.values():
        if is_tongue_name(bone.name.strip().lower(), no):
            return bone.index
    return -1


def is_eye_light_name(lower_name: str):
    return "目光" in lower_name or "eyelight" in lower_name or ("eye" in lower_name and "light" in lower_name)


def is_eye_name(lower_name: str):
    return "目" in lower_name or "eye" in lower_name


def is_right_name(lower_name: str):
    return "右" in lower_name or "right" in lower_name or "_r" in lower_name


def is_left_name(lower_name: str):
    return "左" in lower_name or "left" in lower_name or "_l" in lower_name


def is_tongue_name(lower_name: str, no: int):
    return any(f"{prefix}{no}" in lower_name for prefix in ["舌", "tongue", "tongue_", "tongue0"])
