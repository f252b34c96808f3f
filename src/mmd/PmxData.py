# -*- coding: utf-8 -*-
#
from module.MMath import MVector2D, MVector3D, MVector4D # noqa
from utils.MException import MModelInvalidException
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)


class Deform:
    def __init__(self, index0):
        self.index0 = index0

    def get_idx_list(self):
        return [self.index0]

    def get_weights(self):
        return [1.0]

    def set_idx_list(self, idxs):
        self.index0 = idxs[0]

    def kind(self):
        return self.__class__.__name__


class Bdef1(Deform):
    def __init__(self, index0):
        super().__init__(index0)

    def __str__(self):
        return "<Bdef1 {0}>".format(self.index0)


class Bdef2(Deform):
    def __init__(self, index0, index1, weight0):
        super().__init__(index0)
        self.index1 = index1
        self.weight0 = weight0

    def get_idx_list(self):
        return [self.index0, self.index1]

    def get_weights(self):
        return [self.weight0, 1 - self.weight0]

    def set_idx_list(self, idxs):
        self.index0, self.index1 = idxs

    def __str__(self):
        return "<Bdef2 {0}, {1}, {2}>".format(self.index0, self.index1, self.weight0)


class Bdef4(Deform):
    def __init__(self, index0, index1, index2, index3, weight0, weight1, weight2, weight3):
        super().__init__(index0)
        self.index1 = index1
        self.index2 = index2
        self.index3 = index3
        self.weight0 = weight0
        self.weight1 = weight1
        self.weight2 = weight2
        self.weight3 = weight3

    def get_idx_list(self):
        return [self.index0, self.index1, self.index2, self.index3]

    def get_weights(self):
        return [self.weight0, self.weight1, self.weight2, self.weight3]

    def set_idx_list(self, idxs):
        self.index0, self.index1, self.index2, self.index3 = idxs

    def __str__(self):
        return "<Bdef4 {0}:{1}, {2}:{3}, {4}:{5}, {6}:{7}>".format(
            self.index0, self.weight0, self.index1, self.weight1, self.index2, self.weight2, self.index3, self.weight3
        )


class Vertex:
    def __init__(self, index, position, normal, uv, extended_uvs, deform, edge_factor):
        self.index = index
        self.position = position
        self.normal = normal
        self.uv = uv
        self.extended_uvs = extended_uvs or []
        self.deform = deform
        self.edge_factor = edge_factor
        # 所属材質INDEX(重複あり)
        self.material_indices = []

    def __str__(self):
        return "<Vertex index:{0}, position:{1}, normal:{2}, deform:{3}>".format(
            self.index, self.position, self.normal, self.deform
        )


class Material:
    def __init__(
        self,
        name,
        english_name,
        diffuse_color,
        alpha,
        specular_factor,
        specular_color,
        ambient_color,
        flag,
        edge_color,
        edge_size,
        texture_index,
        sphere_texture_index,
        sphere_mode,
        toon_sharing_flag,
        toon_texture_index=0,
        comment="",
        vertex_count=0,
    ):
        self.name = name
        self.english_name = english_name
        self.diffuse_color = diffuse_color
        self.alpha = alpha
        self.specular_color = specular_color
        self.specular_factor = specular_factor
        self.ambient_color = ambient_color
        self.flag = flag
        self.edge_color = edge_color
        self.edge_size = edge_size
        self.texture_index = texture_index
        self.sphere_texture_index = sphere_texture_index
        self.sphere_mode = sphere_mode
        self.toon_sharing_flag = toon_sharing_flag
        self.toon_texture_index = toon_texture_index
        self.comment = comment
        self.vertex_count = vertex_count
        self.texture_factor = MVector4D(1, 1, 1, 1)
        self.sphere_texture_factor = MVector4D(1, 1, 1, 1)
        self.toon_texture_factor = MVector4D(1, 1, 1, 1)

    def __str__(self):
        return "<Material name:{0}, diffuse:{1}, alpha:{2}, flag:{3}, texture:{4}, vertex_count:{5}>".format(
            self.name, self.diffuse_color, self.alpha, self.flag, self.texture_index, self.vertex_count
        )


class Texture:
    KIND_COLOR = 0
    KIND_SPHERE = 1
    KIND_TOON = 2

    def __init__(self, name, valid=True, kind=KIND_COLOR):
        self.name = name
        self.valid = valid
        self.kind = kind

    def __str__(self):
        return "<Texture {0}>".format(self.name)


class IkLink:
    def __init__(self, bone_index, limit_angle=0, limit_min=None, limit_max=None):
        self.bone_index = bone_index
        self.limit_angle = limit_angle
        self.limit_min = limit_min or MVector3D()
        self.limit_max = limit_max or MVector3D()


class Ik:
    def __init__(self, target_index, loop, limit_radian, link=None):
        self.target_index = target_index
        self.loop = loop
        self.limit_radian = limit_radian
        self.link = link or []


class Bone:
    def __init__(
        self,
        name,
        english_name,
        position,
        parent_index,
        layer,
        flag,
        tail_position=None,
        tail_index=-1,
        effect_index=-1,
        effect_factor=0.0,
        fixed_axis=None,
        local_x_vector=None,
        local_z_vector=None,
        external_key=-1,
        ik=None,
    ):
        self.name = name
        self.english_name = english_name
        self.position = position
        self.parent_index = parent_index
        self.layer = layer
        self.flag = flag
        self.tail_position = tail_position or MVector3D()
        self.tail_index = tail_index
        self.effect_index = effect_index
        self.effect_factor = effect_factor
        self.fixed_axis = fixed_axis or MVector3D()
        self.local_x_vector = local_x_vector or MVector3D()
        self.local_z_vector = local_z_vector or MVector3D()
        self.external_key = external_key
        self.ik = ik
        self.index = -1
        # 表示枠
        self.display_slot = -1
        # システム用(非表示)ボーン
        self.is_system = False
        # 変換元ノードINDEX
        self.node_index = -1

    def copy(self):
        bone = Bone(
            self.name,
            self.english_name,
            self.position.copy(),
            self.parent_index,
            self.layer,
            self.flag,
            self.tail_position.copy(),
            self.tail_index,
            self.effect_index,
            self.effect_factor,
            self.fixed_axis.copy(),
            self.local_x_vector.copy(),
            self.local_z_vector.copy(),
            self.external_key,
            self.ik,
        )
        bone.index = self.index
        bone.display_slot = self.display_slot
        bone.is_system = self.is_system
        bone.node_index = self.node_index
        return bone

    # 接続先:0:座標オフセットで指定 1:ボーンで指定
    def getConnectionFlag(self):
        return self.flag & 0x0001

    # 回転可能
    def getRotatable(self):
        return self.flag & 0x0002

    # 移動可能
    def getTranslatable(self):
        return self.flag & 0x0004

    # 表示
    def getVisibleFlag(self):
        return self.flag & 0x0008

    # 操作可
    def getManipulatable(self):
        return self.flag & 0x0010

    # IK
    def getIkFlag(self):
        return self.flag & 0x0020

    # 回転付与
    def getExternalRotationFlag(self):
        return self.flag & 0x0100

    # 移動付与
    def getExternalTranslationFlag(self):
        return self.flag & 0x0200

    # 軸固定
    def getFixedAxisFlag(self):
        return self.flag & 0x0400

    # ローカル軸
    def getLocalCoordinateFlag(self):
        return self.flag & 0x0800

    # 外部親変形
    def getExternalParentDeformFlag(self):
        return self.flag & 0x2000

    def __str__(self):
        return "<Bone name:{0}, index:{1}, position:{2}, parent:{3}, layer:{4}, flag:{5}>".format(
            self.name, self.index, self.position, self.parent_index, self.layer, self.flag
        )


# 頂点モーフ
class VertexMorphOffset:
    def __init__(self, vertex_index, position_offset):
        self.vertex_index = vertex_index
        self.position_offset = position_offset


# 材質モーフ
class MaterialMorphData:
    # 演算形式 - 0:乗算, 1:加算
    CALC_MULTIPLY = 0
    CALC_ADD = 1

    def __init__(
        self,
        material_index,
        calc_mode,
        diffuse=None,
        specular=None,
        specular_factor=0.0,
        ambient=None,
        edge_color=None,
        edge_size=0.0,
        texture_factor=None,
        sphere_texture_factor=None,
        toon_texture_factor=None,
    ):
        self.material_index = material_index
        self.calc_mode = calc_mode
        self.diffuse = diffuse or MVector4D()
        self.specular = specular or MVector3D()
        self.specular_factor = specular_factor
        self.ambient = ambient or MVector3D()
        self.edge_color = edge_color or MVector4D()
        self.edge_size = edge_size
        self.texture_factor = texture_factor or MVector4D()
        self.sphere_texture_factor = sphere_texture_factor or MVector4D()
        self.toon_texture_factor = toon_texture_factor or MVector4D()


# ボーンモーフ
class BoneMorphData:
    def __init__(self, bone_index, position, rotation):
        self.bone_index = bone_index
        self.position = position
        self.rotation = rotation


# UVモーフ
class UVMorphData:
    def __init__(self, vertex_index, uv):
        self.vertex_index = vertex_index
        self.uv = uv


# グループモーフ
class GroupMorphData:
    def __init__(self, morph_index, value):
        self.morph_index = morph_index
        self.value = value


class Morph:
    # モーフ種類 - 0:グループ, 1:頂点, 2:ボーン, 3:UV, 4-7:追加UV, 8:材質
    TYPE_GROUP = 0
    TYPE_VERTEX = 1
    TYPE_BONE = 2
    TYPE_UV = 3
    TYPE_MATERIAL = 8

    def __init__(self, name, english_name, panel, morph_type, offsets=None):
        self.index = -1
        self.name = name
        self.english_name = english_name
        self.panel = panel
        self.morph_type = morph_type
        self.offsets = offsets or []
        self.display = False

    def __str__(self):
        return "<Morph name:{0}, panel:{1}, type:{2}, offsets:{3}>".format(
            self.name, self.panel, self.morph_type, len(self.offsets)
        )


class DisplaySlot:
    def __init__(self, name, english_name, special_flag, display_type=0):
        self.name = name
        self.english_name = english_name
        self.special_flag = special_flag
        self.display_type = display_type
        # (0:ボーン 1:モーフ, INDEX)
        self.references = []


class PmxModel:
    def __init__(self):
        self.path = ""
        self.name = ""
        self.english_name = ""
        self.comment = ""
        self.english_comment = ""
        # 追加UV数
        self.extended_uv = 0
        self.vertices = []
        # 面(頂点INDEX×3)
        self.faces = []
        self.textures = []
        self.materials = []
        # ボーン(名前 -> ボーン、並び順=INDEX)
        self.bones = {}
        # ボーンINDEX -> 名前
        self.bone_indexes = {}
        self.morphs = []
        self.display_slots = {}
        self.rigidbodies = {}
        self.joints = {}
        # 変換元 glTF の JSON
        self.json_data = None
        # VRMメタ情報
        self.vrm = None
        # glTF 画像INDEX -> テクスチャINDEX
        self.image_texture_indexes = []

    # ボーン追加(末尾)
    def append_bone(self, bone: Bone):
        if not bone.name:
            raise MModelInvalidException("ボーン名が空です")
        if bone.name in self.bones:
            raise MModelInvalidException("ボーン名が重複しています: {0}".format(bone.name))

        bone.index = len(self.bones)
        self.bones[bone.name] = bone
        self.bone_indexes[bone.index] = bone.name
        return bone.index

    def get_bone_by_index(self, index: int):
        if index in self.bone_indexes:
            return self.bones[self.bone_indexes[index]]
        return None

    # ボーン名変更(並び順は維持)
    def rename_bone(self, old_name: str, new_name: str):
        if old_name not in self.bones:
            raise MModelInvalidException("ボーンが見つかりません: {0}".format(old_name))
        if old_name == new_name:
            return
        if not new_name or new_name in self.bones:
            raise MModelInvalidException("ボーン名が重複しています: {0}".format(new_name))

        self.bones = {(new_name if name == old_name else name): bone for name, bone in self.bones.items()}
        bone = self.bones[new_name]
        bone.name = new_name
        self.bone_indexes[bone.index] = new_name

    # 親が必ず子より前に来るよう、安定に並び替える
    def renumber_bones(self):
        bones = list(self.bones.values())
        placed = set()
        ordered = []

        def place(bone, visiting):
            if bone.index in placed:
                return
            if bone.index in visiting:
                raise MModelInvalidException("ボーンの親子関係が循環しています: {0}".format(bone.name))
            visiting.add(bone.index)
            parent = self.get_bone_by_index(bone.parent_index)
            if parent:
                place(parent, visiting)
            placed.add(bone.index)
            ordered.append(bone)

        for bone in bones:
            place(bone, set())

        index_map = {bone.index: new_index for new_index, bone in enumerate(ordered)}
        if all(old == new for old, new in index_map.items()):
            return index_map

        def remap(idx):
            return index_map.get(idx, idx) if idx >= 0 else idx

        self.bones = {}
        self.bone_indexes = {}
        for new_index, bone in enumerate(ordered):
            bone.index = new_index
            bone.parent_index = remap(bone.parent_index)
            if bone.getConnectionFlag():
                bone.tail_index = remap(bone.tail_index)
            bone.effect_index = remap(bone.effect_index)
            if bone.ik:
                bone.ik.target_index = remap(bone.ik.target_index)
                for link in bone.ik.link:
                    link.bone_index = remap(link.bone_index)
            self.bones[bone.name] = bone
            self.bone_indexes[new_index] = bone.name

        for vertex in self.vertices:
            vertex.deform.set_idx_list([remap(idx) for idx in vertex.deform.get_idx_list()])

        for morph in self.morphs:
            if morph.morph_type == Morph.TYPE_BONE:
                for offset in morph.offsets:
                    offset.bone_index = remap(offset.bone_index)

        for display_slot in self.display_slots.values():
            display_slot.references = [
                (display_type, remap(idx) if display_type == 0 else idx)
                for display_type, idx in display_slot.references
            ]

        return index_map

    def get_morph(self, name: str):
        for morph in self.morphs:
            if morph.name == name:
                return morph
        return None

    def append_morph(self, morph: Morph):
        morph.index = len(self.morphs)
        self.morphs.append(morph)
        return morph.index

    # 材質ごとの面範囲 [開始, 終了)
    def get_material_face_ranges(self):
        ranges = []
        face_start = 0
        for material in self.materials:
            face_end = face_start + material.vertex_count // 3
            ranges.append((face_start, face_end))
            face_start = face_end
        return ranges
