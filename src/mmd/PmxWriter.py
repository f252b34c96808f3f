# -*- coding: utf-8 -*-
#
import struct
from mmd.PmxData import PmxModel, Vertex, Material, Bone, Morph, DisplaySlot, VertexMorphOffset, GroupMorphData, MaterialMorphData, BoneMorphData, UVMorphData # noqa
from module.MMath import get_effective_value # noqa
from utils.MLogger import MLogger # noqa
from utils.MException import MIoFailedException

logger = MLogger(__name__, level=1)

TYPE_FLOAT = '<f'
TYPE_BYTE = '<b'
TYPE_UNSIGNED_BYTE = '<B'
TYPE_SHORT = '<h'
TYPE_UNSIGNED_SHORT = '<H'
TYPE_INT = '<i'
TYPE_UNSIGNED_INT = '<I'

# ウェイト変形方式 0:BDEF1 1:BDEF2 2:BDEF4
DEFORM_TYPES = {"Bdef1": 0, "Bdef2": 1, "Bdef4": 2}


class PmxWriter:
    def __init__(self):
        self.fout = None
        # INDEX種別毎の (サイズ, pack形式)
        self.vertex_idx = self.texture_idx = self.material_idx = None
        self.bone_idx = self.morph_idx = self.rigidbody_idx = None

    def write(self, pmx: PmxModel, output_path: str):
        try:
            with open(output_path, "wb") as fout:
                self.fout = fout
                self.write_model(pmx)
        except OSError as e:
            raise MIoFailedException("PMX出力に失敗しました: {0} ({1})".format(output_path, e))
        finally:
            self.fout = None

    def write_model(self, pmx: PmxModel):
        self.write_header(pmx)

        self.write_number(TYPE_INT, len(pmx.vertices))
        for vertex in pmx.vertices:
            self.write_vertex(vertex)
        logger.info("-- 頂点データ出力終了(%s)", len(pmx.vertices))

        # 面は頂点INDEXの数で出力
        self.write_number(TYPE_INT, len(pmx.faces) * 3)
        for face in pmx.faces:
            for index in face:
                self.pack(self.vertex_idx[1], index)
        logger.info("-- 面データ出力終了(%s)", len(pmx.faces))

        self.write_number(TYPE_INT, len(pmx.textures))
        for texture in pmx.textures:
            self.write_text(texture.name, "")
        logger.info("-- テクスチャデータ出力終了(%s)", len(pmx.textures))

        self.write_number(TYPE_INT, len(pmx.materials))
        for midx, material in enumerate(pmx.materials):
            self.write_material(midx, material)
        logger.info("-- 材質データ出力終了(%s)", len(pmx.materials))

        self.write_number(TYPE_INT, len(pmx.bones))
        for bidx, bone in enumerate(pmx.bones.values()):
            self.write_bone(bidx, bone)
        logger.info("-- ボーンデータ出力終了(%s)", len(pmx.bones))

        self.write_number(TYPE_INT, len(pmx.morphs))
        for midx, morph in enumerate(pmx.morphs):
            self.write_morph(midx, morph)
        logger.info("-- モーフデータ出力終了(%s)", len(pmx.morphs))

        self.write_number(TYPE_INT, len(pmx.display_slots))
        for didx, display_slot in enumerate(pmx.display_slots.values()):
            self.write_display_slot(didx, display_slot)
        logger.info("-- 表示枠データ出力終了(%s)", len(pmx.display_slots))

        # 剛体・ジョイントは出力しない
        self.write_number(TYPE_INT, len(pmx.rigidbodies))
        self.write_number(TYPE_INT, len(pmx.joints))

    def write_header(self, pmx: PmxModel):
        self.vertex_idx = self.define_vertex_index_size(len(pmx.vertices))
        self.texture_idx = self.define_index_size(len(pmx.textures))
        self.material_idx = self.define_index_size(len(pmx.materials))
        self.bone_idx = self.define_index_size(len(pmx.bones))
        self.morph_idx = self.define_index_size(len(pmx.morphs))
        self.rigidbody_idx = self.define_index_size(len(pmx.rigidbodies))

        # シグニチャ・バージョン
        self.fout.write(b'PMX ')
        self.pack(TYPE_FLOAT, 2.0)
        # 後続するデータ列のバイトサイズ(PMX2.0は 8 で固定)、エンコード方式(0:UTF16)、追加UV数
        for value in (8, 0, pmx.extended_uv):
            self.pack(TYPE_BYTE, value)
        # 頂点・テクスチャ・材質・ボーン・モーフ・剛体のINDEXサイズ
        for idx_size, _ in (self.vertex_idx, self.texture_idx, self.material_idx, self.bone_idx, self.morph_idx, self.rigidbody_idx):
            self.pack(TYPE_BYTE, idx_size)

        self.write_text(pmx.name, "Vrm Model")
        self.write_text(pmx.english_name, "Vrm Model")
        self.write_text(pmx.comment, "")
        self.write_text(pmx.english_comment, "")

    def write_vertex(self, vertex: Vertex):
        self.write_floats(vertex.position.data())
        self.write_floats(vertex.normal.data())
        self.write_floats(vertex.uv.data())
        for uv in vertex.extended_uvs:
            self.write_floats(uv.data())

        deform = vertex.deform
        deform_type = DEFORM_TYPES.get(deform.kind()) if deform else None
        if deform_type is None:
            logger.warning("頂点deformなし: %s", vertex)
            deform_type = 0
            idxs, weights = [0], [1.0]
        else:
            idxs, weights = deform.get_idx_list(), deform.get_weights()

        self.pack(TYPE_BYTE, deform_type)
        for idx in idxs:
            self.pack(self.bone_idx[1], int(idx))
        if deform_type == 1:
            # BDEF2 は1本目のウェイトのみ
            self.write_number(TYPE_FLOAT, weights[0], True)
        elif deform_type == 2:
            self.write_floats(weights, True)

        self.write_number(TYPE_FLOAT, vertex.edge_factor, True)

    def write_material(self, midx: int, material: Material):
        self.write_text(material.name, f"Material {midx}")
        self.write_text(material.english_name, f"Material {midx}")
        # Diffuse(RGBA)・Specular・Specular係数・Ambient
        self.write_floats(list(material.diffuse_color.data()) + [material.alpha], True)
        self.write_floats(material.specular_color.data(), True)
        self.write_number(TYPE_FLOAT, material.specular_factor, True)
        self.write_floats(material.ambient_color.data(), True)
        # 描画フラグ(8bit)
        self.pack(TYPE_UNSIGNED_BYTE, material.flag)
        # エッジ色(RGBA)・エッジサイズ
        self.write_floats(material.edge_color.data(), True)
        self.write_number(TYPE_FLOAT, material.edge_size, True)
        # 通常テクスチャ・スフィアテクスチャ・スフィアモード
        self.pack(self.texture_idx[1], material.texture_index)
        self.pack(self.texture_idx[1], material.sphere_texture_index)
        self.pack(TYPE_BYTE, material.sphere_mode)
        # 共有Toonフラグ 0:個別Toonテクスチャ 1:共有Toon[0～9]
        self.pack(TYPE_BYTE, material.toon_sharing_flag)
        self.pack(self.texture_idx[1] if material.toon_sharing_flag == 0 else TYPE_BYTE, material.toon_texture_index)
        self.write_text(material.comment, "")
        # 材質に対応する面(頂点)数
        self.write_number(TYPE_INT, material.vertex_count)

    def write_bone(self, bidx: int, bone: Bone):
        bone_idx_type = self.bone_idx[1]

        self.write_text(bone.name, f"Bone {bidx}")
        self.write_text(bone.english_name, f"Bone {bidx}")
        self.write_floats(bone.position.data())
        self.pack(bone_idx_type, bone.parent_index)
        # 変形階層
        self.write_number(TYPE_INT, bone.layer, True)
        self.pack(TYPE_UNSIGNED_SHORT, bone.flag)

        if bone.getConnectionFlag():
            # 接続先ボーン
            self.pack(bone_idx_type, bone.tail_index)
        else:
            # 接続先位置(相対)
            self.write_floats(bone.tail_position.data())

        if bone.getExternalRotationFlag() or bone.getExternalTranslationFlag():
            # 付与親・付与率
            self.pack(bone_idx_type, bone.effect_index)
            self.write_number(TYPE_FLOAT, bone.effect_factor)

        if bone.getFixedAxisFlag():
            self.write_floats(bone.fixed_axis.data())

        if bone.getLocalCoordinateFlag():
            self.write_floats(bone.local_x_vector.data())
            self.write_floats(bone.local_z_vector.data())

        if bone.getExternalParentDeformFlag():
            self.write_number(TYPE_INT, bone.external_key)

        if bone.getIkFlag():
            self.pack(bone_idx_type, bone.ik.target_index)
            self.write_number(TYPE_INT, bone.ik.loop)
            # 1回あたりの制限角度(ラジアン)
            self.write_number(TYPE_FLOAT, bone.ik.limit_radian)
            self.write_number(TYPE_INT, len(bone.ik.link))

            for link in bone.ik.link:
                self.pack(bone_idx_type, link.bone_index)
                # 角度制限 0:OFF 1:ON
                self.pack(TYPE_BYTE, int(link.limit_angle))
                if link.limit_angle == 1:
                    self.write_floats(link.limit_min.data())
                    self.write_floats(link.limit_max.data())

    def write_morph(self, midx: int, morph: Morph):
        self.write_text(morph.name, f"Morph {midx}")
        self.write_text(morph.english_name, f"Morph {midx}")
        # 操作パネル 1:眉 2:目 3:口 4:その他 | 0:システム予約
        self.pack(TYPE_BYTE, morph.panel)
        # モーフ種類 0:グループ 1:頂点 2:ボーン 3:UV 8:材質
        self.pack(TYPE_BYTE, morph.morph_type)
        self.write_number(TYPE_INT, len(morph.offsets))

        for offset in morph.offsets:
            if isinstance(offset, VertexMorphOffset):
                self.pack(self.vertex_idx[1], offset.vertex_index)
                self.write_floats(offset.position_offset.data())
            elif isinstance(offset, UVMorphData):
                self.pack(self.vertex_idx[1], offset.vertex_index)
                self.write_floats(offset.uv.data())
            elif isinstance(offset, BoneMorphData):
                self.pack(self.bone_idx[1], offset.bone_index)
                self.write_floats(offset.position.data())
                # クォータニオン x, y, z, w
                self.write_floats([offset.rotation.x(), offset.rotation.y(), offset.rotation.z(), offset.rotation.scalar()])
            elif isinstance(offset, MaterialMorphData):
                self.pack(self.material_idx[1], offset.material_index)
                # 演算形式 0:乗算 1:加算
                self.pack(TYPE_BYTE, int(offset.calc_mode))
                self.write_floats(offset.diffuse.data())
                self.write_floats(offset.specular.data())
                self.write_number(TYPE_FLOAT, offset.specular_factor)
                self.write_floats(offset.ambient.data())
                self.write_floats(offset.edge_color.data())
                self.write_number(TYPE_FLOAT, offset.edge_size)
                self.write_floats(offset.texture_factor.data())
                self.write_floats(offset.sphere_texture_factor.data())
                self.write_floats(offset.toon_texture_factor.data())
            elif isinstance(offset, GroupMorphData):
                self.pack(self.morph_idx[1], offset.morph_index)
                self.write_number(TYPE_FLOAT, offset.value)

    def write_display_slot(self, didx: int, display_slot: DisplaySlot):
        self.write_text(display_slot.name, f"Display {didx}")
        self.write_text(display_slot.english_name, f"Display {didx}")
        # 特殊枠フラグ 0:通常枠 1:特殊枠
        self.pack(TYPE_BYTE, display_slot.special_flag)
        self.write_number(TYPE_INT, len(display_slot.references))

        for display_type, ref_idx in display_slot.references:
            # 要素対象 0:ボーン 1:モーフ
            self.pack(TYPE_BYTE, display_type)
            self.pack(self.bone_idx[1] if display_type == 0 else self.morph_idx[1], ref_idx)

    def define_index_size(self, size: int):
        if 32768 <= size:
            return 4, TYPE_INT
        elif 128 <= size:
            return 2, TYPE_SHORT
        return 1, TYPE_BYTE

    def define_vertex_index_size(self, size: int):
        if 65536 <= size:
            return 4, TYPE_INT
        elif 256 <= size:
            return 2, TYPE_UNSIGNED_SHORT
        return 1, TYPE_UNSIGNED_BYTE

    def pack(self, val_type: str, val):
        self.fout.write(struct.pack(val_type, val))

    def write_text(self, text: str, default_text: str, type=TYPE_INT):
        try:
            btxt = text.encode("utf-16-le")
        except (AttributeError, UnicodeEncodeError):
            btxt = default_text.encode("utf-16-le")
        self.pack(type, len(btxt))
        self.fout.write(btxt)

    def write_floats(self, vals, is_positive_only=False):
        for val in vals:
            self.write_number(TYPE_FLOAT, val, is_positive_only)

    def write_number(self, val_type: str, val: float, is_positive_only=False):
        # 正常な値を強制設定
        val = max(0, get_effective_value(val)) if is_positive_only else get_effective_value(val)
        # INT型の場合、INT変換
        val = int(val) if val_type in [TYPE_INT, TYPE_UNSIGNED_INT] else float(val)

        self.pack(val_type, val)
