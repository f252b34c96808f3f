# -*- coding: utf-8 -*-
#

from module.MMath import MVector3D
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=MLogger.DEBUG)

VRM_VERSION_0 = 0
VRM_VERSION_1 = 1

PROFILE_STANDARD = "standard"
PROFILE_VROID = "vroid"


class VrmModel:
    def __init__(self):
        self.path = ''
        # GLB の JSON チャンク(生バイト列とデコード結果)
        self.json_bytes = b''
        self.json_data = {}
        # GLB の BIN チャンク(なければ None)
        self.bin_data = None
        # アクセサ読み込みキャッシュ(変換1回分)
        self.accessor_cache = {}
        # シーン情報
        self.node_parents = []
        self.node_matrixes = []
        self.node_positions = []
        self.meta = None

    def get(self, key):
        value = self.json_data.get(key) if isinstance(self.json_data, dict) else None
        if value is None:
            return [] if key not in ("asset", "extensions") else {}
        return value

    @property
    def nodes(self):
        return self.get("nodes")

    @property
    def meshes(self):
        return self.get("meshes")

    @property
    def accessors(self):
        return self.get("accessors")

    @property
    def buffer_views(self):
        return self.get("bufferViews")

    @property
    def materials(self):
        return self.get("materials")

    @property
    def textures(self):
        return self.get("textures")

    @property
    def images(self):
        return self.get("images")

    @property
    def skins(self):
        return self.get("skins")

    @property
    def extensions(self):
        return self.get("extensions")


class VrmMeta:
    def __init__(self):
        self.version = VRM_VERSION_0
        self.profile = PROFILE_STANDARD
        self.generator = ""
        self.exporter_version = ""
        # humanoid ボーン名(小文字) -> ノードINDEX
        self.humanoid = {}
        # 拡張JSON(キー毎)
        self.extensions = {}

    def is_vroid(self):
        return self.profile == PROFILE_VROID

    def __str__(self):
        return "<VrmMeta version:{0}, profile:{1}, generator:{2}, exporter:{3}, humanoid:{4}>".format(
            self.version, self.profile, self.generator, self.exporter_version, len(self.humanoid)
        )


# 座標変換情報
class VrmConversion:
    def __init__(self, scale, axis):
        self.scale = scale
        self.axis = axis
        self.reverse_winding = (axis[0] * axis[1] * axis[2]) < 0

    # glTF 座標(m) -> MMD 座標
    def convert_position(self, v):
        x, y, z = v.data() if isinstance(v, MVector3D) else v[:3]
        return MVector3D(x * self.scale * self.axis[0], y * self.scale * self.axis[1], z * self.scale * self.axis[2])

    # 法線は軸反転のみ
    def convert_normal(self, v):
        x, y, z = v.data() if isinstance(v, MVector3D) else v[:3]
        return MVector3D(x * self.axis[0], y * self.axis[1], z * self.axis[2]).normalized()

    def __str__(self):
        return "<VrmConversion scale:{0}, axis:{1}, reverse_winding:{2}>".format(self.scale, self.axis, self.reverse_winding)
