# -*- coding: utf-8 -*-
#
import pytest

from mmd.PmxData import PmxModel, Texture, Morph, Bdef1, Bdef2
from service.SceneTransformService import create_conversion
from service.SkeletonBuildService import SkeletonBuildService
from service.MeshBuildService import MeshBuildService, triangulate, normalize_bind_weight, guess_morph_panel, \
    MODE_POINTS, MODE_LINES, MODE_TRIANGLE_STRIP, MODE_TRIANGLE_FAN, MORPH_EYE, MORPH_LIP, MORPH_OTHER


def build_mesh(builder, model=None):
    vrm = builder.create_vrm()
    conversion = create_conversion(vrm.meta)
    model = model or PmxModel()
    node_bone_indexes = SkeletonBuildService(model, vrm, conversion).execute()
    MeshBuildService(model, vrm, conversion, node_bone_indexes).execute()
    return model


def add_triangle(builder, with_normal=True, mode=None, targets=None):
    attributes = {
        "POSITION": builder.add_accessor([[0, 0, 0], [0, 1, 0], [1, 0, 0]], "VEC3"),
        "TEXCOORD_0": builder.add_accessor([[0, 0], [0, 1], [1, 0]], "VEC2"),
    }
    if with_normal:
        attributes["NORMAL"] = builder.add_accessor([[0, 0, 1], [0, 0, 1], [0, 0, 1]], "VEC3")

    primitive = {"attributes": attributes, "indices": builder.add_accessor([0, 1, 2], "SCALAR", component_type=5125), "material": 0}
    if mode is not None:
        primitive["mode"] = mode
    if targets:
        primitive["targets"] = targets
    return primitive


def setup_mesh(glb_builder, vrm_json, primitives_factory):
    glb_builder.json_data = vrm_json([{"name": "Body", "mesh": 0}])
    glb_builder.json_data["materials"] = [{"name": "Body_00_SKIN", "pbrMetallicRoughness": {"baseColorFactor": [1, 1, 1, 1]}}]
    glb_builder.json_data["meshes"] = [{"name": "Body", "primitives": primitives_factory(glb_builder)}]
    return glb_builder


def test_triangle_mesh(glb_builder, vrm_json):
    model = build_mesh(setup_mesh(glb_builder, vrm_json, lambda b: [add_triangle(b)]))

    assert len(model.vertices) == 3
    assert len(model.faces) == 1
    assert len(model.materials) == 1

    material = model.materials[0]
    assert material.name == "Body_00_SKIN"
    assert material.vertex_count == 3
    assert material.alpha == 1.0
    assert material.texture_index == -1

    # 標準プロファイルは X 反転のため面の向きも反転
    assert model.faces[0] == (2, 1, 0)
    assert model.vertices[2].position.x() == pytest.approx(-12.5)
    assert model.vertices[1].position.y() == pytest.approx(12.5)
    assert model.vertices[0].normal.z() == pytest.approx(1)
    assert model.vertices[1].uv.y() == pytest.approx(1)
    assert all(vertex.material_indices == [0] for vertex in model.vertices)
    # スキンなしはノードのボーン
    assert all(isinstance(vertex.deform, Bdef1) and vertex.deform.index0 == 0 for vertex in model.vertices)


@pytest.mark.parametrize("mode", [MODE_POINTS, MODE_LINES])
def test_points_and_lines_skipped(glb_builder, vrm_json, mode):
    model = build_mesh(setup_mesh(glb_builder, vrm_json, lambda b: [add_triangle(b, mode=mode)]))

    assert len(model.faces) == 0
    assert len(model.materials) == 0


def test_missing_normal(glb_builder, vrm_json):
    model = build_mesh(setup_mesh(glb_builder, vrm_json, lambda b: [add_triangle(b, with_normal=False)]))

    assert len(model.faces) == 1
    for vertex in model.vertices:
        assert vertex.normal.data().tolist() == [0, 1, 0]


def test_duplicated_primitive_with_targets(glb_builder, vrm_json):
    def primitives_factory(builder):
        targets = [{"POSITION": builder.add_accessor([[0, 0.1, 0], [0, 0, 0], [0, 0, 0]], "VEC3")}]
        primitive = add_triangle(builder, targets=targets)
        return [primitive, dict(primitive)]

    model = build_mesh(setup_mesh(glb_builder, vrm_json, primitives_factory))

    assert len(model.materials) == 1
    assert len(model.faces) == 1
    # 解決できないターゲット名は変換後名称のモーフを作らない
    assert [morph.name for morph in model.morphs] == ["__vrm_target_m000_t000_target_000", "エッジOFF"]

    morph = model.morphs[0]
    assert morph.name == "__vrm_target_m000_t000_target_000"
    assert morph.morph_type == Morph.TYPE_VERTEX
    assert len(morph.offsets) == 1
    assert morph.offsets[0].position_offset.y() == pytest.approx(1.25)


def test_duplicated_primitive_without_targets_reuses_vertices(glb_builder, vrm_json):
    def primitives_factory(builder):
        primitive = add_triangle(builder)
        return [primitive, dict(primitive)]

    model = build_mesh(setup_mesh(glb_builder, vrm_json, primitives_factory))

    assert len(model.materials) == 2
    assert len(model.faces) == 2
    assert len(model.vertices) == 3
    assert sum(material.vertex_count for material in model.materials) == len(model.faces) * 3
    assert model.vertices[0].material_indices == [0, 1]


def test_skin_deform(glb_builder, vrm_json):
    glb_builder.json_data = vrm_json(
        [{"name": "root", "children": [1, 2, 3]}, {"name": "a", "translation": [0, 1, 0]}, {"name": "b"}, {"name": "Body", "mesh": 0, "skin": 0}]
    )
    glb_builder.json_data["skins"] = [{"joints": [1, 2]}]
    glb_builder.json_data["meshes"] = [
        {
            "primitives": [
                {
                    "attributes": {
                        "POSITION": glb_builder.add_accessor([[0, 0, 0], [0, 1, 0], [1, 0, 0]], "VEC3"),
                        "JOINTS_0": glb_builder.add_accessor([[0, 1, 0, 0], [0, 0, 0, 0], [1, 0, 0, 0]], "VEC4", component_type=5121),
                        "WEIGHTS_0": glb_builder.add_accessor([[0.75, 0.25, 0, 0], [1, 0, 0, 0], [1, 0, 0, 0]], "VEC4"),
                    },
                }
            ]
        }
    ]
    model = build_mesh(glb_builder)

    bone_a = model.bones["a"].index
    bone_b = model.bones["b"].index

    deform = model.vertices[0].deform
    assert isinstance(deform, Bdef2)
    assert deform.get_idx_list() == [bone_a, bone_b]
    assert deform.weight0 == pytest.approx(0.75)

    assert isinstance(model.vertices[1].deform, Bdef1)
    assert model.vertices[1].deform.index0 == bone_a
    assert model.vertices[2].deform.index0 == bone_b

    # material なしはプリミティブ名
    assert model.materials[0].name == "mesh_000_000"


def test_texture_index(glb_builder, vrm_json):
    setup_mesh(glb_builder, vrm_json, lambda b: [add_triangle(b)])
    glb_builder.json_data["materials"][0]["pbrMetallicRoughness"]["baseColorTexture"] = {"index": 0}
    glb_builder.json_data["textures"] = [{"source": 0}]
    glb_builder.json_data["images"] = [{"name": "body", "mimeType": "image/png"}]

    model = PmxModel()
    model.textures = [Texture("tex/body.png")]
    model.image_texture_indexes = [0]

    model = build_mesh(glb_builder, model)

    assert model.materials[0].texture_index == 0


def test_vrm0_expression(glb_builder, vrm_json):
    def primitives_factory(builder):
        targets = [{"POSITION": builder.add_accessor([[0, 0, 0], [0, -0.1, 0], [0, 0, 0]], "VEC3")}]
        primitive = add_triangle(builder, targets=targets)
        primitive["extras"] = {"targetNames": ["Fcl_EYE_Close"]}
        return [primitive]

    setup_mesh(glb_builder, vrm_json, primitives_factory)
    glb_builder.json_data["extensions"]["VRM"]["blendShapeMaster"] = {
        "blendShapeGroups": [
            {"name": "Blink", "presetName": "blink", "binds": [{"mesh": 0, "index": 0, "weight": 100}]},
            {"name": "Half", "binds": [{"mesh": 0, "index": 0, "weight": 50}]},
            {
                "name": "Red",
                "materialValues": [{"materialName": "Body_00_SKIN", "propertyName": "_Color", "targetValue": [1, 0, 0, 1]}],
            },
            {"name": "Empty", "binds": []},
        ]
    }
    model = build_mesh(glb_builder)

    target_morph = model.get_morph("__vrm_target_m000_t000_Fcl_EYE_Close")
    assert target_morph is not None
    assert target_morph.panel == 0

    blink = model.get_morph("Blink")
    assert blink.morph_type == Morph.TYPE_VERTEX
    assert blink.panel == MORPH_EYE
    assert blink.offsets[0].vertex_index == 1
    assert blink.offsets[0].position_offset.y() == pytest.approx(-1.25)

    half = model.get_morph("Half")
    assert half.offsets[0].position_offset.y() == pytest.approx(-0.625)

    red = model.get_morph("Red")
    assert red.morph_type == Morph.TYPE_MATERIAL
    assert red.offsets[0].material_index == 0
    assert red.offsets[0].diffuse.y() == pytest.approx(-1)

    assert model.get_morph("Empty") is None


def test_vrm1_expression(glb_builder, vrm_json):
    def primitives_factory(builder):
        targets = [{"POSITION": builder.add_accessor([[0, 0, 0], [0, 0, 0], [0.1, 0, 0]], "VEC3")}]
        return [add_triangle(builder, targets=targets)]

    glb_builder.json_data = vrm_json([{"name": "Face", "mesh": 0}], version=1)
    glb_builder.json_data["materials"] = [{"name": "Face", "pbrMetallicRoughness": {"baseColorFactor": [1, 1, 1, 1]}}]
    glb_builder.json_data["meshes"] = [{"name": "Face", "primitives": primitives_factory(glb_builder)}]
    glb_builder.json_data["extensions"]["VRMC_vrm"]["expressions"] = {
        "preset": {
            "aa": {
                "morphTargetBinds": [{"node": 0, "index": 0, "weight": 1.0}],
                "materialColorBinds": [{"material": 0, "type": "color", "targetValue": [1, 1, 1, 0.5]}],
            },
        },
        "custom": {"smirk": {"morphTargetBinds": [{"node": 0, "index": 0, "weight": 0.6}], "isBinary": True}},
    }
    model = build_mesh(glb_builder)

    # 頂点・材質の両方があればグループモーフ
    aa = model.get_morph("aa")
    assert aa.morph_type == Morph.TYPE_GROUP
    assert aa.panel == MORPH_LIP
    assert [model.morphs[offset.morph_index].name for offset in aa.offsets] == ["aa__vertex", "aa__material"]

    smirk = model.get_morph("smirk")
    assert smirk.panel == MORPH_OTHER
    # バイナリは 0.5 以上で 1
    assert smirk.offsets[0].position_offset.length() == pytest.approx(1.25)


def test_triangulate():
    assert triangulate([0, 1, 2, 3], MODE_TRIANGLE_STRIP) == [(0, 1, 2), (2, 1, 3)]
    assert triangulate([0, 1, 2, 3], MODE_TRIANGLE_FAN) == [(0, 1, 2), (0, 2, 3)]
    # 縮退面は除外
    assert triangulate([0, 0, 1], 4) == []


def test_normalize_bind_weight():
    assert normalize_bind_weight(100, False) == pytest.approx(1)
    assert normalize_bind_weight(0.3, False) == pytest.approx(0.3)
    assert normalize_bind_weight(-1, False) == 0
    assert normalize_bind_weight(0.3, True) == 0
    assert normalize_bind_weight(60, True) == 1


def test_guess_morph_panel():
    assert guess_morph_panel("blink_L") == MORPH_EYE
    assert guess_morph_panel("ou") == MORPH_LIP
    assert guess_morph_panel("Fcl_BRW_Angry") == MORPH_OTHER
    assert guess_morph_panel("browInnerUp") == 1


def test_canonical_target_morphs(glb_builder, vrm_json):
    def primitives_factory(builder):
        targets = [
            {"POSITION": builder.add_accessor([[0, 0, 0], [0, 0.1, 0], [0, 0, 0]], "VEC3")},
            {"POSITION": builder.add_accessor([[0, 0, 0], [0, 0, 0], [0, -0.1, 0]], "VEC3")},
        ]
        primitive = add_triangle(builder, targets=targets)
        primitive["extras"] = {"targetNames": ["Fcl_ALL_Joy", "Fcl_MTH_A"]}
        return [primitive]

    model = build_mesh(setup_mesh(glb_builder, vrm_json, primitives_factory))

    joy = model.get_morph("喜")
    assert joy.morph_type == Morph.TYPE_VERTEX
    assert joy.panel == MORPH_OTHER
    assert joy.offsets[0].vertex_index == 1
    assert joy.offsets[0].position_offset.y() == pytest.approx(1.25)

    mouth_a = model.get_morph("あ頂点")
    assert mouth_a.panel == 0
    assert mouth_a.offsets[0].vertex_index == 2

    # あ頂点 を束ねる口パネルのグループ
    a = model.get_morph("あ")
    assert a.morph_type == Morph.TYPE_GROUP
    assert a.panel == MORPH_LIP
    assert [(model.morphs[offset.morph_index].name, offset.value) for offset in a.offsets] == [("あ頂点", 1.0)]


def test_canonical_target_merged_across_meshes(glb_builder, vrm_json):
    glb_builder.json_data = vrm_json([{"name": "Face", "mesh": 0}, {"name": "Body", "mesh": 1}])
    glb_builder.json_data["materials"] = [{"name": "Face", "pbrMetallicRoughness": {"baseColorFactor": [1, 1, 1, 1]}}]
    meshes = []
    for _ in range(2):
        primitive = add_triangle(glb_builder, targets=[{"POSITION": glb_builder.add_accessor([[0, 0.1, 0], [0, 0, 0], [0, 0, 0]], "VEC3")}])
        primitive["extras"] = {"targetNames": ["Fcl_EYE_Close"]}
        meshes.append({"primitives": [primitive]})
    glb_builder.json_data["meshes"] = meshes

    model = build_mesh(glb_builder)

    blink = model.get_morph("まばたき")
    assert [offset.vertex_index for offset in blink.offsets] == [0, 3]


def test_expression_has_priority_over_target(glb_builder, vrm_json):
    def primitives_factory(builder):
        targets = [{"POSITION": builder.add_accessor([[0, 0, 0], [0, 0.1, 0], [0, 0, 0]], "VEC3")}]
        primitive = add_triangle(builder, targets=targets)
        primitive["extras"] = {"targetNames": ["Fcl_ALL_Joy"]}
        return [primitive]

    setup_mesh(glb_builder, vrm_json, primitives_factory)
    glb_builder.json_data["extensions"]["VRM"]["blendShapeMaster"] = {
        "blendShapeGroups": [{"name": "Joy", "presetName": "joy", "binds": [{"mesh": 0, "index": 0, "weight": 100}]}]
    }
    model = build_mesh(glb_builder)

    # Joy が 喜 に変換されるため、ターゲット側からは作らない
    assert model.get_morph("Joy") is not None
    assert model.get_morph("喜") is None


def test_vrm1_texture_transform_expression(glb_builder, vrm_json):
    glb_builder.json_data = vrm_json([{"name": "Face", "mesh": 0}], version=1)
    glb_builder.json_data["materials"] = [{"name": "Face", "pbrMetallicRoughness": {"baseColorFactor": [1, 1, 1, 1]}}]
    glb_builder.json_data["meshes"] = [{"name": "Face", "primitives": [add_triangle(glb_builder)]}]
    glb_builder.json_data["extensions"]["VRMC_vrm"]["expressions"] = {
        "custom": {"scroll": {"textureTransformBinds": [{"material": 0, "scale": [1, 1], "offset": [0.5, 0]}]}},
    }
    model = build_mesh(glb_builder)

    scroll = model.get_morph("scroll")
    assert scroll.morph_type == Morph.TYPE_UV
    assert [offset.vertex_index for offset in scroll.offsets] == [0, 1, 2]
    assert all(offset.uv.x() == pytest.approx(0.5) and offset.uv.y() == pytest.approx(0) for offset in scroll.offsets)


def test_vrm0_main_tex_st_expression(glb_builder, vrm_json):
    def primitives_factory(builder):
        targets = [{"POSITION": builder.add_accessor([[0, 0, 0], [0, -0.1, 0], [0, 0, 0]], "VEC3")}]
        return [add_triangle(builder, targets=targets)]

    setup_mesh(glb_builder, vrm_json, primitives_factory)
    glb_builder.json_data["extensions"]["VRM"]["blendShapeMaster"] = {
        "blendShapeGroups": [
            {
                "name": "Tears",
                "binds": [{"mesh": 0, "index": 0, "weight": 100}],
                "materialValues": [{"materialName": "Body_00_SKIN", "propertyName": "_MainTex_ST", "targetValue": [2, 1, 0, 0.25]}],
            }
        ]
    }
    model = build_mesh(glb_builder)

    tears = model.get_morph("Tears")
    assert tears.morph_type == Morph.TYPE_GROUP
    assert [model.morphs[offset.morph_index].name for offset in tears.offsets] == ["Tears__vertex", "Tears__uv"]

    uv_morph = model.get_morph("Tears__uv")
    assert uv_morph.morph_type == Morph.TYPE_UV
    # uv (0, 0), (0, 1), (1, 0) -> du = u * (2 - 1), dv = 0.25
    assert [(offset.uv.x(), offset.uv.y()) for offset in uv_morph.offsets] == [(0, 0.25), (0, 0.25), (1, 0.25)]


def test_alpha_mode_in_material_comment(glb_builder, vrm_json):
    setup_mesh(glb_builder, vrm_json, lambda b: [add_triangle(b)])
    glb_builder.json_data["materials"][0]["alphaMode"] = "mask"

    model = build_mesh(glb_builder)

    assert model.materials[0].comment == "alphaMode=MASK"
