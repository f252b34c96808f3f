# -*- coding: utf-8 -*-
#
import math
import os

import numpy as np
from PIL import Image

from mmd.PmxData import PmxModel, Morph
from mmd.VrmData import VrmModel
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)

# 半透明判定
MATERIAL_ALPHA_THRESHOLD = 0.995
TEXTURE_ALPHA_THRESHOLD = 0.05

# ボディ基準
BODY_BONE_NAMES = ["hips", "spine", "chest", "upperchest", "neck"]
BODY_WEIGHT_THRESHOLD = 0.35
BODY_POINT_SAMPLE_LIMIT = 3072
FALLBACK_OPAQUE_MATERIAL_COUNT = 3

# UV透明率の面サンプル上限
UV_FACE_SAMPLE_LIMIT = 1024

# 材質サンプル
MATERIAL_SAMPLE_LIMIT = 192
OVERLAP_POINT_SCALE_RATIO = 0.03
OVERLAP_POINT_DISTANCE_MIN = 0.01
MINIMUM_OVERLAP_SAMPLE_COUNT = 4
MINIMUM_OVERLAP_COVERAGE = 0.05

# 順序判定の閾値
ORDER_SCORE_EPSILON = 1e-6
MINIMUM_ORDER_DELTA = 0.001
TRANSPARENCY_ORDER_DELTA = 0.005
DEPTH_SWITCH_DELTA = 0.085
RELATIVE_NEAR_DELTA = 0.05
ASYMMETRIC_GAP_MIN = 0.30
ASYMMETRIC_MIN_COVERAGE_MAX = 0.50
ASYMMETRIC_HIGH_ALPHA = 0.90
ASYMMETRIC_HIGH_ALPHA_GAP = 0.08
VERY_LOW_COVERAGE = 0.10
BALANCED_COVERAGE_MIN = 0.20
BALANCED_GAP_MAX = 0.03
BALANCED_TRANSPARENCY_DELTA = 0.06
STRONG_OVERLAP_COVERAGE = 0.50
EXACT_TRANSPARENCY_DELTA = 1e-6
TINY_DEPTH_DELTA = 0.02
TINY_DEPTH_FAR_FIRST_COVERAGE = 0.20


class MaterialReorderService:
    def __init__(self, model: PmxModel, vrm: VrmModel, node_bone_indexes: dict):
        self.model = model
        self.vrm = vrm
        self.node_bone_indexes = node_bone_indexes
        # テクスチャINDEX -> アルファ配列(読めなければ None)
        self.texture_alpha_cache = {}

    # 半透明材質の描画順を並べ替える。並び順が変わった場合 True
    def execute(self):
        logger.info("材質並べ替え開始: materials=%s faces=%s", len(self.model.materials), len(self.model.faces))

        if len(self.model.materials) < 2:
            logger.info("-- 材質並べ替えスキップ: 材質が2件未満です")
            return False

        face_ranges = self.model.get_material_face_ranges()
        if not face_ranges or face_ranges[-1][1] != len(self.model.faces):
            logger.warning("材質頂点数と面数が一致しないため、材質並べ替えをスキップします")
            return False

        transparency_scores = {}
        transparent_indexes = []
        for midx, material in enumerate(self.model.materials):
            texture_ratio = self.get_uv_transparent_ratio(midx, face_ranges[midx])
            if material.alpha < MATERIAL_ALPHA_THRESHOLD or (texture_ratio or 0) > 0:
                transparent_indexes.append(midx)
            transparency_scores[midx] = max(1 - material.alpha, texture_ratio or 0)

        body_bone_indexes = self.collect_body_bone_indexes()
        body_material_index = self.detect_body_material_index(body_bone_indexes)
        transparent_indexes = [midx for midx in transparent_indexes if midx != body_material_index]

        if len(transparent_indexes) < 2:
            logger.info("-- 材質並べ替えスキップ: 半透明材質が2件未満です(%s)", len(transparent_indexes))
            return False

        body_points = self.collect_body_points(face_ranges, body_material_index, body_bone_indexes, set(transparent_indexes))
        if len(body_points) == 0:
            logger.warning("ボディ基準点が取得できないため、材質並べ替えをスキップします")
            return False

        new_order = list(range(len(self.model.materials)))
        blocks = split_continuous_blocks(transparent_indexes)
        overlap_threshold = max(calc_diagonal(body_points) * OVERLAP_POINT_SCALE_RATIO, OVERLAP_POINT_DISTANCE_MIN)

        for block in blocks:
            if len(block) < 2:
                continue

            sorted_block = self.sort_block(block, face_ranges, body_points, overlap_threshold, transparency_scores)
            if len(sorted_block) != len(block):
                logger.warning("材質並べ替え結果の件数が一致しないため、ブロックをスキップします: %s", block)
                continue

            logger.debug("ブロック並べ替え: %s -> %s", block, sorted_block)
            for position, midx in zip(block, sorted_block):
                new_order[position] = midx

        if new_order == list(range(len(self.model.materials))):
            logger.info("-- 材質並べ替え終了: 並び順の変更なし(半透明: %s, ブロック: %s)", len(transparent_indexes), len(blocks))
            return False

        self.rebuild_material_order(face_ranges, new_order)

        logger.info("-- 材質並べ替え終了: %s", ", ".join(material.name for material in self.model.materials))

        return True

    # 材質が参照するUV面のテクスチャ透明率(テクスチャが読めなければ None)
    def get_uv_transparent_ratio(self, material_index: int, face_range: tuple):
        alpha_ary = load_texture_alpha(self.model, self.model.materials[material_index].texture_index, self.texture_alpha_cache)
        if alpha_ary is None:
            return None
        return calc_uv_transparent_ratio(self.model, face_range, alpha_ary)

    # 体幹ボーンINDEX
    def collect_body_bone_indexes(self):
        body_bone_indexes = set()
        humanoid = self.vrm.meta.humanoid if self.vrm.meta else {}
        for bone_name in BODY_BONE_NAMES:
            if bone_name in humanoid and humanoid[bone_name] in self.node_bone_indexes:
                body_bone_indexes.add(self.node_bone_indexes[humanoid[bone_name]])
        return body_bone_indexes

    # 体幹ウェイトの合計が最も大きい材質
    def detect_body_material_index(self, body_bone_indexes: set):
        if not body_bone_indexes:
            return -1

        material_scores = [0.0 for _ in range(len(self.model.materials))]
        for vertex in self.model.vertices:
            body_weight = calc_body_weight(vertex, body_bone_indexes)
            if body_weight < BODY_WEIGHT_THRESHOLD:
                continue
            for midx in vertex.material_indices:
                if 0 <= midx < len(material_scores):
                    material_scores[midx] += body_weight

        best_index = -1
        best_score = 0.0
        for midx, score in enumerate(material_scores):
            if score > best_score:
                best_index = midx
                best_score = score

        return best_index

    def collect_body_points(self, face_ranges: list, body_material_index: int, body_bone_indexes: set, transparent_index_set: set):
        if body_material_index >= 0:
            points = self.sample_material_points(face_ranges[body_material_index], BODY_POINT_SAMPLE_LIMIT)
            if len(points) > 0:
                logger.debug("ボディ基準点: 材質 %s", self.model.materials[body_material_index].name)
                return points

        if body_bone_indexes:
            step = len(self.model.vertices) // BODY_POINT_SAMPLE_LIMIT + 1
            points = [
                vertex.position.data() for vertex in self.model.vertices[::step]
                if calc_body_weight(vertex, body_bone_indexes) >= BODY_WEIGHT_THRESHOLD
            ]
            if len(points) > 0:
                logger.debug("ボディ基準点: 体幹ウェイト頂点")
                return np.array(points[:BODY_POINT_SAMPLE_LIMIT], dtype=np.float64)

        # 頂点数の多い不透明材質
        opaque_indexes = [
            midx for midx, material in enumerate(self.model.materials) if material.vertex_count > 0 and midx not in transparent_index_set
        ]
        opaque_indexes = sorted(opaque_indexes, key=lambda midx: (-self.model.materials[midx].vertex_count, midx))

        point_list = []
        for midx in opaque_indexes[:FALLBACK_OPAQUE_MATERIAL_COUNT]:
            point_list.extend(self.sample_material_points(face_ranges[midx], BODY_POINT_SAMPLE_LIMIT - len(point_list)))
            if len(point_list) >= BODY_POINT_SAMPLE_LIMIT:
                break

        logger.debug("ボディ基準点: 不透明材質")
        return np.array(point_list, dtype=np.float64).reshape(-1, 3)

    # 材質の面範囲から等間隔に頂点位置をサンプリング
    def sample_material_points(self, face_range: tuple, limit: int):
        face_start, face_end = face_range
        vertex_indexes = [vidx for face in self.model.faces[face_start:face_end] for vidx in face]
        if not vertex_indexes or limit <= 0:
            return np.zeros((0, 3), dtype=np.float64)

        step = len(vertex_indexes) // limit + 1 if len(vertex_indexes) > limit else 1
        return np.array([self.model.vertices[vidx].position.data() for vidx in vertex_indexes[::step][:limit]], dtype=np.float64)

    def sort_block(self, block: list, face_ranges: list, body_points, overlap_threshold: float, transparency_scores: dict):
        spatial_infos = {}
        for midx in block:
            points = self.sample_material_points(face_ranges[midx], MATERIAL_SAMPLE_LIMIT)
            if len(points) > 0:
                spatial_infos[midx] = MaterialSpatialInfo(points, calc_nearest_distances(points, body_points))

        # 制約: (先, 後) のブロック内位置
        edges = set()
        for left_pos in range(len(block)):
            for right_pos in range(left_pos + 1, len(block)):
                left_midx = block[left_pos]
                right_midx = block[right_pos]
                if left_midx not in spatial_infos or right_midx not in spatial_infos:
                    continue

                left_info = spatial_infos[left_midx]
                right_info = spatial_infos[right_midx]
                left_alpha = transparency_scores[left_midx]
                right_alpha = transparency_scores[right_midx]

                left_first, valid = decide_pair_order_by_overlap(left_info, right_info, overlap_threshold, left_alpha, right_alpha)
                if not valid:
                    left_first, valid = decide_pair_order_by_body_proximity(left_info, right_info, left_alpha, right_alpha)
                if not valid:
                    continue

                edges.add((left_pos, right_pos) if left_first else (right_pos, left_pos))

        return [block[pos] for pos in sort_topological(len(block), edges)]

    # 材質順を入れ替え、面・頂点・材質モーフの参照を付け直す
    def rebuild_material_order(self, face_ranges: list, new_order: list):
        old_materials = self.model.materials
        old_faces = self.model.faces
        old_to_new = {old_index: new_index for new_index, old_index in enumerate(new_order)}

        self.model.materials = [old_materials[old_index] for old_index in new_order]
        self.model.faces = [face for old_index in new_order for face in old_faces[face_ranges[old_index][0]:face_ranges[old_index][1]]]

        for vertex in self.model.vertices:
            vertex.material_indices = sorted(old_to_new.get(midx, midx) for midx in vertex.material_indices)

        for morph in self.model.morphs:
            if morph.morph_type != Morph.TYPE_MATERIAL:
                continue
            for offset in morph.offsets:
                offset.material_index = old_to_new.get(offset.material_index, offset.material_index)


class MaterialSpatialInfo:
    def __init__(self, points, body_distances):
        self.points = points
        self.body_distances = body_distances
        self.min_point = points.min(axis=0)
        self.max_point = points.max(axis=0)
        # 全サンプルのボディ距離中央値
        self.body_score = float(np.median(body_distances))


def calc_body_weight(vertex, body_bone_indexes: set):
    return sum(weight for idx, weight in zip(vertex.deform.get_idx_list(), vertex.deform.get_weights()) if idx in body_bone_indexes)


def calc_diagonal(points):
    if len(points) == 0:
        return 0.0
    return float(np.linalg.norm(points.max(axis=0) - points.min(axis=0)))


# 各点から点群への最短距離
def calc_nearest_distances(points, target_points):
    distances = np.full(len(points), np.inf)
    # メモリ節約のため分割して計算する
    for start in range(0, len(target_points), 1024):
        chunk = target_points[start:(start + 1024)]
        diff = points[:, np.newaxis, :] - chunk[np.newaxis, :, :]
        distances = np.minimum(distances, np.sqrt(np.sum(diff ** 2, axis=2)).min(axis=1))
    return distances


# 連続したINDEXのブロックに分割
def split_continuous_blocks(indexes: list):
    blocks = []
    for idx in sorted(indexes):
        if blocks and blocks[-1][-1] + 1 == idx:
            blocks[-1].append(idx)
        else:
            blocks.append([idx])
    return blocks


# 重なり領域のボディ距離中央値とカバレッジ
def calc_overlap_metrics(left: MaterialSpatialInfo, right: MaterialSpatialInfo, overlap_threshold: float):
    # AABBが離れていれば重ならない
    if np.any(np.maximum(left.min_point, right.min_point) > np.minimum(left.max_point, right.max_point)):
        return None

    left_mask = calc_nearest_distances(left.points, right.points) <= overlap_threshold
    right_mask = calc_nearest_distances(right.points, left.points) <= overlap_threshold
    if np.count_nonzero(left_mask) < MINIMUM_OVERLAP_SAMPLE_COUNT or np.count_nonzero(right_mask) < MINIMUM_OVERLAP_SAMPLE_COUNT:
        return None

    left_coverage = np.count_nonzero(left_mask) / len(left.points)
    right_coverage = np.count_nonzero(right_mask) / len(right.points)
    if min(left_coverage, right_coverage) < MINIMUM_OVERLAP_COVERAGE:
        return None

    return float(np.median(left.body_distances[left_mask])), float(np.median(right.body_distances[right_mask])), left_coverage, right_coverage


# 重なり量・ボディ距離・透明度からペアの順序を決める。(左が先か, 有効か)
def decide_pair_order_by_overlap(left: MaterialSpatialInfo, right: MaterialSpatialInfo, overlap_threshold: float, left_alpha: float, right_alpha: float):
    metrics = calc_overlap_metrics(left, right, overlap_threshold)
    if not metrics:
        return False, False

    left_score, right_score, left_coverage, right_coverage = metrics
    abs_alpha_delta = abs(left_alpha - right_alpha)
    score_delta = abs(left_score - right_score)
    coverage_gap = abs(left_coverage - right_coverage)
    min_coverage = min(left_coverage, right_coverage)

    # 片側だけが重なる
    if coverage_gap >= ASYMMETRIC_GAP_MIN and min_coverage < ASYMMETRIC_MIN_COVERAGE_MAX:
        if abs_alpha_delta >= TRANSPARENCY_ORDER_DELTA:
            low_is_left = left_alpha < right_alpha
            low_score, high_score = (left_score, right_score) if low_is_left else (right_score, left_score)
            low_alpha, high_alpha = (left_alpha, right_alpha) if low_is_left else (right_alpha, left_alpha)

            # 低透明側がかなり遠ければ近い高透明側を先にする
            choose_low = low_score <= high_score + DEPTH_SWITCH_DELTA
            if low_alpha >= ASYMMETRIC_HIGH_ALPHA and high_alpha >= ASYMMETRIC_HIGH_ALPHA and high_alpha - low_alpha >= ASYMMETRIC_HIGH_ALPHA_GAP:
                choose_low = low_score <= high_score

            return (low_is_left if choose_low else not low_is_left), True

        if score_delta >= MINIMUM_ORDER_DELTA:
            return left_score > right_score, True

    # 重なりが極小
    if min_coverage < VERY_LOW_COVERAGE and abs_alpha_delta >= TRANSPARENCY_ORDER_DELTA:
        return left_alpha < right_alpha, True

    # カバレッジが釣り合った中程度の重なり
    if (
        BALANCED_COVERAGE_MIN <= min_coverage < STRONG_OVERLAP_COVERAGE
        and coverage_gap <= BALANCED_GAP_MAX
        and abs_alpha_delta >= BALANCED_TRANSPARENCY_DELTA
    ):
        return left_alpha < right_alpha, True

    # 強い重なりで透明度が同じなら近い方を先
    if abs_alpha_delta <= EXACT_TRANSPARENCY_DELTA and min_coverage >= STRONG_OVERLAP_COVERAGE and score_delta >= MINIMUM_ORDER_DELTA:
        return left_score < right_score, True

    # 深度差が十分あれば遠い方を先
    if score_delta >= DEPTH_SWITCH_DELTA:
        return left_score > right_score, True

    if min_coverage >= STRONG_OVERLAP_COVERAGE and abs_alpha_delta >= TRANSPARENCY_ORDER_DELTA:
        return left_alpha < right_alpha, True

    if score_delta <= ORDER_SCORE_EPSILON:
        return False, False

    if score_delta < TINY_DEPTH_DELTA:
        if min_coverage >= TINY_DEPTH_FAR_FIRST_COVERAGE:
            return left_score > right_score, True
        return left_score < right_score, True

    relative_delta = score_delta / max(abs(left_score), abs(right_score), ORDER_SCORE_EPSILON)
    if relative_delta < RELATIVE_NEAR_DELTA:
        return left_score < right_score, True
    return left_score > right_score, True


# 重なりで決まらないペアはボディへの近さで決める
def decide_pair_order_by_body_proximity(left: MaterialSpatialInfo, right: MaterialSpatialInfo, left_alpha: float, right_alpha: float):
    if not math.isfinite(left.body_score) or not math.isfinite(right.body_score):
        return False, False

    if abs(left.body_score - right.body_score) >= MINIMUM_ORDER_DELTA:
        return left.body_score < right.body_score, True

    if abs(left_alpha - right_alpha) >= TRANSPARENCY_ORDER_DELTA:
        return left_alpha < right_alpha, True

    return False, False


# 元の並び順を優先するトポロジカルソート(循環時は入次数最小から進める)
def sort_topological(node_count: int, edges: set):
    in_degrees = [0 for _ in range(node_count)]
    next_nodes = [[] for _ in range(node_count)]
    for before, after in sorted(edges):
        in_degrees[after] += 1
        next_nodes[before].append(after)

    remaining = list(range(node_count))
    order = []
    while remaining:
        ready = [node for node in remaining if in_degrees[node] == 0]
        if ready:
            node = ready[0]
        else:
            node = min(remaining, key=lambda n: (in_degrees[n], n))
            logger.debug("材質順序制約が循環しているため、%s から再開します", node)

        order.append(node)
        remaining.remove(node)
        for next_node in next_nodes[node]:
            in_degrees[next_node] -= 1

    return order


# テクスチャのアルファ配列(0-1、読めなければ None)
def load_texture_alpha(model: PmxModel, texture_index: int, cache: dict):
    if texture_index < 0 or texture_index >= len(model.textures):
        return None

    if texture_index in cache:
        return cache[texture_index]

    alpha_ary = None
    texture = model.textures[texture_index]
    if texture.valid and texture.name and model.path:
        texture_path = os.path.join(os.path.dirname(os.path.abspath(model.path)), texture.name)
        try:
            with Image.open(texture_path) as image:
                alpha_ary = np.asarray(image.convert("RGBA"))[:, :, 3] / 255
            if alpha_ary.size == 0:
                alpha_ary = None
        except (OSError, ValueError) as e:
            logger.debug("テクスチャ判定失敗: %s (%s)", texture_path, e)

    cache[texture_index] = alpha_ary
    return alpha_ary


# 面の3頂点UVと重心UVをサンプルし、透明(アルファ閾値以下)な割合を返す
def calc_uv_transparent_ratio(model: PmxModel, face_range: tuple, alpha_ary):
    face_start, face_end = face_range
    face_count = face_end - face_start
    if alpha_ary is None or face_count <= 0:
        return 0.0

    step = face_count // UV_FACE_SAMPLE_LIMIT + 1 if face_count > UV_FACE_SAMPLE_LIMIT else 1
    height, width = alpha_ary.shape[:2]

    total_count = 0
    transparent_count = 0
    for face in model.faces[face_start:face_end:step]:
        uvs = [model.vertices[vidx].uv for vidx in face]
        uvs.append((uvs[0] + uvs[1] + uvs[2]) / 3)
        for uv in uvs:
            # glTF の UV は左上原点のため、画像の行にそのまま対応する
            x = int(round(clamp_uv(uv.x()) * (width - 1)))
            y = int(round(clamp_uv(uv.y()) * (height - 1)))
            total_count += 1
            if alpha_ary[y, x] <= TEXTURE_ALPHA_THRESHOLD:
                transparent_count += 1

    if total_count == 0:
        return 0.0

    ratio = transparent_count / total_count
    logger.debug("UV透明率: faces=%s ratio=%.6f samples=%s", face_range, ratio, total_count)
    return ratio


def clamp_uv(value: float):
    if not math.isfinite(value):
        return 0.0
    return min(max(value, 0.0), 1.0)
