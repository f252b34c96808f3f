# -*- coding: utf-8 -*-
#
import logging
import os
import traceback

from module.MOptions import MExportOptions, MProgressEvent
from mmd.PmxData import PmxModel
from mmd.PmxWriter import PmxWriter
from mmd.VrmData import VrmModel, VRM_VERSION_1
from mmd.VrmReader import VrmReader
from service.SceneTransformService import SceneTransformService, create_conversion
from service.SkeletonBuildService import SkeletonBuildService
from service.OutputLayoutService import OutputLayoutService
from service.MeshBuildService import MeshBuildService
from service.VroidMaterialService import VroidMaterialService
from service.MaterialReorderService import MaterialReorderService
from service.HumanoidMapService import HumanoidMapService, create_display_slots
from service.StanceTransferService import StanceTransferService
from service.MorphRenameService import MorphRenameService
from utils import MFileUtils
from utils.MLogger import MLogger
from utils.MException import SizingException, MExtInvalidException, MFileNotFoundException, MIoFailedException

logger = MLogger(__name__, level=1)

VRM_EXTENSION = ".vrm"


class VrmExportService:
    def __init__(self, options: MExportOptions):
        self.options = options
        self.output_path = options.output_path

    def execute(self):
        logging.basicConfig(level=self.options.logging_level, format="%(message)s [%(module_name)s]")

        try:
            service_data_txt = f"{logger.transtext('Vrm2Pmx処理実行')}\n------------------------\n{logger.transtext('exeバージョン')}: {self.options.version_name}\n"
            service_data_txt = f"{service_data_txt}　{logger.transtext('元モデル')}: {os.path.basename(self.options.input_path)}\n"

            logger.info(service_data_txt, translate=False, decoration=MLogger.DECORATION_BOX)

            vrm = self.load_model()
            model = self.prepare_model(vrm)

            # 最後に出力
            logger.info("PMX出力開始", decoration=MLogger.DECORATION_LINE)

            self.save_model(model)

            logger.info("出力終了: %s", os.path.basename(self.output_path), decoration=MLogger.DECORATION_BOX, title="成功")

            return True
        except SizingException as se:
            logger.error("Vrm2Pmx処理が処理できないデータで終了しました。\n\n%s", str(se), decoration=MLogger.DECORATION_BOX)
            return False
        except Exception:
            logger.critical("Vrm2Pmx処理が意図せぬエラーで終了しました。\n\n%s", traceback.format_exc(), decoration=MLogger.DECORATION_BOX)
            return False

    # 入力検証・出力パス決定・GLB解析
    def load_model(self, input_path=None):
        input_path = input_path or self.options.input_path

        self.run_stage("validate", validate_input_path, input_path)
        self.report(MProgressEvent.INPUT_VALIDATED, path=input_path)

        self.output_path = MFileUtils.get_output_pmx_path(input_path, self.options.output_path)
        self.report(MProgressEvent.OUTPUT_PATH_RESOLVED, path=self.output_path)

        vrm = self.run_stage("decode", VrmReader(input_path).read_data)
        self.run_stage("scene", SceneTransformService(vrm).execute)
        self.report(MProgressEvent.MODEL_VALIDATED, version=vrm.meta.version, profile=vrm.meta.profile)

        logger.info("-- モデル読み込み終了: %s", os.path.basename(input_path))

        return vrm

    # VRM -> PMX 変換(書き込み以外の全段階)
    def prepare_model(self, vrm: VrmModel):
        conversion = create_conversion(vrm.meta)

        model = PmxModel()
        model.json_data = vrm.json_data
        model.vrm = vrm.meta
        self.create_model_info(model, vrm)

        node_bone_indexes = self.run_stage("skeleton", SkeletonBuildService(model, vrm, conversion).execute)

        self.run_stage("layout", OutputLayoutService(model, vrm, vrm.path or self.options.input_path, self.output_path).execute)
        self.report(MProgressEvent.LAYOUT_PREPARED, texture_count=len(model.textures))

        # テクスチャの相対パス解決の基準
        model.path = self.output_path
        self.report(MProgressEvent.MODEL_PATH_APPLIED, path=model.path)

        self.run_stage("mesh", MeshBuildService(model, vrm, conversion, node_bone_indexes).execute)
        vroid_material_service = VroidMaterialService(model)
        self.run_stage("vroid", vroid_material_service.execute)
        self.report(MProgressEvent.VROID_MATERIAL_PREPARED, material_count=len(model.materials))
        self.run_stage("vroid", vroid_material_service.abbreviate_material_names)

        is_reordered = self.run_stage("reorder", MaterialReorderService(model, vrm, node_bone_indexes).execute)
        self.report(MProgressEvent.REORDER_COMPLETED, changed=bool(is_reordered))

        self.run_stage("humanoid", HumanoidMapService(model, vrm).execute)
        self.report(MProgressEvent.BONE_MAPPING_COMPLETED, bone_count=len(model.bones))

        is_transferred = self.run_stage("stance", StanceTransferService(model, vrm).execute)
        self.report(MProgressEvent.ASTANCE_COMPLETED, applied=bool(is_transferred))

        self.run_stage("morph", MorphRenameService(model, self.options).execute)

        self.run_stage("display", create_display_slots, model)

        logger.info(
            "-- 変換終了(頂点: %s, 面: %s, 材質: %s, ボーン: %s, モーフ: %s)",
            len(model.vertices),
            len(model.faces),
            len(model.materials),
            len(model.bones),
            len(model.morphs),
        )

        return model

    def save_model(self, model: PmxModel, output_path=None):
        output_path = output_path or self.output_path or model.path

        try:
            os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
        except OSError as e:
            raise MIoFailedException("出力ディレクトリの作成に失敗しました: {0} ({1})".format(output_path, e), stage="write")

        self.run_stage("write", PmxWriter().write, model, output_path)

        return output_path

    def create_model_info(self, model: PmxModel, vrm: VrmModel):
        extensions = vrm.extensions if isinstance(vrm.extensions, dict) else {}
        vrm1 = extensions.get("VRMC_vrm") if isinstance(extensions.get("VRMC_vrm"), dict) else {}
        vrm0 = extensions.get("VRM") if isinstance(extensions.get("VRM"), dict) else {}

        if vrm.meta and vrm.meta.version == VRM_VERSION_1 and isinstance(vrm1.get("meta"), dict):
            meta = vrm1["meta"]
            model.name = str(meta.get("name", "") or "")
            # VRM1 は作者が配列
            authors = meta.get("authors", [])
            author = ", ".join(str(a) for a in authors) if isinstance(authors, list) else str(authors or "")
            meta_items = [
                ("作者", author),
                ("連絡先", meta.get("contactInformation")),
                ("参照", ", ".join(str(r) for r in meta.get("references", []) or [])),
                ("バージョン", meta.get("version")),
                ("ライセンス", meta.get("licenseUrl")),
            ]
        else:
            meta = vrm0.get("meta") if isinstance(vrm0.get("meta"), dict) else {}
            model.name = str(meta.get("title", "") or "")
            meta_items = [
                ("作者", meta.get("author")),
                ("連絡先", meta.get("contactInformation")),
                ("参照", meta.get("reference")),
                ("バージョン", meta.get("version")),
                ("ライセンス", meta.get("licenseName")),
            ]

        if not model.name:
            # モデル名がない場合、ファイル名を代理入力
            model.name = MFileUtils.get_file_stem(vrm.path or self.options.input_path)
        model.english_name = model.name

        model.comment = f"{logger.transtext('PMX出力')}: Vrm2Pmx {self.options.version_name}\r\n"
        model.comment += f"\r\n{logger.transtext('アバター情報')} -------\r\n"
        for title, value in meta_items:
            if value:
                model.comment += f"{logger.transtext(title)}: {value}\r\n"
        model.english_comment = model.comment

    # 例外に段階名を付けて再送出
    def run_stage(self, stage: str, func, *args):
        try:
            return func(*args)
        except SizingException as se:
            if not se.stage:
                se.stage = stage
            raise se

    def report(self, event_type: str, **params):
        logger.debug("progress: %s %s", event_type, params)
        self.options.report(event_type, **params)


# 拡張子・存在確認
def validate_input_path(input_path: str):
    if not input_path or os.path.splitext(input_path)[1].lower() != VRM_EXTENSION:
        raise MExtInvalidException("VRMファイルではありません: {0}".format(input_path))

    if not os.path.isfile(input_path):
        raise MFileNotFoundException("ファイルが見つかりません: {0}".format(input_path))
