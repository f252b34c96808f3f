# -*- coding: utf-8 -*-
#

from utils.MLogger import MLogger # noqa

logger = MLogger(__name__)


# 進捗イベント種別
class MProgressEvent:
    INPUT_VALIDATED = "InputValidated"
    OUTPUT_PATH_RESOLVED = "OutputPathResolved"
    MODEL_VALIDATED = "ModelValidated"
    LAYOUT_PREPARED = "LayoutPrepared"
    MODEL_PATH_APPLIED = "ModelPathApplied"
    VROID_MATERIAL_PREPARED = "VroidMaterialPrepared"
    REORDER_COMPLETED = "ReorderCompleted"
    BONE_MAPPING_COMPLETED = "BoneMappingCompleted"
    ASTANCE_COMPLETED = "AStanceCompleted"
    MORPH_RENAME_PLANNED = "MorphRenamePlanned"
    MORPH_RENAME_PROCESSED = "MorphRenameProcessed"
    MORPH_RENAME_COMPLETED = "MorphRenameCompleted"

    def __init__(self, event_type: str, **params):
        self.event_type = event_type
        self.params = params

    def __str__(self):
        return "<MProgressEvent {0} {1}>".format(self.event_type, self.params)


class MExportOptions:

    def __init__(self, version_name: str, logging_level: int, input_path: str, output_path: str, \
                 progress=None, is_file=False, outout_datetime=""):
        self.version_name = version_name
        self.logging_level = logging_level
        self.input_path = input_path
        self.output_path = output_path
        # 進捗受け取り(呼び出し元が指定、同期呼び出し)
        self.progress = progress
        self.is_file = is_file
        self.outout_datetime = outout_datetime

    def report(self, event_type: str, **params):
        if self.progress:
            self.progress(MProgressEvent(event_type, **params))


class MBatchOptions:

    def __init__(self, input_paths: list, output_path=None, output_root=None, dry_run=False, fail_fast=False):
        self.input_paths = input_paths
        self.output_path = output_path
        self.output_root = output_root
        self.dry_run = dry_run
        self.fail_fast = fail_fast
