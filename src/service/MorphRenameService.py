# -*- coding: utf-8 -*-
#
from mmd.PmxData import PmxModel
from module.MOptions import MExportOptions, MProgressEvent
from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)

MORPH_RENAME_TEMP_PREFIX = "__mu_vrm2pmx_morph_tmp_"
MORPH_RENAME_PROGRESS_CHUNK_SIZE = 25

# モーフパネル
MORPH_SYSTEM = 0
MORPH_EYEBROW = 1
MORPH_EYE = 2
MORPH_LIP = 3
MORPH_OTHER = 4


class MorphRenameService:
    def __init__(self, model: PmxModel, options: MExportOptions):
        self.model = model
        self.options = options

    def execute(self):
        morphs = self.model.morphs
        target_count = len(morphs)
        mapping_count = len(MORPH_PAIRS)

        self.report(MProgressEvent.MORPH_RENAME_PLANNED, morph_count=target_count)
        logger.info("モーフ名称変換開始(Info): targets=%d mappings=%d", target_count, mapping_count)

        # INDEX -> (変換元名, 変換先名, パネル)
        operations = {}
        found_sources = set()
        for morph in morphs:
            source_name = morph.name.strip()
            if not source_name:
                continue
            pair = find_morph_pair(source_name)
            if not pair:
                continue
            operations[morph.index] = (source_name, pair["name"], pair["panel"])
            found_sources.add(source_name)
        not_found_count = max(0, mapping_count - len(found_sources))

        planned = self.create_rename_plan(operations)

        # 一時名へ退避
        temp_names = {}
        serial = 0
        used_names = set(morph.name for morph in morphs)
        for morph_idx in sorted(idx for idx, can_rename in planned.items() if can_rename):
            temp_name = f"{MORPH_RENAME_TEMP_PREFIX}{serial:03}"
            while temp_name in used_names:
                serial += 1
                temp_name = f"{MORPH_RENAME_TEMP_PREFIX}{serial:03}"
            serial += 1
            used_names.add(temp_name)
            morphs[morph_idx].name = temp_name
            temp_names[morph_idx] = temp_name

        processed_count = renamed_count = unchanged_count = 0
        pending_count = 0
        for morph in morphs:
            processed_count += 1
            pending_count += 1

            changed = False
            if morph.index in operations:
                source_name, target_name, target_panel = operations[morph.index]
                if morph.index in temp_names:
                    if any(m.name == target_name for m in morphs if m.index != morph.index):
                        logger.warning("モーフ名が重複しているため、名称変更しません: %s -> %s", source_name, target_name)
                        morph.name = source_name
                    else:
                        morph.name = target_name
                        changed = True

                if morph.panel != target_panel:
                    morph.panel = target_panel
                    changed = True

                if morph.name == target_name and morph.english_name != target_name:
                    morph.english_name = target_name
                    changed = True

                logger.debug("モーフ名称変換詳細: index=%d source=%s target=%s changed=%s", morph.index, source_name, target_name, changed)

            if changed:
                renamed_count += 1
            else:
                unchanged_count += 1

            if pending_count >= MORPH_RENAME_PROGRESS_CHUNK_SIZE:
                self.flush_progress(pending_count, processed_count, target_count, renamed_count, unchanged_count)
                pending_count = 0

        if pending_count > 0:
            self.flush_progress(pending_count, processed_count, target_count, renamed_count, unchanged_count)

        self.report(MProgressEvent.MORPH_RENAME_COMPLETED)
        logger.info(
            "モーフ名称変換完了: processed=%d renamed=%d unchanged=%d notFound=%d",
            processed_count,
            renamed_count,
            unchanged_count,
            not_found_count,
        )

        return renamed_count

    # 名称変更の可否(同名・変換先重複・変換しないモーフとの衝突は変更しない)
    def create_rename_plan(self, operations: dict):
        planned = {}
        target_indexes = {}
        for morph_idx, (source_name, target_name, _) in operations.items():
            if source_name == target_name:
                planned[morph_idx] = False
                continue
            planned[morph_idx] = True
            target_indexes.setdefault(target_name, []).append(morph_idx)

        for target_name, morph_idxs in target_indexes.items():
            if len(morph_idxs) > 1:
                logger.warning("変換先モーフ名が重複しているため、名称変更しません: %s", target_name)
                for morph_idx in morph_idxs:
                    planned[morph_idx] = False

        for morph_idx, (_, target_name, _) in operations.items():
            if not planned[morph_idx]:
                continue
            for morph in self.model.morphs:
                if morph.name == target_name and morph.index != morph_idx and not planned.get(morph.index, False):
                    planned[morph_idx] = False
                    break

        return planned

    def flush_progress(self, pending_count: int, processed_count: int, target_count: int, renamed_count: int, unchanged_count: int):
        self.report(MProgressEvent.MORPH_RENAME_PROCESSED, morph_count=pending_count)
        logger.info(
            "モーフ名称変換: processed=%d/%d renamed=%d unchanged=%d", processed_count, target_count, renamed_count, unchanged_count
        )

    def report(self, event_type: str, **params):
        if self.options:
            self.options.report(event_type, **params)


MORPH_PAIRS = {
    "Fcl_BRW_Fun_R": {"name": "にこり右", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Fun_L": {"name": "にこり左", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Fun": {"name": "にこり", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Joy_R": {"name": "にこり2右", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Joy_L": {"name": "にこり2左", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Joy": {"name": "にこり2", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Sorrow_R": {"name": "困る右", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Sorrow_L": {"name": "困る左", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Sorrow": {"name": "困る", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Angry_R": {"name": "怒り右", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Angry_L": {"name": "怒り左", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Angry": {"name": "怒り", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Surprised_R": {"name": "驚き右", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Surprised_L": {"name": "驚き左", "panel": MORPH_EYEBROW},
    "Fcl_BRW_Surprised": {"name": "驚き", "panel": MORPH_EYEBROW},
    "browInnerUp_R": {"name": "ひそめる2右", "panel": MORPH_EYEBROW},
    "browInnerUp_L": {"name": "ひそめる2左", "panel": MORPH_EYEBROW},
    "browInnerUp": {"name": "ひそめる2", "panel": MORPH_EYEBROW},
    "browDownRight": {"name": "真面目2右", "panel": MORPH_EYEBROW},
    "browDownLeft": {"name": "真面目2左", "panel": MORPH_EYEBROW},
    "browDown": {"name": "真面目2", "panel": MORPH_EYEBROW},
    "browOuterUpRight": {"name": "はんっ右", "panel": MORPH_EYEBROW},
    "browOuterUpLeft": {"name": "はんっ左", "panel": MORPH_EYEBROW},
    "browOuter": {"name": "はんっ", "panel": MORPH_EYEBROW},
    "Fcl_EYE_Surprised_R": {"name": "びっくり右", "panel": MORPH_EYE},
    "Fcl_EYE_Surprised_L": {"name": "びっくり左", "panel": MORPH_EYE},
    "Fcl_EYE_Surprised": {"name": "びっくり", "panel": MORPH_EYE},
    "Fcl_EYE_Close_R": {"name": "ｳｨﾝｸ２右", "panel": MORPH_EYE},
    "Fcl_EYE_Close_L": {"name": "ウィンク２", "panel": MORPH_EYE},
    "Fcl_EYE_Close": {"name": "まばたき", "panel": MORPH_EYE},
    "Fcl_EYE_Joy_R": {"name": "ウィンク右", "panel": MORPH_EYE},
    "Fcl_EYE_Joy_L": {"name": "ウィンク", "panel": MORPH_EYE},
    "Fcl_EYE_Joy": {"name": "笑い", "panel": MORPH_EYE},
    "Fcl_EYE_Fun_R": {"name": "目を細める右", "panel": MORPH_EYE},
    "Fcl_EYE_Fun_L": {"name": "目を細める左", "panel": MORPH_EYE},
    "Fcl_EYE_Fun": {"name": "目を細める", "panel": MORPH_EYE},
    "raiseEyelid_R": {"name": "下瞼上げ右", "panel": MORPH_EYE},
    "raiseEyelid_L": {"name": "下瞼上げ左", "panel": MORPH_EYE},
    "raiseEyelid": {"name": "下瞼上げ", "panel": MORPH_EYE},
    "eyeSquintRight": {"name": "にんまり右", "panel": MORPH_EYE},
    "eyeSquintLeft": {"name": "にんまり左", "panel": MORPH_EYE},
    "eyeSquint": {"name": "にんまり", "panel": MORPH_EYE},
    "Fcl_EYE_Angry_R": {"name": "ｷﾘｯ右", "panel": MORPH_EYE},
    "Fcl_EYE_Angry_L": {"name": "ｷﾘｯ左", "panel": MORPH_EYE},
    "Fcl_EYE_Angry": {"name": "ｷﾘｯ", "panel": MORPH_EYE},
    "noseSneerRight": {"name": "ｷﾘｯ2右", "panel": MORPH_EYE},
    "noseSneerLeft": {"name": "ｷﾘｯ2左", "panel": MORPH_EYE},
    "noseSneer": {"name": "ｷﾘｯ2", "panel": MORPH_EYE},
    "Fcl_EYE_Sorrow_R": {"name": "じと目右", "panel": MORPH_EYE},
    "Fcl_EYE_Sorrow_L": {"name": "じと目左", "panel": MORPH_EYE},
    "Fcl_EYE_Sorrow": {"name": "じと目", "panel": MORPH_EYE},
    "Fcl_EYE_Spread_R": {"name": "上瞼↑右", "panel": MORPH_EYE},
    "Fcl_EYE_Spread_L": {"name": "上瞼↑左", "panel": MORPH_EYE},
    "Fcl_EYE_Spread": {"name": "上瞼↑", "panel": MORPH_EYE},
    "Fcl_EYE_Natural": {"name": "ナチュラル", "panel": MORPH_EYE},
    "eyeWideRight": {"name": "びっくり2右", "panel": MORPH_EYE},
    "eyeWideLeft": {"name": "びっくり2左", "panel": MORPH_EYE},
    "eyeWide": {"name": "びっくり2", "panel": MORPH_EYE},
    "eyeLookUpRight": {"name": "目上右", "panel": MORPH_EYE},
    "eyeLookUpLeft": {"name": "目上左", "panel": MORPH_EYE},
    "eyeLookUp": {"name": "目上", "panel": MORPH_EYE},
    "eyeLookDownRight": {"name": "目下右", "panel": MORPH_EYE},
    "eyeLookDownLeft": {"name": "目下左", "panel": MORPH_EYE},
    "eyeLookDown": {"name": "目下", "panel": MORPH_EYE},
    "eyeLookInRight": {"name": "目頭広右", "panel": MORPH_EYE},
    "eyeLookInLeft": {"name": "目頭広左", "panel": MORPH_EYE},
    "eyeLookIn": {"name": "目頭広", "panel": MORPH_EYE},
    "eyeLookOutLeft": {"name": "目尻広右", "panel": MORPH_EYE},
    "eyeLookOutRight": {"name": "目尻広左", "panel": MORPH_EYE},
    "eyeLookOut": {"name": "目尻広", "panel": MORPH_EYE},
    "Fcl_EYE_Iris_Hide": {"name": "白目", "panel": MORPH_EYE},
    "Fcl_EYE_Iris_Hide_R": {"name": "白目右", "panel": MORPH_EYE},
    "Fcl_EYE_Iris_Hide_L": {"name": "白目左", "panel": MORPH_EYE},
    "Fcl_EYE_Highlight_Hide": {"name": "ハイライトなし", "panel": MORPH_EYE},
    "Fcl_EYE_Highlight_Hide_R": {"name": "ハイライトなし右", "panel": MORPH_EYE},
    "Fcl_EYE_Highlight_Hide_L": {"name": "ハイライトなし左", "panel": MORPH_EYE},
    "Fcl_MTH_A": {"name": "あ頂点", "panel": MORPH_SYSTEM},
    "Fcl_MTH_I": {"name": "い頂点", "panel": MORPH_SYSTEM},
    "Fcl_MTH_U": {"name": "う頂点", "panel": MORPH_SYSTEM},
    "Fcl_MTH_E": {"name": "え頂点", "panel": MORPH_SYSTEM},
    "Fcl_MTH_O": {"name": "お頂点", "panel": MORPH_SYSTEM},
    "Fcl_MTH_Neutral": {"name": "ん", "panel": MORPH_LIP},
    "Fcl_MTH_Close": {"name": "一文字", "panel": MORPH_LIP},
    "Fcl_MTH_Up": {"name": "口上", "panel": MORPH_LIP},
    "Fcl_MTH_Down": {"name": "口下", "panel": MORPH_LIP},
    "Fcl_MTH_Angry_R": {"name": "Λ右", "panel": MORPH_LIP},
    "Fcl_MTH_Angry_L": {"name": "Λ左", "panel": MORPH_LIP},
    "Fcl_MTH_Angry": {"name": "Λ", "panel": MORPH_LIP},
    "Fcl_MTH_Small": {"name": "うー", "panel": MORPH_LIP},
    "Fcl_MTH_Large": {"name": "口横広げ", "panel": MORPH_LIP},
    "Fcl_MTH_Fun_R": {"name": "にっこり右", "panel": MORPH_LIP},
    "Fcl_MTH_Fun_L": {"name": "にっこり左", "panel": MORPH_LIP},
    "Fcl_MTH_Fun": {"name": "にっこり", "panel": MORPH_LIP},
    "Fcl_MTH_Joy": {"name": "ワ頂点", "panel": MORPH_SYSTEM},
    "Fcl_MTH_Sorrow": {"name": "▲頂点", "panel": MORPH_SYSTEM},
    "Fcl_MTH_Surprised": {"name": "わー頂点", "panel": MORPH_SYSTEM},
    "jawOpen": {"name": "あああ", "panel": MORPH_LIP},
    "jawForward": {"name": "顎前", "panel": MORPH_LIP},
    "jawLeft": {"name": "顎左", "panel": MORPH_LIP},
    "jawRight": {"name": "顎右", "panel": MORPH_LIP},
    "mouthLeft": {"name": "口左", "panel": MORPH_LIP},
    "mouthRight": {"name": "口右", "panel": MORPH_LIP},
    "mouthRollUpper": {"name": "上唇んむー", "panel": MORPH_LIP},
    "mouthRollLower": {"name": "下唇んむー", "panel": MORPH_LIP},
    "mouthShrugUpper": {"name": "上唇むむ", "panel": MORPH_LIP},
    "mouthShrugLower": {"name": "下唇むむ", "panel": MORPH_LIP},
    "mouthShrug": {"name": "むむ", "panel": MORPH_LIP},
    "mouthDimpleRight": {"name": "口幅広右", "panel": MORPH_LIP},
    "mouthDimpleLeft": {"name": "口幅広左", "panel": MORPH_LIP},
    "mouthDimple": {"name": "口幅広", "panel": MORPH_LIP},
    "mouthPressRight": {"name": "薄笑い右", "panel": MORPH_LIP},
    "mouthPressLeft": {"name": "薄笑い左", "panel": MORPH_LIP},
    "mouthPress": {"name": "薄笑い", "panel": MORPH_LIP},
    "mouthSmileRight": {"name": "にやり2右", "panel": MORPH_LIP},
    "mouthSmileLeft": {"name": "にやり2左", "panel": MORPH_LIP},
    "mouthSmile": {"name": "にやり2", "panel": MORPH_LIP},
    "mouthUpperUpRight": {"name": "にひ右", "panel": MORPH_LIP},
    "mouthUpperUpLeft": {"name": "にひ左", "panel": MORPH_LIP},
    "mouthUpperUp": {"name": "にひ", "panel": MORPH_LIP},
    "mouthFrownRight": {"name": "ちっ右", "panel": MORPH_LIP},
    "mouthFrownLeft": {"name": "ちっ左", "panel": MORPH_LIP},
    "mouthFrown": {"name": "ちっ", "panel": MORPH_LIP},
    "mouthLowerDownRight": {"name": "むっ右", "panel": MORPH_LIP},
    "mouthLowerDownLeft": {"name": "むっ左", "panel": MORPH_LIP},
    "mouthLowerDown": {"name": "むっ", "panel": MORPH_LIP},
    "mouthStretchRight": {"name": "ぎりっ右", "panel": MORPH_LIP},
    "mouthStretchLeft": {"name": "ぎりっ左", "panel": MORPH_LIP},
    "mouthStretch": {"name": "ぎりっ", "panel": MORPH_LIP},
    "tongueOut": {"name": "べー", "panel": MORPH_LIP},
    "Fcl_MTH_SkinFung_L": {"name": "肌牙左", "panel": MORPH_LIP},
    "Fcl_MTH_SkinFung_R": {"name": "肌牙右", "panel": MORPH_LIP},
    "Fcl_MTH_SkinFung": {"name": "肌牙", "panel": MORPH_LIP},
    "Fcl_HA_Fung1": {"name": "牙", "panel": MORPH_LIP},
    "Fcl_HA_Fung1_Up_R": {"name": "牙上右", "panel": MORPH_LIP},
    "Fcl_HA_Fung1_Up_L": {"name": "牙上左", "panel": MORPH_LIP},
    "Fcl_HA_Fung1_Up": {"name": "牙上", "panel": MORPH_LIP},
    "Fcl_HA_Fung1_Low_R": {"name": "牙下右", "panel": MORPH_LIP},
    "Fcl_HA_Fung1_Low_L": {"name": "牙下左", "panel": MORPH_LIP},
    "Fcl_HA_Fung1_Low": {"name": "牙下", "panel": MORPH_LIP},
    "Fcl_HA_Fung2_Up": {"name": "ギザ歯上", "panel": MORPH_LIP},
    "Fcl_HA_Fung2_Low": {"name": "ギザ歯下", "panel": MORPH_LIP},
    "Fcl_HA_Fung2": {"name": "ギザ歯", "panel": MORPH_LIP},
    "Fcl_HA_Fung3_Up": {"name": "真ん中牙上", "panel": MORPH_LIP},
    "Fcl_HA_Fung3_Low": {"name": "真ん中牙下", "panel": MORPH_LIP},
    "Fcl_HA_Fung3": {"name": "真ん中牙", "panel": MORPH_LIP},
    "Fcl_HA_Hide": {"name": "歯隠", "panel": MORPH_LIP},
    "Fcl_HA_Short_Up": {"name": "歯短上", "panel": MORPH_LIP},
    "Fcl_HA_Short_Low": {"name": "歯短下", "panel": MORPH_LIP},
    "Fcl_HA_Short": {"name": "歯短", "panel": MORPH_LIP},
    "Fcl_ALL_Neutral": {"name": "ニュートラル", "panel": MORPH_OTHER},
    "Fcl_ALL_Angry": {"name": "怒", "panel": MORPH_OTHER},
    "Fcl_ALL_Fun": {"name": "楽", "panel": MORPH_OTHER},
    "Fcl_ALL_Joy": {"name": "喜", "panel": MORPH_OTHER},
    "Fcl_ALL_Sorrow": {"name": "哀", "panel": MORPH_OTHER},
    "Fcl_ALL_Surprised": {"name": "驚", "panel": MORPH_OTHER},
    "▲ボーン": {"name": "▲ボーン", "panel": MORPH_SYSTEM},
    "▲頂点": {"name": "▲頂点", "panel": MORPH_SYSTEM},
    "あボーン": {"name": "あボーン", "panel": MORPH_SYSTEM},
    "あ頂点": {"name": "あ頂点", "panel": MORPH_SYSTEM},
    "aa": {"name": "あ頂点", "panel": MORPH_SYSTEM},
    "a": {"name": "あ頂点", "panel": MORPH_SYSTEM},
    "いボーン": {"name": "いボーン", "panel": MORPH_SYSTEM},
    "い頂点": {"name": "い頂点", "panel": MORPH_SYSTEM},
    "ih": {"name": "い頂点", "panel": MORPH_SYSTEM},
    "i": {"name": "い頂点", "panel": MORPH_SYSTEM},
    "うボーン": {"name": "うボーン", "panel": MORPH_SYSTEM},
    "う頂点": {"name": "う頂点", "panel": MORPH_SYSTEM},
    "ou": {"name": "う頂点", "panel": MORPH_SYSTEM},
    "u": {"name": "う頂点", "panel": MORPH_SYSTEM},
    "えボーン": {"name": "えボーン", "panel": MORPH_SYSTEM},
    "え頂点": {"name": "え頂点", "panel": MORPH_SYSTEM},
    "ee": {"name": "え頂点", "panel": MORPH_SYSTEM},
    "e": {"name": "え頂点", "panel": MORPH_SYSTEM},
    "おボーン": {"name": "おボーン", "panel": MORPH_SYSTEM},
    "お頂点": {"name": "お頂点", "panel": MORPH_SYSTEM},
    "oh": {"name": "お頂点", "panel": MORPH_SYSTEM},
    "o": {"name": "お頂点", "panel": MORPH_SYSTEM},
    "なごみ材質": {"name": "なごみ材質", "panel": MORPH_SYSTEM},
    "はぁと材質": {"name": "はぁと材質", "panel": MORPH_SYSTEM},
    "はぅ材質": {"name": "はぅ材質", "panel": MORPH_SYSTEM},
    "はちゅ目材質": {"name": "はちゅ目材質", "panel": MORPH_SYSTEM},
    "べーボーン": {"name": "べーボーン", "panel": MORPH_SYSTEM},
    "ぺろりボーン": {"name": "ぺろりボーン", "panel": MORPH_SYSTEM},
    "わーボーン": {"name": "わーボーン", "panel": MORPH_SYSTEM},
    "わー頂点": {"name": "わー頂点", "panel": MORPH_SYSTEM},
    "ウィンクボーン": {"name": "ウィンクボーン", "panel": MORPH_SYSTEM},
    "ウィンク右ボーン": {"name": "ウィンク右ボーン", "panel": MORPH_SYSTEM},
    "ウィンク２ボーン": {"name": "ウィンク２ボーン", "panel": MORPH_SYSTEM},
    "ワボーン": {"name": "ワボーン", "panel": MORPH_SYSTEM},
    "ワ頂点": {"name": "ワ頂点", "panel": MORPH_SYSTEM},
    "星目材質": {"name": "星目材質", "panel": MORPH_SYSTEM},
    "目隠し頂点": {"name": "目隠し頂点", "panel": MORPH_SYSTEM},
    "ｳｨﾝｸ２右ボーン": {"name": "ｳｨﾝｸ２右ボーン", "panel": MORPH_SYSTEM},
    "にこり": {"name": "にこり", "panel": MORPH_EYEBROW},
    "にこり2": {"name": "にこり2", "panel": MORPH_EYEBROW},
    "にこり2右": {"name": "にこり2右", "panel": MORPH_EYEBROW},
    "にこり2左": {"name": "にこり2左", "panel": MORPH_EYEBROW},
    "にこり右": {"name": "にこり右", "panel": MORPH_EYEBROW},
    "にこり左": {"name": "にこり左", "panel": MORPH_EYEBROW},
    "はんっ": {"name": "はんっ", "panel": MORPH_EYEBROW},
    "はんっ右": {"name": "はんっ右", "panel": MORPH_EYEBROW},
    "はんっ左": {"name": "はんっ左", "panel": MORPH_EYEBROW},
    "ひそめ": {"name": "ひそめ", "panel": MORPH_EYEBROW},
    "ひそめる2": {"name": "ひそめる2", "panel": MORPH_EYEBROW},
    "ひそめる2右": {"name": "ひそめる2右", "panel": MORPH_EYEBROW},
    "ひそめる2左": {"name": "ひそめる2左", "panel": MORPH_EYEBROW},
    "ひそめ右": {"name": "ひそめ右", "panel": MORPH_EYEBROW},
    "ひそめ左": {"name": "ひそめ左", "panel": MORPH_EYEBROW},
    "上": {"name": "上", "panel": MORPH_EYEBROW},
    "上右": {"name": "上右", "panel": MORPH_EYEBROW},
    "上左": {"name": "上左", "panel": MORPH_EYEBROW},
    "下": {"name": "下", "panel": MORPH_EYEBROW},
    "下右": {"name": "下右", "panel": MORPH_EYEBROW},
    "下左": {"name": "下左", "panel": MORPH_EYEBROW},
    "右眉右": {"name": "右眉右", "panel": MORPH_EYEBROW},
    "右眉左": {"name": "右眉左", "panel": MORPH_EYEBROW},
    "右眉手前": {"name": "右眉手前", "panel": MORPH_EYEBROW},
    "困る": {"name": "困る", "panel": MORPH_EYEBROW},
    "困る右": {"name": "困る右", "panel": MORPH_EYEBROW},
    "困る左": {"name": "困る左", "panel": MORPH_EYEBROW},
    "左眉右": {"name": "左眉右", "panel": MORPH_EYEBROW},
    "左眉左": {"name": "左眉左", "panel": MORPH_EYEBROW},
    "左眉手前": {"name": "左眉手前", "panel": MORPH_EYEBROW},
    "怒り": {"name": "怒り", "panel": MORPH_EYEBROW},
    "怒り右": {"name": "怒り右", "panel": MORPH_EYEBROW},
    "怒り左": {"name": "怒り左", "panel": MORPH_EYEBROW},
    "眉右": {"name": "眉右", "panel": MORPH_EYEBROW},
    "眉左": {"name": "眉左", "panel": MORPH_EYEBROW},
    "眉手前": {"name": "眉手前", "panel": MORPH_EYEBROW},
    "真面目": {"name": "真面目", "panel": MORPH_EYEBROW},
    "真面目2": {"name": "真面目2", "panel": MORPH_EYEBROW},
    "真面目2右": {"name": "真面目2右", "panel": MORPH_EYEBROW},
    "真面目2左": {"name": "真面目2左", "panel": MORPH_EYEBROW},
    "真面目右": {"name": "真面目右", "panel": MORPH_EYEBROW},
    "真面目左": {"name": "真面目左", "panel": MORPH_EYEBROW},
    "驚き": {"name": "驚き", "panel": MORPH_EYEBROW},
    "驚き右": {"name": "驚き右", "panel": MORPH_EYEBROW},
    "驚き左": {"name": "驚き左", "panel": MORPH_EYEBROW},
    "じと目": {"name": "じと目", "panel": MORPH_EYE},
    "じと目右": {"name": "じと目右", "panel": MORPH_EYE},
    "じと目左": {"name": "じと目左", "panel": MORPH_EYE},
    "なごみ": {"name": "なごみ", "panel": MORPH_EYE},
    "なぬ！": {"name": "なぬ！", "panel": MORPH_EYE},
    "なぬ！右": {"name": "なぬ！右", "panel": MORPH_EYE},
    "なぬ！左": {"name": "なぬ！左", "panel": MORPH_EYE},
    "にんまり": {"name": "にんまり", "panel": MORPH_EYE},
    "にんまり右": {"name": "にんまり右", "panel": MORPH_EYE},
    "にんまり左": {"name": "にんまり左", "panel": MORPH_EYE},
    "はぁと": {"name": "はぁと", "panel": MORPH_EYE},
    "はぅ": {"name": "はぅ", "panel": MORPH_EYE},
    "はちゅ目": {"name": "はちゅ目", "panel": MORPH_EYE},
    "びっくり": {"name": "びっくり", "panel": MORPH_EYE},
    "びっくり2": {"name": "びっくり2", "panel": MORPH_EYE},
    "びっくり2右": {"name": "びっくり2右", "panel": MORPH_EYE},
    "びっくり2左": {"name": "びっくり2左", "panel": MORPH_EYE},
    "びっくり右": {"name": "びっくり右", "panel": MORPH_EYE},
    "びっくり左": {"name": "びっくり左", "panel": MORPH_EYE},
    "まばたき": {"name": "まばたき", "panel": MORPH_EYE},
    "blink": {"name": "まばたき", "panel": MORPH_EYE},
    "まばたき連動": {"name": "まばたき連動", "panel": MORPH_EYE},
    "ウィンク": {"name": "ウィンク", "panel": MORPH_EYE},
    "ウィンク右": {"name": "ウィンク右", "panel": MORPH_EYE},
    "ウィンク右連動": {"name": "ウィンク右連動", "panel": MORPH_EYE},
    "ウィンク連動": {"name": "ウィンク連動", "panel": MORPH_EYE},
    "ウィンク２": {"name": "ウィンク２", "panel": MORPH_EYE},
    "blinkLeft": {"name": "ウィンク２", "panel": MORPH_EYE},
    "blink_l": {"name": "ウィンク２", "panel": MORPH_EYE},
    "ウィンク２連動": {"name": "ウィンク２連動", "panel": MORPH_EYE},
    "ナチュラル": {"name": "ナチュラル", "panel": MORPH_EYE},
    "ハイライトなし": {"name": "ハイライトなし", "panel": MORPH_EYE},
    "ハイライトなし右": {"name": "ハイライトなし右", "panel": MORPH_EYE},
    "ハイライトなし左": {"name": "ハイライトなし左", "panel": MORPH_EYE},
    "上瞼↑": {"name": "上瞼↑", "panel": MORPH_EYE},
    "上瞼↑右": {"name": "上瞼↑右", "panel": MORPH_EYE},
    "上瞼↑左": {"name": "上瞼↑左", "panel": MORPH_EYE},
    "下瞼上げ": {"name": "下瞼上げ", "panel": MORPH_EYE},
    "下瞼上げ2": {"name": "下瞼上げ2", "panel": MORPH_EYE},
    "下瞼上げ2右": {"name": "下瞼上げ2右", "panel": MORPH_EYE},
    "下瞼上げ2左": {"name": "下瞼上げ2左", "panel": MORPH_EYE},
    "下瞼上げ右": {"name": "下瞼上げ右", "panel": MORPH_EYE},
    "下瞼上げ左": {"name": "下瞼上げ左", "panel": MORPH_EYE},
    "星目": {"name": "星目", "panel": MORPH_EYE},
    "白目": {"name": "白目", "panel": MORPH_EYE},
    "白目右": {"name": "白目右", "panel": MORPH_EYE},
    "白目左": {"name": "白目左", "panel": MORPH_EYE},
    "目を細める": {"name": "目を細める", "panel": MORPH_EYE},
    "目を細める右": {"name": "目を細める右", "panel": MORPH_EYE},
    "目を細める左": {"name": "目を細める左", "panel": MORPH_EYE},
    "目上": {"name": "目上", "panel": MORPH_EYE},
    "目上右": {"name": "目上右", "panel": MORPH_EYE},
    "目上左": {"name": "目上左", "panel": MORPH_EYE},
    "目下": {"name": "目下", "panel": MORPH_EYE},
    "目下右": {"name": "目下右", "panel": MORPH_EYE},
    "目下左": {"name": "目下左", "panel": MORPH_EYE},
    "目尻広": {"name": "目尻広", "panel": MORPH_EYE},
    "目尻広右": {"name": "目尻広右", "panel": MORPH_EYE},
    "目尻広左": {"name": "目尻広左", "panel": MORPH_EYE},
    "目頭広": {"name": "目頭広", "panel": MORPH_EYE},
    "目頭広右": {"name": "目頭広右", "panel": MORPH_EYE},
    "目頭広左": {"name": "目頭広左", "panel": MORPH_EYE},
    "瞳大": {"name": "瞳大", "panel": MORPH_EYE},
    "瞳大右": {"name": "瞳大右", "panel": MORPH_EYE},
    "瞳大左": {"name": "瞳大左", "panel": MORPH_EYE},
    "瞳小": {"name": "瞳小", "panel": MORPH_EYE},
    "瞳小2": {"name": "瞳小2", "panel": MORPH_EYE},
    "瞳小2右": {"name": "瞳小2右", "panel": MORPH_EYE},
    "瞳小2左": {"name": "瞳小2左", "panel": MORPH_EYE},
    "瞳小右": {"name": "瞳小右", "panel": MORPH_EYE},
    "瞳小左": {"name": "瞳小左", "panel": MORPH_EYE},
    "笑い": {"name": "笑い", "panel": MORPH_EYE},
    "笑い連動": {"name": "笑い連動", "panel": MORPH_EYE},
    "ｳｨﾝｸ２右": {"name": "ｳｨﾝｸ２右", "panel": MORPH_EYE},
    "blinkRight": {"name": "ｳｨﾝｸ２右", "panel": MORPH_EYE},
    "blink_r": {"name": "ｳｨﾝｸ２右", "panel": MORPH_EYE},
    "ｳｨﾝｸ２右連動": {"name": "ｳｨﾝｸ２右連動", "panel": MORPH_EYE},
    "ｷﾘｯ": {"name": "ｷﾘｯ", "panel": MORPH_EYE},
    "ｷﾘｯ2": {"name": "ｷﾘｯ2", "panel": MORPH_EYE},
    "ｷﾘｯ2右": {"name": "ｷﾘｯ2右", "panel": MORPH_EYE},
    "ｷﾘｯ2左": {"name": "ｷﾘｯ2左", "panel": MORPH_EYE},
    "ｷﾘｯ右": {"name": "ｷﾘｯ右", "panel": MORPH_EYE},
    "ｷﾘｯ左": {"name": "ｷﾘｯ左", "panel": MORPH_EYE},
    "Λ": {"name": "Λ", "panel": MORPH_LIP},
    "Λ右": {"name": "Λ右", "panel": MORPH_LIP},
    "Λ左": {"name": "Λ左", "panel": MORPH_LIP},
    "_mouthPress+CatMouth": {"name": "ω口", "panel": MORPH_LIP},
    "_mouthPress+CatMouth-ex": {"name": "ω口2", "panel": MORPH_LIP},
    "_mouthPress+DuckMouth": {"name": "ω口3", "panel": MORPH_LIP},
    "▲": {"name": "▲", "panel": MORPH_LIP},
    "あ": {"name": "あ", "panel": MORPH_LIP},
    "あああ": {"name": "あああ", "panel": MORPH_LIP},
    "い": {"name": "い", "panel": MORPH_LIP},
    "う": {"name": "う", "panel": MORPH_LIP},
    "うう": {"name": "うう", "panel": MORPH_LIP},
    "mouthPucker": {"name": "うう", "panel": MORPH_LIP},
    "_mouthFunnel+SharpenLips": {"name": "うほっ", "panel": MORPH_LIP},
    "うー": {"name": "うー", "panel": MORPH_LIP},
    "え": {"name": "え", "panel": MORPH_LIP},
    "お": {"name": "お", "panel": MORPH_LIP},
    "ぎりっ": {"name": "ぎりっ", "panel": MORPH_LIP},
    "ぎりっ右": {"name": "ぎりっ右", "panel": MORPH_LIP},
    "ぎりっ左": {"name": "ぎりっ左", "panel": MORPH_LIP},
    "ちっ": {"name": "ちっ", "panel": MORPH_LIP},
    "ちっ右": {"name": "ちっ右", "panel": MORPH_LIP},
    "ちっ左": {"name": "ちっ左", "panel": MORPH_LIP},
    "にこ": {"name": "にこ", "panel": MORPH_LIP},
    "にこ右": {"name": "にこ右", "panel": MORPH_LIP},
    "にこ左": {"name": "にこ左", "panel": MORPH_LIP},
    "にっこり": {"name": "にっこり", "panel": MORPH_LIP},
    "にっこり右": {"name": "にっこり右", "panel": MORPH_LIP},
    "にっこり左": {"name": "にっこり左", "panel": MORPH_LIP},
    "にひ": {"name": "にひ", "panel": MORPH_LIP},
    "にひひ": {"name": "にひひ", "panel": MORPH_LIP},
    "にひひ右": {"name": "にひひ右", "panel": MORPH_LIP},
    "にひひ左": {"name": "にひひ左", "panel": MORPH_LIP},
    "にひ右": {"name": "にひ右", "panel": MORPH_LIP},
    "にひ左": {"name": "にひ左", "panel": MORPH_LIP},
    "にやり2": {"name": "にやり2", "panel": MORPH_LIP},
    "にやり2右": {"name": "にやり2右", "panel": MORPH_LIP},
    "にやり2左": {"name": "にやり2左", "panel": MORPH_LIP},
    "ぷくー": {"name": "ぷくー", "panel": MORPH_LIP},
    "ぷくー右": {"name": "ぷくー右", "panel": MORPH_LIP},
    "ぷくー左": {"name": "ぷくー左", "panel": MORPH_LIP},
    "べー": {"name": "べー", "panel": MORPH_LIP},
    "ぺろり": {"name": "ぺろり", "panel": MORPH_LIP},
    "むっ": {"name": "むっ", "panel": MORPH_LIP},
    "むっ右": {"name": "むっ右", "panel": MORPH_LIP},
    "むっ左": {"name": "むっ左", "panel": MORPH_LIP},
    "むむ": {"name": "むむ", "panel": MORPH_LIP},
    "わー": {"name": "わー", "panel": MORPH_LIP},
    "ん": {"name": "ん", "panel": MORPH_LIP},
    "mouthFunnel": {"name": "んむー", "panel": MORPH_LIP},
    "mouthRoll": {"name": "んむー", "panel": MORPH_LIP},
    "ギザ歯": {"name": "ギザ歯", "panel": MORPH_LIP},
    "ギザ歯上": {"name": "ギザ歯上", "panel": MORPH_LIP},
    "ギザ歯下": {"name": "ギザ歯下", "panel": MORPH_LIP},
    "ワ": {"name": "ワ", "panel": MORPH_LIP},
    "一文字": {"name": "一文字", "panel": MORPH_LIP},
    "上唇むむ": {"name": "上唇むむ", "panel": MORPH_LIP},
    "上唇んむー": {"name": "上唇んむー", "panel": MORPH_LIP},
    "下唇むむ": {"name": "下唇むむ", "panel": MORPH_LIP},
    "下唇んむー": {"name": "下唇んむー", "panel": MORPH_LIP},
    "口上": {"name": "口上", "panel": MORPH_LIP},
    "口下": {"name": "口下", "panel": MORPH_LIP},
    "口右": {"name": "口右", "panel": MORPH_LIP},
    "口左": {"name": "口左", "panel": MORPH_LIP},
    "口幅広": {"name": "口幅広", "panel": MORPH_LIP},
    "口幅広右": {"name": "口幅広右", "panel": MORPH_LIP},
    "口幅広左": {"name": "口幅広左", "panel": MORPH_LIP},
    "口横広げ": {"name": "口横広げ", "panel": MORPH_LIP},
    "口角下げ": {"name": "口角下げ", "panel": MORPH_LIP},
    "口角下げ右": {"name": "口角下げ右", "panel": MORPH_LIP},
    "口角下げ左": {"name": "口角下げ左", "panel": MORPH_LIP},
    "歯短": {"name": "歯短", "panel": MORPH_LIP},
    "歯短上": {"name": "歯短上", "panel": MORPH_LIP},
    "歯短下": {"name": "歯短下", "panel": MORPH_LIP},
    "歯隠": {"name": "歯隠", "panel": MORPH_LIP},
    "牙": {"name": "牙", "panel": MORPH_LIP},
    "牙上": {"name": "牙上", "panel": MORPH_LIP},
    "牙上右": {"name": "牙上右", "panel": MORPH_LIP},
    "牙上左": {"name": "牙上左", "panel": MORPH_LIP},
    "牙下": {"name": "牙下", "panel": MORPH_LIP},
    "牙下右": {"name": "牙下右", "panel": MORPH_LIP},
    "牙下左": {"name": "牙下左", "panel": MORPH_LIP},
    "真ん中牙": {"name": "真ん中牙", "panel": MORPH_LIP},
    "真ん中牙上": {"name": "真ん中牙上", "panel": MORPH_LIP},
    "真ん中牙下": {"name": "真ん中牙下", "panel": MORPH_LIP},
    "肌牙": {"name": "肌牙", "panel": MORPH_LIP},
    "肌牙右": {"name": "肌牙右", "panel": MORPH_LIP},
    "肌牙左": {"name": "肌牙左", "panel": MORPH_LIP},
    "薄笑い": {"name": "薄笑い", "panel": MORPH_LIP},
    "薄笑い右": {"name": "薄笑い右", "panel": MORPH_LIP},
    "薄笑い左": {"name": "薄笑い左", "panel": MORPH_LIP},
    "顎前": {"name": "顎前", "panel": MORPH_LIP},
    "顎右": {"name": "顎右", "panel": MORPH_LIP},
    "顎左": {"name": "顎左", "panel": MORPH_LIP},
    "Edge_Off": {"name": "エッジOFF", "panel": MORPH_OTHER},
    "ニュートラル": {"name": "ニュートラル", "panel": MORPH_OTHER},
    "neutral": {"name": "ニュートラル", "panel": MORPH_OTHER},
    "哀": {"name": "哀", "panel": MORPH_OTHER},
    "sad": {"name": "哀", "panel": MORPH_OTHER},
    "sorrow": {"name": "哀", "panel": MORPH_OTHER},
    "喜": {"name": "喜", "panel": MORPH_OTHER},
    "happy": {"name": "喜", "panel": MORPH_OTHER},
    "joy": {"name": "喜", "panel": MORPH_OTHER},
    "怒": {"name": "怒", "panel": MORPH_OTHER},
    "angry": {"name": "怒", "panel": MORPH_OTHER},
    "楽": {"name": "楽", "panel": MORPH_OTHER},
    "relaxed": {"name": "楽", "panel": MORPH_OTHER},
    "fun": {"name": "楽", "panel": MORPH_OTHER},
    "Cheek_Dye": {"name": "照れ", "panel": MORPH_OTHER},
    "驚": {"name": "驚", "panel": MORPH_OTHER},
    "surprised": {"name": "驚", "panel": MORPH_OTHER},
    "surpriosed": {"name": "驚", "panel": MORPH_OTHER},
}


# モーフ名の変換対応(完全一致 -> 小文字一致)
def find_morph_pair(morph_name: str):
    source_name = (morph_name or "").strip()
    if not source_name:
        return None
    return MORPH_PAIRS.get(source_name) or MORPH_PAIRS.get(source_name.lower())
