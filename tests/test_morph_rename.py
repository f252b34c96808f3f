# -*- coding: utf-8 -*-
#
from mmd.PmxData import PmxModel, Morph
from module.MOptions import MExportOptions, MProgressEvent
from service.MorphRenameService import MorphRenameService, MORPH_PAIRS, MORPH_EYE, MORPH_OTHER, MORPH_LIP


def create_model(morphs: list):
    model = PmxModel()
    for name, panel in morphs:
        model.append_morph(Morph(name, name, panel, Morph.TYPE_VERTEX))
    return model


def create_options(events=None):
    return MExportOptions("1.00.00", 20, "model.vrm", "model.pmx", progress=events.append if events is not None else None)


def test_rename():
    model = create_model([("Fcl_EYE_Close", 0), ("Fcl_ALL_Joy", 4), ("custom", 4)])

    assert MorphRenameService(model, create_options()).execute() == 2

    assert [morph.name for morph in model.morphs] == ["まばたき", "喜", "custom"]
    assert [morph.panel for morph in model.morphs] == [MORPH_EYE, MORPH_OTHER, 4]
    assert model.morphs[0].english_name == "まばたき"
    assert model.morphs[2].english_name == "custom"


def test_second_run_is_noop():
    model = create_model([("Fcl_EYE_Close", 0), ("Fcl_ALL_Joy", 4), ("custom", 4)])
    MorphRenameService(model, create_options()).execute()

    assert MorphRenameService(model, create_options()).execute() == 0
    assert [morph.name for morph in model.morphs] == ["まばたき", "喜", "custom"]


def test_lowercase_lookup():
    model = create_model([("BLINK", 0)])

    MorphRenameService(model, None).execute()

    assert model.morphs[0].name == "まばたき"
    assert model.morphs[0].panel == MORPH_EYE


def test_duplicate_targets_are_not_renamed():
    model = create_model([("Fcl_EYE_Close", 0), ("blink", 0)])

    MorphRenameService(model, create_options()).execute()

    assert [morph.name for morph in model.morphs] == ["Fcl_EYE_Close", "blink"]


def test_target_held_by_other_morph():
    model = create_model([("Fcl_EYE_Close", 0), ("まばたき", 2)])

    MorphRenameService(model, create_options()).execute()

    assert [morph.name for morph in model.morphs] == ["Fcl_EYE_Close", "まばたき"]
    # パネルは変換表に合わせる
    assert model.morphs[0].panel == MORPH_EYE


def test_identity_pair_sets_panel():
    model = create_model([("あ", 0)])

    assert MorphRenameService(model, create_options()).execute() == 1
    assert model.morphs[0].name == "あ"
    assert model.morphs[0].panel == MORPH_LIP


def test_progress_events():
    events = []
    model = create_model([(f"morph_{n:02}", 4) for n in range(30)])

    MorphRenameService(model, create_options(events)).execute()

    assert [event.event_type for event in events] == [
        MProgressEvent.MORPH_RENAME_PLANNED,
        MProgressEvent.MORPH_RENAME_PROCESSED,
        MProgressEvent.MORPH_RENAME_PROCESSED,
        MProgressEvent.MORPH_RENAME_COMPLETED,
    ]
    assert events[0].params == {"morph_count": 30}
    assert [event.params["morph_count"] for event in events[1:3]] == [25, 5]


def test_no_temporary_names_left():
    model = create_model([(name, 0) for name in list(MORPH_PAIRS.keys())[:40]])

    MorphRenameService(model, create_options()).execute()

    assert all(not morph.name.startswith("__mu_vrm2pmx_morph_tmp_") for morph in model.morphs)
