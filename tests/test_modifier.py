import pytest
from BTA.modifier import MODIFIER_ANNOTATIONS, ModifierKey, annotate


def test_modifier_key_from_label():
    assert ModifierKey.from_label("on_doac") is ModifierKey.ON_DOAC
    assert ModifierKey.from_label("isOnDOAC") is ModifierKey.ON_DOAC
    assert ModifierKey.from_label("isOnLithium") is ModifierKey.ON_LITHIUM
    assert ModifierKey.from_label("On Metformin") is ModifierKey.ON_METFORMIN
    assert ModifierKey.from_label("ckdStage") is ModifierKey.CKD_STAGE
    assert ModifierKey.from_label("ckd-stage") is ModifierKey.CKD_STAGE


def test_modifier_key_invalid_label_raises():
    with pytest.raises(ValueError):
        ModifierKey.from_label("on_warfarin")


def test_annotations_cover_boolean_modifiers():
    assert set(MODIFIER_ANNOTATIONS) == {ModifierKey.ON_DOAC, ModifierKey.ON_LITHIUM, ModifierKey.ON_METFORMIN}


def test_annotate():
    assert annotate("Atrial Fibrillation", ModifierKey.ON_DOAC) == "Atrial Fibrillation (on DOAC)"
    assert annotate("Mental Health", ModifierKey.ON_LITHIUM) == "Mental Health (on Lithium)"
    assert annotate("Chronic Kidney Disease", ModifierKey.CKD_STAGE) == "Chronic Kidney Disease"
