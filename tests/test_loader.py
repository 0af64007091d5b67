import pandas as pd
import pytest
from stairval.notepad import create_notepad

from BTA.ckd import CKDStage
from BTA.loader import (
    _to_bool,
    load_sheets_as_tables,
    load_snapshots_from_workbook,
    map_patient_table,
)


@pytest.fixture
def patient_workbook(tmp_path):
    # build a tiny Excel with form-style headers
    df = pd.DataFrame({
        "Conditions": [
            "Atrial Fibrillation; Hypertension",
            "Chronic Kidney Disease | Mental Health",
            "Gout",
        ],
        "On DOAC": [True, False, False],
        "Is On Lithium?": ["no", "yes", ""],
        "CKD Stage": ["3a", "4", "7"],
    }, index=pd.Index(["PAT1", "PAT2", "PAT3"], name="patient_id"))
    path = tmp_path / "patients.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        df.to_excel(w, sheet_name="patients")
    return str(path)


def test_headers_are_normalized(patient_workbook):
    tables = load_sheets_as_tables(patient_workbook)
    df = tables["patients"]
    assert {"diseases", "on_doac", "on_lithium", "ckd_stage"}.issubset(df.columns)


def test_load_snapshots(patient_workbook, knowledge_base):
    notepad = create_notepad("loader-test")
    snapshots = load_snapshots_from_workbook(
        patient_workbook, notepad, known_diseases=knowledge_base.disease_names
    )
    assert list(snapshots) == ["PAT1", "PAT2", "PAT3"]

    first = snapshots["PAT1"]
    assert first.selected_diseases == frozenset({"Atrial Fibrillation", "Hypertension"})
    assert first.on_doac is True
    assert first.on_lithium is False

    second = snapshots["PAT2"]
    assert second.selected_diseases == frozenset({"Chronic Kidney Disease", "Mental Health"})
    assert second.on_lithium is True
    assert second.ckd_stage is CKDStage.STAGE_4

    # unknown stage falls back to the default; unknown disease kept but flagged
    third = snapshots["PAT3"]
    assert third.ckd_stage is CKDStage.STAGE_3A
    assert third.selected_diseases == frozenset({"Gout"})

    assert not notepad.has_errors(include_subsections=True)
    warnings = [w.message for w in notepad.warnings()]
    assert any("Gout" in w for w in warnings)
    assert any("'7'" in w for w in warnings)


def test_missing_diseases_column_is_an_error():
    notepad = create_notepad("loader-test")
    df = pd.DataFrame({"on_doac": [True]}, index=["PAT1"])
    assert map_patient_table(df, notepad) == {}
    assert notepad.has_errors(include_subsections=True)


def test_numeric_stage_from_excel():
    notepad = create_notepad("loader-test")
    df = pd.DataFrame({"diseases": ["Chronic Kidney Disease"], "ckd_stage": [5.0]}, index=["PAT1"])
    snapshots = map_patient_table(df, notepad)
    assert snapshots["PAT1"].ckd_stage is CKDStage.STAGE_5


def test_empty_cells_use_defaults():
    notepad = create_notepad("loader-test")
    df = pd.DataFrame({"diseases": [float("nan")], "on_metformin": [float("nan")]}, index=["PAT1"])
    snapshot = map_patient_table(df, notepad)["PAT1"]
    assert snapshot.selected_diseases == frozenset()
    assert snapshot.on_metformin is False
    assert snapshot.ckd_stage is CKDStage.STAGE_3A


def test_to_bool_truth_table():
    for t in [1, "1", "true", "TRUE", "Yes", "y", True]:
        assert _to_bool(t) is True
    for f in [0, "0", "false", "no", "", None, False, float("nan")]:
        assert _to_bool(f) is False


def test_path_unsafe_patient_ids_are_replaced():
    notepad = create_notepad("loader-test")
    df = pd.DataFrame({"diseases": ["Hypertension", "Asthma"]}, index=["NHS/123", "../x"])
    snapshots = map_patient_table(df, notepad)

    assert list(snapshots) == ["NHS_123", ".._x"]
    assert not notepad.has_errors(include_subsections=True)
    warnings = [w.message for w in notepad.warnings()]
    assert any("'NHS/123'" in w and "'NHS_123'" in w for w in warnings)


def test_conditions_and_diseases_headers_together_are_an_error(tmp_path):
    df = pd.DataFrame({
        "Conditions": ["Hypertension"],
        "Diseases": ["Asthma"],
    }, index=pd.Index(["PAT1"], name="patient_id"))
    path = tmp_path / "both.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        df.to_excel(w, sheet_name="patients")

    notepad = create_notepad("loader-test")
    assert load_snapshots_from_workbook(str(path), notepad) == {}
    errors = [e.message for e in notepad.errors()]
    assert any("'diseases'" in e and "more than once" in e for e in errors)
