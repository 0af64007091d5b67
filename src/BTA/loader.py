import logging
import re
import typing

import pandas as pd
from stairval.notepad import Notepad

from .ckd import CKDStage, DEFAULT_CKD_STAGE
from .snapshot import ClinicalInputSnapshot

logger = logging.getLogger(__name__)

# Columns that need renaming → snapshot fields
RENAME_MAP = {
    "conditions": "diseases",
    "disease": "diseases",
    "doac": "on_doac",
    "is_on_doac": "on_doac",
    "lithium": "on_lithium",
    "is_on_lithium": "on_lithium",
    "metformin": "on_metformin",
    "is_on_metformin": "on_metformin",
    "stage": "ckd_stage",
}

KNOWN_SHEET_ALIASES = {"patients", "patient", "snapshots"}
DISEASE_SEPARATORS = re.compile(r"[;|,\n]")
# patient IDs become output file names
UNSAFE_ID_CHARS = re.compile(r"[^\w.-]")


def load_sheets_as_tables(workbook_path: str) -> dict[str, pd.DataFrame]:
    """
    Read each worksheet into a DataFrame:
      - first row = header
      - first column = index (patient identifier)
      - normalize all headers to snake_case lowercase
      - apply renames from RENAME_MAP
    """
    excel = pd.ExcelFile(workbook_path, engine="openpyxl")
    tables: dict[str, pd.DataFrame] = {}

    for sheet_name in excel.sheet_names:
        df = pd.read_excel(
            excel, sheet_name=sheet_name, header=0, index_col=0, engine="openpyxl"
        )

        df.columns = (
            df.columns.astype(str).str.strip()
            .str.replace(r"\s*\(.*?\)", "", regex=True)  # drop any "(…)"
            .str.replace(r"[\s\-]+", "_", regex=True)  # spaces/dashes → underscore
            .str.replace(":", "", regex=False)
            .str.replace("?", "", regex=False)
            .str.lower()
        )
        df = df.rename(
            columns={
                orig: target
                for orig, target in RENAME_MAP.items()
                if orig in df.columns
            }
        )
        tables[sheet_name] = df

    return tables


def choose_patient_table(tables: dict[str, pd.DataFrame]) -> typing.Optional[pd.DataFrame]:
    """Prefer a sheet named like 'patients', else the first sheet."""
    for sheet_name, df in tables.items():
        if sheet_name.strip().casefold() in KNOWN_SHEET_ALIASES:
            return df
    for df in tables.values():
        return df
    return None


def _to_bool(value: typing.Any) -> bool:
    """
    - True for: 1, '1', 'true', 't', 'yes', 'y' (case-insensitive)
    - False for: 0, '0', 'false', 'f', 'no', 'n', '', None, NaN
    """
    if isinstance(value, bool):
        return value
    if value is None or pd.isna(value):
        return False
    s = str(value).strip().lower()
    if s in {"1", "1.0", "true", "t", "yes", "y"}:
        return True
    if s in {"0", "0.0", "false", "f", "no", "n", ""}:
        return False
    return bool(value)


def _split_diseases(value: typing.Any) -> list[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return []
    return [name.strip() for name in DISEASE_SEPARATORS.split(str(value)) if name.strip()]


def _parse_stage(value: typing.Any, patient_id: str, notepad: Notepad) -> CKDStage:
    if value is None or (not isinstance(value, str) and pd.isna(value)) or str(value).strip() == "":
        return DEFAULT_CKD_STAGE
    # Excel hands back 4 as 4.0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        return CKDStage.from_label(value)
    except ValueError as e:
        notepad.add_warning(f"Patient {patient_id!r}: {e}; using CKD {DEFAULT_CKD_STAGE.value}")
        return DEFAULT_CKD_STAGE


def _safe_patient_id(value: typing.Any, notepad: Notepad) -> str:
    raw = str(value).strip()
    safe = UNSAFE_ID_CHARS.sub("_", raw)
    if safe != raw:
        notepad.add_warning(f"Patient {raw!r}: ID contains path-unsafe characters; using {safe!r}")
    return safe


def map_patient_table(
    df: pd.DataFrame,
    notepad: Notepad,
    known_diseases: typing.Optional[typing.Collection[str]] = None,
) -> dict[str, ClinicalInputSnapshot]:
    """
    Map each row of a patient sheet to a ClinicalInputSnapshot keyed by patient ID.
    Required column: diseases. Optional: on_doac, on_lithium, on_metformin, ckd_stage.
    Unknown disease names are reported as warnings but kept in the snapshot.
    Patient IDs have path-unsafe characters replaced by '_', with a warning.
    """
    snapshots: dict[str, ClinicalInputSnapshot] = {}
    if "diseases" not in df.columns:
        notepad.add_error(f"Missing required column 'diseases'; found {sorted(df.columns)}")
        return snapshots

    duplicated = sorted(set(df.columns[df.columns.duplicated()]))
    if duplicated:
        notepad.add_error(
            f"Columns {duplicated} appear more than once after header normalization"
            " (e.g. both 'Conditions' and 'Diseases'); keep only one of each"
        )
        return snapshots

    for index, row in df.iterrows():
        patient_id = _safe_patient_id(index, notepad)
        diseases = _split_diseases(row.get("diseases"))
        if known_diseases is not None:
            for name in diseases:
                if name not in known_diseases:
                    notepad.add_warning(f"Patient {patient_id!r}: unknown condition {name!r}")

        if patient_id in snapshots:
            notepad.add_warning(f"Patient {patient_id!r} appears more than once; keeping the last row")

        snapshots[patient_id] = ClinicalInputSnapshot(
            selected_diseases=frozenset(diseases),
            on_doac=_to_bool(row.get("on_doac")),
            on_lithium=_to_bool(row.get("on_lithium")),
            on_metformin=_to_bool(row.get("on_metformin")),
            ckd_stage=_parse_stage(row.get("ckd_stage"), patient_id, notepad),
        )
        logger.debug("Row %s → %s", patient_id, snapshots[patient_id])

    return snapshots


def load_snapshots_from_workbook(
    workbook_path: str,
    notepad: Notepad,
    known_diseases: typing.Optional[typing.Collection[str]] = None,
) -> dict[str, ClinicalInputSnapshot]:
    tables = load_sheets_as_tables(workbook_path)
    logger.debug("Loaded sheets: %s", list(tables))
    df = choose_patient_table(tables)
    if df is None:
        notepad.add_error(f"Workbook {workbook_path!r} has no sheets")
        return {}
    return map_patient_table(df, notepad, known_diseases)
