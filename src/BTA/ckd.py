"""
Chronic kidney disease staging.

Defines the CKD stages offered by the form and the stage-specific frequency
overrides for the kidney-function tests (U&Es and CALCIUM).
"""

import typing
from enum import Enum


class CKDStage(Enum):
    """
    Enumeration of the CKD stages a patient can be recorded at.
    Values match the option values of the stage select box.
    """
    STAGE_3A = "3a"
    STAGE_3B = "3b"
    STAGE_4 = "4"
    STAGE_5 = "5"

    @classmethod
    def from_label(cls, label: typing.Union[str, int, "CKDStage"]) -> "CKDStage":
        """
        Convert a stage label into the corresponding enum.
        Accepts '3a', '3A', 'CKD 3a', 'Stage 4', 4 and similar.
        """
        if isinstance(label, CKDStage):
            return label
        key = str(label).strip().lower()
        for prefix in ("ckd", "stage"):
            if key.startswith(prefix):
                key = key[len(prefix):].strip()
        for stage in cls:
            if stage.value == key:
                return stage
        raise ValueError(f"Unknown CKD stage label: {label!r}")

    @property
    def option_label(self) -> str:
        return _OPTION_LABELS[self]


DEFAULT_CKD_STAGE = CKDStage.STAGE_3A

_OPTION_LABELS = {
    CKDStage.STAGE_3A: "CKD 3a (GFR: 45-59)",
    CKDStage.STAGE_3B: "CKD 3b (GFR: 30-44)",
    CKDStage.STAGE_4: "CKD 4 (GFR: 15-29)",
    CKDStage.STAGE_5: "CKD 5 (GFR: <15)",
}


class _NotApplicable:
    """Marker returned when a test has no stage-specific override."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"

    def __bool__(self) -> bool:
        return False


NOT_APPLICABLE = _NotApplicable()

# None means the stage requires no test at all
CKD_STAGE_FREQUENCIES: dict[str, dict[CKDStage, typing.Optional[str]]] = {
    "U&Es": {
        CKDStage.STAGE_3A: "Annually",
        CKDStage.STAGE_3B: "6 monthly",
        CKDStage.STAGE_4: "Every 4-6 months",
        CKDStage.STAGE_5: "3 monthly",
    },
    "CALCIUM": {
        CKDStage.STAGE_3A: None,
        CKDStage.STAGE_3B: "6 monthly",
        CKDStage.STAGE_4: "3 monthly",
        CKDStage.STAGE_5: "Monthly",
    },
}


def resolve_ckd_frequency(
    stage: typing.Union[str, CKDStage], test_name: str
) -> typing.Union[str, None, _NotApplicable]:
    """
    Look up the stage-specific frequency for `test_name`.

    Returns the frequency string, None when the stage needs no test, or
    NOT_APPLICABLE when the test's frequency does not depend on CKD stage and
    the generic rule table should be used instead.
    """
    by_stage = CKD_STAGE_FREQUENCIES.get(test_name)
    if by_stage is None:
        return NOT_APPLICABLE
    return by_stage[CKDStage.from_label(stage)]
