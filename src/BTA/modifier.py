"""
Modifier domain model.

Defines the patient-specific modifiers (medication status, CKD stage) that
condition which frequency rule applies, and the annotation each one adds to a
disease label.
"""

import re
from enum import Enum


class ModifierKey(Enum):
    """
    Enumeration of clinical modifiers a disease question can set.
    Keys are shared by every modifier-conditioned rule in the knowledge base.
    """
    ON_DOAC = "on_doac"
    ON_LITHIUM = "on_lithium"
    ON_METFORMIN = "on_metformin"
    CKD_STAGE = "ckd_stage"

    @classmethod
    def from_label(cls, label: str) -> "ModifierKey":
        """
        Convert a human-readable label into the corresponding enum.
        Accepts snake_case, spaced or dashed labels and the camelCase form
        used by the web form (e.g. 'isOnDOAC').
        """
        key = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", label.strip())
        key = re.sub(r"[\s\-]+", "_", key).lower()
        if key.startswith("is_"):
            key = key[3:]
        mapping = {
            "on_doac": cls.ON_DOAC,
            "doac": cls.ON_DOAC,
            "on_lithium": cls.ON_LITHIUM,
            "lithium": cls.ON_LITHIUM,
            "on_metformin": cls.ON_METFORMIN,
            "metformin": cls.ON_METFORMIN,
            "ckd_stage": cls.CKD_STAGE,
            "stage": cls.CKD_STAGE,
        }
        try:
            return mapping[key]
        except KeyError:
            raise ValueError(f"Unknown modifier label: {label!r}")


# Text appended in parentheses to a disease label when the modifier's
# true-branch frequency is used.
MODIFIER_ANNOTATIONS: dict[ModifierKey, str] = {
    ModifierKey.ON_DOAC: "on DOAC",
    ModifierKey.ON_LITHIUM: "on Lithium",
    ModifierKey.ON_METFORMIN: "on Metformin",
}

BOOLEAN_MODIFIERS = (
    ModifierKey.ON_DOAC,
    ModifierKey.ON_LITHIUM,
    ModifierKey.ON_METFORMIN,
)


def annotate(label: str, key: ModifierKey) -> str:
    annotation = MODIFIER_ANNOTATIONS.get(key)
    if annotation is None:
        return label
    return f"{label} ({annotation})"
