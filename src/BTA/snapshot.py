"""
Clinical input snapshot.

Defines the immutable bundle of selected diseases and modifier values that the
allocator evaluates.
"""

import dataclasses
import typing
from dataclasses import dataclass, field

from .ckd import CKDStage, DEFAULT_CKD_STAGE
from .modifier import BOOLEAN_MODIFIERS, ModifierKey

_FIELD_FOR_KEY = {
    ModifierKey.ON_DOAC: "on_doac",
    ModifierKey.ON_LITHIUM: "on_lithium",
    ModifierKey.ON_METFORMIN: "on_metformin",
    ModifierKey.CKD_STAGE: "ckd_stage",
}


@dataclass(frozen=True)
class ClinicalInputSnapshot:
    """
    The allocator's sole input.

    Attributes:
        selected_diseases: Names of the selected diseases (order irrelevant).
        on_doac: True if the patient is on a DOAC.
        on_lithium: True if the patient is on Lithium.
        on_metformin: True if the patient is on Metformin.
        ckd_stage: CKD stage, a CKDStage or a stage label such as '3b'.
    """

    selected_diseases: frozenset[str] = field(default_factory=frozenset)
    on_doac: bool = False
    on_lithium: bool = False
    on_metformin: bool = False
    ckd_stage: CKDStage = DEFAULT_CKD_STAGE

    def __post_init__(self):
        # frozen dataclass: normalize through object.__setattr__
        if not isinstance(self.selected_diseases, frozenset):
            if isinstance(self.selected_diseases, str):
                raise TypeError("selected_diseases must be a collection of names, not a string")
            object.__setattr__(self, "selected_diseases", frozenset(self.selected_diseases))
        object.__setattr__(self, "ckd_stage", CKDStage.from_label(self.ckd_stage))
        for key in BOOLEAN_MODIFIERS:
            name = _FIELD_FOR_KEY[key]
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be a boolean, got {type(value).__name__}")

    def modifier_value(self, key: ModifierKey) -> typing.Union[bool, CKDStage]:
        return getattr(self, _FIELD_FOR_KEY[key])

    def with_disease(self, name: str, selected: bool = True) -> "ClinicalInputSnapshot":
        """Return a copy with `name` added to (or removed from) the selection."""
        if selected:
            diseases = self.selected_diseases | {name}
        else:
            diseases = self.selected_diseases - {name}
        return dataclasses.replace(self, selected_diseases=diseases)

    def with_modifier(
        self, key: ModifierKey, value: typing.Union[bool, str, CKDStage]
    ) -> "ClinicalInputSnapshot":
        return dataclasses.replace(self, **{_FIELD_FOR_KEY[key]: value})

    def reset(self) -> "ClinicalInputSnapshot":
        return ClinicalInputSnapshot()

    @property
    def has_selections(self) -> bool:
        """
        True when there is anything to reset. CKD stage alone does not count,
        matching the form's Reset button.
        """
        return bool(self.selected_diseases) or any(self.modifier_value(key) for key in BOOLEAN_MODIFIERS)

    @classmethod
    def from_mapping(cls, data: typing.Mapping[str, typing.Any]) -> "ClinicalInputSnapshot":
        """
        Build a snapshot from a plain mapping, e.g. parsed JSON:
          {"diseases": [...], "on_doac": true, "ckd_stage": "4"}
        Modifier keys may use any label ModifierKey.from_label accepts.
        """
        kwargs: dict[str, typing.Any] = {}
        for raw_key, value in data.items():
            if raw_key in ("diseases", "selected_diseases", "selectedDiseases"):
                kwargs["selected_diseases"] = frozenset(value or ())
                continue
            key = ModifierKey.from_label(raw_key)
            kwargs[_FIELD_FOR_KEY[key]] = value
        return cls(**kwargs)
