"""
Disease domain model.

Defines the Disease and ModifierQuestion dataclasses and the fixed catalog of
chronic-disease conditions offered by the form.
"""

import typing
from dataclasses import dataclass, field
from enum import Enum, auto

from .ckd import CKDStage
from .modifier import ModifierKey

if typing.TYPE_CHECKING:
    from .snapshot import ClinicalInputSnapshot

CHRONIC_KIDNEY_DISEASE = "Chronic Kidney Disease"


class QuestionKind(Enum):
    TOGGLE = auto()
    SELECT = auto()


@dataclass(frozen=True)
class ModifierQuestion:
    """
    A follow-up question shown when its disease is selected.

    Attributes:
        key: The modifier the answer sets.
        label: Question text shown to the user.
        kind: TOGGLE for yes/no, SELECT for a single choice.
        options: (value, label) pairs; required for SELECT, empty for TOGGLE.
    """

    key: ModifierKey
    label: str
    kind: QuestionKind = QuestionKind.TOGGLE
    options: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        if self.kind is QuestionKind.SELECT and not self.options:
            raise ValueError(f"Select question {self.key.value!r} needs options")
        if self.kind is QuestionKind.TOGGLE and self.options:
            raise ValueError(f"Toggle question {self.key.value!r} cannot have options")


@dataclass(frozen=True)
class Disease:
    """
    Represents a selectable condition.

    Attributes:
        name: Identifier and display name (e.g. 'Atrial Fibrillation').
        color_class: Display colour/category tag (e.g. 'icon-red').
        questions: Modifier questions belonging to this disease.
    """

    name: str
    color_class: str
    questions: tuple[ModifierQuestion, ...] = field(default_factory=tuple)

    def __post_init__(self):
        keys = [question.key for question in self.questions]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Disease {self.name!r} has more than one question per modifier")

    @property
    def initials(self) -> str:
        # badge text, e.g. 'CKD', 'NHC'
        return "".join(word[0] for word in self.name.split(" ") if word)[:3]


def _ckd_stage_question() -> ModifierQuestion:
    return ModifierQuestion(
        key=ModifierKey.CKD_STAGE,
        label="CKD Stage:",
        kind=QuestionKind.SELECT,
        options=tuple((stage.value, stage.option_label) for stage in CKDStage),
    )


DISEASES: tuple[Disease, ...] = (
    Disease("Atrial Fibrillation", "icon-red",
            (ModifierQuestion(ModifierKey.ON_DOAC, "Is the patient on a DOAC?"),)),
    Disease("Cardiovascular Disease", "icon-pink"),
    Disease(CHRONIC_KIDNEY_DISEASE, "icon-purple", (_ckd_stage_question(),)),
    Disease("Coronary Heart Disease", "icon-red"),
    Disease("Diabetes Mellitus", "icon-orange",
            (ModifierQuestion(ModifierKey.ON_METFORMIN, "Is the patient on Metformin?"),)),
    Disease("Heart Failure", "icon-pink"),
    Disease("Hypertension", "icon-red"),
    Disease("Hypothyroidism", "icon-teal"),
    Disease("Learning Disability", "icon-blue"),
    Disease("Mental Health", "icon-blue",
            (ModifierQuestion(ModifierKey.ON_LITHIUM, "Is the patient on Lithium?"),)),
    Disease("NHS Health Check", "icon-green"),
    Disease("Non-Diabetic Hyperglycaemia", "icon-orange"),
    Disease("Stroke/TIA", "icon-purple"),
    Disease("B12 Anemia", "icon-yellow"),
)


def visible_questions(
    diseases: typing.Iterable[Disease], snapshot: "ClinicalInputSnapshot"
) -> list[ModifierQuestion]:
    """Questions of the selected diseases, in catalog order."""
    return [
        question
        for disease in diseases
        if disease.name in snapshot.selected_diseases
        for question in disease.questions
    ]
