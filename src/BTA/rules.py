"""
Frequency rules and the knowledge base.

A frequency rule is one of three variants:
  - Literal: a fixed frequency string
  - Conditioned: depends on a boolean modifier (e.g. on Lithium)
  - CKDStageRouted: the frequency comes from the CKD stage resolver

The KnowledgeBase bundles the disease catalog, the per-test rule tables and
the result ordering. It is built once and injected into the allocator, so
tests can substitute their own tables.
"""

import typing
from dataclasses import dataclass, field
from types import MappingProxyType

from .disease import CHRONIC_KIDNEY_DISEASE, DISEASES, Disease
from .modifier import ModifierKey

# Routing marker from the source tables; never a user-facing frequency
CKD_STAGE_SENTINEL = "Frequency based on CKD stage"


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Conditioned:
    """
    Frequency depends on a modifier: `if_true` when it is set, otherwise
    `if_false`. None means the disease contributes nothing for the test.
    """

    modifier_key: ModifierKey
    if_true: typing.Optional[str]
    if_false: typing.Optional[str] = None


@dataclass(frozen=True)
class CKDStageRouted:
    def __str__(self) -> str:
        return CKD_STAGE_SENTINEL


FrequencyRule = typing.Union[Literal, Conditioned, CKDStageRouted]
RuleTable = typing.Mapping[str, typing.Mapping[str, FrequencyRule]]

DEFAULT_TEST_ORDER: tuple[str, ...] = (
    "U&Es",
    "LFTs",
    "CALCIUM",
    "LIPIDS",
    "TFTs",
    "B12",
    "URINE (ACR)",
    "FBC",
    "HbA1c",
    "LITHIUM",
    "BNP",
)


@dataclass(frozen=True)
class KnowledgeBase:
    """
    Read-only rule data for the allocator.

    Attributes:
        diseases: Disease catalog in display order.
        test_rules: test name -> disease name -> FrequencyRule.
        test_order: Priority order of tests in the result list.
        ckd_disease: Name of the disease routed through the CKD stage resolver.
    """

    diseases: tuple[Disease, ...]
    test_rules: RuleTable
    test_order: tuple[str, ...] = DEFAULT_TEST_ORDER
    ckd_disease: str = CHRONIC_KIDNEY_DISEASE
    _by_name: typing.Mapping[str, Disease] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # freeze the tables so a shared instance cannot be mutated
        frozen = MappingProxyType({
            test_name: MappingProxyType(dict(rules))
            for test_name, rules in self.test_rules.items()
        })
        object.__setattr__(self, "test_rules", frozen)
        object.__setattr__(self, "diseases", tuple(self.diseases))
        object.__setattr__(self, "test_order", tuple(self.test_order))
        object.__setattr__(self, "_by_name", MappingProxyType({d.name: d for d in self.diseases}))

    def disease(self, name: str) -> typing.Optional[Disease]:
        return self._by_name.get(name)

    @property
    def disease_names(self) -> tuple[str, ...]:
        return tuple(self._by_name)

    @property
    def test_names(self) -> tuple[str, ...]:
        return tuple(self.test_rules)

    def rules_for(self, test_name: str) -> typing.Mapping[str, FrequencyRule]:
        return self.test_rules.get(test_name, MappingProxyType({}))


def _doac(frequency: str) -> Conditioned:
    return Conditioned(ModifierKey.ON_DOAC, frequency, None)


def _lithium(if_true: str, if_false: typing.Optional[str] = None) -> Conditioned:
    return Conditioned(ModifierKey.ON_LITHIUM, if_true, if_false)


_EVERY_3_5_YEARS = "At diagnosis & every 3-5 years"
_HEALTH_CHECK = "5 yearly (40-74 years)"


def build_default_test_rules() -> dict[str, dict[str, FrequencyRule]]:
    annually = Literal("Annually")
    return {
        "FBC": {
            "Atrial Fibrillation": _doac("Annually"),
            "Coronary Heart Disease": annually,
            "Heart Failure": annually,
            "Diabetes Mellitus": annually,
            "Chronic Kidney Disease": annually,
            "B12 Anemia": Literal("10 days after starting treatment"),
        },
        "U&Es": {
            "Atrial Fibrillation": _doac("Annually"),
            "Coronary Heart Disease": annually,
            "Heart Failure": annually,
            "Hypertension": annually,
            "Stroke/TIA": annually,
            "Diabetes Mellitus": annually,
            "Mental Health": _lithium("3 monthly", "Annually"),
            "Chronic Kidney Disease": CKDStageRouted(),
            "NHS Health Check": Literal(_HEALTH_CHECK),
            "Cardiovascular Disease": annually,
        },
        "LFTs": {
            "Atrial Fibrillation": _doac("Annually"),
            "Coronary Heart Disease": annually,
            "Heart Failure": annually,
            "Stroke/TIA": annually,
            "Diabetes Mellitus": annually,
            "Mental Health": annually,
            "NHS Health Check": Literal(_HEALTH_CHECK),
        },
        "HbA1c": {
            "Atrial Fibrillation": Literal(_EVERY_3_5_YEARS),
            "Coronary Heart Disease": Literal(_EVERY_3_5_YEARS),
            "Heart Failure": Literal(_EVERY_3_5_YEARS),
            "Hypertension": Literal(_EVERY_3_5_YEARS),
            "Stroke/TIA": annually,
            "Diabetes Mellitus": Literal("6 monthly"),
            "Mental Health": annually,
            "Chronic Kidney Disease": Literal(_EVERY_3_5_YEARS),
            "Non-Diabetic Hyperglycaemia": annually,
            "NHS Health Check": Literal(_HEALTH_CHECK),
            "Cardiovascular Disease": annually,
        },
        "TFTs": {
            "Atrial Fibrillation": Literal("At diagnosis"),
            "Diabetes Mellitus": Literal(_EVERY_3_5_YEARS),
            "Mental Health": _lithium("6 monthly", "Annually"),
            "Hypothyroidism": Literal("Annually if stable. After 3 months if dose changed"),
        },
        "LIPIDS": {
            "Coronary Heart Disease": annually,
            "Heart Failure": Literal("Annually (if on statin)"),
            "Hypertension": Literal("Following diagnosis to check CVD risk"),
            "Stroke/TIA": annually,
            "Diabetes Mellitus": annually,
            "Mental Health": annually,
            "Chronic Kidney Disease": annually,
            "NHS Health Check": Literal(_HEALTH_CHECK),
            "Cardiovascular Disease": annually,
        },
        "LITHIUM": {
            "Mental Health": _lithium("3 monthly"),
        },
        "CALCIUM": {
            "Mental Health": _lithium("6 monthly"),
            "Chronic Kidney Disease": CKDStageRouted(),
        },
        "BNP": {
            "Heart Failure": Literal("Once to make diagnosis. NO MONITORING"),
        },
        "B12": {
            "Diabetes Mellitus": Conditioned(ModifierKey.ON_METFORMIN, "Annually", None),
            "B12 Anemia": Literal("To make diagnosis & 1-2 months after treatment. NO MONITORING"),
        },
        "URINE (ACR)": {
            "Diabetes Mellitus": annually,
            "Chronic Kidney Disease": annually,
        },
    }


def build_default_knowledge_base() -> KnowledgeBase:
    return KnowledgeBase(diseases=DISEASES, test_rules=build_default_test_rules())


DEFAULT_KNOWLEDGE_BASE = build_default_knowledge_base()
