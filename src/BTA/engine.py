"""
Resolution engine.

Turns a ClinicalInputSnapshot into the ordered list of required blood tests,
each with its frequency groups and the disease labels behind them.
"""

import abc
import logging
import typing
from dataclasses import dataclass

from .ckd import NOT_APPLICABLE, resolve_ckd_frequency
from .modifier import annotate
from .rules import (
    CKD_STAGE_SENTINEL,
    CKDStageRouted,
    Conditioned,
    DEFAULT_KNOWLEDGE_BASE,
    FrequencyRule,
    KnowledgeBase,
    Literal,
)
from .snapshot import ClinicalInputSnapshot

logger = logging.getLogger(__name__)

# (frequency, disease label); frequency None means no contribution
Contribution = typing.Tuple[typing.Optional[str], str]


@dataclass(frozen=True)
class FrequencyGroup:
    """
    One frequency of a test and the diseases that require it.

    Attributes:
        frequency: Frequency string, unique within its test.
        diseases: Disease labels, possibly annotated, in first-seen order.
    """

    frequency: str
    diseases: tuple[str, ...]

    def to_dict(self) -> dict[str, typing.Any]:
        return {"frequency": self.frequency, "diseases": list(self.diseases)}


@dataclass(frozen=True)
class ResolvedTest:
    test_name: str
    frequencies: tuple[FrequencyGroup, ...]

    def to_dict(self) -> dict[str, typing.Any]:
        return {
            "testName": self.test_name,
            "frequencies": [group.to_dict() for group in self.frequencies],
        }


class Allocator(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def compute_required_tests(
            self, snapshot: ClinicalInputSnapshot
    ) -> list[ResolvedTest]:
        raise NotImplementedError


class DefaultAllocator(Allocator):
    def __init__(self, knowledge_base: KnowledgeBase = DEFAULT_KNOWLEDGE_BASE):
        self._kb = knowledge_base

    @property
    def knowledge_base(self) -> KnowledgeBase:
        return self._kb

    def compute_required_tests(
            self, snapshot: ClinicalInputSnapshot
    ) -> list[ResolvedTest]:
        """
        Process:
        1) evaluate every (test, selected disease) rule
        2) group surviving contributions by test, then by frequency
        3) order tests by the knowledge base's priority list
        """
        # test -> frequency -> labels; dicts keep insertion order
        grouped: dict[str, dict[str, dict[str, None]]] = {}
        selected = self._ordered_selection(snapshot)

        for test_name, rules in self._kb.test_rules.items():
            for disease in selected:
                rule = rules.get(disease)
                if rule is None:
                    continue
                frequency, label = self._evaluate(test_name, disease, rule, snapshot)
                if not frequency or frequency == CKD_STAGE_SENTINEL:
                    logger.debug("%s / %s: no contribution", test_name, disease)
                    continue
                logger.debug("%s / %s: %r as %r", test_name, disease, frequency, label)
                labels = grouped.setdefault(test_name, {}).setdefault(frequency, {})
                labels.setdefault(label, None)

        results = [
            ResolvedTest(
                test_name=test_name,
                frequencies=tuple(
                    FrequencyGroup(frequency=frequency, diseases=tuple(labels))
                    for frequency, labels in by_frequency.items()
                ),
            )
            for test_name, by_frequency in grouped.items()
        ]
        return self._sort_by_priority(results)

    def _ordered_selection(self, snapshot: ClinicalInputSnapshot) -> list[str]:
        """
        Selected diseases in catalog order, then any names outside the catalog
        sorted alphabetically, so output does not depend on set iteration order.
        """
        catalog = [name for name in self._kb.disease_names if name in snapshot.selected_diseases]
        extra = sorted(snapshot.selected_diseases.difference(self._kb.disease_names))
        return catalog + extra

    def _evaluate(
            self,
            test_name: str,
            disease: str,
            rule: FrequencyRule,
            snapshot: ClinicalInputSnapshot,
    ) -> Contribution:
        frequency, label = self.evaluate_rule(rule, disease, snapshot)

        if disease == self._kb.ckd_disease:
            override = resolve_ckd_frequency(snapshot.ckd_stage, test_name)
            if override is not NOT_APPLICABLE:
                if override is None:
                    return None, disease
                return override, f"{disease} (Stage {snapshot.ckd_stage.value.upper()})"
        return frequency, label

    @staticmethod
    def evaluate_rule(
            rule: FrequencyRule, disease: str, snapshot: ClinicalInputSnapshot
    ) -> Contribution:
        """
        Evaluate a single rule for `disease`, ignoring CKD stage routing.
        A CKDStageRouted rule evaluates to the sentinel text.
        """
        match rule:
            case Literal(text=text):
                return text, disease
            case Conditioned(modifier_key=key, if_true=if_true, if_false=if_false):
                if snapshot.modifier_value(key):
                    if if_true is None:
                        return None, disease
                    return if_true, annotate(disease, key)
                return if_false, disease
            case CKDStageRouted():
                return CKD_STAGE_SENTINEL, disease
            case _:
                raise TypeError(f"Unsupported frequency rule: {rule!r}")

    def _sort_by_priority(self, results: list[ResolvedTest]) -> list[ResolvedTest]:
        priority = {name: index for index, name in enumerate(self._kb.test_order)}
        unlisted = len(priority)
        # sorted() is stable, so unlisted tests keep their relative order
        return sorted(results, key=lambda result: priority.get(result.test_name, unlisted))


def compute_required_tests(
        snapshot: ClinicalInputSnapshot,
        knowledge_base: typing.Optional[KnowledgeBase] = None,
) -> list[ResolvedTest]:
    if knowledge_base is None:
        knowledge_base = DEFAULT_KNOWLEDGE_BASE
    allocator = DefaultAllocator(knowledge_base)
    return allocator.compute_required_tests(snapshot)
