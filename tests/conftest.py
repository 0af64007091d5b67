import pytest

from BTA.engine import DefaultAllocator
from BTA.rules import DEFAULT_KNOWLEDGE_BASE, KnowledgeBase
from BTA.snapshot import ClinicalInputSnapshot


@pytest.fixture(scope="session")
def knowledge_base() -> KnowledgeBase:
    return DEFAULT_KNOWLEDGE_BASE


@pytest.fixture(scope="session")
def allocator(knowledge_base: KnowledgeBase) -> DefaultAllocator:
    return DefaultAllocator(knowledge_base)


@pytest.fixture
def allocate(allocator: DefaultAllocator):
    """
    Run the allocator and index the result by test name:
    {test_name: {frequency: [labels]}}, plus the ordered list of test names.
    """
    def _allocate(*diseases: str, **modifiers):
        snapshot = ClinicalInputSnapshot(selected_diseases=frozenset(diseases), **modifiers)
        results = allocator.compute_required_tests(snapshot)
        by_test = {
            result.test_name: {group.frequency: list(group.diseases) for group in result.frequencies}
            for result in results
        }
        return by_test, [result.test_name for result in results]

    return _allocate
