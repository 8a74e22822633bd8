import pytest

from pdscreen.core.registry import (
    ClassifierRegistry,
    register_classifier,
    get_classifier,
    list_classifiers,
    search_classifiers,
    get_registry,
)
from pdscreen.core.results import AssessmentResult, Severity


# Dummy classifier for testing
class DummyClassifier:
    """Always reports a healthy result"""
    supported_modalities = ('spiral', 'voice')

    def __init__(self, modality, threshold=0.5):
        self.modality = modality
        self.threshold = threshold

    def classify(self, features):
        return AssessmentResult(score=90, confidence=80, status=Severity.HEALTHY)


class AnyModalityClassifier(DummyClassifier):
    supported_modalities = ()


@pytest.fixture
def registry():
    """Fixture for a clean ClassifierRegistry instance."""
    return ClassifierRegistry()


class TestClassifierRegistry:
    def test_register_and_get(self, registry):
        """Test registering and retrieving a classifier."""
        registry.register("dummy", DummyClassifier)
        assert registry.get("dummy") is DummyClassifier
        assert "dummy" in registry
        assert len(registry) == 1

    def test_register_requires_classify(self, registry):
        class NotAClassifier:
            pass

        with pytest.raises(ValueError):
            registry.register("broken", NotAClassifier)

    def test_duplicate_registration(self, registry):
        registry.register("dummy", DummyClassifier)
        with pytest.raises(ValueError):
            registry.register("dummy", DummyClassifier)
        registry.register("dummy", AnyModalityClassifier, override=True)
        assert registry.get("dummy") is AnyModalityClassifier

    def test_get_unknown(self, registry):
        with pytest.raises(KeyError):
            registry.get("missing")

    def test_create_merges_defaults(self, registry):
        """Test creating a classifier instance from the registry."""
        registry.register("dummy", DummyClassifier, defaults={'threshold': 0.7})
        classifier = registry.create("dummy", "voice")
        assert classifier.modality == "voice"
        assert classifier.threshold == 0.7

        classifier = registry.create("dummy", "voice", threshold=0.2)
        assert classifier.threshold == 0.2

    def test_list_classifiers(self, registry):
        """Test listing registered classifiers."""
        registry.register("dummy1", DummyClassifier)
        registry.register("dummy2", DummyClassifier)
        assert set(registry.list_classifiers()) == {"dummy1", "dummy2"}

    def test_search(self, registry):
        registry.register("dummy", DummyClassifier)
        registry.register("any_modality", AnyModalityClassifier)

        assert set(registry.search(modality="voice")) == {"dummy", "any_modality"}
        assert registry.search(modality="posture") == ["any_modality"]
        assert registry.search(pattern="DUM") == ["dummy"]

    def test_describe(self, registry):
        registry.register("dummy", DummyClassifier, defaults={'threshold': 0.7})
        description = registry.describe("dummy")
        assert "DummyClassifier" in description
        assert "Always reports a healthy result" in description
        assert "not found" in registry.describe("missing")

    def test_save_and_load_registry(self, registry, tmp_path):
        """Test saving and loading the registry."""
        registry.register("dummy", DummyClassifier, defaults={'threshold': 0.7})
        registry_path = tmp_path / "registry.json"
        registry.save_registry(registry_path)

        new_registry = ClassifierRegistry()
        new_registry.load_registry(registry_path)
        assert new_registry.get("dummy") is DummyClassifier
        assert new_registry.create("dummy", "spiral").threshold == 0.7


class TestGlobalRegistry:
    def test_builtin_classifiers_registered(self):
        import pdscreen.models.classification  # noqa: F401
        assert {"reference", "torch"} <= set(list_classifiers())
        assert "reference" in search_classifiers(modality="posture")

    def test_decorator_registration(self):
        @register_classifier("test_decorated_dummy", override=True)
        class DecoratedClassifier(DummyClassifier):
            pass

        try:
            assert get_classifier("test_decorated_dummy") is DecoratedClassifier
        finally:
            get_registry()._classifiers.pop("test_decorated_dummy", None)
            get_registry()._metadata.pop("test_decorated_dummy", None)
