"""Registry of severity classifiers, the swap point for trained models"""

import logging
from typing import Dict, Type, Optional, List, Any, Union
from pathlib import Path
import json
import importlib
import inspect

logger = logging.getLogger(__name__)


class ClassifierRegistry:
    """Registry for severity classifier implementations"""

    def __init__(self):
        self._classifiers: Dict[str, Type] = {}
        self._defaults: Dict[str, Dict[str, Any]] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}

    def register(self,
                 name: str,
                 classifier_class: Type,
                 defaults: Optional[Dict[str, Any]] = None,
                 metadata: Optional[Dict[str, Any]] = None,
                 override: bool = False):
        """
        Register a classifier in the registry

        Args:
            name: Name to register the classifier under
            classifier_class: Class implementing ``classify(features)``
            defaults: Default constructor keyword arguments
            metadata: Additional metadata about the classifier
            override: Whether to override existing registration
        """
        if not callable(getattr(classifier_class, 'classify', None)):
            raise ValueError(f"{classifier_class} must implement classify()")

        if name in self._classifiers and not override:
            raise ValueError(f"Classifier '{name}' already registered. Use override=True to replace.")

        self._classifiers[name] = classifier_class
        if defaults is not None:
            self._defaults[name] = dict(defaults)
        self._metadata[name] = metadata if metadata is not None else self._extract_metadata(classifier_class)

        logger.info(f"Registered classifier '{name}' ({classifier_class.__name__})")

    def get(self, name: str) -> Type:
        """Get classifier class by name"""
        if name not in self._classifiers:
            raise KeyError(f"Classifier '{name}' not found in registry. "
                           f"Available classifiers: {self.list_classifiers()}")
        return self._classifiers[name]

    def create(self, name: str, modality: str, **kwargs) -> Any:
        """
        Create a classifier instance for ``modality``

        Registered defaults are merged under ``kwargs``.
        """
        classifier_class = self.get(name)
        init_args = dict(self._defaults.get(name, {}))
        init_args.update(kwargs)
        classifier = classifier_class(modality=modality, **init_args)
        logger.info(f"Created classifier '{name}' for modality '{modality}'")
        return classifier

    def list_classifiers(self) -> List[str]:
        """List all registered classifiers"""
        return list(self._classifiers.keys())

    def get_metadata(self, name: str) -> Dict[str, Any]:
        return self._metadata.get(name, {})

    def describe(self, name: str) -> str:
        """Get description of a classifier"""
        if name not in self._classifiers:
            return f"Classifier '{name}' not found"

        classifier_class = self._classifiers[name]
        description = f"Classifier: {name}\n"
        description += f"Class: {classifier_class.__name__}\n"
        description += f"Module: {classifier_class.__module__}\n"

        metadata = self._metadata.get(name, {})
        if metadata:
            description += "Metadata:\n"
            for key, value in metadata.items():
                description += f"  {key}: {value}\n"

        if name in self._defaults:
            description += f"Defaults: {self._defaults[name]}\n"

        if classifier_class.__doc__:
            description += f"Documentation:\n{classifier_class.__doc__}\n"

        return description

    def search(self,
               modality: Optional[str] = None,
               pattern: Optional[str] = None) -> List[str]:
        """
        Search for classifiers in registry

        Args:
            modality: Keep classifiers whose metadata lists this modality
                (classifiers without a modality list accept every modality)
            pattern: String pattern to match in classifier name
        """
        results = []
        for name in self._classifiers:
            if pattern and pattern.lower() not in name.lower():
                continue
            if modality:
                supported = self._metadata.get(name, {}).get('modalities')
                if supported and modality.lower() not in [m.lower() for m in supported]:
                    continue
            results.append(name)
        return results

    def save_registry(self, path: Union[str, Path]):
        """Save registry to file"""
        path = Path(path)

        registry_data = {
            'classifiers': {
                name: {
                    'module': cls.__module__,
                    'class': cls.__name__,
                    'metadata': self._metadata.get(name, {}),
                    'defaults': self._defaults.get(name)
                }
                for name, cls in self._classifiers.items()
            }
        }

        with open(path, 'w') as f:
            json.dump(registry_data, f, indent=2, default=str)

        logger.info(f"Registry saved to {path}")

    def load_registry(self, path: Union[str, Path], override: bool = False):
        """Load registry from file"""
        path = Path(path)

        with open(path, 'r') as f:
            registry_data = json.load(f)

        for name, info in registry_data['classifiers'].items():
            module = importlib.import_module(info['module'])
            classifier_class = getattr(module, info['class'])
            self.register(
                name=name,
                classifier_class=classifier_class,
                defaults=info.get('defaults'),
                metadata=info.get('metadata'),
                override=override
            )

        logger.info(f"Registry loaded from {path}")

    def _extract_metadata(self, classifier_class: Type) -> Dict[str, Any]:
        metadata = {
            'class_name': classifier_class.__name__,
            'module': classifier_class.__module__,
            'has_docstring': classifier_class.__doc__ is not None
        }
        modalities = getattr(classifier_class, 'supported_modalities', None)
        if modalities:
            metadata['modalities'] = list(modalities)
        try:
            sig = inspect.signature(classifier_class.__init__)
            metadata['init_params'] = [p for p in sig.parameters if p != 'self']
        except (TypeError, ValueError):
            metadata['init_params'] = []
        return metadata

    def __contains__(self, name: str) -> bool:
        return name in self._classifiers

    def __len__(self) -> int:
        return len(self._classifiers)

    def __repr__(self) -> str:
        return f"ClassifierRegistry({len(self._classifiers)} classifiers registered)"


# Global registry instance
_global_registry = ClassifierRegistry()


def register_classifier(name: str,
                        classifier_class: Type = None,
                        defaults: Optional[Dict[str, Any]] = None,
                        metadata: Optional[Dict[str, Any]] = None,
                        override: bool = False):
    """
    Register a classifier in the global registry

    Can be used as a decorator:
    @register_classifier("my_classifier")
    class MyClassifier(SeverityClassifier):
        ...

    Or as a function:
    register_classifier("my_classifier", MyClassifier)
    """
    def decorator(cls):
        _global_registry.register(name, cls, defaults, metadata, override)
        return cls

    if classifier_class is None:
        return decorator
    _global_registry.register(name, classifier_class, defaults, metadata, override)


def get_classifier(name: str) -> Type:
    """Get classifier class from global registry"""
    return _global_registry.get(name)


def create_classifier(name: str, modality: str, **kwargs) -> Any:
    """Create classifier instance from global registry"""
    return _global_registry.create(name, modality, **kwargs)


def list_classifiers() -> List[str]:
    """List all classifiers in global registry"""
    return _global_registry.list_classifiers()


def search_classifiers(modality: Optional[str] = None,
                       pattern: Optional[str] = None) -> List[str]:
    """Search for classifiers in global registry"""
    return _global_registry.search(modality, pattern)


def get_registry() -> ClassifierRegistry:
    return _global_registry
