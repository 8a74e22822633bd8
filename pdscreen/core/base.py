"""Base classes for screening models, extractors and their configuration"""

import torch
import torch.nn as nn
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, Tuple, Union
import logging
from pathlib import Path
import json
import yaml
import numpy as np
from dataclasses import dataclass, field, fields, asdict


logger = logging.getLogger(__name__)

# Aggregation policy applied when no config overrides it
AGGREGATION_POLICY = "equal"


@dataclass
class ScreeningConfig:
    """Configuration for the extraction, classification and aggregation pipeline"""
    image_size: Tuple[int, int] = (224, 224)
    sample_rate: int = 16000
    frame_ms: float = 25.0
    f0_min: float = 50.0
    f0_max: float = 500.0
    n_mfcc: int = 13
    n_mels: int = 26
    extraction_timeout: float = 5.0
    aggregation_policy: str = AGGREGATION_POLICY
    modality_weights: Dict[str, float] = field(default_factory=lambda: {
        'spiral': 0.25,
        'voice': 0.25,
        'posture': 0.20,
        'symptoms': 0.30,
    })
    classifiers: Dict[str, str] = field(default_factory=lambda: {
        'spiral': 'reference',
        'voice': 'reference',
        'posture': 'reference',
    })
    checkpoints: Dict[str, str] = field(default_factory=dict)
    cosmetic_jitter: bool = True
    random_seed: Optional[int] = None
    device: str = "cuda" if torch.cuda.is_available() else "cpu"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.image_size = tuple(self.image_size)
        if self.aggregation_policy not in ('equal', 'weighted'):
            raise ValueError(f"Unknown aggregation policy '{self.aggregation_policy}'")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        # Also include metadata keys at the top level for easier serialization
        d = {
            k: v for k, v in asdict(self).items()
            if not k.startswith('_') and k != 'metadata'
        }
        d['image_size'] = list(self.image_size)
        d.update(self.metadata)
        return d

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ScreeningConfig':
        """Create config from dictionary, handling extra keys."""
        config_keys = {f.name for f in fields(cls)}
        init_args = {k: v for k, v in config_dict.items() if k in config_keys}
        metadata = dict(init_args.get('metadata', {}))

        # Put extra keys into metadata
        for k, v in config_dict.items():
            if k not in config_keys:
                metadata[k] = v

        init_args['metadata'] = metadata
        return cls(**init_args)

    def save(self, path: Union[str, Path]):
        """Save configuration to file"""
        path = Path(path)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ScreeningConfig':
        """Load configuration from a JSON or YAML file"""
        path = Path(path)
        if path.suffix in ('.yaml', '.yml'):
            return cls.from_yaml(path)
        with open(path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'ScreeningConfig':
        """Load configuration from a YAML file"""
        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        # Allow the pipeline section to be nested under a top-level key
        if 'screening' in config_dict:
            config_dict = config_dict['screening']
        return cls.from_dict(config_dict)


class FeatureVector(ABC):
    """Named feature measurements produced by one extractor"""

    modality: str = "unknown"

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Feature name -> value"""
        pass

    def scalar_features(self) -> Dict[str, float]:
        """Feature name -> value for the scalar (non-sequence) features"""
        return {
            k: float(v) for k, v in self.to_dict().items()
            if isinstance(v, (int, float, np.floating)) and not isinstance(v, bool)
        }

    def flat_features(self) -> Dict[str, float]:
        """Scalar features plus numeric sequences expanded as ``name_0, name_1, ...``"""
        flat = {}
        for k, v in self.to_dict().items():
            if isinstance(v, bool):
                continue
            if isinstance(v, (int, float, np.floating)):
                flat[k] = float(v)
            elif isinstance(v, (list, tuple)) and all(
                    isinstance(x, (int, float, np.floating)) for x in v):
                for i, x in enumerate(v):
                    flat[f"{k}_{i}"] = float(x)
        return flat

    def to_array(self, names: Optional[List[str]] = None) -> np.ndarray:
        """Feature values as a float32 vector, ordered by ``names``"""
        values = self.flat_features()
        names = names or list(values.keys())
        missing = [n for n in names if n not in values]
        if missing:
            raise KeyError(f"{self.__class__.__name__} has no features {missing}")
        return np.array([values[n] for n in names], dtype=np.float32)


class BaseExtractor(ABC):
    """Base class for signal extractors"""

    modality: str = "unknown"

    def __init__(self, config: Optional[Union[Dict[str, Any], ScreeningConfig]] = None):
        if config is None:
            config = ScreeningConfig()
        elif isinstance(config, dict):
            config = ScreeningConfig.from_dict(config)
        self.config = config

    @abstractmethod
    def extract(self, data: Any, **kwargs) -> FeatureVector:
        """Turn a raw input into a feature vector"""
        pass

    def __call__(self, data: Any, **kwargs) -> FeatureVector:
        return self.extract(data, **kwargs)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(modality={self.modality!r})"


class ScreeningModel(nn.Module, ABC):
    """Base class for trainable severity models"""

    def __init__(self, config: Dict[str, Any]):
        super().__init__()
        self.config = dict(config)
        self.device = torch.device(self.config.get('device', 'cpu'))
        self._build_model()
        self.to(self.device)

    @abstractmethod
    def _build_model(self):
        """Build model architecture - must be implemented by subclasses"""
        pass

    @abstractmethod
    def forward(self, x: torch.Tensor, **kwargs) -> Dict[str, torch.Tensor]:
        """
        Forward pass returning dict with at minimum:
        - 'logits': raw predictions
        - 'probabilities': softmax probabilities
        """
        pass

    def predict(self, x: torch.Tensor) -> Dict[str, torch.Tensor]:
        """Make predictions in eval mode"""
        self.eval()
        with torch.no_grad():
            output = self.forward(x.to(self.device))
            output['predictions'] = output['logits'].argmax(dim=-1)
            return output

    def save(self, path: Union[str, Path],
             save_optimizer: Optional[torch.optim.Optimizer] = None):
        """Save model checkpoint"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        checkpoint = {
            'model_state_dict': self.state_dict(),
            'model_class': self.__class__.__name__,
            'config': self.config
        }

        if save_optimizer is not None:
            checkpoint['optimizer_state_dict'] = save_optimizer.state_dict()

        torch.save(checkpoint, path)
        logger.info(f"Model saved to {path}")

    @classmethod
    def load(cls, path: Union[str, Path],
             map_location: Optional[str] = None) -> 'ScreeningModel':
        """Load model from checkpoint"""
        path = Path(path)
        map_location = map_location or 'cpu'
        checkpoint = torch.load(path, map_location=map_location)

        config = dict(checkpoint['config'])
        config['device'] = map_location
        model = cls(config)
        model.load_state_dict(checkpoint['model_state_dict'])
        logger.info(f"Model loaded from {path}")

        return model

    @property
    def num_parameters(self) -> int:
        """Count number of trainable parameters"""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)
