"""Small MLP mapping one modality's feature vector to severity classes"""

import torch
import torch.nn as nn
import torch.nn.functional as F
from typing import Dict, List
import numpy as np
import logging

from pdscreen.core.base import ScreeningModel

logger = logging.getLogger(__name__)


class SeverityNet(ScreeningModel):
    """
    Feed-forward severity classifier over a flat feature vector

    Config keys:
        input_dim: Number of input features
        feature_names: Order of the features in the input vector
        hidden_dims: Hidden layer widths (default [64, 32])
        dropout: Dropout after each hidden layer (default 0.3)
        num_classes: Output classes (default 4: healthy, mild, moderate, severe)
    """

    def _build_model(self):
        self.feature_names: List[str] = list(self.config.get('feature_names', []))
        self.input_dim = self.config.get('input_dim', len(self.feature_names))
        if self.input_dim <= 0:
            raise ValueError("SeverityNet needs input_dim or feature_names")
        if self.feature_names and len(self.feature_names) != self.input_dim:
            raise ValueError(f"{len(self.feature_names)} feature names for input_dim {self.input_dim}")

        self.hidden_dims = list(self.config.get('hidden_dims', [64, 32]))
        self.dropout = self.config.get('dropout', 0.3)
        self.num_classes = self.config.get('num_classes', 4)

        # Standardization statistics, set from training data with fit_normalization
        self.register_buffer('feature_mean', torch.zeros(self.input_dim))
        self.register_buffer('feature_std', torch.ones(self.input_dim))

        layers = []
        in_dim = self.input_dim
        for hidden_dim in self.hidden_dims:
            layers.extend([
                nn.Linear(in_dim, hidden_dim),
                nn.ReLU(),
                nn.Dropout(self.dropout)
            ])
            in_dim = hidden_dim
        layers.append(nn.Linear(in_dim, self.num_classes))
        self.classifier = nn.Sequential(*layers)

    def fit_normalization(self, features: np.ndarray):
        """Set the input standardization from a [samples, input_dim] array"""
        features = torch.as_tensor(np.asarray(features), dtype=torch.float32)
        self.feature_mean.copy_(features.mean(dim=0))
        self.feature_std.copy_(features.std(dim=0, unbiased=False).clamp_min(1e-6))
        logger.info(f"Fitted input normalization on {features.shape[0]} samples")

    def forward(self, x: torch.Tensor, **kwargs) -> Dict[str, torch.Tensor]:
        """
        Args:
            x: Feature vectors [batch, input_dim]
        """
        x = (x - self.feature_mean) / self.feature_std
        logits = self.classifier(x)
        return {
            'logits': logits,
            'probabilities': F.softmax(logits, dim=-1)
        }
