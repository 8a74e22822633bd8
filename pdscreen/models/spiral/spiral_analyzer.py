"""Spiral drawing analysis: edge and curvature statistics of a drawn spiral"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional, ClassVar, Union

import cv2
import numpy as np

from pdscreen.core.base import BaseExtractor, FeatureVector, ScreeningConfig
from pdscreen.core.exceptions import DegenerateSignalError
from pdscreen.data.preprocessing import VisionPreprocessor, SignalQualityChecker, ImageInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpiralCalibration:
    """
    Linear normalization constants mapping raw image statistics to [0, 1]

    These are starting points, not values fitted to clinical data.
    They directly move class boundaries, so bump ``version`` whenever
    one changes.
    """
    version: str = "spiral-cal-1"
    tremor_norm: float = 0.1         # variance of gradient magnitude
    irregularity_norm: float = 0.25  # variance of grayscale intensity
    pressure_norm: float = 0.03      # variance of intensity over ink pixels
    smoothness_norm: float = 0.5     # mean |Laplacian|
    speed_norm: float = 0.25         # mean gradient magnitude


@dataclass(frozen=True)
class SpiralFeatures(FeatureVector):
    """Bounded spiral indices, each in [0, 1]"""
    modality: ClassVar[str] = "spiral"

    tremor: float
    irregularity: float
    pressure: float
    speed: float
    smoothness: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SpiralFeatureExtractor(BaseExtractor):
    """
    Extract tremor-style indices from a photographed or scanned spiral.

    The image is resized to a fixed square, converted to grayscale in
    [0, 1] and analysed with first-derivative (Sobel) and
    second-derivative (Laplacian) filters:

    - tremor: variance of the gradient magnitude (shaky strokes give
      many short, uneven edges)
    - irregularity: global intensity variance
    - pressure: intensity variance over ink pixels (uneven line weight)
    - smoothness: mean absolute Laplacian; higher means rougher curves
    - speed: inverse edge density; denser edges suggest slower strokes
    """

    modality = "spiral"

    def __init__(self,
                 config: Optional[Union[Dict[str, Any], ScreeningConfig]] = None,
                 calibration: Optional[SpiralCalibration] = None,
                 check_quality: bool = True):
        super().__init__(config)
        self.calibration = calibration or SpiralCalibration()
        self.preprocessor = VisionPreprocessor(target_size=self.config.image_size)
        self.quality_checker = SignalQualityChecker('spiral') if check_quality else None

    def extract(self, image: ImageInput, **kwargs) -> SpiralFeatures:
        """
        Args:
            image: Path, encoded bytes or pixel array

        Raises:
            InvalidInputError: if the image cannot be decoded
        """
        processed = self.preprocessor(image)
        gray = processed['gray']

        if self.quality_checker is not None:
            quality = self.quality_checker.check_quality(processed['image'])
            if not quality['passes']:
                logger.warning(f"Spiral image quality {quality['quality_score']:.2f}: {quality['issues']}")

        try:
            return self._compute_features(gray)
        except DegenerateSignalError as e:
            logger.warning(f"Degenerate spiral image, using default features: {e}")
            return self.degenerate_default()
        finally:
            del processed, gray

    def degenerate_default(self) -> SpiralFeatures:
        """Features for a blank page: no strokes, nothing to measure"""
        return SpiralFeatures(tremor=0.0, irregularity=0.0, pressure=0.0,
                              speed=1.0, smoothness=0.0)

    def _compute_features(self, gray: np.ndarray) -> SpiralFeatures:
        if float(np.var(gray)) < 1e-8:
            raise DegenerateSignalError("image has zero intensity variance")

        cal = self.calibration
        edges = self.gradient_magnitude(gray)

        tremor = np.var(edges) / cal.tremor_norm
        irregularity = np.var(gray) / cal.irregularity_norm
        pressure = self._ink_variance(gray) / cal.pressure_norm
        smoothness = np.mean(np.abs(cv2.Laplacian(gray, cv2.CV_32F, ksize=1))) / cal.smoothness_norm
        speed = 1.0 - np.mean(edges) / cal.speed_norm

        return SpiralFeatures(
            tremor=_unit(tremor),
            irregularity=_unit(irregularity),
            pressure=_unit(pressure),
            speed=_unit(speed),
            smoothness=_unit(smoothness),
        )

    @staticmethod
    def gradient_magnitude(gray: np.ndarray) -> np.ndarray:
        """Sobel gradient magnitude, scaled so a unit step edge peaks at 1"""
        # The 3x3 Sobel kernel sums to 4 on each side of an edge
        gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3, scale=0.25)
        gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3, scale=0.25)
        return cv2.magnitude(gx, gy)

    @staticmethod
    def _ink_variance(gray: np.ndarray) -> float:
        """Intensity variance over pixels darker than the Otsu threshold"""
        gray_u8 = (gray * 255).astype(np.uint8)
        threshold, _ = cv2.threshold(gray_u8, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        ink = gray[gray_u8 <= threshold]
        if ink.size < 2:
            ink = gray
        return float(np.var(ink))


def _unit(value: float) -> float:
    return float(np.clip(value, 0.0, 1.0))
