"""Posture and gait features from body keypoints"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, Optional, ClassVar, Tuple, Union, Sequence, Mapping, List

import numpy as np
from scipy.signal import find_peaks

from pdscreen.core.base import BaseExtractor, FeatureVector, ScreeningConfig
from pdscreen.core.exceptions import InvalidInputError, ModelUnavailableError
from pdscreen.data.preprocessing import decode_image, ImageInput

logger = logging.getLogger(__name__)

KEYPOINT_NAMES: Tuple[str, ...] = (
    'nose',
    'left_shoulder', 'right_shoulder',
    'left_elbow', 'right_elbow',
    'left_wrist', 'right_wrist',
    'left_hip', 'right_hip',
    'left_knee', 'right_knee',
    'left_ankle', 'right_ankle',
)

# name -> (x, y) in image pixels, y pointing down
Keypoints = Mapping[str, Sequence[float]]

# Variance of limb angles (deg^2) at which rigidity drops to one half
RIGIDITY_SCALE = 1000.0
# An ankle is in swing while its speed exceeds this share of its peak speed
SWING_SPEED_FRACTION = 0.3


class KeypointProvider(ABC):
    """Pose estimator that locates the named keypoints in a photograph"""

    @abstractmethod
    def detect(self, image: np.ndarray) -> Keypoints:
        """
        Args:
            image: Decoded uint8 image, [H, W] or [H, W, 3] BGR

        Returns:
            Mapping of every name in ``KEYPOINT_NAMES`` to pixel (x, y)
        """
        pass


@dataclass(frozen=True)
class GaitParameters:
    """Walking parameters; only measurable from a sequence of frames"""
    step_length: Optional[float] = None
    cadence: Optional[float] = None
    swing_time: Optional[float] = None
    available: bool = False
    source: str = "unavailable"

    @classmethod
    def unavailable(cls, source: str = "single_frame") -> 'GaitParameters':
        return cls(available=False, source=source)


@dataclass(frozen=True)
class PostureFeatures(FeatureVector):
    """Postural indices, each in [0, 1], plus gait parameters"""
    modality: ClassVar[str] = "posture"

    forward_head_posture: float
    shoulder_asymmetry: float
    spinal_curvature: float
    arm_swing_asymmetry: float
    body_rigidity: float
    balance_index: float
    gait: GaitParameters = field(default_factory=GaitParameters.unavailable)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _snake_case(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def normalize_keypoints(keypoints: Keypoints) -> Dict[str, np.ndarray]:
    """
    Validate keypoints and convert them to float arrays

    Accepts snake_case or camelCase names (``leftShoulder``).

    Raises:
        InvalidInputError: if a named keypoint is missing or not a finite (x, y) pair
    """
    if not isinstance(keypoints, Mapping):
        raise InvalidInputError(f"Keypoints must be a mapping, got {type(keypoints).__name__}")

    points = {_snake_case(str(k)): v for k, v in keypoints.items()}
    missing = [name for name in KEYPOINT_NAMES if name not in points]
    if missing:
        raise InvalidInputError(f"Missing keypoints: {', '.join(missing)}")

    normalized = {}
    for name in KEYPOINT_NAMES:
        try:
            point = np.asarray(points[name], dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Keypoint '{name}' is not numeric") from e
        if point.shape[0] < 2 or not np.all(np.isfinite(point[:2])):
            raise InvalidInputError(f"Keypoint '{name}' must be a finite (x, y) pair")
        normalized[name] = point[:2]
    return normalized


def joint_angle(p1: np.ndarray, vertex: np.ndarray, p3: np.ndarray) -> float:
    """Angle p1-vertex-p3 in degrees; 0 when either arm has zero length"""
    v1 = p1 - vertex
    v2 = p3 - vertex
    mag = np.linalg.norm(v1) * np.linalg.norm(v2)
    if mag == 0:
        return 0.0
    cos = np.clip(np.dot(v1, v2) / mag, -1.0, 1.0)
    return float(np.degrees(np.arccos(cos)))


def point_to_line_distance(point: np.ndarray, start: np.ndarray, end: np.ndarray) -> float:
    """Distance from ``point`` to the infinite line through ``start`` and ``end``"""
    direction = end - start
    length = np.linalg.norm(direction)
    if length == 0:
        return float(np.linalg.norm(point - start))
    cross = direction[0] * (point[1] - start[1]) - direction[1] * (point[0] - start[0])
    return float(abs(cross) / length)


def _midpoint(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return (a + b) / 2.0


class PostureFeatureExtractor(BaseExtractor):
    """
    Postural indices from the 13 body keypoints of a standing photograph.

    Keypoints are either passed in directly or located by a
    ``KeypointProvider``. Distances are divided by the image height so
    the indices do not depend on resolution.
    """

    modality = "posture"

    def __init__(self,
                 config: Optional[Union[Dict[str, Any], ScreeningConfig]] = None,
                 keypoint_provider: Optional[KeypointProvider] = None,
                 rigidity_scale: float = RIGIDITY_SCALE):
        super().__init__(config)
        self.keypoint_provider = keypoint_provider
        self.rigidity_scale = rigidity_scale

    def extract(self,
                image: Optional[ImageInput] = None,
                keypoints: Optional[Keypoints] = None,
                image_height: Optional[float] = None,
                **kwargs) -> PostureFeatures:
        """
        Args:
            image: Photograph; needed when ``keypoints`` are not given and
                used for the image height otherwise
            keypoints: Pixel coordinates for every name in ``KEYPOINT_NAMES``
            image_height: Height used for normalization when no image is given

        Raises:
            ModelUnavailableError: no keypoints and no keypoint provider
            InvalidInputError: undecodable image or incomplete keypoints
        """
        if keypoints is None and self.keypoint_provider is None:
            raise ModelUnavailableError(
                "Posture analysis needs keypoints or a keypoint provider; none is configured"
            )

        decoded = decode_image(image) if image is not None else None
        if keypoints is None:
            if decoded is None:
                raise InvalidInputError("An image is required to detect keypoints")
            keypoints = self.keypoint_provider.detect(decoded)

        height = self._image_height(decoded, image_height)
        del decoded

        points = normalize_keypoints(keypoints)
        indices = self._postural_indices(points, height)
        return PostureFeatures(**indices, gait=GaitParameters.unavailable())

    def extract_sequence(self,
                         frames: Sequence[Keypoints],
                         fps: float,
                         image_height: Optional[float] = None) -> PostureFeatures:
        """
        Postural indices averaged over a walking sequence, with gait parameters

        Args:
            frames: Keypoints for each video frame, in order
            fps: Frame rate of the sequence
            image_height: Frame height in pixels (defaults to the configured size)
        """
        if len(frames) == 0:
            raise InvalidInputError("Keypoint sequence is empty")
        if fps <= 0:
            raise InvalidInputError(f"fps must be positive, got {fps}")

        height = self._image_height(None, image_height)
        sequence = [normalize_keypoints(f) for f in frames]

        per_frame = [self._postural_indices(points, height) for points in sequence]
        averaged = {
            name: float(np.mean([f[name] for f in per_frame]))
            for name in per_frame[0]
        }

        gait = self.estimate_gait(sequence, fps)
        logger.info(f"Extracted posture from {len(sequence)} frames, gait available: {gait.available}")
        return PostureFeatures(**averaged, gait=gait)

    def _image_height(self, decoded: Optional[np.ndarray],
                      image_height: Optional[float]) -> float:
        if image_height is not None:
            height = float(image_height)
        elif decoded is not None:
            height = float(decoded.shape[0])
        else:
            height = float(self.config.image_size[1])
        if height <= 0:
            raise InvalidInputError(f"Image height must be positive, got {height}")
        return height

    def _postural_indices(self, points: Dict[str, np.ndarray], height: float) -> Dict[str, float]:
        left_shoulder, right_shoulder = points['left_shoulder'], points['right_shoulder']
        shoulder_mid = _midpoint(left_shoulder, right_shoulder)
        hip_mid = _midpoint(points['left_hip'], points['right_hip'])
        ankle_mid = _midpoint(points['left_ankle'], points['right_ankle'])

        neck_angle = joint_angle(points['nose'], left_shoulder, right_shoulder)

        left_arm = joint_angle(left_shoulder, points['left_elbow'], points['left_wrist'])
        right_arm = joint_angle(right_shoulder, points['right_elbow'], points['right_wrist'])
        left_leg = joint_angle(points['left_hip'], points['left_knee'], points['left_ankle'])
        right_leg = joint_angle(points['right_hip'], points['right_knee'], points['right_ankle'])
        limb_variance = float(np.var([left_arm, right_arm, left_leg, right_leg]))

        return {
            'forward_head_posture': _unit(abs(neck_angle - 90.0) / 90.0),
            'shoulder_asymmetry': _unit(abs(left_shoulder[1] - right_shoulder[1]) / height),
            'spinal_curvature': _unit(
                point_to_line_distance(shoulder_mid, points['nose'], hip_mid) / height),
            'arm_swing_asymmetry': _unit(abs(left_arm - right_arm) / 180.0),
            'body_rigidity': _unit(1.0 / (1.0 + limb_variance / self.rigidity_scale)),
            'balance_index': _unit(float(np.linalg.norm(hip_mid - ankle_mid)) / height),
        }

    def estimate_gait(self, sequence: List[Dict[str, np.ndarray]], fps: float) -> GaitParameters:
        """
        Step length, cadence and swing time from ankle trajectories

        A step is a peak in the distance between the ankles. Step length is
        the mean peak separation divided by body height (nose to ankle
        midpoint); swing time is the mean duration an ankle keeps moving
        faster than ``SWING_SPEED_FRACTION`` of its peak speed.
        """
        if len(sequence) < 3:
            return GaitParameters.unavailable(source="sequence")

        left = np.array([p['left_ankle'] for p in sequence])
        right = np.array([p['right_ankle'] for p in sequence])
        separation = np.linalg.norm(left - right, axis=1)

        # At most about four steps per second
        peaks, _ = find_peaks(separation, distance=max(1, int(fps / 4)))
        if len(peaks) < 2:
            logger.info("Too few steps detected for gait estimation")
            return GaitParameters.unavailable(source="sequence")

        body_height = np.mean([
            np.linalg.norm(p['nose'] - _midpoint(p['left_ankle'], p['right_ankle']))
            for p in sequence
        ])
        if body_height <= 0:
            return GaitParameters.unavailable(source="sequence")

        step_interval = float(np.mean(np.diff(peaks))) / fps
        swing_times = [self._swing_durations(ankle, fps) for ankle in (left, right)]
        swing_times = [t for durations in swing_times for t in durations]

        return GaitParameters(
            step_length=float(np.mean(separation[peaks]) / body_height),
            cadence=60.0 / step_interval,
            swing_time=float(np.mean(swing_times)) if swing_times else None,
            available=True,
            source="sequence",
        )

    @staticmethod
    def _swing_durations(trajectory: np.ndarray, fps: float) -> List[float]:
        speed = np.linalg.norm(np.diff(trajectory, axis=0), axis=1) * fps
        if speed.size == 0 or np.max(speed) <= 0:
            return []

        moving = (speed > SWING_SPEED_FRACTION * np.max(speed)).astype(np.int8)
        edges = np.diff(np.concatenate([[0], moving, [0]]))
        starts = np.flatnonzero(edges == 1)
        ends = np.flatnonzero(edges == -1)
        return [float(n) / fps for n in (ends - starts)]


def _unit(value: float) -> float:
    return float(np.clip(value, 0.0, 1.0))
