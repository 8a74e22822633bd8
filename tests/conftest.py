import pytest
import numpy as np
import cv2

from pdscreen.core.base import ScreeningConfig


def draw_spiral(size: int = 224, turns: int = 4, wobble: float = 0.0, seed: int = 0) -> np.ndarray:
    """Archimedean spiral drawn in black on a white BGR canvas"""
    rng = np.random.default_rng(seed)
    canvas = np.full((size, size, 3), 255, dtype=np.uint8)
    t = np.linspace(0, turns * 2 * np.pi, 800)
    r = 5 + t * (size * 0.4 - 5) / (turns * 2 * np.pi)
    r = r + wobble * rng.standard_normal(t.shape)
    points = np.stack([size / 2 + r * np.cos(t), size / 2 + r * np.sin(t)], axis=1)
    cv2.polylines(canvas, [points.astype(np.int32).reshape(-1, 1, 2)], False, (0, 0, 0), 2)
    return canvas


def sine_wave(freq: float = 200.0, duration: float = 1.0, sr: int = 16000,
              amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(duration * sr)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def standing_keypoints(width: float = 224.0, height: float = 224.0) -> dict:
    """Upright, symmetric front-facing pose"""
    return {
        'nose': [width * 0.5, height * 0.1],
        'left_shoulder': [width * 0.35, height * 0.25],
        'right_shoulder': [width * 0.65, height * 0.25],
        'left_elbow': [width * 0.25, height * 0.4],
        'right_elbow': [width * 0.75, height * 0.4],
        'left_wrist': [width * 0.2, height * 0.55],
        'right_wrist': [width * 0.8, height * 0.55],
        'left_hip': [width * 0.4, height * 0.6],
        'right_hip': [width * 0.6, height * 0.6],
        'left_knee': [width * 0.38, height * 0.8],
        'right_knee': [width * 0.62, height * 0.8],
        'left_ankle': [width * 0.36, height * 0.95],
        'right_ankle': [width * 0.64, height * 0.95],
    }


@pytest.fixture
def config():
    """Deterministic config: no cosmetic score jitter, CPU only"""
    # Cold librosa calls can be slow on CI machines
    return ScreeningConfig(cosmetic_jitter=False, device="cpu", extraction_timeout=30.0)


@pytest.fixture
def spiral_image():
    return draw_spiral()


@pytest.fixture
def make_spiral():
    return draw_spiral


@pytest.fixture
def sine_200hz():
    return sine_wave(200.0)


@pytest.fixture
def make_sine():
    return sine_wave


@pytest.fixture
def keypoints():
    return standing_keypoints()


@pytest.fixture
def make_keypoints():
    return standing_keypoints


@pytest.fixture
def severe_symptoms():
    """Questionnaire adding up to a penalty of 136"""
    return {
        'age': '65',
        'familyHistory': True,
        'tremor': 8,
        'stiffness': 7,
        'balance': 6,
        'hasFreeze': True,
        'hasSleepIssues': True,
    }
