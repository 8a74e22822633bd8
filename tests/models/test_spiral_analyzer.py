import pytest
import numpy as np
import cv2

from pdscreen.core.exceptions import InvalidInputError
from pdscreen.models.spiral.spiral_analyzer import (
    SpiralCalibration,
    SpiralFeatureExtractor,
    SpiralFeatures,
)


@pytest.fixture
def extractor(config):
    return SpiralFeatureExtractor(config)


class TestSpiralFeatureExtractor:
    def test_features_bounded(self, extractor, spiral_image):
        features = extractor.extract(spiral_image)
        assert isinstance(features, SpiralFeatures)
        for name, value in features.scalar_features().items():
            assert 0.0 <= value <= 1.0, name

    def test_deterministic(self, extractor, make_spiral):
        """Identical images give identical features"""
        first = extractor.extract(make_spiral(wobble=1.5, seed=3))
        second = extractor.extract(make_spiral(wobble=1.5, seed=3))
        assert first == second

    def test_path_and_bytes_match_array(self, extractor, spiral_image, tmp_path):
        expected = extractor.extract(spiral_image)

        ok, buffer = cv2.imencode('.png', spiral_image)
        assert ok
        assert extractor.extract(buffer.tobytes()) == expected

        path = tmp_path / "spiral.png"
        cv2.imwrite(str(path), spiral_image)
        assert extractor.extract(path) == expected

    def test_blank_page_is_degenerate(self, extractor):
        blank = np.full((224, 224, 3), 255, dtype=np.uint8)
        features = extractor.extract(blank)
        assert features == extractor.degenerate_default()
        assert features.speed == 1.0
        assert features.tremor == 0.0

    def test_gray_alpha_page_is_degenerate(self, extractor):
        blank = np.full((64, 64, 2), 255, dtype=np.uint8)
        assert extractor.extract(blank) == extractor.degenerate_default()

    def test_noise_is_rougher_than_spiral(self, extractor, spiral_image):
        rng = np.random.default_rng(0)
        noise = rng.integers(0, 256, size=(224, 224, 3), dtype=np.uint8)
        assert extractor.extract(noise).smoothness > extractor.extract(spiral_image).smoothness

    def test_dense_strokes_lower_speed(self, extractor, make_spiral):
        sparse = extractor.extract(make_spiral(turns=2))
        dense = extractor.extract(make_spiral(turns=10))
        assert dense.speed < sparse.speed

    def test_calibration_scales_features(self, config, spiral_image):
        default = SpiralFeatureExtractor(config).extract(spiral_image)
        strict = SpiralFeatureExtractor(
            config, calibration=SpiralCalibration(tremor_norm=1000.0)
        ).extract(spiral_image)
        assert strict.tremor < default.tremor or default.tremor == 0.0

    @pytest.mark.parametrize("bad", [
        b"not an image",
        np.zeros((0, 0), dtype=np.uint8),
        np.zeros((64, 64, 5), dtype=np.uint8),
    ])
    def test_invalid_input(self, extractor, bad):
        with pytest.raises(InvalidInputError):
            extractor.extract(bad)

    def test_to_dict(self, extractor, spiral_image):
        d = extractor.extract(spiral_image).to_dict()
        assert set(d) == {'tremor', 'irregularity', 'pressure', 'speed', 'smoothness'}


def test_gradient_magnitude_unit_step():
    gray = np.zeros((16, 16), dtype=np.float32)
    gray[:, 8:] = 1.0
    magnitude = SpiralFeatureExtractor.gradient_magnitude(gray)
    assert magnitude.max() == pytest.approx(1.0, abs=1e-5)
