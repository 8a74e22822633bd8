import asyncio
import json
import pytest

from pdscreen.session import AssessmentSession
from pdscreen.utils.clinical_report import AssessmentReportGenerator, DISCLAIMER


@pytest.fixture
def assessed_session(config, spiral_image, keypoints, severe_symptoms):
    session = AssessmentSession(config)

    async def run():
        await session.submit_spiral(spiral_image)
        await session.submit_posture(keypoints=keypoints)
        await session.submit_symptoms(severe_symptoms)

    asyncio.run(run())
    return session


@pytest.fixture
def generator():
    return AssessmentReportGenerator()


def test_generate_report(generator, assessed_session):
    report = generator.generate_report(assessed_session, patient_info={'id': 'P-001'})

    assert report['patient_info'] == {'id': 'P-001'}
    assert report['overall']['status'] == 'severe'
    assert report['disclaimer'] == DISCLAIMER
    assert set(report['modalities']) == {'spiral', 'posture', 'symptoms'}

    spiral = report['modalities']['spiral']
    assert set(spiral['features']) == {'tremor', 'irregularity', 'pressure', 'speed', 'smoothness'}
    assert set(spiral['risk_indices']) == set(spiral['features'])
    assert all(0.0 <= v <= 1.0 for v in spiral['risk_indices'].values())

    # Questionnaire answers are not feature vectors
    assert 'features' not in report['modalities']['symptoms']


def test_empty_session_report(generator, config, tmp_path):
    report = generator.generate_report(AssessmentSession(config), save_path=tmp_path / "figures")
    assert report['overall'] is None
    assert report['modalities'] == {}
    assert not (tmp_path / "figures").exists()


def test_report_figure(generator, assessed_session, tmp_path):
    generator.generate_report(assessed_session, save_path=str(tmp_path))
    assert (tmp_path / "assessment_report.png").stat().st_size > 0


def test_export_json(generator, assessed_session, tmp_path):
    report = generator.generate_report(assessed_session)
    path = tmp_path / "report.json"
    generator.export_to_json(report, path)

    with open(path) as f:
        loaded = json.load(f)
    assert loaded['overall'] == report['overall']


def test_export_html_escapes_text(generator, assessed_session, tmp_path):
    report = generator.generate_report(assessed_session)
    report['modalities']['spiral']['details'] = "<script>alert(1)</script>"
    path = tmp_path / "report.html"
    generator.export_to_html(report, path)

    content = path.read_text()
    assert "<script>" not in content
    assert "&lt;script&gt;" in content
    assert "Parkinson&#x27;s" in content or "Parkinson's" in content
    assert 'class="status-severe"' in content
