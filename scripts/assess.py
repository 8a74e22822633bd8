#!/usr/bin/env python3
import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
sys.path.append(str(Path(__file__).parent.parent))

from pdscreen.core.base import ScreeningConfig
from pdscreen.core.exceptions import ScreeningError
from pdscreen.session import AssessmentSession
from pdscreen.utils.clinical_report import AssessmentReportGenerator

logger = logging.getLogger("pdscreen.assess")


def load_json(path: str):
    with open(path, 'r') as f:
        return json.load(f)


async def run_assessment(session: AssessmentSession, args) -> int:
    submissions = []
    if args.spiral:
        submissions.append(('spiral', session.submit_spiral(args.spiral)))
    if args.voice:
        submissions.append(('voice', session.submit_voice(args.voice)))
    if args.posture or args.keypoints:
        keypoints = load_json(args.keypoints) if args.keypoints else None
        submissions.append(('posture', session.submit_posture(args.posture, keypoints=keypoints)))
    if args.symptoms:
        submissions.append(('symptoms', session.submit_symptoms(load_json(args.symptoms))))

    outcomes = await asyncio.gather(*(s for _, s in submissions), return_exceptions=True)

    failures = 0
    for (modality, _), outcome in zip(submissions, outcomes):
        if isinstance(outcome, ScreeningError):
            logger.error(f"{modality}: {outcome}")
            failures += 1
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            print(f"{modality:>9}: {outcome.status.value:<9} score={outcome.score:3d} "
                  f"confidence={outcome.confidence:3d}  {outcome.details}")
    return failures


def main(args):
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s'
    )

    config = ScreeningConfig.load(args.config) if args.config else ScreeningConfig()
    if args.seed is not None:
        config.random_seed = args.seed
    if args.no_jitter:
        config.cosmetic_jitter = False

    session = AssessmentSession(config)
    failures = asyncio.run(run_assessment(session, args))

    overall = session.overall()
    if overall is None:
        print("\nNo modality was assessed.")
        return 1

    print(f"\nOverall: {overall.status.value} (score {overall.score}, "
          f"confidence {overall.confidence})")
    print(overall.recommendation)

    if args.report_dir:
        report_dir = Path(args.report_dir)
        report_dir.mkdir(parents=True, exist_ok=True)
        generator = AssessmentReportGenerator()
        report = generator.generate_report(session, save_path=str(report_dir))
        generator.export_to_json(report, str(report_dir / "assessment_report.json"))
        generator.export_to_html(report, str(report_dir / "assessment_report.html"))
        print(f"Report written to {report_dir}")

    return 1 if failures else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a Parkinson's screening assessment")
    parser.add_argument('--config', type=str, default=None,
                       help='Path to a YAML or JSON config file')
    parser.add_argument('--spiral', type=str, help='Spiral drawing image')
    parser.add_argument('--voice', type=str, help='Voice recording (wav, flac, ...)')
    parser.add_argument('--posture', type=str, help='Standing posture photograph')
    parser.add_argument('--keypoints', type=str,
                       help='JSON file of posture keypoints (name -> [x, y])')
    parser.add_argument('--symptoms', type=str,
                       help='JSON file with questionnaire answers')
    parser.add_argument('--report-dir', type=str, default=None,
                       help='Directory for JSON, HTML and figure reports')
    parser.add_argument('--seed', type=int, default=None,
                       help='Seed for cosmetic score jitter')
    parser.add_argument('--no-jitter', action='store_true',
                       help='Report band-centre scores')
    parser.add_argument('--verbose', action='store_true',
                       help='Debug logging')
    args = parser.parse_args()

    sys.exit(main(args))
