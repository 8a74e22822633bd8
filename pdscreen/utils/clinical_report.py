import numpy as np
from typing import Dict, Any, Optional
from pathlib import Path
import matplotlib.pyplot as plt
import seaborn as sns
from datetime import datetime
import html
import json
import logging

from pdscreen.core.results import STATUS_THRESHOLDS

logger = logging.getLogger(__name__)

DISCLAIMER = (
    "This screening is a wellness and education aid. It is not a validated "
    "diagnostic and does not replace an evaluation by a neurologist."
)

STATUS_COLORS = {
    'healthy': '#5cb85c',
    'mild': '#f0ad4e',
    'moderate': '#e67e22',
    'severe': '#d9534f',
}


class AssessmentReportGenerator:
    """Generate readable screening reports from an assessment session"""

    def generate_report(self,
                        session: Any,
                        patient_info: Optional[Dict[str, Any]] = None,
                        save_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Build a report dict from an ``AssessmentSession``

        When ``save_path`` is a directory the score and risk figures are
        written there as well.
        """
        overall = session.overall()
        report = {
            'timestamp': datetime.now().isoformat(),
            'patient_info': patient_info or {},
            'overall': overall.to_dict() if overall is not None else None,
            'modalities': self._modality_sections(session),
            'disclaimer': DISCLAIMER,
        }

        if save_path and report['modalities']:
            self._create_visualizations(report, save_path)

        return report

    def _modality_sections(self, session: Any) -> Dict[str, Any]:
        sections = {}
        for name, result in session.results().items():
            record = session.record(name)
            section = result.to_dict()

            features = getattr(record, 'features', None)
            if features is not None and hasattr(features, 'scalar_features'):
                section['features'] = {k: round(v, 4) for k, v in features.scalar_features().items()}
                section['risk_indices'] = self._risk_indices(session, name, features)
            sections[name] = section
        return sections

    def _risk_indices(self, session: Any, modality: str, features: Any) -> Dict[str, float]:
        """Per-feature risk indices when the modality's classifier is calibrated"""
        classifier = session.classifier(modality)
        calibration = getattr(classifier, 'calibration', None)
        if calibration is None:
            return {}
        return {k: round(v, 4) for k, v in calibration.risk_indices(features).items()}

    def _create_visualizations(self, report: Dict[str, Any], save_path: str):
        """Bar chart of modality scores and heatmap of risk indices"""
        save_dir = Path(save_path)
        save_dir.mkdir(parents=True, exist_ok=True)

        fig, axes = plt.subplots(1, 2, figsize=(14, 6))

        ax = axes[0]
        modalities = list(report['modalities'].keys())
        scores = [report['modalities'][m]['score'] for m in modalities]
        colors = [STATUS_COLORS[report['modalities'][m]['status']] for m in modalities]
        ax.bar(modalities, scores, color=colors)
        for bound, status in STATUS_THRESHOLDS:
            ax.axhline(bound, color='gray', linestyle='--', linewidth=0.8)
            ax.text(len(modalities) - 0.5, bound + 1, status.value, ha='right', fontsize=8)
        ax.set_ylim(0, 100)
        ax.set_title('Modality Scores')
        ax.set_ylabel('Score (higher is healthier)')

        ax = axes[1]
        values, labels = [], []
        for modality, section in report['modalities'].items():
            for name, value in section.get('risk_indices', {}).items():
                values.append(value)
                labels.append(f"{modality}_{name}")

        if values:
            sns.heatmap(
                np.array(values).reshape(-1, 1),
                ax=ax,
                yticklabels=labels,
                xticklabels=['risk'],
                cmap='RdYlGn_r',
                vmin=0,
                vmax=1,
                annot=True,
                fmt='.2f'
            )
            ax.set_title('Feature Risk Indices')
        else:
            ax.axis('off')

        plt.tight_layout()
        figure_path = save_dir / "assessment_report.png"
        plt.savefig(figure_path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Report figure saved to {figure_path}")

    def export_to_json(self, report: Dict[str, Any], filepath: str):
        """Export report to JSON format"""
        with open(filepath, 'w') as f:
            json.dump(report, f, indent=2, default=str)

    def export_to_html(self, report: Dict[str, Any], filepath: str):
        """Export report to HTML format"""
        rows = []
        for modality, section in report['modalities'].items():
            rows.append(
                "<tr>"
                f"<td>{html.escape(modality)}</td>"
                f"<td>{section['score']}</td>"
                f"<td class=\"status-{section['status']}\">{section['status']}</td>"
                f"<td>{section['confidence']}%</td>"
                f"<td>{html.escape(section['details'])}</td>"
                "</tr>"
            )

        overall = report.get('overall')
        if overall is not None:
            overall_html = (
                f"<p><strong>Score:</strong> {overall['score']} "
                f"(<span class=\"status-{overall['status']}\">{overall['status']}</span>, "
                f"confidence {overall['confidence']}%)</p>"
                f"<div class=\"recommendation\">{html.escape(overall['recommendation'])}</div>"
            )
        else:
            overall_html = "<p>No modality has been assessed yet.</p>"

        styles = "\n".join(
            f"        .status-{status} {{ color: {color}; font-weight: bold; }}"
            for status, color in STATUS_COLORS.items()
        )

        content = f"""<!DOCTYPE html>
<html>
<head>
    <title>Parkinson's Screening Report</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; }}
        h1, h2 {{ color: #333; }}
{styles}
        table {{ border-collapse: collapse; width: 100%; margin: 20px 0; }}
        th, td {{ border: 1px solid #ddd; padding: 12px; text-align: left; }}
        th {{ background-color: #f2f2f2; }}
        .recommendation {{
            background-color: #e7f3ff;
            padding: 10px;
            margin: 10px 0;
            border-left: 4px solid #2196F3;
        }}
    </style>
</head>
<body>
    <h1>Parkinson's Screening Report</h1>
    <p><strong>Generated:</strong> {report['timestamp']}</p>

    <h2>Overall Assessment</h2>
    {overall_html}

    <h2>Modalities</h2>
    <table>
        <tr><th>Modality</th><th>Score</th><th>Status</th><th>Confidence</th><th>Details</th></tr>
        {''.join(rows)}
    </table>

    <p><em>{html.escape(report['disclaimer'])}</em></p>
</body>
</html>
"""
        with open(filepath, 'w') as f:
            f.write(content)
