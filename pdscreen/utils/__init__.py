"""Reporting utilities"""

from pdscreen.utils.clinical_report import AssessmentReportGenerator

__all__ = ['AssessmentReportGenerator']
