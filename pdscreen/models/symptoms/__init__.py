"""Symptom questionnaire scoring"""

from pdscreen.models.symptoms.questionnaire import SymptomQuestionnaire, SymptomScorer

__all__ = [
    'SymptomQuestionnaire',
    'SymptomScorer'
]
