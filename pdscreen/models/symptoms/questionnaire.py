"""Rule-based scoring of the self-reported symptom questionnaire"""

import logging
import numbers
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Mapping

import numpy as np

from pdscreen.core.exceptions import InvalidInputError
from pdscreen.core.results import AssessmentResult, STATUS_THRESHOLDS, score_to_status

logger = logging.getLogger(__name__)

# Keys sent by the web form
_CAMEL_CASE_KEYS = {
    'familyHistory': 'family_history',
    'hasFreeze': 'has_freeze',
    'hasSleepIssues': 'has_sleep_issues',
    'additionalNotes': 'notes',
}

# (exclusive lower age bound, penalty), checked in order
AGE_PENALTIES = ((60, 15), (50, 10), (40, 5))
FAMILY_HISTORY_PENALTY = 20
TREMOR_WEIGHT = 3
STIFFNESS_WEIGHT = 4
BALANCE_WEIGHT = 4
FREEZING_PENALTY = 15
SLEEP_PENALTY = 10

# Symptom ratings above this are named in the details
NOTABLE_RATING = 5


@dataclass(frozen=True)
class SymptomQuestionnaire:
    """Self-reported answers; symptom ratings are on a 0-10 scale"""
    age: int = 0
    family_history: bool = False
    tremor: int = 0
    stiffness: int = 0
    balance: int = 0
    has_freeze: bool = False
    has_sleep_issues: bool = False
    notes: str = ""

    def __post_init__(self):
        for name, upper in (('age', 130), ('tremor', 10), ('stiffness', 10), ('balance', 10)):
            value = _whole_number(name, getattr(self, name))
            if not 0 <= value <= upper:
                raise InvalidInputError(f"{name} must be within 0-{upper}, got {value}")
            # Frozen dataclass
            object.__setattr__(self, name, value)
        for name in ('family_history', 'has_freeze', 'has_sleep_issues'):
            if not isinstance(getattr(self, name), (bool, np.bool_)):
                raise InvalidInputError(f"{name} must be a boolean, got {getattr(self, name)!r}")
            object.__setattr__(self, name, bool(getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SymptomQuestionnaire':
        """
        Build from a form submission

        Accepts snake_case or the form's camelCase keys. Age may be a
        string; a blank age counts as 0.
        """
        values = {_CAMEL_CASE_KEYS.get(k, k): v for k, v in data.items()}
        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            logger.debug(f"Ignoring unknown questionnaire fields: {sorted(unknown)}")

        try:
            return cls(
                age=_parse_number(values.get('age', 0)),
                family_history=_parse_bool(values.get('family_history', False)),
                tremor=_parse_number(values.get('tremor', 0)),
                stiffness=_parse_number(values.get('stiffness', 0)),
                balance=_parse_number(values.get('balance', 0)),
                has_freeze=_parse_bool(values.get('has_freeze', False)),
                has_sleep_issues=_parse_bool(values.get('has_sleep_issues', False)),
                notes=str(values.get('notes', '') or ''),
            )
        except InvalidInputError:
            raise
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Invalid questionnaire: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_TRUE_STRINGS = ('true', 'yes', 'on', '1')
_FALSE_STRINGS = ('false', 'no', 'off', '0', '')


def _whole_number(name: str, value: Any) -> int:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise InvalidInputError(f"{name} must be a whole number, got {value!r}")
    if not isinstance(value, numbers.Integral) and not float(value).is_integer():
        raise InvalidInputError(f"{name} must be a whole number, got {value}")
    return int(value)


def _parse_number(value: Any) -> Any:
    """Form field to a number; a blank string counts as 0"""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
        return float(value)
    return value


def _parse_bool(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if value is None:
        return False
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    elif isinstance(value, numbers.Real) and value in (0, 1):
        return bool(value)
    raise InvalidInputError(f"expected a yes/no answer, got {value!r}")


class SymptomScorer:
    """
    Turn questionnaire answers into an ``AssessmentResult``.

    Penalty points accumulate from age, family history, rated symptoms
    and the yes/no symptoms; the score is ``100 - penalty`` clipped to
    0-100. Confidence is higher the further the score sits from a band
    edge, between 75 and 90.
    """

    modality = "symptoms"

    def penalty(self, answers: SymptomQuestionnaire) -> int:
        points = 0
        for bound, age_penalty in AGE_PENALTIES:
            if answers.age > bound:
                points += age_penalty
                break
        if answers.family_history:
            points += FAMILY_HISTORY_PENALTY
        points += answers.tremor * TREMOR_WEIGHT
        points += answers.stiffness * STIFFNESS_WEIGHT
        points += answers.balance * BALANCE_WEIGHT
        if answers.has_freeze:
            points += FREEZING_PENALTY
        if answers.has_sleep_issues:
            points += SLEEP_PENALTY
        return points

    def score(self, answers: Any) -> AssessmentResult:
        """
        Args:
            answers: ``SymptomQuestionnaire`` or a form dict

        Raises:
            InvalidInputError: on out-of-range or non-numeric answers
        """
        if not isinstance(answers, SymptomQuestionnaire):
            answers = SymptomQuestionnaire.from_dict(answers)

        score = min(100, max(0, 100 - self.penalty(answers)))
        return AssessmentResult(
            score=score,
            confidence=self.confidence(score),
            status=score_to_status(score),
            details=self.describe(answers),
        )

    @staticmethod
    def confidence(score: int) -> int:
        """75 at a band edge rising to 90 ten points away from the nearest edge"""
        edges = [bound for bound, _ in STATUS_THRESHOLDS]
        distance = min(abs(score - edge) for edge in edges)
        return int(round(75 + 15 * min(1.0, distance / 10.0)))

    @staticmethod
    def risk_factors(answers: SymptomQuestionnaire) -> List[str]:
        factors = []
        if answers.tremor > NOTABLE_RATING:
            factors.append("significant tremor")
        if answers.stiffness > NOTABLE_RATING:
            factors.append("muscle stiffness")
        if answers.balance > NOTABLE_RATING:
            factors.append("balance issues")
        if answers.has_freeze:
            factors.append("freezing episodes")
        if answers.has_sleep_issues:
            factors.append("sleep disturbances")
        if answers.family_history:
            factors.append("family history of Parkinson's")
        return factors

    def describe(self, answers: SymptomQuestionnaire) -> str:
        factors = self.risk_factors(answers)
        if not factors:
            return "Based on symptom analysis, no key risk factors were reported."
        return f"Based on symptom analysis, key risk factors include: {', '.join(factors)}."

    def __call__(self, answers: Any) -> AssessmentResult:
        return self.score(answers)
