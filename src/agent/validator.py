"""Line-level quality validation of Braille output.

Cleaned text and Braille are paired line by line and scored in batches by the
completion service. Validation never blocks the pipeline: anything that cannot
be scored gets a default score and a manual-review note.
"""

import logging
import math
import re

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from src.agent.completion import CompletionError, CompletionService, RateLimitExceededError
from src.agent.config import AgentConfig
from src.models.schemas import LineValidation, Notifier

logger = logging.getLogger(__name__)

# Constants
DEFAULT_LINE_SCORE = 85
HIGH_ACCURACY_THRESHOLD = 95
NEEDS_REVIEW_THRESHOLD = 85
MANUAL_REVIEW_ISSUE = "Automatic validation unavailable - needs manual review"
DISABLED_NOTE = "Quality validation skipped - AI processing disabled. Manual review recommended."
STAGE = "validation"

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


class LineScore(BaseModel):
    """One entry of the scorer's JSON reply."""

    line: int
    accuracy: int
    issues: list[str] = Field(default_factory=list)

    @field_validator("accuracy", mode="before")
    @classmethod
    def clamp_accuracy(cls, v: object) -> int:
        """Round and clamp scores into 0-100."""
        if isinstance(v, bool) or not isinstance(v, int | float | str):
            raise ValueError(f"Accuracy must be a number, got {v!r}")
        try:
            value = float(v)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Accuracy must be a number, got {v!r}") from e
        if not math.isfinite(value):
            raise ValueError(f"Accuracy must be finite, got {v!r}")
        return max(0, min(100, round(value)))


_line_scores = TypeAdapter(list[LineScore])


class QualityValidationResult(BaseModel):
    """Outcome of quality validation.

    Attributes:
        accuracy_score: Mean of the per-line scores, rounded.
        report: Fixed-format summary text.
        line_validations: Per-line scores (first lines only when sampled).
    """

    accuracy_score: int = Field(ge=0, le=100)
    report: str
    line_validations: list[LineValidation] = Field(default_factory=list)


def mean_accuracy(validations: list[LineValidation]) -> int:
    """Arithmetic mean of line scores rounded half up."""
    if not validations:
        return 100
    mean = sum(v.accuracy for v in validations) / len(validations)
    return math.floor(mean + 0.5)


def quality_label(accuracy: int) -> str:
    if accuracy >= HIGH_ACCURACY_THRESHOLD:
        return "Excellent"
    if accuracy >= NEEDS_REVIEW_THRESHOLD:
        return "Good"
    return "Needs Improvement"


def build_report(validations: list[LineValidation], accuracy: int) -> str:
    """Render the summary report for a set of line validations."""
    high = sum(1 for v in validations if v.accuracy >= HIGH_ACCURACY_THRESHOLD)
    review = sum(1 for v in validations if v.accuracy < NEEDS_REVIEW_THRESHOLD)
    return "\n".join(
        [
            "Braille Quality Validation Report",
            "",
            f"Overall accuracy: {accuracy}% ({quality_label(accuracy)})",
            f"Total lines validated: {len(validations)}",
            f"High accuracy lines (>={HIGH_ACCURACY_THRESHOLD}%): {high}",
            f"Lines needing review (<{NEEDS_REVIEW_THRESHOLD}%): {review}",
        ]
    )


def parse_line_scores(content: str) -> dict[int, LineScore]:
    """Parse the scorer's reply into scores keyed by line number.

    Raises:
        ValueError: If the reply holds no valid JSON array of scores.
    """
    match = _JSON_ARRAY.search(content)
    if not match:
        raise ValueError("No JSON array in validation response")
    return {score.line: score for score in _line_scores.validate_json(match.group(0))}


def pair_lines(cleaned_text: str, braille_text: str, limit: int) -> list[tuple[int, str, str]]:
    """Pair cleaned and Braille lines by position, up to ``limit`` lines."""
    if not cleaned_text and not braille_text:
        return []
    originals = cleaned_text.split("\n")
    brailles = braille_text.split("\n")
    count = min(max(len(originals), len(brailles)), limit)
    return [
        (
            i + 1,
            originals[i] if i < len(originals) else "",
            brailles[i] if i < len(brailles) else "",
        )
        for i in range(count)
    ]


def _build_prompt(batch: list[tuple[int, str, str]]) -> str:
    pairs = "\n\n".join(f"Line {number}:\nOriginal: {original}\nBraille: {braille}" for number, original, braille in batch)
    return (
        "You are a quality validator for Grade 1 Braille transliteration.\n\n"
        "For each numbered line below, compare the original text with its Braille "
        "rendering and score how faithfully the Braille represents it from 0 to 100. "
        "List any issues you find.\n\n"
        "Respond with only a JSON array, one object per line, in this shape:\n"
        '[{"line": 1, "accuracy": 97, "issues": ["..."]}]\n\n'
        f"{pairs}"
    )


def _default(number: int, original: str, braille: str, issues: list[str] | None = None) -> LineValidation:
    return LineValidation(
        line_number=number,
        original=original,
        braille=braille,
        accuracy=DEFAULT_LINE_SCORE,
        issues=issues or [],
    )


class QualityValidator:
    """Scores Braille output line by line through a completion service."""

    def __init__(self, completion: CompletionService, config: AgentConfig) -> None:
        self._completion = completion
        self._config = config

    async def validate(
        self,
        cleaned_text: str,
        braille_text: str,
        notify: Notifier | None = None,
    ) -> QualityValidationResult:
        """Validate Braille output against the cleaned text.

        Without an AI service every sampled line gets the default score, and
        the overall score is the default too.

        Args:
            cleaned_text: Text the Braille was produced from.
            braille_text: Braille output.
            notify: Live-update hook taking (stage, message, detail).

        Returns:
            QualityValidationResult with score, report and line validations.
        """
        pairs = pair_lines(cleaned_text, braille_text, self._config.max_validation_lines)

        if not self._completion.enabled:
            validations = [_default(*pair) for pair in pairs]
            report = f"{build_report(validations, DEFAULT_LINE_SCORE)}\n\n{DISABLED_NOTE}"
            return QualityValidationResult(
                accuracy_score=DEFAULT_LINE_SCORE,
                report=report,
                line_validations=validations,
            )

        scored: dict[int, LineValidation] = {}
        pending: list[tuple[int, str, str]] = []
        for number, original, braille in pairs:
            if not original.strip() and not braille.strip():
                scored[number] = LineValidation(line_number=number, original=original, braille=braille, accuracy=100)
            else:
                pending.append((number, original, braille))

        size = self._config.validation_batch_size
        batches = [pending[i : i + size] for i in range(0, len(pending), size)]
        if notify:
            notify(STAGE, "Validating Braille quality", f"{len(pairs)} lines in {len(batches)} batches")

        rate_limited = False
        for batch in batches:
            if rate_limited:
                results = [_default(*pair, issues=[MANUAL_REVIEW_ISSUE]) for pair in batch]
            else:
                try:
                    results = await self._score_batch(batch)
                except RateLimitExceededError as e:
                    logger.warning(f"Rate limit reached during validation, using default scores: {e}")
                    rate_limited = True
                    results = [_default(*pair, issues=[MANUAL_REVIEW_ISSUE]) for pair in batch]
            for validation in results:
                scored[validation.line_number] = validation

        validations = [scored[number] for number, _, _ in pairs]
        accuracy = mean_accuracy(validations)
        report = build_report(validations, accuracy)
        if rate_limited:
            report += "\n\nAI rate limit reached - some lines were not validated. Manual review recommended."

        if notify:
            notify(STAGE, "Quality validation complete", f"Overall accuracy {accuracy}%")

        return QualityValidationResult(accuracy_score=accuracy, report=report, line_validations=validations)

    async def _score_batch(self, batch: list[tuple[int, str, str]]) -> list[LineValidation]:
        span = f"{batch[0][0]}-{batch[-1][0]}"
        try:
            content = await self._completion.complete(
                _build_prompt(batch),
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
            )
        except RateLimitExceededError:
            raise
        except CompletionError as e:
            logger.warning(f"Validation batch for lines {span} failed: {e}")
            return [_default(*pair, issues=[MANUAL_REVIEW_ISSUE]) for pair in batch]

        try:
            scores = parse_line_scores(content)
        except Exception as e:
            logger.warning(f"Unusable validation reply for lines {span}: {e}")
            return [_default(*pair, issues=[MANUAL_REVIEW_ISSUE]) for pair in batch]

        results: list[LineValidation] = []
        for number, original, braille in batch:
            score = scores.get(number)
            if score is None:
                results.append(_default(number, original, braille, issues=[MANUAL_REVIEW_ISSUE]))
            else:
                results.append(
                    LineValidation(
                        line_number=number,
                        original=original,
                        braille=braille,
                        accuracy=score.accuracy,
                        issues=score.issues,
                    )
                )
        return results
