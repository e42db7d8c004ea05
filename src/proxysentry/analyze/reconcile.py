"""Model reply parsing and merging with statistical findings."""

import json
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from ..models import AnalysisResult, InferredAnomaly, TimelineBucket, coerce_confidence
from .signals import StatisticalSignals


logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.5
SUMMARY_PREVIEW_CHARS = 200
UNPARSED_RECOMMENDATIONS = ['Manual review recommended']

STATISTICAL_ONLY_SUMMARY = 'AI analysis unavailable, using statistical analysis only'
STATISTICAL_ONLY_RECOMMENDATIONS = ['Enable AI analysis for enhanced threat detection']


@dataclass
class ModelFindings:
    """What could be recovered from one model reply."""

    summary: str
    anomalies: list[InferredAnomaly] = field(default_factory=list)
    confidence: float = FALLBACK_CONFIDENCE
    recommendations: list[str] = field(default_factory=list)
    parsed: bool = False  # False when no JSON object could be recovered


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` block in text, or None.

    Braces inside JSON string literals do not count toward nesting.
    """
    start = text.find('{')
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == '\\':
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find('{', start + 1)
    return None


def _unparsed_summary(reply: str) -> str:
    return reply[:SUMMARY_PREVIEW_CHARS] + '...'


def unparsed_findings(reply: str) -> ModelFindings:
    return ModelFindings(
        summary=_unparsed_summary(reply),
        anomalies=[],
        confidence=FALLBACK_CONFIDENCE,
        recommendations=list(UNPARSED_RECOMMENDATIONS),
        parsed=False,
    )


def _inferred_anomalies(raw) -> list[InferredAnomaly]:
    if not isinstance(raw, list):
        return []
    anomalies = []
    for item in raw:
        if not isinstance(item, dict):
            logger.debug(f'Skipping non-object anomaly in model reply: {item!r}')
            continue
        try:
            anomalies.append(InferredAnomaly.model_validate(item))
        except ValidationError as e:
            logger.debug(f'Skipping malformed anomaly in model reply: {e}')
    return anomalies


def parse_model_reply(reply: str) -> ModelFindings:
    """Recover structured findings from free-text model output.

    The model is not trusted to answer with JSON only, so the first balanced
    object is extracted. Missing or malformed fields fall back to the same
    values used when nothing can be parsed at all.
    """
    candidate = extract_json_object(reply)
    if candidate is None:
        logger.warning('Model reply contains no JSON object')
        return unparsed_findings(reply)

    try:
        data = json.loads(candidate)
    except (ValueError, RecursionError) as e:
        logger.warning(f'Failed to parse model reply JSON: {e}')
        return unparsed_findings(reply)

    summary = data.get('summary')
    if not isinstance(summary, str) or not summary.strip():
        summary = _unparsed_summary(reply)

    recommendations = data.get('recommendations')
    if isinstance(recommendations, list):
        recommendations = [str(item) for item in recommendations if item is not None]
    else:
        recommendations = list(UNPARSED_RECOMMENDATIONS)

    return ModelFindings(
        summary=summary,
        anomalies=_inferred_anomalies(data.get('anomalies')),
        confidence=coerce_confidence(data.get('confidence'), FALLBACK_CONFIDENCE),
        recommendations=recommendations,
        parsed=True,
    )


def reconcile(
    signals: StatisticalSignals,
    findings: ModelFindings,
    timeline: list[TimelineBucket],
    sample_size: int,
) -> AnalysisResult:
    """Merge statistical and model anomalies into one result.

    Statistical anomalies come first, then model anomalies. Nothing is
    deduplicated, so an IP flagged by both sources appears twice.
    """
    return AnalysisResult(
        anomalies=[*signals.anomalies, *findings.anomalies],
        summary=findings.summary,
        confidence=findings.confidence,
        patterns=signals.patterns,
        timeline=timeline,
        recommendations=findings.recommendations,
        mode='ai' if findings.parsed else 'ai_unparsed',
        sample_size=sample_size,
    )


def statistical_only_result(
    signals: StatisticalSignals,
    timeline: list[TimelineBucket],
    sample_size: int,
) -> AnalysisResult:
    """Result used when the model call fails, times out or is disabled."""
    return AnalysisResult(
        anomalies=list(signals.anomalies),
        summary=STATISTICAL_ONLY_SUMMARY,
        confidence=FALLBACK_CONFIDENCE,
        patterns=signals.patterns,
        timeline=timeline,
        recommendations=list(STATISTICAL_ONLY_RECOMMENDATIONS),
        mode='statistical_only',
        sample_size=sample_size,
    )
