"""Model request construction from a record sample and pattern tables."""

import json

from ..inference import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, ModelRequest
from ..models import NormalizedRecord, PatternTables


SYSTEM_PROMPT = (
    'You are a cybersecurity expert analyzing web proxy logs. Identify potential security threats, '
    'anomalies, and suspicious activities. Provide confidence scores (0-1) and clear explanations.'
)

PREVIEW_RECORDS = 20
PREVIEW_FIELDS = ('timestamp', 'source_ip', 'url', 'status_code', 'user_agent', 'method')
TOP_IPS = 10

OUTPUT_SCHEMA = """{
  "summary": "Brief summary of findings",
  "anomalies": [
    {
      "type": "anomaly_type",
      "description": "Description of the anomaly",
      "confidence": 0.85,
      "reason": "Explanation of why this is anomalous",
      "severity": "high|medium|low",
      "affected_ips": ["ip1", "ip2"],
      "recommendations": ["action1", "action2"]
    }
  ],
  "confidence": 0.8,
  "recommendations": ["general recommendations"]
}"""


def record_preview(record: NormalizedRecord) -> dict:
    dumped = record.model_dump(mode='json', include=set(PREVIEW_FIELDS))
    return {name: dumped[name] for name in PREVIEW_FIELDS}


def _join_counts(items, suffix: str = '') -> str:
    return ', '.join(f'{key}{suffix}: {count}' for key, count in items)


def build_analysis_prompt(sample: list[NormalizedRecord], patterns: PatternTables) -> str:
    """Render the user instruction for the model.

    Embeds the first PREVIEW_RECORDS records of the sample (reduced to a few
    fields), the top IP frequencies, full status and hour distributions and
    the JSON shape the reply must follow.
    """
    previews = [record_preview(record) for record in sample[:PREVIEW_RECORDS]]
    top_ips = list(patterns.ip_frequency.items())[:TOP_IPS]

    return f"""
Analyze these web proxy log entries for security threats and anomalies:

Log Entries ({len(sample)} total, showing first {min(len(sample), PREVIEW_RECORDS)}):
{json.dumps(previews, indent=2)}

Statistical Patterns:
- IP Frequency: {_join_counts(top_ips)}
- Status Codes: {_join_counts(patterns.status_codes.items())}
- Time Distribution: {_join_counts(patterns.time_patterns.items(), suffix='h')}

Please identify:
1. Potential security threats (DDoS, scanning, data exfiltration, etc.)
2. Unusual patterns or behaviors
3. Suspicious IP addresses or user agents
4. Anomalous request patterns

Provide your response in JSON format:
{OUTPUT_SCHEMA}
"""


def build_model_request(
    sample: list[NormalizedRecord],
    patterns: PatternTables,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> ModelRequest:
    return ModelRequest(
        system=SYSTEM_PROMPT,
        user=build_analysis_prompt(sample, patterns),
        temperature=DEFAULT_TEMPERATURE,
        max_tokens=max_tokens,
    )
