"""Pydantic models for parsed records and analysis results"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


Severity = Literal['low', 'medium', 'high']
AnalysisMode = Literal['ai', 'ai_unparsed', 'statistical_only', 'no_entries']


def coerce_confidence(value: Any, default: float) -> float:
    """Turn an untrusted confidence value into a float in [0, 1].

    Non-numeric values (and booleans) give ``default``; numbers are clamped.
    """
    if isinstance(value, bool):
        return default
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    if confidence != confidence:  # NaN
        return default
    return min(1.0, max(0.0, confidence))


class NormalizedRecord(BaseModel):
    """One log event in the common record shape.

    Every parsed record keeps the original line in ``raw_data`` for audit.
    All other fields are optional because sources omit them freely.
    Records are immutable; marking a record anomalous produces a copy.
    """

    model_config = ConfigDict(frozen=True)

    line_number: int | None = Field(None, description="1-based line number in the source file")
    timestamp: datetime | None = Field(None, description="Event start time (timezone-aware, UTC)")
    source_ip: str | None = Field(None, description="Client IP address")
    destination_ip: str | None = Field(None, description="Origin/destination IP address")
    url: str | None = Field(None, description="Full request URL synthesized from host and URI")
    user_agent: str | None = Field(None, description="Client user agent")
    status_code: int | None = Field(None, description="HTTP status code")
    bytes_sent: int | None = Field(None, description="Response bytes")
    method: str | None = Field(None, description="HTTP method")
    country: str | None = Field(None, description="Client country code")
    asn: str | None = Field(None, description="Client autonomous system number")
    action: str | None = Field(None, description="Proxy action taken")
    policy_name: str | None = Field(None, description="Matched proxy policy")
    raw_data: str = Field(..., description="Original log line")
    original_entry: dict[str, Any] = Field(default_factory=dict, description="Parsed structured form of the line")

    # Set by mark_anomalous_records after an analysis run
    is_anomaly: bool = Field(False, description="Whether a found anomaly matches this record")
    anomaly_score: float | None = Field(None, description="Highest confidence among matching anomalies")
    anomaly_reason: str | None = Field(None, description="Reason of the highest-confidence matching anomaly")

    @field_validator('timestamp')
    @classmethod
    def _timestamp_in_utc(cls, value: datetime | None) -> datetime | None:
        # Naive values are UTC, never host local time
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class ParserInfo(BaseModel):
    """Parser metadata"""

    log_type: str
    supported_formats: list[str] = Field(default_factory=list)
    version: str = '1.0.0'


class ParseMetadata(BaseModel):
    """Summary of one parse run over a file."""

    total_lines: int = Field(..., description="Physical lines in the content, blanks included")
    valid_entries: int = Field(..., description="Lines that produced a record")
    invalid_entries: int = Field(..., description="Non-blank lines rejected by the parser")
    filename: str
    log_type: str | None = Field(None, description="Log type of the parser used (None when content was blank)")
    parse_date: datetime


class ParseResult(BaseModel):
    """Records and metadata produced by parsing a whole file."""

    parser: ParserInfo | None = None
    records: list[NormalizedRecord] = Field(default_factory=list)
    metadata: ParseMetadata

    def to_cli(self) -> str:
        """Format parse summary for CLI output"""
        meta = self.metadata
        lines = [
            f"File: {meta.filename}",
            f"Log type: {meta.log_type or '-'}",
            f"Total lines: {meta.total_lines}",
            f"Valid entries: {meta.valid_entries}",
            f"Invalid entries: {meta.invalid_entries}",
        ]
        return "\n".join(lines)


class PatternTables(BaseModel):
    """Frequency tables built in a single pass over all records.

    Tables preserve first-seen order so anomaly output is reproducible.
    """

    ip_frequency: dict[str, int] = Field(default_factory=dict)
    status_codes: dict[int, int] = Field(default_factory=dict)
    user_agents: dict[str, int] = Field(default_factory=dict)
    time_patterns: dict[int, int] = Field(default_factory=dict, description="Hour of day (0-23, UTC) -> count")
    url_patterns: dict[str, int] = Field(default_factory=dict, description="URL host -> count")


class HighFrequencyIPAnomaly(BaseModel):
    type: Literal['high_frequency_ip'] = 'high_frequency_ip'
    ip: str
    count: int
    percentage: float = Field(..., description="Share of all records, percent, 2 decimals")
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str


class UnusualStatusCodeAnomaly(BaseModel):
    type: Literal['unusual_status_code'] = 'unusual_status_code'
    status_code: int
    count: int
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str


class SuspiciousUserAgentAnomaly(BaseModel):
    type: Literal['suspicious_user_agent'] = 'suspicious_user_agent'
    user_agent: str
    count: int
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str


StatisticalAnomaly = Annotated[
    Union[HighFrequencyIPAnomaly, UnusualStatusCodeAnomaly, SuspiciousUserAgentAnomaly],
    Field(discriminator='type'),
]


class InferredAnomaly(BaseModel):
    """Anomaly reported by the language model.

    The model reply is untrusted, so every field has a default and
    malformed values are replaced instead of rejected.
    """

    type: str = 'unknown'
    description: str = ''
    reason: str = ''
    confidence: float = 0.5
    severity: Severity = 'medium'
    affected_ips: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator('type', mode='before')
    @classmethod
    def _coerce_type(cls, value):
        if value is None or value == '':
            return 'unknown'
        return str(value)

    @field_validator('description', 'reason', mode='before')
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return ''
        return str(value)

    @field_validator('confidence', mode='before')
    @classmethod
    def _coerce_confidence(cls, value):
        return coerce_confidence(value, 0.5)

    @field_validator('severity', mode='before')
    @classmethod
    def _coerce_severity(cls, value):
        if isinstance(value, str) and value.strip().lower() in ('low', 'medium', 'high'):
            return value.strip().lower()
        return 'medium'

    @field_validator('affected_ips', mode='before')
    @classmethod
    def _coerce_ips(cls, value):
        if not isinstance(value, (list, tuple, set)):
            return []
        # Set semantics, first-seen order
        return list(dict.fromkeys(str(ip) for ip in value if ip is not None and ip != ''))

    @field_validator('recommendations', mode='before')
    @classmethod
    def _coerce_recommendations(cls, value):
        if not isinstance(value, (list, tuple)):
            return []
        return [str(item) for item in value if item is not None]


Anomaly = Union[StatisticalAnomaly, InferredAnomaly]


class TimelineBucket(BaseModel):
    """Records falling into one clock hour (UTC)."""

    timestamp: datetime = Field(..., description="Start of the hour, UTC")
    count: int = 0
    anomalies: int = Field(0, description="Records in this hour already marked anomalous")


class AnalysisResult(BaseModel):
    """Outcome of one analysis run, handed back to the caller for persistence."""

    anomalies: list[Anomaly] = Field(default_factory=list)
    summary: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    patterns: PatternTables = Field(default_factory=PatternTables)
    timeline: list[TimelineBucket] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    mode: AnalysisMode = Field(..., description="Which path produced the result")
    sample_size: int = Field(0, description="Number of records sent to the model")

    def to_cli(self, colorize: bool = False) -> str:
        """Format result for CLI output (human-readable)"""
        # ANSI color codes
        GREY = '\033[90m'
        BOLD_CYAN = '\033[1;36m'
        YELLOW = '\033[33m'
        RED = '\033[31m'
        BOLD_RED = '\033[1;31m'
        GREEN = '\033[32m'
        RESET = '\033[0m'

        def paint(text: str, color: str) -> str:
            return f"{color}{text}{RESET}" if colorize else text

        severity_colors = {'high': BOLD_RED, 'medium': RED, 'low': YELLOW}

        lines = [
            f"{paint('Mode:', GREY)} {paint(self.mode, BOLD_CYAN)}",
            f"{paint('Confidence:', GREY)} {paint(f'{self.confidence:.2f}', YELLOW)}",
            f"{paint('Summary:', GREY)} {self.summary}",
            f"{paint('Anomalies:', GREY)} {paint(str(len(self.anomalies)), GREEN)}",
        ]

        for anomaly in self.anomalies:
            label = f"[{anomaly.type}]"
            if isinstance(anomaly, InferredAnomaly):
                label = paint(f"{label} {anomaly.severity}", severity_colors[anomaly.severity])
                text = anomaly.description or anomaly.reason
            else:
                label = paint(label, BOLD_CYAN)
                text = anomaly.reason
            lines.append(f"  {label} {text} {paint(f'(confidence {anomaly.confidence:.2f})', GREY)}")

        if self.timeline:
            lines.append("")
            lines.append(paint('Timeline (UTC):', GREY))
            for bucket in self.timeline:
                stamp = bucket.timestamp.strftime('%Y-%m-%d %H:00')
                lines.append(f"  {stamp}  {bucket.count:>6} events  {bucket.anomalies:>6} anomalous")

        if self.recommendations:
            lines.append("")
            lines.append(paint('Recommendations:', GREY))
            for recommendation in self.recommendations:
                lines.append(f"  - {recommendation}")

        return "\n".join(lines)
