"""Hourly timeline and anomaly marking of records."""

from datetime import UTC, datetime

from ..models import (
    Anomaly,
    HighFrequencyIPAnomaly,
    InferredAnomaly,
    NormalizedRecord,
    SuspiciousUserAgentAnomaly,
    TimelineBucket,
    UnusualStatusCodeAnomaly,
)


def hour_bucket(timestamp: datetime) -> datetime:
    """Truncate a timestamp to the start of its UTC clock hour."""
    return timestamp.astimezone(UTC).replace(minute=0, second=0, microsecond=0)


def generate_timeline(records: list[NormalizedRecord]) -> list[TimelineBucket]:
    """Count records per UTC hour, ascending.

    Records without a timestamp are left out. The anomaly count only
    reflects ``is_anomaly`` flags already present on the records.
    """
    buckets: dict[datetime, TimelineBucket] = {}
    for record in records:
        if record.timestamp is None:
            continue
        hour = hour_bucket(record.timestamp)
        bucket = buckets.get(hour)
        if bucket is None:
            bucket = buckets[hour] = TimelineBucket(timestamp=hour)
        bucket.count += 1
        if record.is_anomaly:
            bucket.anomalies += 1

    return [buckets[hour] for hour in sorted(buckets)]


def _keep_strongest(index: dict, key, confidence: float, reason: str):
    current = index.get(key)
    if current is None or confidence > current[0]:
        index[key] = (confidence, reason)


def mark_anomalous_records(
    records: list[NormalizedRecord],
    anomalies: list[Anomaly],
) -> list[NormalizedRecord]:
    """Return records flagged by the anomalies that match them.

    A record matches when its source IP is a high-frequency IP or listed in
    a model anomaly's affected IPs, when its user agent was flagged as
    suspicious, or when its status code was flagged as unusual. Matching
    records are copied with the strongest matching confidence and reason;
    the others are returned as they are.
    """
    by_ip: dict[str, tuple[float, str]] = {}
    by_user_agent: dict[str, tuple[float, str]] = {}
    by_status: dict[int, tuple[float, str]] = {}

    for anomaly in anomalies:
        if isinstance(anomaly, HighFrequencyIPAnomaly):
            _keep_strongest(by_ip, anomaly.ip, anomaly.confidence, anomaly.reason)
        elif isinstance(anomaly, SuspiciousUserAgentAnomaly):
            _keep_strongest(by_user_agent, anomaly.user_agent, anomaly.confidence, anomaly.reason)
        elif isinstance(anomaly, UnusualStatusCodeAnomaly):
            _keep_strongest(by_status, anomaly.status_code, anomaly.confidence, anomaly.reason)
        elif isinstance(anomaly, InferredAnomaly):
            reason = anomaly.reason or anomaly.description
            for ip in anomaly.affected_ips:
                _keep_strongest(by_ip, ip, anomaly.confidence, reason)

    if not (by_ip or by_user_agent or by_status):
        return list(records)

    marked = []
    for record in records:
        matches = [
            match
            for match in (
                by_ip.get(record.source_ip),
                by_user_agent.get(record.user_agent),
                by_status.get(record.status_code),
            )
            if match is not None
        ]
        if not matches:
            marked.append(record)
            continue
        confidence, reason = max(matches, key=lambda match: match[0])
        marked.append(
            record.model_copy(update={'is_anomaly': True, 'anomaly_score': confidence, 'anomaly_reason': reason})
        )
    return marked
