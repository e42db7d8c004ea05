"""Bounded, anomaly-biased record sampling for the model call."""

from ..models import HighFrequencyIPAnomaly, NormalizedRecord, StatisticalAnomaly


# Keeps the model request size independent of log volume
MAX_SAMPLE_SIZE = 50
MAX_FLAGGED_SAMPLES = 30


def select_sample(
    records: list[NormalizedRecord],
    anomalies: list[StatisticalAnomaly],
) -> list[NormalizedRecord]:
    """Pick at most MAX_SAMPLE_SIZE records, preferring high-frequency IPs.

    Up to MAX_FLAGGED_SAMPLES records from flagged IPs come first, then the
    remaining slots are filled from all other records. Both groups keep
    their original order.
    """
    flagged_ips = {anomaly.ip for anomaly in anomalies if isinstance(anomaly, HighFrequencyIPAnomaly)}

    flagged: list[NormalizedRecord] = []
    others: list[NormalizedRecord] = []
    for record in records:
        if record.source_ip and record.source_ip in flagged_ips:
            if len(flagged) < MAX_FLAGGED_SAMPLES:
                flagged.append(record)
        elif len(others) < MAX_SAMPLE_SIZE:
            others.append(record)

    remaining = MAX_SAMPLE_SIZE - len(flagged)
    return flagged + others[:remaining]
