"""Frequency tables and heuristic anomalies over a full record set."""

import re
from dataclasses import dataclass, field
from datetime import UTC
from urllib.parse import urlsplit

from ..models import (
    HighFrequencyIPAnomaly,
    NormalizedRecord,
    PatternTables,
    StatisticalAnomaly,
    SuspiciousUserAgentAnomaly,
    UnusualStatusCodeAnomaly,
)


# An IP is flagged when its count exceeds max(MIN, SHARE * total)
HIGH_FREQUENCY_MIN_COUNT = 10
HIGH_FREQUENCY_SHARE = 0.1
HIGH_FREQUENCY_MAX_CONFIDENCE = 0.9

COMMON_STATUS_CODES = frozenset({200, 301, 302, 304, 404})
UNUSUAL_STATUS_SHARE = 0.05
UNUSUAL_STATUS_MAX_CONFIDENCE = 0.8

SUSPICIOUS_USER_AGENT_PATTERN = re.compile(
    r'bot|crawler|scanner|python|curl|wget|nikto|sqlmap|nmap',
    re.IGNORECASE,
)
SUSPICIOUS_USER_AGENT_CONFIDENCE = 0.85


@dataclass
class StatisticalSignals:
    """Pattern tables plus the anomalies derived from them."""

    patterns: PatternTables
    anomalies: list[StatisticalAnomaly] = field(default_factory=list)


def is_suspicious_user_agent(user_agent: str | None) -> bool:
    """Return True if the user agent names an automated client or attack tool."""
    if not user_agent:
        return False
    return SUSPICIOUS_USER_AGENT_PATTERN.search(user_agent) is not None


def extract_domain(url: str) -> str | None:
    """Host part of a URL, or None if it cannot be parsed."""
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def _bump(table: dict, key):
    table[key] = table.get(key, 0) + 1


def build_patterns(records: list[NormalizedRecord]) -> PatternTables:
    """Count records per IP, status code, user agent, UTC hour and URL host."""
    ip_frequency: dict[str, int] = {}
    status_codes: dict[int, int] = {}
    user_agents: dict[str, int] = {}
    time_patterns: dict[int, int] = {}
    url_patterns: dict[str, int] = {}

    for record in records:
        if record.source_ip:
            _bump(ip_frequency, record.source_ip)
        if record.status_code:
            _bump(status_codes, record.status_code)
        if record.user_agent:
            _bump(user_agents, record.user_agent)
        if record.timestamp:
            _bump(time_patterns, record.timestamp.astimezone(UTC).hour)
        if record.url:
            domain = extract_domain(record.url)
            if domain:
                _bump(url_patterns, domain)

    return PatternTables(
        ip_frequency=ip_frequency,
        status_codes=status_codes,
        user_agents=user_agents,
        time_patterns=time_patterns,
        url_patterns=url_patterns,
    )


def high_frequency_ips(patterns: PatternTables, total: int) -> list[HighFrequencyIPAnomaly]:
    threshold = max(HIGH_FREQUENCY_MIN_COUNT, total * HIGH_FREQUENCY_SHARE)
    anomalies = []
    for ip, count in patterns.ip_frequency.items():
        if count > threshold:
            percentage = count / total * 100
            anomalies.append(
                HighFrequencyIPAnomaly(
                    ip=ip,
                    count=count,
                    percentage=round(percentage, 2),
                    confidence=min(HIGH_FREQUENCY_MAX_CONFIDENCE, count / total),
                    reason=f'IP {ip} made {count} requests ({percentage:.2f}% of total traffic)',
                )
            )
    return anomalies


def unusual_status_codes(patterns: PatternTables, total: int) -> list[UnusualStatusCodeAnomaly]:
    anomalies = []
    for status_code, count in patterns.status_codes.items():
        if status_code not in COMMON_STATUS_CODES and count > total * UNUSUAL_STATUS_SHARE:
            anomalies.append(
                UnusualStatusCodeAnomaly(
                    status_code=status_code,
                    count=count,
                    confidence=min(UNUSUAL_STATUS_MAX_CONFIDENCE, count / total * 2),
                    reason=f'Unusual status code {status_code} appeared {count} times',
                )
            )
    return anomalies


def suspicious_user_agents(patterns: PatternTables) -> list[SuspiciousUserAgentAnomaly]:
    return [
        SuspiciousUserAgentAnomaly(
            user_agent=user_agent,
            count=count,
            confidence=SUSPICIOUS_USER_AGENT_CONFIDENCE,
            reason=f'Suspicious user agent detected: {user_agent}',
        )
        for user_agent, count in patterns.user_agents.items()
        if is_suspicious_user_agent(user_agent)
    ]


def compute_signals(records: list[NormalizedRecord]) -> StatisticalSignals:
    """Build pattern tables and apply the three frequency heuristics.

    Rules are independent and may fire for the same record. Output order is
    high-frequency IPs, then unusual status codes, then suspicious user
    agents, each following table insertion order.

    Args:
        records: All normalized records of one file.

    Returns:
        StatisticalSignals for this run only; nothing is kept between calls.
    """
    patterns = build_patterns(records)
    total = len(records)
    if total == 0:
        return StatisticalSignals(patterns=patterns)

    anomalies: list[StatisticalAnomaly] = []
    anomalies.extend(high_frequency_ips(patterns, total))
    anomalies.extend(unusual_status_codes(patterns, total))
    anomalies.extend(suspicious_user_agents(patterns))
    return StatisticalSignals(patterns=patterns, anomalies=anomalies)
