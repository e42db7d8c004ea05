"""Anomaly analysis over normalized proxy records.

This package provides:
- Frequency tables and heuristic anomalies
- Anomaly-biased sampling for the model call
- Model request construction and reply reconciliation
- Hourly timelines and anomaly marking of records
"""

from .pipeline import AnomalyAnalyzer, analyze_records
from .prompt import SYSTEM_PROMPT, build_analysis_prompt, build_model_request
from .reconcile import ModelFindings, extract_json_object, parse_model_reply, reconcile, statistical_only_result
from .sampling import MAX_FLAGGED_SAMPLES, MAX_SAMPLE_SIZE, select_sample
from .signals import StatisticalSignals, compute_signals, extract_domain, is_suspicious_user_agent
from .timeline import generate_timeline, mark_anomalous_records


__all__ = [
    # Pipeline
    'AnomalyAnalyzer',
    'analyze_records',
    # Signals
    'StatisticalSignals',
    'compute_signals',
    'extract_domain',
    'is_suspicious_user_agent',
    # Sampling
    'MAX_FLAGGED_SAMPLES',
    'MAX_SAMPLE_SIZE',
    'select_sample',
    # Model request / reply
    'SYSTEM_PROMPT',
    'build_analysis_prompt',
    'build_model_request',
    'ModelFindings',
    'extract_json_object',
    'parse_model_reply',
    'reconcile',
    'statistical_only_result',
    # Timeline
    'generate_timeline',
    'mark_anomalous_records',
]
