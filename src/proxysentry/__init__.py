"""proxysentry - statistical and model-assisted anomaly detection for web proxy logs."""

from .__version__ import __version__
from .analyze import (
    AnomalyAnalyzer,
    analyze_records,
    compute_signals,
    generate_timeline,
    mark_anomalous_records,
    select_sample,
)
from .errors import ModelCallError, ProxySentryError, UnknownParserError, UnsupportedFormatError
from .models import AnalysisResult, NormalizedRecord, ParseResult
from .parsers import CloudflareOneParser, LogParser, ParserRegistry, default_registry


__all__ = [
    '__version__',
    # Pipeline
    'AnomalyAnalyzer',
    'analyze_records',
    'compute_signals',
    'generate_timeline',
    'mark_anomalous_records',
    'select_sample',
    # Parsers
    'CloudflareOneParser',
    'LogParser',
    'ParserRegistry',
    'default_registry',
    # Models
    'AnalysisResult',
    'NormalizedRecord',
    'ParseResult',
    # Errors
    'ModelCallError',
    'ProxySentryError',
    'UnknownParserError',
    'UnsupportedFormatError',
]
