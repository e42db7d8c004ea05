"""Analysis pipeline: signals, sample, model call, reconciliation."""

import logging
from functools import partial
from time import time

import anyio

from .. import prometheus as prom
from ..errors import ModelCallError
from ..inference import ModelClient, client_from_env, max_tokens_from_env, model_timeout_from_env
from ..models import AnalysisResult, InferredAnomaly, NormalizedRecord, PatternTables
from .prompt import build_model_request
from .reconcile import parse_model_reply, reconcile, statistical_only_result
from .sampling import select_sample
from .signals import compute_signals
from .timeline import generate_timeline


logger = logging.getLogger(__name__)

NO_ENTRIES_SUMMARY = 'No entries to analyze'


class AnomalyAnalyzer:
    """
    Runs one analysis per call over a list of normalized records.

    The analyzer keeps no per-run state, so one instance can serve
    concurrent analyses of different files. The model call is the only
    await point; any failure or timeout there degrades to the
    statistical-only result instead of failing the analysis.
    """

    def __init__(self, client: ModelClient, timeout: float | None = None, max_tokens: int | None = None):
        self.client = client
        self.timeout = timeout if timeout is not None else model_timeout_from_env()
        self.max_tokens = max_tokens if max_tokens is not None else max_tokens_from_env()

    async def analyze(self, records: list[NormalizedRecord]) -> AnalysisResult:
        if not records:
            logger.info('No entries to analyze, skipping model call')
            prom.analyses_total.labels(mode='no_entries').inc()
            return AnalysisResult(
                anomalies=[],
                summary=NO_ENTRIES_SUMMARY,
                confidence=0.0,
                patterns=PatternTables(),
                timeline=[],
                recommendations=[],
                mode='no_entries',
                sample_size=0,
            )

        logger.info(f'Starting anomaly detection for {len(records)} entries')

        signals = compute_signals(records)
        for anomaly in signals.anomalies:
            prom.statistical_anomalies_total.labels(type=anomaly.type).inc()

        sample = select_sample(records, signals.anomalies)
        timeline = generate_timeline(records)
        request = build_model_request(sample, signals.patterns, max_tokens=self.max_tokens)

        reply = await self._call_model(request)
        if reply is None:
            result = statistical_only_result(signals, timeline, sample_size=len(sample))
        else:
            result = reconcile(signals, parse_model_reply(reply), timeline, sample_size=len(sample))

        inferred = sum(1 for anomaly in result.anomalies if isinstance(anomaly, InferredAnomaly))
        prom.inferred_anomalies_total.inc(inferred)
        prom.analyses_total.labels(mode=result.mode).inc()
        logger.info(
            f'Anomaly detection complete: {len(result.anomalies)} anomalies found '
            f'({len(signals.anomalies)} statistical, {inferred} from model, mode={result.mode})'
        )
        return result

    async def _call_model(self, request) -> str | None:
        """Return the reply text, or None if the call failed or timed out."""
        start_time = time()
        reply = None
        with anyio.move_on_after(self.timeout) as scope:
            try:
                reply = await self.client.complete(request)
            except ModelCallError as e:
                logger.warning(f'AI analysis failed ({self.client.name}): {e}')
                prom.model_calls_total.labels(status='error').inc()
                return None
            except Exception as e:
                logger.error(f'AI analysis failed unexpectedly ({self.client.name}): {e}')
                prom.model_calls_total.labels(status='error').inc()
                return None
            finally:
                prom.model_call_duration_seconds.observe(time() - start_time)

        if scope.cancelled_caught:
            logger.warning(f'AI analysis timed out after {self.timeout}s ({self.client.name})')
            prom.model_calls_total.labels(status='timeout').inc()
            return None

        prom.model_calls_total.labels(status='success').inc()
        return reply


def analyze_records(
    records: list[NormalizedRecord],
    client: ModelClient | None = None,
    timeout: float | None = None,
) -> AnalysisResult:
    """Synchronous entry point: run one analysis in a fresh event loop.

    Args:
        records: Normalized records of one file.
        client: Model backend; defaults to the one configured by environment.
        timeout: Seconds to wait for the model before degrading.

    Returns:
        AnalysisResult for the records.
    """
    analyzer = AnomalyAnalyzer(client or client_from_env(), timeout=timeout)
    return anyio.run(partial(analyzer.analyze, list(records)))
