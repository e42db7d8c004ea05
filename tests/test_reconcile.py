"""Tests for model request construction and reply reconciliation."""

import json

import pytest

from proxysentry.analyze import (
    SYSTEM_PROMPT,
    build_analysis_prompt,
    build_model_request,
    compute_signals,
    extract_json_object,
    parse_model_reply,
    reconcile,
    statistical_only_result,
)
from proxysentry.models import InferredAnomaly, PatternTables


GOOD_REPLY = {
    'summary': 'Scanning activity from one host',
    'anomalies': [
        {
            'type': 'scanning',
            'description': 'Sequential probing of admin paths',
            'confidence': 0.8,
            'reason': 'Many 404s on /admin variants',
            'severity': 'high',
            'affected_ips': ['1.1.1.1'],
            'recommendations': ['Block 1.1.1.1'],
        }
    ],
    'confidence': 0.75,
    'recommendations': ['Review WAF rules'],
}


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_surrounded_by_prose(self):
        block = json.dumps(GOOD_REPLY)
        text = f'Here is my analysis:\n{block}\nLet me know if you need more.'
        assert extract_json_object(text) == block

    def test_markdown_fence(self):
        block = '{"summary": "ok", "anomalies": []}'
        assert extract_json_object(f'```json\n{block}\n```') == block

    def test_nested_objects(self):
        block = '{"a": {"b": {"c": 1}}, "d": [ {"e": 2} ]}'
        assert extract_json_object(f'x {block} y') == block

    def test_braces_inside_strings(self):
        block = '{"summary": "saw } and { in a URI", "q": "\\"}\\""}'
        assert extract_json_object(f'prefix {block} suffix') == block

    def test_first_of_two_objects(self):
        assert extract_json_object('{"a": 1} and {"b": 2}') == '{"a": 1}'

    def test_no_object(self):
        assert extract_json_object('No JSON here at all.') is None

    def test_unbalanced(self):
        assert extract_json_object('{"summary": "cut off') is None

    def test_unbalanced_then_balanced(self):
        assert extract_json_object('{ oops {"a": 1}') == '{"a": 1}'


class TestParseModelReply:
    """Tests for parse_model_reply."""

    def test_full_reply(self):
        findings = parse_model_reply('Sure!\n' + json.dumps(GOOD_REPLY) + '\nThanks')

        assert findings.parsed is True
        assert findings.summary == 'Scanning activity from one host'
        assert findings.confidence == 0.75
        assert findings.recommendations == ['Review WAF rules']
        assert len(findings.anomalies) == 1
        anomaly = findings.anomalies[0]
        assert isinstance(anomaly, InferredAnomaly)
        assert anomaly.type == 'scanning'
        assert anomaly.severity == 'high'
        assert anomaly.affected_ips == ['1.1.1.1']
        assert anomaly.recommendations == ['Block 1.1.1.1']

    def test_no_json_fallback(self):
        reply = 'I could not find anything unusual. ' * 20
        findings = parse_model_reply(reply)

        assert findings.parsed is False
        assert findings.summary == reply[:200] + '...'
        assert len(findings.summary) == 203
        assert findings.anomalies == []
        assert findings.confidence == 0.5
        assert findings.recommendations == ['Manual review recommended']

    def test_short_reply_fallback_keeps_ellipsis(self):
        assert parse_model_reply('nothing').summary == 'nothing...'

    def test_invalid_json_fallback(self):
        reply = "{'summary': 'single quotes are not JSON'}"
        findings = parse_model_reply(reply)
        assert findings.parsed is False
        assert findings.summary == reply + '...'
        assert findings.confidence == 0.5

    def test_deeply_nested_reply_fallback(self):
        reply = '{"summary": "x", "anomalies": ' + '[' * 3000 + ']' * 3000 + '}'
        findings = parse_model_reply(reply)
        assert findings.parsed is False
        assert findings.summary == reply[:200] + '...'
        assert findings.anomalies == []
        assert findings.recommendations == ['Manual review recommended']

    def test_missing_fields_defaulted(self):
        reply = '{"anomalies": []}'
        findings = parse_model_reply(reply)
        assert findings.parsed is True
        assert findings.summary == reply + '...'
        assert findings.confidence == 0.5
        assert findings.recommendations == ['Manual review recommended']

    def test_empty_recommendations_kept(self):
        findings = parse_model_reply('{"summary": "fine", "confidence": 0.2, "recommendations": []}')
        assert findings.recommendations == []
        assert findings.anomalies == []

    def test_confidence_clamped_and_coerced(self):
        assert parse_model_reply('{"summary": "s", "confidence": 7}').confidence == 1.0
        assert parse_model_reply('{"summary": "s", "confidence": "0.4"}').confidence == 0.4
        assert parse_model_reply('{"summary": "s", "confidence": "high"}').confidence == 0.5

    def test_malformed_anomalies_defaulted(self):
        reply = json.dumps(
            {
                'summary': 's',
                'anomalies': [
                    {'type': None, 'confidence': 'very', 'severity': 'CRITICAL', 'affected_ips': '1.1.1.1'},
                    'not an object',
                    {'severity': ' Low ', 'affected_ips': ['2.2.2.2', '2.2.2.2', None], 'recommendations': None},
                ],
            }
        )
        anomalies = parse_model_reply(reply).anomalies

        assert len(anomalies) == 2
        first, second = anomalies
        assert first.type == 'unknown'
        assert first.confidence == 0.5
        assert first.severity == 'medium'
        assert first.affected_ips == []
        assert first.description == ''
        assert second.severity == 'low'
        assert second.affected_ips == ['2.2.2.2']
        assert second.recommendations == []

    def test_anomalies_not_a_list(self):
        assert parse_model_reply('{"summary": "s", "anomalies": {"type": "x"}}').anomalies == []


class TestReconcile:
    """Tests for merging statistical and model findings."""

    def setup_method(self):
        self.timeline = []

    def test_statistical_first_no_dedup(self, make_record):
        records = [make_record(source_ip='1.1.1.1', user_agent='sqlmap/1.0') for _ in range(12)]
        signals = compute_signals(records)
        findings = parse_model_reply(json.dumps(GOOD_REPLY))

        result = reconcile(signals, findings, self.timeline, sample_size=12)

        assert [a.type for a in result.anomalies] == ['high_frequency_ip', 'suspicious_user_agent', 'scanning']
        assert result.mode == 'ai'
        assert result.summary == GOOD_REPLY['summary']
        assert result.confidence == 0.75
        assert result.recommendations == ['Review WAF rules']
        assert result.patterns == signals.patterns
        assert result.sample_size == 12

    def test_unparsed_reply_mode(self, make_record):
        signals = compute_signals([make_record(user_agent='curl/8.0')])
        result = reconcile(signals, parse_model_reply('no json'), self.timeline, sample_size=1)
        assert result.mode == 'ai_unparsed'
        assert [a.type for a in result.anomalies] == ['suspicious_user_agent']
        assert result.recommendations == ['Manual review recommended']

    def test_statistical_only_result(self, make_record):
        signals = compute_signals([make_record(user_agent='curl/8.0')])
        result = statistical_only_result(signals, self.timeline, sample_size=1)
        assert result.mode == 'statistical_only'
        assert result.anomalies == signals.anomalies
        assert result.summary == 'AI analysis unavailable, using statistical analysis only'
        assert result.confidence == 0.5
        assert result.recommendations == ['Enable AI analysis for enhanced threat detection']


class TestBuildPrompt:
    """Tests for request construction."""

    def test_preview_limited_to_twenty(self, make_record):
        sample = [make_record(source_ip=f'10.0.0.{i}') for i in range(35)]
        prompt = build_analysis_prompt(sample, compute_signals(sample).patterns)

        assert 'Log Entries (35 total, showing first 20):' in prompt
        assert '10.0.0.19' in prompt.split('Statistical Patterns:')[0]
        assert '10.0.0.20' not in prompt.split('Statistical Patterns:')[0]

    def test_preview_fields_only(self, make_record):
        sample = [make_record(method='GET', country='de', policy_name='secret-policy')]
        prompt = build_analysis_prompt(sample, compute_signals(sample).patterns)
        preview = json.loads(prompt.split('):\n', 1)[1].split('\n\nStatistical Patterns:')[0])

        assert list(preview[0]) == ['timestamp', 'source_ip', 'url', 'status_code', 'user_agent', 'method']
        assert preview[0]['timestamp'].startswith('2024-01-15T10:05:00')
        assert 'secret-policy' not in prompt

    def test_pattern_summaries(self):
        patterns = PatternTables(
            ip_frequency={f'10.0.0.{i}': 20 - i for i in range(15)},
            status_codes={200: 40, 503: 7},
            time_patterns={9: 3, 10: 12},
        )
        prompt = build_analysis_prompt([], patterns)

        assert '- IP Frequency: 10.0.0.0: 20, 10.0.0.1: 19' in prompt
        assert '10.0.0.9: 11' in prompt
        assert '10.0.0.10:' not in prompt
        assert '- Status Codes: 200: 40, 503: 7' in prompt
        assert '- Time Distribution: 9h: 3, 10h: 12' in prompt

    def test_output_schema_requested(self):
        prompt = build_analysis_prompt([], PatternTables())
        for field in ('"summary"', '"anomalies"', '"severity": "high|medium|low"', '"affected_ips"', '"confidence"'):
            assert field in prompt

    @pytest.mark.parametrize('max_tokens', [2000, 512])
    def test_model_request(self, make_record, max_tokens):
        sample = [make_record()]
        request = build_model_request(sample, compute_signals(sample).patterns, max_tokens=max_tokens)
        assert request.system == SYSTEM_PROMPT
        assert 'cybersecurity' in request.system
        assert request.temperature == 0.3
        assert request.max_tokens == max_tokens
        assert 'Analyze these web proxy log entries' in request.user
