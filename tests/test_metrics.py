import logging

from dealflow.config import Settings
from dealflow.observability.metrics import MetricsReporter


class _RecordingStatsClient:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def timing(self, bucket, value, rate=1):
        self.calls.append(("timing", bucket, value, rate))

    def gauge(self, bucket, value):
        self.calls.append(("gauge", bucket, value))

    def incr(self, bucket, count=1, rate=1):
        self.calls.append(("incr", bucket, count, rate))


def _config(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_metrics_are_logged_under_namespace(caplog):
    reporter = MetricsReporter(_config(metrics_namespace="fund"))

    with caplog.at_level(logging.INFO, logger="dealflow.metrics"):
        reporter.increment("pipeline.vote.upserted", tags={"repository": "memory"})

    [record] = [entry for entry in caplog.records if entry.getMessage() == "dealflow.metric"]
    assert record.metrics == {
        "metric": "fund.pipeline.vote.upserted",
        "value": 1.0,
        "type": "counter",
        "tags": {"repository": "memory"},
    }
    assert reporter.backend == "stdout"


def test_statsd_bucket_carries_operation_tag():
    client = _RecordingStatsClient()
    reporter = MetricsReporter(_config(), client=client)

    reporter.timing("pipeline.latency_ms", 12.5, tags={"operation": "update_deal"})
    reporter.gauge("pipeline.introduction.candidates", 3)
    reporter.increment("introduction.email.sent")

    assert client.calls == [
        ("timing", "dealflow.pipeline.latency_ms.update_deal", 12.5, 1.0),
        ("gauge", "dealflow.pipeline.introduction.candidates", 3),
        ("incr", "dealflow.introduction.email.sent", 1.0, 1.0),
    ]
    assert reporter.backend == "statsd"


def test_disabled_reporter_emits_nothing(caplog):
    client = _RecordingStatsClient()
    reporter = MetricsReporter(_config(metrics_disable=True), client=client)

    with caplog.at_level(logging.INFO, logger="dealflow.metrics"):
        reporter.increment("pipeline.deal.created")

    assert client.calls == []
    assert not [entry for entry in caplog.records if entry.getMessage() == "dealflow.metric"]
