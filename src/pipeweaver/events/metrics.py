"""Prometheus metrics for Pipeweaver.

Metrics Defined:
- pipeweaver_enqueue_total: enqueue attempts by result (accepted/rejected)
- pipeweaver_queue_depth: events waiting in the ingestion queue
- pipeweaver_workflows_total: finished workflows by outcome
- pipeweaver_workflow_duration_seconds: histogram of workflow duration
- pipeweaver_artifacts_generated_total: DAG files written
- pipeweaver_artifact_failures_total: definition files skipped, by error type

Each PipeweaverMetrics instance owns its registry, so several application
instances (or tests) never collide on metric names.
"""

import logging
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from src.pipeweaver.events.emitter import EventEmitter
from src.pipeweaver.events.models import EventType, WorkflowEvent

# 100ms to 10 minutes; a workflow is dominated by git push and the PR call.
DEFAULT_DURATION_BUCKETS = (0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0)

ENQUEUE_RESULTS = ("accepted", "rejected")
WORKFLOW_OUTCOMES = ("succeeded", "failed", "skipped", "no_changes")


class PipeweaverMetrics:
    """Container for all Pipeweaver Prometheus metrics.

    Attributes:
        registry: The Prometheus registry holding these metrics.
        enqueue_total: Counter of enqueue attempts, labelled by result.
        queue_depth: Gauge of pending events.
        workflows_total: Counter of finished workflows, labelled by outcome.
        workflow_duration_seconds: Histogram of workflow duration.
        artifacts_generated_total: Counter of generated DAG files.
        artifact_failures_total: Counter of skipped definition files.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.enqueue_total = Counter(
            "pipeweaver_enqueue_total",
            "Trigger events offered to the ingestion queue",
            labelnames=["result"],
            registry=self.registry,
        )
        self.queue_depth = Gauge(
            "pipeweaver_queue_depth",
            "Trigger events waiting in the ingestion queue",
            registry=self.registry,
        )
        self.workflows_total = Counter(
            "pipeweaver_workflows_total",
            "Workflows that reached a terminal outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )
        self.workflow_duration_seconds = Histogram(
            "pipeweaver_workflow_duration_seconds",
            "Time spent processing one trigger event",
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.artifacts_generated_total = Counter(
            "pipeweaver_artifacts_generated_total",
            "Generated DAG files written to the working tree",
            registry=self.registry,
        )
        self.artifact_failures_total = Counter(
            "pipeweaver_artifact_failures_total",
            "Definition files skipped because generation failed",
            labelnames=["error_type"],
            registry=self.registry,
        )

        for result in ENQUEUE_RESULTS:
            self.enqueue_total.labels(result=result)
        for outcome in WORKFLOW_OUTCOMES:
            self.workflows_total.labels(outcome=outcome)

    def record_enqueue(self, result: str) -> None:
        self.enqueue_total.labels(result=result).inc()

    def set_queue_depth(self, depth: int) -> None:
        self.queue_depth.set(max(0, depth))

    def record_workflow(self, outcome: str, duration_seconds: Optional[float] = None) -> None:
        self.workflows_total.labels(outcome=outcome).inc()
        if duration_seconds is not None:
            self.workflow_duration_seconds.observe(duration_seconds)

    def record_artifacts_generated(self, count: int) -> None:
        if count > 0:
            self.artifacts_generated_total.inc(count)

    def record_artifact_failure(self, error_type: str) -> None:
        self.artifact_failures_total.labels(error_type=error_type).inc()

    def generate_output(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    - COMPLETION: workflow outcome, duration and artifact count
    - FILE_FAILED: artifact failures by error type
    - STATE_TRANSITION, ERROR: no metric; ERROR is always followed by a
      COMPLETION carrying the failed outcome

    Attributes:
        metrics: The PipeweaverMetrics instance to update.
    """

    def __init__(
        self,
        metrics: Optional[PipeweaverMetrics] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._metrics = metrics or PipeweaverMetrics()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def metrics(self) -> PipeweaverMetrics:
        return self._metrics

    async def emit(self, event: WorkflowEvent) -> None:
        try:
            if event.event_type == EventType.COMPLETION:
                self._handle_completion(event)
            elif event.event_type == EventType.FILE_FAILED:
                self._metrics.record_artifact_failure(
                    event.details.get("error_type", "unknown")
                )
        except Exception as e:
            self._logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                str(e),
                extra={"event_type": event.event_type.value, "event_id": event.event_id},
            )

    def _handle_completion(self, event: WorkflowEvent) -> None:
        duration = event.details.get("duration_seconds")
        self._metrics.record_workflow(
            outcome=event.details.get("outcome", "unknown"),
            duration_seconds=float(duration) if duration is not None else None,
        )
        self._metrics.record_artifacts_generated(int(event.details.get("artifacts", 0)))
