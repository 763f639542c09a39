"""FastAPI application entry point for Pipeweaver.

Receives Git push webhooks, queues them, and lets a single consumer turn
changed pipeline definitions into generated Airflow DAGs on a pull
request.

Endpoints:
- POST /webhook/git: push webhook receiver
- GET /health: liveness probe
- GET /ready: readiness probe (consumer running)
- GET /metrics: Prometheus metrics
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from src.pipeweaver.config import PipeweaverSettings, get_settings
from src.pipeweaver.errors import QueueSaturated
from src.pipeweaver.events.emitter import CompositeEventEmitter, EventEmitter, LoggingEventEmitter
from src.pipeweaver.events.metrics import MetricsEventEmitter, PipeweaverMetrics
from src.pipeweaver.generator.generator import ArtifactGenerator
from src.pipeweaver.generator.templates import TemplateStore
from src.pipeweaver.github.client import GitHubClient
from src.pipeweaver.ingestion.queue import IngestionQueue
from src.pipeweaver.repository.git_tree import GitWorkingTree
from src.pipeweaver.webhook.handler import WebhookHandler, is_push_event
from src.pipeweaver.workflow.orchestrator import WorkflowConfig, WorkflowOrchestrator

APP_LOGGER_NAME = "pipeweaver"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
RETRY_AFTER_SECONDS = "30"

logger = logging.getLogger(APP_LOGGER_NAME)


@dataclass
class AppComponents:
    """Everything the HTTP surface and the consumer share.

    Stored on ``app.state.components`` for the lifetime of the app.
    """

    settings: PipeweaverSettings
    tree: GitWorkingTree
    github_client: GitHubClient
    orchestrator: WorkflowOrchestrator
    queue: IngestionQueue
    webhook_handler: WebhookHandler
    metrics: PipeweaverMetrics
    event_emitter: EventEmitter


ComponentsFactory = Callable[[PipeweaverSettings], AppComponents]


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if not value:
        return "<unset>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: PipeweaverSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Pipeweaver configuration:")
    logger.info(f"  Environment: {settings.environment}")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  GitHub Username: {settings.github_username}")
    logger.info(f"  GitHub Token: {_redact_secret(settings.github_token)}")
    logger.info(f"  Webhook Secret: {_redact_secret(settings.webhook_secret)}")
    logger.info(f"  Git Remote URL: {settings.git_remote_url}")
    logger.info(f"  Git Default Branch: {settings.git_default_branch}")
    logger.info(f"  Repository Directory: {settings.repo_base_dir}")
    logger.info(f"  Git Command Timeout Seconds: {settings.git_command_timeout_seconds}")
    logger.info(f"  Pipelines Directory: {settings.pipelines_dir}")
    logger.info(f"  Output Directory: {settings.output_dir}")
    logger.info(f"  Templates Directory: {settings.templates_dir or '<packaged>'}")
    logger.info(f"  Queue Capacity: {settings.queue_capacity}")
    logger.info(f"  Log Level: {settings.log_level}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def configure_logging(settings: PipeweaverSettings) -> None:
    logging.basicConfig(level=settings.log_level_value, format=LOG_FORMAT)
    logger.setLevel(settings.log_level_value)


def build_components(settings: PipeweaverSettings) -> AppComponents:
    """Wire all dependencies from validated settings.

    Args:
        settings: Validated service settings.

    Returns:
        Fully wired AppComponents; nothing has been started yet.
    """
    metrics = PipeweaverMetrics()
    event_emitter = CompositeEventEmitter(
        [
            LoggingEventEmitter(logger=logger.getChild("events")),
            MetricsEventEmitter(metrics=metrics, logger=logger.getChild("metrics")),
        ],
        logger=logger.getChild("events"),
    )

    tree = GitWorkingTree(
        repo_path=Path(settings.repo_base_dir),
        remote_url=settings.git_remote_url,
        default_branch=settings.git_default_branch,
        username=settings.github_username,
        token=settings.github_token,
        author_name=settings.bot_name,
        author_email=settings.bot_email,
        command_timeout=settings.git_command_timeout_seconds,
        logger=logger.getChild("repository"),
    )

    github_client = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_base_url,
        logger=logger.getChild("github"),
    )

    generator = ArtifactGenerator(
        template_store=TemplateStore(
            Path(settings.templates_dir) if settings.templates_dir else None,
            logger=logger.getChild("templates"),
        ),
        logger=logger.getChild("generator"),
    )

    orchestrator = WorkflowOrchestrator(
        tree=tree,
        generator=generator,
        pr_issuer=github_client,
        config=WorkflowConfig(
            default_branch=settings.git_default_branch,
            definitions_root=settings.pipelines_dir,
            output_root=settings.output_dir,
            github_token=settings.github_token,
            repository=settings.repository_full_name,
        ),
        event_emitter=event_emitter,
        logger=logger.getChild("workflow"),
    )

    queue = IngestionQueue(
        handler=orchestrator.process,
        capacity=settings.queue_capacity,
        logger=logger.getChild("ingestion"),
        metrics=metrics,
    )

    return AppComponents(
        settings=settings,
        tree=tree,
        github_client=github_client,
        orchestrator=orchestrator,
        queue=queue,
        webhook_handler=WebhookHandler(
            secret=settings.webhook_secret,
            logger=logger.getChild("webhook"),
        ),
        metrics=metrics,
        event_emitter=event_emitter,
    )


def create_app(
    settings: Optional[PipeweaverSettings] = None,
    components_factory: ComponentsFactory = build_components,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use; read from the environment at startup
            when omitted.
        components_factory: Builds the components from settings. Tests pass
            a factory wiring in-memory fakes.

    Returns:
        The FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load settings, wire components, prepare the checkout and start
        the consumer; on shutdown stop the queue and close clients."""
        cfg = settings or get_settings()
        configure_logging(cfg)
        logger.info("Pipeweaver starting up...")
        _log_configuration(cfg)

        components = components_factory(cfg)
        app.state.components = components

        await components.tree.prepare()
        components.queue.start()
        logger.info("Pipeweaver started successfully")

        yield

        logger.info("Pipeweaver shutting down...")
        await components.queue.stop(timeout=cfg.shutdown_timeout_seconds)
        await components.event_emitter.close()
        await components.github_client.close()
        logger.info("Pipeweaver shutdown complete")

    app = FastAPI(
        title="Pipeweaver",
        description="Generates Airflow DAGs from pipeline definitions pushed to Git",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request):
        """Readiness probe: ready once the consumer task is running."""
        queue = request.app.state.components.queue
        body = {
            "status": "ready" if queue.is_running else "not_ready",
            "consumer_running": queue.is_running,
            "pending": queue.pending,
            "capacity": queue.capacity,
        }
        return JSONResponse(status_code=200 if queue.is_running else 503, content=body)

    @app.get("/metrics")
    async def metrics(request: Request):
        """Prometheus metrics endpoint."""
        output = request.app.state.components.metrics.generate_output()
        return Response(content=output, media_type=CONTENT_TYPE_LATEST)

    @app.post("/webhook/git")
    async def git_webhook(
        request: Request,
        x_github_event: Optional[str] = Header(default=None),
        x_hub_signature_256: Optional[str] = Header(default=None),
    ):
        """Git push webhook receiver.

        Returns:
            202 accepted when the event is queued, 200 for ignored events
            and pings, 400 for malformed JSON, 401 for a bad signature and
            503 when the queue is full.
        """
        components: AppComponents = request.app.state.components
        handler = components.webhook_handler
        body = await request.body()

        if not handler.verify_signature(body, x_hub_signature_256):
            logger.warning("Rejected webhook with invalid signature")
            return JSONResponse(
                status_code=401,
                content={"status": "unauthorized", "message": "Invalid signature"},
            )

        if x_github_event == "ping":
            return {"status": "pong"}

        try:
            payload = json.loads(body)
        except ValueError:
            logger.warning("Rejected webhook with malformed JSON body")
            return JSONResponse(
                status_code=400,
                content={"status": "error", "message": "Malformed JSON payload"},
            )

        if not is_push_event(x_github_event):
            return {"status": "ignored", "message": f"Unsupported event: {x_github_event}"}

        event = handler.parse_push_event(payload)
        if event is None:
            return {"status": "ignored", "message": "Unsupported or invalid event"}

        try:
            components.queue.submit(event)
        except QueueSaturated as exc:
            return JSONResponse(
                status_code=503,
                content={"status": "busy", "message": str(exc)},
                headers={"Retry-After": RETRY_AFTER_SECONDS},
            )

        return JSONResponse(
            status_code=202,
            content={"status": "accepted", "event_id": event.event_id},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.pipeweaver.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
    )
