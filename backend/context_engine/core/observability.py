"""
OpenTelemetry tracing and request-scoped logging for the engine.

Every log record carries the correlation id of the HTTP request it was
emitted under ("N/A" outside a request), so context detection and feedback
logs can be joined with the reply that triggered them.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode
from azure.monitor.opentelemetry.exporter import AzureMonitorTraceExporter

CORRELATION_HEADER = "X-Correlation-ID"
SERVICE_NAME_VALUE = "conversation-context-engine"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="N/A")


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s'
)


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the correlation id of the current request."""

    def filter(self, record):
        # An explicit extra={"correlation_id": ...} wins over the context
        if not hasattr(record, 'correlation_id'):
            record.correlation_id = correlation_id_var.get()
        return True


# Handler filters see records from every logger, including third-party ones
for _handler in logging.getLogger().handlers:
    _handler.addFilter(CorrelationIdFilter())


def setup_observability(app_insights_connection_string: str | None):
    """
    Install the tracer provider, exporting to Azure Monitor when configured.

    Without a connection string spans are still created (and carry the
    correlation id) but nothing leaves the process.

    Args:
        app_insights_connection_string: Application Insights connection string, or None
    """
    tracer_provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: SERVICE_NAME_VALUE})
    )
    trace.set_tracer_provider(tracer_provider)

    if not app_insights_connection_string:
        logging.info("Application Insights not configured; spans stay in-process")
        return

    # Batch export to Application Insights
    azure_exporter = AzureMonitorTraceExporter.from_connection_string(
        app_insights_connection_string
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(azure_exporter))

    logging.info("✅ OpenTelemetry tracing configured with Azure Monitor")


def instrument_fastapi(app):
    """
    Instrument FastAPI app with OpenTelemetry.

    Args:
        app: FastAPI application instance
    """
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    logging.info("✅ FastAPI instrumented with OpenTelemetry (health checks excluded)")


async def correlation_id_middleware(request: Request, call_next: Callable) -> Response:
    """
    Bind the request's correlation id for the duration of the request.

    The id comes from the X-Correlation-ID header or is generated, is echoed
    back in the response, and is visible to every log record and span
    produced while the request is handled.
    """
    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    token = correlation_id_var.set(correlation_id)

    current_span = trace.get_current_span()
    current_span.set_attribute("correlation_id", correlation_id)

    try:
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
    except Exception as e:
        logging.error(f"Request {request.method} {request.url.path} failed: {e}", exc_info=True)

        current_span.set_status(Status(StatusCode.ERROR))
        current_span.record_exception(e)
        raise
    finally:
        correlation_id_var.reset(token)


def get_tracer(name: str) -> trace.Tracer:
    """
    Get OpenTelemetry tracer for an engine component.

    Usage:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("conversation_context.detect") as span:
            span.set_attribute("customer_id", customer_id)
    """
    return trace.get_tracer(name)
