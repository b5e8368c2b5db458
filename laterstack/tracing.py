"""OpenTelemetry tracing for LaterStack.

Requests are traced by the FastAPI instrumentation, database calls by the
SQLAlchemy instrumentation, and the save-article pipeline adds one span per
step through ``tracer``.
"""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from laterstack.config import get_settings

SERVICE_NAME = "laterstack"

tracer = trace.get_tracer(SERVICE_NAME)

_sqla_instrumentor = SQLAlchemyInstrumentor()


def setup_tracing(app) -> TracerProvider:
    """Install a tracer provider and instrument the app.

    Spans are exported over OTLP/gRPC when OTLP_ENDPOINT is set.
    """
    provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))

    endpoint = get_settings().otlp_endpoint
    if endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)
    return provider


def instrument_engine(async_engine) -> None:
    """Trace queries issued through an async engine."""
    _sqla_instrumentor.instrument(engine=async_engine.sync_engine)
