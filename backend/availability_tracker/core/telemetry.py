"""OpenTelemetry configuration helpers."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes

from availability_tracker import __version__
from availability_tracker.config import AppSettings

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "availability_tracker"
_METRIC_EXPORT_INTERVAL_MS = 30000

_providers: list[Any] = []


def get_tracer(name: str = INSTRUMENTATION_NAME) -> trace.Tracer:
    """Tracer for service spans; a no-op until ``setup_telemetry`` installs a provider."""

    return trace.get_tracer(name, __version__)


def get_meter(name: str = INSTRUMENTATION_NAME) -> metrics.Meter:
    return metrics.get_meter(name, __version__)


def setup_telemetry(app: FastAPI, settings: AppSettings) -> bool:
    """Install OTLP exporters and instrument FastAPI and httpx.

    Providers are process-global, so only the first enabled call configures
    them; later apps are still instrumented. Returns whether telemetry is on.
    """

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False

    if not _providers:
        resource = Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
                ResourceAttributes.SERVICE_VERSION: __version__,
            }
        )
        exporter_options: dict[str, Any] = {"insecure": settings.telemetry_otlp_insecure}
        if settings.telemetry_otlp_endpoint:
            exporter_options["endpoint"] = settings.telemetry_otlp_endpoint

        tracer_provider = TracerProvider(
            resource=resource,
            sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_options)))
        trace.set_tracer_provider(tracer_provider)

        meter_provider = MeterProvider(
            resource=resource,
            metric_readers=[
                PeriodicExportingMetricReader(
                    OTLPMetricExporter(**exporter_options),
                    export_interval_millis=_METRIC_EXPORT_INTERVAL_MS,
                )
            ],
        )
        metrics.set_meter_provider(meter_provider)

        logger_provider = LoggerProvider(resource=resource)
        logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**exporter_options)))
        set_logger_provider(logger_provider)
        LoggingInstrumentor().instrument(set_logging_format=False)

        # Store and sheet calls both go through httpx
        HTTPXClientInstrumentor().instrument()
        _providers.extend([tracer_provider, meter_provider, logger_provider])
        logger.info("Telemetry exporting to %s", settings.telemetry_otlp_endpoint or "default OTLP endpoint")

    FastAPIInstrumentor.instrument_app(app, tracer_provider=_providers[0], meter_provider=_providers[1])
    return True


def shutdown_telemetry() -> None:
    """Flush and stop the providers installed by ``setup_telemetry``."""

    while _providers:
        provider = _providers.pop()
        try:
            provider.shutdown()
        except Exception:  # noqa: BLE001 - exporter failures must not block shutdown
            logger.exception("Failed to shut down %s", type(provider).__name__)


__all__ = ["get_meter", "get_tracer", "setup_telemetry", "shutdown_telemetry"]
