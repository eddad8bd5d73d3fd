"""
Application Insights Telemetry Tracker

Sends custom events, metrics and exceptions to Azure Application Insights
when a connection string is configured. Every event is also kept by the
development logger.
"""

import logging
from typing import Any

from opencensus.ext.azure import metrics_exporter
from opencensus.ext.azure.log_exporter import AzureLogHandler
from opencensus.stats import aggregation as aggregation_module
from opencensus.stats import measure as measure_module
from opencensus.stats import stats as stats_module
from opencensus.stats import view as view_module
from opencensus.tags import tag_map as tag_map_module

from .config import get_telemetry_config
from .context import get_request_context
from .dev_logger import log_dev_event

logger = logging.getLogger(__name__)

_app_insights_logger: logging.Logger | None = None
_metrics_exporter: metrics_exporter.MetricsExporter | None = None
_measures: dict[str, measure_module.MeasureFloat] = {}


def initialize_telemetry() -> logging.Logger | None:
    """
    Initialize Application Insights telemetry.

    Returns:
        Logger instance if successful, None if disabled or not configured
    """
    global _app_insights_logger, _metrics_exporter

    if _app_insights_logger is not None:
        return _app_insights_logger

    config = get_telemetry_config()
    if not config.enabled:
        logger.info("[Telemetry] Telemetry disabled by configuration")
        return None
    if not config.app_insights_connection_string:
        logger.info("[Telemetry] No Application Insights connection string, using dev logger only")
        return None

    try:
        insights_logger = logging.getLogger("copilot_wrapper_telemetry")
        insights_logger.setLevel(logging.INFO)
        insights_logger.propagate = False

        azure_handler = AzureLogHandler(connection_string=config.app_insights_connection_string)

        def add_context(envelope: Any) -> bool:
            envelope.data.baseData.properties.update(_base_properties())
            return True

        azure_handler.add_telemetry_processor(add_context)
        insights_logger.addHandler(azure_handler)

        _metrics_exporter = metrics_exporter.new_metrics_exporter(
            connection_string=config.app_insights_connection_string
        )
        _app_insights_logger = insights_logger
        logger.info("[Telemetry] Application Insights initialized successfully")
        return insights_logger

    except Exception as e:
        logger.error(f"[Telemetry] Failed to initialize Application Insights: {e}")
        return None


def _truncate(value: Any, limit: int) -> Any:
    if isinstance(value, str) and len(value) > limit:
        return value[:limit] + "..."
    return value


def _base_properties() -> dict[str, Any]:
    config = get_telemetry_config()
    return {
        **get_request_context(),
        "app_id": config.app_id,
        "environment": config.environment,
    }


def _merge(properties: dict[str, Any] | None) -> dict[str, Any]:
    limit = get_telemetry_config().max_property_length
    merged = {**_base_properties(), **(properties or {})}
    return {key: _truncate(value, limit) for key, value in merged.items()}


def track_event(name: str, properties: dict[str, Any] | None = None) -> None:
    """Track a custom event with the current request context."""
    merged = _merge(properties)
    log_dev_event(name, merged)

    if _app_insights_logger:
        _app_insights_logger.info(name, extra={"custom_dimensions": merged})


def _get_measure(name: str) -> measure_module.MeasureFloat:
    measure = _measures.get(name)
    if measure is None:
        measure = measure_module.MeasureFloat(name, name, "units")
        view = view_module.View(name, name, [], measure, aggregation_module.LastValueAggregation())
        stats_module.stats.view_manager.register_view(view)
        _measures[name] = measure
    return measure


def track_metric(name: str, value: float, properties: dict[str, Any] | None = None) -> None:
    """Track a custom metric value."""
    merged = _merge(properties)
    log_dev_event("metric", {"metric_name": name, "metric_value": value, **merged})

    if _metrics_exporter:
        measurement_map = stats_module.stats.stats_recorder.new_measurement_map()
        tags = tag_map_module.TagMap()
        for key, val in merged.items():
            if val is not None:
                tags.insert(key, str(val))
        measurement_map.measure_float_put(_get_measure(name), value)
        measurement_map.record(tags)


def track_exception(
    exception: BaseException, properties: dict[str, Any] | None = None, level: str = "ERROR"
) -> None:
    """Track an exception with the current request context."""
    merged = _merge(
        {
            "error_type": type(exception).__name__,
            "error_message": str(exception),
            **(properties or {}),
        }
    )
    log_dev_event("exception", merged)

    if _app_insights_logger:
        _app_insights_logger.log(
            getattr(logging, level.upper(), logging.ERROR),
            f"Exception: {type(exception).__name__}",
            exc_info=exception,
            extra={"custom_dimensions": merged},
        )


def flush_telemetry() -> None:
    """Flush telemetry (call before shutdown)."""
    if _app_insights_logger:
        for handler in _app_insights_logger.handlers:
            handler.flush()
