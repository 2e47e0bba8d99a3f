"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- Счётчики и гистограммы для HTTP и стадий пайплайна
- Ошибки внешних провайдеров (STT/LLM/storage/identity)
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

# Общее количество HTTP-запросов
REQUESTS_TOTAL = Counter(
    "consult_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "consult_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000),
)

# Задержки по стадиям пайплайна (STT может занимать десятки секунд)
PIPELINE_STAGE_LATENCY_MS = Histogram(
    "consult_pipeline_stage_latency_ms",
    "Задержка выполнения стадий пайплайна (мс)",
    ["service", "stage"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000, 120000),
)

PIPELINE_RUNS_TOTAL = Counter(
    "consult_pipeline_runs_total",
    "Количество запусков пайплайна по результату",
    ["mode", "result"],  # result=ok|<err_code>
)

PROVIDER_ERRORS_TOTAL = Counter(
    "consult_provider_errors_total",
    "Ошибки внешних провайдеров",
    ["provider", "code"],
)


@contextmanager
def track_stage_latency(service: str, stage: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        PIPELINE_STAGE_LATENCY_MS.labels(service=service, stage=stage).observe(elapsed_ms)


def record_pipeline_run(*, mode: str, result: str) -> None:
    PIPELINE_RUNS_TOTAL.labels(mode=mode, result=result).inc()


def record_provider_error(*, provider: str, code: str) -> None:
    PROVIDER_ERRORS_TOTAL.labels(provider=provider, code=code).inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(app: FastAPI, *, service: str = "api-gateway") -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        route = request.url.path
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        status_code = str(response.status_code)

        REQUESTS_TOTAL.labels(
            service=service,
            route=route,
            method=method,
            status=status_code,
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(
            service=service,
            route=route,
            method=method,
        ).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
