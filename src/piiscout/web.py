import logging
import os
import platform
from contextlib import asynccontextmanager
from functools import partial
from pathlib import Path
from time import time

import anyio
import psutil
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from piiscout import prometheus as prom
from piiscout.__version__ import __version__
from piiscout.analyzer import MIN_PARALLEL_BATCH, analyze_all, analyze_path
from piiscout.catalog import PatternConfigError, default_catalog, get_store, merge_overrides
from piiscout.engine import detect, to_text
from piiscout.log_parser import parse_log_content
from piiscout.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    DetectRequest,
    DetectResponse,
    PatternsUpdateRequest,
    SummaryResponse,
)
from piiscout.summary import FILTER_MODES, filter_records, summarize
from piiscout.utils import get_log_file, get_log_level, get_patterns_file, setup_logging


setup_logging(get_log_level())

logger = logging.getLogger(__name__)

FILTER_PATTERN = '^(' + '|'.join(FILTER_MODES) + ')$'


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: resolve the proxy log file (set by the serve CLI command, or defaults to cwd)
    app.state.log_file = get_log_file().resolve()
    logger.info(f'Proxy log file: {app.state.log_file}')
    if not app.state.log_file.exists():
        logger.warning(f'Proxy log file does not exist yet: {app.state.log_file}')

    # Startup: load persisted pattern overrides
    app.state.patterns_file = get_patterns_file()
    catalog = get_store().load_from(app.state.patterns_file)
    prom.record_pattern_update(True, catalog)
    logger.info(f'Pattern catalog: {len(catalog)} patterns from {app.state.patterns_file}')

    yield

    logger.info('Shutting down piiscout')


app = FastAPI(
    title='PII Scout',
    version=__version__,
    description="""
    Detects PII, secrets and hashes in logging-proxy traffic.

    ## Endpoints

    * `/v1/logs` - Parse and analyze the configured proxy log file
    * `/v1/analyze` - Analyze log lines posted in the request body
    * `/v1/detect` - Scan a single text or JSON value
    * `/v1/summary` - Flagged traffic by endpoint, detection type and day
    * `/v1/patterns` - Read, replace or reset the detection pattern catalog
    * `/health` - Service health and configuration
    * `/metrics` - Prometheus metrics
    """,
    lifespan=lifespan,
)


def get_system_resources() -> dict:
    mem = psutil.virtual_memory()
    return {
        'cpu_cores': psutil.cpu_count(logical=True),
        'ram_total_gb': round(mem.total / (1024**3), 2),
        'ram_available_gb': round(mem.available / (1024**3), 2),
    }


def get_app_env_variables() -> dict:
    return {key: value for key, value in os.environ.items() if key.startswith(('SCOUT_', 'UVICORN_'))}


@app.get('/health', tags=['General'])
async def health():
    """Service status, version and configuration."""
    catalog = get_store().get()
    prom.record_http_response('GET', '/health', 200)
    return {
        'status': 'ok',
        'app_version': __version__,
        'python_version': platform.python_version(),
        'log_file': str(app.state.log_file),
        'log_file_exists': app.state.log_file.exists(),
        'patterns_file': str(app.state.patterns_file),
        'patterns_total': len(catalog),
        'patterns_enabled': sum(1 for p in catalog.values() if p.enabled),
        'system_resources': get_system_resources(),
        'constants': {'MIN_PARALLEL_BATCH': MIN_PARALLEL_BATCH},
        'environment': get_app_env_variables(),
    }


@app.get('/metrics', tags=['Monitoring'])
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post('/v1/detect', tags=['Analysis'], response_model=DetectResponse)
async def detect_text(request: DetectRequest) -> DetectResponse:
    """Scan one text, or a JSON value serialized compactly, with the catalog in force."""
    time_before = time()
    detections = detect(request.text, get_store().get())
    prom.record_detect_request(time() - time_before, detections)
    prom.record_http_response('POST', '/v1/detect', 200)
    return DetectResponse(text=to_text(request.text), detections=detections)


@app.post(
    '/v1/analyze',
    tags=['Analysis'],
    summary='Analyze proxy log lines sent in the request body',
    response_model=AnalyzeResponse,
)
async def analyze_content(
    request: AnalyzeRequest,
    filter_mode: str = Query('all', alias='filter', pattern=FILTER_PATTERN, description='all, flagged or unflagged'),
    limit: int | None = Query(None, ge=1, description='Maximum records to return'),
) -> AnalyzeResponse:
    time_before = time()
    catalog = get_store().get()
    try:
        records = parse_log_content(request.content)
        analyzed = await anyio.to_thread.run_sync(partial(analyze_all, records, catalog))
    except Exception as e:
        prom.record_error('internal_error')
        prom.record_analysis('error', time() - time_before)
        prom.record_http_response('POST', '/v1/analyze', 500)
        raise HTTPException(status_code=500, detail=f'Internal error: {e!s}')

    duration = time() - time_before
    prom.record_analysis('success', duration, analyzed)
    prom.record_http_response('POST', '/v1/analyze', 200)
    return AnalyzeResponse(
        time=duration,
        total_records=len(analyzed),
        flagged_records=sum(1 for r in analyzed if r.has_pii),
        records=filter_records(analyzed, filter_mode, limit),
    )


async def _analyze_log_file(endpoint: str, filter_mode: str = 'all', limit: int | None = None):
    log_file: Path = app.state.log_file
    time_before = time()
    try:
        response, analyzed = await anyio.to_thread.run_sync(
            partial(analyze_path, log_file, get_store().get(), filter_mode=filter_mode, limit=limit)
        )
    except FileNotFoundError:
        prom.record_error('file_not_found')
        prom.record_http_response('GET', endpoint, 404)
        raise HTTPException(status_code=404, detail=f'Log file not found: {log_file}')
    except Exception as e:
        prom.record_error('internal_error')
        prom.record_analysis('error', time() - time_before)
        prom.record_http_response('GET', endpoint, 500)
        raise HTTPException(status_code=500, detail=f'Internal error: {e!s}')

    prom.record_analysis('success', time() - time_before, analyzed)
    prom.record_http_response('GET', endpoint, 200)
    return response, analyzed


@app.get('/v1/logs', tags=['Analysis'], response_model=AnalyzeResponse)
async def logs(
    filter_mode: str = Query('all', alias='filter', pattern=FILTER_PATTERN, description='all, flagged or unflagged'),
    limit: int | None = Query(None, ge=1, description='Maximum records to return'),
) -> AnalyzeResponse:
    """Parse and analyze the configured proxy log file."""
    response, _ = await _analyze_log_file('/v1/logs', filter_mode, limit)
    return response


@app.get('/v1/summary', tags=['Analysis'], response_model=SummaryResponse)
async def summary(limit: int = Query(10, ge=1, le=1000, description='Entries per list')) -> SummaryResponse:
    """Flagged traffic of the configured proxy log by endpoint, type and day."""
    _, analyzed = await _analyze_log_file('/v1/summary')
    return summarize(analyzed, limit)


@app.get('/v1/patterns', tags=['Patterns'])
async def list_patterns():
    """The pattern catalog in force, regexes as source text."""
    prom.record_http_response('GET', '/v1/patterns', 200)
    return get_store().get().to_json()


def _save_patterns(catalog, method: str, route: str):
    """Persist and publish a catalog, or fail the request with a 500."""
    try:
        return get_store().save_and_publish(catalog, app.state.patterns_file)
    except OSError as e:
        logger.error(f'Could not save patterns to {app.state.patterns_file}: {e}')
        prom.record_pattern_update(False)
        prom.record_error('save_failed')
        prom.record_http_response(method, route, 500)
        raise HTTPException(status_code=500, detail=f'Could not save patterns: {e}')


@app.put('/v1/patterns', tags=['Patterns'])
async def replace_patterns(request: PatternsUpdateRequest):
    """Replace the user overrides. Built-in patterns always stay available.

    For built-in keys only `enabled` and `color` can be changed. The update
    is validated and saved as a whole; on error the previous catalog stays
    in force.
    """
    try:
        catalog = merge_overrides(request.patterns)
    except PatternConfigError as e:
        prom.record_pattern_update(False)
        prom.record_error('invalid_pattern')
        prom.record_http_response('PUT', '/v1/patterns', 400)
        raise HTTPException(status_code=400, detail=str(e))

    catalog = _save_patterns(catalog, 'PUT', '/v1/patterns')
    prom.record_pattern_update(True, catalog)
    prom.record_http_response('PUT', '/v1/patterns', 200)
    return catalog.to_json()


@app.post('/v1/patterns/reset', tags=['Patterns'])
async def reset_patterns():
    """Restore the built-in catalog."""
    catalog = _save_patterns(default_catalog(), 'POST', '/v1/patterns/reset')
    prom.record_pattern_update(True, catalog)
    prom.record_http_response('POST', '/v1/patterns/reset', 200)
    return catalog.to_json()
