from __future__ import annotations
from typing import Any
from flask import Flask, request, jsonify, Response

import os

import structlog

from insurdash.api.session import DashboardSession
from insurdash.config.env import configure_logging, get_log_config, get_trend_config
from insurdash.errors import NotFoundError, ValidationError
from insurdash.exports.reports import kpi_summary_md
from insurdash.exports.writers import write_goal_metrics, write_kpi_trend
from insurdash.targets.csvio import GoalCsvParseError, parse_goal_csv
from insurdash.targets.dimensions import filter_options
from insurdash.targets.metrics import as_dict
from insurdash.targets.resolver import dimension_targets

_log_cfg = get_log_config()
configure_logging(_log_cfg.level, _log_cfg.json_output)
logger = structlog.get_logger(__name__)

app = Flask(__name__)

# One session per process; tests replace it through reset_session()
SESSION = DashboardSession()


def reset_session(session: DashboardSession | None = None) -> DashboardSession:
    global SESSION
    SESSION = session or DashboardSession()
    return SESSION


def _get_api_key() -> str | None:
    if 'API_KEY' in app.config:
        return app.config.get('API_KEY')
    return os.environ.get('API_KEY')


def _check_api_key():
    api_key = _get_api_key()
    if api_key:
        provided = request.headers.get('X-API-Key')
        if provided != api_key:
            return jsonify({'error': 'unauthorized'}), 401
    return None


@app.before_request
def _auth():
    # Only mutating routes require the key
    if request.method in ('POST', 'PUT', 'DELETE'):
        return _check_api_key()
    return None


@app.errorhandler(ValidationError)
def _validation_error(e: ValidationError):
    return jsonify({'error': str(e), 'issues': [i.to_dict() for i in e.issues]}), 400


@app.errorhandler(NotFoundError)
def _not_found(e: NotFoundError):
    return jsonify({'error': 'not_found', 'detail': str(e)}), 404


def _mode() -> str:
    mode = request.args.get('mode', 'current')
    if mode not in ('current', 'increment'):
        raise ValidationError(f"mode must be 'current' or 'increment', got {mode!r}")
    return mode


def _version_json(v, store=None) -> dict[str, Any]:
    store = store or SESSION.store
    return {
        'id': v.id,
        'type': v.type,
        'created_at': v.created_at,
        'locked': v.locked,
        'rows': len(v.rows),
        'current': v.id == store.current_version_id,
    }


@app.post('/records')
def post_records():
    payload = request.get_json(force=True, silent=True)
    if not isinstance(payload, list):
        return jsonify({'error': 'a JSON list of records is required'}), 400
    n = SESSION.load_records(payload)
    return jsonify({'count': n})


@app.get('/filters')
def get_filters():
    return jsonify(SESSION.filters.to_dict())


@app.put('/filters')
def put_filters():
    payload = request.get_json(force=True, silent=True) or {}
    return jsonify(SESSION.set_filters(payload).to_dict())


@app.get('/filters/options')
def get_filter_options():
    return jsonify(filter_options())


@app.get('/kpi')
def get_kpi():
    mode = _mode()
    period, kpi = SESSION.kpi(mode)
    target, source = SESSION.current_target()
    return jsonify({
        'mode': mode,
        'period': period.label if period else None,
        'kpi': kpi.to_dict(),
        'target': target,
        'target_source': source,
    })


@app.get('/kpi.md')
def get_kpi_md():
    _, kpi = SESSION.kpi(_mode())
    target, source = SESSION.current_target()
    return Response(kpi_summary_md(kpi.to_dict(), target, source), mimetype='text/markdown')


@app.get('/kpi/trend')
def get_trend():
    mode = _mode()
    limit = request.args.get('limit', type=int) or get_trend_config().weeks
    series = SESSION.trend(mode, limit)
    return jsonify({
        'mode': mode,
        'points': [{'period': k.label, **kpi.to_dict()} for k, kpi in series],
    })


@app.get('/kpi/trend.csv')
def get_trend_csv():
    mode = _mode()
    limit = request.args.get('limit', type=int) or get_trend_config().weeks
    return Response(write_kpi_trend(SESSION.trend(mode, limit)), mimetype='text/csv')


@app.get('/targets/versions')
def list_versions():
    return jsonify({
        'current': SESSION.store.current_version_id,
        'versions': [_version_json(v) for v in SESSION.store.versions()],
    })


@app.post('/targets/import')
def import_targets():
    body = request.get_data(as_text=True) or ''
    strategy = request.args.get('unknown', SESSION.target_config.unknown_strategy)
    # partial=1 imports the rows that validated and reports the rest
    partial = request.args.get('partial') == '1'
    skipped: list = []
    try:
        parsed = parse_goal_csv(body, SESSION.store.known_business_types(), unknown_strategy=strategy)
        rows, ignored = parsed.rows, parsed.ignored_unknown_count
    except GoalCsvParseError as e:
        if not (partial and e.valid_rows):
            logger.info("targets.import_rejected", issues=len(e.issues))
            return jsonify({
                'error': str(e),
                'issues': [i.to_dict() for i in e.issues],
                'valid_rows': len(e.valid_rows),
            }), 400
        logger.info("targets.import_partial", issues=len(e.issues), rows=len(e.valid_rows))
        rows, ignored, skipped = e.valid_rows, e.ignored_unknown_count, e.issues
    vid = SESSION.store.create_tuned_version(
        rows,
        sync_overall=request.args.get('sync_overall') == '1',
    )
    return jsonify({
        'version_id': vid,
        'rows': len(rows),
        'ignored_unknown': ignored,
        'skipped': [i.to_dict() for i in skipped],
    })


@app.post('/targets/versions/<vid>/switch')
def switch_version(vid: str):
    v = SESSION.store.switch_version(vid)
    return jsonify(_version_json(v))


@app.post('/targets/undo')
def undo_import():
    return jsonify({'undone': SESSION.store.undo(), 'current': SESSION.store.current_version_id})


@app.get('/targets/export')
def export_targets():
    vid = request.args.get('version')
    body = SESSION.store.export_version_csv(vid) if vid else SESSION.store.export_current_version_csv()
    return Response(body, mimetype='text/csv')


@app.get('/targets/dimensions')
def get_dimension_targets():
    return jsonify({d: dict(entries) for d, entries in dimension_targets(SESSION.target_table).items()})


@app.put('/targets/dimensions')
def put_dimension_targets():
    payload = request.get_json(force=True, silent=True)
    if not isinstance(payload, dict):
        return jsonify({'error': 'a JSON object of dimension targets is required'}), 400
    SESSION.set_dimension_targets({k: v for k, v in payload.items() if k != 'business_type'})
    return get_dimension_targets()


@app.get('/targets/dimensions/<dimension>/versions')
def list_dimension_versions(dimension: str):
    store = SESSION.dimension_store(dimension)
    return jsonify({
        'current': store.current_version_id,
        'versions': [_version_json(v, store) for v in store.versions()],
    })


@app.post('/targets/dimensions/<dimension>/versions/<vid>/switch')
def switch_dimension_version(dimension: str, vid: str):
    store = SESSION.dimension_store(dimension)
    return jsonify(_version_json(store.switch_version(vid), store))


@app.get('/targets/goals')
def goal_rows():
    rows = SESSION.store.display_rows(SESSION.achieved_by_business_type())
    return jsonify({'rows': [as_dict(m) for m in rows]})


@app.get('/targets/goals.csv')
def goal_rows_csv():
    rows = SESSION.store.display_rows(SESSION.achieved_by_business_type())
    return Response(write_goal_metrics(as_dict(m) for m in rows), mimetype='text/csv')


@app.get('/cache/stats')
def cache_stats():
    return jsonify(SESSION.cache.stats())


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=8000)
