from flask import Flask, render_template, request, jsonify, session
import logging
import os
import threading
import time
import uuid
from datetime import datetime
from core.config import Settings
from core.models import GenerationError
from modules.AI_suggester import AISuggester
from modules.pool_builder import AddressPoolBuilder
from utils.reporting import ReportGenerator, serialize_record, sort_by_latency, summarize
from utils.helpers import format_duration, format_timestamp, parse_count

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = Settings()

app = Flask(__name__)
app.secret_key = settings.secret_key or os.urandom(24)
app.config.update(settings.to_flask_config())

@app.template_filter('datetimeformat')
def datetimeformat(value, format='%Y-%m-%d %H:%M:%S'):
    return format_timestamp(value, format)

scan_results = {}
scan_status = {}
# client id -> {'seen': frozenset, 'active_scan': scan id or None}
client_state = {}
state_lock = threading.Lock()

PARTIAL_EVERY = 5


def _client_id():
    if 'client_id' not in session:
        session['client_id'] = uuid.uuid4().hex
    return session['client_id']


def _client_entry(client_id):
    return client_state.setdefault(client_id, {'seen': frozenset(), 'active_scan': None})


def _evict_finished_scans(limit):
    """Drop the oldest finished scans so a new one fits under the limit; call with state_lock held"""
    for scan_id in list(scan_status):
        if len(scan_status) < limit:
            break
        if scan_status[scan_id]['status'] == 'running':
            continue
        del scan_status[scan_id]
        scan_results.pop(scan_id, None)


@app.context_processor
def inject_now():
    return {'now': datetime.now}

@app.route('/')
def index():
    return render_template('scan.html',
                           default_count=app.config['DEFAULT_IP_COUNT'],
                           max_count=app.config['MAX_IP_COUNT'])

@app.route('/start_scan', methods=['POST'])
def start_scan():
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    count = parse_count(data.get('count', app.config['DEFAULT_IP_COUNT']), app.config['MAX_IP_COUNT'])
    if count is None:
        return jsonify({'error': f"Count must be an integer between 1 and {app.config['MAX_IP_COUNT']}"}), 400

    client_id = _client_id()
    scan_id = str(uuid.uuid4())

    with state_lock:
        entry = _client_entry(client_id)
        if entry['active_scan']:
            return jsonify({'error': 'A scan is already running', 'scan_id': entry['active_scan']}), 409
        entry['active_scan'] = scan_id
        seen = entry['seen']
        _evict_finished_scans(app.config['MAX_STORED_SCANS'])

        scan_status[scan_id] = {
            'status': 'running',
            'progress': 0,
            'current_task': 'Requesting AI suggestions...',
            'start_time': datetime.now(),
            'requested_count': count,
            'client_id': client_id
        }
        scan_results[scan_id] = {
            'scan_id': scan_id,
            'timestamp': datetime.now().isoformat(),
            'requested_count': count,
            'ips': [],
            'seen_total': len(seen),
            'stats': {}
        }

    options = {
        'api_key': app.config['GEMINI_API_KEY'],
        'model': app.config['GEMINI_MODEL'],
        'max_count': app.config['MAX_IP_COUNT'],
        'max_attempts': app.config['SYNTHESIS_MAX_ATTEMPTS'],
        'delay': app.config['PROGRESS_DELAY']
    }

    # Start background scan
    thread = threading.Thread(target=run_scan, args=(scan_id, client_id, count, seen, options))
    thread.daemon = True
    thread.start()

    return jsonify({'scan_id': scan_id})


def run_scan(scan_id, client_id, count, seen, options):
    def report_progress(done, total, snapshot):
        with state_lock:
            scan_status[scan_id]['progress'] = round(done / total * 100)
            scan_status[scan_id]['current_task'] = f'Testing {done}/{total}...'
            if done % PARTIAL_EVERY == 1 or done == total:
                scan_results[scan_id]['ips'] = [serialize_record(r) for r in snapshot]
        if options['delay']:
            time.sleep(options['delay'])

    try:
        suggester = AISuggester(options['api_key'], options['model'])
        builder = AddressPoolBuilder(suggester,
                                     max_count=options['max_count'],
                                     max_attempts=options['max_attempts'])
        records, updated_seen = builder.build_pool(count, seen, progress=report_progress)
        logger.info(f"Scan {scan_id} finished: {builder.stats}")

        with state_lock:
            entry = _client_entry(client_id)
            entry['seen'] = entry['seen'].union(updated_seen)
            entry['active_scan'] = None

            scan_results[scan_id]['ips'] = [serialize_record(r) for r in records]
            scan_results[scan_id]['seen_total'] = len(entry['seen'])
            scan_results[scan_id]['stats'] = dict(builder.stats)

            status = scan_status[scan_id]
            status['progress'] = 100
            status['status'] = 'completed'
            status['current_task'] = 'Scan completed'
            status['end_time'] = datetime.now()
            status['duration'] = format_duration(status['start_time'], status['end_time'])

    except GenerationError as e:
        logger.error(f"Generation failed for {scan_id}: {e}")
        _fail_scan(scan_id, client_id, 'Generation failed, retry')
    except Exception as e:
        logger.exception(f"Scan error for {scan_id}")
        _fail_scan(scan_id, client_id, str(e))


def _fail_scan(scan_id, client_id, message):
    with state_lock:
        _client_entry(client_id)['active_scan'] = None
        scan_results[scan_id]['ips'] = []
        status = scan_status[scan_id]
        status['status'] = 'error'
        status['error'] = message
        status['progress'] = 0
        status['current_task'] = 'Scan failed'

@app.route('/scan_status/<scan_id>')
def get_scan_status(scan_id):
    with state_lock:
        if scan_id not in scan_status:
            return jsonify({'error': 'Scan not found'}), 404

        status = scan_status[scan_id].copy()
        status.pop('client_id', None)
        ips = list(scan_results[scan_id]['ips'])
        seen_total = scan_results[scan_id]['seen_total']

    # Convert datetime objects to strings
    if 'start_time' in status:
        status['start_time'] = status['start_time'].isoformat()
    if 'end_time' in status:
        status['end_time'] = status['end_time'].isoformat()

    status['ips'] = sort_by_latency(ips)
    status['summary'] = summarize(ips, seen_total)
    return jsonify(status)

@app.route('/api/results/<scan_id>')
def api_results(scan_id):
    with state_lock:
        if scan_id not in scan_results:
            return jsonify({'error': 'Results not found'}), 404
        results = dict(scan_results[scan_id])

    results['ips'] = sort_by_latency(results['ips'])
    results['summary'] = summarize(results['ips'], results['seen_total'])
    return jsonify(results)

@app.route('/export/<scan_id>')
def export_results(scan_id):
    with state_lock:
        if scan_id not in scan_results:
            return jsonify({'error': 'Results not found'}), 404
        results = dict(scan_results[scan_id])

    format_type = request.args.get('format', 'txt')

    report_gen = ReportGenerator()

    if format_type == 'pdf':
        pdf_content = report_gen.generate_pdf(results)
        return pdf_content, 200, {
            'Content-Type': 'application/pdf',
            'Content-Disposition': f'attachment; filename=clean_ips_{scan_id}.pdf'
        }
    elif format_type == 'json':
        json_content = report_gen.generate_json(results)
        return json_content, 200, {
            'Content-Type': 'application/json',
            'Content-Disposition': f'attachment; filename=clean_ips_{scan_id}.json'
        }
    elif format_type == 'txt':
        return report_gen.generate_text(results), 200, {'Content-Type': 'text/plain; charset=utf-8'}

    return jsonify({'error': f'Unsupported format: {format_type}'}), 400

@app.route('/api/session')
def session_info():
    client_id = _client_id()
    with state_lock:
        entry = _client_entry(client_id)
        return jsonify({
            'total_unique': len(entry['seen']),
            'active_scan': entry['active_scan']
        })

@app.route('/health')
def health_check():
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now().isoformat(),
        'ai_enabled': bool(app.config['GEMINI_API_KEY'])
    })

@app.route('/api/capabilities')
def get_capabilities():
    return jsonify({
        'analysis_type': 'CDN Clean IP Generation',
        'features': [
            'AI-suggested CDN addresses',
            'Prefix-based fallback synthesis',
            'Session-wide deduplication',
            'Simulated latency grading',
            'TXT/JSON/PDF export'
        ],
        'modules': [
            'AISuggester',
            'AddressPoolBuilder',
            'ReportGenerator'
        ],
        'max_count': app.config['MAX_IP_COUNT']
    })

if __name__ == '__main__':
    print(f"🌐 Server: http://{settings.host}:{settings.port}")
    print("-" * 50)

    app.run(debug=True, host=settings.host, port=settings.port)
