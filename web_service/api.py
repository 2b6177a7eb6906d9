import logging
from flask import Blueprint, request, jsonify, current_app

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _registry():
    return current_app.extensions['job_registry']


@api_bp.route('/transcribe', methods=['POST'])
def transcribe():
    """Queue a URL for download, conversion and transcription"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request must be JSON'}), 400

    url = data.get('url')
    if not isinstance(url, str) or not url.strip():
        return jsonify({'error': 'url is required'}), 400
    url = url.strip()

    job_id = _registry().create(url)
    logging.info(f"Queued job {job_id} for {url}")

    # Processing continues on the runner after this response is sent
    current_app.extensions['job_runner'].submit(job_id, url)

    return jsonify({
        'job_id': job_id,
        'status': 'queued'
    })


@api_bp.route('/jobs', methods=['GET'])
def list_jobs():
    """Snapshot of every known job"""
    return jsonify(_registry().list())


@api_bp.route('/jobs/<job_id>', methods=['GET'])
def get_job(job_id):
    """Get job status"""
    job = _registry().get(job_id)
    if job is None:
        return jsonify({'error': 'Job not found'}), 404
    return jsonify(job)
