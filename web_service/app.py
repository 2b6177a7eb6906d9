import os
import logging
from flask import Flask, jsonify

from config import Config, VERSION
from model_manager import is_model_present
from processor import PipelineSettings
from .api import api_bp
from .state import JobRegistry
from .swagger import swaggerui_blueprint, SWAGGER_URL
from .worker import JobRunner


def create_app(config_object=Config, registry=None, runner=None):
    """
    Build the Flask app.

    registry and runner can be injected; by default a fresh JobRegistry and a
    JobRunner driving the real pipeline are created.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.getLogger().setLevel(app.config['LOG_LEVEL'].upper())

    settings = PipelineSettings.from_config(app.config)
    registry = registry if registry is not None else JobRegistry()
    runner = runner if runner is not None else JobRunner(registry, settings)

    app.extensions['job_registry'] = registry
    app.extensions['job_runner'] = runner
    app.extensions['pipeline_settings'] = settings

    app.register_blueprint(api_bp)
    app.register_blueprint(swaggerui_blueprint, url_prefix=SWAGGER_URL)

    @app.after_request
    def allow_any_origin(response):
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        return response

    @app.route('/health')
    def health():
        models_dir = os.path.join(app.config['DATA_DIR'], 'models')
        return jsonify({
            'status': 'ok',
            'version': VERSION,
            'models_loaded': is_model_present(models_dir, app.config['MODEL_FILENAME'])
        })

    return app
