import logging

from flask import Blueprint, current_app, jsonify, render_template, request
from pydantic import ValidationError

from url_analyser.errors import PageFetchFailure, ParseFailure
from url_analyser.model import AnalyseURLRequest
from url_analyser.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

analyse_router = Blueprint('analyse_router', __name__)


def get_analysis_controller():
    """Retrieves the page analysis controller from the Flask application context."""
    controller = current_app.config.get('ANALYSIS_CONTROLLER')
    if not controller:
        raise RuntimeError("PageAnalysisController is not set in app.config['ANALYSIS_CONTROLLER']")
    return controller


@analyse_router.route('/')
def index():
    """Renders the page with the URL form."""
    return render_template('index.html', app_name=current_app.config.get('APP_NAME'))


@analyse_router.route('/analyseUrl', methods=['POST'])
def analyse_url():
    """
    Fetches the URL posted as JSON ({"URL": "..."}) and returns its analysis report.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Received malformed JSON from client"}), 400

    try:
        body = AnalyseURLRequest.model_validate(payload)
    except ValidationError:
        return jsonify({"error": "Request body must contain a 'URL' field"}), 400

    url = body.url.strip()
    logger.info("Received URL from client: %s", url)
    if not UrlUtils.is_absolute_web_url(url):
        return jsonify({"error": "Received unparseable URL from client"}), 400

    controller = get_analysis_controller()
    try:
        report = controller.analyse_url(url)
    except PageFetchFailure as e:
        return jsonify({"error": str(e)}), 502
    except ParseFailure:
        return jsonify({"error": f"Received unparseable HTML from URL: {url}"}), 500

    if report is None:
        logger.info("Forwarding empty response to client")
        return "", 200

    return jsonify(report.to_json_dict())
