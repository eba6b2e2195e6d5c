"""
UrlAnalyser - Web Server
Flask application serving the analysis form and the /analyseUrl API.
"""

import argparse
import logging
from typing import Optional

from flask import Flask

from url_analyser.controllers.page_analysis_controller import PageAnalysisController
from url_analyser.managers.config_manager import config_manager
from url_analyser.model import AnalyserSettings, ServerSettings
from url_analyser.server.routers.analyse_router import analyse_router
from url_analyser.utils.configure_logging import configure_logger
from url_analyser.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def create_app(
        server_settings: Optional[ServerSettings] = None,
        analyser_settings: Optional[AnalyserSettings] = None,
        controller: Optional[PageAnalysisController] = None,
) -> Flask:
    """
    Application factory. The analysis controller is injected into the app config
    so the blueprint can reach it.
    """
    server_settings = server_settings or ServerSettings()
    flask_app = Flask(__name__, template_folder=str(PathUtils.get_server_root() / "templates"))

    flask_app.config['APP_NAME'] = server_settings.app
    flask_app.config['ENV_NAME'] = server_settings.env
    flask_app.config['ANALYSIS_CONTROLLER'] = controller or PageAnalysisController(
        analyser_settings or config_manager.analyser_settings()
    )

    flask_app.register_blueprint(analyse_router)
    return flask_app


def serve(server_settings: ServerSettings, analyser_settings: Optional[AnalyserSettings] = None) -> None:
    app = create_app(server_settings, analyser_settings)
    logger.info("Server listening on: %s:%d (%s)", server_settings.ip, server_settings.port, server_settings.env)
    app.run(
        debug=server_settings.env == "dev",
        host=server_settings.ip,
        port=server_settings.port,
        use_reloader=False,
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="UrlAnalyser web server")
    parser.add_argument(
        "--env",
        default=config_manager.get_nested("server.default_env", "dev"),
        help="The environment in which the server is running. Options: dev, test, production",
    )
    parser.add_argument("--host", type=str, default=None, help="Overrides the host of the environment")
    parser.add_argument("--port", type=int, default=None, help="Overrides the port of the environment")
    args = parser.parse_args(argv)

    configure_logger(
        config_manager.get_nested("debug.level", "INFO"),
        config_manager.get_nested("debug.module_levels"),
        config_manager.get_nested("debug.silenced_loggers"),
    )

    settings = config_manager.server_settings(args.env)
    updates = {k: v for k, v in (("ip", args.host), ("port", args.port)) if v is not None}
    serve(settings.model_copy(update=updates))


if __name__ == '__main__':
    main()
