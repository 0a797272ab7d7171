from flask import Flask

from linkhub.api import api_bp
from linkhub.auth import auth_bp
from linkhub.config import Config
from linkhub.extensions import cors, db, login_manager, migrate
from linkhub.jobs.scheduler import start_scheduler
from linkhub.services.link_checks import sweep_stored_links
from linkhub.web import web_bp


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=app.config["CORS_ORIGINS"] != "*",
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(web_bp)
    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized LinkHub database.")

    @app.cli.command("check-links")
    def check_links_command():
        summary = sweep_stored_links(app)
        print(
            f"Checked {summary['checked']} links: "
            f"{summary['alive']} alive, {summary['problematic']} problematic."
        )

    @app.context_processor
    def inject_globals():
        return {"app_name": "LinkHub"}

    with app.app_context():
        db.create_all()

    start_scheduler(app)
    return app
