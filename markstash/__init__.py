from flask import Flask

from markstash.api import api_bp
from markstash.config import Config
from markstash.extensions import db, login_manager, migrate
from markstash.services.identity import init_identity


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    init_identity(app)

    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized Markstash database.")

    with app.app_context():
        db.create_all()

    return app
