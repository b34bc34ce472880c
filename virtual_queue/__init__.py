from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
import logging
import os

db = SQLAlchemy()

def create_app(config=None):
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'fila-virtual-dev')

    db_url = os.environ.get('DATABASE_URL')
    if not db_url:
        # Banco local para desenvolvimento
        db_url = 'sqlite:///' + os.path.join(app.instance_path, 'fila_virtual.db')
    elif db_url.startswith('postgres://'):
        db_url = db_url.replace('postgres://', 'postgresql://', 1)
    app.config['SQLALCHEMY_DATABASE_URI'] = db_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Fila virtual
    app.config['QUEUE_UTC_OFFSET_HOURS'] = int(os.environ.get('QUEUE_UTC_OFFSET_HOURS', '-3'))
    app.config['QUEUE_LOOKAHEAD_HOURS'] = int(os.environ.get('QUEUE_LOOKAHEAD_HOURS', '4'))
    app.config['QUEUE_GRID_MINUTES'] = int(os.environ.get('QUEUE_GRID_MINUTES', '10'))
    app.config['QUEUE_SAFETY_MARGIN_MINUTES'] = int(os.environ.get('QUEUE_SAFETY_MARGIN_MINUTES', '10'))
    app.config['QUEUE_CONFIRMATION_MINUTES'] = int(os.environ.get('QUEUE_CONFIRMATION_MINUTES', '5'))
    app.config['QUEUE_NOTIFY_MIN_MINUTES'] = int(os.environ.get('QUEUE_NOTIFY_MIN_MINUTES', '10'))
    app.config['QUEUE_NOTIFY_MAX_MINUTES'] = int(os.environ.get('QUEUE_NOTIFY_MAX_MINUTES', '120'))
    app.config['QUEUE_ORDER_BY_PRIORITY'] = os.environ.get('QUEUE_ORDER_BY_PRIORITY', '0') == '1'
    app.config['QUEUE_CRON_SECRET'] = os.environ.get('QUEUE_CRON_SECRET', '').strip() or None

    # WhatsApp Cloud API
    app.config['WHATSAPP_ACCESS_TOKEN'] = os.environ.get('WHATSAPP_ACCESS_TOKEN', '').strip() or None
    app.config['WHATSAPP_GRAPH_VERSION'] = os.environ.get('WHATSAPP_GRAPH_VERSION', 'v18.0')

    if config:
        app.config.update(config)

    logging.basicConfig(
        level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    os.makedirs(app.instance_path, exist_ok=True)
    db.init_app(app)
    Migrate(app, db)

    from .routes import main as main_blueprint
    app.register_blueprint(main_blueprint)

    return app
