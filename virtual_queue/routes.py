from flask import Blueprint, jsonify, request, current_app
import hmac
import sys

import click
from sqlalchemy.exc import SQLAlchemyError

from .models import QueueEntry, QueueStatus
from .monitor import QueueMonitor

main = Blueprint('main', __name__, cli_group=None)

# ==========================
# Helpers
# ==========================

def _cron_authorized() -> bool:
    secret = current_app.config.get('QUEUE_CRON_SECRET')
    if not secret:
        return True
    auth = request.headers.get('Authorization', '')
    token = auth[len('Bearer '):].strip() if auth.startswith('Bearer ') else ''
    token = token or request.headers.get('X-Cron-Secret', '').strip()
    return bool(token) and hmac.compare_digest(token, secret)


def _build_monitor() -> QueueMonitor:
    # Permite injetar relógio/notificador (testes) via app.extensions
    overrides = current_app.extensions.get('queue_monitor', {})
    return QueueMonitor.from_config(current_app.config,
                                    clock=overrides.get('clock'),
                                    notifier=overrides.get('notifier'))

# ==========================
# Fila virtual: gatilho do cron
# ==========================

@main.route('/api/queue/monitor', methods=['GET', 'POST'])
def queue_monitor_run():
    if not _cron_authorized():
        return jsonify({'success': False, 'error': 'unauthorized'}), 401
    try:
        summary = _build_monitor().run_tick()
    except Exception as e:
        current_app.logger.exception('Erro no monitor da fila virtual: %s', e)
        return jsonify({'success': False, 'error': str(e) or 'Erro desconhecido'}), 500
    return jsonify({'success': True, 'message': 'Monitor executado com sucesso', 'summary': summary.to_dict()})


@main.route('/api/queue/<int:barbershop_id>/entries', methods=['GET'])
def queue_entries(barbershop_id):
    if not _cron_authorized():
        return jsonify({'ok': False, 'error': 'unauthorized'}), 401
    status = (request.args.get('status') or '').strip().lower()
    allowed = {QueueStatus.WAITING, QueueStatus.NOTIFIED, *QueueStatus.TERMINAL}
    if status and status not in allowed:
        return jsonify({'ok': False, 'error': 'invalid_status'}), 400
    query = QueueEntry.query.filter_by(barbershop_id=barbershop_id)
    if status:
        query = query.filter_by(status=status)
    try:
        entries = query.order_by(QueueEntry.created_at.asc()).all()
    except SQLAlchemyError as e:
        current_app.logger.error('Falha ao listar fila barbershop_id=%s: %s', barbershop_id, e)
        return jsonify({'ok': False, 'error': 'list_failed'}), 500
    return jsonify({'ok': True, 'entries': [e.to_dict() for e in entries]})

# ==========================
# CLI: flask queue-monitor
# ==========================

@main.cli.command('queue-monitor')
def queue_monitor_command():
    """Executa um tick do monitor da fila virtual."""
    try:
        summary = _build_monitor().run_tick()
    except Exception as e:
        current_app.logger.exception('Erro no monitor da fila virtual: %s', e)
        sys.exit(1)
    click.echo(summary.to_dict())
