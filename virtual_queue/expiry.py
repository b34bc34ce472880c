import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from . import db
from .models import Appointment, AppointmentStatus, QueueEntry, QueueLog, QueueStatus
from .timeutils import to_storage

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def due_entries(self, barbershop_id: int, cutoff: datetime) -> list[int]:
        rows = QueueEntry.query.with_entities(QueueEntry.id).filter(
            QueueEntry.barbershop_id == barbershop_id,
            QueueEntry.status == QueueStatus.NOTIFIED,
            QueueEntry.notification_expires_at < cutoff,
        ).all()
        return [row.id for row in rows]

    def sweep(self, barbershop_id: int, now: datetime) -> list[int]:
        """Expira notificações vencidas e libera os horários reservados.

        Só as entradas que ainda estavam `notified` no UPDATE perdem o
        agendamento e ganham log. Retorna os ids expirados; em falha de banco
        nada muda e a limpeza fica para o próximo tick.
        """
        cutoff = to_storage(now)
        try:
            due_ids = self.due_entries(barbershop_id, cutoff)
            if not due_ids:
                return []

            updated = QueueEntry.query.filter(
                QueueEntry.id.in_(due_ids),
                QueueEntry.status == QueueStatus.NOTIFIED,
            ).update({'status': QueueStatus.EXPIRED}, synchronize_session=False)
            if updated == len(due_ids):
                expired_ids = due_ids
            else:
                # outra transação mudou parte das entradas entre o SELECT e o UPDATE
                expired_ids = [row.id for row in QueueEntry.query.with_entities(QueueEntry.id).filter(
                    QueueEntry.id.in_(due_ids),
                    QueueEntry.status == QueueStatus.EXPIRED,
                ).all()]
                logger.warning('%s de %s entradas mudaram de status antes de expirar barbershop_id=%s',
                               len(due_ids) - len(expired_ids), len(due_ids), barbershop_id)
            if not expired_ids:
                db.session.commit()
                return []

            Appointment.query.filter(
                Appointment.queue_entry_id.in_(expired_ids),
                Appointment.status == AppointmentStatus.QUEUE_RESERVED,
            ).delete(synchronize_session=False)
            db.session.add_all([
                QueueLog(queue_entry_id=entry_id, barbershop_id=barbershop_id,
                         event_type='notification_expired', event_data={})
                for entry_id in expired_ids
            ])
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Falha ao expirar notificações barbershop_id=%s: %s', barbershop_id, e)
            return []

        logger.info('%s notificações expiradas barbershop_id=%s (agendamentos removidos)',
                    len(expired_ids), barbershop_id)
        return expired_ids
