import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from . import db
from .models import Appointment, AppointmentStatus, Professional, QueueEntry, QueueLog, QueueStatus
from .slots import AvailableSlot
from .timeutils import TimeNormalizer, to_storage

logger = logging.getLogger(__name__)

CONFIRMATION_MINUTES = 5


class ReservationError(RuntimeError):
    pass


class ReservationConflict(ReservationError):
    """A entrada saiu de 'waiting' antes da reserva (outro tick ou cancelamento)."""


class ReservationManager:
    def __init__(self, normalizer: TimeNormalizer, confirmation_minutes: int = CONFIRMATION_MINUTES):
        self.normalizer = normalizer
        self.confirmation_minutes = confirmation_minutes

    def reserve(self, entry: QueueEntry, slot: AvailableSlot, professional: Professional,
                score: float, now: datetime) -> Appointment:
        """Cria o agendamento provisório e marca a entrada como notificada.

        Agendamento, atualização da entrada e log são gravados na mesma
        transação; em qualquer falha nada é persistido.
        """
        start_utc = to_storage(self.normalizer.to_utc(slot.start))
        end_utc = to_storage(self.normalizer.to_utc(slot.end))
        sent_at = to_storage(now)
        expires_at = to_storage(now + timedelta(minutes=self.confirmation_minutes))
        entry_id = entry.id
        barbershop_id = entry.barbershop_id

        try:
            appointment = Appointment(
                barbershop_id=barbershop_id,
                professional_id=professional.id,
                service_id=entry.service_id,
                start_at=start_utc,
                end_at=end_utc,
                client_name=entry.client_name,
                client_phone=entry.client_phone,
                status=AppointmentStatus.QUEUE_RESERVED,
                payment_status='pending',
                source='virtual_queue',
                queue_entry_id=entry_id,
            )
            db.session.add(appointment)
            db.session.flush()

            # Só reserva se a entrada ainda estiver aguardando
            claimed = QueueEntry.query.filter_by(id=entry_id, status=QueueStatus.WAITING).update({
                'status': QueueStatus.NOTIFIED,
                'notification_sent_at': sent_at,
                'notification_expires_at': expires_at,
                'reserved_slot_start': start_utc,
                'reserved_slot_end': end_utc,
                'priority_score': score,
            }, synchronize_session=False)
            if not claimed:
                db.session.rollback()
                raise ReservationConflict(f'queue_entry_id={entry_id} não está mais aguardando')

            db.session.add(QueueLog(
                queue_entry_id=entry_id,
                barbershop_id=barbershop_id,
                event_type='notification_sent',
                event_data={'slot': {'start': start_utc.isoformat() + 'Z', 'end': end_utc.isoformat() + 'Z'},
                            'professional_id': professional.id,
                            'priority_score': score},
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise ReservationError(f'Falha ao reservar queue_entry_id={entry_id}: {e}') from e

        logger.info('Reserva provisória criada appointment_id=%s queue_entry_id=%s professional_id=%s slot=%s-%s',
                    appointment.id, entry_id, professional.id,
                    slot.start.strftime('%Y-%m-%d %H:%M'), slot.end.strftime('%H:%M'))
        return appointment
