"""Monitor da fila virtual.

A cada tick, por barbearia com a fila ativada: pontua quem está
aguardando, procura o horário livre mais cedo entre os profissionais que
fazem o serviço, cria a reserva provisória, avisa o cliente por WhatsApp
quando o horário está próximo e, por fim, expira as reservas não
confirmadas a tempo.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from . import db
from .expiry import ExpirySweeper
from .models import AppointmentStatus, QueueSettings
from .notifications import NotificationGate, WhatsAppNotifier
from .repository import ShopState, enabled_queue_settings, load_shop_state, waiting_entries
from .reservations import ReservationConflict, ReservationError, ReservationManager
from .scoring import ScoredEntry, by_priority, score_entries
from .slots import AvailableSlot, Booking, earliest_slot, required_duration
from .timeutils import SystemClock, TimeNormalizer, round_up_to_grid

logger = logging.getLogger(__name__)


@dataclass
class TickSummary:
    started_at: str = ''
    shops_processed: int = 0
    shops_skipped: int = 0
    shops_failed: list = field(default_factory=list)
    reservations: int = 0
    notifications: int = 0
    expired: int = 0

    def to_dict(self):
        return asdict(self)


class QueueMonitor:
    def __init__(self, clock=None, normalizer=None, notifier=None, lookahead_hours=4,
                 grid_minutes=10, safety_margin=10, confirmation_minutes=5,
                 notify_min_minutes=10, notify_max_minutes=120, order_by_priority=False):
        self.clock = clock or SystemClock()
        self.normalizer = normalizer or TimeNormalizer()
        self.lookahead = timedelta(hours=lookahead_hours)
        self.grid_minutes = grid_minutes
        self.safety_margin = safety_margin
        self.order_by_priority = order_by_priority
        self.reservations = ReservationManager(self.normalizer, confirmation_minutes)
        self.gate = NotificationGate(notifier or WhatsAppNotifier(None), notify_min_minutes,
                                     notify_max_minutes, confirmation_minutes)
        self.sweeper = ExpirySweeper()

    @classmethod
    def from_config(cls, config, clock=None, notifier=None):
        if notifier is None:
            notifier = WhatsAppNotifier(config.get('WHATSAPP_ACCESS_TOKEN'),
                                        config.get('WHATSAPP_GRAPH_VERSION', 'v18.0'))
        return cls(
            clock=clock,
            normalizer=TimeNormalizer(config.get('QUEUE_UTC_OFFSET_HOURS', -3)),
            notifier=notifier,
            lookahead_hours=config.get('QUEUE_LOOKAHEAD_HOURS', 4),
            grid_minutes=config.get('QUEUE_GRID_MINUTES', 10),
            safety_margin=config.get('QUEUE_SAFETY_MARGIN_MINUTES', 10),
            confirmation_minutes=config.get('QUEUE_CONFIRMATION_MINUTES', 5),
            notify_min_minutes=config.get('QUEUE_NOTIFY_MIN_MINUTES', 10),
            notify_max_minutes=config.get('QUEUE_NOTIFY_MAX_MINUTES', 120),
            order_by_priority=config.get('QUEUE_ORDER_BY_PRIORITY', False),
        )

    def run_tick(self) -> TickSummary:
        """Executa um tick completo. Erros ao listar as lojas sobem para o chamador."""
        now = self.clock.now()
        summary = TickSummary(started_at=now.isoformat())
        logger.info('Monitor da fila virtual iniciado utc=%s local=%s',
                    now.isoformat(), self.normalizer.to_local(now).strftime('%d/%m/%Y %H:%M:%S'))

        settings_list = enabled_queue_settings()
        if not settings_list:
            logger.info('Nenhuma barbearia com fila virtual ativa')
            return summary

        for settings in settings_list:
            barbershop_id = settings.barbershop_id
            try:
                self.process_shop(settings, now, summary)
            except SQLAlchemyError as e:
                db.session.rollback()
                summary.shops_failed.append(barbershop_id)
                logger.error('Falha ao processar barbershop_id=%s: %s', barbershop_id, e)

        logger.info('Monitor finalizado: %s', summary.to_dict())
        return summary

    def process_shop(self, settings: QueueSettings, now: datetime, summary: TickSummary) -> None:
        barbershop_id = settings.barbershop_id
        entries = waiting_entries(barbershop_id)
        state = None
        if not entries:
            logger.debug('barbershop_id=%s sem entradas aguardando', barbershop_id)
        else:
            state = load_shop_state(settings, now, now + self.lookahead, self.normalizer)
            if state is None:
                logger.warning('barbershop_id=%s sem serviços, profissionais ou horário de funcionamento; pulando',
                               barbershop_id)

        if state is None:
            summary.shops_skipped += 1
        else:
            logger.info('barbershop_id=%s: %s entradas aguardando', barbershop_id, len(entries))
            scored = score_entries(entries, settings, now)
            if self.order_by_priority:
                scored = by_priority(scored)
            for item in scored:
                self.allocate(state, item, now, summary)
            summary.shops_processed += 1

        # Expira depois da alocação: reservas recém-criadas ainda não venceram
        summary.expired += len(self.sweeper.sweep(barbershop_id, now))

    def allocate(self, state: ShopState, item: ScoredEntry, now: datetime, summary: TickSummary) -> None:
        entry = item.entry
        entry_id = entry.id
        service = state.services.get(entry.service_id)
        if service is None:
            logger.warning('queue_entry_id=%s: serviço %s inexistente ou inativo', entry_id, entry.service_id)
            return

        duration = required_duration(service.duration, state.settings.buffer_percentage)
        if duration <= 0:
            logger.warning('queue_entry_id=%s: duração exigida inválida (%s min)', entry_id, duration)
            return

        candidates = state.eligible_professionals(entry)
        if not candidates:
            logger.info('queue_entry_id=%s: nenhum profissional elegível', entry_id)
            return

        now_local = self.normalizer.to_local(now)
        found = earliest_slot(
            candidates,
            now=now_local,
            horizon_end=now_local + self.lookahead,
            duration_minutes=duration,
            bookings=state.bookings,
            travel_minutes=entry.travel_minutes or 0,
            hours=state.hours,
            safety_margin=self.safety_margin,
            grid_minutes=self.grid_minutes,
        )
        if found is None:
            logger.info('queue_entry_id=%s: nenhum horário disponível, segue aguardando', entry_id)
            return

        start = round_up_to_grid(found.start, self.grid_minutes)
        slot = AvailableSlot(start, start + timedelta(minutes=duration), found.professional_id)
        minutes_until_slot = int((slot.start - now_local).total_seconds() // 60)
        if not 0 < minutes_until_slot <= self.lookahead.total_seconds() // 60:
            logger.info('queue_entry_id=%s: horário fora do limite (slot em %s min)', entry_id, minutes_until_slot)
            return

        professional = state.professionals[slot.professional_id]
        try:
            self.reservations.reserve(entry, slot, professional, item.score, now)
        except ReservationConflict as e:
            logger.warning('%s', e)
            return
        except ReservationError as e:
            logger.error('%s', e)
            return

        state.bookings.append(Booking(slot.professional_id, slot.start, slot.end, AppointmentStatus.QUEUE_RESERVED))
        summary.reservations += 1
        if self.gate.notify(entry, state.barbershop, service, slot, minutes_until_slot):
            summary.notifications += 1
