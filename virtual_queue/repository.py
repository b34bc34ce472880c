"""Leituras do banco usadas pelo monitor da fila."""
from dataclasses import dataclass, field
from datetime import datetime

from . import db
from .models import (Appointment, AppointmentStatus, Barbershop, BusinessHours, Professional,
                     QueueEntry, QueueSettings, QueueStatus, Service, service_professional)
from .slots import Booking, WeeklyHours
from .timeutils import TimeNormalizer, from_storage, to_storage


@dataclass
class ShopState:
    barbershop: Barbershop
    settings: QueueSettings
    services: dict[int, Service]
    professionals: dict[int, Professional]
    eligibility: dict[int, set[int]]
    hours: WeeklyHours
    bookings: list[Booking] = field(default_factory=list)

    def eligible_professionals(self, entry: QueueEntry) -> list[int]:
        """Profissionais ativos que fazem o serviço; com preferência, só o preferido."""
        able = self.eligibility.get(entry.service_id, set())
        ids = [pid for pid in self.professionals if pid in able]
        if entry.professional_id:
            ids = [pid for pid in ids if pid == entry.professional_id]
        return ids


def enabled_queue_settings() -> list[QueueSettings]:
    return QueueSettings.query.filter_by(enabled=True).order_by(QueueSettings.barbershop_id.asc()).all()


def waiting_entries(barbershop_id: int) -> list[QueueEntry]:
    return (QueueEntry.query
            .filter_by(barbershop_id=barbershop_id, status=QueueStatus.WAITING)
            .order_by(QueueEntry.created_at.asc(), QueueEntry.id.asc())
            .all())


def load_shop_state(settings: QueueSettings, now: datetime, horizon_end: datetime,
                    normalizer: TimeNormalizer) -> ShopState | None:
    """Carrega serviços, equipe, horários e agenda da loja.

    Retorna None quando falta algum dado de referência (serviços,
    profissionais ou horário de funcionamento).
    """
    barbershop_id = settings.barbershop_id
    barbershop = db.session.get(Barbershop, barbershop_id)
    if barbershop is None:
        return None

    services = {s.id: s for s in Service.query.filter_by(barbershop_id=barbershop_id, active=True).all()}
    professionals = {p.id: p for p in Professional.query.filter_by(barbershop_id=barbershop_id, status='active')
                     .order_by(Professional.id.asc()).all()}
    hours = WeeklyHours.from_rows(BusinessHours.query.filter_by(barbershop_id=barbershop_id).all())
    if not services or not professionals or not hours:
        return None

    eligibility: dict[int, set[int]] = {}
    rows = db.session.query(service_professional.c.service_id, service_professional.c.professional_id).filter(
        service_professional.c.service_id.in_(list(services))
    ).all()
    for service_id, professional_id in rows:
        eligibility.setdefault(service_id, set()).add(professional_id)

    appointments = Appointment.query.filter(
        Appointment.barbershop_id == barbershop_id,
        Appointment.start_at < to_storage(horizon_end),
        Appointment.end_at > to_storage(now),
        ~Appointment.status.in_(AppointmentStatus.FREE),
    ).all()
    bookings = [
        Booking(
            professional_id=a.professional_id,
            start=normalizer.to_local(from_storage(a.start_at)),
            end=normalizer.to_local(from_storage(a.end_at)),
            status=a.status,
        )
        for a in appointments
    ]

    return ShopState(barbershop=barbershop, settings=settings, services=services,
                     professionals=professionals, eligibility=eligibility, hours=hours,
                     bookings=bookings)
