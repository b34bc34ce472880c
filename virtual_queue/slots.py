"""Busca do próximo horário livre de um profissional.

Todos os horários aqui são locais (naive), já convertidos pelo
``TimeNormalizer``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from .models import AppointmentStatus
from .timeutils import round_up_to_grid

logger = logging.getLogger(__name__)

SAFETY_MARGIN_MINUTES = 10
GRID_MINUTES = 10


@dataclass(frozen=True)
class AvailableSlot:
    start: datetime
    end: datetime
    professional_id: int


@dataclass
class Booking:
    professional_id: int
    start: datetime
    end: datetime
    status: str = AppointmentStatus.PENDING


class WeeklyHours:
    """Horário de funcionamento por dia da semana (0=segunda)."""

    def __init__(self, days: dict[int, Optional[tuple[time, time]]]):
        self.days = days

    @classmethod
    def from_rows(cls, rows) -> 'WeeklyHours':
        days = {}
        for row in rows:
            if row.closed or not (row.open_time and row.close_time):
                days[row.weekday] = None
            else:
                days[row.weekday] = (row.open_time, row.close_time)
        return cls(days)

    def __bool__(self):
        return any(self.days.values())

    def contains(self, moment: datetime) -> bool:
        hours = self.days.get(moment.weekday())
        if not hours:
            return False
        open_time, close_time = hours
        t = moment.time().replace(second=0, microsecond=0)
        return open_time <= t <= close_time


def find_next_available_slot(
    now: datetime,
    horizon_end: datetime,
    professional_id: int,
    duration_minutes: int,
    bookings: Iterable[Booking],
    travel_minutes: int,
    hours: WeeklyHours,
    safety_margin: int = SAFETY_MARGIN_MINUTES,
    grid_minutes: int = GRID_MINUTES,
) -> Optional[AvailableSlot]:
    if duration_minutes <= 0:
        raise ValueError('duration_minutes deve ser positivo')

    own = sorted(
        (b for b in bookings
         if b.professional_id == professional_id and b.status not in AppointmentStatus.FREE),
        key=lambda b: b.start,
    )
    duration = timedelta(minutes=duration_minutes)
    floor = round_up_to_grid(now + timedelta(minutes=travel_minutes + safety_margin), grid_minutes)
    current = floor

    def fits_hours(start, end):
        return hours.contains(start) and hours.contains(end)

    for booking in own:
        slot_end = current + duration
        if slot_end <= booking.start and fits_hours(current, slot_end):
            return AvailableSlot(current, slot_end, professional_id)
        # avança para depois do agendamento, nunca para trás nem antes do piso
        current = max(current, round_up_to_grid(booking.end, grid_minutes), floor)

    slot_end = current + duration
    if slot_end <= horizon_end and fits_hours(current, slot_end):
        return AvailableSlot(current, slot_end, professional_id)

    logger.debug('Sem horário para professional_id=%s a partir de %s', professional_id, floor)
    return None


def earliest_slot(professional_ids: Iterable[int], **kwargs) -> Optional[AvailableSlot]:
    """Menor início entre os profissionais; empate fica com o primeiro."""
    best = None
    for professional_id in professional_ids:
        slot = find_next_available_slot(professional_id=professional_id, **kwargs)
        if slot and (best is None or slot.start < best.start):
            best = slot
    return best


def required_duration(service_duration: int, buffer_percentage: int) -> int:
    """Duração do serviço reduzida pelo buffer da loja, em minutos inteiros."""
    return service_duration * (100 - (buffer_percentage or 0)) // 100
