"""Conversão entre instantes UTC e o horário local da barbearia.

Instantes são ``datetime`` com ``tzinfo`` em UTC; horários locais são
``datetime`` naive no relógio de parede da loja. O offset é fixo (sem
horário de verão).
"""
from datetime import datetime, timedelta, timezone


class TimeNormalizer:
    def __init__(self, offset_hours: int = -3):
        self.offset = timedelta(hours=offset_hours)

    def to_local(self, utc_instant: datetime) -> datetime:
        if utc_instant.tzinfo is None:
            raise ValueError('to_local espera um instante com timezone')
        utc = utc_instant.astimezone(timezone.utc).replace(tzinfo=None)
        return utc + self.offset

    def to_utc(self, local: datetime) -> datetime:
        if local.tzinfo is not None:
            raise ValueError('to_utc espera horário local naive')
        return (local - self.offset).replace(tzinfo=timezone.utc)


def round_up_to_grid(local: datetime, grid_minutes: int = 10) -> datetime:
    """Arredonda para o próximo múltiplo de ``grid_minutes``.

    10:25 -> 10:30, 10:55 -> 11:00, 23:55 -> 00:00 do dia seguinte.
    Um horário já na grade (sem segundos) volta inalterado.
    """
    if grid_minutes <= 0:
        raise ValueError('grid_minutes deve ser positivo')
    base = local.replace(minute=0, second=0, microsecond=0)
    offset = local - base
    step = timedelta(minutes=grid_minutes)
    steps = -(-offset // step)  # ceil
    return base + steps * step


def to_storage(utc_instant: datetime) -> datetime:
    """Instante UTC -> datetime naive, como gravado no banco."""
    if utc_instant.tzinfo is None:
        raise ValueError('to_storage espera um instante com timezone')
    return utc_instant.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value.replace(tzinfo=timezone.utc)


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Relógio parado, usado em testes e reprocessamentos."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            raise ValueError('FixedClock espera um instante com timezone')
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, **kwargs) -> None:
        self.instant = self.instant + timedelta(**kwargs)
