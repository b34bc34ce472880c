from datetime import datetime, time, timedelta, timezone
from types import SimpleNamespace

import pytest

from virtual_queue import create_app, db
from virtual_queue.models import (Appointment, AppointmentStatus, Barbershop, BusinessHours, Professional,
                                  QueueEntry, QueueSettings, QueueStatus, Service)
from virtual_queue.monitor import QueueMonitor
from virtual_queue.notifications import NotificationError
from virtual_queue.timeutils import FixedClock

# Segunda-feira, 06/10/2025 10:00 em Brasília (UTC-3)
NOW_UTC = datetime(2025, 10, 6, 13, 0, tzinfo=timezone.utc)


def local_to_storage(local: datetime) -> datetime:
    """Horário local (UTC-3) -> datetime naive UTC, como gravado no banco."""
    return local + timedelta(hours=3)


class RecordingNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def is_configured(self, phone_number_id):
        return bool(phone_number_id)

    def send_text(self, phone_number_id, to, body):
        if self.fail:
            raise NotificationError('WhatsApp error: 500 boom')
        self.sent.append({'phone_number_id': phone_number_id, 'to': to, 'body': body})
        return {'messages': [{'id': 'wamid.1'}]}


@pytest.fixture
def clock():
    return FixedClock(NOW_UTC)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(clock, notifier):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'QUEUE_CRON_SECRET': None,
    })
    app.extensions['queue_monitor'] = {'clock': clock, 'notifier': notifier}
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def monitor(app, clock, notifier):
    return QueueMonitor.from_config(app.config, clock=clock, notifier=notifier)


def make_shop(name='Barbearia Central', whatsapp_id='1234567890', open_time=time(9, 0),
              close_time=time(22, 0), enabled=True, with_hours=True, buffer_percentage=0,
              eta_weight=1.0, position_weight=1.0, wait_time_bonus=0.5):
    shop = Barbershop(name=name, whatsapp_business_account_id=whatsapp_id)
    db.session.add(shop)
    db.session.flush()
    if with_hours:
        for weekday in range(7):
            if weekday == 6:
                db.session.add(BusinessHours(barbershop_id=shop.id, weekday=weekday, closed=True))
            else:
                db.session.add(BusinessHours(barbershop_id=shop.id, weekday=weekday,
                                             open_time=open_time, close_time=close_time, closed=False))
    professional = Professional(name='João', barbershop_id=shop.id, status='active')
    service = Service(name='Corte', duration=30, price=35.0, active=True, barbershop_id=shop.id)
    service.professionals = [professional]
    settings = QueueSettings(barbershop_id=shop.id, enabled=enabled, eta_weight=eta_weight,
                             position_weight=position_weight, wait_time_bonus=wait_time_bonus,
                             buffer_percentage=buffer_percentage)
    db.session.add_all([professional, service, settings])
    db.session.commit()
    return SimpleNamespace(id=shop.id, shop=shop, professional=professional, service=service, settings=settings)


def add_professional(shop, name, services=()):
    professional = Professional(name=name, barbershop_id=shop.id, status='active')
    db.session.add(professional)
    for service in services:
        service.professionals.append(professional)
    db.session.commit()
    return professional


def add_entry(shop, travel_minutes=15, waited_minutes=0, client_name='Carlos', professional_id=None,
              service_id=None, status=QueueStatus.WAITING, created_at=None):
    entry = QueueEntry(
        barbershop_id=shop.id,
        client_name=client_name,
        client_phone='+55 (11) 98888-7777',
        service_id=service_id or shop.service.id,
        professional_id=professional_id,
        travel_minutes=travel_minutes,
        created_at=created_at or (NOW_UTC.replace(tzinfo=None) - timedelta(minutes=waited_minutes)),
        status=status,
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def add_appointment(shop, professional_id, local_start, minutes=30, status=AppointmentStatus.CONFIRMED,
                    queue_entry_id=None):
    appointment = Appointment(
        barbershop_id=shop.id,
        professional_id=professional_id,
        service_id=shop.service.id,
        start_at=local_to_storage(local_start),
        end_at=local_to_storage(local_start + timedelta(minutes=minutes)),
        client_name='Cliente agendado',
        status=status,
        queue_entry_id=queue_entry_id,
    )
    db.session.add(appointment)
    db.session.commit()
    return appointment
