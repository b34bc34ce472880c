from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

from virtual_queue import db
from virtual_queue.models import Appointment, AppointmentStatus, QueueEntry, QueueLog, QueueStatus

from conftest import NOW_UTC, add_appointment, add_entry, make_shop

SLOT_1030 = datetime(2025, 10, 6, 10, 30)
SLOT_1100 = datetime(2025, 10, 6, 11, 0)


def _expired_hold(shop, local_start, status=QueueStatus.NOTIFIED, client_name='Carlos'):
    entry = add_entry(shop, status=status, client_name=client_name)
    entry.notification_expires_at = NOW_UTC.replace(tzinfo=None) - timedelta(minutes=5)
    db.session.commit()
    appointment = add_appointment(shop, shop.professional.id, local_start,
                                  status=AppointmentStatus.QUEUE_RESERVED, queue_entry_id=entry.id)
    return entry.id, appointment.id


def test_sweep_failure_rolls_back_and_next_tick_retries(monitor, monkeypatch):
    shop = make_shop()
    entry_id, appointment_id = _expired_hold(shop, SLOT_1030)
    calls = {'n': 0}
    original = db.session.commit

    def flaky_commit():
        calls['n'] += 1
        if calls['n'] == 1:
            raise OperationalError('COMMIT', {}, Exception('database is locked'))
        return original()

    monkeypatch.setattr(db.session, 'commit', flaky_commit)
    summary = monitor.run_tick()

    assert summary.expired == 0
    assert summary.shops_failed == []
    db.session.expire_all()
    assert db.session.get(QueueEntry, entry_id).status == QueueStatus.NOTIFIED
    assert db.session.get(Appointment, appointment_id) is not None
    assert QueueLog.query.filter_by(queue_entry_id=entry_id).count() == 0

    summary = monitor.run_tick()

    assert summary.expired == 1
    assert db.session.get(QueueEntry, entry_id).status == QueueStatus.EXPIRED
    assert db.session.get(Appointment, appointment_id) is None


def test_sweep_ignores_entries_that_left_notified(monitor, monkeypatch):
    shop = make_shop()
    stale_id, stale_apt_id = _expired_hold(shop, SLOT_1030, client_name='Ana')
    # confirmado depois do SELECT do sweep; o agendamento ainda não foi promovido
    confirmed_id, confirmed_apt_id = _expired_hold(shop, SLOT_1100, status=QueueStatus.CONFIRMED, client_name='Bia')
    monkeypatch.setattr(monitor.sweeper, 'due_entries', lambda barbershop_id, cutoff: [stale_id, confirmed_id])

    summary = monitor.run_tick()

    assert summary.expired == 1
    db.session.expire_all()
    assert db.session.get(QueueEntry, stale_id).status == QueueStatus.EXPIRED
    assert db.session.get(Appointment, stale_apt_id) is None
    assert db.session.get(QueueEntry, confirmed_id).status == QueueStatus.CONFIRMED
    assert db.session.get(Appointment, confirmed_apt_id).status == AppointmentStatus.QUEUE_RESERVED
    logs = QueueLog.query.filter_by(event_type='notification_expired').all()
    assert [log.queue_entry_id for log in logs] == [stale_id]
