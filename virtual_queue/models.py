from . import db
from datetime import datetime

service_professional = db.Table('service_professional',
    db.Column('service_id', db.Integer, db.ForeignKey('service.id'), primary_key=True),
    db.Column('professional_id', db.Integer, db.ForeignKey('professional.id'), primary_key=True)
)


class QueueStatus:
    WAITING = 'waiting'
    NOTIFIED = 'notified'
    CONFIRMED = 'confirmed'
    EXPIRED = 'expired'
    CANCELLED = 'cancelled'

    TERMINAL = (CONFIRMED, EXPIRED, CANCELLED)


class AppointmentStatus:
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    QUEUE_RESERVED = 'queue_reserved'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'

    # Não ocupam a agenda do profissional
    FREE = (CANCELLED, NO_SHOW)


class Barbershop(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    whatsapp_business_account_id = db.Column(db.String(64))  # phone number id na Cloud API


class BusinessHours(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    barbershop_id = db.Column(db.Integer, db.ForeignKey('barbershop.id'), nullable=False)
    weekday = db.Column(db.Integer, nullable=False)  # 0=segunda, 6=domingo
    open_time = db.Column(db.Time, nullable=True)
    close_time = db.Column(db.Time, nullable=True)
    closed = db.Column(db.Boolean, default=False, nullable=False)

    barbershop = db.relationship('Barbershop', backref='business_hours')

    __table_args__ = (db.UniqueConstraint('barbershop_id', 'weekday', name='uq_business_hours_weekday'),)


class Professional(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    barbershop_id = db.Column(db.Integer, db.ForeignKey('barbershop.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='active')  # active/inactive
    barbershop = db.relationship('Barbershop', backref='professionals')


class Service(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    duration = db.Column(db.Integer, nullable=False)  # minutos
    price = db.Column(db.Float, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)
    barbershop_id = db.Column(db.Integer, db.ForeignKey('barbershop.id'), nullable=False)
    barbershop = db.relationship('Barbershop', backref='services')
    professionals = db.relationship('Professional', secondary=service_professional, backref='services')


class Appointment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    barbershop_id = db.Column(db.Integer, db.ForeignKey('barbershop.id'), nullable=False)
    professional_id = db.Column(db.Integer, db.ForeignKey('professional.id'), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey('service.id'), nullable=True)
    # Sempre em UTC (naive)
    start_at = db.Column(db.DateTime, nullable=False, index=True)
    end_at = db.Column(db.DateTime, nullable=False)
    client_name = db.Column(db.String(150))
    client_phone = db.Column(db.String(20))
    status = db.Column(db.String(20), nullable=False, default=AppointmentStatus.PENDING)
    payment_status = db.Column(db.String(20), nullable=False, default='pending')
    source = db.Column(db.String(32))
    queue_entry_id = db.Column(db.Integer, db.ForeignKey('queue_entry.id'), nullable=True, unique=True)

    professional = db.relationship('Professional', backref='appointments')
    service = db.relationship('Service', backref='appointments')
    queue_entry = db.relationship('QueueEntry', backref=db.backref('appointment', uselist=False))


class QueueSettings(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    barbershop_id = db.Column(db.Integer, db.ForeignKey('barbershop.id'), nullable=False, unique=True)
    enabled = db.Column(db.Boolean, nullable=False, default=False)
    eta_weight = db.Column(db.Float, nullable=False, default=1.0)
    position_weight = db.Column(db.Float, nullable=False, default=1.0)
    wait_time_bonus = db.Column(db.Float, nullable=False, default=0.5)
    buffer_percentage = db.Column(db.Integer, nullable=False, default=0)  # 0-100

    barbershop = db.relationship('Barbershop', backref=db.backref('queue_settings', uselist=False))


class QueueEntry(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    barbershop_id = db.Column(db.Integer, db.ForeignKey('barbershop.id'), nullable=False, index=True)
    client_name = db.Column(db.String(150), nullable=False)
    client_phone = db.Column(db.String(20), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey('service.id'), nullable=False)
    professional_id = db.Column(db.Integer, db.ForeignKey('professional.id'), nullable=True)  # preferência
    travel_minutes = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    status = db.Column(db.String(20), nullable=False, default=QueueStatus.WAITING, index=True)
    priority_score = db.Column(db.Float, nullable=True)
    # Timestamps em UTC (naive)
    notification_sent_at = db.Column(db.DateTime, nullable=True)
    notification_expires_at = db.Column(db.DateTime, nullable=True)
    reserved_slot_start = db.Column(db.DateTime, nullable=True)
    reserved_slot_end = db.Column(db.DateTime, nullable=True)

    service = db.relationship('Service')
    professional = db.relationship('Professional')

    def to_dict(self):
        def iso(value):
            return value.isoformat() + 'Z' if value else None
        return {
            'id': self.id,
            'client_name': self.client_name,
            'service_id': self.service_id,
            'professional_id': self.professional_id,
            'travel_minutes': self.travel_minutes,
            'status': self.status,
            'priority_score': self.priority_score,
            'created_at': iso(self.created_at),
            'notification_sent_at': iso(self.notification_sent_at),
            'notification_expires_at': iso(self.notification_expires_at),
            'reserved_slot_start': iso(self.reserved_slot_start),
            'reserved_slot_end': iso(self.reserved_slot_end),
        }


class QueueLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    queue_entry_id = db.Column(db.Integer, db.ForeignKey('queue_entry.id'), nullable=False)
    barbershop_id = db.Column(db.Integer, db.ForeignKey('barbershop.id'), nullable=False)
    event_type = db.Column(db.String(50), nullable=False)  # notification_sent/notification_expired/...
    event_data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
