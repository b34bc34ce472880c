import logging
import re

import requests

from .slots import AvailableSlot

logger = logging.getLogger(__name__)

NOTIFY_MIN_MINUTES = 10
NOTIFY_MAX_MINUTES = 120

_DIGITS_RE = re.compile(r'\D+')


class NotificationError(RuntimeError):
    pass


def _only_digits(value: str) -> str:
    return _DIGITS_RE.sub('', value or '')


class WhatsAppNotifier:
    """Envio de texto pela WhatsApp Cloud API."""

    def __init__(self, access_token: str | None, graph_version: str = 'v18.0', timeout: int = 15):
        self.access_token = access_token
        self.graph_version = graph_version
        self.timeout = timeout

    def is_configured(self, phone_number_id: str | None) -> bool:
        return bool(self.access_token and phone_number_id)

    def _url(self, phone_number_id: str) -> str:
        return f'https://graph.facebook.com/{self.graph_version}/{phone_number_id}/messages'

    def send_text(self, phone_number_id: str, to: str, body: str) -> dict:
        headers = {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
        }
        payload = {
            'messaging_product': 'whatsapp',
            'to': _only_digits(to),
            'type': 'text',
            'text': {'preview_url': False, 'body': body[:4096]},
        }
        try:
            resp = requests.post(self._url(phone_number_id), json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f'WhatsApp indisponível: {e}') from e
        if resp.status_code >= 300:
            raise NotificationError(f'WhatsApp error: {resp.status_code} {resp.text[:400]}')
        try:
            return resp.json()
        except ValueError:
            return {'raw': resp.text[:400]}


def build_message(client_name: str, minutes_until_slot: int, slot_time: str,
                  service_name: str, travel_minutes: int, confirmation_minutes: int = 5) -> str:
    return (
        f'🔔 *Sua vez está chegando!*\n\n'
        f'Olá {client_name}!\n\n'
        f'Temos um horário disponível para você em *{minutes_until_slot} minutos*:\n'
        f'⏰ Horário: {slot_time}\n'
        f'💈 Serviço: {service_name}\n\n'
        f'Este é o momento perfeito para você sair! '
        f'Com base no tempo de deslocamento que você informou ({travel_minutes} min), '
        f'você chegará exatamente no horário!\n\n'
        f'Responda *SIM* para confirmar ou *NÃO* para cancelar.\n'
        f'⚠️ Você tem {confirmation_minutes} minutos para confirmar!'
    )


class NotificationGate:
    def __init__(self, notifier: WhatsAppNotifier, min_minutes: int = NOTIFY_MIN_MINUTES,
                 max_minutes: int = NOTIFY_MAX_MINUTES, confirmation_minutes: int = 5):
        self.notifier = notifier
        self.min_minutes = min_minutes
        self.max_minutes = max_minutes
        self.confirmation_minutes = confirmation_minutes

    def should_notify(self, minutes_until_slot: int) -> bool:
        return self.min_minutes <= minutes_until_slot <= self.max_minutes

    def notify(self, entry, barbershop, service, slot: AvailableSlot, minutes_until_slot: int) -> bool:
        """Envia a mensagem se o horário estiver dentro da janela.

        Retorna True só quando a mensagem saiu. Falhas de envio não
        desfazem a reserva.
        """
        if not self.should_notify(minutes_until_slot):
            logger.info('WhatsApp não enviado queue_entry_id=%s: fora da janela (slot em %s min)',
                        entry.id, minutes_until_slot)
            return False
        phone_number_id = barbershop.whatsapp_business_account_id
        if not self.notifier.is_configured(phone_number_id):
            logger.warning('WhatsApp não configurado barbershop_id=%s', barbershop.id)
            return False

        body = build_message(
            client_name=entry.client_name,
            minutes_until_slot=minutes_until_slot,
            slot_time=slot.start.strftime('%H:%M'),
            service_name=service.name,
            travel_minutes=entry.travel_minutes,
            confirmation_minutes=self.confirmation_minutes,
        )
        try:
            self.notifier.send_text(phone_number_id, entry.client_phone, body)
        except NotificationError as e:
            logger.error('Falha ao enviar WhatsApp queue_entry_id=%s: %s', entry.id, e)
            return False
        logger.info('WhatsApp enviado queue_entry_id=%s slot=%s', entry.id, slot.start.strftime('%H:%M'))
        return True
