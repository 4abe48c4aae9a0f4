"""
SMS delivery of verification codes.

Gateways expose send(phone, code) -> message id and raise SmsSendError on
failure. TwilioGateway talks to the Twilio REST API; LogGateway only logs and
is meant for local development.
"""
import logging
import secrets

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

from utils.errors import SmsSendError
from utils.phone import mask_phone

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_TEMPLATE = (
    "【タスカル】認証コード: {code}\n\n"
    "※{minutes}分間有効です。第三者には絶対に教えないでください。"
)


def build_message(code, template=DEFAULT_MESSAGE_TEMPLATE, minutes=5):
    try:
        return template.format(code=code, minutes=minutes)
    except (KeyError, IndexError, ValueError):
        logger.warning("Invalid SMS_MESSAGE_TEMPLATE, falling back to default")
        return DEFAULT_MESSAGE_TEMPLATE.format(code=code, minutes=minutes)


class TwilioGateway:
    """Sends codes through Twilio, from a phone number or a messaging service."""

    def __init__(self, account_sid, auth_token, from_number=None, messaging_service_sid=None,
                 template=DEFAULT_MESSAGE_TEMPLATE, minutes=5, client=None):
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid
        self.template = template
        self.minutes = minutes
        self.enabled = bool(
            (client or (account_sid and auth_token))
            and (from_number or messaging_service_sid)
        )
        if client is not None:
            self.client = client
        elif self.enabled:
            self.client = Client(account_sid, auth_token)
        else:
            self.client = None
            logger.warning("Twilio gateway disabled - credentials or sender not configured")

    def send(self, phone, code):
        if not self.enabled:
            raise SmsSendError("SMS provider is not configured")

        payload = {
            'body': build_message(code, self.template, self.minutes),
            'to': phone,
        }
        if self.messaging_service_sid:
            payload['messaging_service_sid'] = self.messaging_service_sid
        else:
            payload['from_'] = self.from_number

        try:
            message = self.client.messages.create(**payload)
        except TwilioRestException as exc:
            logger.error("Twilio error sending SMS to %s: status=%s code=%s",
                         mask_phone(phone), exc.status, exc.code)
            raise SmsSendError(f"Twilio rejected message ({exc.status})") from exc
        except TwilioException as exc:
            logger.error("Twilio client error sending SMS to %s: %s", mask_phone(phone), exc)
            raise SmsSendError("Twilio client error") from exc
        except OSError as exc:
            # requests transport errors derive from IOError
            logger.error("Twilio unreachable sending SMS to %s: %s", mask_phone(phone), exc)
            raise SmsSendError("SMS provider unreachable") from exc

        logger.info("SMS sent to %s, SID: %s", mask_phone(phone), message.sid)
        return message.sid


class LogGateway:
    """Development backend: records the send in the log without the code."""

    def send(self, phone, code):
        message_id = f"log-{secrets.token_hex(8)}"
        logger.info("SMS log backend send to=%s id=%s", mask_phone(phone), message_id)
        return message_id


def build_gateway(config):
    """Select the SMS backend from SMS_PROVIDER ('twilio' or 'log')."""
    provider = (config.get('SMS_PROVIDER') or 'twilio').lower()
    if provider == 'log':
        return LogGateway()
    if provider == 'twilio':
        return TwilioGateway(
            account_sid=config.get('TWILIO_ACCOUNT_SID'),
            auth_token=config.get('TWILIO_AUTH_TOKEN'),
            from_number=config.get('TWILIO_PHONE_NUMBER'),
            messaging_service_sid=config.get('TWILIO_MESSAGING_SERVICE_SID'),
            template=config.get('SMS_MESSAGE_TEMPLATE') or DEFAULT_MESSAGE_TEMPLATE,
            minutes=config.get('OTP_EXPIRY_MINUTES', 5),
        )
    raise ValueError(f"Unknown SMS_PROVIDER: {provider}")
