"""
Phone OTP service: one instance per Flask app, stored in app.extensions['otp'].
Every endpoint that issues or checks codes goes through it so TTL and
attempt policy live in one place.
"""
import logging
from datetime import datetime, timedelta

from flask import current_app

from utils.errors import SmsSendError
from utils.otp_helper import generate_otp, hash_otp, is_well_formed, secure_random
from utils.otp_store import build_store
from utils.otp_verifier import OtpVerifier
from utils.phone import PhoneNormalizer, mask_phone
from utils.sms import build_gateway
from utils.sms_rate_limit import purge_send_logs

logger = logging.getLogger(__name__)


class OtpService:
    """Issues codes (generate -> store -> SMS) and verifies submissions."""

    def __init__(self, normalizer, store, gateway, code_length=6,
                 ttl=timedelta(minutes=5), max_attempts=5, rng=None, clock=datetime.utcnow):
        self.normalizer = normalizer
        self.store = store
        self.gateway = gateway
        self.code_length = code_length
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.rng = rng or secure_random
        self.verifier = OtpVerifier(store, clock=clock)

    @classmethod
    def from_config(cls, config):
        return cls(
            normalizer=PhoneNormalizer(
                country_code=config.get('PHONE_COUNTRY_CODE', '81'),
                pattern=config.get('PHONE_VALIDATION_PATTERN'),
            ),
            store=build_store(config),
            gateway=build_gateway(config),
            code_length=config.get('OTP_LENGTH', 6),
            ttl=timedelta(minutes=config.get('OTP_EXPIRY_MINUTES', 5)),
            max_attempts=config.get('OTP_MAX_ATTEMPTS', 5),
        )

    def normalize(self, raw_phone):
        return self.normalizer.normalize(raw_phone)

    def is_well_formed(self, code):
        return is_well_formed(code, self.code_length)

    def send_code(self, phone):
        """
        Issue a new code for an already normalized phone and send it by SMS.
        Any previous challenge for the phone is replaced. If the SMS provider
        fails, the new record is discarded and SmsSendError propagates.
        """
        self.store.evict_expired()
        code = generate_otp(self.code_length, self.rng)
        self.store.put(phone, hash_otp(code), self.ttl, self.max_attempts)
        try:
            message_id = self.gateway.send(phone, code)
        except SmsSendError:
            self.store.discard(phone)
            logger.warning("OTP for %s discarded after SMS failure", mask_phone(phone))
            raise
        return message_id

    def verify(self, phone, code):
        return self.verifier.verify(phone, code)

    def purge_expired(self):
        """Evict stale OTP records and old send logs. Returns (records, logs) removed."""
        return self.store.evict_expired(), purge_send_logs()


def init_otp_service(app):
    service = OtpService.from_config(app.config)
    app.extensions['otp'] = service
    return service


def get_otp_service():
    return current_app.extensions['otp']
