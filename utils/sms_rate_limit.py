"""
SMS send rate limiting backed by the sms_send_log table.
Limits: resend cooldown per phone, sends per phone / IP / globally per hour,
and distinct phones per IP within a short window.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.phone_verification import SmsSendLog
from utils.errors import InfrastructureError

UNKNOWN_IP = 'unknown'
SEND_LOG_RETENTION_HOURS = 24


@dataclass(frozen=True)
class SendLimits:
    resend_cooldown_seconds: int = 30
    per_phone_per_hour: int = 3
    per_ip_per_hour: int = 10
    global_per_hour: int = 100
    phones_per_ip: int = 5
    phones_per_ip_window_minutes: int = 10

    @classmethod
    def from_config(cls, config):
        return cls(
            resend_cooldown_seconds=config.get('OTP_RESEND_COOLDOWN_SECONDS', 30),
            per_phone_per_hour=config.get('SMS_MAX_SENDS_PER_PHONE_PER_HOUR', 3),
            per_ip_per_hour=config.get('SMS_MAX_SENDS_PER_IP_PER_HOUR', 10),
            global_per_hour=config.get('SMS_MAX_SENDS_GLOBAL_PER_HOUR', 100),
            phones_per_ip=config.get('SMS_MAX_PHONES_PER_IP_WINDOW', 5),
            phones_per_ip_window_minutes=config.get('SMS_PHONES_PER_IP_WINDOW_MINUTES', 10),
        )


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reason: Optional[str] = None  # cooldown, phone, ip, ip_spread, global
    retry_after_seconds: Optional[int] = None


ALLOWED = RateLimitDecision(True)


def check_send_allowed(phone, request_ip, limits, now=None) -> RateLimitDecision:
    """Decide whether another code may be sent to phone from request_ip."""
    now = now or datetime.utcnow()
    hour_ago = now - timedelta(hours=1)
    try:
        last_sent = db.session.query(func.max(SmsSendLog.sent_at)).filter(
            SmsSendLog.phone_number == phone
        ).scalar()
        if last_sent is not None:
            delta = (now - last_sent).total_seconds()
            if delta < limits.resend_cooldown_seconds:
                return RateLimitDecision(
                    False, 'cooldown', max(1, int(limits.resend_cooldown_seconds - delta))
                )

        phone_sends = SmsSendLog.query.filter(
            SmsSendLog.phone_number == phone, SmsSendLog.sent_at >= hour_ago
        ).count()
        if phone_sends >= limits.per_phone_per_hour:
            return RateLimitDecision(False, 'phone')

        if request_ip and request_ip != UNKNOWN_IP:
            ip_sends = SmsSendLog.query.filter(
                SmsSendLog.request_ip == request_ip, SmsSendLog.sent_at >= hour_ago
            ).count()
            if ip_sends >= limits.per_ip_per_hour:
                return RateLimitDecision(False, 'ip')

            window_start = now - timedelta(minutes=limits.phones_per_ip_window_minutes)
            rows = db.session.query(SmsSendLog.phone_number).filter(
                SmsSendLog.request_ip == request_ip, SmsSendLog.sent_at >= window_start
            ).distinct().all()
            phones = {row[0] for row in rows}
            phones.add(phone)
            if len(phones) > limits.phones_per_ip:
                return RateLimitDecision(False, 'ip_spread')

        global_sends = SmsSendLog.query.filter(SmsSendLog.sent_at >= hour_ago).count()
        if global_sends >= limits.global_per_hour:
            return RateLimitDecision(False, 'global')
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InfrastructureError("Rate limit storage unavailable") from exc

    return ALLOWED


def record_send(phone, request_ip, now=None):
    """Log an accepted send so it counts against the limits."""
    try:
        db.session.add(SmsSendLog(
            phone_number=phone,
            request_ip=request_ip or UNKNOWN_IP,
            sent_at=now or datetime.utcnow(),
        ))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InfrastructureError("Rate limit storage unavailable") from exc


def purge_send_logs(now=None, retention_hours=SEND_LOG_RETENTION_HOURS):
    """Remove send-log rows older than the retention window. Returns rows deleted."""
    cutoff = (now or datetime.utcnow()) - timedelta(hours=retention_hours)
    try:
        deleted = SmsSendLog.query.filter(SmsSendLog.sent_at <= cutoff).delete(
            synchronize_session=False
        )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InfrastructureError("Rate limit storage unavailable") from exc
    return deleted
