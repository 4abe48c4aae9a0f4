"""
OTP storage: at most one outstanding challenge per phone number.

Two backends share the OtpStore interface. MemoryOtpStore lives inside one
application instance (single worker, tests); DatabaseOtpStore keeps records in
the phone_verification_otp table and is safe across workers and instances.
All operations for one phone are serialized through locked(phone).
"""
import threading
import zlib
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.phone_verification import PhoneVerificationOTP
from utils.errors import InfrastructureError


@dataclass
class OtpRecord:
    phone: str
    code: str  # hash of the code, never the plain value
    created_at: datetime
    expires_at: datetime
    attempts: int = 0
    max_attempts: int = 5
    consumed: bool = False

    def is_expired(self, now):
        return now > self.expires_at

    def attempts_exceeded(self):
        return self.attempts >= self.max_attempts

    def is_stale(self, now):
        """Stale records can never authenticate and may be evicted."""
        return self.consumed or self.is_expired(now) or self.attempts_exceeded()


class OtpStore:
    """
    Storage contract used by the verifier.

    get() hides consumed records but returns unconsumed ones even after
    expiry, so the verifier can tell an expired challenge apart from a
    missing one. increment_attempts() and mark_consumed() raise KeyError when
    there is no unconsumed record for the phone.
    """

    def locked(self, phone):
        raise NotImplementedError

    def put(self, phone, code, ttl, max_attempts):
        raise NotImplementedError

    def get(self, phone):
        raise NotImplementedError

    def increment_attempts(self, phone):
        raise NotImplementedError

    def mark_consumed(self, phone):
        raise NotImplementedError

    def discard(self, phone):
        raise NotImplementedError

    def evict_expired(self, now=None):
        raise NotImplementedError


class MemoryOtpStore(OtpStore):
    """In-process store guarded by striped re-entrant locks keyed by phone."""

    LOCK_STRIPES = 64

    def __init__(self, clock=datetime.utcnow, stripes=LOCK_STRIPES):
        self.clock = clock
        self._records = {}
        self._stripes = [threading.RLock() for _ in range(stripes)]

    def _lock_for(self, phone):
        return self._stripes[zlib.crc32(phone.encode('utf-8')) % len(self._stripes)]

    @contextmanager
    def locked(self, phone):
        with self._lock_for(phone):
            yield

    def _active(self, phone):
        record = self._records.get(phone)
        if record is None or record.consumed:
            raise KeyError(phone)
        return record

    def put(self, phone, code, ttl, max_attempts):
        now = self.clock()
        with self.locked(phone):
            self._records[phone] = OtpRecord(
                phone=phone,
                code=code,
                created_at=now,
                expires_at=now + ttl,
                attempts=0,
                max_attempts=max_attempts,
                consumed=False,
            )

    def get(self, phone):
        with self.locked(phone):
            record = self._records.get(phone)
            if record is None or record.consumed:
                return None
            # Callers get a snapshot; only the store mutates its records
            return replace(record)

    def increment_attempts(self, phone):
        with self.locked(phone):
            record = self._active(phone)
            record.attempts += 1
            return record.attempts

    def mark_consumed(self, phone):
        with self.locked(phone):
            self._active(phone).consumed = True

    def discard(self, phone):
        with self.locked(phone):
            self._records.pop(phone, None)

    def evict_expired(self, now=None):
        now = now or self.clock()
        evicted = 0
        for phone in list(self._records):
            with self.locked(phone):
                record = self._records.get(phone)
                if record is not None and record.is_stale(now):
                    del self._records[phone]
                    evicted += 1
        return evicted

    def __len__(self):
        return len(self._records)


class DatabaseOtpStore(OtpStore):
    """
    Table-backed store.

    locked() takes a SELECT ... FOR UPDATE row lock on the phone's record and
    commits once when the outermost block exits; operations called inside it
    share that transaction. Database errors are rolled back and re-raised as
    InfrastructureError.
    """

    def __init__(self, clock=datetime.utcnow):
        self.clock = clock
        self._local = threading.local()

    def _row(self, phone):
        return (
            PhoneVerificationOTP.query
            .filter_by(phone_number=phone)
            .with_for_update()
            .first()
        )

    @contextmanager
    def locked(self, phone):
        depth = getattr(self._local, 'depth', 0)
        self._local.depth = depth + 1
        try:
            if depth == 0:
                self._row(phone)
            yield
            if depth == 0:
                db.session.commit()
        except SQLAlchemyError as exc:
            if depth == 0:
                db.session.rollback()
            raise InfrastructureError("OTP storage unavailable") from exc
        except Exception:
            if depth == 0:
                db.session.rollback()
            raise
        finally:
            self._local.depth = depth

    @staticmethod
    def _to_record(row):
        return OtpRecord(
            phone=row.phone_number,
            code=row.otp_hash,
            created_at=row.created_at,
            expires_at=row.expires_at,
            attempts=row.attempts or 0,
            max_attempts=row.max_attempts,
            consumed=bool(row.consumed),
        )

    def _active_row(self, phone):
        row = self._row(phone)
        if row is None or row.consumed:
            raise KeyError(phone)
        return row

    def put(self, phone, code, ttl, max_attempts):
        now = self.clock()
        with self.locked(phone):
            row = self._row(phone)
            if row is None:
                row = PhoneVerificationOTP(phone_number=phone)
                db.session.add(row)
            row.otp_hash = code
            row.created_at = now
            row.expires_at = now + ttl
            row.attempts = 0
            row.max_attempts = max_attempts
            row.consumed = False
            row.consumed_at = None
            db.session.flush()

    def get(self, phone):
        with self.locked(phone):
            row = self._row(phone)
            if row is None or row.consumed:
                return None
            return self._to_record(row)

    def increment_attempts(self, phone):
        with self.locked(phone):
            row = self._active_row(phone)
            row.attempts = (row.attempts or 0) + 1
            db.session.flush()
            return row.attempts

    def mark_consumed(self, phone):
        with self.locked(phone):
            row = self._active_row(phone)
            row.consumed = True
            row.consumed_at = self.clock()
            db.session.flush()

    def discard(self, phone):
        with self.locked(phone):
            row = self._row(phone)
            if row is not None:
                db.session.delete(row)
                db.session.flush()

    def evict_expired(self, now=None):
        now = now or self.clock()
        try:
            evicted = PhoneVerificationOTP.query.filter(or_(
                PhoneVerificationOTP.consumed.is_(True),
                PhoneVerificationOTP.expires_at < now,
                PhoneVerificationOTP.attempts >= PhoneVerificationOTP.max_attempts,
            )).delete(synchronize_session='fetch')
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise InfrastructureError("OTP storage unavailable") from exc
        return evicted


def build_store(config, clock=datetime.utcnow):
    """Select the OTP store backend from OTP_STORE_BACKEND ('database' or 'memory')."""
    backend = (config.get('OTP_STORE_BACKEND') or 'database').lower()
    if backend == 'memory':
        return MemoryOtpStore(clock=clock)
    if backend == 'database':
        return DatabaseOtpStore(clock=clock)
    raise ValueError(f"Unknown OTP_STORE_BACKEND: {backend}")
