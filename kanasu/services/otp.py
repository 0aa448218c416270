"""
OTP login for teachers.

Codes live in an ``OtpStore``; the default is a process-local in-memory store
whose entries expire after OTP_EXPIRE_MINUTES.
"""
import secrets
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.orm import Session

from kanasu.core.config import settings
from kanasu.core.exceptions import AuthenticationError, NotFoundError, StateConflictError
from kanasu.core.logging_config import get_logger
from kanasu.core.security import create_teacher_token
from kanasu.models.teacher import Teacher
from kanasu.services.sms import send_sms

logger = get_logger(__name__)

OTP_LENGTH = 6


@dataclass
class OtpEntry:
    code: str
    expires_at: float

    def is_expired(self) -> bool:
        return time.time() >= self.expires_at


class OtpStore(ABC):
    """Where issued OTP codes are kept until verified or expired."""

    @abstractmethod
    def save(self, phone: str, code: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    def get(self, phone: str) -> Optional[OtpEntry]:
        """Return the live entry for a phone, or None when absent or expired."""

    @abstractmethod
    def delete(self, phone: str) -> None:
        ...


class InMemoryOtpStore(OtpStore):
    def __init__(self):
        self._entries: Dict[str, OtpEntry] = {}
        self._lock = threading.Lock()

    def save(self, phone: str, code: str, ttl_seconds: int) -> None:
        with self._lock:
            self._purge_expired()
            self._entries[phone] = OtpEntry(code=code, expires_at=time.time() + ttl_seconds)

    def get(self, phone: str) -> Optional[OtpEntry]:
        with self._lock:
            entry = self._entries.get(phone)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[phone]
                return None
            return entry

    def delete(self, phone: str) -> None:
        with self._lock:
            self._entries.pop(phone, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self) -> None:
        expired = [phone for phone, entry in self._entries.items() if entry.is_expired()]
        for phone in expired:
            del self._entries[phone]


_otp_store: OtpStore = InMemoryOtpStore()


def get_otp_store() -> OtpStore:
    """FastAPI dependency returning the process-wide OTP store."""
    return _otp_store


def generate_otp() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


def _find_teacher(db: Session, phone: str) -> Teacher:
    teacher = db.query(Teacher).filter(Teacher.phone == phone).first()
    if not teacher:
        raise NotFoundError("No teacher found with this phone number")
    return teacher


async def request_otp(db: Session, store: OtpStore, phone: str) -> Optional[str]:
    """
    Issue an OTP for a teacher and send it by SMS.

    Returns the code when EXPOSE_OTP_IN_RESPONSE is set so it can be echoed
    back in development, otherwise None. An SMS failure leaves the stored
    code in place and propagates as ExternalServiceError.
    """
    teacher = _find_teacher(db, phone)
    if not teacher.anganwadi_id:
        raise StateConflictError(
            "Teacher is not assigned to any anganwadi. Please contact administrator."
        )

    code = generate_otp()
    store.save(phone, code, settings.OTP_EXPIRE_MINUTES * 60)

    teacher.is_verified = False
    db.commit()

    logger.info(f"OTP issued for teacher {teacher.id}")
    await send_sms(
        phone,
        f"Your Kanasu login OTP is {code}. It is valid for {settings.OTP_EXPIRE_MINUTES} minutes.",
    )

    return code if settings.EXPOSE_OTP_IN_RESPONSE else None


def verify_otp(db: Session, store: OtpStore, phone: str, otp: Optional[str]) -> dict:
    """
    Check an OTP and log the teacher in.

    Returns {"token", "teacher", "anganwadi"}. Raises AuthenticationError for a
    missing, expired or wrong code unless the bypass flag is enabled.
    """
    teacher = _find_teacher(db, phone)

    entry = store.get(phone)
    store.delete(phone)

    if not settings.otp_bypass:
        if not otp or entry is None or not secrets.compare_digest(entry.code, otp):
            logger.warning(f"OTP verification failed for teacher {teacher.id}")
            raise AuthenticationError("Invalid or expired OTP")
    elif entry is None or entry.code != otp:
        logger.warning(f"OTP bypass used for teacher {teacher.id}")

    teacher.is_verified = True
    db.commit()
    db.refresh(teacher)

    token = create_teacher_token(
        str(teacher.id), str(teacher.anganwadi_id) if teacher.anganwadi_id else None
    )
    logger.info(f"Teacher {teacher.id} logged in with OTP")
    return {"token": token, "teacher": teacher, "anganwadi": teacher.anganwadi}
