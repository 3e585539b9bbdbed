"""
Phone Verification Store.

Steps: phone -> code -> verified. Codes expire five minutes after sending;
an expired code is rejected without calling the API.
"""

import re
from datetime import UTC, datetime, timedelta
from enum import Enum

from structlog import get_logger

from vibing.api.auth import AuthApi
from vibing.api.client import ApiClient
from vibing.exceptions import ApiError, InputValidationError, VerificationExpiredError
from vibing.models.domain import VerificationState
from vibing.services.store import Store

logger = get_logger(__name__)

PHONE_PATTERN = re.compile(r"^\+82\d{9,10}$")
CODE_TTL = timedelta(minutes=5)


class VerificationStep(str, Enum):
    PHONE = "phone"
    CODE = "code"
    VERIFIED = "verified"


class PhoneVerification(Store):
    def __init__(self, client: ApiClient) -> None:
        super().__init__()
        self.auth_api = AuthApi(client)
        self.state: VerificationState | None = None
        self.step = VerificationStep.PHONE
        self.loading = False
        self.error: str | None = None

    async def send_code(self, phone: str, now: datetime | None = None) -> None:
        """Request an SMS code; raises on an invalid number or API failure."""
        self.loading = True
        self.error = None
        self._notify()
        try:
            if not PHONE_PATTERN.match(phone):
                raise InputValidationError(
                    "phone", "Invalid phone number format. Use +82XXXXXXXXX"
                )
            response = await self.auth_api.send_verification_code(phone)
            self.state = VerificationState(
                phone=phone, expires_at=(now or datetime.now(UTC)) + CODE_TTL
            )
            self.step = VerificationStep.CODE
            if response.code:
                logger.debug(
                    "verification_code_issued", phone=phone, verification_code=response.code
                )
            logger.info("verification_code_sent", phone=phone)
        except (InputValidationError, ApiError) as exc:
            self.error = exc.message
            raise
        finally:
            self.loading = False
            self._notify()

    async def verify(self, code: str, now: datetime | None = None) -> bool:
        """Check the code; failures are reported through self.error."""
        if self.state is None:
            raise InputValidationError("phone", "No verification data found")

        self.loading = True
        self.error = None
        self._notify()
        try:
            expires_at = self.state.expires_at
            if expires_at is not None and (now or datetime.now(UTC)) > expires_at:
                raise VerificationExpiredError()
            await self.auth_api.verify_phone(self.state.phone, code)
        except VerificationExpiredError as exc:
            self.error = str(exc)
            return False
        except ApiError as exc:
            self.error = exc.message
            logger.info("phone_verification_failed", phone=self.state.phone, error=exc.message)
            return False
        finally:
            self.loading = False
            self._notify()

        self.state.code = code
        self.state.is_verified = True
        self.step = VerificationStep.VERIFIED
        logger.info("phone_verified", phone=self.state.phone)
        self._notify()
        return True

    async def resend(self, now: datetime | None = None) -> None:
        if self.state is None or not self.state.phone:
            raise InputValidationError("phone", "No phone number found")
        await self.send_code(self.state.phone, now)

    def set_initial_phone(self, phone: str) -> None:
        """Jump to the code step for a number whose code was sent elsewhere."""
        self.state = VerificationState(phone=phone)
        self.step = VerificationStep.CODE
        self._notify()

    def reset(self) -> None:
        self.state = None
        self.error = None
        self.step = VerificationStep.PHONE
        self._notify()

    @property
    def is_verified(self) -> bool:
        return self.state is not None and self.state.is_verified
