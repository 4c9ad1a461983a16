"""
Identity Verification Service.
Checks a transporter's identifying numbers against external providers
and registries. Provider and network failures are reported as
``success=False`` verdicts, never raised.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, Optional

import aiohttp

from ..config import get_settings
from ..errors import UpstreamUnavailable
from ..models.enums import DocumentKind
from ..models.schemas import VerifierVerdict
from ..utils.helpers import mask_sensitive_data

logger = logging.getLogger(__name__)

KENYAN_ID_PATTERN = re.compile(r"^\d{8}$")

YOUVERIFY_LICENSE_PATH = "/v2/api/identity/ke/drivers-license"

# Provider-side outages; any other non-2xx is a refused request. Neither is a verdict.
UNAVAILABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class BaseIdentityVerifier(ABC):
    """Verifies identifying fields for one or more document kinds."""

    provider = ""

    @abstractmethod
    async def verify(
        self, kind: DocumentKind, identifying_fields: dict[str, Optional[str]]
    ) -> VerifierVerdict:
        ...


class YouVerifyLicenseVerifier(BaseIdentityVerifier):
    """Driving licence verification through the YouVerify Kenya API."""

    provider = "YouVerify"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.youverify_api_key
        self.base_url = (base_url or settings.youverify_base_url).rstrip("/")
        self.timeout = timeout_seconds or settings.upstream_timeout_seconds

    async def verify(
        self, kind: DocumentKind, identifying_fields: dict[str, Optional[str]]
    ) -> VerifierVerdict:
        license_number = identifying_fields.get("license_number")
        if not license_number:
            return VerifierVerdict.failed(kind, "No driver license number on record", self.provider)
        if not self.api_key:
            logger.warning("YouVerify API key not configured — skipping licence verification")
            return VerifierVerdict.failed(kind, "YouVerify not configured", self.provider)

        body = {
            "license_number": license_number,
            "id_number": identifying_fields.get("id_number"),
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.info(f"Verifying driver license {mask_sensitive_data(license_number)} with YouVerify")

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.post(
                    f"{self.base_url}{YOUVERIFY_LICENSE_PATH}", json=body, headers=headers
                ) as response:
                    if response.status in UNAVAILABLE_STATUS_CODES:
                        raise UpstreamUnavailable(f"YouVerify unavailable (HTTP {response.status})")
                    if not 200 <= response.status < 300:
                        raise UpstreamUnavailable(f"YouVerify refused request (HTTP {response.status})")
                    payload = await response.json(content_type=None)
        except UpstreamUnavailable as e:
            logger.warning(str(e))
            return VerifierVerdict.failed(kind, str(e), self.provider)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"YouVerify request failed: {str(e)}")
            return VerifierVerdict.failed(kind, f"YouVerify error: {str(e)}", self.provider)

        if not isinstance(payload, dict):
            return VerifierVerdict.failed(kind, "Unexpected YouVerify response", self.provider)

        is_valid = payload.get("status") == "success"
        logger.info(f"YouVerify verdict: {'valid' if is_valid else 'invalid'}")
        return VerifierVerdict(
            kind=kind, is_valid=is_valid, success=True, provider=self.provider, payload=payload
        )


class InsuranceRegistryVerifier(BaseIdentityVerifier):
    """Checks the insurer on record against the registered Kenyan insurers."""

    provider = "InsuranceRegistry"

    def __init__(self, registered_providers: list[str] | None = None):
        self.registered_providers = (
            registered_providers or get_settings().registered_insurance_providers_list
        )

    async def verify(
        self, kind: DocumentKind, identifying_fields: dict[str, Optional[str]]
    ) -> VerifierVerdict:
        provider_name = (identifying_fields.get("provider") or "").strip().upper()
        if not provider_name:
            return VerifierVerdict.failed(kind, "No insurance provider on record", self.provider)

        recognized = next(
            (known for known in self.registered_providers if known in provider_name), None
        )
        return VerifierVerdict(
            kind=kind,
            is_valid=recognized is not None,
            success=True,
            provider=self.provider,
            payload={
                "recognized_provider": recognized,
                "policy_number": identifying_fields.get("policy_number"),
            },
        )


def age_from_id_number(id_number: str, today: date) -> int:
    """Derive age from the birth year encoded in digits 2-3 of a Kenyan ID number."""
    birth_year = int(id_number[1:3])
    current_year = today.year % 100
    century = 1900 if birth_year > current_year else 2000
    return today.year - (century + birth_year)


class NationalIdVerifier(BaseIdentityVerifier):
    """Format and minimum-age checks on a Kenyan national ID number."""

    provider = "NationalIdRules"

    def __init__(
        self,
        minimum_age: int | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.minimum_age = minimum_age if minimum_age is not None else get_settings().minimum_driver_age
        self._today = today

    async def verify(
        self, kind: DocumentKind, identifying_fields: dict[str, Optional[str]]
    ) -> VerifierVerdict:
        id_number = (identifying_fields.get("id_number") or "").strip()
        if not id_number:
            return VerifierVerdict.failed(kind, "No ID number on record", self.provider)

        format_valid = bool(KENYAN_ID_PATTERN.match(id_number))
        age = age_from_id_number(id_number, self._today()) if format_valid else None
        age_valid = age is not None and age >= self.minimum_age

        return VerifierVerdict(
            kind=kind,
            is_valid=format_valid and age_valid,
            success=True,
            provider=self.provider,
            payload={"format_valid": format_valid, "age": age, "age_valid": age_valid},
        )


class IdentityVerifier(BaseIdentityVerifier):
    """Dispatches verification to the verifier registered for each document kind."""

    provider = "IdentityVerifier"

    def __init__(self, verifiers: dict[DocumentKind, BaseIdentityVerifier] | None = None):
        self.verifiers = verifiers or {
            DocumentKind.DRIVER_LICENSE: YouVerifyLicenseVerifier(),
            DocumentKind.INSURANCE: InsuranceRegistryVerifier(),
            DocumentKind.NATIONAL_ID: NationalIdVerifier(),
        }

    async def verify(
        self, kind: DocumentKind, identifying_fields: dict[str, Optional[str]]
    ) -> VerifierVerdict:
        verifier = self.verifiers.get(kind)
        if verifier is None:
            return VerifierVerdict.failed(kind, f"No verifier registered for {kind.value}")
        return await verifier.verify(kind, identifying_fields)
