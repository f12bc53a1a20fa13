"""ViaCEP Client — resolves Brazilian postal codes to addresses over HTTP.

Invariants:
    - Input is reduced to digits first; anything other than 8 digits never hits the network
    - Exactly one GET per lookup, bounded by the configured timeout — no retries
    - Transport errors, non-2xx statuses, bad JSON and the provider's "erro" marker all
      map to None: lookup() never raises for a failed lookup
    - Empty-string fields in the provider payload become None

Design Decisions:
    - One shared httpx.AsyncClient per process (connection pooling), closed on shutdown
    - Optional transport argument: tests swap in httpx.MockTransport instead of patching
"""

import logging

import httpx

from user_directory.core.postal_code import parse_postal_code
from user_directory.core.user_records import AddressData

logger = logging.getLogger(__name__)


def _optional(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _is_not_found(payload: dict) -> bool:
    """ViaCEP answers 200 with {"erro": true} (or "true") for unknown codes."""
    marker = payload.get("erro")
    return marker is not None and marker is not False and str(marker).lower() != "false"


def address_from_payload(payload: dict, requested_code: str) -> AddressData:
    """Map a ViaCEP JSON body to AddressData, keeping postal codes digit-only."""
    postal_code = parse_postal_code(_optional(payload, "cep")) or requested_code
    return AddressData(
        postal_code=postal_code,
        street=_optional(payload, "logradouro"),
        neighborhood=_optional(payload, "bairro"),
        city=_optional(payload, "localidade"),
        state=_optional(payload, "uf"),
        complement=_optional(payload, "complemento"),
    )


class ViaCepClient:
    """Address lookup gateway backed by the ViaCEP web service."""

    def __init__(
        self,
        base_url: str = "https://viacep.com.br/ws",
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def lookup(self, raw_postal_code: str) -> AddressData | None:
        """Return the address for a postal code, or None when it cannot be resolved."""
        code = parse_postal_code(raw_postal_code)
        if code is None:
            logger.debug(f"Rejected malformed postal code {raw_postal_code!r}")
            return None

        try:
            response = await self.client.get(f"/{code}/json")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.warning(
                f"ViaCEP lookup failed for {code}: {e!r}",
                extra={"postal_code": code},
            )
            return None
        except ValueError as e:
            logger.warning(
                f"ViaCEP returned an undecodable body for {code}: {e}",
                extra={"postal_code": code},
            )
            return None

        if not isinstance(payload, dict) or _is_not_found(payload):
            logger.info(
                f"ViaCEP has no address for {code}", extra={"postal_code": code},
            )
            return None
        return address_from_payload(payload, code)

    async def is_valid_postal_code(self, raw_postal_code: str) -> bool:
        return await self.lookup(raw_postal_code) is not None

    async def aclose(self) -> None:
        await self.client.aclose()
