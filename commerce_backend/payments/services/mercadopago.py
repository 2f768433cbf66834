# payments/services/mercadopago.py

"""
MERCADO PAGO REST CLIENT

Only the calls the payment workflow needs:
- POST /checkout/preferences   (X-Idempotency-Key forwarded when given)
- GET  /v1/payments/{id}

Every transport, HTTP or shape failure surfaces as ExternalProviderError.
The access token is never logged.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from django.conf import settings

from commerce.errors import ExternalProviderError
from payments.services.provider import ProviderPayment, ProviderPreference

logger = logging.getLogger(__name__)

MERCADOPAGO_BASE = "https://api.mercadopago.com"


def _mercadopago_cfg() -> dict:
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = (payments.get("MERCADOPAGO") or {}) if isinstance(payments, dict) else {}
    return cfg if isinstance(cfg, dict) else {}


def _safe_preview(text: str, limit: int = 800) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _parse_json(raw: str) -> Optional[dict[str, Any]]:
    try:
        parsed = json.loads(raw or "")
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


class MercadoPagoClient:
    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = MERCADOPAGO_BASE,
        timeout: int = 25,
    ):
        self.access_token = (access_token or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "MercadoPagoClient":
        cfg = _mercadopago_cfg()
        return cls(
            cfg.get("ACCESS_TOKEN") or "",
            base_url=cfg.get("BASE_URL") or MERCADOPAGO_BASE,
            timeout=int(cfg.get("TIMEOUT") or 25),
        )

    # ------------------------------------------------------------
    # transport
    # ------------------------------------------------------------

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        body: dict | None = None,
        headers: dict | None = None,
    ) -> dict[str, Any]:
        if not self.access_token:
            raise ExternalProviderError(
                "Mercado Pago access token is not configured "
                "(settings.PAYMENTS['MERCADOPAGO']['ACCESS_TOKEN'])"
            )

        data = None
        if body is not None:
            data = json.dumps(body, ensure_ascii=False).encode("utf-8")

        req = Request(
            f"{self.base_url}{path}",
            data=data,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                **(headers or {}),
            },
            method=method,
        )

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            try:
                raw = e.read().decode("utf-8", errors="replace")
            except OSError:
                raw = ""

            parsed = _parse_json(raw)
            if parsed is not None:
                msg = parsed.get("message") or parsed.get("error") or "request rejected"
            else:
                msg = _safe_preview(raw or str(e))

            logger.warning(
                "Mercado Pago rejected request",
                extra={"method": method, "path": path, "status": e.code},
            )
            raise ExternalProviderError(f"Mercado Pago HTTP {e.code}: {msg}") from e
        except URLError as e:
            raise ExternalProviderError(f"Mercado Pago unreachable: {e.reason}") from e
        except OSError as e:
            raise ExternalProviderError(f"Mercado Pago request failed: {e}") from e

        parsed = _parse_json(raw)
        if parsed is None:
            raise ExternalProviderError(
                f"Mercado Pago returned non-JSON: {_safe_preview(raw)}"
            )
        return parsed

    # ------------------------------------------------------------
    # operations
    # ------------------------------------------------------------

    def create_preference(
        self, body: dict[str, Any], *, idempotency_key: Optional[str] = None
    ) -> ProviderPreference:
        headers = {"X-Idempotency-Key": idempotency_key} if idempotency_key else None

        parsed = self._request_json(
            "POST", "/checkout/preferences", body=body, headers=headers
        )

        pref_id = str(parsed.get("id") or "").strip()
        if not pref_id:
            raise ExternalProviderError("Mercado Pago preference response has no id")

        return ProviderPreference(
            id=pref_id,
            init_point=str(parsed.get("init_point") or ""),
            sandbox_init_point=str(parsed.get("sandbox_init_point") or ""),
            external_reference=str(parsed.get("external_reference") or ""),
            raw=parsed,
        )

    def get_payment(self, provider_payment_id: str) -> ProviderPayment:
        ref = str(provider_payment_id or "").strip()
        if not ref:
            raise ExternalProviderError("Mercado Pago payment id is required")

        parsed = self._request_json("GET", f"/v1/payments/{quote(ref, safe='')}")

        if parsed.get("id") is None or not parsed.get("status"):
            raise ExternalProviderError(
                f"Mercado Pago payment {ref} response is missing id/status"
            )

        return ProviderPayment(
            id=str(parsed["id"]),
            status=str(parsed["status"]).strip().lower(),
            status_detail=str(parsed.get("status_detail") or ""),
            external_reference=str(parsed.get("external_reference") or ""),
            transaction_amount=_to_decimal(parsed.get("transaction_amount")),
            currency_id=str(parsed.get("currency_id") or ""),
            payment_method_id=str(parsed.get("payment_method_id") or ""),
            payment_type_id=str(parsed.get("payment_type_id") or ""),
            date_approved=parsed.get("date_approved"),
            raw=parsed,
        )
