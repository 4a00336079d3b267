from __future__ import annotations

from typing import Dict, Optional

import httpx

from onboarding_resume.domain.ports.code_sender import CodeSenderPort

SUBJECT = "Your onboarding verification code"
BODY_TEMPLATE = (
    "Use this code to continue your driver application: {code}\n\n"
    "It expires in {minutes} minutes. If you did not ask to resume an "
    "application, you can ignore this email."
)


class HttpSmtpCodeSender(CodeSenderPort):
    """Sends verification codes through the HTTP front of the mail relay."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/send",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send_code(
        self,
        *,
        to: str,
        code: str,
        expires_in_minutes: int,
        idempotency_key: str | None = None,
    ) -> None:
        headers: Dict[str, str] = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        url = f"{self._base_url}{self._send_path}"
        payload = {
            "to": to,
            "subject": SUBJECT,
            "body": BODY_TEMPLATE.format(code=code, minutes=expires_in_minutes),
        }

        try:
            resp = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise RuntimeError(f"SMTP HTTP error: {e.__class__.__name__}") from e
        if not (200 <= resp.status_code < 300):
            raise RuntimeError(f"SMTP responded {resp.status_code}: {resp.text[:200]}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
