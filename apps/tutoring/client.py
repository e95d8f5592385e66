"""HTTP client for the remote tutoring service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import httpx
from pydantic import ValidationError

from essaycoach.core.config import TutorServiceSettings

from .models import TutorRequest, TutorResponse

logger = logging.getLogger("essaycoach.tutoring.client")


class TutoringServiceError(RuntimeError):
    """Network, HTTP or payload failure talking to the tutoring service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


@dataclass
class TutoringServiceConfig:
    base_url: str
    api_key: str | None = None
    endpoint: str = "/api/chat/argumentative"


class TutoringServiceClient:
    def __init__(
        self,
        config: TutoringServiceConfig,
        *,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._config = config
        if client is None:
            self._client = httpx.Client(
                base_url=config.base_url,
                timeout=timeout,
            )
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    @classmethod
    def from_settings(cls, settings: TutorServiceSettings) -> "TutoringServiceClient":
        config = TutoringServiceConfig(
            base_url=settings.resolved_api_base(),
            api_key=settings.resolved_api_key(),
            endpoint=settings.endpoint,
        )
        return cls(config, timeout=settings.timeout)

    def send(self, request: TutorRequest) -> TutorResponse:
        """Post one user turn and return the validated reply."""

        try:
            response = self._client.post(
                self._config.endpoint,
                json=request.to_payload(),
                headers=self._build_headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning("Tutoring service unreachable: %s", exc)
            raise TutoringServiceError(f"Tutoring service unreachable: {exc}") from exc

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(
                "Tutoring service returned an error",
                extra={"status_code": response.status_code, "detail": detail},
            )
            raise TutoringServiceError(
                f"Tutoring service returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise TutoringServiceError(
                "Tutoring service returned non-JSON payload", status_code=response.status_code
            ) from exc
        try:
            return TutorResponse.model_validate(data)
        except ValidationError as exc:
            raise TutoringServiceError(
                "Tutoring service payload did not match the expected schema", status_code=response.status_code
            ) from exc

    def close(self) -> None:
        if getattr(self, "_owns_client", False):
            self._client.close()

    def _build_headers(self) -> Dict[str, str] | None:
        if not self._config.api_key:
            return None
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def __enter__(self) -> "TutoringServiceClient":  # pragma: no cover - convenience
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - convenience
        self.close()


def _error_detail(response: httpx.Response) -> str:
    try:
        data: Any = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(data, dict):
        for key in ("message", "detail", "error"):
            if data.get(key):
                return str(data[key])
    return response.reason_phrase


__all__ = ["TutoringServiceClient", "TutoringServiceConfig", "TutoringServiceError"]
