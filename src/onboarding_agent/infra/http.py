"""Cliente HTTP centralizado com timeout, classificação de erros e logging.

Usado pelo cliente do serviço de tickets. Cada chamada é uma única tentativa:
a política de retry/backoff fica no TicketSync, que conhece o estado da
sessão e garante idempotência na criação de tickets.

- Timeouts sempre configurados
- Erros classificados em retentáveis (timeout, conexão, 429, 5xx) e fatais
- Logging estruturado sem tokens nem payloads
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from onboarding_agent.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

_TOKEN_PATTERN = re.compile(r"(token|api_key)=[^&]+")


def _sanitize_url(url: str) -> str:
    """Remove tokens da URL para logging seguro."""
    return _TOKEN_PATTERN.sub(r"\1=***", url)


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP."""

    base_url: str = ""
    timeout_seconds: float = 10.0
    default_headers: dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True


class HttpError(Exception):
    """Erro de requisição HTTP sem expor informações sensíveis."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable


def _is_retryable_status(status_code: int) -> bool:
    """Determina se status HTTP permite retry (408, 429 ou 5xx)."""
    return status_code in (408, 429) or 500 <= status_code < 600


class HttpClient:
    """Cliente HTTP assíncrono de tentativa única.

    Uso típico:
        async with HttpClient(config) as client:
            response = await client.post("/tickets", json=payload)
    """

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or HttpClientConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Retorna cliente httpx (lazy loading)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=self._config.default_headers,
                verify=self._config.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Fecha o cliente e libera recursos."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Executa uma requisição e classifica falhas.

        Raises:
            HttpError: com is_retryable conforme tipo de falha
        """
        client = await self._get_client()
        safe_url = _sanitize_url(url)
        logger.debug("Executando requisição HTTP", extra={"method": method, "url": safe_url})

        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning(
                "Timeout em requisição HTTP",
                extra={"method": method, "url": safe_url, "error": type(exc).__name__},
            )
            raise HttpError("Timeout", is_retryable=True) from exc
        except httpx.ConnectError as exc:
            logger.warning(
                "Conexão HTTP recusada",
                extra={"method": method, "url": safe_url, "error": type(exc).__name__},
            )
            raise HttpError("Conexão recusada", is_retryable=True) from exc
        except httpx.TransportError as exc:
            logger.warning(
                "Erro de conexão HTTP",
                extra={"method": method, "url": safe_url, "error": type(exc).__name__},
            )
            raise HttpError("Erro de conexão", is_retryable=True) from exc

        if response.is_success:
            logger.debug(
                "Requisição HTTP bem-sucedida",
                extra={"method": method, "url": safe_url, "status_code": response.status_code},
            )
            return response

        retryable = _is_retryable_status(response.status_code)
        logger.warning(
            "Requisição HTTP falhou",
            extra={
                "method": method,
                "url": safe_url,
                "status_code": response.status_code,
                "retryable": retryable,
            },
        )
        raise HttpError(
            f"HTTP {response.status_code}",
            status_code=response.status_code,
            is_retryable=retryable,
        )

    async def post(self, url: str, json: dict[str, Any] | None = None, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, json=json, **kwargs)

    async def put(self, url: str, json: dict[str, Any] | None = None, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, json=json, **kwargs)
