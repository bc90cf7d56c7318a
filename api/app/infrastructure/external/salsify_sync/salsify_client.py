"""
Cliente del canal de exportacion de Salsify (sin SDKs externos).

Protocolo en dos pasos:
1. GET al endpoint del canal con el access token -> {"product_export_url": ...}
2. GET a product_export_url -> lista de objetos de una sola clave, que se
   aplanan en {"products": [...], "attributes": [...], "attribute_values": [...],
   "digital_assets": [...]}

Cualquier fallo de red/HTTP o JSON invalido se propaga como TransportError;
un payload sin las claves esperadas, como DataShapeError.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

import requests
from loguru import logger

from app.shared.exceptions.salsify import DataShapeError, TransportError

from .types import RawFeed


@dataclass(frozen=True)
class SalsifyCredentials:
    endpoint: str
    token: str


def merge_export_payload(payload: Any) -> RawFeed:
    """
    Aplana la lista de objetos de una clave del export en un unico dict.

    Raises:
        DataShapeError: si el export no es una lista de objetos
    """
    if not isinstance(payload, list):
        raise DataShapeError(
            "El export de Salsify no es una lista de objetos",
            missing="export list",
        )

    merged: RawFeed = {}
    for item in payload:
        if not isinstance(item, dict):
            raise DataShapeError(
                f"Elemento inesperado en el export de Salsify: {type(item).__name__}",
                missing="export object",
            )
        merged.update(item)
    return merged


class FeedFetcher:
    """
    Cliente HTTP del canal. Expone fetch_channel, que retorna el feed crudo.

    Importante:
    - No interpreta atributos ni productos: eso lo hace field_catalog.
    - Reintenta solo 429/5xx; 4xx restantes fallan de inmediato.
    """

    def __init__(
        self,
        credentials: Optional[SalsifyCredentials] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: int = 60,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._creds = credentials
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()

    def fetch_channel(self, endpoint: Optional[str] = None, token: Optional[str] = None) -> RawFeed:
        """
        Resuelve la URL de exportacion y descarga el feed completo.

        Args:
            endpoint: URL del canal (por defecto la de las credenciales)
            token: access token (por defecto el de las credenciales)
        """
        endpoint = endpoint or (self._creds.endpoint if self._creds else "")
        token = token or (self._creds.token if self._creds else "")
        if not endpoint:
            raise TransportError("No hay endpoint de canal de Salsify configurado")

        logger.info("Consultando canal de Salsify para obtener la URL de exportacion")
        channel = self._request_json(endpoint, token=token)
        if not isinstance(channel, dict) or not channel.get("product_export_url"):
            raise DataShapeError(
                "La respuesta del canal no contiene product_export_url",
                missing="product_export_url",
            )

        logger.info("Descargando export de productos de Salsify")
        payload = self._request_json(channel["product_export_url"], token=None)
        feed = merge_export_payload(payload)
        logger.info(
            f"Export de Salsify recibido: {len(feed.get('products') or [])} producto(s), "
            f"{len(feed.get('attributes') or [])} atributo(s)"
        )
        return feed

    def _request_json(self, url: str, *, token: Optional[str]) -> Any:
        """
        GET con backoff para 429/5xx.

        El token viaja como query param (access_token) y como Bearer; la
        URL de exportacion es pre-firmada y no lo necesita.
        """
        params: dict[str, Any] = {}
        headers = {"Accept": "application/json"}
        if token:
            params["access_token"] = token
            headers["Authorization"] = f"Bearer {token}"

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method="GET",
                    url=url,
                    params=params or None,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                raise TransportError(
                    f"Error de red consultando Salsify: {e}",
                    details={"url": url},
                ) from e

            if 200 <= resp.status_code < 300:
                try:
                    return resp.json()
                except ValueError as e:
                    raise TransportError(
                        "Salsify devolvio JSON invalido",
                        details={"url": url},
                    ) from e

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise TransportError(
                        f"Salsify error {resp.status_code} tras {attempt} reintentos",
                        details={"url": url, "status_code": resp.status_code},
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                logger.warning(
                    f"Salsify respondio {resp.status_code}; reintento {attempt + 1} en {sleep_s:.1f}s"
                )
                time.sleep(sleep_s)
                continue

            # Errores no recuperables
            raise TransportError(
                f"Salsify request fallo {resp.status_code}: {resp.text}",
                details={"url": url, "status_code": resp.status_code},
            )

        raise TransportError("Salsify no respondio", details={"url": url})
