"""FCM transport adapter implementing TransportProtocol.

Sends notifications through the FCM HTTP endpoint with the server key and
manages topic relations for this device through the Instance ID API.
Uses a shared ``aiohttp.ClientSession`` created lazily on first use and
closed via ``close()``.

Every failed attempt is raised as :class:`TransportError` with a
classification for the logs; the dispatch engine retries all of them alike.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aiohttp
import structlog

from pushrelay.core.domain.config_schema import FCM_SEND_ENDPOINT
from pushrelay.core.domain.errors import TransportError, TransportErrorKind
from pushrelay.core.interfaces.logging import LoggerProtocol
from pushrelay.core.interfaces.transport import InboundHandler, TokenRefreshHandler

IID_BASE_URL = "https://iid.googleapis.com/iid"


class FcmTransport:
    """Push transport backed by Firebase Cloud Messaging.

    Args:
        server_key: FCM server key used in the ``Authorization`` header.
        endpoint: Send endpoint.
        device_token: Registration token of this device, needed for topic
            subscriptions and returned by ``get_token``.
        timeout_seconds: Connect and read timeout of each request.
        logger: Optional structured logger.
    """

    def __init__(
        self,
        server_key: str,
        *,
        endpoint: str = FCM_SEND_ENDPOINT,
        device_token: str | None = None,
        timeout_seconds: float = 15.0,
        logger: LoggerProtocol | None = None,
    ) -> None:
        self._server_key = server_key
        self._endpoint = endpoint
        self._device_token = device_token
        self._timeout = aiohttp.ClientTimeout(
            total=timeout_seconds * 2,
            connect=timeout_seconds,
            sock_read=timeout_seconds,
        )
        self._session: aiohttp.ClientSession | None = None
        self._inbound_handler: InboundHandler | None = None
        self._token_handler: TokenRefreshHandler | None = None
        self._logger = logger or structlog.get_logger()

    def is_ready(self) -> bool:
        return bool(self._server_key)

    async def request_permission(self, *, badge: bool, sound: bool) -> bool:
        # Server-side sending needs no user prompt; the key is the authorization.
        self._logger.debug("fcm.permission", authorized=self.is_ready(), badge=badge, sound=sound)
        return self.is_ready()

    async def check_permission(self) -> bool:
        return self.is_ready()

    async def send(
        self,
        target: str,
        *,
        title: str | None,
        body: str | None,
        data: dict[str, str],
    ) -> None:
        """Send one notification to a device token or ``/topics/<name>``."""
        payload: dict[str, Any] = {
            "to": target,
            "notification": {"title": title, "body": body},
            "data": data,
        }
        response_text = await self._post(self._endpoint, payload, target=target)
        self._raise_for_fcm_result(response_text, target)
        self._logger.debug("fcm.sent", target=target)

    async def subscribe_topic(self, topic: str) -> None:
        token = self._require_token("subscribe")
        await self._post(f"{IID_BASE_URL}/v1/{token}/rel/topics/{topic}", None, target=topic)
        self._logger.info("fcm.topic_subscribed", topic=topic)

    async def unsubscribe_topic(self, topic: str) -> None:
        token = self._require_token("unsubscribe")
        await self._post(
            f"{IID_BASE_URL}/v1:batchRemove",
            {"to": f"/topics/{topic}", "registration_tokens": [token]},
            target=topic,
        )
        self._logger.info("fcm.topic_unsubscribed", topic=topic)

    async def get_token(self) -> str | None:
        return self._device_token

    def listen(self, handler: InboundHandler) -> None:
        self._inbound_handler = handler

    def on_token_refresh(self, handler: TokenRefreshHandler) -> None:
        self._token_handler = handler

    async def deliver(self, raw_payload: Any) -> None:
        """Forward a payload received out of band (webhook, poller) to the listener."""
        if self._inbound_handler is None:
            self._logger.warning("fcm.no_inbound_listener")
            return
        await self._inbound_handler(raw_payload)

    async def update_token(self, token: str) -> None:
        """Store a refreshed device token and notify the listener."""
        self._device_token = token
        self._logger.info("fcm.token_refreshed")
        if self._token_handler is not None:
            await self._token_handler(token)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _require_token(self, action: str) -> str:
        if not self._device_token:
            raise TransportError(
                f"Cannot {action} topic without a device token",
                kind=TransportErrorKind.UNKNOWN,
            )
        return self._device_token

    async def _post(self, url: str, payload: dict[str, Any] | None, *, target: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"key={self._server_key}",
        }
        session = await self._get_session()
        try:
            async with session.post(url, json=payload, headers=headers) as response:
                text = await response.text()
                if response.status >= 400:
                    raise TransportError(
                        f"FCM rejected the request with status {response.status}",
                        kind=TransportErrorKind.UNKNOWN,
                        target=target,
                        details={"status": response.status, "response": text[:500]},
                    )
                return text
        except TransportError:
            raise
        except aiohttp.ConnectionTimeoutError as exc:
            raise _classified(
                TransportErrorKind.CONNECT_TIMEOUT, "Connection timeout", exc, target
            ) from exc
        except aiohttp.SocketTimeoutError as exc:
            raise _classified(
                TransportErrorKind.RECEIVE_TIMEOUT, "Receive timeout", exc, target
            ) from exc
        except (TimeoutError, asyncio.TimeoutError) as exc:
            raise _classified(
                TransportErrorKind.SEND_TIMEOUT, "Send timeout", exc, target
            ) from exc
        except aiohttp.ClientConnectionError as exc:
            raise _classified(
                TransportErrorKind.CONNECTION_ERROR, "Connection error", exc, target
            ) from exc
        except aiohttp.ClientError as exc:
            raise _classified(
                TransportErrorKind.UNKNOWN, "Unknown error", exc, target
            ) from exc

    def _raise_for_fcm_result(self, response_text: str, target: str) -> None:
        """FCM answers 200 with per-message failures in the body."""
        try:
            result = json.loads(response_text) if response_text else {}
        except json.JSONDecodeError:
            return
        if not isinstance(result, dict) or not result.get("failure"):
            return
        errors = [
            item.get("error")
            for item in result.get("results", [])
            if isinstance(item, dict) and item.get("error")
        ]
        raise TransportError(
            f"FCM reported a delivery failure: {', '.join(errors) or 'unknown'}",
            kind=TransportErrorKind.UNKNOWN,
            target=target,
            details={"errors": errors},
        )


def _classified(
    kind: TransportErrorKind, label: str, exc: Exception, target: str
) -> TransportError:
    return TransportError(f"{label}: {exc}", kind=kind, target=target)
