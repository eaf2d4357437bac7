"""Dispatch engine: fan-out with bounded per-target retry.

``push`` sends one message to every target concurrently. Each target runs its
own attempt loop (see :mod:`pushrelay.core.domain.delivery`); a failing
target never delays or aborts another. Once every target is terminal, one
``added`` event is published and the message is written to history.

Transport failures are absorbed: the caller only sees ``InvalidMessageError``
for a message without targets.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from pushrelay.application.channel_registry import ChannelRegistry
from pushrelay.core.domain.channel import EffectiveChannel
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.delivery import DispatchReport, TargetDelivery, TargetState
from pushrelay.core.domain.errors import InvalidMessageError, TransportError, TransportErrorKind
from pushrelay.core.domain.events import RelayEvent
from pushrelay.core.domain.message import NotificationMessage
from pushrelay.core.interfaces.events import EventBusProtocol
from pushrelay.core.interfaces.transport import TransportProtocol

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class DispatchEngine:
    """Sends messages through the transport and reports the outcome on the bus.

    Args:
        transport: Transport used for every attempt.
        event_bus: Bus receiving the ``added`` event.
        registry: Channel registry used to resolve the message channel.
        sleep: Awaitable used for the retry delay (injectable for tests).
    """

    def __init__(
        self,
        transport: TransportProtocol,
        event_bus: EventBusProtocol,
        *,
        registry: ChannelRegistry | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._event_bus = event_bus
        self._registry = registry or ChannelRegistry()
        self._sleep = sleep

    async def push(
        self,
        message: NotificationMessage,
        config: RelayConfig,
        *,
        retain_history: bool = True,
    ) -> DispatchReport:
        """Dispatch ``message`` to all of its targets.

        Args:
            message: The notification to send.
            config: Configuration snapshot used for the whole dispatch.
            retain_history: Save the message to ``config.history`` afterwards.

        Returns:
            Per-target outcome of the dispatch.

        Raises:
            InvalidMessageError: If the message has neither recipients nor a topic.
        """
        targets = message.targets()
        if not targets:
            raise InvalidMessageError(
                "A notification needs at least one recipient or a topic",
                details={"id": message.id},
            )

        channel = self._registry.resolve(
            message.channel,
            config,
            importance=message.importance,
            play_sound=message.play_sound,
        )
        logger.info(
            "dispatch.started",
            message_id=message.id,
            notification_id=message.notification_id,
            channel=channel.id,
            targets=len(targets),
            max_attempts=config.max_attempts,
        )

        data = message.to_transport_data()
        report = DispatchReport(
            message_id=message.id,
            deliveries=[TargetDelivery(target=target) for target in targets],
        )
        await asyncio.gather(
            *(
                self._deliver(delivery, message, channel, data, config)
                for delivery in report.deliveries
            )
        )

        if report.failed:
            logger.error(
                "dispatch.partially_failed",
                message_id=message.id,
                notification_id=message.notification_id,
                succeeded=len(report.succeeded),
                failed=len(report.failed),
            )
        else:
            logger.info(
                "dispatch.completed",
                message_id=message.id,
                notification_id=message.notification_id,
                succeeded=len(report.succeeded),
            )

        self._event_bus.publish(RelayEvent.added(message))

        if retain_history:
            await self._retain(message, config)
        return report

    async def _deliver(
        self,
        delivery: TargetDelivery,
        message: NotificationMessage,
        channel: EffectiveChannel,
        data: dict[str, str],
        config: RelayConfig,
    ) -> None:
        """Run the attempt loop of one target until it is terminal."""
        max_attempts = config.max_attempts
        while not delivery.state.is_terminal:
            attempt = delivery.attempts + 1
            if attempt > 1:
                await self._sleep(config.delay_before(attempt))
            delivery.transition(TargetState.ATTEMPTING)
            try:
                await self._transport.send(
                    delivery.target,
                    title=message.title,
                    body=message.body,
                    data=data,
                )
            except Exception as exc:
                error = _as_transport_error(exc, delivery.target)
                exhausted = delivery.attempts >= max_attempts
                delivery.fail(error, exhausted=exhausted)
                logger.warning(
                    "dispatch.attempt_failed",
                    message_id=message.id,
                    target=delivery.target,
                    attempt=delivery.attempts,
                    max_attempts=max_attempts,
                    kind=error.kind.value,
                    error=error.message,
                    exhausted=exhausted,
                )
                continue

            delivery.succeed()
            logger.debug(
                "dispatch.target_succeeded",
                message_id=message.id,
                target=delivery.target,
                channel=channel.id,
                attempts=delivery.attempts,
            )

        if delivery.state == TargetState.FAILED_EXHAUSTED:
            logger.error(
                "dispatch.target_exhausted",
                message_id=message.id,
                notification_id=message.notification_id,
                target=delivery.target,
                attempts=delivery.attempts,
            )

    async def _retain(self, message: NotificationMessage, config: RelayConfig) -> None:
        if config.history is None:
            logger.debug("dispatch.history_disabled", message_id=message.id)
            return
        try:
            await config.history.save(message)
        except Exception as exc:
            logger.error("dispatch.history_save_failed", message_id=message.id, error=str(exc))


def _as_transport_error(exc: Exception, target: str) -> TransportError:
    if isinstance(exc, TransportError):
        return exc
    return TransportError(
        f"Error sending notification: {exc}",
        kind=TransportErrorKind.UNKNOWN,
        target=target,
        details={"error_type": type(exc).__name__},
    )
