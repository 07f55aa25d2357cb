# src/depeg_guard/guard/collaborators.py

# --- Built Ins  ---
from typing import Protocol, runtime_checkable

# --- Installed  ---
from loguru import logger as log

# --- Local Application Imports ---
from depeg_guard.models import BaseEvent, DeviationMeasuredEvent, ReferencePrice, TradeRejectedEvent


@runtime_checkable
class ReferencePriceFeed(Protocol):
    """External price source. The guard only ever reads from it."""

    async def latest(self) -> ReferencePrice: ...


@runtime_checkable
class EventPublisher(Protocol):
    async def publish(self, event: BaseEvent) -> None: ...


class LoggingEventPublisher:
    """Default sink: writes every guard event to the application log."""

    async def publish(self, event: BaseEvent) -> None:
        if isinstance(event, TradeRejectedEvent):
            log.warning(
                f"[{event.pool_id}] trade rejected: reason={event.reason.value} "
                f"deviation_bps={event.deviation_bps} actor={event.actor}"
            )
        elif isinstance(event, DeviationMeasuredEvent):
            log.info(
                f"[{event.pool_id}] deviation measured: {event.deviation_bps} bps "
                f"({event.risk_level.value}) reference={event.reference_price} twap={event.twap_price} "
                f"fee={event.fee_rate} size_ceiling={event.size_ceiling}"
            )
        else:
            log.info(f"[{event.pool_id}] {type(event).__name__}: {event.model_dump_json()}")
