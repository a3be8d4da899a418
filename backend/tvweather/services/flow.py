"""Flow cards: the snow-changed trigger and the rain/snow amount conditions."""

import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

SNOW_CHANGED = "snowChanged"
RAIN_AMOUNT = "rainAmount"
SNOW_AMOUNT = "snowAmount"

TriggerListener = Callable[[Any, dict[str, Any]], Any]


class FlowTriggerCard:
    """A device trigger that any number of automation listeners subscribe to."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        self._listeners: list[TriggerListener] = []

    def register_listener(self, listener: TriggerListener) -> None:
        self._listeners.append(listener)

    def unregister_listener(self, listener: TriggerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def trigger(self, device: Any, tokens: dict[str, Any]) -> None:
        logger.info("Trigger %s fired for %s with %s", self.card_id, getattr(device, "name", device), tokens)
        for listener in list(self._listeners):
            try:
                result = listener(device, tokens)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error("Trigger %s listener failed: %s", self.card_id, exc, exc_info=True)


def _exceeds(device: Any, capability: str, threshold: float, card_id: str) -> bool:
    value = device.capabilities.get(capability)
    logger.info(
        "[%s] Condition '%s': %s=%s, parameter=%s",
        device.name, card_id, capability, value, threshold,
    )
    return value is not None and value > threshold


def rain_amount(device: Any, rain: float) -> bool:
    """True when the 30-minute rain sum is above ``rain`` mm."""
    return _exceeds(device, "measure_rain", rain, RAIN_AMOUNT)


def snow_amount(device: Any, snow: float) -> bool:
    """True when the 30-minute solid snow sum is above ``snow`` mm."""
    return _exceeds(device, "measure_rain.snow", snow, SNOW_AMOUNT)
