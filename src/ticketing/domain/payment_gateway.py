# src/ticketing/domain/payment_gateway.py

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol


logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_RATE = int(os.getenv("PAYMENT_GATEWAY_SUCCESS_RATE", "70"))
DEFAULT_DELAY_SECONDS = float(os.getenv("PAYMENT_GATEWAY_DELAY_SECONDS", "0.5"))


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


@dataclass(frozen=True)
class GatewayOutcome:
    success: bool
    forced: bool
    draw: int | None = None


class PaymentGatewaySimulator:
    """
    Stand-in for a real payment processor.

    Outcome is forced when the caller passes a true ``test_mode`` together
    with ``force_result`` ("success" or "failed"). A false or absent
    ``test_mode`` ignores ``force_result``. Otherwise a uniform draw over
    1..100 from the injected random source succeeds iff it is at most
    ``success_rate``. Each call sleeps a fixed synthetic delay once and
    yields exactly one outcome.
    """

    def __init__(
        self,
        random_source: RandomSource | None = None,
        success_rate: int = DEFAULT_SUCCESS_RATE,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not 0 <= success_rate <= 100:
            raise ValueError("success_rate must be between 0 and 100")
        self.random_source = random_source or random.Random()
        self.success_rate = success_rate
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def charge(self, simulator_inputs: Mapping[str, Any] | None = None) -> GatewayOutcome:
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)

        inputs = simulator_inputs or {}
        if inputs.get("test_mode") and inputs.get("force_result") is not None:
            outcome = GatewayOutcome(
                success=inputs["force_result"] == "success",
                forced=True,
            )
        else:
            draw = self.random_source.randint(1, 100)
            outcome = GatewayOutcome(
                success=draw <= self.success_rate,
                forced=False,
                draw=draw,
            )

        logger.info(
            "Gateway outcome success=%s forced=%s draw=%s",
            outcome.success,
            outcome.forced,
            outcome.draw,
        )
        return outcome
