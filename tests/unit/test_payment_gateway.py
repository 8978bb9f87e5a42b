import random

import pytest

from ticketing.domain.payment_gateway import PaymentGatewaySimulator


class FixedDraw:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def randint(self, a, b):
        assert (a, b) == (1, 100)
        self.calls += 1
        return self.value


def _gateway(draw, **kwargs):
    kwargs.setdefault("delay_seconds", 0)
    return PaymentGatewaySimulator(random_source=FixedDraw(draw), **kwargs)


@pytest.mark.parametrize(
    "draw, expected",
    [(1, True), (70, True), (71, False), (100, False)],
)
def test_draw_threshold_is_seventy_percent(draw, expected):
    outcome = _gateway(draw).charge()

    assert outcome.success is expected
    assert outcome.forced is False
    assert outcome.draw == draw


def test_forced_result_skips_random_draw():
    source = FixedDraw(100)
    gateway = PaymentGatewaySimulator(random_source=source, delay_seconds=0)

    success = gateway.charge({"test_mode": True, "force_result": "success"})
    failed = gateway.charge({"test_mode": True, "force_result": "failed"})

    assert success.success is True and success.forced is True
    assert failed.success is False and failed.forced is True
    assert source.calls == 0


@pytest.mark.parametrize(
    "inputs",
    [
        {"force_result": "success"},
        {"test_mode": False, "force_result": "success"},
    ],
)
def test_force_result_without_test_mode_is_ignored(inputs):
    outcome = _gateway(100).charge(inputs)

    assert outcome.forced is False
    assert outcome.success is False


def test_delay_is_applied_once_per_charge():
    sleeps = []
    gateway = _gateway(10, delay_seconds=0.5, sleep=sleeps.append)

    gateway.charge()

    assert sleeps == [0.5]


def test_seeded_random_is_replayable():
    first = PaymentGatewaySimulator(random_source=random.Random(42), delay_seconds=0)
    second = PaymentGatewaySimulator(random_source=random.Random(42), delay_seconds=0)

    assert [first.charge().success for _ in range(10)] == [
        second.charge().success for _ in range(10)
    ]


def test_success_rate_must_be_a_percentage():
    with pytest.raises(ValueError):
        PaymentGatewaySimulator(success_rate=101)
