import pytest

from models.job import Prediction


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeSleep:
    """Records requested waits and advances the clock instead of sleeping."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.now += seconds


class ScriptedAPI:
    """PredictionAPI returning canned predictions; repeats the last status forever."""

    def __init__(self, created: Prediction, statuses: list[Prediction]) -> None:
        self.created = created
        self.statuses = statuses
        self.prompts: list[str] = []
        self.polled: list[str] = []

    async def create_prediction(self, prompt: str) -> Prediction:
        self.prompts.append(prompt)
        return self.created

    async def get_prediction(self, prediction_id: str) -> Prediction:
        self.polled.append(prediction_id)
        idx = min(len(self.polled), len(self.statuses)) - 1
        return self.statuses[idx]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep(clock):
    return FakeSleep(clock)
