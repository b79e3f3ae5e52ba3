import random

import pytest

from proposal.config import ProposalPolicy, parse_query
from proposal.exceptions import PlaybackRejectedError
from proposal.scheduler import ManualScheduler
from proposal.state_models import Viewport
from proposal.storage_gateway import InMemoryStore, ProposalStorageGateway
from proposal.widget import ProposalWidget


class FakeAudio:
    def __init__(self, reject: bool = False):
        self.reject = reject
        self.calls: list[str] = []

    def play(self) -> None:
        self.calls.append("play")
        if self.reject:
            raise PlaybackRejectedError("play() failed because the user didn't interact with the document first")

    def pause(self) -> None:
        self.calls.append("pause")


class FakeConfetti:
    def __init__(self):
        self.bursts = []

    def fire(self, burst) -> None:
        self.bursts.append(burst)


class FakeOpener:
    def __init__(self):
        self.urls: list[str] = []

    def open(self, url: str) -> None:
        self.urls.append(url)


class WidgetHarness:
    """Widget com todas as portas falsas expostas para inspeção."""

    def __init__(self, query: str = "", store: InMemoryStore | None = None, reject_audio: bool = False):
        self.policy = ProposalPolicy()
        self.store = store if store is not None else InMemoryStore()
        self.audio = FakeAudio(reject=reject_audio)
        self.confetti = FakeConfetti()
        self.opener = FakeOpener()
        self.scheduler = ManualScheduler()
        self.widget = ProposalWidget(
            parse_query(query, self.policy),
            ProposalStorageGateway(self.store),
            audio=self.audio,
            confetti=self.confetti,
            opener=self.opener,
            scheduler=self.scheduler,
            policy=self.policy,
            viewport=Viewport(width=1000, height=800),
            rng=random.Random(7),
        )


@pytest.fixture
def harness_factory():
    return WidgetHarness
