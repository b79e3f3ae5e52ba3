import logging
import random

from proposal.config import ConfettiPolicy
from proposal.effects import ConfettiPort
from proposal.scheduler import Scheduler, TimerHandle
from proposal.state_models import ConfettiBurst

logger = logging.getLogger(__name__)


def random_burst(policy: ConfettiPolicy, rng: random.Random) -> ConfettiBurst:
    """Uma rajada com ângulo, abertura e origem sorteados dentro das faixas da política."""
    return ConfettiBurst(
        particle_count=policy.particle_count,
        angle=rng.uniform(*policy.angle_range),
        spread=rng.uniform(*policy.spread_range),
        origin_x=rng.uniform(*policy.origin_x_range),
        origin_y=rng.random() + policy.origin_y_offset,
        colors=list(policy.colors),
    )


class CelebrationSequence:
    """
    Sequência de confete disparada pelo aceite.
    Um timer repetitivo emite uma rajada por tick e se cancela sozinho
    quando o tempo decorrido atinge a duração configurada.
    """

    def __init__(
        self,
        confetti: ConfettiPort,
        scheduler: Scheduler,
        policy: ConfettiPolicy,
        rng: random.Random,
    ):
        self.confetti = confetti
        self.scheduler = scheduler
        self.policy = policy
        self.rng = rng
        self.bursts_fired = 0
        self._handle: TimerHandle | None = None
        self._ends_at = 0.0

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self) -> None:
        if self.running:
            return
        self._ends_at = self.scheduler.now_ms() + self.policy.duration_ms
        self._handle = self.scheduler.call_every(self.policy.interval_ms, self._tick)
        logger.info("Confete iniciado (%sms)", self.policy.duration_ms)

    def _tick(self) -> None:
        if self._ends_at - self.scheduler.now_ms() <= 0:
            self.stop()
            return
        self.confetti.fire(random_burst(self.policy, self.rng))
        self.bursts_fired += 1

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
