import logging
from collections.abc import Callable

from proposal.effects import AudioPort
from proposal.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class MusicController:
    """
    Sincroniza a preferência de música com o recurso de áudio.
    A sincronização é adiada (delay_ms) e cada nova preferência cancela a pendente,
    de modo que um comando velho nunca é aplicado.
    """

    def __init__(self, audio: AudioPort, scheduler: Scheduler, delay_ms: float = 100):
        self.audio = audio
        self.scheduler = scheduler
        self.delay_ms = delay_ms
        self._pending: TimerHandle | None = None

    def try_play(self) -> bool:
        """Tenta tocar; recusa da plataforma (sem gesto do usuário) é engolida."""
        try:
            self.audio.play()
        except Exception as e:
            logger.debug("Audio play failed: %s", e)
            return False
        return True

    def _apply(self, playing: bool) -> None:
        self._pending = None
        if playing:
            self.try_play()
        else:
            self.audio.pause()

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def sync(self, playing: bool) -> None:
        self.cancel()
        self._pending = self.scheduler.call_later(self.delay_ms, lambda: self._apply(playing))


class FirstInteraction:
    """
    Capacidade finita: armada uma vez por carregamento de página, desarmada na primeira
    interação (ponteiro, toque ou tecla), tenha a reprodução começado ou não.
    """

    def __init__(self) -> None:
        self.armed = True

    def rearm(self) -> None:
        """Cada documento carregado recebe a sua própria capacidade."""
        self.armed = True

    def trigger(self, should_play: bool, start: Callable[[], bool]) -> bool:
        if not self.armed:
            return False
        self.armed = False
        if should_play:
            start()
        return True
