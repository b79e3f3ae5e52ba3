from typing import Protocol

from proposal.state_models import ConfettiBurst


class AudioPort(Protocol):
    """Um único recurso de áudio em loop. play() pode levantar PlaybackRejectedError."""

    def play(self) -> None: ...

    def pause(self) -> None: ...


class ConfettiPort(Protocol):
    def fire(self, burst: ConfettiBurst) -> None: ...


class LinkOpener(Protocol):
    def open(self, url: str) -> None: ...


class EffectOutbox:
    """
    Fila de efeitos para um visitante do servidor web.
    O widget emite comandos de áudio e rajadas de confete aqui;
    o browser drena a fila em GET /effects e os executa localmente
    (a recusa de autoplay fica no browser, silenciosa).
    """

    def __init__(self) -> None:
        self.audio_commands: list[str] = []
        self.bursts: list[ConfettiBurst] = []

    def play(self) -> None:
        self.audio_commands.append("play")

    def pause(self) -> None:
        self.audio_commands.append("pause")

    def fire(self, burst: ConfettiBurst) -> None:
        self.bursts.append(burst)

    def drain(self) -> dict:
        payload = {
            "audio": self.audio_commands,
            "bursts": [burst.model_dump() for burst in self.bursts],
        }
        self.audio_commands, self.bursts = [], []
        return payload
