from typing import Literal

from pydantic import BaseModel, Field


class ProposalState(BaseModel):
    """
    Estado autoritativo mínimo do widget (Máquina de Estados da proposta).
    Apenas estes três campos são persistidos; o resto das views é derivado deles.
    """

    no_count: int = Field(default=0, ge=0)
    has_said_yes: bool = False
    music_playing: bool = True

    def advance(self, message_count: int) -> int:
        """Avança o índice de recusa, voltando a 0 após a última mensagem."""
        self.no_count = (self.no_count + 1) % message_count
        return self.no_count

    def accept(self) -> bool:
        """Marca o aceite e limpa o progresso. Retorna False se já estava aceito."""
        if self.has_said_yes:
            return False
        self.has_said_yes = True
        self.no_count = 0
        return True


class ProposalConfig(BaseModel):
    """Entradas lidas uma única vez da query string no carregamento."""

    display_name: str
    contact: str = ""
    reset: bool = False


class Viewport(BaseModel):
    width: int = Field(default=1280, ge=0)
    height: int = Field(default=720, ge=0)


class Position(BaseModel):
    x: int = 0
    y: int = 0


class ConfettiBurst(BaseModel):
    particle_count: int
    angle: float
    spread: float
    origin_x: float
    origin_y: float
    colors: list[str]


class FloatingHeart(BaseModel):
    emoji: str
    left: float
    top: float
    delay: float
    duration: float


class ProposalView(BaseModel):
    """Everything a template needs to draw the current screen."""

    kind: Literal["prompt", "success"]
    display_name: str
    music_label: str
    no_message: str = ""
    yes_scale: int = 1
    yes_overlay: bool = False
    no_position: Position = Field(default_factory=Position)
    hearts: list[FloatingHeart] = Field(default_factory=list)
    share_url: str = ""


def yes_button_scale(no_count: int, message_count: int, final_scale: int = 50) -> int:
    """Linear growth with each refusal, then a jump to final_scale on the last message."""
    if no_count < message_count - 1:
        return 1 + no_count * 2
    return final_scale


def is_last_message(no_count: int, message_count: int) -> bool:
    return no_count == message_count - 1
