import logging
import math
import random
from pathlib import Path

import jinja2

from proposal.celebration import CelebrationSequence
from proposal.config import ProposalPolicy, load_policy
from proposal.effects import AudioPort, ConfettiPort, LinkOpener
from proposal.music import FirstInteraction, MusicController
from proposal.scheduler import Scheduler
from proposal.share import build_share_url
from proposal.state_models import (
    FloatingHeart,
    Position,
    ProposalConfig,
    ProposalView,
    Viewport,
    is_last_message,
    yes_button_scale,
)
from proposal.storage_gateway import ProposalStorageGateway

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

PROMPT_HEARTS = ["❤️", "💕", "💖", "💗", "💓"]
MUSIC_ON_LABEL = "🔈 Music On"
MUSIC_OFF_LABEL = "🔇 Music Off"


class ProposalWidget:
    """
    Componente único da proposta: dono de todo o estado, renderiza o Prompt View
    ou o Success View a partir do flag de aceite.
    Dependências injetadas (IoC) para testes sem browser.
    """

    def __init__(
        self,
        config: ProposalConfig,
        storage: ProposalStorageGateway,
        *,
        audio: AudioPort,
        confetti: ConfettiPort,
        opener: LinkOpener,
        scheduler: Scheduler,
        policy: ProposalPolicy | None = None,
        viewport: Viewport | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config
        self.storage = storage
        self.opener = opener
        self.policy = policy or load_policy()
        self.viewport = viewport or Viewport()
        self.rng = rng or random.Random()
        self._decor_rng = random.Random()

        self.state = storage.load_state(self.policy.message_count)
        self.no_position = Position()

        self.music = MusicController(audio, scheduler, self.policy.music_sync_delay_ms)
        self.first_interaction = FirstInteraction()
        self.celebration = CelebrationSequence(confetti, scheduler, self.policy.confetti, self.rng)

        self.jinja_env = jinja2.Environment(loader=jinja2.FileSystemLoader(TEMPLATES_DIR), autoescape=True)
        self.prompt_template = self.jinja_env.get_template("prompt.html.jinja2")
        self.success_template = self.jinja_env.get_template("success.html.jinja2")

    @property
    def accepted(self) -> bool:
        return self.state.has_said_yes

    def mount(self) -> None:
        """
        Chamado a cada documento carregado: rearma o primeiro gesto e sincroniza o áudio
        novo com a preferência (a tentativa de autoplay pode ser recusada).
        Não dispara confete.
        """
        self.first_interaction.rearm()
        self.music.sync(self.state.music_playing)

    def close(self) -> None:
        """Cancela os timers pendentes (sincronização de música e confete)."""
        self.music.cancel()
        self.celebration.stop()

    def _random_position(self) -> Position:
        max_x = max(0, self.viewport.width - self.policy.no_button_margin_x)
        max_y = max(0, self.viewport.height - self.policy.no_button_margin_y)
        return Position(x=math.floor(self.rng.random() * max_x), y=math.floor(self.rng.random() * max_y))

    def refuse(self, viewport: Viewport | None = None) -> int:
        """Avança a mensagem do NÃO; fora da última mensagem o botão foge para outro lugar."""
        if self.accepted:
            return self.state.no_count
        if viewport is not None:
            self.viewport = viewport

        index = self.state.advance(self.policy.message_count)
        if not is_last_message(index, self.policy.message_count):
            self.no_position = self._random_position()
        self.storage.save_progress(self.state)
        return index

    def accept(self) -> bool:
        """Transição terminal para o Success View. Uma segunda chamada não faz nada."""
        if not self.state.accept():
            return False
        self.storage.save_acceptance()
        logger.info("Proposta aceita por %s", self.config.display_name)
        self.celebration.start()
        return True

    def toggle_music(self) -> bool:
        self.state.music_playing = not self.state.music_playing
        self.storage.save_music(self.state.music_playing)
        self.music.sync(self.state.music_playing)
        return self.state.music_playing

    def user_interaction(self) -> bool:
        """Primeiro gesto do usuário: tenta iniciar a música uma única vez."""
        return self.first_interaction.trigger(self.state.music_playing, self.music.try_play)

    def share_url(self) -> str:
        return build_share_url(self.config.contact, self.policy.share_message)

    def share(self) -> str:
        url = self.share_url()
        self.opener.open(url)
        return url

    def _hearts(self, count: int, emojis: list[str]) -> list[FloatingHeart]:
        rng = self._decor_rng
        return [
            FloatingHeart(
                emoji=rng.choice(emojis),
                left=rng.random() * 100,
                top=rng.random() * 100,
                delay=rng.random() * 5,
                duration=2 + rng.random() * 4,
            )
            for _ in range(count)
        ]

    def view(self) -> ProposalView:
        music_label = MUSIC_ON_LABEL if self.state.music_playing else MUSIC_OFF_LABEL
        if self.accepted:
            return ProposalView(
                kind="success",
                display_name=self.config.display_name,
                music_label=music_label,
                hearts=self._hearts(20, ["💖"]),
                share_url=self.share_url(),
            )

        count = self.policy.message_count
        return ProposalView(
            kind="prompt",
            display_name=self.config.display_name,
            music_label=music_label,
            no_message=self.policy.no_messages[self.state.no_count],
            yes_scale=yes_button_scale(self.state.no_count, count, self.policy.final_yes_scale),
            yes_overlay=is_last_message(self.state.no_count, count),
            no_position=self.no_position,
            hearts=self._hearts(15, PROMPT_HEARTS),
        )

    def render(self, query: str = "") -> str:
        """Renderiza a view atual em HTML. `query` é repassada aos formulários de ação."""
        view = self.view()
        template = self.success_template if view.kind == "success" else self.prompt_template
        suffix = f"?{query}" if query else ""
        return template.render(view=view, suffix=suffix)
