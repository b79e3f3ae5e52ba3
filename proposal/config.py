import logging
import os
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import parse_qsl

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from proposal.state_models import ProposalConfig

logger = logging.getLogger(__name__)

# Caminho padrão da política (relativo à raiz do projeto)
DEFAULT_POLICY_PATH = Path(__file__).resolve().parent.parent / "config" / "proposal_policy.yaml"

RESET_VALUE = "true"


class ConfettiPolicy(BaseModel):
    duration_ms: int = Field(default=3000, gt=0)
    interval_ms: int = Field(default=30, gt=0)
    particle_count: int = Field(default=3, gt=0)
    angle_range: tuple[float, float] = (55, 125)
    spread_range: tuple[float, float] = (50, 70)
    origin_x_range: tuple[float, float] = (0.1, 0.9)
    origin_y_offset: float = -0.2
    colors: list[str] = Field(default_factory=lambda: ["#ec4899", "#ef4444", "#ffffff", "#f5d0fe"])


class ProposalPolicy(BaseModel):
    """Tunables of the widget, loaded from proposal_policy.yaml."""

    no_messages: list[str] = Field(
        default_factory=lambda: [
            "NO",
            "Really sure??",
            "Pookie please 🥺",
            "Just think about it",
            "Don't break my heart 💔",
            "Last chance 😭",
        ]
    )
    final_yes_scale: int = Field(default=50, gt=0)
    no_button_margin_x: int = Field(default=200, ge=0)
    no_button_margin_y: int = Field(default=100, ge=0)
    music_sync_delay_ms: int = Field(default=100, ge=0)
    default_name: str = "My Love"
    share_message: str = "I just said YES 💍💖 Happy Valentine's!"
    confetti: ConfettiPolicy = Field(default_factory=ConfettiPolicy)

    @model_validator(mode="after")
    def _at_least_two_messages(self) -> "ProposalPolicy":
        if len(self.no_messages) < 2:
            raise ValueError("no_messages needs at least two entries")
        return self

    @property
    def message_count(self) -> int:
        return len(self.no_messages)


def load_policy(config_path: Path | None = None) -> ProposalPolicy:
    """Lê a política YAML; arquivo ausente ou inválido cai nos valores padrão."""
    path = config_path or Path(os.environ.get("PROPOSAL_POLICY_PATH") or DEFAULT_POLICY_PATH)
    if not path.exists():
        return ProposalPolicy()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    try:
        return ProposalPolicy(**(data.get("proposal") or {}))
    except ValidationError as e:
        logger.warning("Politica invalida em %s. Usando valores padrao. Erro: %s", path, e)
        return ProposalPolicy()


def format_display_name(raw: str | None, default: str = "My Love") -> str:
    """First letter upper-cased, the rest untouched; empty or absent names use the default."""
    name = raw or default
    return name[:1].upper() + name[1:]


def parse_query(params: Mapping[str, str] | str, policy: ProposalPolicy | None = None) -> ProposalConfig:
    """Builds the load-time configuration from query parameters (a mapping or a raw query string)."""
    policy = policy or ProposalPolicy()
    if isinstance(params, str):
        params = dict(parse_qsl(params.lstrip("?")))
    return ProposalConfig(
        display_name=format_display_name(params.get("name"), policy.default_name),
        contact=params.get("whatsapp") or "",
        reset=params.get("reset") == RESET_VALUE,
    )


def store_path_from_env() -> Path | None:
    raw = os.environ.get("PROPOSAL_STORE_PATH", "").strip()
    return Path(raw) if raw else None


def max_sessions_from_env(default: int = 1000) -> int:
    raw = os.environ.get("PROPOSAL_MAX_SESSIONS", "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        logger.warning("PROPOSAL_MAX_SESSIONS invalido (%r). Usando %s.", raw, default)
        return default
    return max(1, value)
