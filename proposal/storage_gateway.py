import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from proposal.exceptions import StateValidationError, StorageUnavailableError
from proposal.state_models import ProposalState

logger = logging.getLogger(__name__)

# Chaves persistidas (mesmos nomes usados pelo front-end original)
NO_COUNT_KEY = "noCount"
HAS_SAID_YES_KEY = "hasSaidYes"
MUSIC_PLAYING_KEY = "musicPlaying"
ALL_KEYS = (NO_COUNT_KEY, HAS_SAID_YES_KEY, MUSIC_PLAYING_KEY)


class KeyValueStore(Protocol):
    """Porta de persistência: valores string por chave, síncrona."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def clear(self) -> None: ...


class InMemoryStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore:
    """
    Store persistido em um arquivo JSON (um objeto plano chave -> string).
    Cada operação relê o arquivo, então vários processos enxergam a última escrita.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailableError(f"Falha ao ler {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailableError(f"Conteudo inesperado em {self.path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp.replace(self.path)
        except OSError as e:
            raise StorageUnavailableError(f"Falha ao gravar {self.path}: {e}") from e

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())

    def clear(self) -> None:
        self._write({})


class NamespacedStore:
    """Isola as chaves de um visitante dentro de um store compartilhado (equivalente à origem do browser)."""

    def __init__(self, store: KeyValueStore, namespace: str):
        self.store = store
        self.prefix = f"{namespace}:"

    def get(self, key: str) -> str | None:
        return self.store.get(self.prefix + key)

    def set(self, key: str, value: str) -> None:
        self.store.set(self.prefix + key, value)

    def remove(self, key: str) -> None:
        self.store.remove(self.prefix + key)

    def keys(self) -> list[str]:
        return [k[len(self.prefix):] for k in self.store.keys() if k.startswith(self.prefix)]

    def clear(self) -> None:
        for key in self.keys():
            self.remove(key)


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw == "true"


def _parse_no_count(raw: str | None, message_count: int) -> int:
    """Progresso ilegível ou fora da faixa volta para 0 (fail closed)."""
    if raw is None:
        return 0
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Progresso persistido ilegivel (%r). Resetando para 0.", raw)
        return 0
    if not 0 <= value < message_count:
        logger.warning("Progresso persistido fora da faixa (%s). Resetando para 0.", value)
        return 0
    return value


class ProposalStorageGateway:
    """
    Ponte de persistência do widget.
    Protege a aplicação se o store falhar: leituras caem no padrão e escritas
    são ignoradas com log (Graceful Degradation). Valida o estado com Pydantic.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _get(self, key: str) -> str | None:
        try:
            return self.store.get(key)
        except Exception as e:
            logger.warning("Store indisponivel na leitura de %s. Usando padrao. Erro: %s", key, e)
            return None

    def _set(self, key: str, value: str) -> None:
        try:
            self.store.set(key, value)
        except Exception as e:
            logger.warning("Store indisponivel na escrita de %s. Ignorando. Erro: %s", key, e)

    def _remove(self, key: str) -> None:
        try:
            self.store.remove(key)
        except Exception as e:
            logger.warning("Store indisponivel ao remover %s. Ignorando. Erro: %s", key, e)

    def _build_state(self, message_count: int) -> ProposalState:
        has_said_yes = _parse_bool(self._get(HAS_SAID_YES_KEY), False)
        try:
            return ProposalState(
                no_count=0 if has_said_yes else _parse_no_count(self._get(NO_COUNT_KEY), message_count),
                has_said_yes=has_said_yes,
                music_playing=_parse_bool(self._get(MUSIC_PLAYING_KEY), True),
            )
        except ValidationError as e:
            raise StateValidationError(str(e)) from e

    def load_state(self, message_count: int) -> ProposalState:
        """Recupera o estado persistido; aceite gravado sempre prevalece sobre o progresso."""
        try:
            return self._build_state(message_count)
        except StateValidationError as e:
            logger.error("Estado persistido corrompido! Resetando. Erro: %s", e)
            return ProposalState()

    def save_progress(self, state: ProposalState) -> None:
        """Grava o progresso de recusa enquanto o aceite não ocorreu."""
        if state.has_said_yes:
            return
        self._set(NO_COUNT_KEY, str(state.no_count))

    def save_acceptance(self) -> None:
        self._set(HAS_SAID_YES_KEY, "true")
        self._remove(NO_COUNT_KEY)

    def save_music(self, playing: bool) -> None:
        self._set(MUSIC_PLAYING_KEY, "true" if playing else "false")

    def wipe(self) -> None:
        """Apaga todas as chaves do widget (escape hatch ?reset=true)."""
        try:
            self.store.clear()
        except Exception as e:
            logger.warning("Falha ao limpar o store (%s). Removendo chave a chave.", e)
            for key in ALL_KEYS:
                self._remove(key)
