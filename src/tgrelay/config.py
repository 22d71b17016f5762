from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Environment variable names for secrets
ENV_BOT_TOKEN = "TGRELAY_BOT_TOKEN"
ENV_COMPLETION_API_KEY = "TGRELAY_COMPLETION_API_KEY"

LOCAL_CONFIG_NAME = Path(".tgrelay") / "tgrelay.toml"
HOME_CONFIG_PATH = Path.home() / ".tgrelay" / "tgrelay.toml"

DEFAULT_POLL_TIMEOUT_S = 60
DEFAULT_IDLE_TICK_S = 30.0
DEFAULT_COMPLETION_BASE_URL = "https://api.openai.com/v1"
DEFAULT_COMPLETION_MODEL = "gpt-4o-mini"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class GateConfig:
    channel: str | None = None
    group: str | None = None
    enabled: bool = True

    @property
    def configured(self) -> bool:
        return bool(self.channel and self.group)


@dataclass(frozen=True, slots=True)
class CompletionConfig:
    api_key: str
    base_url: str = DEFAULT_COMPLETION_BASE_URL
    model: str = DEFAULT_COMPLETION_MODEL
    system_prompt: str | None = None
    timeout_s: float = 120.0
    max_attempts: int = 2


@dataclass(frozen=True, slots=True)
class RelayConfig:
    bot_token: str
    completion: CompletionConfig
    gate: GateConfig = field(default_factory=GateConfig)
    admin_ids: frozenset[int] = frozenset()
    poll_timeout_s: int = DEFAULT_POLL_TIMEOUT_S
    idle_tick_s: float = DEFAULT_IDLE_TICK_S


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def load_config_file(path: str | Path | None = None) -> tuple[dict, Path]:
    if path:
        cfg_path = Path(path).expanduser()
        return _read_config(cfg_path), cfg_path

    for candidate in _config_candidates():
        if candidate.is_file():
            return _read_config(candidate), candidate

    raise ConfigError(
        f"Missing tgrelay config. Create {HOME_CONFIG_PATH} or pass --config."
    )


def _secret(
    config: dict, key: str, env_name: str, config_path: Path, *, label: str
) -> str:
    env_value = os.environ.get(env_name)
    if env_value and env_value.strip():
        return env_value.strip()

    try:
        value = config[key]
    except KeyError:
        raise ConfigError(
            f"Missing {label}. Set {env_name} environment variable "
            f"or add `{key}` to {config_path}."
        ) from None

    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"Invalid `{key}` in {config_path}; expected a non-empty string."
        )
    return value.strip()


def get_bot_token(config: dict, config_path: Path) -> str:
    """Get bot token from environment variable or config file.

    Environment variable TGRELAY_BOT_TOKEN takes precedence over config file.
    """
    return _secret(config, "bot_token", ENV_BOT_TOKEN, config_path, label="bot token")


def _table(config: dict, key: str, config_path: Path) -> dict:
    value = config.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid `{key}` in {config_path}; expected a table.")
    return value


def _optional_str(table: dict, key: str, where: str, config_path: Path) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(
            f"Invalid `{where}` in {config_path}; expected a string."
        )
    value = value.strip()
    return value or None


def _number(
    table: dict,
    key: str,
    default: float,
    where: str,
    config_path: Path,
    *,
    minimum: float = 0,
) -> float:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Invalid `{where}` in {config_path}; expected a number.")
    if value <= minimum:
        raise ConfigError(
            f"Invalid `{where}` in {config_path}; expected a value above {minimum}."
        )
    return value


def _bool(table: dict, key: str, default: bool, where: str, config_path: Path) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid `{where}` in {config_path}; expected a boolean.")
    return value


def parse_admin_ids(config: dict, config_path: Path) -> frozenset[int]:
    value = config.get("admin_ids", [])
    if not isinstance(value, list):
        raise ConfigError(
            f"Invalid `admin_ids` in {config_path}; expected a list of integers."
        )
    admin_ids: set[int] = set()
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ConfigError(
                f"Invalid `admin_ids` in {config_path}; expected a list of integers."
            )
        admin_ids.add(item)
    return frozenset(admin_ids)


def parse_gate(config: dict, config_path: Path) -> GateConfig:
    table = _table(config, "gate", config_path)
    gate = GateConfig(
        channel=_optional_str(table, "channel", "gate.channel", config_path),
        group=_optional_str(table, "group", "gate.group", config_path),
        enabled=_bool(table, "enabled", True, "gate.enabled", config_path),
    )
    if gate.enabled and not gate.configured:
        raise ConfigError(
            f"Membership gate is enabled but `gate.channel` and `gate.group` "
            f"are not both set in {config_path}."
        )
    return gate


def parse_completion(config: dict, config_path: Path) -> CompletionConfig:
    table = _table(config, "completion", config_path)
    api_key = _secret(
        table,
        "api_key",
        ENV_COMPLETION_API_KEY,
        config_path,
        label="completion API key",
    )
    base_url = (
        _optional_str(table, "base_url", "completion.base_url", config_path)
        or DEFAULT_COMPLETION_BASE_URL
    )
    model = (
        _optional_str(table, "model", "completion.model", config_path)
        or DEFAULT_COMPLETION_MODEL
    )
    max_attempts = _number(
        table, "max_attempts", 2, "completion.max_attempts", config_path
    )
    if not isinstance(max_attempts, int):
        raise ConfigError(
            f"Invalid `completion.max_attempts` in {config_path}; expected an integer."
        )
    return CompletionConfig(
        api_key=api_key,
        base_url=base_url.rstrip("/"),
        model=model,
        system_prompt=_optional_str(
            table, "system_prompt", "completion.system_prompt", config_path
        ),
        timeout_s=float(
            _number(table, "timeout_s", 120.0, "completion.timeout_s", config_path)
        ),
        max_attempts=max_attempts,
    )


def parse_config(config: dict[str, Any], config_path: Path) -> RelayConfig:
    polling = _table(config, "polling", config_path)
    poll_timeout_s = _number(
        polling,
        "timeout_s",
        DEFAULT_POLL_TIMEOUT_S,
        "polling.timeout_s",
        config_path,
    )
    return RelayConfig(
        bot_token=get_bot_token(config, config_path),
        completion=parse_completion(config, config_path),
        gate=parse_gate(config, config_path),
        admin_ids=parse_admin_ids(config, config_path),
        poll_timeout_s=int(poll_timeout_s),
        idle_tick_s=float(
            _number(
                polling,
                "idle_tick_s",
                DEFAULT_IDLE_TICK_S,
                "polling.idle_tick_s",
                config_path,
            )
        ),
    )


def load_config(path: str | Path | None = None) -> tuple[RelayConfig, Path]:
    raw, config_path = load_config_file(path)
    return parse_config(raw, config_path), config_path
