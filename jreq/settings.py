"""Settings resolution with a 4-step profile precedence chain."""

from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "jreq" / "config.toml"


class JreqSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JREQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None  # profile name

    # Connection
    jira_url: str | None = None
    jira_username: str | None = None  # anonymous access when unset
    jira_password: SecretStr | None = None
    jira_project: str | None = None  # project key, e.g. "TRAD"

    # Requirement hierarchy
    root_issue_type: str = "epic"
    link_levels: list[str] = ["Epic Link"]  # one relation name per depth
    advance_link_levels: bool = False  # False: every depth reuses link_levels[0]


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/jreq/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> JreqSettings:
    """Resolve the active JIRA profile and return a fully populated JreqSettings.

    Precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. JREQ_DEFAULT_PROFILE env var
    3. default_profile key in ~/.config/jreq/config.toml
    4. First profile defined in ~/.config/jreq/config.toml
    """
    import os

    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("JREQ_DEFAULT_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        elif active not in toml_config:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    # env vars + .env always override profile defaults
    settings = JreqSettings(**profile_defaults)

    if not settings.jira_url:
        typer.echo(f"Missing JIRA URL. Set JREQ_JIRA_URL or jira_url in the [{active or 'profile'}] section of {CONFIG_PATH}")
        raise typer.Exit(1)
    if not settings.jira_project:
        typer.echo(
            "Missing JIRA project. Set JREQ_JIRA_PROJECT or "
            f"jira_project in the [{active or 'profile'}] section of {CONFIG_PATH}"
        )
        raise typer.Exit(1)

    return settings


def set_default_profile(profile: str) -> Path:
    """Record `profile` as default_profile in the config file and return its path.

    A missing config file is created. An existing one must already define
    the profile.
    """
    if CONFIG_PATH.exists():
        config = tomlkit.load(CONFIG_PATH.open())
        profiles = _list_profiles(config)
        if profile not in profiles:
            typer.echo(f"Profile '{profile}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)
    else:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        config = tomlkit.document()

    config["default_profile"] = profile
    CONFIG_PATH.write_text(tomlkit.dumps(config))
    _load_toml.cache_clear()
    return CONFIG_PATH
