# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/oauth_handoff

"""
Configuration for the oauth-handoff package.

`validate_config` turns an untrusted mapping (optionally merged with environment
variables and CLI-style arguments) into a `ValidatedConfig`. Passing an already
validated config back in is a no-op, so nested handlers can share one instance.
"""

import json
import sys
from collections.abc import Mapping, Sequence
from contextvars import ContextVar
from dataclasses import dataclass
from types import MappingProxyType
from typing import Annotated, Any

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_core import PydanticUndefined
from pydantic_settings import (
    BaseSettings,
    CliSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    SettingsError,
)

from oauth_handoff.exceptions import ConfigValidationError
from oauth_handoff.formats import ORIGIN_LIST
from oauth_handoff.utils.logger import logger

REDACTED = "<REDACTED>"


@dataclass(frozen=True)
class _SourceOptions:
    use_environment: bool = False
    argv: tuple[str, ...] | None = None


# Source selection for the settings currently being built. Set only inside validate_config().
_source_options: ContextVar[_SourceOptions] = ContextVar("oauth_handoff_config_sources", default=_SourceOptions())


class HandoffSettings(BaseSettings):
    """
    Typed settings for the OAuth handoff handlers.

    Every field can be supplied by the caller, or, when enabled, by the environment
    variable named in its `env` metadata or by a `--<field_name>` argument.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    dev: bool = Field(
        default=False,
        description="Enables more verbose errors in the UI.",
        json_schema_extra={"env": "DEV", "format": "bool"},
    )
    origin: Annotated[tuple[str, ...], NoDecode] = Field(
        ...,
        description=(
            "The HTTP origin(s) of the admin panel using this OAuth provider, as a list or a comma-separated "
            "string. A bare host ('example.com') allows either scheme on its default port; a scheme and/or "
            "port ('https://example.com', 'example.com:8080') narrows that down."
        ),
        json_schema_extra={"env": "ORIGIN", "format": "origin-list", "allow_empty": False},
    )
    complete_url: str | None = Field(
        default=None,
        description="The URL the `complete` handler is hosted at (the OAuth redirect URI).",
        json_schema_extra={"env": "COMPLETE_URL", "format": "str"},
    )
    admin_panel_url: str = Field(
        default="",
        description="The URL of the admin panel to link the user back to if something goes wrong.",
        json_schema_extra={"env": "ADMIN_PANEL_URL", "format": "str"},
    )
    oauth_provider: str = Field(
        default="github",
        description="The Git service / OAuth provider to use.",
        json_schema_extra={"env": "OAUTH_PROVIDER", "format": "str"},
    )
    oauth_client_id: str | None = Field(
        default=None,
        description="The OAuth 2.0 Client ID received from the OAuth provider.",
        json_schema_extra={"env": "OAUTH_CLIENT_ID", "format": "str"},
    )
    oauth_client_secret: SecretStr | None = Field(
        default=None,
        description="The OAuth 2.0 Client secret received from the OAuth provider.",
        json_schema_extra={"env": "OAUTH_CLIENT_SECRET", "format": "str", "sensitive": True},
    )
    oauth_token_host: str = Field(
        default="",
        description="Base URI of the provider's token host. Required for GitHub Enterprise; guessed otherwise.",
        json_schema_extra={"env": "OAUTH_TOKEN_HOST", "format": "str"},
    )
    oauth_token_path: str = Field(
        default="",
        description="Path of the token endpoint, relative to the token host. Guessed from the provider if empty.",
        json_schema_extra={"env": "OAUTH_TOKEN_PATH", "format": "str"},
    )
    oauth_authorize_path: str = Field(
        default="",
        description="Path of the authorize endpoint, relative to the token host. Guessed from the provider if empty.",
        json_schema_extra={"env": "OAUTH_AUTHORIZE_PATH", "format": "str"},
    )
    oauth_scopes: str = Field(
        default="",
        description="Scopes to request. Guessed from the provider if empty (read/write access to repositories).",
        json_schema_extra={"env": "OAUTH_SCOPES", "format": "str"},
    )
    http_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for requests to the provider's token endpoint.",
        json_schema_extra={"env": "HTTP_TIMEOUT", "format": "float"},
    )

    @field_validator("origin", mode="before")
    @classmethod
    def coerce_origin(cls, v: Any) -> list[str]:
        """
        Applies the origin-list format. CLI arguments for sequence fields arrive
        JSON-encoded, so a string that is a JSON array is decoded first.
        """
        if isinstance(v, str) and v.strip().startswith("["):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                pass
        return ORIGIN_LIST(v, allow_empty=False)

    @field_validator("oauth_provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("OAuth provider name must not be empty.")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        options = _source_options.get()
        sources: list[PydanticBaseSettingsSource] = [init_settings]
        if options.argv is not None:
            sources.append(
                CliSettingsSource(
                    settings_cls,
                    cli_parse_args=list(options.argv),
                    cli_ignore_unknown_args=True,
                )
            )
        if options.use_environment:
            sources.append(env_settings)
        return tuple(sources)


@dataclass(frozen=True)
class OptionSpec:
    """
    Schema entry for one configuration option.

    Attributes:
        name (str): The option (field) name.
        doc (str): Documentation for the option.
        format (str): Primitive or custom format name.
        default (Any): Default value; None for required options.
        env (str | None): Environment variable bound to the option.
        sensitive (bool): Whether the value must be hidden from logs and projections.
        allow_empty (bool): Whether an empty value is acceptable.
        required (bool): Whether the option has no default.
    """

    name: str
    doc: str
    format: str
    default: Any
    env: str | None
    sensitive: bool = False
    allow_empty: bool = True
    required: bool = False


def _build_schema() -> Mapping[str, OptionSpec]:
    schema: dict[str, OptionSpec] = {}
    for name, field in HandoffSettings.model_fields.items():
        extra = field.json_schema_extra if isinstance(field.json_schema_extra, dict) else {}
        required = field.default is PydanticUndefined
        schema[name] = OptionSpec(
            name=name,
            doc=field.description or "",
            format=str(extra.get("format", "str")),
            default=None if required else field.default,
            env=extra.get("env"),  # type: ignore[arg-type]
            sensitive=bool(extra.get("sensitive", False)),
            allow_empty=bool(extra.get("allow_empty", True)),
            required=required,
        )
    return MappingProxyType(schema)


CONFIG_SCHEMA: Mapping[str, OptionSpec] = _build_schema()

SENSITIVE_FIELDS: frozenset[str] = frozenset(name for name, spec in CONFIG_SCHEMA.items() if spec.sensitive)

_CONSTRUCTION_TOKEN = object()


class ValidatedConfig:
    """
    A configuration guaranteed to satisfy `CONFIG_SCHEMA`.

    Only `validate_config` can create one; it is immutable once created.
    """

    __slots__ = ("_settings",)

    def __init__(self, settings: HandoffSettings, *, _token: object = None) -> None:
        if _token is not _CONSTRUCTION_TOKEN:
            raise TypeError("ValidatedConfig instances can only be created by validate_config().")
        object.__setattr__(self, "_settings", settings)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ValidatedConfig is immutable.")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("ValidatedConfig is immutable.")

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._settings, name)

    @property
    def settings(self) -> HandoffSettings:
        return self._settings

    def get(self, key: str) -> Any:
        """
        Returns the value of option `key`. Secret values are returned unwrapped.

        Raises:
            KeyError: If `key` is not a known option.
        """
        if key not in CONFIG_SCHEMA:
            raise KeyError(f"Unknown config option '{key}'.")
        value = getattr(self._settings, key)
        if isinstance(value, SecretStr):
            return value.get_secret_value()
        return value

    def to_plain_object(self) -> dict[str, Any]:
        """
        Returns a JSON-compatible dict of the config without any sensitive option.
        Safe for logging.
        """
        return self._settings.model_dump(mode="json", exclude=set(SENSITIVE_FIELDS))

    def _unredacted(self) -> dict[str, Any]:
        return {key: self.get(key) for key in CONFIG_SCHEMA}

    def __repr__(self) -> str:
        fields = self.to_plain_object()
        for name in sorted(SENSITIVE_FIELDS):
            fields[name] = REDACTED
        rendered = ", ".join(f"{key}={value!r}" for key, value in fields.items())
        return f"ValidatedConfig({rendered})"

    def __str__(self) -> str:
        return self.__repr__()


def is_validated_config(value: Any) -> bool:
    """Returns True if `value` was produced by `validate_config`."""
    return isinstance(value, ValidatedConfig)


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "<config>"
        problems.append(f"{location}: {item.get('msg')}")
    return "; ".join(problems)


def validate_config(
    raw: Mapping[str, Any] | ValidatedConfig | None = None,
    *,
    use_environment: bool = False,
    use_process_arguments: bool = False,
    argv: Sequence[str] | None = None,
    skip_idempotency_check: bool = False,
) -> ValidatedConfig:
    """
    Validates a raw configuration mapping against `CONFIG_SCHEMA`.

    Args:
        raw: The user supplied options, or an already validated config.
        use_environment: Fill options missing from `raw` from their environment variables.
        use_process_arguments: Read `--<option>=<value>` arguments (from `argv`, or `sys.argv[1:]`).
        argv: Explicit argument list used when `use_process_arguments` is set.
        skip_idempotency_check: Re-validate even if `raw` is already a ValidatedConfig.

    Returns:
        ValidatedConfig: The validated, immutable config.

    Raises:
        ConfigValidationError: If any option is missing, empty or malformed.
    """
    if isinstance(raw, ValidatedConfig):
        if not skip_idempotency_check:
            return raw
        values: dict[str, Any] = raw._unredacted()
    elif raw is None:
        values = {}
    elif isinstance(raw, Mapping):
        values = dict(raw)
    else:
        raise ConfigValidationError(f"Config must be a mapping, received {type(raw).__name__}.")

    unknown = sorted(str(key) for key in values if key not in CONFIG_SCHEMA)
    if unknown:
        logger.warning(f"Ignoring unknown config options: {', '.join(unknown)}")
        values = {key: value for key, value in values.items() if key in CONFIG_SCHEMA}

    options = _SourceOptions(
        use_environment=use_environment,
        argv=tuple(argv if argv is not None else sys.argv[1:]) if use_process_arguments else None,
    )

    token = _source_options.set(options)
    try:
        settings = HandoffSettings(**values)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration: {_format_validation_error(e)}") from e
    except SettingsError as e:
        raise ConfigValidationError(f"Invalid configuration source: {e}") from e
    finally:
        _source_options.reset(token)

    config = ValidatedConfig(settings, _token=_CONSTRUCTION_TOKEN)
    logger.debug(f"Validated config: {config.to_plain_object()}")
    return config
