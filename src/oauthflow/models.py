"""Canonical Pydantic models shared across all oauthflow modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`PortRange`, :class:`OutputConfig`, :class:`GlobalConfig`, and
    :class:`Profile`.

**Flow models** -- built in memory for one login flow and returned to the
caller:
    :class:`FlowOptions`, :class:`TokenResponse`, :class:`OAuthErrorResponse`
    and :class:`TokenTypeHint`.

A :class:`Profile` stores *credential sources* (``env:CLIENT_ID``); it is
turned into a :class:`FlowOptions` holding the resolved values by
:func:`~oauthflow.config.build_options` right before a flow starts.

All models use Pydantic v2. Models that mirror server payloads use
``extra="allow"`` so that unknown keys are preserved in ``model_extra``.
"""

from __future__ import annotations

import enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Shared ---


class PortRange(BaseModel):
    """Inclusive range of local ports the callback listener may bind.

    ``PortRange(start=0, end=0)`` (the default) lets the operating system
    pick any free ephemeral port.

    Example::

        PortRange(start=8400, end=8410)
    """

    start: int = Field(default=0, ge=0, le=65535, description="First port to try")
    end: int = Field(default=0, ge=0, le=65535, description="Last port to try (inclusive)")

    @model_validator(mode="after")
    def _check_bounds(self) -> PortRange:
        if self.start > self.end:
            raise ValueError(f"port range start {self.start} is greater than end {self.end}")
        if self.start == 0 and self.end != 0:
            raise ValueError("port range starting at 0 must also end at 0")
        return self

    def __len__(self) -> int:
        return self.end - self.start + 1


class TokenTypeHint(str, enum.Enum):
    """Values accepted for ``token_type_hint`` by the revoke endpoint (:rfc:`7009`)."""

    ACCESS_TOKEN = "access_token"
    REFRESH_TOKEN = "refresh_token"


# --- Flow models ---


class FlowOptions(BaseModel):
    """Resolved options for a single authorization code flow.

    Unlike :class:`Profile`, every secret here is already resolved. Instances
    are never persisted.

    Attributes:
        authorization_endpoint: URL of the authorization endpoint.
        token_endpoint: URL of the token endpoint.
        revoke_endpoint: Optional URL of the revocation endpoint.
        client_id: The OAuth client identifier.
        client_secret: The client secret; native apps usually leave it empty.
        scopes: Requested scopes, sent space-joined.
        redirect_uri: Fixed redirect URI. When empty, one is synthesised from
            the bound callback port.
        port_range: Ports the callback listener may bind.
        authorization_params: Extension query parameters for the
            authorization URL. Applied after the standard parameters, so they
            override them on conflict.
        timeout: Timeout in seconds for token endpoint HTTP calls.
    """

    authorization_endpoint: str
    token_endpoint: str
    revoke_endpoint: Optional[str] = None
    client_id: str
    client_secret: str = ""
    scopes: list[str] = Field(default_factory=list)
    redirect_uri: Optional[str] = None
    port_range: PortRange = Field(default_factory=PortRange)
    authorization_params: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=30.0, gt=0)


class TokenResponse(BaseModel):
    """Successful token endpoint response.

    ``access_token`` is the only required field. Additional fields sent by
    the server are kept in ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_expires_in: Optional[int] = None


class OAuthErrorResponse(BaseModel):
    """Error body returned by the token and revoke endpoints on HTTP >= 400 (:rfc:`6749#section-5.2`)."""

    model_config = ConfigDict(extra="allow")

    error: str = ""
    error_description: str = ""


# --- Configuration models ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/oauthflow/config.json``.

    Loaded and saved by :func:`~oauthflow.config.load_global_config` and
    :func:`~oauthflow.config.save_global_config`. See
    :func:`~oauthflow.config.resolve_profile_name` for how the active
    profile is chosen.
    """

    default_profile: Optional[str] = None
    flow_timeout: int = Field(
        default=180, gt=0, description="Seconds to wait for each login callback"
    )
    browser_command: Optional[list[str]] = Field(
        default=None,
        description="Command used to open the browser; '{url}' is replaced by the URL",
    )
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Per-provider profile stored as JSON under the ``profiles/`` config directory.

    Each profile describes one OAuth client registration at one
    authorization server. Client credentials are stored as *sources* and
    resolved only when a flow runs.

    Extra fields are preserved and accessible via ``model_extra``.

    See Also:
        :func:`~oauthflow.config.load_profile`: Deserialise a profile by name.
        :func:`~oauthflow.config.build_options`: Resolve into :class:`FlowOptions`.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(pattern=r"^[A-Za-z0-9][A-Za-z0-9._-]*$", description="Profile name")
    authorization_endpoint: str = Field(description="Authorization endpoint URL")
    token_endpoint: str = Field(description="Token endpoint URL")
    revoke_endpoint: Optional[str] = Field(
        default=None, description="Token revocation endpoint URL"
    )
    client_id_source: str = Field(
        description="Client id source: env:VAR, file:/path, prompt, value:literal"
    )
    client_secret_source: Optional[str] = Field(
        default=None,
        description="Client secret source: env:VAR, file:/path, prompt, value:literal",
    )
    scopes: list[str] = Field(default_factory=list)
    redirect_uri: Optional[str] = Field(
        default=None, description="Fixed redirect URI (synthesised when empty)"
    )
    port_range: PortRange = Field(default_factory=PortRange)
    authorization_params: dict[str, str] = Field(
        default_factory=dict,
        description="Extra query parameters for the authorization URL",
    )
    timeout: float = Field(default=30.0, gt=0, description="Token endpoint timeout in seconds")
