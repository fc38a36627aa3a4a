"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration.
"""

import logging

import pydantic_settings
from pydantic import BaseModel, Field, field_validator


class AppHTTPSettings(BaseModel):
    host: str = Field("0.0.0.0")
    port: int = Field(8000)
    log_level: str = Field("INFO")
    log_json: bool = Field(True, description="True=JSON log lines, False=colored console output")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class LitellmSettings(BaseModel):
    """Default completion backend.

    Attributes:
        model: LiteLLM model identifier
        api_base: Base URL of the provider or LiteLLM proxy
        api_key: API key for the provider or proxy
        temperature: Default sampling temperature
    """

    model: str = Field("openai/gpt-4o-mini")
    api_base: str | None = None
    api_key: str | None = None
    temperature: float | None = None


class RuntimeSettings(BaseModel):
    event_buffer_size: int = Field(100, gt=0, description="Undelivered events kept per stream")
    shutdown_timeout_seconds: float = Field(
        10.0, gt=0, description="Time pending after-request hooks get on shutdown"
    )


class RemoteEndpointSettings(BaseModel):
    """A remote endpoint exposing actions and agents.

    Example: REMOTE_ENDPOINTS='[{"url":"http://actions:8000/copilot"}]'
    """

    url: str
    headers: dict[str, str] = {}
    timeout_seconds: float = 60.0


class ChainParameterSettings(BaseModel):
    """A configured chain parameter (skips input schema inference)."""

    name: str
    type: str = "string"
    description: str = ""
    required: bool = True


class RemoteChainSettings(BaseModel):
    """A LangServe-style chain exposed as an action.

    Attributes:
        name: Action name
        description: Action description
        chain_url: Base URL of the chain (serving /invoke and /input_schema)
        parameters: Explicit parameters; inferred from the input schema when omitted
        parameter_type: "multi" to pass named arguments, "single" to pass one value
    """

    name: str
    description: str
    chain_url: str
    parameters: list[ChainParameterSettings] | None = None
    parameter_type: str = "multi"

    @field_validator("parameter_type")
    @classmethod
    def _validate_parameter_type(cls, v):
        if v not in ["multi", "single"]:
            raise ValueError(f'invalid parameter type "{v}"')
        return v


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    app_http: AppHTTPSettings = AppHTTPSettings()

    # Default completion backend
    litellm: LitellmSettings = LitellmSettings()

    runtime: RuntimeSettings = RuntimeSettings()

    # Action and agent sources
    remote_endpoints: list[RemoteEndpointSettings] = []
    remote_chains: list[RemoteChainSettings] = []
