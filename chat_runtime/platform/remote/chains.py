"""LangServe-style remote chains exposed as actions.

A chain serves ``POST {chain_url}/invoke`` and ``GET {chain_url}/input_schema``.
When no parameters are configured they are inferred from the input schema:
a primitive schema becomes a single ``input`` parameter, an object schema
becomes one parameter per property.
"""

from typing import Any, Self

import httpx
from tenacity import retry, stop_after_attempt, stop_after_delay, wait_fixed

from chat_runtime.platform.constants import USER_AGENT
from chat_runtime.platform.runtime.actions import Action, Parameter, parameters_to_json_schema
from chat_runtime.platform.runtime.errors import ChainResolutionError
from chat_runtime.platform.settings import RemoteChainSettings

SUPPORTED_TYPES = ("string", "number", "boolean")


class RemoteChain:
    """A remote chain that can be turned into an :class:`Action`."""

    def __init__(
        self,
        name: str,
        description: str,
        chain_url: str,
        parameters: list[Parameter] | None = None,
        parameter_type: str = "multi",
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize the chain.

        Args:
            name: Action name
            description: Action description
            chain_url: Base URL of the chain
            parameters: Explicit parameters; inferred from the input schema when None
            parameter_type: "multi" passes named arguments, "single" passes the first value
            timeout_seconds: HTTP timeout for schema and invoke calls
        """
        self.name = name
        self.description = description
        self.chain_url = chain_url.rstrip("/")
        self.parameters = parameters
        self.parameter_type = parameter_type
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: RemoteChainSettings) -> Self:
        parameters = None
        if settings.parameters is not None:
            parameters = [
                Parameter(
                    name=parameter.name,
                    type=parameter.type,
                    description=parameter.description,
                    required=parameter.required,
                )
                for parameter in settings.parameters
            ]
        return cls(
            name=settings.name,
            description=settings.description,
            chain_url=settings.chain_url,
            parameters=parameters,
            parameter_type=settings.parameter_type,
        )

    def __repr__(self) -> str:
        return f"RemoteChain(name={self.name!r}, chain_url={self.chain_url!r})"

    @retry(
        wait=wait_fixed(1),
        stop=(stop_after_attempt(3) | stop_after_delay(10)),
        reraise=True,
    )
    async def _fetch_input_schema(self) -> dict[str, Any]:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers={"user-agent": USER_AGENT},
        ) as client:
            response = await client.get(f"{self.chain_url}/input_schema")
            response.raise_for_status()
            return response.json()

    async def infer_parameters(self) -> None:
        """Infer parameters and parameter type from the chain's input schema.

        Raises:
            ChainResolutionError: If the schema cannot be fetched or is unsupported
        """
        try:
            schema = await self._fetch_input_schema()
        except (httpx.HTTPError, ValueError) as e:
            raise ChainResolutionError(
                f"failed to fetch input schema: {e}", chain_url=self.chain_url
            ) from e

        schema_type = schema.get("type")
        if schema_type in SUPPORTED_TYPES:
            self.parameter_type = "single"
            self.parameters = [
                Parameter(name="input", type=schema_type, description="The input to the chain")
            ]
            return

        if schema_type != "object":
            raise ChainResolutionError(
                f"unsupported schema type {schema_type!r}", chain_url=self.chain_url
            )

        required = set(schema.get("required", []))
        parameters = []
        for key, prop in schema.get("properties", {}).items():
            if prop.get("type") not in SUPPORTED_TYPES:
                raise ChainResolutionError(
                    f"unsupported type {prop.get('type')!r} for property '{key}'",
                    chain_url=self.chain_url,
                )
            parameters.append(
                Parameter(
                    name=key,
                    type=prop["type"],
                    description=prop.get("description", ""),
                    required=key in required,
                )
            )
        self.parameter_type = "multi"
        self.parameters = parameters

    async def invoke(self, arguments: dict[str, Any]) -> Any:
        """Invoke the chain and return its output."""
        if self.parameter_type == "single":
            payload = next(iter(arguments.values()), None)
        else:
            payload = arguments

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers={"user-agent": USER_AGENT},
        ) as client:
            response = await client.post(f"{self.chain_url}/invoke", json={"input": payload})
            response.raise_for_status()
            return response.json().get("output")

    async def to_action(self) -> Action:
        """Resolve the chain into an action.

        Raises:
            ChainResolutionError: If parameters must be inferred and inference fails
        """
        if self.parameters is None:
            await self.infer_parameters()

        return Action(
            name=self.name,
            description=self.description,
            parameters=parameters_to_json_schema(self.parameters or []),
            handler=self.invoke,
        )
