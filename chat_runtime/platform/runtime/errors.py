"""Exception hierarchy for the chat runtime.

Fatal errors abort a request before any event stream is opened. Recoverable
errors (chain resolution, after-request hooks) are logged and compensated for
by the runtime, but still have a type so they can be reported consistently.
"""


class ChatRuntimeError(Exception):
    """Base exception for all chat runtime errors."""


class NoAgentStateError(ChatRuntimeError):
    """Raised when a session continuation carries no agent state message."""

    def __init__(self, agent_name: str | None = None):
        self.agent_name = agent_name
        agent_info = f" for agent '{agent_name}'" if agent_name else ""
        super().__init__(f"No agent state messages found{agent_info}")


class InvalidSessionError(ChatRuntimeError):
    """Raised when the agent state of a session cannot be decoded."""

    def __init__(self, message: str, thread_id: str | None = None):
        self.thread_id = thread_id
        thread_info = f" [thread: {thread_id}]" if thread_id else ""
        super().__init__(f"Invalid agent session{thread_info}: {message}")


class AgentNotFoundError(ChatRuntimeError):
    """Raised when the requested agent is not among the discovered executables."""

    def __init__(self, agent_name: str):
        self.agent_name = agent_name
        super().__init__(f"Agent {agent_name} not found")


class UnsupportedAgentError(ChatRuntimeError):
    """Raised when the requested agent cannot continue a session."""

    def __init__(self, agent_name: str):
        self.agent_name = agent_name
        super().__init__(f"{agent_name} does not support session continuation")


class AdapterError(ChatRuntimeError):
    """Raised when a service adapter or agent backend call fails."""

    def __init__(self, message: str, adapter: str | None = None):
        self.adapter = adapter
        adapter_info = f" ({adapter})" if adapter else ""
        super().__init__(f"Backend call failed{adapter_info}: {message}")


class ChainResolutionError(ChatRuntimeError):
    """Raised when a remote chain cannot be turned into an action."""

    def __init__(self, message: str, chain_url: str | None = None):
        self.chain_url = chain_url
        url_info = f" at {chain_url}" if chain_url else ""
        super().__init__(f"Could not load chain{url_info}: {message}")


class HookError(ChatRuntimeError):
    """Raised when a lifecycle hook fails."""

    def __init__(self, hook: str, message: str):
        self.hook = hook
        super().__init__(f"{hook} hook failed: {message}")
