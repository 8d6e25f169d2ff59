"""Operation outcomes and results.

These types answer: "What did an operation produce?"

CommandExecutionResult is what a bound command handler returns to the CLI
surface. Handlers may return one directly, return a plain dict (treated as
successful output), or return None (success without output).
"""

from dataclasses import dataclass, field
from typing import Any

from keyward.contracts.enums import CommandStatus


@dataclass(frozen=True)
class CommandExecutionResult:
    """Result of a command invocation.

    Use the factory methods to create instances.
    """

    status: CommandStatus
    output_json: str | None = None
    error_message: str | None = None

    @classmethod
    def success(cls, output_json: str | None = None) -> "CommandExecutionResult":
        """Create successful result with optional JSON output."""
        return cls(status=CommandStatus.SUCCESS, output_json=output_json)

    @classmethod
    def failure(cls, error_message: str) -> "CommandExecutionResult":
        """Create failed result with a human-readable message."""
        return cls(status=CommandStatus.FAILURE, error_message=error_message)

    @classmethod
    def partial(
        cls, output_json: str | None, error_message: str
    ) -> "CommandExecutionResult":
        """Create a result where some of the work succeeded."""
        return cls(
            status=CommandStatus.PARTIAL,
            output_json=output_json,
            error_message=error_message,
        )

    @property
    def ok(self) -> bool:
        """Whether the command completed successfully."""
        return self.status == CommandStatus.SUCCESS


@dataclass(frozen=True)
class TransactionResult:
    """Result returned by the signing/execution collaborator.

    The core never inspects transaction internals; it only carries this
    back to the command that submitted the transaction.
    """

    success: bool
    transaction_id: str
    receipt: dict[str, Any] | None = None
    error: str | None = None


@dataclass(frozen=True)
class PluginFailure:
    """A plugin that was rejected or failed during the load."""

    plugin: str | None
    stage: str
    error: str


@dataclass
class LoadReport:
    """Outcome of registering a batch of manifests."""

    registered: list[str] = field(default_factory=list)
    rejected: list[PluginFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether every manifest was accepted."""
        return not self.rejected
