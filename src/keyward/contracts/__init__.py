"""Shared contracts for cross-boundary data types.

All enums, records, results and errors that cross subsystem boundaries
are defined here.

Import pattern:
    from keyward.contracts import AliasRecord, Network, DuplicateAliasError
"""

from keyward.contracts.collaborators import LedgerQuery, TransactionExecutor
from keyward.contracts.enums import (
    AliasType,
    CommandStatus,
    CredentialType,
    KeyAlgorithm,
    Network,
    OptionType,
    PluginState,
    RefKind,
    StateScope,
)
from keyward.contracts.errors import (
    AliasError,
    AliasInUseError,
    CapabilityError,
    CommandCollisionError,
    DuplicateAliasError,
    InvalidArgumentError,
    InvalidKeyError,
    KeyMaterialUnavailableError,
    KeywardError,
    ManifestValidationError,
    NamespaceAccessDenied,
    StateValidationError,
    UnknownKeyReferenceError,
)
from keyward.contracts.records import (
    AliasRecord,
    CredentialRecord,
    CredentialSecret,
    KeyReference,
    OperatorMapping,
)
from keyward.contracts.results import (
    CommandExecutionResult,
    LoadReport,
    PluginFailure,
    TransactionResult,
)

__all__ = [
    # collaborators
    "LedgerQuery",
    "TransactionExecutor",
    # enums
    "AliasType",
    "CommandStatus",
    "CredentialType",
    "KeyAlgorithm",
    "Network",
    "OptionType",
    "PluginState",
    "RefKind",
    "StateScope",
    # errors
    "AliasError",
    "AliasInUseError",
    "CapabilityError",
    "CommandCollisionError",
    "DuplicateAliasError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "KeyMaterialUnavailableError",
    "KeywardError",
    "ManifestValidationError",
    "NamespaceAccessDenied",
    "StateValidationError",
    "UnknownKeyReferenceError",
    # records
    "AliasRecord",
    "CredentialRecord",
    "CredentialSecret",
    "KeyReference",
    "OperatorMapping",
    # results
    "CommandExecutionResult",
    "LoadReport",
    "PluginFailure",
    "TransactionResult",
]
