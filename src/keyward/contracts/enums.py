"""All status codes, kinds and vocabularies used across subsystem boundaries.

Every value here is persisted in the state store or crosses the plugin
boundary, so all of them use (str, Enum) for direct JSON serialization.
"""

from enum import Enum


class Network(str, Enum):
    """Ledger networks a record can be scoped to.

    Entity ids are not portable across networks, so every alias and
    operator mapping carries one of these.
    """

    MAINNET = "mainnet"
    TESTNET = "testnet"
    PREVIEWNET = "previewnet"
    LOCALNET = "localnet"


class PluginState(str, Enum):
    """Lifecycle state of a registered plugin."""

    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    TORN_DOWN = "torn_down"


class AliasType(str, Enum):
    """Kind of entity an alias names."""

    ACCOUNT = "account"
    TOKEN = "token"
    KEY = "key"
    TOPIC = "topic"
    CONTRACT = "contract"


class RefKind(str, Enum):
    """Prefix kind of an entity reference string (``alias:bob``, ``acc:0.0.5``)."""

    ALIAS = "alias"
    KEY_REF = "keyRef"
    PUBLIC_KEY = "pub"
    ACCOUNT = "acc"
    TOKEN = "token"


class CredentialType(str, Enum):
    """Where the key material behind a credential lives."""

    LOCAL_PRIVATE_KEY = "localPrivateKey"
    MNEMONIC = "mnemonic"
    HARDWARE = "hardware"
    KMS = "kms"


class KeyAlgorithm(str, Enum):
    """Signature algorithm of a stored key."""

    ECDSA = "ecdsa"
    ED25519 = "ed25519"


class OptionType(str, Enum):
    """Value type of a declared command option."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"


class StateScope(str, Enum):
    """Storage scope declared by a plugin state schema."""

    GLOBAL = "global"
    PROFILE = "profile"
    PLUGIN = "plugin"


class CommandStatus(str, Enum):
    """Outcome of a command invocation."""

    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
