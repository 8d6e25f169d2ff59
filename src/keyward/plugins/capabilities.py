# src/keyward/plugins/capabilities.py
"""Capability tokens a plugin manifest may declare.

Tokens are parsed into a closed set of variants at load time. Anything
outside the vocabulary is rejected immediately rather than ignored, so a
typo in a manifest never silently widens or narrows a grant.

Vocabulary:
    state:namespace:<name>   read/write one state namespace
    network:read             ledger queries, alias lookups
    network:write            alias registration, transaction submission
    credentials:use          vault access (also: signing:use, tx-execution:use)
"""

import re
from dataclasses import dataclass

from keyward.contracts.errors import CapabilityError

NAMESPACE_PREFIX = "state:namespace:"

_NAMESPACE_NAME = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


@dataclass(frozen=True)
class NamespaceCapability:
    """Grant over a single state namespace."""

    namespace: str

    @property
    def token(self) -> str:
        return f"{NAMESPACE_PREFIX}{self.namespace}"


@dataclass(frozen=True)
class NetworkRead:
    token: str = "network:read"


@dataclass(frozen=True)
class NetworkWrite:
    token: str = "network:write"


@dataclass(frozen=True)
class CredentialsUse:
    token: str = "credentials:use"


Capability = NamespaceCapability | NetworkRead | NetworkWrite | CredentialsUse

_SIMPLE_TOKENS: dict[str, Capability] = {
    "network:read": NetworkRead(),
    "network:write": NetworkWrite(),
    "credentials:use": CredentialsUse(),
    "signing:use": CredentialsUse(),
    "tx-execution:use": CredentialsUse(),
}


def parse_capability(token: str) -> Capability:
    """Parse one capability token.

    Raises:
        CapabilityError: If the token is not part of the vocabulary
    """
    if token in _SIMPLE_TOKENS:
        return _SIMPLE_TOKENS[token]
    if token.startswith(NAMESPACE_PREFIX):
        namespace = token[len(NAMESPACE_PREFIX) :]
        if not _NAMESPACE_NAME.match(namespace):
            raise CapabilityError(token, "invalid namespace name")
        return NamespaceCapability(namespace)
    raise CapabilityError(token)


@dataclass(frozen=True)
class CapabilitySet:
    """Parsed grant of one plugin."""

    namespaces: frozenset[str] = frozenset()
    network_read: bool = False
    network_write: bool = False
    credentials_use: bool = False

    @classmethod
    def from_tokens(cls, tokens: list[str] | tuple[str, ...]) -> "CapabilitySet":
        """Build a grant from raw tokens.

        Raises:
            CapabilityError: On the first unknown token
        """
        parsed = [parse_capability(token) for token in tokens]
        return cls(
            namespaces=frozenset(
                cap.namespace for cap in parsed if isinstance(cap, NamespaceCapability)
            ),
            network_read=any(isinstance(cap, NetworkRead) for cap in parsed),
            network_write=any(isinstance(cap, NetworkWrite) for cap in parsed),
            credentials_use=any(isinstance(cap, CredentialsUse) for cap in parsed),
        )

    @property
    def can_read_network(self) -> bool:
        """Write access implies read access."""
        return self.network_read or self.network_write
