"""Credential vault: reference-only access to private keys."""

from keyward.core.vault.vault import (
    CREDENTIALS_NAMESPACE,
    OPERATORS_NAMESPACE,
    SECRETS_NAMESPACE,
    CredentialVault,
    SignerHandle,
)

__all__ = [
    "CREDENTIALS_NAMESPACE",
    "OPERATORS_NAMESPACE",
    "SECRETS_NAMESPACE",
    "CredentialVault",
    "SignerHandle",
]
