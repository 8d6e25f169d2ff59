# tests/plugins/test_capabilities.py
"""Tests for capability token parsing."""

import pytest


class TestParseCapability:
    """Closed vocabulary: anything else is rejected."""

    def test_namespace_token(self) -> None:
        from keyward.plugins.capabilities import NamespaceCapability, parse_capability

        capability = parse_capability("state:namespace:account-accounts")

        assert capability == NamespaceCapability("account-accounts")
        assert capability.token == "state:namespace:account-accounts"

    @pytest.mark.parametrize(
        ("token", "kind"),
        [
            ("network:read", "NetworkRead"),
            ("network:write", "NetworkWrite"),
            ("credentials:use", "CredentialsUse"),
            ("signing:use", "CredentialsUse"),
            ("tx-execution:use", "CredentialsUse"),
        ],
    )
    def test_simple_tokens(self, token: str, kind: str) -> None:
        from keyward.plugins import capabilities

        assert isinstance(capabilities.parse_capability(token), getattr(capabilities, kind))

    @pytest.mark.parametrize(
        "token",
        [
            "network:admin",
            "state:namespace:",
            "state:namespace:Upper",
            "state:namespace:../escape",
            "state:*",
            "NETWORK:READ",
            "",
        ],
    )
    def test_unknown_tokens_rejected(self, token: str) -> None:
        from keyward.contracts.errors import CapabilityError
        from keyward.plugins.capabilities import parse_capability

        with pytest.raises(CapabilityError) as exc_info:
            parse_capability(token)

        assert exc_info.value.token == token


class TestCapabilitySet:
    def test_from_tokens(self) -> None:
        from keyward.plugins.capabilities import CapabilitySet

        grant = CapabilitySet.from_tokens(
            ["state:namespace:a", "state:namespace:b", "network:read", "signing:use"]
        )

        assert grant.namespaces == frozenset({"a", "b"})
        assert grant.network_read
        assert not grant.network_write
        assert grant.credentials_use

    def test_empty_grant(self) -> None:
        from keyward.plugins.capabilities import CapabilitySet

        grant = CapabilitySet.from_tokens([])

        assert grant == CapabilitySet()
        assert not grant.can_read_network

    def test_write_implies_read(self) -> None:
        from keyward.plugins.capabilities import CapabilitySet

        assert CapabilitySet.from_tokens(["network:write"]).can_read_network

    def test_first_unknown_token_raises(self) -> None:
        from keyward.contracts.errors import CapabilityError
        from keyward.plugins.capabilities import CapabilitySet

        with pytest.raises(CapabilityError, match="vault:everything"):
            CapabilitySet.from_tokens(["network:read", "vault:everything"])
