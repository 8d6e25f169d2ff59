"""Built-in network plugin: list networks and select the active one.

The selection is saved in the active-network namespace and read back by
the platform on every invocation. A network pinned in settings or passed
with --network still takes precedence.
"""

import json
from typing import Any

from pydantic import BaseModel

from keyward.contracts.enums import Network
from keyward.contracts.records import utc_now
from keyward.contracts.results import CommandExecutionResult
from keyward.core.platform import ACTIVE_NETWORK_KEY, ACTIVE_NETWORK_NAMESPACE
from keyward.plugins.context import CommandContext
from keyward.plugins.manifest import (
    CommandOption,
    CommandOutputSpec,
    CommandSpec,
    PluginManifest,
    StateSchema,
)

ACTIVE_NETWORK_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "network": {"enum": [network.value for network in Network]},
        "updated_at": {"type": "string"},
    },
    "required": ["network"],
    "additionalProperties": False,
}


class OperatorSummary(BaseModel):
    account_id: str
    key_ref_id: str


class NetworkEntry(BaseModel):
    name: str
    active: bool
    operator: OperatorSummary | None = None


class NetworkListOutput(BaseModel):
    networks: list[NetworkEntry]
    active: str


class UseOutput(BaseModel):
    network: str
    previous: str
    effective: str


def list_networks(ctx: CommandContext) -> dict[str, Any]:
    active = ctx.platform.network
    vault = ctx.platform.vault
    networks = []
    for network in Network:
        operator = vault.get_operator(network)
        networks.append(
            {
                "name": network.value,
                "active": network == active,
                "operator": operator.to_state() if operator else None,
            }
        )
    return {"networks": networks, "active": active.value}


def use_network(ctx: CommandContext) -> CommandExecutionResult | dict[str, Any]:
    network = ctx.get_enum("network", Network)
    if network is None:
        return CommandExecutionResult.failure("--network is required")

    previous = ctx.platform.network
    ctx.platform.state(ACTIVE_NETWORK_NAMESPACE).set(
        ACTIVE_NETWORK_KEY,
        {"network": network.value, "updated_at": utc_now().isoformat()},
    )
    effective = ctx.platform.network
    ctx.logger.info("Active network saved", network=network.value, previous=previous.value)

    output = {"network": network.value, "previous": previous.value, "effective": effective.value}
    if effective != network:
        return CommandExecutionResult.partial(
            json.dumps(output),
            f"Saved {network.value}, but the configured network {effective.value} takes precedence",
        )
    return output


NETWORK_MANIFEST = PluginManifest(
    name="network",
    version="1.0.0",
    display_name="Network Plugin",
    description="List networks and choose the one commands operate against",
    capabilities=(f"state:namespace:{ACTIVE_NETWORK_NAMESPACE}", "credentials:use"),
    state_schemas=(
        StateSchema(namespace=ACTIVE_NETWORK_NAMESPACE, version=1, json_schema=ACTIVE_NETWORK_SCHEMA),
    ),
    commands=(
        CommandSpec(
            name="list",
            summary="List networks",
            description="Show every network, the active one and its operator.",
            handler=list_networks,
            output=CommandOutputSpec(
                output_model=NetworkListOutput,
                human_template=(
                    "{% for n in networks %}{{ '*' if n.active else ' ' }} {{ n.name }}"
                    "{% if n.operator %}  operator {{ n.operator.account_id }}"
                    " ({{ n.operator.key_ref_id }}){% endif %}\n{% endfor %}"
                ),
            ),
        ),
        CommandSpec(
            name="use",
            summary="Switch the active network",
            description="Save the network later commands operate against.",
            options=(
                CommandOption(
                    name="network",
                    short="n",
                    required=True,
                    description="mainnet, testnet, previewnet or localnet",
                ),
            ),
            handler=use_network,
            output=CommandOutputSpec(
                output_model=UseOutput,
                human_template="Active network: {{ network }} (was {{ previous }})",
            ),
        ),
    ),
)
