"""Built-in credentials plugin: vault inspection and operator management."""

from pydantic import BaseModel

from keyward.contracts.enums import KeyAlgorithm, Network, OptionType
from keyward.contracts.records import OperatorMapping
from keyward.contracts.results import CommandExecutionResult
from keyward.plugins.context import CommandContext
from keyward.plugins.manifest import (
    CommandOption,
    CommandOutputSpec,
    CommandSpec,
    PluginManifest,
)


class CredentialSummary(BaseModel):
    key_ref_id: str
    type: str
    key_algorithm: str
    public_key: str
    labels: list[str]


class CredentialListOutput(BaseModel):
    credentials: list[CredentialSummary]
    count: int


class ImportOutput(BaseModel):
    key_ref_id: str
    public_key: str


class RemoveOutput(BaseModel):
    key_ref_id: str
    removed: bool


class OperatorOutput(BaseModel):
    network: str
    account_id: str | None = None
    key_ref_id: str | None = None
    previous_account_id: str | None = None
    previous_key_ref_id: str | None = None


def _network(ctx: CommandContext) -> Network:
    return ctx.get_enum("network", Network, ctx.platform.network) or ctx.platform.network


def list_credentials(ctx: CommandContext) -> dict:
    records = ctx.platform.vault.list()
    return {
        "credentials": [
            {
                "key_ref_id": record.key_ref_id,
                "type": record.type.value,
                "key_algorithm": record.key_algorithm.value,
                "public_key": record.public_key,
                "labels": list(record.labels),
            }
            for record in records
        ],
        "count": len(records),
    }


def import_credential(ctx: CommandContext) -> dict:
    reference = ctx.platform.vault.import_private_key(
        ctx.args["private_key"],
        ctx.get("labels", []),
        key_algorithm=ctx.get_enum("algorithm", KeyAlgorithm, KeyAlgorithm.ECDSA),
    )
    return reference.model_dump()


def _key_users(ctx: CommandContext, key_ref_id: str) -> list[str]:
    """Aliases and operators that still point at key_ref_id."""
    vault = ctx.platform.vault
    users = [
        f"alias '{record.alias}' ({record.network.value})"
        for record in ctx.platform.aliases.list()
        if record.key_ref_id == key_ref_id
    ]
    for network in Network:
        operator = vault.get_operator(network)
        if operator is not None and operator.key_ref_id == key_ref_id:
            users.append(f"operator ({network.value})")
    return users


def remove_credential(ctx: CommandContext) -> CommandExecutionResult | dict:
    key_ref_id = ctx.args["key_ref_id"]
    vault = ctx.platform.vault
    users = _key_users(ctx, key_ref_id)
    if users:
        return CommandExecutionResult.failure(
            f"Key reference {key_ref_id} is still used by {', '.join(users)}"
        )
    existed = vault.get_record(key_ref_id) is not None
    vault.remove(key_ref_id)
    return {"key_ref_id": key_ref_id, "removed": existed}


def set_operator(ctx: CommandContext) -> CommandExecutionResult | dict:
    vault = ctx.platform.vault
    network = _network(ctx)
    key_ref_id = ctx.get("key_ref_id")
    private_key = ctx.get("private_key")
    if bool(key_ref_id) == bool(private_key):
        return CommandExecutionResult.failure("Provide exactly one of --key-ref-id or --private-key")

    if private_key:
        key_ref_id = vault.import_private_key(
            private_key, ["operator", f"network:{network.value}"]
        ).key_ref_id
    elif vault.get_record(key_ref_id) is None:
        return CommandExecutionResult.failure(f"Unknown key reference: {key_ref_id}")

    mapping = OperatorMapping(account_id=ctx.args["account_id"], key_ref_id=key_ref_id)
    previous = vault.set_operator(network, mapping)
    if previous is not None and previous != mapping:
        ctx.logger.warning(
            "Operator overwritten",
            network=network.value,
            previous_account=previous.account_id,
        )
    return {
        "network": network.value,
        "account_id": mapping.account_id,
        "key_ref_id": mapping.key_ref_id,
        "previous_account_id": previous.account_id if previous else None,
        "previous_key_ref_id": previous.key_ref_id if previous else None,
    }


def show_operator(ctx: CommandContext) -> dict:
    network = _network(ctx)
    mapping = ctx.platform.vault.get_operator(network)
    return {
        "network": network.value,
        "account_id": mapping.account_id if mapping else None,
        "key_ref_id": mapping.key_ref_id if mapping else None,
    }


_NETWORK_OPTION = CommandOption(
    name="network",
    short="n",
    description="Network (defaults to the configured network)",
)

CREDENTIALS_MANIFEST = PluginManifest(
    name="credentials",
    version="1.0.0",
    display_name="Credentials Management",
    description="Manage stored keys and network operators",
    capabilities=("credentials:use", "network:read"),
    commands=(
        CommandSpec(
            name="list",
            summary="List stored keys",
            description="Show metadata of every key held by the vault. Never shows key material.",
            handler=list_credentials,
            output=CommandOutputSpec(
                output_model=CredentialListOutput,
                human_template=(
                    "{% if count == 0 %}No credentials stored.{% else %}"
                    "{% for c in credentials %}"
                    "{{ c.key_ref_id }}  {{ c.key_algorithm }}  {{ c.public_key }}"
                    "{% if c.labels %}  [{{ c.labels | join(', ') }}]{% endif %}\n"
                    "{% endfor %}{% endif %}"
                ),
            ),
        ),
        CommandSpec(
            name="import",
            summary="Import a private key",
            description="Store a private key in the vault and print its key reference.",
            options=(
                CommandOption(name="private-key", short="k", required=True, description="Hex private key"),
                CommandOption(name="labels", short="l", type=OptionType.ARRAY, description="Labels"),
                CommandOption(name="algorithm", short="a", default="ecdsa", description="ecdsa or ed25519"),
            ),
            handler=import_credential,
            output=CommandOutputSpec(
                output_model=ImportOutput,
                human_template="Stored {{ key_ref_id }} (public key {{ public_key }})",
            ),
        ),
        CommandSpec(
            name="remove",
            summary="Remove a stored key",
            description="Remove a key and its metadata by key reference. Keys still used by an alias or an operator are kept.",
            options=(CommandOption(name="key-ref-id", short="k", required=True),),
            handler=remove_credential,
            output=CommandOutputSpec(
                output_model=RemoveOutput,
                human_template=(
                    "{% if removed %}Removed {{ key_ref_id }}"
                    "{% else %}No credential {{ key_ref_id }}{% endif %}"
                ),
            ),
        ),
        CommandSpec(
            name="operator-set",
            summary="Set the default operator for a network",
            options=(
                CommandOption(name="account-id", short="i", required=True, description="Operator account id"),
                CommandOption(name="key-ref-id", short="k", description="Stored key to sign with"),
                CommandOption(name="private-key", short="p", description="Import this key and sign with it"),
                _NETWORK_OPTION,
            ),
            handler=set_operator,
            output=CommandOutputSpec(
                output_model=OperatorOutput,
                human_template=(
                    "Operator for {{ network }}: {{ account_id }} ({{ key_ref_id }})"
                    "{% if previous_account_id %}\n"
                    "Replaced {{ previous_account_id }} ({{ previous_key_ref_id }}){% endif %}"
                ),
            ),
        ),
        CommandSpec(
            name="operator-show",
            summary="Show the default operator for a network",
            options=(_NETWORK_OPTION,),
            handler=show_operator,
            output=CommandOutputSpec(
                output_model=OperatorOutput,
                human_template=(
                    "{% if account_id %}Operator for {{ network }}: {{ account_id }} ({{ key_ref_id }})"
                    "{% else %}No operator set for {{ network }}{% endif %}"
                ),
            ),
        ),
    ),
)
