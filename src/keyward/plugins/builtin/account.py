"""Built-in account plugin: local address book of accounts.

Accounts are stored in the plugin's own namespace. Keys go to the vault
(the namespace only holds the key reference) and each account name is
registered as an account alias on the current network.
"""

import re
from typing import Any

from pydantic import BaseModel

from keyward.contracts.enums import AliasType, KeyAlgorithm, Network, OptionType
from keyward.contracts.records import AliasRecord, utc_now
from keyward.contracts.results import CommandExecutionResult
from keyward.plugins.context import CommandContext, PluginContext
from keyward.plugins.manifest import (
    CommandOption,
    CommandOutputSpec,
    CommandSpec,
    PluginManifest,
    StateSchema,
)

ACCOUNT_NAMESPACE = "account-accounts"

ACCOUNT_NAME_PATTERN = "^[a-zA-Z0-9_-]+$"
ACCOUNT_ID_PATTERN = "^0\\.0\\.[0-9]+$"

ACCOUNT_JSON_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "name": {"type": "string", "pattern": ACCOUNT_NAME_PATTERN, "maxLength": 50},
        "account_id": {"type": "string", "pattern": ACCOUNT_ID_PATTERN},
        "network": {"enum": ["mainnet", "testnet", "previewnet", "localnet"]},
        "key_algorithm": {"enum": ["ecdsa", "ed25519"]},
        "public_key": {"type": "string", "minLength": 1},
        "key_ref_id": {"type": "string", "minLength": 1},
        "created_at": {"type": "string"},
    },
    "required": ["name", "account_id", "network", "key_algorithm", "public_key", "key_ref_id"],
    "additionalProperties": False,
}


class AccountOutput(BaseModel):
    name: str
    account_id: str
    network: str
    key_algorithm: str
    public_key: str
    key_ref_id: str | None = None
    balance: dict[str, Any] | None = None


class AccountListOutput(BaseModel):
    accounts: list[AccountOutput]
    count: int


class ClearOutput(BaseModel):
    removed: int


def _public_view(account: dict[str, Any], *, include_key_ref: bool = True) -> dict[str, Any]:
    view = {key: account[key] for key in ("name", "account_id", "network", "key_algorithm", "public_key")}
    if include_key_ref:
        view["key_ref_id"] = account["key_ref_id"]
    return view


def _find(ctx: CommandContext, name_or_id: str) -> dict[str, Any] | None:
    accounts = ctx.platform.state(ACCOUNT_NAMESPACE)
    account = accounts.get(name_or_id)
    if account is not None:
        return account
    for candidate in accounts.list():
        if candidate["account_id"] == name_or_id:
            return candidate
    return None


def import_account(ctx: CommandContext) -> CommandExecutionResult | dict[str, Any]:
    name = ctx.args["name"]
    account_id = ctx.args["id"]
    network = ctx.platform.network
    accounts = ctx.platform.state(ACCOUNT_NAMESPACE)

    if not re.match(ACCOUNT_NAME_PATTERN, name):
        return CommandExecutionResult.failure(
            "Account name may only contain letters, digits, underscores and hyphens"
        )
    if not re.match(ACCOUNT_ID_PATTERN, account_id):
        return CommandExecutionResult.failure(f"Account id '{account_id}' must look like 0.0.1234")
    if accounts.has(name):
        return CommandExecutionResult.failure(f"Account with name '{name}' already exists")
    ctx.platform.aliases.available_or_raise(name, network)

    algorithm = ctx.get_enum("algorithm", KeyAlgorithm, KeyAlgorithm.ECDSA) or KeyAlgorithm.ECDSA
    reference = ctx.platform.vault.import_private_key(
        ctx.args["key"], [f"account:{name}"], key_algorithm=algorithm
    )
    account = {
        "name": name,
        "account_id": account_id,
        "network": network.value,
        "key_algorithm": algorithm.value,
        "public_key": reference.public_key,
        "key_ref_id": reference.key_ref_id,
        "created_at": utc_now().isoformat(),
    }
    accounts.set(name, account)
    ctx.platform.aliases.register(
        AliasRecord(
            alias=name,
            network=network,
            type=AliasType.ACCOUNT,
            entity_id=account_id,
            key_ref_id=reference.key_ref_id,
            public_key=reference.public_key,
        )
    )
    ctx.logger.info("Account imported", account=name, account_id=account_id)
    return _public_view(account)


def list_accounts(ctx: CommandContext) -> dict[str, Any]:
    include_key_ref = bool(ctx.get("private", False))
    accounts = [
        _public_view(account, include_key_ref=include_key_ref)
        for account in ctx.platform.state(ACCOUNT_NAMESPACE).list()
    ]
    return {"accounts": accounts, "count": len(accounts)}


async def view_account(ctx: CommandContext) -> CommandExecutionResult | dict[str, Any]:
    name_or_id = ctx.args["account_id_or_name"]
    account = _find(ctx, name_or_id)
    if account is None:
        return CommandExecutionResult.failure(f"Account '{name_or_id}' not found")

    view = _public_view(account)
    ledger = ctx.platform.ledger
    if ledger is not None:
        view["balance"] = await ledger.get_balance(account["account_id"])
    return view


def delete_account(ctx: CommandContext) -> CommandExecutionResult | dict[str, Any]:
    name = ctx.get("name")
    account_id = ctx.get("id")
    if not name and not account_id:
        return CommandExecutionResult.failure("Either --name or --id must be provided")

    account = _find(ctx, name or account_id)
    if account is None:
        return CommandExecutionResult.failure(f"Account '{name or account_id}' not found")

    _remove(ctx, account)
    return _public_view(account)


def clear_accounts(ctx: CommandContext) -> dict[str, Any]:
    accounts = ctx.platform.state(ACCOUNT_NAMESPACE).list()
    for account in accounts:
        _remove(ctx, account)
    return {"removed": len(accounts)}


def _remove(ctx: CommandContext, account: dict[str, Any]) -> None:
    """Drop an account with its aliases and stored key."""
    aliases = ctx.platform.aliases
    for record in aliases.list(account["network"], AliasType.ACCOUNT):
        if record.entity_id == account["account_id"]:
            aliases.remove(record.alias, record.network)
    accounts = ctx.platform.state(ACCOUNT_NAMESPACE)
    accounts.delete(account["name"])
    if not _key_in_use(ctx, account["key_ref_id"]):
        ctx.platform.vault.remove(account["key_ref_id"])
    ctx.logger.info("Account removed", account=account["name"])


def _key_in_use(ctx: CommandContext, key_ref_id: str) -> bool:
    # Imports are deduplicated by public key, so another account or an
    # operator may hold the same reference
    vault = ctx.platform.vault
    if any(
        (operator := vault.get_operator(network)) is not None and operator.key_ref_id == key_ref_id
        for network in Network
    ):
        return True
    return any(
        other["key_ref_id"] == key_ref_id
        for other in ctx.platform.state(ACCOUNT_NAMESPACE).list()
    )


def _init(context: PluginContext) -> None:
    count = len(context.platform.state(ACCOUNT_NAMESPACE).keys())
    context.logger.debug("Account plugin ready", accounts=count)


_ACCOUNT_TEMPLATE = "{{ name }}  {{ account_id }}  ({{ network }}, {{ key_algorithm }})"

ACCOUNT_MANIFEST = PluginManifest(
    name="account",
    version="1.0.0",
    display_name="Account Plugin",
    description="Manage the local account address book",
    capabilities=(
        f"state:namespace:{ACCOUNT_NAMESPACE}",
        "network:read",
        "network:write",
        "credentials:use",
    ),
    state_schemas=(
        StateSchema(namespace=ACCOUNT_NAMESPACE, version=1, json_schema=ACCOUNT_JSON_SCHEMA),
    ),
    init=_init,
    commands=(
        CommandSpec(
            name="import",
            summary="Import an existing account",
            description="Store the account key in the vault and register the name as an alias.",
            options=(
                CommandOption(name="name", short="n", required=True, description="Account name (alias)"),
                CommandOption(name="id", short="i", required=True, description="Account id, e.g. 0.0.1234"),
                CommandOption(name="key", short="k", required=True, description="Hex private key"),
                CommandOption(name="algorithm", short="a", default="ecdsa", description="ecdsa or ed25519"),
            ),
            handler=import_account,
            output=CommandOutputSpec(
                output_model=AccountOutput,
                human_template="Imported " + _ACCOUNT_TEMPLATE,
            ),
        ),
        CommandSpec(
            name="list",
            summary="List all accounts",
            options=(
                CommandOption(
                    name="private",
                    type=OptionType.BOOLEAN,
                    default=False,
                    description="Include key references",
                ),
            ),
            handler=list_accounts,
            output=CommandOutputSpec(
                output_model=AccountListOutput,
                human_template=(
                    "{% if count == 0 %}No accounts.{% else %}"
                    "{% for a in accounts %}{{ a.name }}  {{ a.account_id }}  ({{ a.network }})"
                    "{% if a.key_ref_id %}  {{ a.key_ref_id }}{% endif %}\n{% endfor %}{% endif %}"
                ),
            ),
        ),
        CommandSpec(
            name="view",
            summary="View account details",
            options=(CommandOption(name="account-id-or-name", short="a", required=True),),
            handler=view_account,
            output=CommandOutputSpec(
                output_model=AccountOutput,
                human_template=(
                    _ACCOUNT_TEMPLATE + "\nPublic key: {{ public_key }}"
                    "{% if balance %}\nBalance: {{ balance }}{% endif %}"
                ),
            ),
        ),
        CommandSpec(
            name="delete",
            summary="Delete an account",
            description="Remove the account, its aliases and its stored key.",
            options=(
                CommandOption(name="name", short="n"),
                CommandOption(name="id", short="i"),
            ),
            handler=delete_account,
            output=CommandOutputSpec(
                output_model=AccountOutput,
                human_template="Deleted " + _ACCOUNT_TEMPLATE,
            ),
        ),
        CommandSpec(
            name="clear",
            summary="Remove all accounts",
            handler=clear_accounts,
            output=CommandOutputSpec(
                output_model=ClearOutput,
                human_template="Removed {{ removed }} account(s)",
            ),
        ),
    ),
)
