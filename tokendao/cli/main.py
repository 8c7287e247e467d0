#!/usr/bin/env python3
"""
TokenDAO CLI

Command-line interface for a token-weighted DAO kept in a local JSON state
file. Every state-changing command names its caller with ``--from``.

Usage:
    tokendao deploy --owner ADDR [--chairperson ADDR] [--quorum N] [--duration S]
    tokendao encode-call SIGNATURE [ARGS...]
    tokendao addproposal --from ADDR --calldata HEX [--recipient ADDR] --description TEXT
    tokendao approve --from ADDR AMOUNT
    tokendao deposit --from ADDR AMOUNT [--approve]
    tokendao withdraw --from ADDR AMOUNT
    tokendao vote --from ADDR --id N --support for|against
    tokendao finish --from ADDR --id N
    tokendao set-quorum --from ADDR VALUE
    tokendao set-duration --from ADDR SECONDS
    tokendao info [--json]
    tokendao proposal ID [--json]
    tokendao balance ADDR
    tokendao transfer --from ADDR TO AMOUNT
    tokendao mint --from ADDR TO AMOUNT
"""

import json
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional, Tuple

import click
from dotenv import load_dotenv

from ..abi import encode_function_call, normalize_address, parse_call_data, parse_signature
from ..config import load_config
from ..exceptions import TokenDAOException
from ..governance import DAO
from ..logger import get_logger, set_log_level
from ..store import JsonStateStore
from ..tokens import Token

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

def format_timestamp(ts: Optional[int]) -> str:
    """Format a unix timestamp for display."""
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def parse_cli_argument(abi_type: str, value: str) -> Any:
    """Convert a command-line string into the Python value eth-abi expects for *abi_type*."""
    if abi_type == "address":
        return normalize_address(value)
    if abi_type.startswith(("uint", "int")):
        return int(value, 0)
    if abi_type == "bool":
        lowered = value.lower()
        if lowered not in ("true", "false", "1", "0"):
            raise ValueError(f"Invalid bool {value!r}")
        return lowered in ("true", "1")
    if abi_type.startswith("bytes"):
        return parse_call_data(value)
    return value


@contextmanager
def dao_session(ctx: click.Context, save: bool = True) -> Iterator[Tuple[Token, DAO]]:
    """
    Load the token and DAO, yield them, and persist on success.

    Engine errors are turned into ClickException so the user sees the
    rejection reason and nothing is written.
    """
    store: JsonStateStore = ctx.obj["store"]
    try:
        token, dao = store.load(time_fn=ctx.obj["time_fn"])
        yield token, dao
        if save:
            store.save(token, dao)
    except (TokenDAOException, ValueError) as e:
        raise click.ClickException(str(e))


def success(message: str):
    click.echo(click.style(f"✓ {message}", fg="green"))


# ══════════════════════════════════════════════════════════════════════
#  ROOT GROUP
# ══════════════════════════════════════════════════════════════════════

@click.group()
@click.version_option(version="1.0.0", prog_name="tokendao")
@click.option("--state", "-s", "state_path", type=click.Path(dir_okay=False),
              help="DAO state file (default: [state] path from config)")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False),
              help="Configuration file (default: ./tokendao.toml)")
@click.option("--now", type=int, default=None,
              help="Override the clock with a fixed unix timestamp")
@click.pass_context
def cli(ctx: click.Context, state_path: Optional[str], config_path: Optional[str], now: Optional[int]):
    """TokenDAO Command Line Interface

    Token-weighted governance: deposit tokens, vote on proposals, and execute
    the ones that pass.
    """
    load_dotenv()
    try:
        config = load_config(config_path)
        config.validate()
    except TokenDAOException as e:
        raise click.ClickException(str(e))

    set_log_level(config.logging.level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["store"] = JsonStateStore(state_path or config.state.path)
    ctx.obj["time_fn"] = (lambda: now) if now is not None else time.time


# ══════════════════════════════════════════════════════════════════════
#  DEPLOYMENT & ENCODING
# ══════════════════════════════════════════════════════════════════════

@cli.command("deploy")
@click.option("--owner", "-o", required=True, help="DAO owner (also the token deployer)")
@click.option("--chairperson", help="Proposal author (default: config, then owner)")
@click.option("--quorum", type=int, help="Minimum total vote weight")
@click.option("--duration", type=int, help="Debating period in seconds")
@click.option("--supply", type=int, help="Initial token supply credited to the owner")
@click.option("--name", help="Token name")
@click.option("--symbol", help="Token symbol")
@click.option("--keep-token-ownership", is_flag=True,
              help="Do not hand the token's mint rights to the DAO")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing state file")
@click.pass_context
def deploy_cmd(
    ctx: click.Context,
    owner: str,
    chairperson: Optional[str],
    quorum: Optional[int],
    duration: Optional[int],
    supply: Optional[int],
    name: Optional[str],
    symbol: Optional[str],
    keep_token_ownership: bool,
    force: bool,
):
    """Deploy a governed token and its DAO.

    Examples:

        tokendao deploy --owner 0xA1... --chairperson 0xB2...

        tokendao deploy --owner 0xA1... --quorum 100 --duration 3600
    """
    config = ctx.obj["config"]
    store: JsonStateStore = ctx.obj["store"]
    if store.exists() and not force:
        raise click.ClickException(f"State file {store.path} already exists (use --force)")

    try:
        token = Token(
            name=name or config.token.name,
            symbol=symbol or config.token.symbol,
            decimals=config.token.decimals,
            total_supply=config.token.initial_supply if supply is None else supply,
            deployer=owner,
        )
        dao = DAO(
            owner=owner,
            chairperson=chairperson or config.dao.chairperson or owner,
            token=token,
            minimum_quorum=config.dao.minimum_quorum if quorum is None else quorum,
            debating_period_duration=(
                config.dao.debating_period_duration if duration is None else duration
            ),
            time_fn=ctx.obj["time_fn"],
        )
        if not keep_token_ownership:
            token.transfer_ownership(owner, dao.address)
        store.save(token, dao)
    except TokenDAOException as e:
        raise click.ClickException(str(e))

    logger.info(f"DAO deployed at {dao.address} governing {token.symbol} at {token.address}")
    success("DAO deployed")
    click.echo()
    click.echo(f"Token:        {token.address} ({token.symbol})")
    click.echo(f"DAO:          {dao.address}")
    click.echo(f"Owner:        {dao.owner}")
    click.echo(f"Chairperson:  {dao.chairperson}")
    click.echo(f"Token owner:  {token.owner}")
    click.echo(f"State:        {store.path}")


@cli.command("encode-call")
@click.argument("signature")
@click.argument("args", nargs=-1)
def encode_call_cmd(signature: str, args: Tuple[str, ...]):
    """Encode a function call as hex call data.

    Examples:

        tokendao encode-call "mint(address,uint256)" 0xB2... 1000
    """
    try:
        _, arg_types = parse_signature(signature)
        if len(arg_types) != len(args):
            raise ValueError(f"{signature} takes {len(arg_types)} arguments, got {len(args)}")
        values: List[Any] = [parse_cli_argument(t, v) for t, v in zip(arg_types, args)]
        data = encode_function_call(signature, *values)
    except (TokenDAOException, ValueError, TypeError) as e:
        raise click.ClickException(f"Failed to encode call: {e}")
    click.echo("0x" + data.hex())


# ══════════════════════════════════════════════════════════════════════
#  GOVERNANCE
# ══════════════════════════════════════════════════════════════════════

@cli.command("addproposal")
@click.option("--from", "sender", required=True, help="Chairperson address")
@click.option("--calldata", required=True, help="Hex call data (see encode-call)")
@click.option("--recipient", help="Call target (default: the governed token)")
@click.option("--description", "-d", required=True, help="Proposal description")
@click.pass_context
def addproposal_cmd(
    ctx: click.Context,
    sender: str,
    calldata: str,
    recipient: Optional[str],
    description: str,
):
    """Add a proposal (chairperson only)."""
    with dao_session(ctx) as (token, dao):
        proposal = dao.add_proposal(
            sender, parse_call_data(calldata), recipient or token.address, description
        )
    success(f"Proposal #{proposal.id} added")
    click.echo(f"Voting ends: {format_timestamp(proposal.voting_end(dao.debating_period_duration))}")


@cli.command("approve")
@click.option("--from", "sender", required=True, help="Token holder")
@click.argument("amount", type=int)
@click.pass_context
def approve_cmd(ctx: click.Context, sender: str, amount: int):
    """Allow the DAO to pull AMOUNT tokens from the holder."""
    with dao_session(ctx) as (token, dao):
        token.approve(sender, dao.address, amount)
    success(f"Approved {amount} {token.symbol} for the DAO")


@cli.command("deposit")
@click.option("--from", "sender", required=True, help="Depositor address")
@click.option("--approve", "approve_first", is_flag=True, help="Approve the DAO first")
@click.argument("amount", type=int)
@click.pass_context
def deposit_cmd(ctx: click.Context, sender: str, approve_first: bool, amount: int):
    """Deposit AMOUNT tokens into the treasury."""
    with dao_session(ctx) as (token, dao):
        if approve_first:
            token.approve(sender, dao.address, amount)
        event = dao.deposit(sender, amount)
    success(f"Deposited {amount} {token.symbol} (balance {event.balance})")


@cli.command("withdraw")
@click.option("--from", "sender", required=True, help="Depositor address")
@click.argument("amount", type=int)
@click.pass_context
def withdraw_cmd(ctx: click.Context, sender: str, amount: int):
    """Withdraw AMOUNT tokens from the treasury."""
    with dao_session(ctx) as (token, dao):
        event = dao.withdraw(sender, amount)
    success(f"Withdrew {amount} {token.symbol} (balance {event.balance})")


@cli.command("vote")
@click.option("--from", "sender", required=True, help="Voter address")
@click.option("--id", "proposal_id", type=int, required=True, help="Proposal id")
@click.option("--support", type=click.Choice(["for", "against"]), required=True)
@click.pass_context
def vote_cmd(ctx: click.Context, sender: str, proposal_id: int, support: str):
    """Vote on a proposal with the whole deposit."""
    with dao_session(ctx) as (token, dao):
        record = dao.vote(sender, proposal_id, support == "for")
    success(f"Voted {support.upper()} on proposal #{proposal_id} (weight {record.weight})")


@cli.command("finish")
@click.option("--from", "sender", required=True, help="Caller address")
@click.option("--id", "proposal_id", type=int, required=True, help="Proposal id")
@click.pass_context
def finish_cmd(ctx: click.Context, sender: str, proposal_id: int):
    """Finalize a proposal whose debating period is over."""
    with dao_session(ctx) as (token, dao):
        outcome = dao.finish_proposal(sender, proposal_id)

    if outcome.accepted:
        success(f"Proposal #{proposal_id} ACCEPTED and executed")
    else:
        click.echo(click.style(f"Proposal #{proposal_id} REJECTED", fg="yellow"))
    click.echo(
        f"For: {outcome.votes_for}  Against: {outcome.votes_against}  "
        f"Total: {outcome.total_votes}"
    )
    if outcome.error:
        click.echo(f"Action failed: {outcome.error}")


@cli.command("set-quorum")
@click.option("--from", "sender", required=True, help="DAO owner")
@click.argument("value", type=int)
@click.pass_context
def set_quorum_cmd(ctx: click.Context, sender: str, value: int):
    """Change the minimum quorum (owner only)."""
    with dao_session(ctx) as (token, dao):
        event = dao.set_minimum_quorum(sender, value)
    success(f"Minimum quorum: {event.old_value} → {event.new_value}")


@cli.command("set-duration")
@click.option("--from", "sender", required=True, help="DAO owner")
@click.argument("seconds", type=int)
@click.pass_context
def set_duration_cmd(ctx: click.Context, sender: str, seconds: int):
    """Change the debating period duration (owner only)."""
    with dao_session(ctx) as (token, dao):
        event = dao.set_debating_period_duration(sender, seconds)
    success(f"Debating period: {event.old_value}s → {event.new_value}s")


# ══════════════════════════════════════════════════════════════════════
#  QUERIES
# ══════════════════════════════════════════════════════════════════════

@cli.command("info")
@click.option("--json", "as_json", is_flag=True, help="Output the full state as JSON")
@click.pass_context
def info_cmd(ctx: click.Context, as_json: bool):
    """Show DAO parameters and totals."""
    with dao_session(ctx, save=False) as (token, dao):
        if as_json:
            click.echo(json.dumps({"token": token.to_dict(), "dao": dao.to_dict()}, indent=2))
            return

        click.echo(click.style("DAO", bold=True))
        click.echo(f"  Address:           {dao.address}")
        click.echo(f"  Owner:             {dao.owner}")
        click.echo(f"  Chairperson:       {dao.chairperson}")
        click.echo(f"  Minimum quorum:    {dao.minimum_quorum}")
        click.echo(f"  Debating period:   {dao.debating_period_duration}s")
        click.echo(f"  Proposals:         {dao.proposal_count}")
        click.echo(f"  Total deposited:   {dao.ledger.total_deposited}")
        click.echo()
        click.echo(click.style("Token", bold=True))
        click.echo(f"  Address:           {token.address}")
        click.echo(f"  Name:              {token.name} ({token.symbol})")
        click.echo(f"  Total supply:      {token.total_supply}")
        click.echo(f"  Owner:             {token.owner}")


@cli.command("proposal")
@click.argument("proposal_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def proposal_cmd(ctx: click.Context, proposal_id: int, as_json: bool):
    """Show a proposal, its tally and its outcome."""
    with dao_session(ctx, save=False) as (token, dao):
        proposal = dao.proposals.get_or_raise(proposal_id)
        status = dao.proposal_status(proposal_id)
        tally = dao.get_tally(proposal_id)
        outcome = dao.outcome(proposal_id)

        if as_json:
            click.echo(json.dumps({
                "proposal": proposal.to_dict(),
                "status": status.name,
                "tally": tally.to_dict() if tally else None,
                "outcome": outcome.to_dict() if outcome else None,
            }, indent=2))
            return

        click.echo(click.style(f"Proposal #{proposal.id}", bold=True))
        click.echo(f"  Description:  {proposal.description}")
        click.echo(f"  Recipient:    {proposal.recipient}")
        click.echo(f"  Call data:    0x{proposal.call_data.hex()}")
        click.echo(f"  Created:      {format_timestamp(proposal.created_at)}")
        click.echo(
            f"  Voting ends:  "
            f"{format_timestamp(proposal.voting_end(dao.debating_period_duration))}"
        )
        click.echo(f"  Status:       {status.name}")
        if tally:
            click.echo(f"  For:          {tally.votes_for}")
            click.echo(f"  Against:      {tally.votes_against}")
        if outcome:
            verdict = "ACCEPTED" if outcome.accepted else "REJECTED"
            click.echo(f"  Outcome:      {verdict}")
            if outcome.error:
                click.echo(f"  Error:        {outcome.error}")


@cli.command("balance")
@click.argument("address")
@click.pass_context
def balance_cmd(ctx: click.Context, address: str):
    """Show wallet and treasury balances of ADDRESS."""
    with dao_session(ctx, save=False) as (token, dao):
        address = normalize_address(address)
        click.echo(f"Address:    {address}")
        click.echo(f"Wallet:     {token.balance_of(address)} {token.symbol}")
        click.echo(f"Deposited:  {dao.balance_of(address)} {token.symbol}")
        click.echo(f"Allowance:  {token.allowance(address, dao.address)} {token.symbol}")
        until = dao.locked_until(address)
        if until is not None:
            click.echo(f"Locked until: {format_timestamp(until)}")


# ══════════════════════════════════════════════════════════════════════
#  TOKEN
# ══════════════════════════════════════════════════════════════════════

@cli.command("transfer")
@click.option("--from", "sender", required=True, help="Token holder")
@click.argument("to_address")
@click.argument("amount", type=int)
@click.pass_context
def transfer_cmd(ctx: click.Context, sender: str, to_address: str, amount: int):
    """Transfer tokens between wallets."""
    with dao_session(ctx) as (token, dao):
        token.transfer(sender, to_address, amount)
    success(f"Transferred {amount} {token.symbol}")


@cli.command("mint")
@click.option("--from", "sender", required=True, help="Token owner")
@click.argument("to_address")
@click.argument("amount", type=int)
@click.pass_context
def mint_cmd(ctx: click.Context, sender: str, to_address: str, amount: int):
    """Mint tokens (token owner only; usually the DAO after deploy)."""
    with dao_session(ctx) as (token, dao):
        token.mint(sender, to_address, amount)
    success(f"Minted {amount} {token.symbol}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
