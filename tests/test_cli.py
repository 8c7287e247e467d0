"""
TokenDAO CLI Test Suite

Drives the click commands against a temporary state file with a fixed
``--now`` clock.
"""

import os
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tokendao.abi import encode_function_call, generate_contract_address, normalize_address
from tokendao.cli.main import cli, parse_cli_argument
from tokendao.store import JsonStateStore


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

OWNER = normalize_address("0x" + "a1" * 20)
CHAIRPERSON = normalize_address("0x" + "b2" * 20)
ADDR1 = normalize_address("0x" + "c3" * 20)
DAO_ADDRESS = generate_contract_address(OWNER, 1)

START_TIME = 1_700_000_000
PERIOD = 3600


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("TOKENDAO_CONFIG", "TOKENDAO_STATE", "TOKENDAO_LOG_LEVEL",
                "DAO_CHAIRPERSON", "DAO_MINIMUM_QUORUM",
                "DAO_DEBATING_PERIOD_DURATION", "TOKEN_INITIAL_SUPPLY"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def run(tmp_path):
    """Invoke the CLI against a state file in *tmp_path* at a given time."""
    runner = CliRunner()
    state = str(tmp_path / "state.json")
    config = str(tmp_path / "tokendao.toml")

    def _run(*args, now=START_TIME):
        return runner.invoke(
            cli,
            ["--state", state, "--config", config, "--now", str(now), *args],
            obj={},
        )

    _run.state = state
    return _run


def deploy(run, *extra):
    result = run(
        "deploy", "--owner", OWNER, "--chairperson", CHAIRPERSON,
        "--quorum", "5000", "--duration", str(PERIOD), *extra,
    )
    assert result.exit_code == 0, result.output
    return result


def add_mint_proposal(run, amount=5000):
    calldata = "0x" + encode_function_call("mint(address,uint256)", DAO_ADDRESS, amount).hex()
    result = run(
        "addproposal", "--from", CHAIRPERSON, "--calldata", calldata,
        "--description", "Increase TotalSupply",
    )
    assert result.exit_code == 0, result.output
    return result


# ══════════════════════════════════════════════════════════════════════
#  TESTS
# ══════════════════════════════════════════════════════════════════════


class TestDeployCommand:
    def test_deploy_writes_state(self, run):
        result = deploy(run)
        assert "DAO deployed" in result.output
        assert DAO_ADDRESS in result.output

        token, dao = JsonStateStore(run.state).load()
        assert dao.address == DAO_ADDRESS
        assert dao.minimum_quorum == 5000
        assert token.owner == DAO_ADDRESS
        assert token.balance_of(OWNER) == 1_000_000

    def test_deploy_keep_token_ownership(self, run):
        deploy(run, "--keep-token-ownership")
        token, _ = JsonStateStore(run.state).load()
        assert token.owner == OWNER

    def test_deploy_refuses_overwrite(self, run):
        deploy(run)
        result = run("deploy", "--owner", OWNER)
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_deploy_force(self, run):
        deploy(run)
        result = run("deploy", "--owner", OWNER, "--quorum", "1", "--force")
        assert result.exit_code == 0, result.output
        _, dao = JsonStateStore(run.state).load()
        assert dao.minimum_quorum == 1
        assert dao.chairperson == OWNER

    def test_deploy_invalid_owner(self, run):
        result = run("deploy", "--owner", "bob")
        assert result.exit_code == 1
        assert "Invalid address" in result.output

    def test_missing_state(self, run):
        result = run("info")
        assert result.exit_code == 1
        assert "deploy" in result.output

    def test_incomplete_state(self, run):
        Path(run.state).write_text('{"version": 1, "token": {}}')
        result = run("info")
        assert result.exit_code == 1
        assert "Corrupt state file" in result.output
        assert "Traceback" not in result.output


class TestEncodeCall:
    def test_encode_mint(self, run):
        result = run("encode-call", "mint(address,uint256)", DAO_ADDRESS, "5000")
        assert result.exit_code == 0, result.output
        expected = encode_function_call("mint(address,uint256)", DAO_ADDRESS, 5000).hex()
        assert "0x" + expected in result.output

    def test_encode_wrong_arity(self, run):
        result = run("encode-call", "mint(address,uint256)", DAO_ADDRESS)
        assert result.exit_code == 1
        assert "takes 2 arguments" in result.output

    def test_parse_cli_argument(self):
        assert parse_cli_argument("uint256", "0x10") == 16
        assert parse_cli_argument("bool", "true") is True
        assert parse_cli_argument("address", OWNER.lower()) == OWNER
        assert parse_cli_argument("bytes", "0x0102") == b"\x01\x02"
        assert parse_cli_argument("string", "hi") == "hi"
        with pytest.raises(ValueError):
            parse_cli_argument("bool", "maybe")


class TestGovernanceFlow:
    def test_full_cycle(self, run):
        deploy(run)
        add_mint_proposal(run)

        result = run("deposit", "--from", OWNER, "--approve", "5000")
        assert result.exit_code == 0, result.output
        assert "balance 5000" in result.output

        result = run("vote", "--from", OWNER, "--id", "1", "--support", "for")
        assert result.exit_code == 0, result.output
        assert "weight 5000" in result.output

        result = run("withdraw", "--from", OWNER, "5000", now=START_TIME + 10)
        assert result.exit_code == 1
        assert "You can withdraw after the latest proposal" in result.output

        result = run("finish", "--from", ADDR1, "--id", "1", now=START_TIME + 10)
        assert result.exit_code == 1
        assert "Debating period is not over" in result.output

        result = run("finish", "--from", ADDR1, "--id", "1", now=START_TIME + PERIOD)
        assert result.exit_code == 0, result.output
        assert "ACCEPTED" in result.output

        token, dao = JsonStateStore(run.state).load()
        assert token.total_supply == 1_005_000
        assert dao.get_proposal(1).finished is True

        result = run("proposal", "1", now=START_TIME + PERIOD)
        assert "FINISHED" in result.output

        result = run("withdraw", "--from", OWNER, "5000", now=START_TIME + PERIOD)
        assert result.exit_code == 0, result.output
        token, _ = JsonStateStore(run.state).load()
        assert token.balance_of(OWNER) == 1_000_000

    def test_rejected_proposal(self, run):
        deploy(run)
        add_mint_proposal(run)
        run("deposit", "--from", OWNER, "--approve", "100")
        run("vote", "--from", OWNER, "--id", "1", "--support", "for")
        result = run("finish", "--from", OWNER, "--id", "1", now=START_TIME + PERIOD)
        assert result.exit_code == 0, result.output
        assert "REJECTED" in result.output

    def test_deposit_without_approval(self, run):
        deploy(run)
        result = run("deposit", "--from", OWNER, "10")
        assert result.exit_code == 1
        assert "Allowance" in result.output

    def test_separate_approve(self, run):
        deploy(run)
        assert run("approve", "--from", OWNER, "10").exit_code == 0
        result = run("deposit", "--from", OWNER, "10")
        assert result.exit_code == 0, result.output

    def test_vote_without_deposit(self, run):
        deploy(run)
        add_mint_proposal(run)
        result = run("vote", "--from", ADDR1, "--id", "1", "--support", "against")
        assert result.exit_code == 1
        assert "You don't have tokens" in result.output

    def test_addproposal_not_chairperson(self, run):
        deploy(run)
        result = run("addproposal", "--from", ADDR1, "--calldata", "0x", "--description", "x")
        assert result.exit_code == 1
        assert "Caller is not the chairperson" in result.output

    def test_addproposal_bad_calldata(self, run):
        deploy(run)
        result = run("addproposal", "--from", CHAIRPERSON, "--calldata", "0xzz", "--description", "x")
        assert result.exit_code == 1
        assert "not valid hex" in result.output

    def test_failed_command_does_not_save(self, run):
        deploy(run)
        before = Path(run.state).read_text()
        run("set-quorum", "--from", ADDR1, "1")
        assert Path(run.state).read_text() == before


class TestAdminCommands:
    def test_set_quorum(self, run):
        deploy(run)
        result = run("set-quorum", "--from", OWNER, "10000")
        assert result.exit_code == 0, result.output
        _, dao = JsonStateStore(run.state).load()
        assert dao.minimum_quorum == 10000

    def test_set_quorum_not_owner(self, run):
        deploy(run)
        result = run("set-quorum", "--from", ADDR1, "10000")
        assert result.exit_code == 1
        assert "Caller is not the owner" in result.output

    def test_set_duration(self, run):
        deploy(run)
        result = run("set-duration", "--from", OWNER, "60")
        assert result.exit_code == 0, result.output
        _, dao = JsonStateStore(run.state).load()
        assert dao.debating_period_duration == 60


class TestTokenCommands:
    def test_transfer_and_balance(self, run):
        deploy(run)
        result = run("transfer", "--from", OWNER, ADDR1, "250")
        assert result.exit_code == 0, result.output
        result = run("balance", ADDR1)
        assert result.exit_code == 0, result.output
        assert "250 VOTE" in result.output

    def test_mint_after_ownership_moved(self, run):
        deploy(run)
        result = run("mint", "--from", OWNER, ADDR1, "1")
        assert result.exit_code == 1
        assert "caller is not the owner" in result.output

    def test_mint_with_kept_ownership(self, run):
        deploy(run, "--keep-token-ownership")
        result = run("mint", "--from", OWNER, ADDR1, "1")
        assert result.exit_code == 0, result.output


class TestQueries:
    def test_info(self, run):
        deploy(run)
        result = run("info")
        assert result.exit_code == 0, result.output
        assert CHAIRPERSON in result.output
        assert "5000" in result.output

    def test_info_json(self, run):
        deploy(run)
        result = run("info", "--json")
        assert result.exit_code == 0, result.output
        assert '"minimumQuorum": 5000' in result.output

    def test_proposal_json(self, run):
        deploy(run)
        add_mint_proposal(run)
        result = run("proposal", "1", "--json")
        assert result.exit_code == 0, result.output
        assert '"status": "OPEN"' in result.output

    def test_unknown_proposal(self, run):
        deploy(run)
        result = run("proposal", "4")
        assert result.exit_code == 1
        assert "Proposal #4 does not exist" in result.output

    def test_balance_shows_lock(self, run):
        deploy(run)
        add_mint_proposal(run)
        run("deposit", "--from", OWNER, "--approve", "5000")
        run("vote", "--from", OWNER, "--id", "1", "--support", "for")
        result = run("balance", OWNER)
        assert "Deposited:  5000 VOTE" in result.output
        assert "Locked until" in result.output


class TestConfigIntegration:
    def test_config_file_defaults(self, run, tmp_path):
        (tmp_path / "tokendao.toml").write_text(
            f'[dao]\nchairperson = "{CHAIRPERSON}"\nminimum_quorum = 7\n'
        )
        result = run("deploy", "--owner", OWNER)
        assert result.exit_code == 0, result.output
        _, dao = JsonStateStore(run.state).load()
        assert dao.minimum_quorum == 7
        assert dao.chairperson == CHAIRPERSON

    def test_invalid_config(self, run, tmp_path):
        (tmp_path / "tokendao.toml").write_text("[logging]\nlevel = \"LOUD\"\n")
        result = run("info")
        assert result.exit_code == 1
        assert "Invalid log level" in result.output
