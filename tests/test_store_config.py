"""
State Store & Configuration Test Suite

Coverage:
  - JsonStateStore: save/load of a live DAO, atomic writes, error cases
  - TokenDAOConfig: TOML loading, defaults, environment overrides, validation
"""

import json
import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tokendao.abi import encode_function_call, normalize_address
from tokendao.config import TokenDAOConfig, load_config
from tokendao.constants import (
    DAO_DEFAULT_DEBATING_PERIOD_DURATION,
    DAO_DEFAULT_MINIMUM_QUORUM,
    DAO_DEFAULT_STATE_FILE,
)
from tokendao.exceptions import ConfigurationError, StateNotFoundError, TokenDAOException
from tokendao.governance import DAO, DuplicateVoteError, WithdrawLockedError
from tokendao.store import JsonStateStore
from tokendao.tokens import Token


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

OWNER = normalize_address("0x" + "a1" * 20)
CHAIRPERSON = normalize_address("0x" + "b2" * 20)
VOTER = normalize_address("0x" + "c3" * 20)

START_TIME = 1_700_000_000
PERIOD = 3600

ENV_KEYS = (
    "TOKENDAO_CONFIG",
    "DAO_CHAIRPERSON",
    "DAO_MINIMUM_QUORUM",
    "DAO_DEBATING_PERIOD_DURATION",
    "TOKEN_INITIAL_SUPPLY",
    "TOKENDAO_STATE",
    "TOKENDAO_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def fixed_clock(now):
    return lambda: now


def make_active_dao():
    """A DAO with one voted, still-open proposal."""
    token = Token("Vote Token", "VOTE", total_supply=10_000, deployer=OWNER)
    dao = DAO(OWNER, CHAIRPERSON, token, 100, PERIOD, time_fn=fixed_clock(START_TIME))
    token.transfer_ownership(OWNER, dao.address)
    token.transfer(OWNER, VOTER, 500)
    token.approve(VOTER, dao.address, 500)
    dao.deposit(VOTER, 500)
    dao.add_proposal(
        CHAIRPERSON,
        encode_function_call("mint(address,uint256)", VOTER, 1),
        token.address,
        "Mint one",
    )
    dao.vote(VOTER, 1, True)
    return token, dao


def write_toml(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


# ══════════════════════════════════════════════════════════════════════
#  STATE STORE
# ══════════════════════════════════════════════════════════════════════


class TestJsonStateStore:
    """Persistence of token + DAO."""

    def test_round_trip_preserves_state(self, tmp_path):
        token, dao = make_active_dao()
        store = JsonStateStore(tmp_path / "state.json")
        assert not store.exists()
        store.save(token, dao)
        assert store.exists()

        token2, dao2 = store.load(time_fn=fixed_clock(START_TIME + 10))
        assert token2.address == token.address
        assert token2.owner == dao.address
        assert token2.balance_of(dao2.address) == 500
        assert dao2.address == dao.address
        assert dao2.chairperson == CHAIRPERSON
        assert dao2.minimum_quorum == 100
        assert dao2.balance_of(VOTER) == 500
        assert dao2.get_tally(1).votes_for == 500
        assert dao2.proposal_count == 1

    def test_restored_dao_keeps_rules(self, tmp_path):
        token, dao = make_active_dao()
        store = JsonStateStore(tmp_path / "state.json")
        store.save(token, dao)

        _, restored = store.load(time_fn=fixed_clock(START_TIME + 10))
        with pytest.raises(DuplicateVoteError):
            restored.vote(VOTER, 1, False)
        with pytest.raises(WithdrawLockedError):
            restored.withdraw(VOTER, 1)

    def test_restored_dao_executes(self, tmp_path):
        token, dao = make_active_dao()
        store = JsonStateStore(tmp_path / "state.json")
        store.save(token, dao)

        token2, dao2 = store.load(time_fn=fixed_clock(START_TIME + PERIOD))
        outcome = dao2.finish_proposal(VOTER, 1)
        assert outcome.accepted is True
        assert token2.total_supply == 10_001

        store.save(token2, dao2)
        _, dao3 = store.load(time_fn=fixed_clock(START_TIME + PERIOD))
        assert dao3.get_proposal(1).finished is True
        assert dao3.outcome(1).accepted is True

    def test_new_proposal_ids_continue(self, tmp_path):
        token, dao = make_active_dao()
        store = JsonStateStore(tmp_path / "state.json")
        store.save(token, dao)
        token2, dao2 = store.load(time_fn=fixed_clock(START_TIME))
        assert dao2.add_proposal(CHAIRPERSON, b"", token2.address, "next").id == 2

    def test_document_layout(self, tmp_path):
        token, dao = make_active_dao()
        path = tmp_path / "state.json"
        JsonStateStore(path).save(token, dao)
        document = json.loads(path.read_text())
        assert document["version"] == 1
        assert document["dao"]["proposals"]["proposals"][0]["callData"].startswith("0x40c10f19")
        assert list(tmp_path.iterdir()) == [path]

    def test_missing_file(self, tmp_path):
        with pytest.raises(StateNotFoundError, match="deploy"):
            JsonStateStore(tmp_path / "nope.json").load()

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(TokenDAOException, match="Corrupt"):
            JsonStateStore(path).load()

    def test_unknown_version(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99}))
        with pytest.raises(TokenDAOException, match="Unsupported state version"):
            JsonStateStore(path).load()

    @pytest.mark.parametrize(
        "document",
        [
            {"version": 1, "token": {}},
            {"version": 1, "token": {"name": "Vote Token"}, "dao": {}},
            [1, 2, 3],
        ],
    )
    def test_incomplete_document(self, tmp_path, document):
        path = tmp_path / "state.json"
        path.write_text(json.dumps(document))
        with pytest.raises(TokenDAOException, match="Corrupt state file"):
            JsonStateStore(path).load()

    def test_missing_dao_section(self, tmp_path):
        token, dao = make_active_dao()
        path = tmp_path / "state.json"
        JsonStateStore(path).save(token, dao)
        document = json.loads(path.read_text())
        del document["dao"]["access"]
        path.write_text(json.dumps(document))
        with pytest.raises(TokenDAOException, match="access"):
            JsonStateStore(path).load()

    def test_creates_parent_directory(self, tmp_path):
        token, dao = make_active_dao()
        store = JsonStateStore(tmp_path / "nested" / "dir" / "state.json")
        store.save(token, dao)
        assert store.exists()


# ══════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ══════════════════════════════════════════════════════════════════════


class TestConfig:
    """TOML loading and environment overrides."""

    def test_defaults_when_file_missing(self, tmp_path):
        cfg = load_config(str(tmp_path / "missing.toml"))
        assert cfg.dao.minimum_quorum == DAO_DEFAULT_MINIMUM_QUORUM
        assert cfg.dao.debating_period_duration == DAO_DEFAULT_DEBATING_PERIOD_DURATION
        assert cfg.state.path == DAO_DEFAULT_STATE_FILE
        assert cfg.token.symbol == "VOTE"
        assert cfg.validate()

    def test_load_file(self, tmp_path):
        path = write_toml(tmp_path / "tokendao.toml", f"""
[dao]
chairperson = "{CHAIRPERSON}"
minimum_quorum = 42
debating_period_duration = 600

[token]
name = "Gov"
symbol = "GOV"
initial_supply = 77

[state]
path = "custom.json"

[logging]
level = "debug"
""")
        cfg = load_config(path)
        assert cfg.dao.chairperson == CHAIRPERSON
        assert cfg.dao.minimum_quorum == 42
        assert cfg.dao.debating_period_duration == 600
        assert (cfg.token.name, cfg.token.symbol, cfg.token.initial_supply) == ("Gov", "GOV", 77)
        assert cfg.state.path == "custom.json"
        assert cfg.logging.level == "DEBUG"

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = write_toml(tmp_path / "tokendao.toml", "[dao]\nminimum_quorum = 1\n")
        cfg = load_config(path)
        assert cfg.dao.minimum_quorum == 1
        assert cfg.dao.debating_period_duration == DAO_DEFAULT_DEBATING_PERIOD_DURATION

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = write_toml(tmp_path / "tokendao.toml", "[dao]\nminimum_quorum = 1\n")
        monkeypatch.setenv("DAO_MINIMUM_QUORUM", "9000")
        monkeypatch.setenv("DAO_DEBATING_PERIOD_DURATION", "120")
        monkeypatch.setenv("TOKENDAO_STATE", "env.json")
        monkeypatch.setenv("TOKENDAO_LOG_LEVEL", "warning")
        monkeypatch.setenv("TOKEN_INITIAL_SUPPLY", "5")
        cfg = load_config(path)
        assert cfg.dao.minimum_quorum == 9000
        assert cfg.dao.debating_period_duration == 120
        assert cfg.state.path == "env.json"
        assert cfg.logging.level == "WARNING"
        assert cfg.token.initial_supply == 5

    def test_env_selects_config_file(self, tmp_path, monkeypatch):
        path = write_toml(tmp_path / "other.toml", "[dao]\nminimum_quorum = 3\n")
        monkeypatch.setenv("TOKENDAO_CONFIG", path)
        assert load_config().dao.minimum_quorum == 3

    def test_env_not_an_integer(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DAO_MINIMUM_QUORUM", "lots")
        with pytest.raises(ConfigurationError, match="DAO_MINIMUM_QUORUM"):
            load_config(str(tmp_path / "missing.toml"))

    def test_invalid_toml(self, tmp_path):
        path = write_toml(tmp_path / "tokendao.toml", "[dao\n")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(path)

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"dao": {"minimum_quorum": -1}}, "minimum_quorum"),
            ({"dao": {"debating_period_duration": "soon"}}, "debating_period_duration"),
            ({"token": {"decimals": 30}}, "decimals"),
            ({"token": {"initial_supply": -5}}, "initial_supply"),
            ({"logging": {"level": "LOUD"}}, "log level"),
        ],
    )
    def test_validate(self, data, message):
        with pytest.raises(ConfigurationError, match=message):
            TokenDAOConfig.from_dict(data).validate()

    def test_to_dict(self):
        cfg = TokenDAOConfig()
        d = cfg.to_dict()
        assert d["dao"]["minimum_quorum"] == DAO_DEFAULT_MINIMUM_QUORUM
        assert d["state"]["path"] == DAO_DEFAULT_STATE_FILE
