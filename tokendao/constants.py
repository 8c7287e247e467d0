"""
TokenDAO Constants

Global defaults for the governance engine, the governed token and the
logging subsystem. Logger settings can be overridden from a ``.env`` file in
the working directory.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                'INFO',
    'LOG_FORMAT':               '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':          '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING': 'True',
    'LOG_FILE_OUTPUT':          'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# GOVERNANCE DEFAULTS
# ==================================================================================
DAO_DEFAULT_MINIMUM_QUORUM = 5000
DAO_DEFAULT_DEBATING_PERIOD_DURATION = 60 * 60 * 24 * 3  # 3 days
DAO_DEFAULT_STATE_FILE = 'dao_state.json'
DAO_DEFAULT_CONFIG_FILE = 'tokendao.toml'

# Deployer nonces used for deterministic contract addresses
TOKEN_DEPLOY_NONCE = 0
DAO_DEPLOY_NONCE = 1


# ==================================================================================
# TOKEN DEFAULTS
# ==================================================================================
TOKEN_DEFAULT_NAME = 'Vote Token'
TOKEN_DEFAULT_SYMBOL = 'VOTE'
TOKEN_DEFAULT_DECIMALS = 18
TOKEN_DEFAULT_INITIAL_SUPPLY = 1_000_000

UINT256_MAX = 2 ** 256 - 1
ZERO_ADDRESS = '0x' + '00' * 20


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that remembers its default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default


class ConfigBool(int):
    """
    Int subclass acting as a boolean that remembers its default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


def parse_bool(v):
    """
    Convert "True"/"False" (any casing) into bool, leaving anything else as is.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v


namespace = globals()

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns None for keys without a value
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
