"""
Network and runtime configuration for the x402 playground.
"""
import json
import logging
import os
import importlib.resources
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "cronos-testnet"
DEFAULT_AGENT_API_URL = "http://localhost:3000"
DEFAULT_EXECUTOR_ADDRESS = "0x36aE091C6264Cb30b2353806EEf2F969Dc2893f8"
DEFAULT_NATIVE_TOKEN = "TCRO"
STABLE_TOKEN = "USDC"
DEFAULT_SEED_BALANCES = {DEFAULT_NATIVE_TOKEN: "10", STABLE_TOKEN: "1000"}
DEFAULT_RETENTION_SECONDS = 3600


class NetworkConfig:
    """
    Access to the packaged network definitions (``networks.json``).

    The file is read once and cached on the class.
    """

    _networks_cache: Optional[Dict[str, Any]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Any]:
        """
        Load all network definitions.

        Returns:
            Mapping of network name to its configuration
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        resource = importlib.resources.files("x402_playground").joinpath("networks.json")
        with resource.open("r", encoding="utf-8") as f:
            cls._networks_cache = json.load(f)
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get the configuration of one network.

        Raises:
            ValueError: If the network is not defined
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network: {network}. Available networks: {available}")
        return networks[network]

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        """
        Resolve the RPC endpoint for a network.

        Precedence: explicit override, then the ``<NETWORK>_RPC_URL``
        environment variable (``cronos-testnet`` -> ``CRONOS_TESTNET_RPC_URL``),
        then the packaged default.
        """
        if override:
            return override

        env_var = f"{network.upper().replace('-', '_')}_RPC_URL"
        env_url = os.environ.get(env_var)
        if env_url:
            logger.debug(f"Using RPC URL from {env_var}")
            return env_url

        return cls.get_network(network)["rpc"]

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def get_explorer_url(cls, network: str) -> str:
        return cls.get_network(network)["explorer"].rstrip("/")

    @classmethod
    def get_native_token(cls, network: str) -> str:
        return cls.get_network(network).get("nativeToken", DEFAULT_NATIVE_TOKEN)

    @classmethod
    def get_contracts(cls, network: str) -> Dict[str, str]:
        return dict(cls.get_network(network).get("contracts", {}))

    @classmethod
    def get_contract_address(cls, network: str, name: str) -> str:
        """
        Get the deployed address of a named contract.

        Raises:
            ValueError: If the contract is not deployed on the network
        """
        contracts = cls.get_contracts(network)
        if name not in contracts:
            raise ValueError(f"Contract {name} is not deployed on {network}")
        return contracts[name]


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got: {raw!r})")


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    return (env.get(name) or "").strip().lower() in ("1", "true", "yes", "on")


def default_seed_balances(native_token: str = DEFAULT_NATIVE_TOKEN) -> Dict[str, str]:
    """Starting balances of simulated runs: the native token and the stablecoin."""
    return {
        native_token: DEFAULT_SEED_BALANCES[DEFAULT_NATIVE_TOKEN],
        STABLE_TOKEN: DEFAULT_SEED_BALANCES[STABLE_TOKEN],
    }


@dataclass
class PlaygroundSettings:
    """
    Runtime settings for a playground process.

    ``seed_balances`` defaults to the network's native token and USDC.
    ``stub_chain`` opts into the in-memory chain for execute mode when no
    executor key is configured; it never moves real funds.
    """

    network: str = DEFAULT_NETWORK
    rpc_url: Optional[str] = None
    private_key: Optional[str] = None
    executor_address: str = DEFAULT_EXECUTOR_ADDRESS
    agent_api_url: str = DEFAULT_AGENT_API_URL
    seed_balances: Optional[Dict[str, str]] = None
    retention_seconds: int = DEFAULT_RETENTION_SECONDS
    http_timeout: int = 30
    retry_count: int = 3
    stub_chain: bool = False

    def __post_init__(self):
        if self.seed_balances is None:
            self.seed_balances = default_seed_balances(self.native_token)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PlaygroundSettings":
        """
        Build settings from environment variables.

        Seed balances are read from ``SIMULATION_SEED_<TOKEN>`` for the
        network's native token and USDC.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)

        Raises:
            ValueError: If a numeric variable cannot be parsed or the network
                is unknown
        """
        env = os.environ if env is None else env

        network = env.get("PLAYGROUND_NETWORK") or DEFAULT_NETWORK
        seeds = default_seed_balances(NetworkConfig.get_native_token(network))
        for token in list(seeds):
            value = env.get(f"SIMULATION_SEED_{token}")
            if value:
                seeds[token] = value

        return cls(
            network=network,
            rpc_url=env.get("PLAYGROUND_RPC_URL") or None,
            private_key=env.get("EXECUTOR_PRIVATE_KEY") or None,
            executor_address=env.get("EXECUTOR_ADDRESS") or DEFAULT_EXECUTOR_ADDRESS,
            agent_api_url=env.get("AGENT_API_URL") or DEFAULT_AGENT_API_URL,
            seed_balances=seeds,
            retention_seconds=_env_int(env, "RUN_RETENTION_SECONDS", DEFAULT_RETENTION_SECONDS),
            http_timeout=_env_int(env, "AGENT_API_TIMEOUT", 30),
            retry_count=_env_int(env, "AGENT_API_RETRIES", 3),
            stub_chain=_env_flag(env, "PLAYGROUND_STUB_CHAIN"),
        )

    @property
    def explorer_url(self) -> str:
        return NetworkConfig.get_explorer_url(self.network)

    @property
    def native_token(self) -> str:
        return NetworkConfig.get_native_token(self.network)

    def resolved_rpc_url(self) -> str:
        return NetworkConfig.get_rpc_url(self.network, override=self.rpc_url)
