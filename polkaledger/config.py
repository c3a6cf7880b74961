import ast
import json
import os
from typing import Any, Dict

from polkaledger.errors import StartupError


def env(key, default=None, required=True):
    """
    Retrieves environment variables and returns Python natives. The (optional)
    default will be returned if the environment variable does not exist.
    """
    try:
        value = os.environ[key]
        return ast.literal_eval(value)
    except (SyntaxError, ValueError):
        return value
    except KeyError:
        if default or not required:
            return default
        raise RuntimeError("Missing required environment variable '%s'" % key)


def load_config(path: str = "config.json") -> Dict[str, Any]:
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        raise StartupError(f"config file {path} not found")
    except json.JSONDecodeError as e:
        raise StartupError(f"config file {path} is not valid json: {e}")


def get_chain_config(config: Dict[str, Any], chain: str = None) -> Dict[str, Any]:
    """
    Returns the settings of the requested chain (or the default chain) with the
    chain name added under "name".
    """
    chain = chain or config.get("defchain")
    chains = config.get("chains", {})
    if chain not in chains:
        raise StartupError(f"unknown chain {chain}, use one of: {', '.join(chains)}")
    chain_config = dict(chains[chain])
    chain_config["name"] = chain
    if not chain_config.get("providers"):
        raise StartupError(f"no providers configured for {chain}")
    return chain_config


def database_url(config: Dict[str, Any]) -> str:
    """
    A sqlite file configured under "filename" wins, otherwise the postgres
    credentials are read from the environment.
    """
    if config.get("filename"):
        return f"sqlite:///{config['filename']}"
    database_username = env("DATABASE_USERNAME")
    database_password = env("DATABASE_PASSWORD")
    database_host = env("DATABASE_URL")
    database_name = env("DATABASE_NAME")
    return f"postgresql://{database_username}:{database_password}@{database_host}/{database_name}"
