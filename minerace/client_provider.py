"""Temporal client construction for the solo-game service."""
import logging
import os
import pathlib
import platform

from temporalio.client import Client
from temporalio.envconfig import ClientConfig

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "localhost:7233"
DEFAULT_NAMESPACE = "default"


async def get_temporal_client() -> Client:
    """Connect using TEMPORAL_PROFILE from the temporal.toml file when both
    exist, otherwise TEMPORAL_ADDRESS / TEMPORAL_NAMESPACE."""
    config_file = temporal_config_file()
    profile = os.getenv("TEMPORAL_PROFILE")
    if profile and config_file.is_file():
        logger.info(f"Connecting to Temporal with profile {profile!r} from {config_file}")
        connect_config = ClientConfig.load_client_connect_config(
            profile=profile,
            config_file=str(config_file),
        )
        return await Client.connect(**connect_config)

    address = os.getenv("TEMPORAL_ADDRESS", DEFAULT_ADDRESS)
    namespace = os.getenv("TEMPORAL_NAMESPACE", DEFAULT_NAMESPACE)
    logger.info(f"Connecting to Temporal at {address} (namespace {namespace})")
    return await Client.connect(address, namespace=namespace)


def temporal_config_file() -> pathlib.Path:
    """Default temporal.toml location for the current platform."""
    system = platform.system()
    if system == "Darwin":
        base = pathlib.Path.home() / "Library/Application Support"
    elif system == "Windows":
        app_data = os.getenv("AppData")
        if app_data is None:
            raise RuntimeError("AppData environment variable not set")
        base = pathlib.Path(app_data)
    else:
        xdg_config_home = os.getenv("XDG_CONFIG_HOME")
        base = pathlib.Path(xdg_config_home) if xdg_config_home else pathlib.Path.home() / ".config"
    return base / "temporalio" / "temporal.toml"
