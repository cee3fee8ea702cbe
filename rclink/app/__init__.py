from .config import AdapterConfig, RcLinkConfig, load_config
from .runner import AppRun, create_adapter, start_run

__all__ = ["AdapterConfig", "RcLinkConfig", "load_config", "AppRun", "create_adapter", "start_run"]
