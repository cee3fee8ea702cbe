# rclink/app/runner.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rclink.app.authorization import Authorization, PortAccessAuthorization
from rclink.app.config import RcLinkConfig
from rclink.app.preferences import PreferenceStore
from rclink.core.errors import ConfigError
from rclink.core.recording.command import CommandTraceLogger
from rclink.runtime.link_controller import LinkController
from rclink.transport.base import TransportAdapter
from rclink.transport.errors import TransportError
from rclink.transport.registry import AdapterRegistry


@dataclass(frozen=True)
class AppRun:
    config: RcLinkConfig
    adapter: TransportAdapter
    controller: LinkController
    preferences: PreferenceStore
    authorization: Authorization
    cmd_sink: Optional[CommandTraceLogger] = None

    def close(self) -> None:
        try:
            self.controller.shutdown()
        finally:
            if self.cmd_sink is not None:
                self.cmd_sink.close()


def create_adapter(cfg: RcLinkConfig, registry: Optional[AdapterRegistry] = None) -> TransportAdapter:
    """
    Construct the configured transport adapter.
    Note: does NOT touch the radio.
    """
    registry = registry or AdapterRegistry.default()
    driver = cfg.adapter.driver
    params = dict(cfg.adapter.params)

    try:
        return registry.create(driver, **params)
    except (TransportError, TypeError, ValueError) as e:
        # unknown driver key or constructor mismatch
        raise ConfigError(
            f"Failed to construct transport adapter (driver='{driver}').",
            hint=str(e) if registry.has(driver) else f"Known drivers: {registry.drivers()}",
            details={"driver": driver, "params": params},
        ) from None


def start_run(
    cfg: RcLinkConfig,
    *,
    adapter: Optional[TransportAdapter] = None,
    authorization: Optional[Authorization] = None,
    trace_path: Optional[Path] = None,
    logger: Optional[logging.Logger] = None,
) -> AppRun:
    log = logger or logging.getLogger(__name__)

    adapter = adapter or create_adapter(cfg)

    cmd_sink = None
    if trace_path is not None:
        cmd_sink = CommandTraceLogger(
            logger=logging.getLogger("rclink.commands"),
            file_path=Path(trace_path),
            flush_interval_s=0.5,
        )

    controller = LinkController(
        adapter,
        target_name=cfg.target_name,
        max_attempts=cfg.max_attempts,
        backoff_s=cfg.backoff_s,
        history_limit=cfg.history_limit,
        disconnect_on_send_error=cfg.disconnect_on_send_error,
        cmd_sink=cmd_sink,
        logger=log,
    )

    log.info(
        "RUN_START driver=%s target=%s attempts=%d backoff_s=%.1f",
        adapter.driver,
        cfg.target_name,
        cfg.max_attempts,
        cfg.backoff_s,
    )

    return AppRun(
        config=cfg,
        adapter=adapter,
        controller=controller,
        preferences=PreferenceStore(cfg.resolved_preferences_path()),
        authorization=authorization or PortAccessAuthorization(adapter, cfg.target_name, logger=log),
        cmd_sink=cmd_sink,
    )
