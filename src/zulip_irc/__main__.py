"""Bridge entrypoint. Loads config, builds the stream mapping, runs the relays."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from zulip_irc import __version__
from zulip_irc.adapters.irc import IRCAdapter, WindowThrottle
from zulip_irc.config import Config, load_config_with_env
from zulip_irc.core.errors import BridgeConfigurationError, HubError
from zulip_irc.gateway import (
    Bus,
    CommandInterpreter,
    CursorStore,
    EventCursor,
    HeartbeatState,
    InboundRelay,
    LifecycleMonitor,
    OutboundRelay,
    SpaceMapper,
)
from zulip_irc.identity import BridgeIdentity
from zulip_irc.notify import AdminAlerter, AlertSink, LivenessReporter, LogSink, NtfySink
from zulip_irc.zulip import ZulipClient

# Third-party libraries to intercept and route through loguru
_INTERCEPTED_LIBRARIES = ["pydle", "pydle.client", "pydle.connection", "httpx", "httpcore"]


def _intercept_logging(level: str) -> None:
    """Route third-party library logs to loguru."""

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                log_level = logger.level(record.levelname).name
            except ValueError:
                log_level = str(record.levelno)
            msg = record.getMessage().replace("{", "{{").replace("}", "}}")
            logger.patch(
                lambda r: r.update(
                    name=record.name,
                    function=record.funcName,
                    line=record.lineno,
                ),
            ).opt(exception=record.exc_info).log(log_level, msg)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for lib in _INTERCEPTED_LIBRARIES:
        lib_logger = logging.getLogger(lib)
        lib_logger.handlers = [InterceptHandler()]
        lib_logger.propagate = False
        lib_logger.setLevel(level)
    # httpx logs every request at INFO; the long-poll would flood the log
    if level != "DEBUG":
        for lib in ("httpx", "httpcore"):
            logging.getLogger(lib).setLevel("WARNING")


def _safe_message_filter(record: Any) -> bool:
    """Escape braces/angles in log messages to prevent format/tag errors."""
    if isinstance(record.get("message"), str):
        msg = record["message"]
        msg = msg.replace("{", "{{").replace("}", "}}").replace("<", "\\<")
        record["message"] = msg
    return True


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging.
    Level: verbose=True or LOG_LEVEL=DEBUG enables DEBUG; otherwise INFO."""
    level = "INFO"
    if verbose:
        level = "DEBUG"
    else:
        env_level = (os.environ.get("LOG_LEVEL") or "").upper()
        if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            level = env_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=("<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}"),
        filter=_safe_message_filter,
    )
    _intercept_logging(level)


def load_settings(config_path: Path) -> Config:
    """Load YAML + env and validate. Raises BridgeConfigurationError."""
    config = Config()
    config.reload(load_config_with_env(config_path))
    return config


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="Zulip <-> IRC bridge")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml; optional when env is complete)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        config = load_settings(args.config)
    except BridgeConfigurationError as exc:
        logger.error("Invalid configuration: {} ({})", exc, exc.code)
        sys.exit(1)
    logger.info("Config loaded (zulip={}, irc={})", config.zulip_site, config.irc_server)

    try:
        status = asyncio.run(_run(config))
    except BridgeConfigurationError as exc:
        logger.error("Startup failed: {} ({})", exc, exc.code)
        sys.exit(1)
    except HubError as exc:
        logger.error("Could not reach Zulip at startup: {}", exc)
        sys.exit(1)
    if status:
        sys.exit(status)


def _build_sink(config: Config) -> AlertSink:
    if config.ntfy_url:
        logger.info("Admin alerts go to {}", config.ntfy_url)
        return NtfySink(config.ntfy_url, token=config.ntfy_token)
    logger.warning("BRIDGE_NTFY_URL not set; admin alerts are only logged and sent on IRC")
    return LogSink()


async def _run(config: Config) -> int:
    """Build every component from config and run until SIGINT/SIGTERM.

    Returns the process exit status: non-zero when the Zulip event loop died.
    """
    zulip = ZulipClient(
        config.zulip_site,
        config.zulip_email,
        config.zulip_api_key,
        poll_timeout=config.poll_timeout,
    )
    try:
        subscriptions = await zulip.get_subscriptions()
        spaces = SpaceMapper.from_subscriptions(
            subscriptions,
            config.stream_channel_overrides,
            channel_prefix=config.channel_prefix,
        )
    except BaseException:
        await zulip.aclose()
        raise
    logger.info("Bridge ready: {} stream mappings", len(spaces))

    identity = BridgeIdentity(config.zulip_email, config.irc_nick)
    bus = Bus()
    irc = IRCAdapter(
        bus,
        identity,
        server=config.irc_server,
        port=config.irc_port,
        channels=spaces.channels(),
        tls=config.irc_tls,
        tls_verify=config.irc_tls_verify,
        sasl_username=config.irc_sasl_user if config.irc_use_sasl else None,
        sasl_password=config.irc_sasl_password if config.irc_use_sasl else None,
    )
    throttle = WindowThrottle(irc, config.irc_throttle_limit, config.irc_throttle_window)
    sink = _build_sink(config)
    alerter = AdminAlerter(sink, throttle, config.irc_admins)
    heartbeat = HeartbeatState()

    store = CursorStore(config.cursor_file) if config.cursor_file else None
    cursor = EventCursor(zulip, store=store)
    inbound = InboundRelay(
        cursor,
        spaces,
        throttle,
        identity,
        heartbeat,
        alerter,
        poll_backoff=config.poll_backoff,
        failure_cooldown=config.failure_cooldown,
        failure_threshold=config.failure_threshold,
    )
    outbound = OutboundRelay(zulip, spaces, identity, default_topic=config.default_topic)
    commands = CommandInterpreter(
        throttle,
        irc,
        sink,
        heartbeat,
        config.irc_admins,
        build_id=config.build_id,
    )
    bus.register(outbound)
    bus.register(commands)
    bus.register(LifecycleMonitor(alerter))

    liveness: LivenessReporter | None = None
    if config.liveness_url:
        liveness = LivenessReporter(
            config.liveness_url,
            interval=config.liveness_interval,
            method=config.liveness_method,
        )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    logger.info("Starting relays")
    outbound.start()
    await irc.start()
    if liveness:
        liveness.start()
    inbound_task = asyncio.create_task(inbound.run())

    stopped = asyncio.create_task(stop.wait())
    await asyncio.wait({inbound_task, stopped}, return_when=asyncio.FIRST_COMPLETED)
    crashed = inbound_task.done() and not inbound_task.cancelled() and inbound_task.exception() is not None
    if crashed:
        logger.opt(exception=inbound_task.exception()).error("Zulip event loop crashed")

    logger.info("Bridge shutting down")
    inbound.stop()
    inbound_task.cancel()
    stopped.cancel()
    await asyncio.gather(inbound_task, stopped, return_exceptions=True)
    cursor.checkpoint()
    if liveness:
        await liveness.stop()
    await outbound.stop()
    await irc.stop()
    if isinstance(sink, NtfySink):
        await sink.aclose()
    await zulip.aclose()
    return 1 if crashed else 0


if __name__ == "__main__":
    main()
