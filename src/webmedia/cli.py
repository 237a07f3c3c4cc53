from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import click

from .config import LOG_LEVELS, AppSettings, load_settings
from .controller import ResourceController
from .fetch.fetcher import ResourceFetcher
from .fetch.xmds import XmdsClient
from .util.http import create_session
from .util.logging import setup_logging

LOGGER = logging.getLogger(__name__)


def _parse_options(pairs: Tuple[str, ...]) -> Dict[str, str]:
    options: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--option")
        options[key.strip()] = value
    return options


def build_controller(settings: AppSettings, fetcher: ResourceFetcher, **callbacks: Any) -> ResourceController:
    media = settings.media
    return ResourceController(
        policy=media.cache_policy(settings.player),
        presentation=media.presentation(),
        identity=media.identity(settings.player),
        fetcher=fetcher,
        default_duration=media.duration,
        native_path=media.native_path if media.native_open else None,
        **callbacks,
    )


def run_once(settings: AppSettings, wait: Optional[float] = None) -> Dict[str, Any]:
    """Activate a single element and block until it is ready or expired."""
    session = create_session(settings.player.user_agent, timeout=settings.player.request_timeout)
    client = XmdsClient(session, settings.player.xmds_url, timeout=settings.player.request_timeout)
    fetcher = ResourceFetcher(client)
    done = threading.Event()
    outcome: Dict[str, Any] = {"status": "pending", "path": None, "duration": None}

    def on_ready(path: str, override: Optional[int]) -> None:
        outcome.update(status="ready", path=path, duration=override if override is not None else settings.media.duration)
        done.set()

    def on_expired(forced: int) -> None:
        outcome.update(status="expired", duration=forced)
        done.set()

    controller = build_controller(settings, fetcher, on_ready=on_ready, on_expired=on_expired)
    try:
        controller.activate()
        if not done.wait(wait):
            LOGGER.warning("Gave up waiting for media %s", settings.media.media_id)
    finally:
        controller.teardown()
        fetcher.close()
        session.close()
    return outcome


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--layout-id", required=True, help="Layout the element belongs to")
@click.option("--region-id", required=True, help="Region the element belongs to")
@click.option("--media-id", required=True, help="Media identifier; names the cached file")
@click.option("--mode-id", type=str, help="Set to 1 to open --uri directly without caching")
@click.option("--uri", type=str, help="Address opened in native mode")
@click.option("--update-interval", type=int, help="Minutes before the cached copy is refreshed (0 = always)")
@click.option("--layout-modified", type=str, help="Timestamp the layout was last modified")
@click.option("--width", type=int, help="Region width, substituted for the viewport width")
@click.option("--height", type=int, help="Region height")
@click.option("--background-color", type=str, help="Region background colour")
@click.option("--background-image", type=str, help="Region background image path")
@click.option("--background-left", type=int, help="Background image x offset (px)")
@click.option("--background-top", type=int, help="Background image y offset (px)")
@click.option("--duration", type=int, help="Default duration in seconds")
@click.option("--option", "option_pairs", multiple=True, help="Extra media option as KEY=VALUE")
@click.option("--xmds-url", type=str, help="Display service endpoint")
@click.option("--server-key", type=str, help="CMS server key")
@click.option("--hardware-key", type=str, help="Display hardware key")
@click.option("--library-path", type=click.Path(path_type=str), help="Library directory")
@click.option("--logs-dir", type=click.Path(path_type=str), help="Log directory")
@click.option("--timeout", "request_timeout", type=float, help="Request timeout in seconds")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Root log level")
@click.option("--wait", type=float, default=None, help="Seconds to wait for the element to resolve")
def main(option_pairs: Tuple[str, ...], wait: Optional[float], **kwargs):
    """Activate one cached web media element and report how it resolved."""
    kwargs["options"] = _parse_options(option_pairs)
    settings = load_settings(kwargs)
    setup_logging(settings.player.logs_dir, settings.player.log_level)
    outcome = run_once(settings, wait=wait)
    click.echo(json.dumps(outcome, indent=2))
    if outcome["status"] != "ready":
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
