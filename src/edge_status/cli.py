"""
EdgeStatus Command Line Interface.

Commands: status, countdown, serve, demo
"""

from __future__ import annotations

import time

import click

from . import __version__
from .client import InMemoryControlPlaneClient
from .config import load_settings
from .events import PostureChange, StatusChange
from .identity import IdentityRegistry
from .log import configure_logging
from .status import present_identity
from .timeout import Ticker, TimeoutTracker


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, help="YAML settings file")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None):
    """EdgeStatus: identity session timeout and posture tracking"""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    configure_logging(settings.log_level, settings.log_file)
    ctx.obj = settings


def _echo_identity(identity) -> None:
    display = present_identity(identity)
    count = display.service_count_label if display.service_count_label is not None else "MFA"
    click.echo(f"  {identity.name:24s} {display.toggle_label:8s} services={count:>3s} badge={display.badge_text}")
    if display.show_countdown:
        click.echo(f"      {identity.timeout_message}")
    if display.posture_warning:
        click.echo("      posture check failing")


@cli.command()
@click.option("--file", "records_file", required=True, type=click.Path(exists=True), help="YAML or JSON identity records")
@click.pass_obj
def status(settings, records_file: str):
    """Show display status for identity records in a file."""
    registry = IdentityRegistry(client=InMemoryControlPlaneClient.from_file(records_file), settings=settings)
    identities = registry.refresh()
    click.echo(f"--- Identities ({len(identities)}) ---")
    for identity in identities:
        _echo_identity(identity)
    registry.close()


@cli.command()
@click.option("--min-timeout", default=1265, help="Seconds until the first service times out")
@click.option("--max-timeout", default=-1, help="Seconds until the session expires")
@click.option("--ticks", default=10, help="Number of one-second ticks to simulate")
@click.pass_obj
def countdown(settings, min_timeout: int, max_timeout: int, ticks: int):
    """Simulate an authenticated session counting down."""
    tracker = TimeoutTracker(
        "simulated",
        mfa_enabled=True,
        authenticated=True,
        min_timeout=min_timeout,
        max_timeout=max_timeout,
        warning_window=settings.warning_window,
        strict=settings.strict_timers,
    )
    for i in range(1, ticks + 1):
        state = tracker.tick()
        message = tracker.timeout_message or "-"
        click.echo(f"  t+{i:<4d} {state.value:24s} {message}")
    click.echo(f"Final state: {tracker.state.value}")


@cli.command()
@click.option("--file", "records_file", default=None, type=click.Path(exists=True), help="YAML or JSON identity records")
@click.option("--host", default="127.0.0.1", help="API host")
@click.option("--port", default=5000, help="API port")
@click.pass_obj
def serve(settings, records_file: str | None, host: str, port: int):
    """Run the REST API with a live one-second ticker."""
    from .api import create_app

    client = InMemoryControlPlaneClient.from_file(records_file) if records_file else InMemoryControlPlaneClient()
    registry = IdentityRegistry(client=client, settings=settings)
    registry.refresh()
    ticker = Ticker(registry.tick, interval=settings.tick_interval)
    ticker.start()

    click.echo(f"[*] Starting EdgeStatus API on {host}:{port}")
    try:
        create_app(registry).run(host=host, port=port)
    finally:
        ticker.stop()
        registry.close()


@cli.command()
def demo():
    """Run a complete identity timeout scenario."""
    click.echo("=" * 60)
    click.echo("  EdgeStatus  -  Demo Scenario")
    click.echo("=" * 60)

    now = time.time()
    client = InMemoryControlPlaneClient([
        {
            "name": "corp-laptop", "fingerprint": "fp-corp", "active": True,
            "controller": "https://ctrl.corp.io:1280", "controllerVersion": "v0.19.0",
            "mfaEnabled": True, "mfaNeeded": False, "minTimeout": 1262, "maxTimeout": 5,
            "lastUpdated": now,
            "services": [
                {"name": "wiki", "id": "svc-1", "timeoutRemaining": 1262},
                {"name": "ssh", "id": "svc-2", "timeoutRemaining": -1,
                 "postureChecks": [{"id": "pc-1", "queryType": "OS", "isPassing": False}]},
            ],
        },
        {
            "name": "", "fingerprint": "fp-home", "active": False, "mfaEnabled": False,
            "lastUpdated": now, "services": [{"name": "nas", "id": "svc-3"}],
        },
    ], mfa_codes={"fp-corp": "123456"})

    registry = IdentityRegistry(client=client)
    registry.events.subscribe(PostureChange, lambda e: click.echo(f"    [posture] {e.name}: failing={e.failing}"))
    registry.events.subscribe(StatusChange, lambda e: click.echo(f"    [status] {e.fingerprint}: {e.status.badge_text}"))

    click.echo("\n[1/4] Loading identities...")
    for identity in registry.refresh():
        _echo_identity(identity)

    click.echo("\n[2/4] Ticking until the session expires...")
    for _ in range(5):
        registry.tick()
    corp = registry.get_identity("fp-corp")
    click.echo(f"    state={registry.get_tracker('fp-corp').state.value} message={corp.timeout_message!r}")

    click.echo("\n[3/4] Re-authenticating...")
    registry.request_authentication("fp-corp", "123456").result(timeout=5)
    _echo_identity(registry.get_identity("fp-corp"))

    click.echo("\n[4/4] Summary")
    for key, value in registry.summary().items():
        click.echo(f"    {key}: {value}")
    registry.close()

    click.echo("\n" + "=" * 60)
    click.echo("  Demo complete.")
    click.echo("=" * 60)


def main():
    cli()


if __name__ == "__main__":
    main()
