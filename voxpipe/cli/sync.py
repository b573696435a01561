# =============================================================================
# voxpipe/cli/sync.py: on-demand conversation sync
# =============================================================================
#
# Runs one sync for an organization against the voice API, the same way the
# POST /api/v1/sync endpoint does, under the configured deadline.  Optional
# flags store the organization's API key and register agents first, which is
# enough to bootstrap a fresh database from the command line.
# =============================================================================

"""Sync an organization's voice-agent conversations into local storage.

Usage::

    python -m voxpipe.cli.sync --organization-id org_1

    python -m voxpipe.cli.sync --organization-id org_1 \\
        --api-key xi-... --agent agent_abc123:Reception
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from typing import Any

from voxpipe.config.loader import load_config
from voxpipe.config.settings import Settings


def _parse_agent_arg(raw: str) -> tuple[str, str]:
    """Split ``EXTERNAL_ID[:NAME]`` into its parts."""
    external_id, _, name = raw.partition(":")
    external_id = external_id.strip()
    if not external_id:
        raise argparse.ArgumentTypeError(f"invalid --agent value: {raw!r}")
    return external_id, name.strip() or external_id


async def _register(components: dict[str, Any], args: argparse.Namespace) -> None:
    from voxpipe.models.storage import ACTIVE_STATUS, Agent, Credential

    storage = components["storage"]
    if args.api_key:
        await storage.upsert_integration(
            Credential(
                organization_id=args.organization_id,
                provider="elevenlabs",
                api_key=args.api_key,
                status=ACTIVE_STATUS,
            )
        )
        print("Stored elevenlabs credential.")

    known = {agent.external_agent_id for agent in await storage.get_agents(args.organization_id)}
    for external_id, name in args.agent or []:
        if external_id in known:
            continue
        await storage.create_agent(
            Agent(
                id=uuid.uuid4().hex,
                organization_id=args.organization_id,
                name=name,
                external_agent_id=external_id,
            )
        )
        print(f"Registered agent {name} ({external_id}).")


async def _handle_sync(args: argparse.Namespace) -> int:
    from voxpipe.bootstrap import build_components, start_components, stop_components
    from voxpipe.utils.errors import VoxpipeError
    from voxpipe.utils.logging import configure_logging

    settings = Settings()
    configure_logging(log_level=settings.log_level)
    components = build_components(settings, load_config(settings=settings))
    timeout = args.timeout or settings.sync_timeout_seconds

    await start_components(components)
    try:
        await _register(components, args)
        result = await asyncio.wait_for(
            components["sync_service"].sync(args.organization_id),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        print(f"Error: sync did not finish within {timeout:.0f}s", file=sys.stderr)
        return 2
    except VoxpipeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await stop_components(components)

    print(result.message)
    print(f"  Synced:        {result.total_synced}")
    print(f"  Skipped:       {result.total_skipped}")
    print(f"  Errors:        {result.total_errors}")
    print(f"  Failed agents: {result.failed_agents}")
    return 0 if result.total_errors == 0 and result.failed_agents == 0 else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voxpipe-sync",
        description="Sync voice-agent conversations for an organization.",
    )
    parser.add_argument("--organization-id", required=True)
    parser.add_argument(
        "--api-key",
        default=None,
        help="Store this ElevenLabs API key for the organization before syncing",
    )
    parser.add_argument(
        "--agent",
        action="append",
        type=_parse_agent_arg,
        metavar="EXTERNAL_ID[:NAME]",
        help="Register an agent before syncing (repeatable)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Deadline in seconds (defaults to SYNC_TIMEOUT_SECONDS)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    sys.exit(asyncio.run(_handle_sync(args)))


if __name__ == "__main__":
    main()
