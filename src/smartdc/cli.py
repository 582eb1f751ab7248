"""Command line interface for SmartDataCenter CloudAPI."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from smartdc import __version__
from smartdc.agent import SSHAgent
from smartdc.client import CloudAPI
from smartdc.errors import CloudAPIError, ConfigError, SigningError, TransportError
from smartdc.settings import Settings

Handler = Callable[[CloudAPI, argparse.Namespace], Awaitable[Any]]


class CLIError(RuntimeError):
    """Raised for invalid command arguments."""


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, sort_keys=True, indent=2))


def _filters(args: argparse.Namespace) -> dict[str, Any]:
    """Collect ``key=value`` filter arguments."""
    filters: dict[str, Any] = {}
    for item in getattr(args, "filter", None) or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise CLIError(f"invalid filter {item!r}; expected key=value")
        filters[key] = value
    return filters


def _tags(args: argparse.Namespace) -> dict[str, str] | str | None:
    raw = getattr(args, "tag", None) or []
    if "*" in raw:
        return "*"
    tags: dict[str, str] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise CLIError(f"invalid tag {item!r}; expected key=value")
        tags[key] = value
    return tags or None


async def _cmd_getaccount(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_account()


async def _cmd_listkeys(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_keys(no_cache=True)


async def _cmd_getkey(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_key(args.key, no_cache=True)


async def _cmd_deletekey(client: CloudAPI, args: argparse.Namespace) -> Any:
    await client.delete_key(args.key)
    return None


async def _cmd_listpackages(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_packages()


async def _cmd_getpackage(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_package(args.package)


async def _cmd_listimages(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_images(_filters(args) or None)


async def _cmd_getimage(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_image(args.image)


async def _cmd_listdatacenters(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_datacenters()


async def _cmd_listmachines(client: CloudAPI, args: argparse.Namespace) -> Any:
    filters = _filters(args)
    tags = _tags(args)
    machines: list[Any] = []
    while True:
        page, done = await client.list_machines(filters or None, tags=tags)
        machines.extend(page or [])
        if done or not page or not args.all:
            return machines
        filters["offset"] = len(machines)


async def _cmd_countmachines(client: CloudAPI, args: argparse.Namespace) -> Any:
    count, _ = await client.count_machines(_filters(args) or None, tags=_tags(args))
    return {"count": count}


async def _cmd_getmachine(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_machine(args.machine, credentials=args.credentials)


async def _cmd_deletemachine(client: CloudAPI, args: argparse.Namespace) -> Any:
    await client.delete_machine(args.machine)
    return None


async def _cmd_startmachine(client: CloudAPI, args: argparse.Namespace) -> Any:
    await client.start_machine(args.machine)
    return None


async def _cmd_stopmachine(client: CloudAPI, args: argparse.Namespace) -> Any:
    await client.stop_machine(args.machine)
    return None


async def _cmd_rebootmachine(client: CloudAPI, args: argparse.Namespace) -> Any:
    await client.reboot_machine(args.machine)
    return None


async def _cmd_listmachinesnapshots(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_machine_snapshots(args.machine)


async def _cmd_listmachinetags(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_machine_tags(args.machine)


async def _cmd_getmachinemetadata(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_machine_metadata(args.machine, credentials=args.credentials)


async def _cmd_listnetworks(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_networks()


async def _cmd_getnetwork(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_network(args.network)


async def _cmd_listfabricvlans(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_fabric_vlans()


async def _cmd_getfabricvlan(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_fabric_vlan(args.vlan_id)


async def _cmd_listfabricnetworks(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.list_fabric_networks(args.vlan_id)


async def _cmd_getconfig(client: CloudAPI, args: argparse.Namespace) -> Any:
    return await client.get_config()


def _add_machine_command(
    subparsers: argparse._SubParsersAction, name: str, help_text: str, handler: Handler
) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=help_text)
    parser.add_argument("machine", help="Machine id.")
    parser.set_defaults(func=handler)
    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sdc", description="SmartDataCenter CloudAPI client.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--url", "-u", default="", help="CloudAPI URL (env SDC_URL).")
    parser.add_argument("--account", "-a", default="", help="Account login (env SDC_ACCOUNT).")
    parser.add_argument("--user", "-A", default="", help="Account sub-user (env SDC_USER).")
    parser.add_argument(
        "--keyId", "-k", dest="key_id", default="", help="Key fingerprint (env SDC_KEY_ID)."
    )
    parser.add_argument(
        "--identity", "-i", default="", help="Private key file (env SDC_IDENTITY)."
    )
    parser.add_argument("--debug", "-d", action="store_true", help="Log requests to stderr.")

    subparsers = parser.add_subparsers(dest="command")

    getaccount = subparsers.add_parser("getaccount", help="Show the account.")
    getaccount.set_defaults(func=_cmd_getaccount)

    listkeys = subparsers.add_parser("listkeys", help="List SSH keys.")
    listkeys.set_defaults(func=_cmd_listkeys)
    for name, handler, help_text in (
        ("getkey", _cmd_getkey, "Show one SSH key."),
        ("deletekey", _cmd_deletekey, "Delete one SSH key."),
    ):
        key_parser = subparsers.add_parser(name, help=help_text)
        key_parser.add_argument("key", help="Key name or fingerprint.")
        key_parser.set_defaults(func=handler)

    listpackages = subparsers.add_parser("listpackages", help="List packages.")
    listpackages.set_defaults(func=_cmd_listpackages)
    getpackage = subparsers.add_parser("getpackage", help="Show one package.")
    getpackage.add_argument("package", help="Package name or id.")
    getpackage.set_defaults(func=_cmd_getpackage)

    listimages = subparsers.add_parser("listimages", help="List images.")
    listimages.add_argument(
        "--filter", "-f", action="append", default=[], help="Filter as key=value."
    )
    listimages.set_defaults(func=_cmd_listimages)
    getimage = subparsers.add_parser("getimage", help="Show one image.")
    getimage.add_argument("image", help="Image id.")
    getimage.set_defaults(func=_cmd_getimage)

    listdatacenters = subparsers.add_parser("listdatacenters", help="List datacenters.")
    listdatacenters.set_defaults(func=_cmd_listdatacenters)

    for name, handler, help_text in (
        ("listmachines", _cmd_listmachines, "List machines."),
        ("countmachines", _cmd_countmachines, "Count machines."),
    ):
        listing = subparsers.add_parser(name, help=help_text)
        listing.add_argument(
            "--filter", "-f", action="append", default=[], help="Filter as key=value."
        )
        listing.add_argument(
            "--tag", "-t", action="append", default=[], help="Tag as key=value, or '*'."
        )
        if name == "listmachines":
            listing.add_argument(
                "--all", action="store_true", help="Follow pagination until done."
            )
        listing.set_defaults(func=handler)

    getmachine = _add_machine_command(
        subparsers, "getmachine", "Show one machine.", _cmd_getmachine
    )
    getmachine.add_argument(
        "--credentials", action="store_true", help="Include generated credentials."
    )
    _add_machine_command(subparsers, "deletemachine", "Delete a machine.", _cmd_deletemachine)
    _add_machine_command(subparsers, "startmachine", "Start a machine.", _cmd_startmachine)
    _add_machine_command(subparsers, "stopmachine", "Stop a machine.", _cmd_stopmachine)
    _add_machine_command(subparsers, "rebootmachine", "Reboot a machine.", _cmd_rebootmachine)
    _add_machine_command(
        subparsers, "listmachinesnapshots", "List machine snapshots.", _cmd_listmachinesnapshots
    )
    _add_machine_command(
        subparsers, "listmachinetags", "List machine tags.", _cmd_listmachinetags
    )
    getmetadata = _add_machine_command(
        subparsers, "getmachinemetadata", "Show machine metadata.", _cmd_getmachinemetadata
    )
    getmetadata.add_argument(
        "--credentials", action="store_true", help="Include generated credentials."
    )

    listnetworks = subparsers.add_parser("listnetworks", help="List networks.")
    listnetworks.set_defaults(func=_cmd_listnetworks)
    getnetwork = subparsers.add_parser("getnetwork", help="Show one network.")
    getnetwork.add_argument("network", help="Network id.")
    getnetwork.set_defaults(func=_cmd_getnetwork)

    listfabricvlans = subparsers.add_parser("listfabricvlans", help="List fabric VLANs.")
    listfabricvlans.set_defaults(func=_cmd_listfabricvlans)
    getfabricvlan = subparsers.add_parser("getfabricvlan", help="Show one fabric VLAN.")
    getfabricvlan.add_argument("vlan_id", help="VLAN id.")
    getfabricvlan.set_defaults(func=_cmd_getfabricvlan)
    listfabricnetworks = subparsers.add_parser(
        "listfabricnetworks", help="List fabric networks."
    )
    listfabricnetworks.add_argument("--vlan-id", default=None, help="Restrict to one VLAN.")
    listfabricnetworks.set_defaults(func=_cmd_listfabricnetworks)

    getconfig = subparsers.add_parser("getconfig", help="Show account configuration.")
    getconfig.set_defaults(func=_cmd_getconfig)
    return parser


def _settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "url": args.url,
        "account": args.account,
        "user": args.user,
        "key_id": args.key_id,
        "identity": args.identity,
    }
    values: dict[str, Any] = {key: value for key, value in overrides.items() if value}
    if args.debug:
        values["log_level"] = "debug"
    return Settings(**values)


def _open_client(settings: Settings, agent: SSHAgent | None) -> CloudAPI:
    return CloudAPI(settings.client_options(agent=agent))


async def _run(args: argparse.Namespace, settings: Settings) -> Any:
    agent = SSHAgent() if os.environ.get("SSH_AUTH_SOCK") else None
    try:
        async with _open_client(settings, agent) as client:
            return await args.func(client, args)
    finally:
        if agent is not None:
            agent.close()


def _error_code(exc: Exception) -> str:
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    status = getattr(exc, "status_code", None)
    return str(status) if status else "Unknown"


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        settings = _settings(args)
        result = asyncio.run(_run(args, settings))
    except ConfigError as exc:
        print(f"sdc: {exc}", file=sys.stderr)
        return 1
    except SigningError as exc:
        print(f"sdc: unable to load signing key: {exc}", file=sys.stderr)
        return 2
    except CLIError as exc:
        print(f"sdc: {exc}", file=sys.stderr)
        return 2
    except (CloudAPIError, TransportError, TypeError, ValueError) as exc:
        if getattr(exc, "status_code", None) == 410:
            print("Object is Gone (410)", file=sys.stderr)
        else:
            print(f"sdc: error ({_error_code(exc)}): {exc}", file=sys.stderr)
        return 3
    if result is not None:
        _print_json(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
