"""CLI entry point: argument parsing and dispatch."""

import argparse

from .dashboard import cmd_dashboard
from .peer import demo_topology


def cmd_devices(args):
    topology = demo_topology()
    for device in topology.devices.values():
        ports = [str(port.number) for port in device.ports if not port.logical]
        egress = len(topology.egress_links(device.id))
        print(f"{device.id}  {device.name:<10}  ports={','.join(ports)}  egress={egress}")


def main():
    parser = argparse.ArgumentParser(
        prog="topov",
        description="Topology overlay with selection-gated dialog chains",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (overrides [logging] level in config)",
    )
    sub = parser.add_subparsers(dest="cmd")

    p_devices = sub.add_parser("devices", help="List devices of the demo topology")
    p_devices.set_defaults(func=cmd_devices)

    p_dash = sub.add_parser("dashboard", aliases=["d"], help="Interactive dashboard")
    p_dash.set_defaults(func=cmd_dashboard)

    args = parser.parse_args()
    if hasattr(args, "func"):
        args.func(args)
    else:
        cmd_dashboard(args)
