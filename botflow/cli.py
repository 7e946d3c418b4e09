"""
Command-line interface for botflow.

Usage:
    botflow flows --waba 1234567890
    botflow create-flow "Property Bot" --waba 1234567890
    botflow follow-up 65f0c2 --enable --delay 30 --message "Still looking?"
    botflow pull 65f0c2 -o ./property_bot.json
    botflow push ./property_bot.json
    botflow render ./property_bot.json -o ./build/ --format mermaid
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from botflow.backend.graphviz import GraphvizExporter
from botflow.backend.layout import GraphvizLayout
from botflow.backend.mermaid import MermaidExporter
from botflow.backend.svg import SvgExporter
from botflow.client import FlowApiClient
from botflow.config import Config, load_config, save_config
from botflow.core.ir import FlowGraph
from botflow.core.serialization import JsonSerializer
from botflow.exceptions import BotFlowError, NotFoundError, StaleFlowError, SyncError
from botflow.sync import FlowSync

logger = logging.getLogger(__name__)

FORMATS = ["mermaid", "graphviz", "dot", "svg", "json"]


def make_client(config: Config) -> FlowApiClient:
    return FlowApiClient.from_config(config)


def configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)


def render_graph(graph: FlowGraph, output_path: Path, format: str, direction: str = "LR") -> Path:
    """Write a flow graph in the given format into output_path."""
    if format == "mermaid":
        content = MermaidExporter.to_mermaid(graph, direction=direction)
        ext = ".mmd"
    elif format == "graphviz" or format == "dot":
        content = GraphvizExporter.to_digraph(graph, direction=direction).source
        ext = ".dot"
    elif format == "svg":
        content = SvgExporter.to_svg(graph)
        ext = ".svg"
    elif format == "json":
        content = JsonSerializer.to_json(graph)
        ext = ".json"
    else:
        raise ValueError(f"Unknown format: {format}. Use: {', '.join(FORMATS)}")

    # Sanitize the flow id for use as filename
    safe_name = (graph.flow_id or "flow").lower().replace(" ", "_").replace("/", "_")
    safe_name = "".join(c for c in safe_name if c.isalnum() or c in "_-")

    output_file = output_path / f"{safe_name}{ext}"
    output_file.write_text(content, encoding="utf-8")
    return output_file


def read_graph(path: Path) -> FlowGraph:
    return JsonSerializer.from_json(path.read_text(encoding="utf-8"))


def write_graph(graph: FlowGraph, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(JsonSerializer.to_json(graph), encoding="utf-8")


def _waba(args, config: Config) -> str:
    waba = args.waba or config.waba_account
    if not waba:
        raise ValueError("No WABA account given; pass --waba or set BOTFLOW_WABA_ACCOUNT.")
    return waba


def cmd_configure(args, config: Config) -> int:
    # Start from the file alone so BOTFLOW_* values are not written to it.
    config = load_config(args.config, apply_env=False)
    if args.api_url:
        config.api_base_url = args.api_url
    if args.token:
        config.api_token = args.token
    if args.waba:
        config.waba_account = args.waba
    path = save_config(config, args.config)
    print(f"Saved configuration to {path}")
    return 0


def cmd_flows(args, config: Config) -> int:
    with make_client(config) as client:
        flows = client.list_flows(_waba(args, config))
    if not flows:
        print("No flows found.")
        return 0
    for flow in flows:
        follow_up = " (follow-up on)" if flow.completion_follow_up_enabled else ""
        print(f"{flow.identity}  {flow.name}{follow_up}")
    return 0


def cmd_create_flow(args, config: Config) -> int:
    with make_client(config) as client:
        flow = client.create_flow(args.name, _waba(args, config))
    print(f"Created flow '{flow.name}' ({flow.identity})")
    return 0


def cmd_delete_flow(args, config: Config) -> int:
    with make_client(config) as client:
        client.delete_flow(args.flow_id)
    print(f"Deleted flow {args.flow_id}")
    return 0


def cmd_follow_up(args, config: Config) -> int:
    with make_client(config) as client:
        flows = client.list_flows(_waba(args, config))
        flow = next((f for f in flows if f.identity == args.flow_id), None)
        if flow is None:
            raise NotFoundError(f"Flow {args.flow_id} not found")
        if args.enable is not None:
            flow.completion_follow_up_enabled = args.enable
        if args.delay is not None:
            if args.delay < 1:
                raise ValueError("Follow-up delay must be at least 1 minute.")
            flow.completion_follow_up_delay = args.delay
        if args.message is not None:
            flow.completion_follow_up_message = args.message
        flow = client.update_flow(flow)
    state = "on" if flow.completion_follow_up_enabled else "off"
    print(f"Follow-up for {flow.name} is {state} ({flow.completion_follow_up_delay} min)")
    return 0


def cmd_pull(args, config: Config) -> int:
    layout = None if args.no_layout else GraphvizLayout(direction=config.layout_direction)
    with make_client(config) as client:
        graph = FlowSync(client, args.flow_id, layout=layout).load()
    output = args.output or Path(f"{args.flow_id}.json")
    write_graph(graph, output)
    if args.verbose:
        print(f"Pulled {len(graph.nodes)} nodes, {len(graph.edges)} edges -> {output}")
    else:
        print(output)
    return 0


def cmd_push(args, config: Config) -> int:
    graph = read_graph(args.input)
    flow_id = args.flow or graph.flow_id
    if not flow_id:
        raise ValueError(f"{args.input} names no flow; pass --flow.")
    graph.flow_id = flow_id

    layout = GraphvizLayout(direction=config.layout_direction) if args.layout else None
    with make_client(config) as client:
        result = FlowSync(client, flow_id, layout=layout).save(graph, force=args.force)

    # Keep the file in step with the server so it can be pushed again
    write_graph(result.graph, args.input)
    print(f"Saved flow {flow_id}: {result.updated} updated, {result.created} created, {result.deleted} deleted")
    return 0


def cmd_render(args, config: Config) -> int:
    source = Path(args.source)
    if source.is_file():
        graph = read_graph(source)
    else:
        with make_client(config) as client:
            graph = FlowSync(client, args.source).load()
    args.output.mkdir(parents=True, exist_ok=True)
    print(render_graph(graph, args.output, args.format, direction=config.layout_direction))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="botflow",
        description="Edit WhatsApp Business bot flows from the command line.",
        epilog="Example: botflow pull 65f0c2 -o ./property_bot.json"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Configuration file (default: ~/.botflow/config.json)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Verbose output (repeat for debug logging)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("configure", help="Store API settings")
    p.add_argument("--api-url", help="Backend base URL")
    p.add_argument("--token", help="API bearer token")
    p.add_argument("--waba", help="Default WABA account")
    p.set_defaults(func=cmd_configure)

    p = sub.add_parser("flows", help="List the flows of a WABA account")
    p.add_argument("--waba", help="WABA account (default: from config)")
    p.set_defaults(func=cmd_flows)

    p = sub.add_parser("create-flow", help="Create an empty flow")
    p.add_argument("name", help="Flow name")
    p.add_argument("--waba", help="WABA account (default: from config)")
    p.set_defaults(func=cmd_create_flow)

    p = sub.add_parser("delete-flow", help="Delete a flow and all of its nodes")
    p.add_argument("flow_id")
    p.set_defaults(func=cmd_delete_flow)

    p = sub.add_parser("follow-up", help="Change the message sent after a user finishes a flow")
    p.add_argument("flow_id")
    p.add_argument("--waba", help="WABA account (default: from config)")
    p.add_argument("--enable", dest="enable", action="store_true", default=None, help="Turn the follow-up on")
    p.add_argument("--disable", dest="enable", action="store_false", help="Turn the follow-up off")
    p.add_argument("--delay", type=int, help="Minutes to wait after the flow completes")
    p.add_argument("--message", help="Follow-up message text")
    p.set_defaults(func=cmd_follow_up)

    p = sub.add_parser("pull", help="Download a flow as an editable graph file")
    p.add_argument("flow_id")
    p.add_argument("-o", "--output", type=Path, help="Output file (default: <flow_id>.json)")
    p.add_argument("--no-layout", action="store_true", help="Skip automatic layout")
    p.set_defaults(func=cmd_pull)

    p = sub.add_parser("push", help="Save an edited graph file back to its flow")
    p.add_argument("input", type=Path, help="Graph file written by pull")
    p.add_argument("--flow", help="Flow id (default: the one recorded in the file)")
    p.add_argument("--force", action="store_true", help="Overwrite changes made on the server since pull")
    p.add_argument("--layout", action="store_true", help="Lay out nodes created by the save")
    p.set_defaults(func=cmd_push)

    p = sub.add_parser("render", help="Render a flow or graph file as a diagram")
    p.add_argument("source", help="Flow id or graph file")
    p.add_argument("-o", "--output", type=Path, default=Path("."),
                   help="Output directory (default: current directory)")
    p.add_argument("-f", "--format", choices=FORMATS, default="mermaid",
                   help="Output format (default: mermaid)")
    p.set_defaults(func=cmd_render)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    config = load_config(args.config)

    try:
        return args.func(args, config)
    except StaleFlowError as e:
        print(f"Error: {e}. Use --force to overwrite.", file=sys.stderr)
    except SyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        for failure in e.rollback_errors:
            print(f"  could not undo: {failure}", file=sys.stderr)
    except (BotFlowError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
