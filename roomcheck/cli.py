"""CLI for Roomcheck: try the image pipeline, inspect flows, check links."""

from __future__ import annotations

import argparse
import asyncio
import base64
import sys
from pathlib import Path


async def cmd_compress(args):
    """Run one image through the attachment pipeline."""
    from roomcheck.config import get_settings
    from roomcheck.errors import AttachmentError
    from roomcheck.services.image_pipeline import ingest_image

    src = Path(args.image)
    if not src.is_file():
        print(f"No such file: {src}")
        sys.exit(1)

    cfg = get_settings().image_pipeline
    if args.max_width:
        cfg = cfg.model_copy(update={"max_width": args.max_width})
    data = src.read_bytes()
    try:
        att = await ingest_image("CLI", src.name, data, cfg)
    except AttachmentError as e:
        print(f"{e.message} ({e.detail})")
        sys.exit(1)

    jpeg = base64.standard_b64decode(att.encoded_data)
    print(f"{src.name}: {len(data) // 1024}KB -> {len(jpeg) // 1024}KB ({att.mime_type})")
    if args.out:
        Path(args.out).write_bytes(jpeg)
        print(f"Written to {args.out}")


async def cmd_inbox(args):
    """Print the task inbox with derived due labels and progress."""
    from roomcheck.config import get_settings
    from roomcheck.errors import BackendUnavailable
    from roomcheck.services.backend import get_backend
    from roomcheck.services.flow_aggregator import summarize_flow

    backend = get_backend(get_settings())
    try:
        inbox = await backend.list_tasks()
    except BackendUnavailable as e:
        print(f"Task inbox unavailable: {e}")
        sys.exit(1)
    finally:
        await backend.aclose()

    if not inbox.flows:
        print("No open flows.")
        return
    for flow in inbox.flows:
        view = summarize_flow(flow)
        tags = " ".join(f"[{t.type_label}:{t.tone}]" for t in view.tasks)
        flag = " ESCALATED" if view.escalated else ""
        print(f"{view.flow_id:<20} room {view.room_id:<8} {view.progress_percent:>3}%  {view.due_label:<18} {tags}{flag}")


async def cmd_resolve(args):
    """Resolve a flow id the way the entry link would."""
    from roomcheck.config import get_settings
    from roomcheck.services.backend import get_backend
    from roomcheck.services.resolution import resolve_workspace
    from roomcheck.services.variants import get_variant
    from roomcheck.services.workspace_store import Phase, WorkspaceStore

    settings = get_settings()
    variant = get_variant(args.variant or settings.variant, settings)
    backend = get_backend(settings, variant)
    ws = WorkspaceStore().create(variant, settings.checklist)
    try:
        await resolve_workspace(ws, args.flow_id, backend)
    finally:
        await backend.aclose()

    if ws.phase is Phase.ERROR:
        print(f"{args.flow_id}: {ws.error.reason.value}: {ws.error.message}")
        sys.exit(2)
    s = ws.session
    print(f"{s.flow_id}: building {s.building} floor {s.floor} room {s.room_id} ({s.status})")
    print(f"Checklist: {ws.form.total_areas} areas, view: {ws.view.value}")


def main():
    parser = argparse.ArgumentParser(description="Roomcheck CLI")
    subparsers = parser.add_subparsers(dest="command")

    # compress
    cp = subparsers.add_parser("compress", help="Compress an image the way attachments are")
    cp.add_argument("image", help="Path to an image file")
    cp.add_argument("--out", default="", help="Write the compressed JPEG here")
    cp.add_argument("--max-width", type=int, default=0, help="Override image_pipeline.max_width")

    # inbox
    subparsers.add_parser("inbox", help="List open flows from the configured backend")

    # resolve
    rs = subparsers.add_parser("resolve", help="Resolve a flow id")
    rs.add_argument("flow_id")
    rs.add_argument("--variant", default="", help="check_in or check_out (defaults to config)")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "compress":
        asyncio.run(cmd_compress(args))
    elif args.command == "inbox":
        asyncio.run(cmd_inbox(args))
    elif args.command == "resolve":
        asyncio.run(cmd_resolve(args))


if __name__ == "__main__":
    main()
