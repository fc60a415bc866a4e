"""Command line entry for eventnet operators."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from eventnet.core.database import database_manager
from eventnet.core.exceptions import ApplicationError, NotFoundError, ValidationError
from eventnet.core.logging import configure_logging
from eventnet.core.observability import setup_tracing
from eventnet.knowledge.retrieval.router import RetrievalRouter
from eventnet.knowledge.vector.profiles import profile_indexer
from eventnet.members.pipeline import MemberPipeline
from eventnet.members.repository import MongoMemberRepository
from eventnet.members.roster import RosterAggregator
from eventnet.members.spreadsheet import parse_member_spreadsheet
from eventnet.models import MembershipSource
from eventnet.orchestration.assistant import EventAssistant
from eventnet.orchestration.hooks import post_commit_hooks

logger = logging.getLogger(__name__)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _load_rows(path: Path) -> List[Dict[str, Any]]:
    if path.suffix.lower() == ".json":
        rows = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(rows, list):
            raise ValidationError("JSON member file must contain an array of members", details={"path": str(path)})
        return rows
    return parse_member_spreadsheet(path)


async def import_members(args: argparse.Namespace) -> int:
    repository = MongoMemberRepository()
    pipeline = MemberPipeline(repository)
    rows = _load_rows(Path(args.path))
    summary = await pipeline.import_members(args.event_id, args.organizer, rows, MembershipSource(args.source))
    _emit(summary.model_dump(mode="json", exclude={"results"} if not args.verbose else None))
    return 0 if summary.failed == 0 else 1


async def roster(args: argparse.Namespace) -> int:
    participants = await RosterAggregator(MongoMemberRepository()).list_participants(args.event_id)
    _emit([participant.model_dump(mode="json") for participant in participants])
    return 0


async def ask(args: argparse.Namespace) -> int:
    repository = MongoMemberRepository()
    pipeline = MemberPipeline(repository)
    assistant = EventAssistant(RetrievalRouter(repository, pipeline.ledger))
    answer = await assistant.answer_question(args.event_id, args.question, args.identity)
    _emit(answer.model_dump(mode="json", exclude_none=True))
    return 0


async def index_event(args: argparse.Namespace) -> int:
    repository = MongoMemberRepository()
    event = await repository.get_event(args.event_id)
    if event is None:
        raise NotFoundError(f"Event {args.event_id} not found", details={"event_id": args.event_id})

    if args.purge:
        await profile_indexer.purge_event(event.id)
    report: Dict[str, Any] = {"event_id": event.id, "metadata": await profile_indexer.index_event_metadata(event)}
    documents = {}
    for raw_path in args.document or []:
        path = Path(raw_path)
        documents[path.name] = await profile_indexer.index_event_document(
            event.id, path.stem, path.read_text(encoding="utf-8")
        )
    report["documents"] = documents
    _emit(report)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eventnet", description="Event member identity and assistant tooling")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    importer = commands.add_parser("import-members", help="Bulk import members from .xlsx, .csv or .json")
    importer.add_argument("event_id")
    importer.add_argument("path")
    importer.add_argument("--organizer", default=None, help="Organizer id (defaults to the event creator)")
    importer.add_argument(
        "--source",
        default=MembershipSource.SPREADSHEET.value,
        choices=[source.value for source in MembershipSource],
    )
    importer.add_argument("--verbose", action="store_true", help="Include per-row results")
    importer.set_defaults(handler=import_members)

    roster_cmd = commands.add_parser("roster", help="Print the deduplicated roster of an event")
    roster_cmd.add_argument("event_id")
    roster_cmd.set_defaults(handler=roster)

    ask_cmd = commands.add_parser("ask", help="Ask the event assistant a question")
    ask_cmd.add_argument("event_id")
    ask_cmd.add_argument("question")
    ask_cmd.add_argument("--identity", default=None, help="Asking identity id (audit only)")
    ask_cmd.set_defaults(handler=ask)

    index_cmd = commands.add_parser("index-event", help="Embed event metadata and optional documents")
    index_cmd.add_argument("event_id")
    index_cmd.add_argument("--document", action="append", help="Plain-text document to chunk and index")
    index_cmd.add_argument("--purge", action="store_true", help="Delete existing event vectors first")
    index_cmd.set_defaults(handler=index_event)

    return parser


async def _run(handler: Callable[[argparse.Namespace], Awaitable[int]], args: argparse.Namespace) -> int:
    await database_manager.initialize()
    profile_indexer.register(post_commit_hooks)
    try:
        return await handler(args)
    finally:
        await post_commit_hooks.drain()
        await database_manager.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    setup_tracing()
    try:
        return asyncio.run(_run(args.handler, args))
    except ApplicationError as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
