"""MCP Server for wei.

Exposes the people list to AI agents as MCP tools. Uses the same database
as the REST API.

Transport Support:
- stdio: Standard input/output (local process communication)
- sse: Server-Sent Events over HTTP (network access)
"""

import os
from functools import lru_cache
from typing import Optional, Tuple

from mcp.server.fastmcp import FastMCP

import database
from config import settings
from contact_store import ContactStore, ErrorKind
from logger_config import setup_logger
from notifications import NotificationCenter, request_from_row
from reminder_scheduler import ReminderScheduler
from schemas import render_name

logger = setup_logger(__name__, 'mcp.log')

mcp = FastMCP(
    "wei",
    host=settings.MCP_HOST,
    port=settings.MCP_PORT
)


@lru_cache(maxsize=1)
def get_services() -> Tuple[ContactStore, ReminderScheduler, NotificationCenter]:
    """Store, scheduler and notification center sharing one database."""
    session_factory = database.build_session_factory()
    center = NotificationCenter(session_factory)
    return ContactStore(session_factory), ReminderScheduler(center), center


@mcp.tool()
def list_people() -> str:
    """List people to reach out to, the one contacted longest ago first.

    Returns:
        Numbered list of people with their IDs, or a message if the list is empty
    """
    store, _, _ = get_services()
    people = store.list()
    if not people:
        return "Nobody on the list yet."

    result = [f"{len(people)} people on the list:\n"]
    for position, person in enumerate(people, start=1):
        result.append(
            f"{position}. {render_name(person.name)}\n"
            f"   ID: {person.id}\n"
            f"   Last touched: {person.sort_order.strftime('%Y-%m-%d %H:%M %Z')}"
        )
    return "\n".join(result)


@mcp.tool()
def add_person(name: Optional[str] = None) -> str:
    """Add a person and schedule a weekly reminder to reach out to them.

    Args:
        name: Person's name (optional)

    Returns:
        Success message with the person's ID, or error message
    """
    store, scheduler, _ = get_services()
    logger.info("📝 Adding person")

    result = store.create(name)
    if not result.ok:
        return f"✗ Error adding person: {result.error}"

    request = scheduler.schedule_reminder(name)
    reminder_line = (
        f"Reminder: {request.identifier}" if request is not None
        else "Reminder: not scheduled (see logs)"
    )
    return (
        f"✓ Added {render_name(result.value.name)}\n"
        f"ID: {result.value.id}\n"
        f"{reminder_line}"
    )


@mcp.tool()
def mark_reached_out(person_id: str) -> str:
    """Mark a person as contacted; they move to the bottom of the list.

    Args:
        person_id: Person UUID
    """
    store, _, _ = get_services()
    result = store.touch(person_id)
    if result.ok:
        return f"✓ {render_name(result.value.name)} moved to the bottom of the list."
    if result.kind is ErrorKind.NOT_FOUND:
        return "✗ Person not found."
    return f"✗ Error updating person: {result.error}"


@mcp.tool()
def remove_person(person_id: str) -> str:
    """Remove a person from the list permanently.

    Args:
        person_id: Person UUID
    """
    store, _, _ = get_services()
    result = store.delete(person_id)
    if not result.ok:
        return f"✗ Error removing person: {result.error}"
    if result.value:
        return f"✓ Person {person_id} removed."
    return "✗ Person not found."


@mcp.tool()
def list_pending_reminders() -> str:
    """List reminders waiting to fire, soonest first."""
    _, _, center = get_services()
    pending = center.pending_requests()
    if not pending:
        return "No pending reminders."

    result = [f"⏰ {len(pending)} pending reminder(s):\n"]
    for row in pending:
        request = request_from_row(row)
        who = render_name(request.user_info.get("contact_name"))
        result.append(
            f"\n• {request.content.title} ({who})\n"
            f"  ID: {request.identifier}\n"
            f"  Next: {row.next_fire_at.isoformat()}\n"
            f"  Repeats: {'yes' if request.trigger.repeats else 'no'}"
        )
    return "\n".join(result)


if __name__ == "__main__":
    transport = os.getenv("MCP_TRANSPORT", settings.MCP_TRANSPORT).lower()

    if transport == "sse":
        print(f"Starting MCP server with SSE transport on {settings.MCP_HOST}:{settings.MCP_PORT}")
        print(f"SSE endpoint: http://{settings.MCP_HOST}:{settings.MCP_PORT}/sse")
        mcp.run(transport="sse")
    else:
        logger.info("Starting MCP server with stdio transport")
        mcp.run(transport="stdio")
