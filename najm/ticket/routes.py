# najm/ticket/routes.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from najm.core.security import get_current_user, require_admin
from najm.ticket import services as ticket_service
from najm.ticket.schemas import (
    ConversationIn,
    ConversationOut,
    FindingIn,
    FindingOut,
    TicketCreate,
    TicketList,
    TicketOut,
    TicketSummary,
    TicketUpdate,
    TranscriptMessage,
)
from najm.ticket.stores import TicketStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])


@router.post("", response_model=TicketOut, status_code=201)
def create(ticket: TicketCreate, store: TicketStore = Depends(ticket_service.get_ticket_store)):
    created = store.create_ticket(ticket)
    logger.info("Ticket saved: %s (%d attachments)", created.ticket_id, len(created.attachments))
    return created


@router.get("", response_model=TicketList)
def list_all(
    status: str | None = Query(default=None, description="Filter by status, e.g. open or closed"),
    store: TicketStore = Depends(ticket_service.get_ticket_store),
    user: dict = Depends(get_current_user),
):
    items = [
        TicketSummary(**t.model_dump(), attachments_count=len(t.attachments))
        for t in store.list_tickets(status)
    ]
    return TicketList(count=len(items), tickets=items)


@router.get("/{ticket_id}", response_model=TicketOut)
def get(
    ticket_id: str,
    store: TicketStore = Depends(ticket_service.get_ticket_store),
    user: dict = Depends(get_current_user),
):
    ticket = store.get_ticket(ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("/{ticket_id}/transcript", response_model=list[TranscriptMessage])
def transcript(
    ticket_id: str,
    store: TicketStore = Depends(ticket_service.get_ticket_store),
    user: dict = Depends(get_current_user),
):
    ticket = store.get_ticket(ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket_service.clean_transcript(ticket.transcript)


@router.put("/{ticket_id}", response_model=TicketOut)
def update(
    ticket_id: str,
    ticket: TicketUpdate,
    store: TicketStore = Depends(ticket_service.get_ticket_store),
    user: dict = Depends(get_current_user),
):
    updated = store.update_ticket(ticket_id, ticket)
    if not updated:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return updated


@router.delete("/{ticket_id}")
def delete(
    ticket_id: str,
    store: TicketStore = Depends(ticket_service.get_ticket_store),
    user: dict = Depends(require_admin),
):
    if not store.delete_ticket(ticket_id):
        raise HTTPException(status_code=404, detail="Ticket not found")
    logger.info("Ticket %s deleted by %s", ticket_id, user.get("username"))
    return {"message": "Ticket deleted successfully", "ticket_id": ticket_id}


@router.post("/{ticket_id}/conversations", response_model=ConversationOut, status_code=201)
def add_conversation(
    ticket_id: str,
    conversation: ConversationIn,
    store: TicketStore = Depends(ticket_service.get_ticket_store),
):
    created = store.add_conversation(ticket_id, conversation)
    if not created:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return created


@router.post("/{ticket_id}/findings", response_model=FindingOut, status_code=201)
def add_finding(
    ticket_id: str,
    finding: FindingIn,
    store: TicketStore = Depends(ticket_service.get_ticket_store),
):
    created = store.add_finding(ticket_id, finding)
    if not created:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return created
