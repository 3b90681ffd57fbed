# tests/test_chat_state.py
import pytest

from najm.chat.prompts import build_system_prompt
from najm.chat.state import (
    COMPLETED,
    GREETING,
    ChatSession,
    extract_message_text,
    parse_llm_state,
)
from najm.ticket.services import clean_transcript, generate_ticket_id

REPLY = (
    "Please upload photos of the accident.\n"
    "```json\n"
    '{"phase": "accident_photos", "ticket": {"description": "Rear-end collision", '
    '"location": "Riyadh", "number_of_vehicles": 2, "injuries": false}}\n'
    "```"
)


def _session(language="en"):
    return ChatSession(system_prompt=build_system_prompt(language), language=language)


def test_parse_state_from_fenced_block():
    state = parse_llm_state(REPLY)
    assert state["phase"] == "accident_photos"
    assert state["ticket"]["number_of_vehicles"] == 2


def test_parse_state_from_bare_json():
    assert parse_llm_state('Thanks! {"phase": "details"}') == {"phase": "details"}


def test_parse_state_missing_or_broken():
    assert parse_llm_state("Hello, how can I help?") is None
    assert parse_llm_state('{"phase": "details",}') is None
    assert parse_llm_state("") is None


def test_extract_message_text_removes_state():
    assert extract_message_text(REPLY) == "Please upload photos of the accident."
    assert extract_message_text('Thanks! {"phase": "details", "ticket": {"location": "x"}}') == "Thanks!"
    assert extract_message_text("```\nnotes\n```\nDone") == "Done"


def test_new_session_starts_with_system_prompt():
    session = _session("ar")
    assert session.phase == GREETING
    assert session.messages[0]["role"] == "system"
    assert "Arabic" in session.messages[0]["content"]
    assert not session.upload_allowed
    assert session.ticket_id is None


def test_assistant_reply_moves_phase():
    session = _session()
    turn = session.apply_assistant_message(REPLY)

    assert turn.text == "Please upload photos of the accident."
    assert session.phase == "accident_photos"
    assert session.ticket_data["location"] == "Riyadh"
    assert session.upload_allowed
    assert session.upload_folder == "accident_photos"
    # the model keeps seeing its own JSON
    assert session.messages[-1] == {"role": "assistant", "content": REPLY}
    assert session.last_message == turn.text


def test_reply_without_state_keeps_phase():
    session = _session()
    session.apply_assistant_message(REPLY)
    session.apply_assistant_message("Sorry, could you repeat that?")
    assert session.phase == "accident_photos"
    assert session.ticket_data["location"] == "Riyadh"


def test_record_upload_per_phase():
    session = _session()
    session.apply_assistant_message(REPLY)
    session.record_upload("a.jpg", "/uploads/accident_photos/a.jpg")
    session.record_upload("b.jpg", "/uploads/accident_photos/b.jpg")
    assert [f["filename"] for f in session.uploaded_files["accident_photos"]] == ["a.jpg", "b.jpg"]
    assert session.messages[-1] == {"role": "user", "content": "Image uploaded successfully"}

    session.apply_assistant_message('Now your ID card please. {"phase": "id_card"}')
    assert session.upload_folder == "id_cards"
    session.record_upload("id1.jpg", "/uploads/id_cards/id1.jpg")
    session.record_upload("id2.jpg", "/uploads/id_cards/id2.jpg")
    assert session.uploaded_files["id_card"]["filename"] == "id2.jpg"


def test_record_upload_outside_upload_phase():
    session = _session()
    with pytest.raises(ValueError):
        session.record_upload("a.jpg", "/uploads/accident_photos/a.jpg")


def test_arabic_upload_notice():
    session = _session("ar")
    session.apply_assistant_message('{"phase": "driving_license"}')
    session.record_upload("l.jpg", "/uploads/driving_licenses/l.jpg")
    assert session.messages[-1]["content"] == "تم رفع الصورة بنجاح"


def test_build_ticket_from_session():
    session = _session()
    session.apply_assistant_message(REPLY)
    session.record_upload("a.jpg", "/uploads/accident_photos/a.jpg")

    ticket = session.build_ticket("T-1")
    assert ticket.ticket_id == "T-1"
    assert ticket.description == "Rear-end collision"
    assert ticket.vehicles == 2
    assert ticket.transcript == session.messages
    data = ticket.extracted_data
    assert data["location"] == "Riyadh"
    assert data["id_card_received"] is False
    assert data["uploads"]["accident_photos"][0]["url"] == "/uploads/accident_photos/a.jpg"
    assert data["uploads"]["id_card"] is None


def test_build_ticket_defaults():
    ticket = _session().build_ticket("T-2")
    assert ticket.description == "Accident report"
    assert ticket.vehicles == 1
    assert ticket.extracted_data["number_of_vehicles"] == 0


def test_done_needs_ticket_once():
    session = _session()
    session.apply_assistant_message('Report submitted. {"phase": "done"}')
    assert session.needs_ticket

    session.mark_ticket_created("T-9")
    assert session.phase == COMPLETED
    assert not session.needs_ticket

    session.apply_assistant_message('Anything else? {"phase": "done"}')
    assert not session.needs_ticket
    assert session.ticket_id == "T-9"


def test_generated_ticket_id_format():
    ticket_id = generate_ticket_id()
    prefix, millis, suffix = ticket_id.split("-")
    assert prefix == "T"
    assert millis.isdigit()
    assert 0 <= int(suffix) <= 999


def test_clean_transcript_keeps_conversation_only():
    session = _session()
    session.add_user_message("A car hit me")
    session.apply_assistant_message(REPLY)
    cleaned = clean_transcript(session.messages)
    assert [(m.role, m.content) for m in cleaned] == [
        ("user", "A car hit me"),
        ("assistant", "Please upload photos of the accident."),
    ]
