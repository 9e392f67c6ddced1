from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from helpers import RecordingPublisher, create_user
from nota_backend.db import session_scope
from nota_backend.events import EntityType, EventKind
from nota_backend.models import assume_utc
from nota_backend.models_notes import NOTE_CONTENT_MAX_LENGTH, NOTE_TITLE_MAX_LENGTH
from nota_backend.services import notes_service, shares_service
from nota_backend.services.notes_service import NoteScope, NoteSortField, SortOrder


@pytest.mark.anyio
async def test_create_note_sanitizes_and_emits_event(db: None, publisher: RecordingPublisher):
    owner_id = await create_user("alice")

    async with session_scope() as session:
        note = await notes_service.create_note(
            session=session,
            owner_user_id=owner_id,
            title="  Groceries  ",
            content="<p>milk<script>alert(1)</script></p>",
            due_date=datetime(2030, 1, 1, tzinfo=timezone.utc),
            publisher=publisher,
        )

    assert note.title == "Groceries"
    assert note.content == "<p>milk</p>"
    assert note.archived is False
    assert note.archived_at is None
    assert note.version == 1

    assert len(publisher.events) == 1
    event = publisher.events[0]
    assert event.kind == EventKind.CREATE
    assert event.acting_user_id == owner_id
    assert event.entity_type == EntityType.NOTE
    assert event.entity_id == note.id


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("title", "content", "message"),
    [
        ("   ", "", "blank title"),
        ("x" * (NOTE_TITLE_MAX_LENGTH + 1), "", "title too long"),
        ("ok", "y" * (NOTE_CONTENT_MAX_LENGTH + 1), "content too long"),
    ],
)
async def test_create_note_validation(
    db: None, publisher: RecordingPublisher, title: str, content: str, message: str
):
    owner_id = await create_user("alice")

    async with session_scope() as session:
        with pytest.raises(HTTPException) as excinfo:
            await notes_service.create_note(
                session=session,
                owner_user_id=owner_id,
                title=title,
                content=content,
                publisher=publisher,
            )
    assert excinfo.value.status_code == 422
    assert excinfo.value.detail["message"] == message
    assert publisher.events == []


@pytest.mark.anyio
async def test_content_length_is_checked_before_sanitizing(db: None, publisher: RecordingPublisher):
    owner_id = await create_user("alice")
    # Mostly markup: short once sanitized, but too long as submitted.
    content = "<span></span>" * (NOTE_CONTENT_MAX_LENGTH // 13 + 1)

    async with session_scope() as session:
        with pytest.raises(HTTPException) as excinfo:
            await notes_service.create_note(
                session=session,
                owner_user_id=owner_id,
                title="t",
                content=content,
                publisher=publisher,
            )
    assert excinfo.value.status_code == 422


@pytest.mark.anyio
async def test_update_resanitizes_and_bumps_version(db: None, publisher: RecordingPublisher):
    owner_id = await create_user("alice")

    async with session_scope() as session:
        note = await notes_service.create_note(
            session=session,
            owner_user_id=owner_id,
            title="a",
            content="<p>a</p>",
            publisher=publisher,
        )
        created_at = note.updated_at

    async with session_scope() as session:
        updated = await notes_service.update_note(
            session=session,
            note_id=note.id,
            acting_user_id=owner_id,
            title="b",
            content='<p onclick="x()">b</p><iframe src="https://evil"></iframe>',
            publisher=publisher,
        )
    assert updated is not None
    assert updated.title == "b"
    assert updated.content == "<p>b</p>"
    assert updated.version == 2
    assert assume_utc(updated.updated_at) >= created_at
    assert publisher.kinds() == [EventKind.CREATE, EventKind.UPDATE]


@pytest.mark.anyio
async def test_update_with_stale_version_conflicts(db: None, publisher: RecordingPublisher):
    owner_id = await create_user("alice")

    async with session_scope() as session:
        note = await notes_service.create_note(
            session=session,
            owner_user_id=owner_id,
            title="a",
            content="",
            publisher=publisher,
        )
        await notes_service.update_note(
            session=session,
            note_id=note.id,
            acting_user_id=owner_id,
            title="b",
            content="",
            expected_version=1,
            publisher=publisher,
        )

    async with session_scope() as session:
        with pytest.raises(HTTPException) as excinfo:
            await notes_service.update_note(
                session=session,
                note_id=note.id,
                acting_user_id=owner_id,
                title="c",
                content="",
                expected_version=1,
                publisher=publisher,
            )
    assert excinfo.value.status_code == 409
    assert excinfo.value.detail["details"] == {"current_version": 2}

    async with session_scope() as session:
        current = await notes_service.find_accessible_by_id(
            session=session, note_id=note.id, user_id=owner_id
        )
        assert current is not None and current.title == "b"


@pytest.mark.anyio
async def test_read_share_cannot_update_but_edit_share_can(db: None, publisher: RecordingPublisher):
    owner_id = await create_user("alice")
    reader_id = await create_user("bob")
    editor_id = await create_user("carol")

    async with session_scope() as session:
        note = await notes_service.create_note(
            session=session,
            owner_user_id=owner_id,
            title="shared",
            content="",
            publisher=publisher,
        )
        for username, permission in (("bob", "read"), ("carol", "edit")):
            assert await shares_service.share_note(
                session=session,
                note_id=note.id,
                acting_user_id=owner_id,
                target_username=username,
                permission=permission,
                publisher=publisher,
            )

    async with session_scope() as session:
        assert (
            await notes_service.update_note(
                session=session,
                note_id=note.id,
                acting_user_id=reader_id,
                title="by reader",
                content="",
                publisher=publisher,
            )
            is None
        )
        by_editor = await notes_service.update_note(
            session=session,
            note_id=note.id,
            acting_user_id=editor_id,
            title="by editor",
            content="",
            publisher=publisher,
        )
        assert by_editor is not None and by_editor.title == "by editor"
        assert by_editor.owner_user_id == owner_id

        # Only the owner may archive, even with edit permission.
        assert not await notes_service.archive_note(
            session=session, note_id=note.id, acting_user_id=editor_id, publisher=publisher
        )


@pytest.mark.anyio
async def test_archive_sets_timestamp_and_is_idempotent(db: None, publisher: RecordingPublisher):
    owner_id = await create_user("alice")

    async with session_scope() as session:
        note = await notes_service.create_note(
            session=session,
            owner_user_id=owner_id,
            title="old",
            content="",
            publisher=publisher,
        )
        assert await notes_service.archive_note(
            session=session, note_id=note.id, acting_user_id=owner_id, publisher=publisher
        )
        assert await notes_service.archive_note(
            session=session, note_id=note.id, acting_user_id=owner_id, publisher=publisher
        )

    async with session_scope() as session:
        archived = await notes_service.find_accessible_by_id(
            session=session, note_id=note.id, user_id=owner_id
        )
    assert archived is not None
    assert archived.archived is True
    assert archived.archived_at is not None
    assert publisher.kinds() == [EventKind.CREATE, EventKind.ARCHIVE]


@pytest.mark.anyio
async def test_archive_missing_note_returns_false(db: None, publisher: RecordingPublisher):
    owner_id = await create_user("alice")
    async with session_scope() as session:
        assert not await notes_service.archive_note(
            session=session, note_id="nope", acting_user_id=owner_id, publisher=publisher
        )


@pytest.mark.anyio
async def test_search_scope_filter_and_ordering(db: None, publisher: RecordingPublisher):
    alice_id = await create_user("alice")
    bob_id = await create_user("bob")

    async with session_scope() as session:
        for title, content in (("Beta", "shopping list"), ("alpha", "SHOPPING"), ("gamma", "work")):
            await notes_service.create_note(
                session=session,
                owner_user_id=alice_id,
                title=title,
                content=content,
                publisher=publisher,
            )
        bobs = await notes_service.create_note(
            session=session,
            owner_user_id=bob_id,
            title="Bob shopping",
            content="",
            publisher=publisher,
        )
        assert await shares_service.share_note(
            session=session,
            note_id=bobs.id,
            acting_user_id=bob_id,
            target_username="alice",
            permission="read",
            publisher=publisher,
        )

    async with session_scope() as session:
        own = await notes_service.search_notes(
            session=session,
            user_id=alice_id,
            query="shopping",
            scope=NoteScope.OWN,
            sort_by=NoteSortField.TITLE,
            sort_order=SortOrder.ASC,
        )
        assert [n.title for n in own] == ["Beta", "alpha"]

        accessible = await notes_service.search_notes(
            session=session,
            user_id=alice_id,
            query="SHOP",
            scope=NoteScope.ACCESSIBLE,
            sort_by=NoteSortField.TITLE,
            sort_order=SortOrder.DESC,
        )
        assert [n.title for n in accessible] == ["alpha", "Bob shopping", "Beta"]

        everything = await notes_service.search_notes(
            session=session,
            user_id=alice_id,
            query="  ",
            scope=NoteScope.OWN,
            sort_by=NoteSortField.TITLE,
            sort_order=SortOrder.ASC,
        )
        assert [n.title for n in everything] == ["Beta", "alpha", "gamma"]

        # Bob does not see Alice's notes.
        bob_view = await notes_service.search_notes(
            session=session, user_id=bob_id, query="", scope=NoteScope.ACCESSIBLE
        )
        assert [n.title for n in bob_view] == ["Bob shopping"]


@pytest.mark.anyio
async def test_search_treats_wildcards_literally(db: None, publisher: RecordingPublisher):
    alice_id = await create_user("alice")

    async with session_scope() as session:
        await notes_service.create_note(
            session=session,
            owner_user_id=alice_id,
            title="100% done",
            content="",
            publisher=publisher,
        )
        await notes_service.create_note(
            session=session,
            owner_user_id=alice_id,
            title="1000 things",
            content="",
            publisher=publisher,
        )

    async with session_scope() as session:
        hits = await notes_service.search_notes(session=session, user_id=alice_id, query="0%")
    assert [n.title for n in hits] == ["100% done"]


@pytest.mark.anyio
async def test_search_folds_non_ascii_case(db: None, publisher: RecordingPublisher):
    alice_id = await create_user("alice")

    async with session_scope() as session:
        await notes_service.create_note(
            session=session,
            owner_user_id=alice_id,
            title="Ärger im Büro",
            content="",
            publisher=publisher,
        )
        await notes_service.create_note(
            session=session,
            owner_user_id=alice_id,
            title="Termine",
            content="<p>ÜBERSTUNDEN abbauen</p>",
            publisher=publisher,
        )

    async with session_scope() as session:
        by_title = await notes_service.search_notes(
            session=session, user_id=alice_id, query="ärger"
        )
        by_content = await notes_service.search_notes(
            session=session, user_id=alice_id, query="überstunden"
        )
    assert [n.title for n in by_title] == ["Ärger im Büro"]
    assert [n.title for n in by_content] == ["Termine"]


@pytest.mark.anyio
async def test_archive_excludes_from_listing_but_preserves_access(
    db: None, publisher: RecordingPublisher
):
    alice_id = await create_user("alice")

    async with session_scope() as session:
        note = await notes_service.create_note(
            session=session,
            owner_user_id=alice_id,
            title="N",
            content="",
            publisher=publisher,
        )
        assert await notes_service.archive_note(
            session=session, note_id=note.id, acting_user_id=alice_id, publisher=publisher
        )

    async with session_scope() as session:
        listed = await notes_service.search_notes(
            session=session, user_id=alice_id, query="", scope=NoteScope.OWN
        )
        assert note.id not in {n.id for n in listed}

        found = await notes_service.find_accessible_by_id(
            session=session, note_id=note.id, user_id=alice_id
        )
        assert found is not None

        archived = await notes_service.list_archived_notes(session=session, user_id=alice_id)
        assert [n.id for n in archived] == [note.id]
