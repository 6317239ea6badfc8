import httpx
import pytest

from app.core.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from app.models.task import TaskAssignment
from app.schemas.collaboration import LinkCreate, NoteCreate, NoteUpdate
from app.services import collaboration_service, notification_service, team_service
from app.services.cdn_service import BunnyCdnStorage

from conftest import make_task, make_user


async def _setup(db):
    lead = await make_user(db, "lena@example.com", "Lena Lead", role="team_manager")
    jane = await make_user(db, "jane@example.com", "Jane Doe")
    bob = await make_user(db, "bob@example.com", "Bob Stone")
    team = await team_service.create_team(db, lead, "Core Team")
    await team_service.add_member(db, team.id, lead, jane.id)
    await team_service.add_member(db, team.id, lead, bob.id)
    return team, lead, jane, bob


def _storage(calls):
    def handler(request):
        calls.append((request.method, request.url.path))
        return httpx.Response(201 if request.method == "PUT" else 200)
    return BunnyCdnStorage("zone", "key", cdn_url="https://cdn.example.com", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_discussion_threads_and_mentions(db, smtp):
    team, lead, jane, bob = await _setup(db)

    post = await collaboration_service.create_discussion(db, team.id, bob, "Ready for review @JaneD @nobody @BobS")
    assert post["mentioned_user_ids"] == [jane.id]
    assert await notification_service.get_unread_count(db, jane.id) == 2  # team invite and mention
    assert await notification_service.get_unread_count(db, bob.id) == 1  # team invite only
    assert any(s.sent and s.sent[0][1] == ("jane@example.com",) for s in smtp.instances)

    await collaboration_service.create_discussion(db, team.id, jane, "On it", parent_id=post["id"])
    await collaboration_service.create_discussion(db, team.id, lead, "Second topic")

    threads = await collaboration_service.list_discussions(db, team.id, jane)
    assert [t["content"] for t in threads] == ["Second topic", "Ready for review @JaneD @nobody @BobS"]
    assert [r["content"] for r in threads[1]["replies"]] == ["On it"]
    assert threads[1]["user_name"] == "Bob Stone"


@pytest.mark.asyncio
async def test_discussion_validation_and_moderation(db):
    team, lead, jane, bob = await _setup(db)
    outsider = await make_user(db, "out@example.com", "Out")

    with pytest.raises(InvalidInputError):
        await collaboration_service.create_discussion(db, team.id, jane, "   ")
    with pytest.raises(PermissionDeniedError):
        await collaboration_service.create_discussion(db, team.id, outsider, "hi")
    with pytest.raises(NotFoundError):
        await collaboration_service.create_discussion(db, team.id, jane, "reply", parent_id=999)

    post = await collaboration_service.create_discussion(db, team.id, jane, "hello")
    assert await collaboration_service.like_discussion(db, team.id, post["id"], bob) == 1
    assert await collaboration_service.like_discussion(db, team.id, post["id"], lead) == 2

    with pytest.raises(PermissionDeniedError):
        await collaboration_service.archive_discussion(db, team.id, post["id"], bob)
    await collaboration_service.archive_discussion(db, team.id, post["id"], lead)
    assert await collaboration_service.list_discussions(db, team.id, jane) == []


@pytest.mark.asyncio
async def test_private_notes_are_hidden(db):
    team, lead, jane, bob = await _setup(db)
    shared = await collaboration_service.create_note(db, team.id, jane, NoteCreate(title="Plan", content="Ship it"))
    private = await collaboration_service.create_note(
        db, team.id, jane, NoteCreate(title="Mine", content="secret", is_private=True)
    )

    assert {n["title"] for n in await collaboration_service.list_notes(db, team.id, jane)} == {"Plan", "Mine"}
    assert [n["title"] for n in await collaboration_service.list_notes(db, team.id, bob)] == ["Plan"]

    with pytest.raises(NotFoundError):
        await collaboration_service.update_note(db, team.id, private["id"], bob, NoteUpdate(title="x"))
    with pytest.raises(PermissionDeniedError):
        await collaboration_service.update_note(db, team.id, shared["id"], bob, NoteUpdate(title="x"))

    updated = await collaboration_service.update_note(db, team.id, shared["id"], jane, NoteUpdate(content="Ship it now"))
    assert updated["content"] == "Ship it now"
    assert updated["title"] == "Plan"

    await collaboration_service.archive_note(db, team.id, private["id"], jane)
    assert [n["title"] for n in await collaboration_service.list_notes(db, team.id, jane)] == ["Plan"]


@pytest.mark.asyncio
async def test_links_require_http(db):
    team, lead, jane, bob = await _setup(db)
    with pytest.raises(InvalidInputError, match="http"):
        await collaboration_service.create_link(db, team.id, jane, LinkCreate(title="Bad", url="ftp://files"))
    link = await collaboration_service.create_link(
        db, team.id, jane, LinkCreate(title="Design doc", url="https://docs.example.com/design")
    )
    assert [item["title"] for item in await collaboration_service.list_links(db, team.id, bob)] == ["Design doc"]

    with pytest.raises(PermissionDeniedError):
        await collaboration_service.archive_link(db, team.id, link["id"], bob)
    await collaboration_service.archive_link(db, team.id, link["id"], jane)
    assert await collaboration_service.list_links(db, team.id, bob) == []


@pytest.mark.asyncio
async def test_file_upload_and_archive(db):
    team, lead, jane, bob = await _setup(db)
    calls = []
    storage = _storage(calls)

    with pytest.raises(InvalidInputError, match="not configured"):
        await collaboration_service.upload_file(db, team.id, jane, None, "a.txt", b"data")
    with pytest.raises(InvalidInputError, match="empty"):
        await collaboration_service.upload_file(db, team.id, jane, storage, "a.txt", b"")

    record = await collaboration_service.upload_file(db, team.id, jane, storage, "notes.txt", b"data", "text/plain")
    assert record["file_size"] == 4
    assert record["file_path"].startswith(f"teams/{team.id}/")
    assert record["file_url"].startswith("https://cdn.example.com/teams/")
    assert calls[0][0] == "PUT"

    assert [f["filename"] for f in await collaboration_service.list_files(db, team.id, bob)] == ["notes.txt"]
    await collaboration_service.archive_file(db, team.id, record["id"], lead, storage)
    assert calls[-1][0] == "DELETE"
    assert await collaboration_service.list_files(db, team.id, bob) == []


@pytest.mark.asyncio
async def test_file_size_limit(db, monkeypatch):
    from app.core.config import settings

    team, lead, jane, bob = await _setup(db)
    monkeypatch.setattr(settings, "MAX_FILE_SIZE_MB", 1)
    with pytest.raises(InvalidInputError, match="1MB"):
        await collaboration_service.upload_file(db, team.id, jane, _storage([]), "big.bin", b"x" * (1024 * 1024 + 1))


@pytest.mark.asyncio
async def test_search_across_content(db):
    team, lead, jane, bob = await _setup(db)
    await collaboration_service.create_discussion(db, team.id, jane, "Launch checklist ready")
    await collaboration_service.create_note(db, team.id, jane, NoteCreate(title="Launch plan", content="..."))
    await collaboration_service.create_note(db, team.id, jane, NoteCreate(title="Launch secrets", content="", is_private=True))
    await collaboration_service.create_link(db, team.id, jane, LinkCreate(title="Launch board", url="https://board.example.com"))

    results = await collaboration_service.search(db, team.id, bob, "launch")
    assert len(results["discussions"]) == 1
    assert [n["title"] for n in results["notes"]] == ["Launch plan"]
    assert len(results["links"]) == 1
    assert results["files"] == []


@pytest.mark.asyncio
async def test_assign_task_to_member(db):
    team, lead, jane, bob = await _setup(db)
    outsider = await make_user(db, "out@example.com", "Out")
    task = await make_task(db)
    await team_service.link_project(db, team.id, lead, task.project_id)

    await collaboration_service.assign_task_to_member(db, team.id, lead, task.id, jane.id)
    assert await db.get(TaskAssignment, (task.id, jane.id)) is not None
    notifications = await notification_service.get_user_notifications(db, jane.id)
    assert notifications[0].type == "task_assigned"

    with pytest.raises(InvalidInputError):
        await collaboration_service.assign_task_to_member(db, team.id, lead, task.id, outsider.id)
    with pytest.raises(NotFoundError):
        await collaboration_service.assign_task_to_member(db, team.id, lead, 999, jane.id)

    await collaboration_service.unassign_task_from_member(db, team.id, lead, task.id, jane.id)
    with pytest.raises(NotFoundError):
        await collaboration_service.unassign_task_from_member(db, team.id, lead, task.id, jane.id)


@pytest.mark.asyncio
async def test_tasks_outside_the_team_cannot_be_assigned(db):
    team, lead, jane, bob = await _setup(db)
    foreign = await make_task(db, name="Secret", project_name="Other", client_name="Beta", assignees=[bob])

    with pytest.raises(PermissionDeniedError, match="does not belong"):
        await collaboration_service.assign_task_to_member(db, team.id, jane, foreign.id, lead.id)
    with pytest.raises(PermissionDeniedError):
        await collaboration_service.unassign_task_from_member(db, team.id, jane, foreign.id, bob.id)
    assert await db.get(TaskAssignment, (foreign.id, lead.id)) is None
    assert await db.get(TaskAssignment, (foreign.id, bob.id)) is not None


@pytest.mark.asyncio
async def test_primary_project_tasks_can_be_assigned(db):
    lead = await make_user(db, "lena@example.com", "Lena Lead", role="team_manager")
    jane = await make_user(db, "jane@example.com", "Jane Doe")
    task = await make_task(db)
    team = await team_service.create_team(db, lead, "Site Team", project_id=task.project_id)
    await team_service.add_member(db, team.id, lead, jane.id)
    await team_service.unlink_project(db, team.id, lead, task.project_id)

    await collaboration_service.assign_task_to_member(db, team.id, lead, task.id, jane.id)
    assert await db.get(TaskAssignment, (task.id, jane.id)) is not None
