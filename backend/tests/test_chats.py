from datetime import datetime, timedelta

import pytest

from nexusjob.errors import ValidationError
from nexusjob.models.chat import Chat
from nexusjob.schemas.job import JobCreate
from nexusjob.services.chats import ChatRepository, chat_sort_key
from nexusjob.services.job_board import ApplicationRepository, JobRepository
from nexusjob.services.realtime import CHATS_TOPIC


def test_missing_chat_lookup_returns_none(db, application):
    assert ChatRepository(db).get_by_application_id(application.id) is None


def test_create_chat_copies_participants(db, application, job):
    chat = ChatRepository(db).create_chat(application, job.title, job.employer_id)

    assert chat.application_id == application.id
    assert chat.employer_id == job.employer_id
    assert chat.seeker_id == application.seeker_id
    assert chat.job_title == "Backend Engineer"
    assert chat.unread_count == 0
    assert chat.last_message is None


def test_create_chat_twice_keeps_one_chat(db, application, job):
    repo = ChatRepository(db)
    first = repo.create_chat(application, job.title, job.employer_id)
    second = repo.create_chat(application, job.title, job.employer_id)

    assert first.id == second.id
    assert db.query(Chat).filter(Chat.application_id == application.id).count() == 1


def test_racing_sessions_converge_on_one_chat(session_factory, application, job):
    with session_factory() as first_db, session_factory() as second_db:
        first_repo = ChatRepository(first_db)
        second_repo = ChatRepository(second_db)
        # Both sides ran the "does a chat exist?" check before either inserted.
        assert first_repo.get_by_application_id(application.id) is None
        assert second_repo.get_by_application_id(application.id) is None

        winner = first_repo.create_chat(application, job.title, job.employer_id)
        loser = second_repo.create_chat(application, job.title, job.employer_id)

        assert winner.id == loser.id
        assert second_db.query(Chat).count() == 1


def test_insert_event_only_for_new_chat(db, hub, application, job):
    events = []
    hub.subscribe(CHATS_TOPIC, events.append)
    repo = ChatRepository(db, hub)

    repo.create_chat(application, job.title, job.employer_id)
    repo.create_chat(application, job.title, job.employer_id)

    assert [event.kind for event in events] == ["insert"]


def test_ensure_for_application_resolves_job(db, application):
    repo = ChatRepository(db)
    chat = repo.ensure_for_application(application)

    assert chat.job_title == "Backend Engineer"
    assert repo.ensure_for_application(application).id == chat.id


def test_list_for_user_orders_by_last_message_nulls_last(db, employer, seeker, make_user):
    base = datetime(2026, 1, 1, 12, 0, 0)
    chats = {}
    for offset, (label, last_at) in enumerate(
        [("A", None), ("B", base + timedelta(minutes=1)), ("C", base + timedelta(minutes=2))]
    ):
        chat = Chat(
            application_id=100 + offset,
            employer_id=employer.id,
            seeker_id=seeker.id,
            job_title=f"Job {label}",
            last_message_at=last_at,
            created_at=base + timedelta(seconds=offset),
        )
        db.add(chat)
        db.commit()
        chats[label] = chat.id

    outsider = make_user("Outsider")
    db.add(Chat(application_id=200, employer_id=employer.id, seeker_id=outsider.id, job_title="Other"))
    db.commit()

    ordered = ChatRepository(db).list_for_user(seeker.id)

    assert [chat.id for chat in ordered] == [chats["C"], chats["B"], chats["A"]]
    assert [chat.id for chat in sorted(ordered, key=chat_sort_key)] == [chats["C"], chats["B"], chats["A"]]
    assert len(ChatRepository(db).list_for_user(employer.id)) == 4


def test_chat_subscription_filters_to_participants(db, hub, application, job, make_user):
    seen_by_seeker, seen_by_stranger = [], []
    repo = ChatRepository(db, hub)
    stranger = make_user("Stranger")
    repo.subscribe_to_chats(application.seeker_id, seen_by_seeker.append)
    repo.subscribe_to_chats(stranger.id, seen_by_stranger.append)

    repo.create_chat(application, job.title, job.employer_id)

    assert len(seen_by_seeker) == 1
    assert seen_by_stranger == []


def test_accepting_application_then_lookup_finds_chat(db, hub, application, job):
    applications = ApplicationRepository(db, hub)
    chats = ChatRepository(db, hub)

    accepted = applications.update_status(application.id, "Accepted", actor_id=job.employer_id)
    chats.ensure_for_application(accepted)

    chat = chats.get_by_application_id(application.id)
    assert chat is not None
    assert chat.application_id == application.id


def test_ensure_for_orphaned_application_is_a_validation_error(db, employer, seeker):
    job = JobRepository(db).create_job(employer, JobCreate(title="Short lived"))
    app = ApplicationRepository(db).create_application(job.id, seeker.id, seeker.name)
    JobRepository(db).delete_job(job.id, employer.id)

    with pytest.raises(ValidationError):
        ChatRepository(db).ensure_for_application(app)
