import pytest

from app.domain.queues import policy
from app.domain.queues.chat_service import GroupChatService
from app.domain.queues.outbox import CHAT_EVENT_STREAM
from app.domain.queues.schemas import ChatMessageSendRequest, QueueCreateRequest
from app.domain.queues.service import QueueService
from app.infra.auth import AuthenticatedUser


async def _promoted_chat(members=("creator", "u2")) -> str:
    service = QueueService()
    queue = await service.create_queue(
        AuthenticatedUser(id=members[0]),
        QueueCreateRequest(title="Evening Prayer", intention="prayer", min_people=len(members), max_people=4),
    )
    summary = None
    for member in members[1:]:
        summary = await service.join_queue(AuthenticatedUser(id=member), queue.id)
    assert summary.status == "promoted"
    return summary.chat_id


@pytest.mark.asyncio
async def test_post_and_read_messages(fake_redis):
    chat_id = await _promoted_chat()
    chats = GroupChatService()
    posted = await chats.post_message(
        AuthenticatedUser(id="u2"),
        chat_id,
        ChatMessageSendRequest(message="  Please pray for my exam  ", type="prayer_request"),
    )
    assert posted.message == "Please pray for my exam"
    assert posted.type == "prayer_request"
    assert posted.seq == 2

    history = await chats.list_messages(AuthenticatedUser(id="creator"), chat_id)
    assert [m.type for m in history] == ["system", "prayer_request"]

    newer = await chats.list_messages(AuthenticatedUser(id="creator"), chat_id, after_seq=1)
    assert [m.id for m in newer] == [posted.id]

    events = await fake_redis.xrange(CHAT_EVENT_STREAM)
    assert [fields["event"] for _, fields in events] == ["chat_created", "message_posted"]


@pytest.mark.asyncio
async def test_non_member_cannot_read_or_post():
    chat_id = await _promoted_chat()
    chats = GroupChatService()
    outsider = AuthenticatedUser(id="outsider")
    with pytest.raises(policy.NotChatMember):
        await chats.list_messages(outsider, chat_id)
    with pytest.raises(policy.NotChatMember):
        await chats.list_members(outsider, chat_id)
    with pytest.raises(policy.NotChatMember):
        await chats.post_message(outsider, chat_id, ChatMessageSendRequest(message="hi"))

    # Detail is visible to anyone signed in.
    detail = await chats.get_chat(outsider, chat_id)
    assert detail.is_member is False


@pytest.mark.asyncio
async def test_members_flag_creator():
    chat_id = await _promoted_chat(("creator", "u2", "u3"))
    members = await GroupChatService().list_members(AuthenticatedUser(id="u3"), chat_id)
    assert [(m.id, m.is_creator) for m in members] == [("creator", True), ("u2", False), ("u3", False)]


@pytest.mark.asyncio
async def test_active_chats_filter_mine():
    first = await _promoted_chat(("a", "b"))
    second = await _promoted_chat(("c", "d"))
    chats = GroupChatService()

    everything = await chats.list_active_chats(AuthenticatedUser(id="a"))
    assert {chat.id for chat in everything} == {first, second}

    mine = await chats.list_active_chats(AuthenticatedUser(id="a"), mine=True)
    assert [chat.id for chat in mine] == [first]
    assert mine[0].is_member is True


@pytest.mark.asyncio
async def test_system_messages_cannot_be_posted():
    chat_id = await _promoted_chat()
    with pytest.raises(policy.QueueValidationError):
        await GroupChatService().post_message(
            AuthenticatedUser(id="creator"),
            chat_id,
            ChatMessageSendRequest(message="fake notice", type="system"),
        )


@pytest.mark.asyncio
async def test_unknown_chat_raises_not_found():
    with pytest.raises(policy.ChatNotFound):
        await GroupChatService().get_chat(AuthenticatedUser(id="a"), "missing")
