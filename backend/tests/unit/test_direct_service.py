import pytest

from app.domain.common.errors import ValidationError
from app.domain.direct import models, policy
from app.domain.direct.schemas import DirectChatCreateRequest, DirectMessageSendRequest
from app.domain.direct.service import DirectChatService
from app.domain.direct.store import DirectChatRepository
from app.infra.auth import AuthenticatedUser


def test_pair_key_is_order_independent():
    assert models.PairKey.from_participants("zed", "amy") == models.PairKey.from_participants("amy", "zed")
    assert models.PairKey.from_participants("zed", "amy").as_tuple() == ("amy", "zed")


@pytest.mark.asyncio
async def test_open_chat_creates_then_returns_existing():
    service = DirectChatService()
    chat, created = await service.open_chat(AuthenticatedUser(id="zed"), DirectChatCreateRequest(recipient_id="amy"))
    assert created is True
    assert (chat.user1_id, chat.user2_id) == ("amy", "zed")
    assert chat.other_user_id == "amy"
    assert chat.last_message_at is None

    again, created_again = await service.open_chat(AuthenticatedUser(id="amy"), DirectChatCreateRequest(recipient_id="zed"))
    assert created_again is False
    assert again.id == chat.id
    assert again.other_user_id == "zed"


@pytest.mark.asyncio
async def test_open_chat_rejects_self():
    with pytest.raises(ValidationError):
        await DirectChatService().open_chat(AuthenticatedUser(id="amy"), DirectChatCreateRequest(recipient_id="amy"))


@pytest.mark.asyncio
async def test_send_message_updates_last_message():
    service = DirectChatService()
    amy = AuthenticatedUser(id="amy")
    chat, _ = await service.open_chat(amy, DirectChatCreateRequest(recipient_id="zed"))
    sent = await service.send_message(amy, chat.id, DirectMessageSendRequest(message="Grace and peace"))
    assert sent.sender_id == "amy"

    refreshed = await service.get_chat(AuthenticatedUser(id="zed"), chat.id)
    assert refreshed.last_message_at == sent.created_at

    history = await service.list_messages(AuthenticatedUser(id="zed"), chat.id)
    assert [m.message for m in history] == ["Grace and peace"]


@pytest.mark.asyncio
async def test_outsider_cannot_see_direct_chat():
    service = DirectChatService()
    chat, _ = await service.open_chat(AuthenticatedUser(id="amy"), DirectChatCreateRequest(recipient_id="zed"))
    with pytest.raises(policy.NotParticipant):
        await service.get_chat(AuthenticatedUser(id="eve"), chat.id)
    with pytest.raises(policy.NotParticipant):
        await service.send_message(AuthenticatedUser(id="eve"), chat.id, DirectMessageSendRequest(message="hi"))
    with pytest.raises(policy.DirectChatNotFound):
        await service.get_chat(AuthenticatedUser(id="amy"), "missing")


@pytest.mark.asyncio
async def test_list_chats_only_includes_participant_chats():
    service = DirectChatService()
    await service.open_chat(AuthenticatedUser(id="amy"), DirectChatCreateRequest(recipient_id="zed"))
    await service.open_chat(AuthenticatedUser(id="bob"), DirectChatCreateRequest(recipient_id="cat"))
    listed = await service.list_chats(AuthenticatedUser(id="zed"))
    assert [chat.other_user_id for chat in listed] == ["amy"]


@pytest.mark.asyncio
async def test_repository_returns_detached_chats():
    repo = DirectChatRepository()
    chat, _ = await repo.get_or_create(models.PairKey.from_participants("amy", "zed"))
    listed = await repo.list_for_user("amy")
    chat.user2_id = "intruder"

    await repo.append_message(chat.id, "zed", "hello")
    fresh = await repo.get_chat(chat.id)
    assert fresh.user2_id == "zed"
    assert fresh.last_message_at is not None
    assert listed[0].last_message_at is None
    assert chat.last_message_at is None
