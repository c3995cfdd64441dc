import gc

from wabot_flow.services.conversation_lock_service import ConversationLockService


async def test_same_conversation_shares_a_lock():
    service = ConversationLockService()

    lock = service.get_lock("bot-1", "+1555")

    assert service.get_lock("bot-1", "+1555") is lock
    assert service.get_lock("bot-1", "+1666") is not lock
    assert service.get_lock("bot-2", "+1555") is not lock


async def test_unused_locks_are_released():
    service = ConversationLockService()

    lock = service.get_lock("bot-1", "+1555")
    assert service.active_conversations() == 1

    del lock
    gc.collect()

    assert service.active_conversations() == 0
