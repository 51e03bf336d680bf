"""Tests for the entity cache."""

import pytest

from wacore.cache import ChatKind, DeliveryStatus, EntityCache, MessageKind


ALICE = "40712345678@s.whatsapp.net"
GROUP = "40712345678-1600000000@g.us"


def inbound(message_id="M1", chat_id=ALICE, timestamp=1000, **extra):
    event = {
        "id": message_id,
        "chat_id": chat_id,
        "sender_id": ALICE,
        "from_me": False,
        "timestamp": timestamp,
        "kind": "text",
        "content": "hi",
    }
    event.update(extra)
    return event


@pytest.fixture
def cache():
    return EntityCache()


class TestMessages:
    def test_placeholder_chat(self, cache):
        message = cache.apply_message_event(inbound())
        chat = cache.get_chat(ALICE)
        assert chat.name == "40712345678"
        assert chat.kind == ChatKind.DM
        assert chat.unread_count == 1
        assert chat.last_message.id == "M1"
        assert chat.last_activity == 1000
        assert message.delivery_status == DeliveryStatus.DELIVERED

    def test_group_placeholder_kind(self, cache):
        cache.apply_message_event(inbound(chat_id=GROUP))
        assert cache.get_chat(GROUP).kind == ChatKind.GROUP

    def test_idempotent(self, cache):
        cache.apply_message_event(inbound())
        cache.apply_message_event(inbound())
        assert cache.get_chat(ALICE).unread_count == 1
        assert len(cache.messages_for(ALICE)) == 1

    def test_own_messages_not_unread(self, cache):
        message = cache.apply_message_event(inbound(from_me=True, sender_id="me@s.whatsapp.net"))
        assert cache.get_chat(ALICE).unread_count == 0
        assert message.delivery_status == DeliveryStatus.PENDING

    def test_update_merges_content(self, cache):
        cache.apply_message_event(inbound())
        updated = cache.apply_message_event({"id": "M1", "chat_id": ALICE, "content": "edited"})
        assert updated.content == "edited"
        assert updated.timestamp == 1000
        assert updated.kind == MessageKind.TEXT

    def test_requires_ids(self, cache):
        with pytest.raises(ValueError):
            cache.apply_message_event({"id": "M1"})
        with pytest.raises(ValueError):
            cache.apply_message_event({"chat_id": ALICE})

    def test_unknown_kind_is_text(self, cache):
        assert cache.apply_message_event(inbound(kind="hologram")).kind == MessageKind.TEXT

    def test_older_message_does_not_replace_last(self, cache):
        cache.apply_message_event(inbound("NEW", timestamp=2000))
        cache.apply_message_event(inbound("OLD", timestamp=1000))
        chat = cache.get_chat(ALICE)
        assert chat.last_message.id == "NEW"
        assert chat.last_activity == 2000
        assert [m.id for m in cache.messages_for(ALICE)] == ["OLD", "NEW"]

    def test_messages_limit_keeps_newest(self, cache):
        for index in range(5):
            cache.apply_message_event(inbound(f"M{index}", timestamp=1000 + index))
        assert [m.id for m in cache.messages_for(ALICE, limit=2)] == ["M3", "M4"]
        assert cache.messages_for(ALICE, limit=0) == []

    def test_getters_return_copies(self, cache):
        cache.apply_message_event(inbound())
        cache.get_message("M1").content = "mutated"
        cache.get_chat(ALICE).unread_count = 99
        assert cache.get_message("M1").content == "hi"
        assert cache.get_chat(ALICE).unread_count == 1


class TestDeliveryStatus:
    def test_forward_only(self, cache):
        cache.apply_message_event(inbound(from_me=True))
        assert cache.apply_receipt_event({"id": "M1", "status": "read"}) is not None
        assert cache.get_message("M1").delivery_status == DeliveryStatus.READ
        assert cache.apply_receipt_event({"id": "M1", "status": "delivered"}) is None
        assert cache.get_message("M1").delivery_status == DeliveryStatus.READ

    def test_progression(self, cache):
        cache.apply_message_event(inbound(from_me=True))
        for status in ("sent", "delivered", "read"):
            assert cache.apply_receipt_event({"id": "M1", "status": status}).delivery_status.name.lower() == status

    def test_failed_only_from_pending(self, cache):
        cache.apply_message_event(inbound("A", from_me=True))
        cache.apply_message_event(inbound("B", from_me=True))
        cache.apply_receipt_event({"id": "B", "status": "sent"})

        assert cache.apply_receipt_event({"id": "A", "status": "failed"}).delivery_status == DeliveryStatus.FAILED
        assert cache.apply_receipt_event({"id": "B", "status": "failed"}) is None
        assert cache.get_message("B").delivery_status == DeliveryStatus.SENT

    def test_message_update_cannot_downgrade(self, cache):
        cache.apply_message_event(inbound(delivery_status="read"))
        cache.apply_message_event({"id": "M1", "chat_id": ALICE, "delivery_status": "sent"})
        assert cache.get_message("M1").delivery_status == DeliveryStatus.READ

    def test_unknown_message_or_status(self, cache):
        assert cache.apply_receipt_event({"id": "nope", "status": "read"}) is None
        cache.apply_message_event(inbound())
        assert cache.apply_receipt_event({"id": "M1", "status": "bogus"}) is None

    def test_unrecognised_status_counts_as_delivered(self, cache):
        assert DeliveryStatus.parse("played") == DeliveryStatus.DELIVERED
        message = cache.apply_message_event(inbound(delivery_status="played"))
        assert message.delivery_status == DeliveryStatus.DELIVERED

        cache.apply_message_event(inbound("OWN", from_me=True))
        updated = cache.apply_receipt_event({"id": "OWN", "status": "played"})
        assert updated.delivery_status == DeliveryStatus.DELIVERED


class TestReactionsAndDeletes:
    def test_reaction_set_and_removed(self, cache):
        cache.apply_message_event(inbound())
        message = cache.apply_reaction_event({"message_id": "M1", "sender_id": ALICE, "emoji": "👍"})
        assert message.reactions == {ALICE: "👍"}
        message = cache.apply_reaction_event({"message_id": "M1", "sender_id": ALICE, "emoji": ""})
        assert message.reactions == {}

    def test_reaction_unknown_message(self, cache):
        assert cache.apply_reaction_event({"message_id": "nope", "emoji": "x"}) is None

    def test_remove_updates_last_message(self, cache):
        cache.apply_message_event(inbound("A", timestamp=1000))
        cache.apply_message_event(inbound("B", timestamp=2000))
        assert cache.remove_message("B").id == "B"
        assert cache.get_chat(ALICE).last_message.id == "A"
        assert cache.remove_message("B") is None


class TestChats:
    def test_merge_keeps_absent_fields(self, cache):
        cache.apply_chat_event({"id": ALICE, "name": "Alice", "archived": True})
        chat = cache.apply_chat_event({"id": ALICE, "name": None, "pinned": True})
        assert chat.name == "Alice"
        assert chat.archived is True
        assert chat.pinned is True

    def test_last_activity_monotonic(self, cache):
        cache.apply_chat_event({"id": ALICE, "last_activity": 5000})
        assert cache.apply_chat_event({"id": ALICE, "last_activity": 1000}).last_activity == 5000

    def test_requires_id(self, cache):
        with pytest.raises(ValueError):
            cache.apply_chat_event({"name": "x"})

    def test_ordering_pinned_then_recent(self, cache):
        cache.apply_chat_event({"id": "a@s.whatsapp.net", "last_activity": 100})
        cache.apply_chat_event({"id": "b@s.whatsapp.net", "last_activity": 300})
        cache.apply_chat_event({"id": "c@s.whatsapp.net", "last_activity": 200, "pinned": True})
        assert [c.id for c in cache.chats()] == ["c@s.whatsapp.net", "b@s.whatsapp.net", "a@s.whatsapp.net"]

    def test_mark_read(self, cache):
        cache.apply_message_event(inbound())
        assert cache.mark_read(ALICE).unread_count == 0
        assert cache.mark_read("unknown@s.whatsapp.net") is None

    def test_clear_chat(self, cache):
        cache.apply_message_event(inbound())
        assert cache.clear_chat(ALICE) is True
        assert cache.get_chat(ALICE) is None
        assert cache.get_message("M1") is None
        assert cache.clear_chat(ALICE) is False


class TestGroups:
    def test_membership_actions(self, cache):
        cache.apply_group_event({"id": GROUP, "action": "create", "participants": ["a", "b"], "subject": "Team"})
        cache.apply_group_event({"id": GROUP, "action": "add", "participants": ["b", "c"]})
        cache.apply_group_event({"id": GROUP, "action": "promote", "participants": ["a", "c"]})
        chat = cache.apply_group_event({"id": GROUP, "action": "remove", "participants": ["c"]})

        assert chat.kind == ChatKind.GROUP
        assert chat.name == "Team"
        assert chat.participants == ["a", "b"]
        assert chat.admins == ["a"]

        chat = cache.apply_group_event({"id": GROUP, "action": "demote", "participants": ["a"]})
        assert chat.admins == []

    def test_subject_and_description(self, cache):
        chat = cache.apply_group_event({"id": GROUP, "action": "description", "description": "About"})
        assert chat.description == "About"
        assert chat.participants == []


class TestContacts:
    def test_presence(self, cache):
        contact = cache.apply_presence_event({"id": ALICE, "kind": "composing"})
        assert contact.is_online is True
        assert contact.phone == "40712345678"

        contact = cache.apply_presence_event({"id": ALICE, "kind": "unavailable", "last_seen": 1234})
        assert contact.is_online is False
        assert contact.last_seen == 1234

    def test_unknown_presence_kind_keeps_state(self, cache):
        cache.apply_presence_event({"id": ALICE, "kind": "available"})
        assert cache.apply_presence_event({"id": ALICE, "kind": "something"}).is_online is True

    def test_contact_merge(self, cache):
        cache.apply_contact_event({"id": ALICE, "name": "Alice", "status": "busy"})
        contact = cache.apply_contact_event({"id": ALICE, "name": None, "blocked": True})
        assert contact.name == "Alice"
        assert contact.status == "busy"
        assert contact.blocked is True
        assert len(cache.contacts()) == 1


def test_statistics_and_clear(cache):
    cache.apply_message_event(inbound())
    cache.apply_presence_event({"id": ALICE, "kind": "available"})
    assert cache.get_statistics() == {"chats": 1, "messages": 1, "contacts": 1, "unread": 1}
    assert len(cache) == 1
    cache.clear()
    assert cache.get_statistics()["messages"] == 0
