"""Tests for event models."""

import pytest
from pydantic import ValidationError

from roomcast import ChatMessage, MemberLeft, MessageEvent
from roomcast.events import event_adapter


class TestChatMessage:
    """Tests for the ChatMessage payload."""

    def test_defaults_generated(self) -> None:
        """Message id and a timezone-aware timestamp are generated."""
        first = ChatMessage(sender_identity_id="a", room_id="r", content="x")
        second = ChatMessage(sender_identity_id="a", room_id="r", content="x")
        assert first.message_id != second.message_id
        assert first.created_at.tzinfo is not None

    def test_extra_fields_pass_through(self) -> None:
        """Unknown fields survive validation and dumping."""
        message = ChatMessage.model_validate(
            {
                "sender_identity_id": "a",
                "room_id": "r",
                "content": "x",
                "chat": {"is_group_chat": True},
            }
        )
        dumped = message.model_dump()
        assert dumped["chat"] == {"is_group_chat": True}

    def test_content_required(self) -> None:
        """A message without content is rejected."""
        with pytest.raises(ValidationError):
            ChatMessage.model_validate({"sender_identity_id": "a", "room_id": "r"})

    def test_frozen(self) -> None:
        """Messages cannot be changed after creation."""
        message = ChatMessage(sender_identity_id="a", room_id="r", content="x")
        with pytest.raises(ValidationError):
            message.content = "changed"  # type: ignore[misc]


class TestEventUnion:
    """Tests for the event union."""

    def test_dispatches_on_type(self) -> None:
        """The type field selects the event model."""
        event = event_adapter.validate_python(
            {"type": "member-left", "room_id": "r", "identity_id": "bob"}
        )
        assert event == MemberLeft(room_id="r", identity_id="bob")

    def test_message_event_json_shape(self) -> None:
        """A message event dumps to the wire shape."""
        message = ChatMessage(
            message_id="m-1", sender_identity_id="a", room_id="r", content="hi"
        )
        dumped = MessageEvent(message=message).model_dump(mode="json")
        assert dumped["type"] == "message"
        assert dumped["message"]["content"] == "hi"
        assert dumped["message"]["message_id"] == "m-1"
        assert isinstance(dumped["message"]["created_at"], str)

    def test_unknown_type_rejected(self) -> None:
        """An unknown type fails validation."""
        with pytest.raises(ValidationError):
            event_adapter.validate_python({"type": "mystery"})
