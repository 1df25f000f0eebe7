"""Tests for request payload construction."""

from datetime import date, datetime, timezone

import pytest

from cleanspeak.errors import ValidationError
from cleanspeak.models import ContentPart, ContentType
from cleanspeak.options import (
    application_body,
    content_parts,
    flag_body,
    moderate_body,
    moderation_configuration,
    moderation_tag,
    to_epoch_millis,
    user_body,
)


def test_moderation_tag():
    assert moderation_tag({"requires_approval": True, "generates_alert": False}) == "requiresApproval"
    assert moderation_tag({"requires_approval": True, "generates_alert": True}) == "generatesAlert"
    assert moderation_tag({}) is None


def test_moderate_body_omits_unset_ids():
    parts = content_parts([ContentPart("title", "hi")])
    body = moderate_body(parts, {"sender_id": "s1"}, now=42)
    assert body == {
        "content": {"createInstant": 42, "parts": [{"name": "title", "content": "hi", "type": "text"}], "senderId": "s1"},
        "moderation": None,
    }


def test_content_parts_validates_type():
    with pytest.raises(ValidationError):
        content_parts([{"name": "a", "content": "b", "type": "hologram"}])
    with pytest.raises(ValidationError):
        content_parts([{"name": "a"}])
    with pytest.raises(ValidationError):
        content_parts([])


def test_content_parts_default_type():
    assert content_parts([{"name": "a", "content": "b"}])[0]["type"] == ContentType.text.value


def test_flag_body_skips_empty_reason():
    assert flag_body("r1", {"reason": None, "comment": ""}, now=1) == {"flag": {"reporterId": "r1", "createInstant": 1}}


def test_to_epoch_millis():
    assert to_epoch_millis(1500) == 1500
    assert to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
    assert to_epoch_millis(date(1970, 1, 2)) == 86_400_000
    with pytest.raises(ValidationError):
        to_epoch_millis("yesterday")


def test_user_body_maps_names():
    body = user_body(
        {
            "application_ids": ["a1"],
            "attributes": {"level": 3},
            "birth_date": "1990-01-01",
            "image_url": "http://img",
            "update": True,
        },
        now=5,
    )
    assert body == {
        "user": {
            "applicationIds": ["a1"],
            "attributes": {"level": 3},
            "birthDate": "1990-01-01",
            "imageURL": "http://img",
            "createInstant": 5,
        }
    }


def test_moderation_configuration_keeps_false_and_drops_missing():
    assert moderation_configuration(
        {"content_deletable": True, "store_content": False, "persistent": None, "pork": "pork"}
    ) == {"contentDeletable": True, "storeContent": False}


def test_application_body_all_flags():
    flags = {
        "content_deletable": True,
        "content_editable": True,
        "content_user_actions_enabled": True,
        "default_action_is_queue_for_approval": True,
        "persistent": True,
        "store_content": True,
    }
    body = application_body("app", flags)
    assert body["application"]["name"] == "app"
    assert body["application"]["moderationConfiguration"] == {
        "contentDeletable": True,
        "contentEditable": True,
        "contentUserActionsEnabled": True,
        "defaultActionIsQueueForApproval": True,
        "persistent": True,
        "storeContent": True,
    }
