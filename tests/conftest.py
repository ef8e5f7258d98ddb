"""
Shared fixtures: call and transcript builders.
"""

import json

import pytest

from lag_analysis.models import Call


def user_turn(item_id, **metrics):
    item = {"id": item_id, "type": "message", "role": "user", "content": ["hello"]}
    if metrics:
        item["metrics"] = metrics
    return item


def assistant_turn(item_id, **metrics):
    item = {"id": item_id, "type": "message", "role": "assistant", "content": ["hi there"]}
    if metrics:
        item["metrics"] = metrics
    return item


@pytest.fixture
def make_transcript():
    """Serialize transcript items the way the call log stores them."""
    def _make(*items):
        return json.dumps({"items": list(items)})
    return _make


@pytest.fixture
def make_call(make_transcript):
    """Build a Call; `items` are serialized into its transcript unless `transcript` is given."""
    def _make(call_id="call-1", items=(), transcript=None, **fields):
        data = {
            "call_id": call_id,
            "user_id": "user-1",
            "initiated_at": "2025-06-10T09:30:00Z",
            "duration_seconds": 120,
            "language": "en",
            "is_user_initiated": True,
            "transcript": transcript if transcript is not None else make_transcript(*items),
        }
        data.update(fields)
        return Call.model_validate(data)
    return _make


@pytest.fixture
def user():
    return user_turn


@pytest.fixture
def assistant():
    return assistant_turn
