"""Tests for the Prompt Assembler."""

import asyncio
import json
import threading
from datetime import datetime, timezone

import pytest

from hyperfy_agent.errors import PromptAssemblyError
from hyperfy_agent.models.memory import Content, ConversationRecord, string_to_uuid
from hyperfy_agent.models.world import WorldSnapshot
from hyperfy_agent.prompt.assembler import assemble_prompt, render, snapshot_values
from hyperfy_agent.prompt.template import HYPERFY_HANDLER_TEMPLATE


def _make_snapshot(**extra) -> WorldSnapshot:
    body = {"emotes": ["wave", "dance"], "triggers": ["player1", "door"]}
    body.update(extra)
    return WorldSnapshot.from_body(body)


def _make_message(agent_id: str) -> ConversationRecord:
    return ConversationRecord(
        id="msg_1",
        agent_id=agent_id,
        user_id=string_to_uuid("hyperfy"),
        room_id=string_to_uuid("hyperfy"),
        content=Content(text="{}", source="hyperfy"),
        created_at=datetime.now(timezone.utc),
    )


class TestRender:
    def test_substitutes_placeholders(self):
        assert render("Hi {{name}}!", {"name": "Ava"}) == "Hi Ava!"

    def test_none_renders_empty(self):
        assert render("[{{bio}}]", {"bio": None}) == "[]"

    def test_unresolved_placeholder_raises(self):
        with pytest.raises(PromptAssemblyError) as exc_info:
            render("{{agentName}} knows {{knowledge}}", {"agentName": "Ava"})
        assert exc_info.value.context["placeholders"] == ["knowledge"]

    def test_values_are_not_rescanned(self):
        rendered = render("{{hyperfy}} / {{bio}}", {"hyperfy": "{{bio}}", "bio": "guide"})
        assert rendered == "{{bio}} / guide"


class TestSnapshotValues:
    def test_vocabularies_pipe_joined(self):
        values = snapshot_values(_make_snapshot())
        assert values["emotes"] == "wave|dance"
        assert values["triggers"] == "player1|door"

    def test_empty_vocabulary_renders_empty(self):
        values = snapshot_values(WorldSnapshot.from_body({"emotes": [], "triggers": []}))
        assert values["emotes"] == ""
        assert values["triggers"] == ""

    def test_world_payload_serialized_verbatim(self):
        snapshot = _make_snapshot(roomId="plaza", players=[{"id": "player1", "distance": 2.5}])
        payload = json.loads(snapshot_values(snapshot)["hyperfy"])
        assert payload["roomId"] == "plaza"
        assert payload["players"] == [{"id": "player1", "distance": 2.5}]

    def test_world_payload_keeps_nulls_and_key_order(self):
        body = {
            "events": [{"type": "chat", "from": "player1", "text": "hey"}],
            "emotes": ["wave"],
            "lastSpeaker": None,
            "triggers": [],
            "roomId": 7,
            "nearby": [{"id": "player1", "distance": 2.5}],
        }
        rendered = snapshot_values(WorldSnapshot.from_body(body))["hyperfy"]

        payload = json.loads(rendered)
        assert payload == body
        assert list(payload) == list(body)
        assert rendered == json.dumps(body, indent=2)

    def test_only_room_id_key_routes(self):
        snapshot = WorldSnapshot.from_body({"emotes": [], "triggers": [], "room_id": "lobby"})
        assert snapshot.room_id is None
        assert json.loads(snapshot_values(snapshot)["hyperfy"]) == {
            "emotes": [],
            "triggers": [],
            "room_id": "lobby",
        }

    def test_numeric_room_id_routes_as_string(self):
        snapshot = WorldSnapshot.from_body({"emotes": [], "triggers": [], "roomId": 7})
        assert snapshot.room_id == "7"


class TestAssemblePrompt:
    def test_full_template_renders(self, runtime):
        state = asyncio.run(runtime.compose_state(_make_message(runtime.agent_id)))
        prompt = assemble_prompt(_make_snapshot(), state)

        assert "{{" not in prompt
        assert '"lookAt": "player1|door" or null' in prompt
        assert '"emote": "wave|dance" or null' in prompt
        assert "A friendly guide who lives in the plaza." in prompt
        assert "NEVER RESPOND IF ONLY AGENTS HAVE SPOKEN" in prompt

    def test_snapshot_values_win_over_state(self, runtime):
        state = asyncio.run(runtime.compose_state(_make_message(runtime.agent_id)))
        state["emotes"] = "should-not-appear"
        prompt = assemble_prompt(_make_snapshot(), state)
        assert "should-not-appear" not in prompt

    def test_missing_state_key_raises(self):
        with pytest.raises(PromptAssemblyError):
            assemble_prompt(_make_snapshot(), {"agentName": "Ava"})

    def test_custom_template(self):
        prompt = assemble_prompt(
            _make_snapshot(),
            {"agentName": "Ava"},
            template="{{agentName}} may play {{emotes}}",
        )
        assert prompt == "Ava may play wave|dance"

    def test_default_template_is_used(self):
        assert "{{hyperfy}}" in HYPERFY_HANDLER_TEMPLATE


class TestComposeState:
    def test_history_read_off_event_loop_thread(self, runtime):
        threads = []
        query_by_room = runtime.store.query_by_room

        def recording_query(room_id, limit=None):
            threads.append(threading.get_ident())
            return query_by_room(room_id, limit=limit)

        runtime.store.query_by_room = recording_query

        async def _compose():
            state = await runtime.compose_state(_make_message(runtime.agent_id))
            return state, threading.get_ident()

        state, loop_thread = asyncio.run(_compose())
        assert len(threads) == 1
        assert threads[0] != loop_thread
        assert state["recentMessages"] == ""
