"""
Campaign Builder - Builder Root Tests
======================================

Session bootstrap, view projection and the trigger table.
"""

import pytest
from fastapi import FastAPI

from campaign_builder.builder.dispatch import HandlerRegistry, Trigger
from campaign_builder.builder.dragdrop import DropOutcome
from campaign_builder.builder.root import BuilderRoot
from campaign_builder.core.models import BlockState, BlockTab, PaletteItem
from conftest import CAMPAIGN_ID, ScriptedPrompter
from mock_campaign_api import calls, seed_phase


# ==========================================================================
# Load
# ==========================================================================

class TestLoad:
    """Materialising the stored campaign."""

    async def test_empty_campaign(self, root: BuilderRoot):
        assert await root.load() == []
        assert root.phase_count == 0
        assert root.render() == []

    async def test_loads_closed_blocks_in_server_order(self, root: BuilderRoot, mock_api: FastAPI):
        seed_phase(mock_api, 1, "Wrap-up", 2, phase_id=20)
        seed_phase(
            mock_api, 1, "Kickoff", 1, phase_id=10,
            conditions=[{"id": 5, "conditional_phase_id": -1, "condition": "day_of", "operator": "equals"}],
            activities=[
                {"id": 30, "activity_type": "module", "activity_id": 1, "display_name": "Expenses"},
                {"id": 31, "activity_type": "custom", "activity_id": 12, "display_name": "Intake"},
            ],
        )

        blocks = await root.load()

        assert [b.phase.name for b in blocks] == ["Kickoff", "Wrap-up"]
        assert all(b.state == BlockState.SAVED_CLOSED for b in blocks)
        assert root.phase_count == 2
        kickoff = blocks[0]
        assert kickoff.phase.conditions[0].conditional_phase_id == -1
        activities = root.store.activities_of(kickoff.key)
        assert [a.display_name for a in activities] == ["Expenses", "Intake"]
        assert all(root.block(a.key).state == BlockState.SAVED_CLOSED for a in activities)

    async def test_reload_replaces_state(self, root: BuilderRoot, mock_api: FastAPI):
        seed_phase(mock_api, 1, "Kickoff", 1, phase_id=10)
        root.add_phase()

        await root.load()

        assert [p.name for p in root.store.phase_list()] == ["Kickoff"]
        assert len(root.blocks) == 1

    async def test_add_phase_follows_loaded_count(self, root: BuilderRoot, mock_api: FastAPI):
        seed_phase(mock_api, 1, "Kickoff", 1, phase_id=10)
        seed_phase(mock_api, 1, "Wrap-up", 2, phase_id=20)
        await root.load()

        block = root.add_phase()

        assert root.phase_count == 3
        assert block.phase.order == 3
        assert block.state == BlockState.UNSAVED_OPEN

    async def test_phase_count_never_decreases(self, root: BuilderRoot):
        first = root.add_phase()
        await first.save()
        second = root.add_phase()
        await second.save()
        assert root.phase_count == 2

        await second.delete()
        draft = root.add_phase()
        await draft.cancel()
        third = root.add_phase()

        assert root.phase_count == 4
        assert third.phase.order == 2
        assert [p.order for p in root.store.phase_list()] == [1, 2]

    async def test_sessions_are_independent(self, api_client, mock_api: FastAPI):
        seed_phase(mock_api, 1, "Kickoff", 1, phase_id=10)
        first = BuilderRoot(CAMPAIGN_ID, api_client, ScriptedPrompter())
        second = BuilderRoot(CAMPAIGN_ID, api_client, ScriptedPrompter())

        await first.load()
        first.add_phase()

        assert second.store.phase_list() == []
        assert len(first.store.phase_list()) == 2


# ==========================================================================
# Lookups
# ==========================================================================

class TestLookups:
    """Block and palette lookups."""

    async def test_unknown_block(self, root: BuilderRoot):
        with pytest.raises(ValueError):
            root.block("missing")

    async def test_kind_checks(self, root: BuilderRoot):
        block = root.add_phase()
        assert root.phase_block(block.key) is block
        with pytest.raises(ValueError):
            root.activity_block(block.key)

    async def test_palette_item(self, root: BuilderRoot, palette: list[PaletteItem]):
        assert root.palette_item(("module", "2")) == palette[1]
        assert root.palette_item(palette[0]) is palette[0]
        with pytest.raises(ValueError):
            root.palette_item(("module", 99))


# ==========================================================================
# Rendering
# ==========================================================================

class TestRender:
    """View projection of the whole session."""

    async def test_render_reflects_block_state(self, root: BuilderRoot, mock_api: FastAPI):
        seed_phase(
            mock_api, 1, "Kickoff", 1, phase_id=10,
            activities=[{"id": 30, "activity_type": "module", "activity_id": 1, "display_name": "Expenses"}],
        )
        await root.load()
        kickoff = root.store.phase_list()[0]
        activity = root.store.activities_of(kickoff.key)[0]
        root.block(activity.key).open()
        root.block(activity.key).select_tab(BlockTab.LOGIC)
        root.add_phase()

        views = root.render()

        assert [v.title for v in views] == ["Kickoff", "Untitled"]
        assert views[0].closed
        assert views[0].activities[0].active_tab == BlockTab.LOGIC
        assert not views[0].activities[0].closed
        assert not views[1].closed
        assert not views[1].activities_visible
        assert views[1].select_name_on_focus


# ==========================================================================
# Dispatch
# ==========================================================================

class TestDispatch:
    """Trigger table."""

    async def test_every_trigger_registered(self, root: BuilderRoot):
        assert set(root.dispatch.triggers) == set(Trigger)

    async def test_full_flow_through_triggers(self, root: BuilderRoot, mock_api: FastAPI):
        block = await root.dispatch.dispatch(Trigger.ADD_PHASE)
        await root.dispatch.dispatch(Trigger.EDIT_PHASE, key=block.key, name="Kickoff")
        await root.dispatch.dispatch("phase.save", key=block.key)

        result = await root.dispatch.dispatch(
            Trigger.DROP_ACTIVITY, phase_key=block.key, item=("module", 1)
        )
        assert result.outcome == DropOutcome.ACCEPTED

        activity_key = result.block.key
        await root.dispatch.dispatch(Trigger.EDIT_ACTIVITY, key=activity_key, required=True, module_settings={"min": 2})
        row = await root.dispatch.dispatch(Trigger.ADD_ACTIVITY_CONDITION, key=activity_key)
        await root.dispatch.dispatch(Trigger.SELECT_TAB, key=activity_key, tab="logic")
        await root.dispatch.dispatch(
            Trigger.EDIT_CONDITION, key=activity_key, row_key=row.key, condition="complete", operator="is"
        )
        await root.dispatch.dispatch(Trigger.SAVE_ACTIVITY, key=activity_key)

        stored = mock_api.state.phases[block.phase.id]["phase_activities"][0]
        assert stored["required"] is True
        assert stored["phase_activity_conditions"][0]["condition"] == "complete"
        assert root.activity_block(activity_key).activity.settings == {"min": 2}

    async def test_receive_and_sort_triggers(self, root: BuilderRoot, saved_phase):
        first = await root.dispatch.dispatch(
            Trigger.RECEIVE_ACTIVITY, phase_key=saved_phase.key, item=("module", 1), index=0
        )
        await root.dispatch.dispatch(
            Trigger.RECEIVE_ACTIVITY, phase_key=saved_phase.key, item=("module", 2), index=0
        )

        await root.dispatch.dispatch(
            Trigger.SORT_ACTIVITIES, key=first.block.key, phase_key=saved_phase.key, index=0
        )

        assert [a.activity_id for a in root.store.activities_of(saved_phase.key)] == [1, 2]

    async def test_delete_trigger_uses_prompter(self, root: BuilderRoot, saved_phase, prompter, mock_api: FastAPI):
        prompter.answers = [False]
        assert await root.dispatch.dispatch(Trigger.DELETE_PHASE, key=saved_phase.key) is False
        assert calls(mock_api, "DELETE") == []

    async def test_toggle_and_goals(self, root: BuilderRoot, saved_phase):
        assert await root.dispatch.dispatch(Trigger.TOGGLE_BLOCK, key=saved_phase.key) == BlockState.SAVED_OPEN
        drop = await root.dispatch.dispatch(Trigger.DROP_ACTIVITY, phase_key=saved_phase.key, item=("module", 2))
        goal = await root.dispatch.dispatch(
            Trigger.ADD_GOAL, key=drop.block.key, kpi="Uploads", operation="count", field_name="photo"
        )
        assert await root.dispatch.dispatch(Trigger.REMOVE_GOAL, key=drop.block.key, goal_key=goal.key)


class TestHandlerRegistry:
    """Registry guards."""

    async def test_duplicate_registration(self):
        registry = HandlerRegistry()
        registry.register(Trigger.ADD_PHASE, lambda: None)
        with pytest.raises(ValueError):
            registry.register(Trigger.ADD_PHASE, lambda: None)

    async def test_missing_handler(self):
        registry = HandlerRegistry()
        with pytest.raises(ValueError):
            await registry.dispatch(Trigger.SAVE_PHASE, key="x")

    async def test_unknown_trigger_name(self):
        with pytest.raises(ValueError):
            await HandlerRegistry().dispatch("phase.explode")

    async def test_sync_and_async_handlers(self):
        registry = HandlerRegistry()

        async def save(key):
            return f"saved {key}"

        registry.register(Trigger.SAVE_PHASE, save)
        registry.register(Trigger.TOGGLE_BLOCK, lambda key: f"toggled {key}")

        assert await registry.dispatch(Trigger.SAVE_PHASE, key="a") == "saved a"
        assert await registry.dispatch(Trigger.TOGGLE_BLOCK, key="a") == "toggled a"
        registry.unregister(Trigger.SAVE_PHASE)
        assert Trigger.SAVE_PHASE not in registry
