"""Tests for the session controller and the phase registry."""

import pytest

from theme_builder.config import Config
from theme_builder.controller import PhaseExecutionError, SessionController, build_context
from theme_builder.approval import AutoApproveDecisionProvider, PromptDecisionProvider
from theme_builder.models import Phase
from theme_builder.phases import (
    PHASE_REGISTRY,
    PhaseDefinition,
    RegistryError,
    check_registry,
    get_phase_definition,
)
from theme_builder.ui.prompts import ScriptedPrompter


def recording_registry(calls, failing=None):
    """Registry whose phases only record that they ran."""

    def make(phase):
        async def run(session, ctx):
            calls.append(phase)
            if phase == failing:
                raise RuntimeError(f"{phase.value} broke")
            if phase == Phase.BRIEF:
                session.theme_name = "Recorded"

        return run

    return tuple(PhaseDefinition(phase, make(phase)) for phase in Phase.ordered())


class TestRegistry:
    """Tests for the phase registry."""

    def test_shipped_registry_is_valid(self):
        """Test that every phase is registered once, in order."""
        check_registry()
        assert [d.phase for d in PHASE_REGISTRY] == Phase.ordered()

    def test_missing_phase(self):
        """Test that a missing phase is reported."""
        registry = tuple(d for d in PHASE_REGISTRY if d.phase != Phase.TESTING)

        with pytest.raises(RegistryError, match="missing testing"):
            check_registry(registry)

    def test_duplicate_phase(self):
        """Test that a duplicated phase is reported."""
        registry = PHASE_REGISTRY + (PHASE_REGISTRY[0],)

        with pytest.raises(RegistryError, match="duplicated brief"):
            check_registry(registry)

    def test_out_of_order(self):
        """Test that swapped phases are reported."""
        registry = (PHASE_REGISTRY[1], PHASE_REGISTRY[0]) + PHASE_REGISTRY[2:]

        with pytest.raises(RegistryError, match="out of order"):
            check_registry(registry)

    def test_get_phase_definition(self):
        """Test looking up a definition by phase."""
        definition = get_phase_definition(Phase.DESIGN_SYSTEM)

        assert definition.name == "Design System"

    def test_get_phase_definition_unknown(self):
        """Test lookup in a registry that lacks the phase."""
        with pytest.raises(RegistryError):
            get_phase_definition(Phase.SUBMISSION, PHASE_REGISTRY[:2])


class TestSessionController:
    """Tests for SessionController."""

    @pytest.mark.asyncio
    async def test_runs_every_phase_in_order(self, context):
        """Test a new session runs all phases and is saved complete."""
        calls = []
        controller = SessionController(context, recording_registry(calls))

        session = await controller.start()

        assert calls == Phase.ordered()
        assert session.completed_phases == Phase.ordered()
        stored = context.store.load(session.id)
        assert stored.completed_phases == Phase.ordered()
        assert stored.theme_name == "Recorded"

    @pytest.mark.asyncio
    async def test_failure_saves_and_resumes_at_failed_phase(self, context):
        """Test that a failing phase is persisted as current and re-entered on resume."""
        calls = []
        controller = SessionController(context, recording_registry(calls, failing=Phase.IMAGES))

        with pytest.raises(PhaseExecutionError) as exc_info:
            await controller.start()

        error = exc_info.value
        assert error.phase == Phase.IMAGES
        assert isinstance(error.__cause__, RuntimeError)
        assert "Phase 'images' failed" in str(error)

        stored = context.store.load(error.session_id)
        assert stored.current_phase == Phase.IMAGES
        assert stored.completed_phases == [Phase.BRIEF, Phase.PRODUCTS]

        resumed_calls = []
        resumed = SessionController(context, recording_registry(resumed_calls))
        await resumed.run_generation_flow(stored)

        assert resumed_calls[0] == Phase.IMAGES
        assert Phase.BRIEF not in resumed_calls
        assert stored.completed_phases == Phase.ordered()

    @pytest.mark.asyncio
    async def test_completed_session_runs_nothing(self, context):
        """Test that phases already completed are not run again."""
        session = context.store.create()
        for phase in Phase.ordered():
            session.mark_completed(phase)
        session.current_phase = Phase.SUBMISSION
        calls = []

        await SessionController(context, recording_registry(calls)).run_generation_flow(session)

        assert calls == []

    @pytest.mark.asyncio
    async def test_resume_through_session_selection(self, context):
        """Test that start() continues a stored session chosen by the operator."""
        session = context.store.create()
        session.completed_phases = [Phase.BRIEF, Phase.PRODUCTS, Phase.IMAGES]
        session.current_phase = Phase.DIFFERENTIATION
        context.store.save(session)
        context.prompter = ScriptedPrompter([session.id, "continue"])
        calls = []

        await SessionController(context, recording_registry(calls)).start()

        assert calls == Phase.ordered()[3:]

    @pytest.mark.asyncio
    async def test_invalid_registry_fails_before_any_work(self, context):
        """Test that validation runs before a session is created."""
        registry = recording_registry([])[:-1]
        controller = SessionController(context, registry)

        with pytest.raises(RegistryError):
            await controller.start()

        assert context.store.list_sessions() == []


class TestBuildContext:
    """Tests for build_context."""

    def test_auto_approve(self, mock_config):
        """Test that auto-approve configuration selects the auto provider."""
        ctx = build_context(mock_config, prompter=ScriptedPrompter())

        assert isinstance(ctx.engine.decisions, AutoApproveDecisionProvider)

    def test_interactive(self, mock_config, quiet_display):
        """Test the interactive provider and the configured iteration limit."""
        mock_config.review.auto_approve = False
        mock_config.generation.max_approval_iterations = 4

        ctx = build_context(mock_config, prompter=ScriptedPrompter(), display=quiet_display)

        assert isinstance(ctx.engine.decisions, PromptDecisionProvider)
        assert ctx.engine.max_iterations == 4
        assert ctx.display is quiet_display

    def test_unknown_provider(self):
        """Test that unknown providers fail at wiring time."""
        config = Config.offline()
        config.images.provider = "dall-e"

        with pytest.raises(ValueError):
            build_context(config, prompter=ScriptedPrompter())
